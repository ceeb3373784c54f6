# Overview: Flask CLI command groups for bootstrap, inspection, and manual order handling.

# backend/app/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to "app:create_app" (PowerShell: $env:FLASK_APP="app:create_app").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
# - python -m flask system seed-demo
#   Create demo brands, products, a SHOP fulfiller and two PRIME vendors with pricing.
#
# Vendor inspection/approval:
# - python -m flask vendors list [--class PRIME] [--approved-only]
#   List vendors with class, approval and brand set.
# - python -m flask vendors approve 3
#   Approve a vendor so it can receive or claim orders.
# - python -m flask vendors set-brands 3 1 2
#   Replace the brand set of PRIME vendor 3 (no brand ids = any brand).
# - python -m flask vendors sales 3 [--order-id 12]
#   Show recorded sales for vendor 3.
#
# Order inspection/handling:
# - python -m flask orders claimable 3
#   Show open orders vendor 3 may claim, with its earnings.
# - python -m flask orders claim 12 --vendor-id 3
#   Claim order 12 for vendor 3 (same path as the HTTP claim).

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import Vendor
from .models.vendors import VENDOR_CLASS_PRIME, VENDOR_CLASS_SHOP, VENDOR_CLASSES
from .services import acceptance_service, catalog_service, pricing_service, sales_service, vendor_service
from .validation import DomainError


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """
    DANGER: Drop all tables and recreate schema.

    This will DELETE ALL DATA!
    """
    if not yes:
        click.confirm("WARN This will DELETE ALL DATA. Are you sure?", abort=True)

    click.echo("DELETE  Dropping all tables...")
    db.drop_all()

    click.echo("BUILD  Creating all tables...")
    db.create_all()

    click.echo("PASS Database reset complete. Run 'python -m flask system seed-demo' for sample data.")


@system_group.command('seed-demo')
@with_appcontext
def seed_demo():
    """
    Create a small demo marketplace.

    Creates:
    - Brands: Acme, Globex
    - Products: a regular kettle, a prime Acme blender, a prime Globex mixer
      and a prime Acme toaster with two variants
    - Vendors: "House Shop" (SHOP, approved), "Prime One" (PRIME, Acme only),
      "Prime Any" (PRIME, every brand), all approved with stock
    """
    if db.session.query(Vendor).first() is not None:
        click.echo("FAIL Database already has vendors; run 'system reset-db --yes' first")
        return

    click.echo("START Seeding demo data...")

    acme = catalog_service.create_brand("Acme")
    globex = catalog_service.create_brand("Globex")

    kettle = catalog_service.create_product(
        name="Kettle", brand_id=acme.id, mrp_cents=20000, selling_percentage=80, purchase_percentage=60,
    )
    blender = catalog_service.create_product(
        name="Blender", brand_id=acme.id, is_prime=True, mrp_cents=50000, selling_percentage=90, purchase_percentage=70,
    )
    mixer = catalog_service.create_product(
        name="Mixer", brand_id=globex.id, is_prime=True, mrp_cents=30000, selling_percentage=85,
    )
    toaster = catalog_service.create_product(
        name="Toaster", brand_id=acme.id, is_prime=True,
        variants=[
            {"label": "2-slice", "mrp_cents": 15000, "selling_percentage": 90, "purchase_percentage": 65},
            {"label": "4-slice", "mrp_cents": 25000, "selling_percentage": 90, "purchase_percentage": 65},
        ],
    )
    click.echo(f"PASS Created brands {acme.name}, {globex.name} and 4 products")

    shop = vendor_service.create_vendor(name="House Shop", vendor_class=VENDOR_CLASS_SHOP, approved=True)
    prime_one = vendor_service.create_vendor(
        name="Prime One", vendor_class=VENDOR_CLASS_PRIME, brand_ids=[acme.id], approved=True,
    )
    prime_any = vendor_service.create_vendor(name="Prime Any", vendor_class=VENDOR_CLASS_PRIME, approved=True)

    pricing_service.assign_product_to_vendor(
        vendor_id=shop.id, product_id=kettle.id, purchase_percentage=60, available_stock=100,
    )
    pricing_service.assign_brands_to_vendor(
        vendor_id=prime_one.id, brand_ids=[acme.id], purchase_percentage=68, available_stock=25,
    )
    for product in (blender, mixer, toaster):
        pricing_service.assign_product_to_vendor(
            vendor_id=prime_any.id, product_id=product.id, purchase_percentage=72, available_stock=10,
        )

    click.echo(f"PASS Vendors: {shop.name} (ID {shop.id}), {prime_one.name} (ID {prime_one.id}), "
               f"{prime_any.name} (ID {prime_any.id})")
    click.echo(f"INFO Set FULFILLER_VENDOR_ID={shop.id} to pin the regular-order fulfiller")


# =============================================================================
# VENDOR COMMANDS
# =============================================================================

@click.group('vendors')
def vendors_group():
    """Vendor inspection and approval commands."""


@vendors_group.command('list')
@click.option('--class', 'vendor_class', type=click.Choice(sorted(VENDOR_CLASSES)), help='Filter by vendor class')
@click.option('--approved-only', is_flag=True, help='Only approved vendors')
@with_appcontext
def list_vendors_cli(vendor_class, approved_only):
    """List vendors with class, approval and brands."""
    vendors = vendor_service.list_vendors(vendor_class=vendor_class, approved_only=approved_only)

    if not vendors:
        click.echo("No vendors found.")
        return

    click.echo("\n" + "="*80)
    click.echo(f"{'ID':<5} {'Name':<30} {'Class':<8} {'Approved':<10} {'Brands'}")
    click.echo("="*80)

    for vendor in vendors:
        approved_str = "Yes" if vendor.is_approved else "No"
        if vendor.is_prime:
            brands_str = ", ".join(b.name for b in vendor.brands) or "any"
        else:
            brands_str = "-"
        click.echo(f"{vendor.id:<5} {vendor.name:<30} {vendor.vendor_class:<8} {approved_str:<10} {brands_str}")

    click.echo("="*80 + "\n")


@vendors_group.command('approve')
@click.argument('vendor_id', type=int)
@with_appcontext
def approve_vendor_cli(vendor_id):
    """Approve a vendor."""
    try:
        vendor = vendor_service.approve_vendor(vendor_id)
    except DomainError as e:
        click.echo(f"FAIL {e}")
        return
    click.echo(f"PASS Approved vendor {vendor.name} (ID: {vendor.id}, Class: {vendor.vendor_class})")


@vendors_group.command('set-brands')
@click.argument('vendor_id', type=int)
@click.argument('brand_ids', type=int, nargs=-1)
@with_appcontext
def set_vendor_brands_cli(vendor_id, brand_ids):
    """Replace a PRIME vendor's brand set (no brands = any brand)."""
    try:
        vendor = vendor_service.set_vendor_brands(vendor_id, list(brand_ids))
    except DomainError as e:
        click.echo(f"FAIL {e}")
        return
    brands_str = ", ".join(b.name for b in vendor.brands) or "any"
    click.echo(f"PASS Vendor {vendor.name} now handles: {brands_str}")


@vendors_group.command('sales')
@click.argument('vendor_id', type=int)
@click.option('--order-id', type=int, help='Only sales for this order')
@with_appcontext
def vendor_sales_cli(vendor_id, order_id):
    """Show recorded sales for a vendor."""
    records = sales_service.list_vendor_sales(vendor_id, order_id=order_id)

    if not records:
        click.echo("No sales recorded.")
        return

    click.echo("\n" + "="*80)
    click.echo(f"{'Order':<8} {'Product':<8} {'Qty':<5} {'Purchase':>12} {'Selling':>12} {'Profit':>12}")
    click.echo("="*80)

    for r in records:
        click.echo(
            f"{r.order_id:<8} {r.product_id:<8} {r.quantity:<5} "
            f"{r.purchase_price_cents / 100:>12.2f} {(r.selling_price_cents or 0) / 100:>12.2f} {(r.profit_cents or 0) / 100:>12.2f}"
        )

    click.echo("="*80 + "\n")


# =============================================================================
# ORDER COMMANDS
# =============================================================================

@click.group('orders')
def orders_group():
    """Order inspection and manual claim commands."""


@orders_group.command('claimable')
@click.argument('vendor_id', type=int)
@with_appcontext
def claimable_orders_cli(vendor_id):
    """List open orders a vendor may claim."""
    views = acceptance_service.list_claimable_orders(vendor_id)

    if not views:
        click.echo("No claimable orders.")
        return

    click.echo("\n" + "="*80)
    click.echo(f"{'Order':<8} {'Customer':<10} {'Lines':<6} {'Total':>12} {'Earnings':>12}  Created")
    click.echo("="*80)

    for view in views:
        order = view.order
        click.echo(
            f"{order.id:<8} {order.customer_id:<10} {len(order.items):<6} "
            f"{order.total_cents / 100:>12.2f} {view.earnings_cents / 100:>12.2f}  {order.created_at}"
        )

    click.echo("="*80 + "\n")


@orders_group.command('claim')
@click.argument('order_id', type=int)
@click.option('--vendor-id', type=int, required=True, help='Claiming vendor ID')
@with_appcontext
def claim_order_cli(order_id, vendor_id):
    """Claim an open order for a vendor."""
    try:
        order = acceptance_service.claim_order(order_id, vendor_id)
    except DomainError as e:
        click.echo(f"FAIL {e} {e.details or ''}".rstrip())
        return

    click.echo(
        f"PASS Order {order.id} claimed by vendor {vendor_id}: "
        f"purchase total {order.total_purchase_cents / 100:.2f}, profit {order.total_profit_cents / 100:.2f}"
    )


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(vendors_group)
    app.cli.add_command(orders_group)
