# Overview: Service-layer operations for order routing; classifies, prices and persists new orders.

"""
Order Routing Service

WHY: Every order has exactly one fulfilling vendor and is priced with that
vendor's cost terms. Routing decides the initial pool at creation:

- Regular (non-prime) orders go straight to the SHOP fulfiller. There is a
  single fulfiller, so there is no race: the order is persisted ACCEPTED and
  pre-assigned, priced with the fulfiller's own purchase prices.
- Prime orders are broadcast. They are persisted PENDING with no assignee,
  priced provisionally from the catalog reference price; the claiming PRIME
  vendor's prices replace these at claim time (acceptance_service).

RULES:
- One product class per order; mixing prime and regular lines is rejected
  before anything is written.
- Line snapshots and totals are frozen once assigned.
"""

from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..models import Order, OrderItem, Product, ProductVariant
from ..models.vendors import VENDOR_CLASS_SHOP
from ..validation import NotFoundError, OrderLineInput, ValidationError
from . import catalog_service, notification_service, pricing_service, vendor_service
from .lifecycle_service import ACCEPTED, PENDING
from .notification_service import NotificationSink


class InvalidOrder(ValidationError):
    """Unknown/inactive product, bad variant, or empty order."""
    pass


class MixedClassNotAllowed(ValidationError):
    """Prime and regular products in one order."""
    pass


class NoFulfillerAvailable(NotFoundError):
    """No approved SHOP fulfiller for a regular order."""
    pass


class InvalidPricing(ValidationError):
    """A product or variant resolves to a non-positive selling price."""
    pass


def build_order_item(
    *,
    line_number: int,
    product_id: int,
    variant_id: int | None,
    vendor_id: int | None,
    quantity: int,
    selling_price_cents: int,
    purchase_price_cents: int,
) -> OrderItem:
    """Price one line: subtotals, profit and profit percentage of the subtotal."""
    subtotal = selling_price_cents * quantity
    purchase_subtotal = purchase_price_cents * quantity
    profit = subtotal - purchase_subtotal
    profit_percentage = round(profit / subtotal * 100, 2) if subtotal else 0.0

    return OrderItem(
        line_number=line_number,
        product_id=product_id,
        variant_id=variant_id,
        vendor_id=vendor_id,
        quantity=quantity,
        selling_price_cents=selling_price_cents,
        purchase_price_cents=purchase_price_cents,
        subtotal_cents=subtotal,
        purchase_subtotal_cents=purchase_subtotal,
        profit_cents=profit,
        profit_percentage=profit_percentage,
    )


def order_totals(items: list[OrderItem]) -> dict:
    total = sum(item.subtotal_cents for item in items)
    total_purchase = sum(item.purchase_subtotal_cents for item in items)
    return {
        "total_cents": total,
        "total_purchase_cents": total_purchase,
        "total_profit_cents": total - total_purchase,
    }


def resolve_variant(product: Product, variant_id: int | None) -> ProductVariant | None:
    """
    Pick the variant a line is priced from.

    Variant products use the requested variant, or the first active one when
    none is named. Plain products must not name a variant.
    """
    if not product.has_variants:
        if variant_id is not None:
            raise InvalidOrder(
                "Product has no variants",
                details={"product_id": product.id, "variant_id": variant_id},
            )
        return None

    if variant_id is None:
        active = product.active_variants()
        if not active:
            raise InvalidOrder("Product has no active variant", details={"product_id": product.id})
        return active[0]

    for variant in product.variants:
        if variant.id == variant_id:
            if not variant.is_active:
                raise InvalidOrder(
                    "Variant is not active",
                    details={"product_id": product.id, "variant_id": variant_id},
                )
            return variant

    raise InvalidOrder(
        "Variant does not belong to product",
        details={"product_id": product.id, "variant_id": variant_id},
    )


def _load_lines(lines: list[OrderLineInput]) -> list[tuple[OrderLineInput, Product, ProductVariant | None]]:
    products = catalog_service.get_products([line.product_id for line in lines])

    unavailable = sorted({
        line.product_id for line in lines
        if line.product_id not in products or not products[line.product_id].is_active
    })
    if unavailable:
        raise InvalidOrder("Unknown or inactive products", details={"product_ids": unavailable})

    classes = {products[line.product_id].is_prime for line in lines}
    if len(classes) > 1:
        raise MixedClassNotAllowed(
            "Prime products cannot be mixed with regular products",
            details={
                "prime_product_ids": sorted({l.product_id for l in lines if products[l.product_id].is_prime}),
                "regular_product_ids": sorted({l.product_id for l in lines if not products[l.product_id].is_prime}),
            },
        )

    return [(line, products[line.product_id], resolve_variant(products[line.product_id], line.variant_id)) for line in lines]


def create_order(
    *,
    customer_id: int,
    lines: list[OrderLineInput],
    address: dict,
    fulfiller_vendor_id: int | None = None,
    sink: NotificationSink | None = None,
) -> Order:
    """
    Route, price and persist a new order.

    Args:
        customer_id: External customer reference
        lines: Validated order lines (see validation.parse_order_lines)
        address: Validated delivery address (see validation.parse_address)
        fulfiller_vendor_id: Overrides FULFILLER_VENDOR_ID for the regular path
        sink: Notification sink override

    Returns:
        The persisted order: PENDING/unassigned (prime) or ACCEPTED/assigned (regular)

    Raises:
        InvalidOrder, MixedClassNotAllowed, NoFulfillerAvailable, InvalidPricing
    """
    if not lines:
        raise InvalidOrder("Order must have at least one item")

    resolved = _load_lines(lines)

    references = []
    for line, product, variant in resolved:
        ref = pricing_service.reference_price(product, variant)
        if ref.selling_price_cents <= 0:
            raise InvalidPricing(
                "Product resolves to a non-positive selling price",
                details={"product_id": product.id, "variant_id": variant.id if variant else None},
            )
        references.append(ref)

    is_prime = resolved[0][1].is_prime
    fulfiller = None
    if not is_prime:
        try:
            fulfiller = vendor_service.get_approved_fulfiller(VENDOR_CLASS_SHOP, fulfiller_vendor_id)
        except vendor_service.FulfillerUnavailableError as exc:
            raise NoFulfillerAvailable(str(exc), details=exc.details) from exc

    items = []
    for number, ((line, product, variant), ref) in enumerate(zip(resolved, references), start=1):
        purchase_price = ref.purchase_price_cents
        if fulfiller is not None:
            quote = pricing_service.get_vendor_price(fulfiller.id, product, variant)
            if quote is not None:
                purchase_price = quote.purchase_price_cents
            else:
                # This line keeps its own default; the new entry carries the product-level one.
                pricing_service.ensure_entry(fulfiller.id, product)

        items.append(build_order_item(
            line_number=number,
            product_id=product.id,
            variant_id=variant.id if variant else None,
            vendor_id=fulfiller.id if fulfiller else None,
            quantity=line.quantity,
            selling_price_cents=ref.selling_price_cents,
            purchase_price_cents=purchase_price,
        ))

    order = Order(
        customer_id=customer_id,
        status=PENDING if is_prime else ACCEPTED,
        is_prime=is_prime,
        assigned_vendor_id=fulfiller.id if fulfiller else None,
        delivery_street=address["street"],
        delivery_city=address["city"],
        delivery_state=address["state"],
        delivery_pincode=address["pincode"],
        items=items,
        **order_totals(items),
    )
    db.session.add(order)
    db.session.commit()

    current_app.logger.info(
        "Order %s created (%s) for customer %s: %s line(s), vendor=%s",
        order.id, "prime" if is_prime else "regular", customer_id, len(items), order.assigned_vendor_id,
    )

    notification_service.emit(
        notification_service.ORDER_AVAILABLE,
        {
            "order_id": order.id,
            "is_prime": order.is_prime,
            "status": order.status,
            "assigned_vendor_id": order.assigned_vendor_id,
            "product_ids": [item.product_id for item in items],
        },
        sink=sink,
    )
    return order


def get_customer_order(order_id: int, customer_id: int) -> Order:
    order = db.session.get(Order, order_id)
    if order is None or order.customer_id != customer_id:
        raise NotFoundError("Order not found", details={"order_id": order_id})
    return order


def list_customer_orders(customer_id: int) -> list[Order]:
    return (
        db.session.query(Order)
        .filter_by(customer_id=customer_id)
        .order_by(Order.created_at.desc(), Order.id.desc())
        .all()
    )
