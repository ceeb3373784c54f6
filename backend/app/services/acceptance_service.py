# Overview: Service-layer operations for order acceptance; claimable listings and the race-safe claim.

"""
Order Acceptance Service

================================================================================
PURPOSE: First-come-first-serve claiming of open (PENDING, unassigned) orders
================================================================================

ELIGIBILITY (every line of the order must pass):
- Vendor is approved.
- PRIME vendor: every product is prime; if the vendor declares brands, every
  product's brand is one of them. No declared brands = any prime product.
- SHOP vendor: no product is prime.
- Vendor holds an ACTIVE pricing entry for every product. Listing ignores
  stock; claiming also requires enough stock for all lines drawing on it.

CLAIM PROTOCOL:
1. Check preconditions on a plain read; any failure raises before a write.
2. Reprice every line with the claiming vendor's own purchase price (selling
   price is platform-set and stays).
3. One conditional UPDATE sets status/assignee/totals only if the row is
   still PENDING with no assignee. The database picks the single winner.
4. Zero rows changed = a concurrent vendor won; AlreadyClaimed (409). The
   core never retries.
5. After commit: sale recording and notification, best-effort. Their
   failures are logged and never undo the claim.
================================================================================
"""

from __future__ import annotations

from dataclasses import dataclass, field

from flask import current_app

from ..extensions import db
from ..models import Order, OrderItem, Product, ProductVariant, Vendor
from ..validation import ConflictError, DomainError, NotFoundError
from app.time_utils import utcnow
from . import notification_service, pricing_service, sales_service, vendor_service
from .concurrency import compare_and_swap
from .lifecycle_service import ACCEPTED, CLAIMABLE_STATUSES, is_claimable
from .notification_service import NotificationSink
from .pricing_service import VendorQuote
from .routing_service import build_order_item, order_totals


class OrderNotFound(NotFoundError):
    pass


class AlreadyClaimed(ConflictError):
    """
    The order is no longer open for claim.

    Expected in normal operation when vendors race; the caller should move on
    to another order rather than retry.
    """
    pass


class VendorNotEligible(DomainError):
    """Vendor unknown, unapproved, or not allowed to fulfil this order's products."""
    status_code = 403


class ProductUnavailable(DomainError):
    """Vendor lacks an active pricing entry or enough stock for a line."""
    status_code = 400


class OrderAccessDenied(DomainError):
    status_code = 403


@dataclass
class VendorOrderView:
    """An order annotated with one vendor's prospective earnings (display only, not persisted)."""
    order: Order
    earnings_cents: int
    lines: list[dict] = field(default_factory=list)

    def to_dict(self) -> dict:
        data = self.order.to_dict()
        data["earnings_cents"] = self.earnings_cents
        data["items_with_pricing"] = self.lines
        return data


def _line_variant(item: OrderItem) -> ProductVariant | None:
    if item.variant_id is None:
        return None
    return db.session.get(ProductVariant, item.variant_id)


def class_mismatch_reason(vendor: Vendor, products: list[Product]) -> str | None:
    """
    Why this vendor may not fulfil these products, or None if its class allows it.

    Covers the prime/regular mirror restriction and the PRIME brand set.
    """
    if vendor.is_prime:
        if any(not p.is_prime for p in products):
            return "PRIME vendors fulfil prime-class products only"
        handled = vendor.brand_ids
        # Empty brand set: permissive, any prime product.
        if handled and any(p.brand_id not in handled for p in products):
            return "Vendor does not handle the brand of every product"
        return None

    if any(p.is_prime for p in products):
        return "SHOP vendors do not fulfil prime-class products"
    return None


def _quotes_for(vendor_id: int, order: Order) -> list[VendorQuote | None]:
    return [
        pricing_service.get_vendor_price(vendor_id, item.product, _line_variant(item))
        for item in order.items
    ]


def _earnings_view(order: Order, quotes: list[VendorQuote]) -> VendorOrderView:
    lines = []
    earnings = 0
    for item, quote in zip(order.items, quotes):
        purchase_subtotal = quote.purchase_price_cents * item.quantity
        earnings += purchase_subtotal
        lines.append({
            "product_id": item.product_id,
            "product_name": item.product.name,
            "variant_id": item.variant_id,
            "quantity": item.quantity,
            "selling_price_cents": item.selling_price_cents,
            "purchase_price_cents": quote.purchase_price_cents,
            "purchase_subtotal_cents": purchase_subtotal,
        })
    return VendorOrderView(order=order, earnings_cents=earnings, lines=lines)


def list_claimable_orders(vendor_id: int) -> list[VendorOrderView]:
    """
    Open orders this vendor is eligible to claim, newest first, with earnings.

    Unknown or unapproved vendors get an empty list.
    """
    vendor = vendor_service.find_vendor(vendor_id)
    if vendor is None or not vendor.is_approved:
        current_app.logger.info("Vendor %s not found or not approved; no claimable orders", vendor_id)
        return []

    candidates = (
        db.session.query(Order)
        .filter(
            Order.status.in_(sorted(CLAIMABLE_STATUSES)),
            Order.assigned_vendor_id.is_(None),
            Order.is_prime == vendor.is_prime,
        )
        .order_by(Order.created_at.desc(), Order.id.desc())
        .all()
    )

    eligible = []
    for order in candidates:
        if class_mismatch_reason(vendor, [item.product for item in order.items]):
            continue

        quotes = _quotes_for(vendor.id, order)
        # One line without an active entry excludes the whole order.
        if any(q is None or not q.is_active for q in quotes):
            continue

        eligible.append(_earnings_view(order, quotes))

    return eligible


def _check_claim_preconditions(order: Order, vendor: Vendor | None) -> list[VendorQuote]:
    if not is_claimable(order.status, order.assigned_vendor_id):
        raise AlreadyClaimed(
            "Order is not available for claim",
            details={"order_id": order.id, "status": order.status},
        )

    if vendor is None or not vendor.is_approved:
        raise VendorNotEligible("Vendor not found or not approved")

    reason = class_mismatch_reason(vendor, [item.product for item in order.items])
    if reason:
        raise VendorNotEligible(reason, details={"order_id": order.id, "vendor_id": vendor.id})

    quotes = _quotes_for(vendor.id, order)
    for item, quote in zip(order.items, quotes):
        if quote is None or not quote.is_active:
            raise ProductUnavailable(
                "Product not available from vendor",
                details={"product_id": item.product_id, "variant_id": item.variant_id},
            )

    # Lines drawing on the same stock (repeated product, or variants without
    # their own row) must fit together.
    required: dict[tuple[int, int | None], int] = {}
    for item, quote in zip(order.items, quotes):
        required[quote.stock_key] = required.get(quote.stock_key, 0) + item.quantity

    for item, quote in zip(order.items, quotes):
        needed = required[quote.stock_key]
        if not quote.can_fulfil(needed):
            raise ProductUnavailable(
                "Insufficient stock",
                details={
                    "product_id": item.product_id,
                    "variant_id": item.variant_id,
                    "available": quote.available_stock,
                    "required": needed,
                },
            )
    return quotes


def claim_order(
    order_id: int,
    vendor_id: int,
    *,
    sink: NotificationSink | None = None,
    record_sale=None,
) -> Order:
    """
    Claim an open order for a vendor. At most one claim per order succeeds.

    Args:
        order_id: Order to claim
        vendor_id: Claiming vendor
        sink: Notification sink override
        record_sale: Sale-recording hook, default sales_service.record_sale

    Returns:
        The claimed order, ACCEPTED and repriced with the vendor's prices

    Raises:
        OrderNotFound, AlreadyClaimed, VendorNotEligible, ProductUnavailable
    """
    if record_sale is None:
        record_sale = sales_service.record_sale

    order = db.session.get(Order, order_id)
    if order is None:
        raise OrderNotFound("Order not found", details={"order_id": order_id})

    vendor = vendor_service.find_vendor(vendor_id)
    quotes = _check_claim_preconditions(order, vendor)

    repriced = [
        build_order_item(
            line_number=item.line_number,
            product_id=item.product_id,
            variant_id=item.variant_id,
            vendor_id=vendor_id,
            quantity=item.quantity,
            selling_price_cents=item.selling_price_cents,
            purchase_price_cents=quote.purchase_price_cents,
        )
        for item, quote in zip(order.items, quotes)
    ]
    totals = order_totals(repriced)
    now = utcnow()

    changed = compare_and_swap(
        Order,
        pk=order.id,
        expected={"status": CLAIMABLE_STATUSES, "assigned_vendor_id": None},
        values={
            "status": ACCEPTED,
            "assigned_vendor_id": vendor_id,
            "claimed_at": now,
            "status_changed_at": now,
            **totals,
        },
    )
    if changed == 0:
        db.session.rollback()
        current_app.logger.info("Vendor %s lost the claim race for order %s", vendor_id, order_id)
        raise AlreadyClaimed(
            "Order was already claimed by another vendor",
            details={"order_id": order_id},
        )

    # Only the winner reaches this point; replace the line snapshots in the same transaction.
    for item, fresh in zip(order.items, repriced):
        item.vendor_id = fresh.vendor_id
        item.purchase_price_cents = fresh.purchase_price_cents
        item.purchase_subtotal_cents = fresh.purchase_subtotal_cents
        item.profit_cents = fresh.profit_cents
        item.profit_percentage = fresh.profit_percentage
    db.session.commit()

    current_app.logger.info(
        "Order %s claimed by vendor %s (purchase total %s cents)",
        order_id, vendor_id, totals["total_purchase_cents"],
    )

    _after_claim(order, vendor_id, record_sale=record_sale, sink=sink)
    return order


def _after_claim(order: Order, vendor_id: int, *, record_sale, sink: NotificationSink | None) -> None:
    """Best-effort side effects of a committed claim."""
    for item in order.items:
        try:
            record_sale(
                vendor_id=vendor_id,
                product_id=item.product_id,
                variant_id=item.variant_id,
                quantity=item.quantity,
                purchase_price_cents=item.purchase_price_cents,
                selling_price_cents=item.selling_price_cents,
                order_id=order.id,
            )
        except Exception:
            db.session.rollback()
            current_app.logger.exception(
                "Failed to record sale for order %s product %s; claim stands",
                order.id, item.product_id,
            )

    notification_service.emit(
        notification_service.ORDER_CLAIMED,
        {
            "order_id": order.id,
            "vendor_id": vendor_id,
            "status": order.status,
            "total_purchase_cents": order.total_purchase_cents,
        },
        sink=sink,
    )


def get_order_for_vendor(order_id: int, vendor_id: int) -> VendorOrderView:
    """
    One order as a vendor may see it.

    Assigned orders are visible to their assignee only; open orders to
    vendors eligible to claim them.
    """
    order = db.session.get(Order, order_id)
    if order is None:
        raise OrderNotFound("Order not found", details={"order_id": order_id})

    if order.assigned_vendor_id is not None:
        if order.assigned_vendor_id != vendor_id:
            raise OrderAccessDenied("Order not assigned to this vendor", details={"order_id": order_id})
        lines = [
            {
                "product_id": item.product_id,
                "product_name": item.product.name,
                "variant_id": item.variant_id,
                "quantity": item.quantity,
                "selling_price_cents": item.selling_price_cents,
                "purchase_price_cents": item.purchase_price_cents,
                "purchase_subtotal_cents": item.purchase_subtotal_cents,
            }
            for item in order.items
        ]
        return VendorOrderView(order=order, earnings_cents=order.total_purchase_cents, lines=lines)

    if not is_claimable(order.status, order.assigned_vendor_id):
        raise OrderAccessDenied("Order is closed", details={"order_id": order_id, "status": order.status})

    vendor = vendor_service.find_vendor(vendor_id)
    if vendor is None or not vendor.is_approved:
        raise VendorNotEligible("Vendor not found or not approved")
    reason = class_mismatch_reason(vendor, [item.product for item in order.items])
    if reason:
        raise VendorNotEligible(reason, details={"order_id": order_id})

    quotes = _quotes_for(vendor_id, order)
    for item, quote in zip(order.items, quotes):
        if quote is None or not quote.is_active:
            raise ProductUnavailable(
                "Product not available from vendor",
                details={"product_id": item.product_id, "variant_id": item.variant_id},
            )
    return _earnings_view(order, quotes)
