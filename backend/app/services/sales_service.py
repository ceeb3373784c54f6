"""
Sales Recording Service

WHY: A claimed order is a sale for the vendor that claimed it. Each order
line appends a SaleRecord and decrements the vendor's stock so the vendor's
inventory reflects what it has committed to ship.

RULES:
- Append-only: records are never updated or deleted.
- Stock never goes negative; the decrement is a conditional UPDATE.
- Runs after the claim commits. A failure here never undoes the claim; the
  acceptance service logs it and moves on.
"""

from __future__ import annotations

from ..extensions import db
from ..models import SaleRecord, VendorProductPricing, VendorVariantStock
from ..validation import ConflictError, NotFoundError
from .concurrency import decrement_if_available


class SaleRecordingError(ConflictError):
    """Raised when a sale cannot be recorded against the vendor's stock."""
    pass


def record_sale(
    *,
    vendor_id: int,
    product_id: int,
    quantity: int,
    purchase_price_cents: int,
    selling_price_cents: int | None = None,
    order_id: int | None = None,
    variant_id: int | None = None,
    sale_type: str = "WEBSITE",
    commit: bool = True,
) -> SaleRecord:
    """
    Record one sold line and take the quantity out of the vendor's stock.

    Variant lines decrement the variant stock row when the vendor keeps one,
    otherwise the entry-level stock.

    Raises:
        NotFoundError: vendor holds no active entry for the product
        SaleRecordingError: insufficient stock
    """
    entry = (
        db.session.query(VendorProductPricing)
        .filter_by(vendor_id=vendor_id, product_id=product_id, is_active=True)
        .first()
    )
    if entry is None:
        raise NotFoundError(
            "Product not found in vendor inventory",
            details={"vendor_id": vendor_id, "product_id": product_id},
        )

    variant_row = entry.stock_for_variant(variant_id) if variant_id is not None else None
    if variant_row is not None:
        changed = decrement_if_available(
            VendorVariantStock, pk=variant_row.id, column="available_stock", amount=quantity,
        )
        counter_model, counter_pk = VendorVariantStock, variant_row.id
    else:
        changed = decrement_if_available(
            VendorProductPricing, pk=entry.id, column="available_stock", amount=quantity,
        )
        counter_model, counter_pk = VendorProductPricing, entry.id

    if changed == 0:
        db.session.rollback()
        raise SaleRecordingError(
            "Insufficient stock",
            details={"vendor_id": vendor_id, "product_id": product_id, "required": quantity},
        )

    db.session.query(counter_model).filter(counter_model.id == counter_pk).update(
        {counter_model.total_sold_website: counter_model.total_sold_website + quantity},
        synchronize_session=False,
    )

    total_purchase = purchase_price_cents * quantity
    total_selling = selling_price_cents * quantity if selling_price_cents is not None else None

    record = SaleRecord(
        vendor_id=vendor_id,
        product_id=product_id,
        variant_id=variant_id,
        order_id=order_id,
        sale_type=sale_type,
        quantity=quantity,
        purchase_price_cents=purchase_price_cents,
        total_purchase_cents=total_purchase,
        selling_price_cents=selling_price_cents,
        total_selling_cents=total_selling,
        profit_cents=total_selling - total_purchase if total_selling is not None else None,
    )
    db.session.add(record)

    if commit:
        db.session.commit()
    # Counters changed behind the identity map.
    db.session.expire(entry)
    return record


def list_vendor_sales(vendor_id: int, *, order_id: int | None = None) -> list[SaleRecord]:
    query = db.session.query(SaleRecord).filter_by(vendor_id=vendor_id)
    if order_id is not None:
        query = query.filter_by(order_id=order_id)
    return query.order_by(SaleRecord.id).all()
