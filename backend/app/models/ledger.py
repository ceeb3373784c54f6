from __future__ import annotations

from ..extensions import db
from app.time_utils import to_utc_z


class SaleRecord(db.Model):
    """
    Append-only sales history row written after a successful claim.

    One row per order line; the matching stock decrement happens on the
    vendor's pricing entry in the same transaction.
    """
    __tablename__ = "sale_records"
    __table_args__ = (
        db.Index("ix_sale_records_vendor_sold", "vendor_id", "sold_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    vendor_id = db.Column(db.Integer, db.ForeignKey("vendors.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    variant_id = db.Column(db.Integer, db.ForeignKey("product_variants.id"), nullable=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=True, index=True)

    sale_type = db.Column(db.String(16), nullable=False, default="WEBSITE")
    quantity = db.Column(db.Integer, nullable=False)
    purchase_price_cents = db.Column(db.Integer, nullable=False)
    total_purchase_cents = db.Column(db.Integer, nullable=False)
    selling_price_cents = db.Column(db.Integer, nullable=True)
    total_selling_cents = db.Column(db.Integer, nullable=True)
    profit_cents = db.Column(db.Integer, nullable=True)

    sold_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "vendor_id": self.vendor_id,
            "product_id": self.product_id,
            "variant_id": self.variant_id,
            "order_id": self.order_id,
            "sale_type": self.sale_type,
            "quantity": self.quantity,
            "purchase_price_cents": self.purchase_price_cents,
            "total_purchase_cents": self.total_purchase_cents,
            "selling_price_cents": self.selling_price_cents,
            "total_selling_cents": self.total_selling_cents,
            "profit_cents": self.profit_cents,
            "sold_at": to_utc_z(self.sold_at),
        }
