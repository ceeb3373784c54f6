from __future__ import annotations

from ..extensions import db
from app.time_utils import to_utc_z


class Order(db.Model):
    """
    Customer order routed to exactly one fulfilling vendor.

    ASSIGNMENT: Regular orders are created ACCEPTED and pre-assigned to the
    SHOP vendor. Prime orders are created PENDING with no assignee and are
    claimed by a single PRIME vendor through a conditional UPDATE on
    (status, assigned_vendor_id); see acceptance_service.claim_order.

    Orders are never deleted; CANCELLED/REJECTED/DELIVERED are terminal.
    """
    __tablename__ = "orders"
    __table_args__ = (
        db.Index("ix_orders_status_prime_assigned", "status", "is_prime", "assigned_vendor_id"),
        db.Index("ix_orders_customer_created", "customer_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    # Customers live in the external identity service
    customer_id = db.Column(db.Integer, nullable=False)

    status = db.Column(db.String(16), nullable=False, default="PENDING", index=True)
    is_prime = db.Column(db.Boolean, nullable=False, default=False)
    assigned_vendor_id = db.Column(db.Integer, db.ForeignKey("vendors.id"), nullable=True, index=True)

    # Totals in cents, frozen alongside the line snapshots
    total_cents = db.Column(db.Integer, nullable=False, default=0)
    total_purchase_cents = db.Column(db.Integer, nullable=False, default=0)
    total_profit_cents = db.Column(db.Integer, nullable=False, default=0)

    delivery_street = db.Column(db.String(255), nullable=False)
    delivery_city = db.Column(db.String(120), nullable=False)
    delivery_state = db.Column(db.String(120), nullable=False)
    delivery_pincode = db.Column(db.String(16), nullable=False, index=True)

    claimed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    status_changed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    version_id = db.Column(db.Integer, nullable=False, default=1)

    assigned_vendor = db.relationship("Vendor", foreign_keys=[assigned_vendor_id])
    items = db.relationship(
        "OrderItem",
        back_populates="order",
        order_by="OrderItem.line_number",
        cascade="all, delete-orphan",
    )
    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Order id={self.id} status={self.status} prime={self.is_prime} vendor={self.assigned_vendor_id}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "customer_id": self.customer_id,
            "status": self.status,
            "is_prime": self.is_prime,
            "assigned_vendor_id": self.assigned_vendor_id,
            "total_cents": self.total_cents,
            "total_purchase_cents": self.total_purchase_cents,
            "total_profit_cents": self.total_profit_cents,
            "address": {
                "street": self.delivery_street,
                "city": self.delivery_city,
                "state": self.delivery_state,
                "pincode": self.delivery_pincode,
            },
            "items": [item.to_dict() for item in self.items],
            "claimed_at": to_utc_z(self.claimed_at) if self.claimed_at else None,
            "status_changed_at": to_utc_z(self.status_changed_at) if self.status_changed_at else None,
            "created_at": to_utc_z(self.created_at),
            "version_id": self.version_id,
        }


class OrderItem(db.Model):
    """Priced snapshot of one order line. Never recomputed after assignment/claim."""
    __tablename__ = "order_items"
    __table_args__ = (
        db.UniqueConstraint("order_id", "line_number", name="uq_order_items_order_line"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False, index=True)
    line_number = db.Column(db.Integer, nullable=False)

    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    variant_id = db.Column(db.Integer, db.ForeignKey("product_variants.id"), nullable=True)
    vendor_id = db.Column(db.Integer, db.ForeignKey("vendors.id"), nullable=True)

    quantity = db.Column(db.Integer, nullable=False)
    selling_price_cents = db.Column(db.Integer, nullable=False)
    purchase_price_cents = db.Column(db.Integer, nullable=False)
    subtotal_cents = db.Column(db.Integer, nullable=False)
    purchase_subtotal_cents = db.Column(db.Integer, nullable=False)
    profit_cents = db.Column(db.Integer, nullable=False)
    profit_percentage = db.Column(db.Float, nullable=False)

    order = db.relationship("Order", back_populates="items")
    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "line_number": self.line_number,
            "product_id": self.product_id,
            "variant_id": self.variant_id,
            "vendor_id": self.vendor_id,
            "quantity": self.quantity,
            "selling_price_cents": self.selling_price_cents,
            "purchase_price_cents": self.purchase_price_cents,
            "subtotal_cents": self.subtotal_cents,
            "purchase_subtotal_cents": self.purchase_subtotal_cents,
            "profit_cents": self.profit_cents,
            "profit_percentage": self.profit_percentage,
        }
