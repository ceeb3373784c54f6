from __future__ import annotations

from ..extensions import db
from app.time_utils import to_utc_z


VENDOR_CLASS_PRIME = "PRIME"
VENDOR_CLASS_SHOP = "SHOP"
VENDOR_CLASSES = {VENDOR_CLASS_PRIME, VENDOR_CLASS_SHOP}


vendor_brands = db.Table(
    "vendor_brands",
    db.Column("vendor_id", db.Integer, db.ForeignKey("vendors.id"), primary_key=True),
    db.Column("brand_id", db.Integer, db.ForeignKey("brands.id"), primary_key=True),
)


class Vendor(db.Model):
    """
    Fulfilling vendor.

    PRIME vendors claim prime-class orders first-come-first-serve, limited to
    the brands they handle (an empty brand set means any prime product).
    The SHOP vendor is the operator's own channel; every regular order is
    pre-assigned to it at creation.
    """
    __tablename__ = "vendors"
    __table_args__ = (
        db.Index("ix_vendors_class_approved", "vendor_class", "is_approved"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    vendor_class = db.Column(db.String(16), nullable=False)
    is_approved = db.Column(db.Boolean, nullable=False, default=False)
    approved_at = db.Column(db.DateTime(timezone=True), nullable=True)
    pickup_pincode = db.Column(db.String(16), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    brands = db.relationship("Brand", secondary=vendor_brands, lazy="selectin", order_by="Brand.id")

    def __repr__(self) -> str:
        return f"<Vendor id={self.id} class={self.vendor_class} approved={self.is_approved}>"

    @property
    def is_prime(self) -> bool:
        return self.vendor_class == VENDOR_CLASS_PRIME

    @property
    def brand_ids(self) -> set[int]:
        return {b.id for b in self.brands}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "vendor_class": self.vendor_class,
            "is_approved": self.is_approved,
            "approved_at": to_utc_z(self.approved_at) if self.approved_at else None,
            "pickup_pincode": self.pickup_pincode,
            "brand_ids": sorted(self.brand_ids),
            "created_at": to_utc_z(self.created_at),
        }


class VendorProductPricing(db.Model):
    """
    Per-vendor cost terms and stock for one product.

    INVARIANTS:
    - At most one row per (vendor_id, product_id).
    - purchase_price_cents is derived from the product's current mrp and
      purchase_percentage; pricing_service re-derives it when either changes.
    - available_stock never goes negative (decrements are conditional).
    """
    __tablename__ = "vendor_product_pricing"
    __table_args__ = (
        db.UniqueConstraint("vendor_id", "product_id", name="uq_vendor_pricing_vendor_product"),
        db.Index("ix_vendor_pricing_vendor_active", "vendor_id", "is_active"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    vendor_id = db.Column(db.Integer, db.ForeignKey("vendors.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    purchase_percentage = db.Column(db.Float, nullable=False)
    purchase_price_cents = db.Column(db.Integer, nullable=False, default=0)
    available_stock = db.Column(db.Integer, nullable=False, default=0)
    total_sold_website = db.Column(db.Integer, nullable=False, default=0)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    vendor = db.relationship("Vendor", backref=db.backref("pricing_entries", lazy=True))
    product = db.relationship("Product")
    variant_stock = db.relationship(
        "VendorVariantStock",
        back_populates="entry",
        order_by="VendorVariantStock.variant_id",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return (
            f"<VendorProductPricing vendor_id={self.vendor_id} product_id={self.product_id} "
            f"active={self.is_active} stock={self.available_stock}>"
        )

    def stock_for_variant(self, variant_id: int) -> "VendorVariantStock | None":
        for row in self.variant_stock:
            if row.variant_id == variant_id:
                return row
        return None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "vendor_id": self.vendor_id,
            "product_id": self.product_id,
            "purchase_percentage": self.purchase_percentage,
            "purchase_price_cents": self.purchase_price_cents,
            "available_stock": self.available_stock,
            "total_sold_website": self.total_sold_website,
            "is_active": self.is_active,
            "variant_stock": [row.to_dict() for row in self.variant_stock],
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class VendorVariantStock(db.Model):
    """Stock/activation of one product variant at one vendor, mirroring ProductVariant."""
    __tablename__ = "vendor_variant_stock"
    __table_args__ = (
        db.UniqueConstraint("entry_id", "variant_id", name="uq_vendor_variant_stock_entry_variant"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    entry_id = db.Column(db.Integer, db.ForeignKey("vendor_product_pricing.id"), nullable=False, index=True)
    variant_id = db.Column(db.Integer, db.ForeignKey("product_variants.id"), nullable=False, index=True)
    available_stock = db.Column(db.Integer, nullable=False, default=0)
    total_sold_website = db.Column(db.Integer, nullable=False, default=0)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    entry = db.relationship("VendorProductPricing", back_populates="variant_stock")

    def to_dict(self) -> dict:
        return {
            "variant_id": self.variant_id,
            "available_stock": self.available_stock,
            "total_sold_website": self.total_sold_website,
            "is_active": self.is_active,
        }
