from __future__ import annotations

from ..extensions import db
from app.time_utils import to_utc_z


class Brand(db.Model):
    __tablename__ = "brands"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False, unique=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def __repr__(self) -> str:
        return f"<Brand id={self.id} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
        }


class Product(db.Model):
    """
    Catalog product.

    PRICING: A product is either plain (mrp/percentages on the row) or
    variant-based (has_variants=True, prices live on ProductVariant rows and
    the row-level price columns stay NULL). Never both.

    Derived columns (selling_price_cents, purchase_price_cents,
    discount_percentage) are written by pricing_service.derive_prices and
    are re-derived whenever mrp or a percentage changes.

    CLASS: is_prime products are only fulfilled by PRIME vendors authorized
    for the product's brand and never share an order with regular products.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.Index("ix_products_brand_active", "brand_id", "is_active"),
        db.Index("ix_products_prime", "is_prime"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    brand_id = db.Column(db.Integer, db.ForeignKey("brands.id"), nullable=False, index=True)

    is_prime = db.Column(db.Boolean, nullable=False, default=False)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    has_variants = db.Column(db.Boolean, nullable=False, default=False)

    # Authoritative storage in cents; percentages are 0-100
    mrp_cents = db.Column(db.Integer, nullable=True)
    selling_percentage = db.Column(db.Float, nullable=True)
    purchase_percentage = db.Column(db.Float, nullable=True, default=60.0)
    selling_price_cents = db.Column(db.Integer, nullable=True)
    purchase_price_cents = db.Column(db.Integer, nullable=True)
    discount_percentage = db.Column(db.Float, nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    brand = db.relationship("Brand", backref=db.backref("products", lazy=True))
    variants = db.relationship(
        "ProductVariant",
        back_populates="product",
        order_by="ProductVariant.id",
        cascade="all, delete-orphan",
    )
    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Product id={self.id} name={self.name!r} prime={self.is_prime}>"

    def active_variants(self) -> list["ProductVariant"]:
        return [v for v in self.variants if v.is_active]

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "brand_id": self.brand_id,
            "is_prime": self.is_prime,
            "is_active": self.is_active,
            "has_variants": self.has_variants,
            "mrp_cents": self.mrp_cents,
            "selling_percentage": self.selling_percentage,
            "purchase_percentage": self.purchase_percentage,
            "selling_price_cents": self.selling_price_cents,
            "purchase_price_cents": self.purchase_price_cents,
            "discount_percentage": self.discount_percentage,
            "variants": [v.to_dict() for v in self.variants],
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class ProductVariant(db.Model):
    """Weight/size variant with its own price terms."""
    __tablename__ = "product_variants"
    __table_args__ = (
        db.UniqueConstraint("product_id", "label", name="uq_product_variants_product_label"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    # Display weight/size, e.g. "500g" or "1l"
    label = db.Column(db.String(64), nullable=False)

    mrp_cents = db.Column(db.Integer, nullable=False)
    selling_percentage = db.Column(db.Float, nullable=False)
    purchase_percentage = db.Column(db.Float, nullable=False, default=60.0)
    selling_price_cents = db.Column(db.Integer, nullable=True)
    purchase_price_cents = db.Column(db.Integer, nullable=True)
    discount_percentage = db.Column(db.Float, nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    product = db.relationship("Product", back_populates="variants")

    def __repr__(self) -> str:
        return f"<ProductVariant id={self.id} product_id={self.product_id} label={self.label!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "label": self.label,
            "mrp_cents": self.mrp_cents,
            "selling_percentage": self.selling_percentage,
            "purchase_percentage": self.purchase_percentage,
            "selling_price_cents": self.selling_price_cents,
            "purchase_price_cents": self.purchase_price_cents,
            "discount_percentage": self.discount_percentage,
            "is_active": self.is_active,
        }
