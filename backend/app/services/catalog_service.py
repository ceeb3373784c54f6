# Overview: Service-layer operations for the catalog; encapsulates business logic and database work.

from __future__ import annotations

from ..extensions import db
from ..models import Brand, Product, ProductVariant
from ..validation import NotFoundError, ValidationError, coerce_percentage, coerce_price_cents
from .pricing_service import apply_derived_prices, reprice_product_entries


class ProductNotFoundError(NotFoundError):
    """Raised when a product is not found."""
    pass


class CatalogValidationError(ValidationError):
    """Raised when catalog data fails validation."""
    pass


def create_brand(name: str) -> Brand:
    if not name or not name.strip():
        raise CatalogValidationError("Brand name is required")

    name = name.strip()
    existing = db.session.query(Brand).filter_by(name=name).first()
    if existing:
        raise CatalogValidationError(f"Brand '{name}' already exists")

    brand = Brand(name=name, is_active=True)
    db.session.add(brand)
    db.session.commit()
    return brand


def create_product(
    *,
    name: str,
    brand_id: int,
    is_prime: bool = False,
    mrp_cents: int | None = None,
    selling_percentage: float | None = None,
    purchase_percentage: float | None = None,
    variants: list[dict] | None = None,
    description: str | None = None,
) -> Product:
    """
    Create a plain or a variant-based product.

    Plain products need mrp_cents and selling_percentage. Variant products
    pass `variants` (each with label, mrp_cents, selling_percentage and an
    optional purchase_percentage / is_active) and no row-level mrp or selling
    terms; their own purchase_percentage is the default for new vendor entries.

    Raises:
        CatalogValidationError: blank name, unknown brand, or both/neither
            pricing definitions supplied
    """
    if not name or not name.strip():
        raise CatalogValidationError("Product name is required")

    if db.session.get(Brand, brand_id) is None:
        raise CatalogValidationError("Brand not found", details={"brand_id": brand_id})

    has_row_terms = mrp_cents is not None or selling_percentage is not None
    if variants and has_row_terms:
        raise CatalogValidationError("A product is priced from variants or from its own mrp, not both")
    if not variants and (mrp_cents is None or selling_percentage is None):
        raise CatalogValidationError("mrp_cents and selling_percentage are required for products without variants")

    product = Product(
        name=name.strip(),
        description=description,
        brand_id=brand_id,
        is_prime=bool(is_prime),
        is_active=True,
        has_variants=bool(variants),
    )

    if variants:
        # Product-level default for new vendor entries; lines price per variant.
        product.purchase_percentage = (
            coerce_percentage(purchase_percentage, "purchase_percentage") if purchase_percentage is not None else None
        )
        for raw in variants:
            product.variants.append(_build_variant(raw))
    else:
        product.mrp_cents = coerce_price_cents(mrp_cents, "mrp_cents")
        product.selling_percentage = coerce_percentage(selling_percentage, "selling_percentage")
        product.purchase_percentage = coerce_percentage(
            60.0 if purchase_percentage is None else purchase_percentage,
            "purchase_percentage",
        )
        apply_derived_prices(product)

    db.session.add(product)
    db.session.commit()
    return product


def _build_variant(raw: dict) -> ProductVariant:
    label = (raw.get("label") or "").strip()
    if not label:
        raise CatalogValidationError("Variant label is required")
    if raw.get("mrp_cents") is None or raw.get("selling_percentage") is None:
        raise CatalogValidationError("Variant mrp_cents and selling_percentage are required")

    purchase_pct = raw.get("purchase_percentage")
    variant = ProductVariant(
        label=label,
        mrp_cents=coerce_price_cents(raw["mrp_cents"], "mrp_cents"),
        selling_percentage=coerce_percentage(raw["selling_percentage"], "selling_percentage"),
        purchase_percentage=coerce_percentage(60.0 if purchase_pct is None else purchase_pct, "purchase_percentage"),
        is_active=bool(raw.get("is_active", True)),
    )
    apply_derived_prices(variant)
    return variant


def get_product(product_id: int) -> Product:
    product = db.session.get(Product, product_id)
    if product is None:
        raise ProductNotFoundError("Product not found", details={"product_id": product_id})
    return product


def get_products(product_ids: list[int]) -> dict[int, Product]:
    """Load products by id; missing ids are simply absent from the result."""
    if not product_ids:
        return {}
    rows = db.session.query(Product).filter(Product.id.in_(set(product_ids))).all()
    return {p.id: p for p in rows}


def update_price_terms(
    product_id: int,
    *,
    mrp_cents: int | None = None,
    selling_percentage: float | None = None,
    purchase_percentage: float | None = None,
) -> Product:
    """
    Change a plain product's price terms and re-derive everything depending on them.

    An mrp change also re-prices every vendor entry of the product.
    """
    product = get_product(product_id)
    if product.has_variants:
        raise CatalogValidationError("Variant products are priced per variant")

    mrp_changed = False
    if mrp_cents is not None:
        new_mrp = coerce_price_cents(mrp_cents, "mrp_cents")
        mrp_changed = new_mrp != product.mrp_cents
        product.mrp_cents = new_mrp
    if selling_percentage is not None:
        product.selling_percentage = coerce_percentage(selling_percentage, "selling_percentage")
    if purchase_percentage is not None:
        product.purchase_percentage = coerce_percentage(purchase_percentage, "purchase_percentage")

    apply_derived_prices(product)
    if mrp_changed:
        reprice_product_entries(product)

    db.session.commit()
    return product


def update_variant_terms(
    variant_id: int,
    *,
    mrp_cents: int | None = None,
    selling_percentage: float | None = None,
    purchase_percentage: float | None = None,
    is_active: bool | None = None,
) -> ProductVariant:
    variant = db.session.get(ProductVariant, variant_id)
    if variant is None:
        raise NotFoundError("Variant not found", details={"variant_id": variant_id})

    if mrp_cents is not None:
        variant.mrp_cents = coerce_price_cents(mrp_cents, "mrp_cents")
    if selling_percentage is not None:
        variant.selling_percentage = coerce_percentage(selling_percentage, "selling_percentage")
    if purchase_percentage is not None:
        variant.purchase_percentage = coerce_percentage(purchase_percentage, "purchase_percentage")
    if is_active is not None:
        variant.is_active = bool(is_active)

    apply_derived_prices(variant)
    db.session.commit()
    return variant


def set_product_active(product_id: int, is_active: bool) -> Product:
    product = get_product(product_id)
    product.is_active = bool(is_active)
    db.session.commit()
    return product
