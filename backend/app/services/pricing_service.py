# Overview: Service-layer operations for the pricing store; derivation and per-vendor cost lookups.

"""
Pricing Store

Two concerns live here:

1. Derivation (pure): mrp + percentages -> selling price, purchase price,
   discount. Always recomputed from the current terms; nothing is cached
   across a change of mrp or percentage.

2. Vendor pricing entries: one VendorProductPricing row per (vendor,
   product) carrying the vendor's purchase percentage, derived purchase
   price, stock and activation flag, plus optional per-variant stock rows.

Reads are unlocked. A stale read only affects the advisory earnings shown in
listings; claim_order re-reads the entry when it reprices.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP

from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import Brand, Product, ProductVariant, VendorProductPricing, VendorVariantStock
from ..validation import NotFoundError, ValidationError, coerce_percentage
from .vendor_service import get_vendor


DEFAULT_PURCHASE_PERCENTAGE = 60.0


class PricingError(ValidationError):
    """Raised when pricing terms are invalid or an assignment is not allowed."""
    pass


class PricingEntryNotFoundError(NotFoundError):
    """Raised when a vendor has no pricing entry for a product."""
    pass


@dataclass(frozen=True)
class DerivedPrices:
    selling_price_cents: int | None
    purchase_price_cents: int | None
    discount_percentage: float | None


@dataclass(frozen=True)
class ReferencePrice:
    """Platform price for one product/variant: what the customer pays and the default cost."""
    selling_price_cents: int
    purchase_price_cents: int


@dataclass(frozen=True)
class VendorQuote:
    """A vendor's current terms for one product (or variant) at read time."""
    vendor_id: int
    product_id: int
    variant_id: int | None
    purchase_price_cents: int
    is_active: bool
    available_stock: int
    # Variant whose own stock row backs available_stock; None = entry-level stock.
    stock_variant_id: int | None = None

    @property
    def stock_key(self) -> tuple[int, int | None]:
        return (self.product_id, self.stock_variant_id)

    def can_fulfil(self, quantity: int) -> bool:
        return self.is_active and self.available_stock >= quantity


def percent_of(amount_cents: int, percentage: float) -> int:
    """amount * percentage / 100, rounded half-up to whole cents."""
    value = Decimal(amount_cents) * Decimal(str(percentage)) / Decimal(100)
    return int(value.quantize(Decimal(1), rounding=ROUND_HALF_UP))


def derive_prices(
    mrp_cents: int | None,
    selling_percentage: float | None,
    purchase_percentage: float | None,
) -> DerivedPrices:
    """
    Derive selling price, purchase price and discount from mrp and percentages.

    Missing inputs yield None for the dependent outputs. Discount is the
    percentage off mrp, rounded to two decimals.
    """
    if mrp_cents is None:
        return DerivedPrices(None, None, None)

    selling = None
    discount = None
    if selling_percentage is not None:
        selling = percent_of(mrp_cents, selling_percentage)
        if mrp_cents > 0:
            discount = round((mrp_cents - selling) / mrp_cents * 100, 2)

    purchase = None
    if purchase_percentage is not None:
        purchase = percent_of(mrp_cents, purchase_percentage)

    return DerivedPrices(selling, purchase, discount)


def apply_derived_prices(target: Product | ProductVariant) -> None:
    """Write derived columns onto a plain product or a variant from its own terms."""
    derived = derive_prices(target.mrp_cents, target.selling_percentage, target.purchase_percentage)
    target.selling_price_cents = derived.selling_price_cents
    target.purchase_price_cents = derived.purchase_price_cents
    target.discount_percentage = derived.discount_percentage


def reference_price(product: Product, variant: ProductVariant | None = None) -> ReferencePrice:
    """
    Platform reference price for a product line, derived from the current terms.

    Used for the customer-facing selling price and as the provisional / default
    purchase price when no vendor entry applies.
    """
    source = variant if variant is not None else product
    purchase_pct = source.purchase_percentage
    if purchase_pct is None:
        purchase_pct = DEFAULT_PURCHASE_PERCENTAGE

    derived = derive_prices(source.mrp_cents, source.selling_percentage, purchase_pct)
    return ReferencePrice(
        selling_price_cents=derived.selling_price_cents or 0,
        purchase_price_cents=derived.purchase_price_cents or 0,
    )


def get_entry(vendor_id: int, product_id: int) -> VendorProductPricing | None:
    return (
        db.session.query(VendorProductPricing)
        .filter_by(vendor_id=vendor_id, product_id=product_id)
        .first()
    )


def get_vendor_price(
    vendor_id: int,
    product: Product,
    variant: ProductVariant | None = None,
) -> VendorQuote | None:
    """
    Current purchase price, activation and stock of a vendor for a product line.

    Returns None when the vendor holds no entry for the product. For a variant
    line the price is the vendor's percentage of the variant's mrp, and the
    variant stock row (when present) overrides the entry-level stock/flag.
    """
    entry = get_entry(vendor_id, product.id)
    if entry is None:
        return None

    if variant is None:
        return VendorQuote(
            vendor_id=vendor_id,
            product_id=product.id,
            variant_id=None,
            purchase_price_cents=entry.purchase_price_cents,
            is_active=entry.is_active,
            available_stock=entry.available_stock,
        )

    row = entry.stock_for_variant(variant.id)
    return VendorQuote(
        vendor_id=vendor_id,
        product_id=product.id,
        variant_id=variant.id,
        purchase_price_cents=percent_of(variant.mrp_cents, entry.purchase_percentage),
        is_active=entry.is_active and (row.is_active if row is not None else True),
        available_stock=row.available_stock if row is not None else entry.available_stock,
        stock_variant_id=variant.id if row is not None else None,
    )


def _entry_purchase_price(product: Product, purchase_percentage: float) -> int:
    # Variant products have no row-level mrp; their price is per variant.
    if product.mrp_cents is None:
        return 0
    return percent_of(product.mrp_cents, purchase_percentage)


def ensure_entry(vendor_id: int, product: Product, *, commit: bool = False) -> VendorProductPricing:
    """
    Return the vendor's entry for a product, creating it lazily on first assignment.

    A new entry takes the product-level purchase percentage (the platform
    default for variant products), starts active with zero stock. Concurrent
    first assignments race on uq_vendor_pricing_vendor_product; the loser
    rolls back its savepoint and returns the winner's row.
    """
    entry = get_entry(vendor_id, product.id)
    if entry is not None:
        return entry

    purchase_pct = product.purchase_percentage
    if purchase_pct is None:
        purchase_pct = DEFAULT_PURCHASE_PERCENTAGE

    entry = VendorProductPricing(
        vendor_id=vendor_id,
        product_id=product.id,
        purchase_percentage=purchase_pct,
        purchase_price_cents=_entry_purchase_price(product, purchase_pct),
        available_stock=0,
        is_active=True,
    )
    try:
        with db.session.begin_nested():
            db.session.add(entry)
    except IntegrityError:
        entry = get_entry(vendor_id, product.id)
        if entry is None:
            raise
    if commit:
        db.session.commit()
    return entry


def upsert_entry(
    vendor_id: int,
    product: Product,
    *,
    purchase_percentage: float | None = None,
    available_stock: int | None = None,
    is_active: bool | None = None,
    commit: bool = True,
) -> VendorProductPricing:
    """
    Create or update the single (vendor, product) entry.

    Changing the percentage re-derives purchase_price_cents from the
    product's current mrp in the same write.
    """
    entry = ensure_entry(vendor_id, product)

    if purchase_percentage is not None:
        entry.purchase_percentage = coerce_percentage(purchase_percentage, "purchase_percentage")
        entry.purchase_price_cents = _entry_purchase_price(product, entry.purchase_percentage)

    if available_stock is not None:
        if available_stock < 0:
            raise PricingError("available_stock must be >= 0")
        entry.available_stock = available_stock

    if is_active is not None:
        entry.is_active = bool(is_active)

    db.session.flush()
    if commit:
        db.session.commit()
    return entry


def _load_product(product_id: int) -> Product:
    product = db.session.get(Product, product_id)
    if product is None:
        raise NotFoundError("Product not found", details={"product_id": product_id})
    return product


def _require_approved_vendor(vendor_id: int):
    vendor = get_vendor(vendor_id)
    if not vendor.is_approved:
        raise PricingError("Vendor not approved", details={"vendor_id": vendor_id})
    return vendor


def assign_product_to_vendor(
    *,
    vendor_id: int,
    product_id: int,
    purchase_percentage: float,
    available_stock: int = 0,
) -> VendorProductPricing:
    """
    Assign a product to an approved vendor with its own purchase percentage.

    Re-assigning an existing pair updates it in place and re-activates it.
    """
    _require_approved_vendor(vendor_id)
    product = _load_product(product_id)
    return upsert_entry(
        vendor_id,
        product,
        purchase_percentage=purchase_percentage,
        available_stock=available_stock,
        is_active=True,
    )


def update_entry(
    *,
    vendor_id: int,
    product_id: int,
    purchase_percentage: float | None = None,
    available_stock: int | None = None,
    is_active: bool | None = None,
) -> VendorProductPricing:
    if get_entry(vendor_id, product_id) is None:
        raise PricingEntryNotFoundError(
            "Vendor product pricing not found",
            details={"vendor_id": vendor_id, "product_id": product_id},
        )
    return upsert_entry(
        vendor_id,
        _load_product(product_id),
        purchase_percentage=purchase_percentage,
        available_stock=available_stock,
        is_active=is_active,
    )


def deactivate_entry(*, vendor_id: int, product_id: int) -> VendorProductPricing:
    """Soft-remove a product from a vendor; the row is kept for history."""
    return update_entry(vendor_id=vendor_id, product_id=product_id, is_active=False)


def set_variant_stock(
    *,
    vendor_id: int,
    product_id: int,
    variant_id: int,
    available_stock: int,
    is_active: bool = True,
) -> VendorVariantStock:
    entry = get_entry(vendor_id, product_id)
    if entry is None:
        raise PricingEntryNotFoundError(
            "Vendor product pricing not found",
            details={"vendor_id": vendor_id, "product_id": product_id},
        )

    variant = db.session.get(ProductVariant, variant_id)
    if variant is None or variant.product_id != product_id:
        raise PricingError("Variant does not belong to product", details={"variant_id": variant_id})
    if available_stock < 0:
        raise PricingError("available_stock must be >= 0")

    row = entry.stock_for_variant(variant_id)
    if row is None:
        row = VendorVariantStock(entry=entry, variant_id=variant_id)
        db.session.add(row)
    row.available_stock = available_stock
    row.is_active = is_active

    db.session.commit()
    return row


def list_vendor_entries(vendor_id: int, *, active_only: bool = False) -> list[VendorProductPricing]:
    query = db.session.query(VendorProductPricing).filter_by(vendor_id=vendor_id)
    if active_only:
        query = query.filter(VendorProductPricing.is_active.is_(True))
    return query.order_by(VendorProductPricing.created_at.desc(), VendorProductPricing.id.desc()).all()


def assign_brands_to_vendor(
    *,
    vendor_id: int,
    brand_ids: list[int],
    purchase_percentage: float,
    available_stock: int = 0,
) -> list[VendorProductPricing]:
    """
    Assign every active product of the given brands to a vendor in one go.

    Raises:
        PricingError: vendor unapproved, a brand unknown/inactive, or the
            brands have no active products
    """
    _require_approved_vendor(vendor_id)

    wanted = set(brand_ids)
    brands = (
        db.session.query(Brand)
        .filter(Brand.id.in_(wanted), Brand.is_active.is_(True))
        .all()
    )
    if len(brands) != len(wanted):
        raise PricingError("One or more brands not found or inactive", details={"brand_ids": sorted(wanted)})

    products = (
        db.session.query(Product)
        .filter(Product.brand_id.in_(wanted), Product.is_active.is_(True))
        .order_by(Product.id)
        .all()
    )
    if not products:
        raise PricingError("No active products found under selected brands")

    entries = [
        upsert_entry(
            vendor_id,
            product,
            purchase_percentage=purchase_percentage,
            available_stock=available_stock,
            is_active=True,
            commit=False,
        )
        for product in products
    ]
    db.session.commit()
    return entries


def reprice_product_entries(product: Product) -> int:
    """
    Re-derive purchase_price_cents of every vendor entry for a product.

    Called whenever the product's mrp changes so no entry keeps a price
    computed from an old mrp. Does not commit. Returns entries touched.
    """
    entries = db.session.query(VendorProductPricing).filter_by(product_id=product.id).all()
    for entry in entries:
        entry.purchase_price_cents = _entry_purchase_price(product, entry.purchase_percentage)
    return len(entries)
