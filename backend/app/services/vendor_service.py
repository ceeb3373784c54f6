# Overview: Service-layer operations for the vendor directory; encapsulates business logic and database work.

"""
Vendor Directory Service

WHY: Routing needs the one SHOP fulfiller and acceptance needs each vendor's
approval state, class and handled brands. Everything vendor-shaped goes
through here so the other services never query Vendor rows ad hoc.

FULFILLER RESOLUTION:
- FULFILLER_VENDOR_ID (config) names the SHOP vendor explicitly.
- Without it, exactly one approved SHOP vendor must exist; zero or several
  is reported as NoFulfillerAvailable rather than picking one at random.
"""

from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..models import Brand, Vendor
from ..models.vendors import VENDOR_CLASSES, VENDOR_CLASS_PRIME, VENDOR_CLASS_SHOP
from ..validation import NotFoundError, ValidationError
from app.time_utils import utcnow


class VendorNotFoundError(NotFoundError):
    """Raised when a vendor is not found."""
    pass


class VendorValidationError(ValidationError):
    """Raised when vendor data fails validation."""
    pass


class FulfillerUnavailableError(NotFoundError):
    """No approved SHOP-class fulfiller can be resolved."""
    pass


def get_vendor(vendor_id: int) -> Vendor:
    vendor = db.session.get(Vendor, vendor_id)
    if vendor is None:
        raise VendorNotFoundError("Vendor not found", details={"vendor_id": vendor_id})
    return vendor


def find_vendor(vendor_id: int) -> Vendor | None:
    return db.session.get(Vendor, vendor_id)


def get_approved_fulfiller(vendor_class: str = VENDOR_CLASS_SHOP, fulfiller_vendor_id: int | None = None) -> Vendor:
    """
    Resolve the approved fulfiller for a vendor class.

    Args:
        vendor_class: Only SHOP has a designated fulfiller today
        fulfiller_vendor_id: Explicit id; defaults to FULFILLER_VENDOR_ID

    Raises:
        FulfillerUnavailableError: configured vendor missing/unapproved/wrong
            class, or the directory holds zero or several approved candidates
    """
    if fulfiller_vendor_id is None:
        fulfiller_vendor_id = current_app.config.get("FULFILLER_VENDOR_ID")

    if fulfiller_vendor_id is not None:
        vendor = db.session.get(Vendor, fulfiller_vendor_id)
        if vendor is None or vendor.vendor_class != vendor_class or not vendor.is_approved:
            raise FulfillerUnavailableError(
                "Configured fulfiller is not an approved vendor of the required class",
                details={"vendor_id": fulfiller_vendor_id, "vendor_class": vendor_class},
            )
        return vendor

    candidates = (
        db.session.query(Vendor)
        .filter(Vendor.vendor_class == vendor_class, Vendor.is_approved.is_(True))
        .order_by(Vendor.id)
        .limit(2)
        .all()
    )
    if not candidates:
        raise FulfillerUnavailableError(
            "No approved fulfiller available",
            details={"vendor_class": vendor_class},
        )
    if len(candidates) > 1:
        raise FulfillerUnavailableError(
            "Several approved fulfillers found; set FULFILLER_VENDOR_ID",
            details={"vendor_class": vendor_class, "vendor_ids": [v.id for v in candidates]},
        )
    return candidates[0]


def create_vendor(
    *,
    name: str,
    vendor_class: str,
    brand_ids: list[int] | None = None,
    pickup_pincode: str | None = None,
    approved: bool = False,
) -> Vendor:
    """
    Register a vendor. New vendors start unapproved unless `approved` is set.

    Raises:
        VendorValidationError: blank name, unknown class, brands on a SHOP
            vendor, or unknown brand ids
    """
    if not name or not name.strip():
        raise VendorValidationError("Vendor name is required")

    vendor_class = (vendor_class or "").strip().upper()
    if vendor_class not in VENDOR_CLASSES:
        raise VendorValidationError(
            f"vendor_class must be one of: {', '.join(sorted(VENDOR_CLASSES))}"
        )

    vendor = Vendor(
        name=name.strip(),
        vendor_class=vendor_class,
        pickup_pincode=pickup_pincode,
        is_approved=False,
    )
    if brand_ids:
        if vendor_class != VENDOR_CLASS_PRIME:
            raise VendorValidationError("Only PRIME vendors declare handled brands")
        vendor.brands = _load_brands(brand_ids)

    if approved:
        vendor.is_approved = True
        vendor.approved_at = utcnow()

    db.session.add(vendor)
    db.session.commit()
    return vendor


def approve_vendor(vendor_id: int) -> Vendor:
    vendor = get_vendor(vendor_id)
    if not vendor.is_approved:
        vendor.is_approved = True
        vendor.approved_at = utcnow()
        db.session.commit()
    return vendor


def set_vendor_brands(vendor_id: int, brand_ids: list[int]) -> Vendor:
    """Replace the brand set of a PRIME vendor. An empty list clears it."""
    vendor = get_vendor(vendor_id)
    if vendor.vendor_class != VENDOR_CLASS_PRIME:
        raise VendorValidationError("Only PRIME vendors declare handled brands")

    vendor.brands = _load_brands(brand_ids) if brand_ids else []
    db.session.commit()
    return vendor


def list_vendors(*, vendor_class: str | None = None, approved_only: bool = False) -> list[Vendor]:
    query = db.session.query(Vendor)
    if vendor_class:
        query = query.filter(Vendor.vendor_class == vendor_class.upper())
    if approved_only:
        query = query.filter(Vendor.is_approved.is_(True))
    return query.order_by(Vendor.id).all()


def _load_brands(brand_ids: list[int]) -> list[Brand]:
    wanted = set(brand_ids)
    brands = db.session.query(Brand).filter(Brand.id.in_(wanted)).all()
    missing = wanted - {b.id for b in brands}
    if missing:
        raise VendorValidationError("Unknown brand ids", details={"brand_ids": sorted(missing)})
    return brands
