# Overview: Flask API routes for vendor pricing management; parses input and returns JSON responses.

"""
Vendor Pricing Routes

SECURITY: All routes require the X-Admin-Id header. Vendors see their
prices through the order endpoints only.
"""

from flask import Blueprint, request, jsonify, current_app

from ..decorators import require_admin
from ..services import pricing_service
from ..validation import DomainError, ValidationError, coerce_int, coerce_positive_int


pricing_bp = Blueprint("vendor_pricing", __name__, url_prefix="/api/vendor-pricing")


def _error_response(e: DomainError):
    return jsonify({"error": str(e), "details": e.details}), e.status_code


def _optional_stock(data: dict, field: str = "available_stock") -> int | None:
    if data.get(field) is None:
        return None
    stock = coerce_int(data[field], field)
    if stock < 0:
        raise ValidationError(f"{field} must be >= 0")
    return stock


@pricing_bp.post("/assign")
@require_admin
def assign_product_route():
    """
    Assign a product to a vendor.

    Request body:
    {
        "vendor_id": 1,              // required, approved vendor
        "product_id": 10,            // required
        "purchase_percentage": 55,   // required, 0-100
        "available_stock": 20        // optional, default 0
    }
    """
    data = request.get_json(silent=True) or {}
    if data.get("purchase_percentage") is None:
        return jsonify({"error": "purchase_percentage is required"}), 400

    try:
        entry = pricing_service.assign_product_to_vendor(
            vendor_id=coerce_positive_int(data.get("vendor_id"), "vendor_id"),
            product_id=coerce_positive_int(data.get("product_id"), "product_id"),
            purchase_percentage=data["purchase_percentage"],
            available_stock=_optional_stock(data) or 0,
        )
        return jsonify({"entry": entry.to_dict()}), 201
    except DomainError as e:
        return _error_response(e)
    except Exception:
        current_app.logger.exception("Failed to assign product to vendor")
        return jsonify({"error": "Internal server error"}), 500


@pricing_bp.post("/assign-brands")
@require_admin
def assign_brands_route():
    """
    Assign every active product of the given brands to a vendor.

    Request body:
    {"vendor_id": 1, "brand_ids": [2, 3], "purchase_percentage": 55, "available_stock": 0}
    """
    data = request.get_json(silent=True) or {}
    brand_ids = data.get("brand_ids")
    if not isinstance(brand_ids, list) or not brand_ids:
        return jsonify({"error": "brand_ids must be a non-empty list"}), 400
    if data.get("purchase_percentage") is None:
        return jsonify({"error": "purchase_percentage is required"}), 400

    try:
        entries = pricing_service.assign_brands_to_vendor(
            vendor_id=coerce_positive_int(data.get("vendor_id"), "vendor_id"),
            brand_ids=[coerce_positive_int(b, "brand_ids") for b in brand_ids],
            purchase_percentage=data["purchase_percentage"],
            available_stock=_optional_stock(data) or 0,
        )
        return jsonify({"entries": [e.to_dict() for e in entries], "count": len(entries)}), 201
    except DomainError as e:
        return _error_response(e)
    except Exception:
        current_app.logger.exception("Failed to assign brands to vendor")
        return jsonify({"error": "Internal server error"}), 500


@pricing_bp.put("/<int:vendor_id>/<int:product_id>")
@require_admin
def update_entry_route(vendor_id: int, product_id: int):
    """
    Update a vendor's terms for one product.

    Request body (all optional):
    {"purchase_percentage": 50, "available_stock": 5, "is_active": true}
    """
    data = request.get_json(silent=True) or {}

    try:
        is_active = data.get("is_active")
        if is_active is not None and not isinstance(is_active, bool):
            raise ValidationError("is_active must be a boolean")

        entry = pricing_service.update_entry(
            vendor_id=vendor_id,
            product_id=product_id,
            purchase_percentage=data.get("purchase_percentage"),
            available_stock=_optional_stock(data),
            is_active=is_active,
        )
        return jsonify({"entry": entry.to_dict()})
    except DomainError as e:
        return _error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update vendor pricing")
        return jsonify({"error": "Internal server error"}), 500


@pricing_bp.put("/<int:vendor_id>/<int:product_id>/variants/<int:variant_id>")
@require_admin
def set_variant_stock_route(vendor_id: int, product_id: int, variant_id: int):
    data = request.get_json(silent=True) or {}

    try:
        stock = _optional_stock(data)
        if stock is None:
            raise ValidationError("available_stock is required")
        row = pricing_service.set_variant_stock(
            vendor_id=vendor_id,
            product_id=product_id,
            variant_id=variant_id,
            available_stock=stock,
            is_active=bool(data.get("is_active", True)),
        )
        return jsonify({"variant_stock": row.to_dict()})
    except DomainError as e:
        return _error_response(e)
    except Exception:
        current_app.logger.exception("Failed to set variant stock")
        return jsonify({"error": "Internal server error"}), 500


@pricing_bp.delete("/<int:vendor_id>/<int:product_id>")
@require_admin
def remove_entry_route(vendor_id: int, product_id: int):
    """Deactivate (soft-remove) a product from a vendor."""
    try:
        entry = pricing_service.deactivate_entry(vendor_id=vendor_id, product_id=product_id)
        return jsonify({"entry": entry.to_dict()})
    except DomainError as e:
        return _error_response(e)


@pricing_bp.get("/vendor/<int:vendor_id>")
@require_admin
def list_vendor_entries_route(vendor_id: int):
    """
    List a vendor's pricing entries.

    Query parameters:
    - active_only: Only active entries (default: false)
    """
    active_only = request.args.get("active_only", "false").lower() == "true"
    entries = pricing_service.list_vendor_entries(vendor_id, active_only=active_only)
    return jsonify({"entries": [e.to_dict() for e in entries], "count": len(entries)})
