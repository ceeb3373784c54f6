# Overview: Flask API routes for catalog maintenance; parses input and returns JSON responses.

"""
Catalog Routes

SECURITY: All routes require the X-Admin-Id header.

Price-term changes re-derive product/variant prices; an mrp change on a plain
product also re-prices every vendor entry of that product.
"""

from flask import Blueprint, request, jsonify, current_app

from ..decorators import require_admin
from ..services import catalog_service
from ..validation import DomainError, ValidationError, coerce_positive_int


catalog_bp = Blueprint("catalog", __name__, url_prefix="/api/catalog")


def _error_response(e: DomainError):
    return jsonify({"error": str(e), "details": e.details}), e.status_code


def _optional_bool(data: dict, field: str) -> bool | None:
    value = data.get(field)
    if value is not None and not isinstance(value, bool):
        raise ValidationError(f"{field} must be a boolean")
    return value


@catalog_bp.post("/brands")
@require_admin
def create_brand_route():
    """Request body: {"name": "Acme"}"""
    data = request.get_json(silent=True) or {}
    try:
        brand = catalog_service.create_brand(data.get("name") or "")
        return jsonify({"brand": brand.to_dict()}), 201
    except DomainError as e:
        return _error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create brand")
        return jsonify({"error": "Internal server error"}), 500


@catalog_bp.post("/products")
@require_admin
def create_product_route():
    """
    Create a plain or variant product.

    Request body:
    {
        "name": "Blender",               // required
        "brand_id": 1,                   // required
        "is_prime": true,                // optional, default false
        "mrp_cents": 50000,              // plain products
        "selling_percentage": 90,        // plain products
        "purchase_percentage": 70,       // optional default for vendor entries
        "variants": [                    // variant products instead of mrp/selling
            {"label": "2-slice", "mrp_cents": 15000, "selling_percentage": 90, "purchase_percentage": 65}
        ]
    }
    """
    data = request.get_json(silent=True) or {}
    variants = data.get("variants")
    if variants is not None and (
        not isinstance(variants, list) or not all(isinstance(v, dict) for v in variants)
    ):
        return jsonify({"error": "variants must be a list of objects"}), 400

    try:
        product = catalog_service.create_product(
            name=data.get("name") or "",
            brand_id=coerce_positive_int(data.get("brand_id"), "brand_id"),
            is_prime=bool(_optional_bool(data, "is_prime")),
            mrp_cents=data.get("mrp_cents"),
            selling_percentage=data.get("selling_percentage"),
            purchase_percentage=data.get("purchase_percentage"),
            variants=variants,
            description=data.get("description"),
        )
        return jsonify({"product": product.to_dict()}), 201
    except DomainError as e:
        return _error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create product")
        return jsonify({"error": "Internal server error"}), 500


@catalog_bp.put("/products/<int:product_id>/terms")
@require_admin
def update_product_terms_route(product_id: int):
    """
    Change a plain product's price terms.

    Request body (all optional):
    {"mrp_cents": 52000, "selling_percentage": 88, "purchase_percentage": 68}
    """
    data = request.get_json(silent=True) or {}
    try:
        product = catalog_service.update_price_terms(
            product_id,
            mrp_cents=data.get("mrp_cents"),
            selling_percentage=data.get("selling_percentage"),
            purchase_percentage=data.get("purchase_percentage"),
        )
        return jsonify({"product": product.to_dict()})
    except DomainError as e:
        return _error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update product terms")
        return jsonify({"error": "Internal server error"}), 500


@catalog_bp.put("/variants/<int:variant_id>")
@require_admin
def update_variant_route(variant_id: int):
    """
    Change a variant's price terms or activation.

    Request body (all optional):
    {"mrp_cents": 16000, "selling_percentage": 90, "purchase_percentage": 65, "is_active": false}
    """
    data = request.get_json(silent=True) or {}
    try:
        variant = catalog_service.update_variant_terms(
            variant_id,
            mrp_cents=data.get("mrp_cents"),
            selling_percentage=data.get("selling_percentage"),
            purchase_percentage=data.get("purchase_percentage"),
            is_active=_optional_bool(data, "is_active"),
        )
        return jsonify({"variant": variant.to_dict()})
    except DomainError as e:
        return _error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update variant")
        return jsonify({"error": "Internal server error"}), 500


@catalog_bp.put("/products/<int:product_id>/active")
@require_admin
def set_product_active_route(product_id: int):
    """Request body: {"is_active": false}"""
    data = request.get_json(silent=True) or {}
    try:
        is_active = _optional_bool(data, "is_active")
        if is_active is None:
            raise ValidationError("is_active is required")
        product = catalog_service.set_product_active(product_id, is_active)
        return jsonify({"product": product.to_dict()})
    except DomainError as e:
        return _error_response(e)
    except Exception:
        current_app.logger.exception("Failed to change product activation")
        return jsonify({"error": "Internal server error"}), 500
