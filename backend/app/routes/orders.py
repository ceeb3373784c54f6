# Overview: Flask API routes for customer and vendor order operations; parses input and returns JSON responses.

"""
Order Routes

Customer side (X-Customer-Id):
- POST /api/orders                  place an order (routed at creation)
- GET  /api/orders                  own orders
- GET  /api/orders/<id>             one own order
- POST /api/orders/<id>/cancel      cancel while still unclaimed

Vendor side (X-Vendor-Id):
- GET  /api/vendor/orders                 orders assigned to the vendor
- GET  /api/vendor/orders/claimable       open orders the vendor may claim
- GET  /api/vendor/orders/<id>            one order with earnings
- POST /api/vendor/orders/<id>/claim      first-come-first-serve claim
- PUT  /api/vendor/orders/<id>/status     advance fulfillment status

Domain errors map to their own status code (400/403/404/409) with
{"error", "details"}; anything else is logged and returned as 500.
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_customer, require_vendor
from ..services import acceptance_service, fulfillment_service, routing_service
from ..validation import DomainError, parse_address, parse_order_lines


orders_bp = Blueprint("orders", __name__, url_prefix="/api/orders")
vendor_orders_bp = Blueprint("vendor_orders", __name__, url_prefix="/api/vendor/orders")


def _error_response(e: DomainError):
    return jsonify({"error": str(e), "details": e.details}), e.status_code


@orders_bp.post("")
@require_customer
def create_order_route():
    """
    Place an order.

    Request body:
    {
        "items": [{"product_id": 1, "quantity": 2, "variant_id": null}],
        "address": {"street": "...", "city": "...", "state": "...", "pincode": "..."}
    }

    Returns:
        201 with the order (PENDING for prime orders, ACCEPTED for regular ones)
    """
    data = request.get_json(silent=True) or {}

    try:
        lines = parse_order_lines(data.get("items"))
        address = parse_address(data.get("address"))
        order = routing_service.create_order(
            customer_id=g.customer_id,
            lines=lines,
            address=address,
        )
        return jsonify({"order": order.to_dict()}), 201
    except DomainError as e:
        return _error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create order")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.get("")
@require_customer
def list_orders_route():
    orders = routing_service.list_customer_orders(g.customer_id)
    return jsonify({"orders": [o.to_dict() for o in orders], "count": len(orders)})


@orders_bp.get("/<int:order_id>")
@require_customer
def get_order_route(order_id: int):
    try:
        order = routing_service.get_customer_order(order_id, g.customer_id)
        return jsonify({"order": order.to_dict()})
    except DomainError as e:
        return _error_response(e)


@orders_bp.post("/<int:order_id>/cancel")
@require_customer
def cancel_order_route(order_id: int):
    """
    Cancel an order that no vendor has claimed yet.

    Returns 409 if a vendor claimed it first, 400 once it is past PENDING.
    """
    try:
        order = fulfillment_service.cancel_order(order_id, g.customer_id)
        return jsonify({"order": order.to_dict()})
    except DomainError as e:
        return _error_response(e)
    except Exception:
        current_app.logger.exception("Failed to cancel order")
        return jsonify({"error": "Internal server error"}), 500


@vendor_orders_bp.get("")
@require_vendor
def list_vendor_orders_route():
    """
    Orders assigned to the calling vendor.

    Query parameters:
    - status: Optional status filter (e.g., ACCEPTED)
    """
    status = request.args.get("status")
    try:
        orders = fulfillment_service.list_vendor_orders(g.vendor_id, status=status)
        return jsonify({"orders": [o.to_dict() for o in orders], "count": len(orders)})
    except DomainError as e:
        return _error_response(e)


@vendor_orders_bp.get("/claimable")
@require_vendor
def list_claimable_orders_route():
    """
    Open orders the calling vendor may claim, with per-line pricing and earnings.

    Returns an empty list for unknown or unapproved vendors.
    """
    try:
        views = acceptance_service.list_claimable_orders(g.vendor_id)
        return jsonify({"orders": [v.to_dict() for v in views], "count": len(views)})
    except Exception:
        current_app.logger.exception("Failed to list claimable orders")
        return jsonify({"error": "Internal server error"}), 500


@vendor_orders_bp.get("/<int:order_id>")
@require_vendor
def get_vendor_order_route(order_id: int):
    try:
        view = acceptance_service.get_order_for_vendor(order_id, g.vendor_id)
        return jsonify({"order": view.to_dict()})
    except DomainError as e:
        return _error_response(e)


@vendor_orders_bp.post("/<int:order_id>/claim")
@require_vendor
def claim_order_route(order_id: int):
    """
    Claim an open order.

    Returns:
        200 with the claimed order, repriced with the vendor's purchase prices
        409 when another vendor claimed it first (do not retry)
        403 when the vendor is not eligible, 400 when a product is unavailable
    """
    try:
        order = acceptance_service.claim_order(order_id, g.vendor_id)
        return jsonify({"order": order.to_dict()})
    except DomainError as e:
        return _error_response(e)
    except Exception:
        current_app.logger.exception("Failed to claim order")
        return jsonify({"error": "Internal server error"}), 500


@vendor_orders_bp.put("/<int:order_id>/status")
@require_vendor
def update_order_status_route(order_id: int):
    """
    Advance an assigned order.

    Request body:
    {"status": "PACKED"}   // PACKED | PICKED_UP | IN_TRANSIT | DELIVERED | REJECTED
    """
    data = request.get_json(silent=True) or {}
    status = data.get("status")
    if not status or not isinstance(status, str):
        return jsonify({"error": "status is required"}), 400

    try:
        order = fulfillment_service.update_order_status(order_id, g.vendor_id, status.strip().upper())
        return jsonify({"order": order.to_dict()})
    except DomainError as e:
        return _error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update order status")
        return jsonify({"error": "Internal server error"}), 500
