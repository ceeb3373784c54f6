# Overview: Request decorators that establish the caller identity for API routes.

"""
Caller identity is established upstream (gateway / auth service) and forwarded
in trusted headers. These decorators only read and validate them:

- X-Customer-Id -> g.customer_id
- X-Vendor-Id   -> g.vendor_id
- X-Admin-Id    -> g.admin_id

A missing or non-integer header returns 401 before the route runs.
"""

from functools import wraps
from flask import request, jsonify, g


CUSTOMER_HEADER = "X-Customer-Id"
VENDOR_HEADER = "X-Vendor-Id"
ADMIN_HEADER = "X-Admin-Id"


def _header_id(name: str) -> int | None:
    raw = (request.headers.get(name) or "").strip()
    if not raw.isdigit():
        return None
    value = int(raw)
    return value if value > 0 else None


def _require_identity(header: str, attr: str, label: str):
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            identity = _header_id(header)
            if identity is None:
                return jsonify({"error": f"{label} authentication required"}), 401
            setattr(g, attr, identity)
            return f(*args, **kwargs)
        return decorated_function
    return decorator


require_customer = _require_identity(CUSTOMER_HEADER, "customer_id", "Customer")
require_vendor = _require_identity(VENDOR_HEADER, "vendor_id", "Vendor")

# Admin-only routes: pricing management.
require_admin = _require_identity(ADMIN_HEADER, "admin_id", "Admin")
