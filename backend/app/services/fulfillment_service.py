# Overview: Service-layer operations for assigned orders; vendor status updates and customer cancellation.

from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..models import Order
from ..validation import ConflictError, NotFoundError
from app.time_utils import utcnow
from . import notification_service
from .acceptance_service import AlreadyClaimed, OrderAccessDenied, OrderNotFound
from .concurrency import compare_and_swap
from .lifecycle_service import (
    CANCELLED,
    PENDING,
    VENDOR_DRIVEN_STATUSES,
    LifecycleError,
    require_transition,
    validate_status,
)
from .notification_service import NotificationSink


class ConcurrentStatusChange(ConflictError):
    """Raised when the order moved between the read and the conditional write."""
    pass


def list_vendor_orders(vendor_id: int, *, status: str | None = None) -> list[Order]:
    """Orders assigned to a vendor, newest first, optionally filtered by status."""
    query = db.session.query(Order).filter(Order.assigned_vendor_id == vendor_id)
    if status is not None:
        validate_status(status)
        query = query.filter(Order.status == status)
    return query.order_by(Order.created_at.desc(), Order.id.desc()).all()


def update_order_status(
    order_id: int,
    vendor_id: int,
    new_status: str,
    *,
    sink: NotificationSink | None = None,
) -> Order:
    """
    Move an assigned order one step along the fulfillment path.

    Only the assigned vendor may do this. The write is conditional on the
    status the caller saw, so two concurrent updates cannot both apply.

    Raises:
        OrderNotFound: no such order
        OrderAccessDenied: order not assigned to this vendor
        LifecycleError: not a vendor-driven status, or no such transition
        ConcurrentStatusChange: the order changed under us
    """
    validate_status(new_status)
    if new_status not in VENDOR_DRIVEN_STATUSES:
        raise LifecycleError(
            f"Vendors cannot set status {new_status}",
            details={"allowed": sorted(VENDOR_DRIVEN_STATUSES)},
        )

    order = db.session.get(Order, order_id)
    if order is None:
        raise OrderNotFound("Order not found", details={"order_id": order_id})
    if order.assigned_vendor_id != vendor_id:
        raise OrderAccessDenied("Order not assigned to this vendor", details={"order_id": order_id})

    previous = order.status
    require_transition(previous, new_status)

    changed = compare_and_swap(
        Order,
        pk=order.id,
        expected={"status": previous, "assigned_vendor_id": vendor_id},
        values={"status": new_status, "status_changed_at": utcnow()},
    )
    if changed == 0:
        db.session.rollback()
        raise ConcurrentStatusChange(
            "Order status changed concurrently",
            details={"order_id": order_id, "expected_status": previous},
        )
    db.session.commit()

    current_app.logger.info("Order %s moved %s -> %s by vendor %s", order_id, previous, new_status, vendor_id)

    notification_service.emit(
        notification_service.ORDER_STATUS_CHANGED,
        {
            "order_id": order_id,
            "vendor_id": vendor_id,
            "from_status": previous,
            "to_status": new_status,
            "customer_id": order.customer_id,
        },
        sink=sink,
    )
    return order


def cancel_order(order_id: int, customer_id: int, *, sink: NotificationSink | None = None) -> Order:
    """
    Customer cancellation of an order nobody has claimed yet.

    Races against claims on the same conditional row update: whichever
    write lands first wins, the other sees zero rows.
    """
    order = db.session.get(Order, order_id)
    if order is None or order.customer_id != customer_id:
        raise NotFoundError("Order not found", details={"order_id": order_id})

    if order.status != PENDING or order.assigned_vendor_id is not None:
        require_transition(order.status, CANCELLED)

    changed = compare_and_swap(
        Order,
        pk=order.id,
        expected={"status": PENDING, "assigned_vendor_id": None},
        values={"status": CANCELLED, "status_changed_at": utcnow()},
    )
    if changed == 0:
        db.session.rollback()
        raise AlreadyClaimed(
            "Order was claimed before it could be cancelled",
            details={"order_id": order_id},
        )
    db.session.commit()

    current_app.logger.info("Order %s cancelled by customer %s", order_id, customer_id)

    notification_service.emit(
        notification_service.ORDER_CANCELLED,
        {"order_id": order_id, "customer_id": customer_id},
        sink=sink,
    )
    return order
