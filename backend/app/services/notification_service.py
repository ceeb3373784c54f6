# Overview: Best-effort outbound notifications; the delivery channel itself is external.

"""
Notification Sink

Fire-and-forget events for vendors and customers (new order available,
order claimed, status changed, order cancelled). Delivery (WebSocket, push,
email) is owned by an external service; this module only hands events to
whichever sink the app was configured with.

RULES:
- emit() never raises. A failing sink is logged and the caller carries on.
- No retries or backoff here; redelivery is the sink's concern.
"""

from __future__ import annotations

import threading

from flask import current_app

from ..extensions import NOTIFICATION_SINK_KEY


ORDER_AVAILABLE = "order.available"
ORDER_CLAIMED = "order.claimed"
ORDER_STATUS_CHANGED = "order.status_changed"
ORDER_CANCELLED = "order.cancelled"


class NotificationSink:
    """Interface of the external notification channel."""

    def emit(self, event_type: str, payload: dict) -> None:
        raise NotImplementedError


class LoggingNotificationSink(NotificationSink):
    """Default sink: writes each event to the application log."""

    def emit(self, event_type: str, payload: dict) -> None:
        current_app.logger.info("notification %s %s", event_type, payload)


class InMemoryNotificationSink(NotificationSink):
    """Keeps events in memory; for local runs and tests."""

    def __init__(self):
        self._lock = threading.Lock()
        self.events: list[tuple[str, dict]] = []

    def emit(self, event_type: str, payload: dict) -> None:
        with self._lock:
            self.events.append((event_type, dict(payload)))

    def of_type(self, event_type: str) -> list[dict]:
        with self._lock:
            return [payload for kind, payload in self.events if kind == event_type]


def get_sink() -> NotificationSink:
    sink = current_app.extensions.get(NOTIFICATION_SINK_KEY)
    if sink is None:
        sink = LoggingNotificationSink()
        current_app.extensions[NOTIFICATION_SINK_KEY] = sink
    return sink


def emit(event_type: str, payload: dict, *, sink: NotificationSink | None = None) -> bool:
    """
    Hand one event to the sink. Returns False (after logging) if the sink failed.
    """
    target = sink if sink is not None else get_sink()
    try:
        target.emit(event_type, payload)
        return True
    except Exception:
        current_app.logger.exception("Failed to emit notification %s", event_type)
        return False
