"""
Order acceptance tests.

Verifies:
- Claimable listings honour vendor class, brand set and active entries
- A claim reprices the order with the claiming vendor's purchase prices
- At most one claim per order; losers get AlreadyClaimed
- Sale recording and notifications are best-effort after the claim
- Post-claim status updates and customer cancellation
"""

import pytest

from app.models import Order, SaleRecord
from app.services import (
    acceptance_service, fulfillment_service, notification_service, pricing_service, routing_service, sales_service,
    vendor_service,
)
from app.services.acceptance_service import (
    AlreadyClaimed,
    OrderAccessDenied,
    OrderNotFound,
    ProductUnavailable,
    VendorNotEligible,
)
from app.services.lifecycle_service import InvalidStatusTransition, LifecycleError
from app.services.notification_service import NotificationSink
from app.validation import NotFoundError

from conftest import ADDRESS, assign, line


def place(product, quantity=1, customer_id=501, variant=None):
    return routing_service.create_order(
        customer_id=customer_id, lines=[line(product, quantity, variant=variant)], address=ADDRESS,
    )


class ExplodingSink(NotificationSink):
    def emit(self, event_type, payload):
        raise RuntimeError("sink down")


# =============================================================================
# CLAIMABLE LISTINGS
# =============================================================================


class TestClaimableListing:

    def test_brand_restricted_vendor(self, db_session, sink, acme_vendor, prime_product, globex_prime_product):
        """Acme-only vendor sees the Acme order and never the Globex one."""
        assign(acme_vendor, prime_product, 68)
        assign(acme_vendor, globex_prime_product, 68)
        acme_order = place(prime_product)
        place(globex_prime_product)

        views = acceptance_service.list_claimable_orders(acme_vendor.id)
        assert [v.order.id for v in views] == [acme_order.id]

    def test_brand_set_change_applies_to_listing(
        self, db_session, sink, acme_vendor, globex, prime_product, globex_prime_product
    ):
        assign(acme_vendor, prime_product, 68)
        assign(acme_vendor, globex_prime_product, 68)
        place(prime_product)
        globex_order = place(globex_prime_product)

        vendor_service.set_vendor_brands(acme_vendor.id, [globex.id])
        views = acceptance_service.list_claimable_orders(acme_vendor.id)
        assert [v.order.id for v in views] == [globex_order.id]

        # Clearing the set makes the vendor eligible for every brand
        vendor_service.set_vendor_brands(acme_vendor.id, [])
        assert len(acceptance_service.list_claimable_orders(acme_vendor.id)) == 2

    def test_empty_brand_set_sees_every_prime_order(
        self, db_session, sink, any_brand_vendor, prime_product, globex_prime_product
    ):
        assign(any_brand_vendor, prime_product, 68)
        assign(any_brand_vendor, globex_prime_product, 68)
        first = place(prime_product)
        second = place(globex_prime_product)

        views = acceptance_service.list_claimable_orders(any_brand_vendor.id)
        assert {v.order.id for v in views} == {first.id, second.id}

    def test_earnings_use_vendor_price(self, db_session, sink, acme_vendor, prime_product):
        assign(acme_vendor, prime_product, 68)
        place(prime_product, quantity=2)

        view = acceptance_service.list_claimable_orders(acme_vendor.id)[0]
        assert view.earnings_cents == 68000
        assert view.lines[0]["purchase_price_cents"] == 34000
        assert view.lines[0]["purchase_subtotal_cents"] == 68000
        assert view.to_dict()["items_with_pricing"] == view.lines

    def test_missing_entry_excludes_order(self, db_session, sink, acme_vendor, prime_product):
        place(prime_product)
        assert acceptance_service.list_claimable_orders(acme_vendor.id) == []

    def test_inactive_entry_excludes_order(self, db_session, sink, acme_vendor, prime_product):
        assign(acme_vendor, prime_product, 68)
        pricing_service.deactivate_entry(vendor_id=acme_vendor.id, product_id=prime_product.id)
        place(prime_product)
        assert acceptance_service.list_claimable_orders(acme_vendor.id) == []

    def test_listing_ignores_stock(self, db_session, sink, acme_vendor, prime_product):
        assign(acme_vendor, prime_product, 68, stock=0)
        order = place(prime_product)
        assert [v.order.id for v in acceptance_service.list_claimable_orders(acme_vendor.id)] == [order.id]

    def test_unapproved_or_unknown_vendor(self, db_session, sink, unapproved_vendor, prime_product):
        place(prime_product)
        assert acceptance_service.list_claimable_orders(unapproved_vendor.id) == []
        assert acceptance_service.list_claimable_orders(987654) == []

    def test_shop_vendor_sees_no_prime_orders(self, db_session, sink, shop_vendor, prime_product):
        assign(shop_vendor, prime_product, 60)
        place(prime_product)
        assert acceptance_service.list_claimable_orders(shop_vendor.id) == []

    def test_claimed_order_leaves_every_listing(self, db_session, sink, acme_vendor, any_brand_vendor, prime_product):
        assign(acme_vendor, prime_product, 68)
        assign(any_brand_vendor, prime_product, 70)
        order = place(prime_product)

        acceptance_service.claim_order(order.id, acme_vendor.id)

        assert acceptance_service.list_claimable_orders(acme_vendor.id) == []
        assert acceptance_service.list_claimable_orders(any_brand_vendor.id) == []


# =============================================================================
# CLAIM
# =============================================================================


class TestClaim:

    def test_claim_reprices_with_vendor_price(self, db_session, sink, acme_vendor, prime_product):
        assign(acme_vendor, prime_product, 68, stock=5)
        order = place(prime_product)

        claimed = acceptance_service.claim_order(order.id, acme_vendor.id)

        assert claimed.status == "ACCEPTED"
        assert claimed.assigned_vendor_id == acme_vendor.id
        assert claimed.claimed_at is not None
        assert claimed.version_id == 2

        item = claimed.items[0]
        assert item.vendor_id == acme_vendor.id
        assert item.selling_price_cents == 45000
        assert item.purchase_price_cents == 34000
        assert item.purchase_subtotal_cents == 34000
        assert item.profit_cents == 11000
        assert item.profit_percentage == 24.44

        assert claimed.total_cents == 45000
        assert claimed.total_purchase_cents == 34000
        assert claimed.total_profit_cents == 11000

    def test_price_change_after_listing_is_used_at_claim(self, db_session, sink, acme_vendor, prime_product):
        assign(acme_vendor, prime_product, 68)
        order = place(prime_product)
        assert acceptance_service.list_claimable_orders(acme_vendor.id)[0].earnings_cents == 34000

        pricing_service.update_entry(vendor_id=acme_vendor.id, product_id=prime_product.id, purchase_percentage=72)

        claimed = acceptance_service.claim_order(order.id, acme_vendor.id)
        assert claimed.total_purchase_cents == 36000

    def test_second_claim_loses(self, db_session, sink, acme_vendor, any_brand_vendor, prime_product):
        assign(acme_vendor, prime_product, 68)
        assign(any_brand_vendor, prime_product, 70)
        order = place(prime_product)

        acceptance_service.claim_order(order.id, acme_vendor.id)
        with pytest.raises(AlreadyClaimed):
            acceptance_service.claim_order(order.id, any_brand_vendor.id)

        db_session.expire_all()
        stored = db_session.get(Order, order.id)
        assert stored.assigned_vendor_id == acme_vendor.id
        assert stored.total_purchase_cents == 34000

    def test_regular_order_is_not_claimable(self, db_session, sink, shop_vendor, regular_product):
        order = routing_service.create_order(customer_id=501, lines=[line(regular_product)], address=ADDRESS)
        with pytest.raises(AlreadyClaimed):
            acceptance_service.claim_order(order.id, shop_vendor.id)

    def test_unknown_order(self, db_session, sink, acme_vendor):
        with pytest.raises(OrderNotFound):
            acceptance_service.claim_order(424242, acme_vendor.id)

    def test_unapproved_vendor(self, db_session, sink, unapproved_vendor, prime_product):
        order = place(prime_product)
        with pytest.raises(VendorNotEligible):
            acceptance_service.claim_order(order.id, unapproved_vendor.id)

    def test_shop_vendor_cannot_claim_prime(self, db_session, sink, shop_vendor, prime_product):
        assign(shop_vendor, prime_product, 60)
        order = place(prime_product)
        with pytest.raises(VendorNotEligible):
            acceptance_service.claim_order(order.id, shop_vendor.id)

    def test_unhandled_brand(self, db_session, sink, acme_vendor, globex_prime_product):
        assign(acme_vendor, globex_prime_product, 68)
        order = place(globex_prime_product)
        with pytest.raises(VendorNotEligible):
            acceptance_service.claim_order(order.id, acme_vendor.id)

    def test_missing_entry(self, db_session, sink, acme_vendor, prime_product):
        order = place(prime_product)
        with pytest.raises(ProductUnavailable):
            acceptance_service.claim_order(order.id, acme_vendor.id)

    def test_insufficient_stock(self, db_session, sink, acme_vendor, prime_product):
        assign(acme_vendor, prime_product, 68, stock=1)
        order = place(prime_product, quantity=2)

        with pytest.raises(ProductUnavailable) as excinfo:
            acceptance_service.claim_order(order.id, acme_vendor.id)
        assert excinfo.value.details["available"] == 1

        db_session.expire_all()
        stored = db_session.get(Order, order.id)
        assert stored.status == "PENDING"
        assert stored.assigned_vendor_id is None

    def test_repeated_lines_are_checked_against_combined_stock(self, db_session, sink, acme_vendor, prime_product):
        """Two lines of 5 need 10 units; 8 in stock is not enough."""
        assign(acme_vendor, prime_product, 68, stock=8)
        order = routing_service.create_order(
            customer_id=501, lines=[line(prime_product, 5), line(prime_product, 5)], address=ADDRESS,
        )

        with pytest.raises(ProductUnavailable) as excinfo:
            acceptance_service.claim_order(order.id, acme_vendor.id)
        assert excinfo.value.details["available"] == 8
        assert excinfo.value.details["required"] == 10

        db_session.expire_all()
        assert db_session.get(Order, order.id).status == "PENDING"
        assert pricing_service.get_entry(acme_vendor.id, prime_product.id).available_stock == 8
        assert sales_service.list_vendor_sales(acme_vendor.id) == []

    def test_repeated_lines_within_stock(self, db_session, sink, acme_vendor, prime_product):
        assign(acme_vendor, prime_product, 68, stock=10)
        order = routing_service.create_order(
            customer_id=501, lines=[line(prime_product, 5), line(prime_product, 5)], address=ADDRESS,
        )

        acceptance_service.claim_order(order.id, acme_vendor.id)

        assert pricing_service.get_entry(acme_vendor.id, prime_product.id).available_stock == 0
        assert [r.quantity for r in sales_service.list_vendor_sales(acme_vendor.id, order_id=order.id)] == [5, 5]

    def test_variants_share_entry_stock_without_rows(self, db_session, sink, acme_vendor, variant_product):
        assign(acme_vendor, variant_product, 68, stock=5)
        two_slice, four_slice = variant_product.variants
        lines = [line(variant_product, 3, variant=two_slice), line(variant_product, 3, variant=four_slice)]
        order = routing_service.create_order(customer_id=501, lines=lines, address=ADDRESS)

        with pytest.raises(ProductUnavailable):
            acceptance_service.claim_order(order.id, acme_vendor.id)

        # Separate variant rows are separate stock
        for variant in (two_slice, four_slice):
            pricing_service.set_variant_stock(
                vendor_id=acme_vendor.id, product_id=variant_product.id, variant_id=variant.id, available_stock=3,
            )
        claimed = acceptance_service.claim_order(order.id, acme_vendor.id)
        assert claimed.assigned_vendor_id == acme_vendor.id

    def test_variant_claim(self, db_session, sink, acme_vendor, variant_product):
        assign(acme_vendor, variant_product, 68, stock=5)
        two_slice = variant_product.variants[0]
        order = place(variant_product, quantity=2, variant=two_slice)

        claimed = acceptance_service.claim_order(order.id, acme_vendor.id)
        item = claimed.items[0]
        assert item.purchase_price_cents == 10200
        assert item.subtotal_cents == 27000
        assert item.profit_cents == 27000 - 20400


# =============================================================================
# AFTER THE CLAIM
# =============================================================================


class TestAfterClaim:

    def test_sale_recorded_and_stock_decremented(self, db_session, sink, acme_vendor, prime_product):
        assign(acme_vendor, prime_product, 68, stock=5)
        order = place(prime_product, quantity=2)

        acceptance_service.claim_order(order.id, acme_vendor.id)

        entry = pricing_service.get_entry(acme_vendor.id, prime_product.id)
        assert entry.available_stock == 3
        assert entry.total_sold_website == 2

        records = sales_service.list_vendor_sales(acme_vendor.id, order_id=order.id)
        assert len(records) == 1
        assert records[0].vendor_id == acme_vendor.id
        assert records[0].quantity == 2
        assert records[0].total_purchase_cents == 68000
        assert records[0].total_selling_cents == 90000
        assert records[0].sale_type == "WEBSITE"

    def test_sale_failure_keeps_claim(self, db_session, sink, acme_vendor, prime_product):
        assign(acme_vendor, prime_product, 68, stock=5)
        order = place(prime_product)

        def failing_recorder(**kwargs):
            raise RuntimeError("ledger unavailable")

        claimed = acceptance_service.claim_order(order.id, acme_vendor.id, record_sale=failing_recorder)
        assert claimed.status == "ACCEPTED"

        db_session.expire_all()
        assert db_session.get(Order, order.id).assigned_vendor_id == acme_vendor.id
        assert db_session.query(SaleRecord).count() == 0

    def test_claim_notification(self, db_session, sink, acme_vendor, prime_product):
        assign(acme_vendor, prime_product, 68)
        order = place(prime_product)

        acceptance_service.claim_order(order.id, acme_vendor.id)

        events = sink.of_type(notification_service.ORDER_CLAIMED)
        assert events == [{
            "order_id": order.id,
            "vendor_id": acme_vendor.id,
            "status": "ACCEPTED",
            "total_purchase_cents": 34000,
        }]

    def test_sink_failure_keeps_claim(self, db_session, acme_vendor, prime_product):
        assign(acme_vendor, prime_product, 68)
        order = place(prime_product)

        claimed = acceptance_service.claim_order(order.id, acme_vendor.id, sink=ExplodingSink())
        assert claimed.status == "ACCEPTED"


# =============================================================================
# VENDOR VIEW AND STATUS UPDATES
# =============================================================================


class TestVendorFollowUp:

    def test_pending_order_visible_to_eligible_vendor(self, db_session, sink, acme_vendor, prime_product):
        assign(acme_vendor, prime_product, 68)
        order = place(prime_product)

        view = acceptance_service.get_order_for_vendor(order.id, acme_vendor.id)
        assert view.earnings_cents == 34000

    def test_assigned_order_hidden_from_others(self, db_session, sink, acme_vendor, any_brand_vendor, prime_product):
        assign(acme_vendor, prime_product, 68)
        assign(any_brand_vendor, prime_product, 70)
        order = place(prime_product)
        acceptance_service.claim_order(order.id, acme_vendor.id)

        assert acceptance_service.get_order_for_vendor(order.id, acme_vendor.id).earnings_cents == 34000
        with pytest.raises(OrderAccessDenied):
            acceptance_service.get_order_for_vendor(order.id, any_brand_vendor.id)

    def test_status_walk(self, db_session, sink, acme_vendor, prime_product):
        assign(acme_vendor, prime_product, 68)
        order = place(prime_product)
        acceptance_service.claim_order(order.id, acme_vendor.id)

        for status in ("PACKED", "PICKED_UP", "IN_TRANSIT", "DELIVERED"):
            updated = fulfillment_service.update_order_status(order.id, acme_vendor.id, status)
            assert updated.status == status

        changes = sink.of_type(notification_service.ORDER_STATUS_CHANGED)
        assert [c["to_status"] for c in changes] == ["PACKED", "PICKED_UP", "IN_TRANSIT", "DELIVERED"]
        assert [o.id for o in fulfillment_service.list_vendor_orders(acme_vendor.id, status="DELIVERED")] == [order.id]

    def test_no_skipping(self, db_session, sink, acme_vendor, prime_product):
        assign(acme_vendor, prime_product, 68)
        order = place(prime_product)
        acceptance_service.claim_order(order.id, acme_vendor.id)

        with pytest.raises(InvalidStatusTransition):
            fulfillment_service.update_order_status(order.id, acme_vendor.id, "DELIVERED")

    def test_vendor_cannot_set_accepted(self, db_session, sink, acme_vendor, prime_product):
        order = place(prime_product)
        with pytest.raises(LifecycleError):
            fulfillment_service.update_order_status(order.id, acme_vendor.id, "ACCEPTED")

    def test_only_assignee_updates(self, db_session, sink, acme_vendor, any_brand_vendor, prime_product):
        assign(acme_vendor, prime_product, 68)
        order = place(prime_product)
        acceptance_service.claim_order(order.id, acme_vendor.id)

        with pytest.raises(OrderAccessDenied):
            fulfillment_service.update_order_status(order.id, any_brand_vendor.id, "PACKED")


# =============================================================================
# CANCELLATION
# =============================================================================


class TestCancellation:

    def test_cancel_pending_order(self, db_session, sink, acme_vendor, prime_product):
        assign(acme_vendor, prime_product, 68)
        order = place(prime_product, customer_id=777)

        cancelled = fulfillment_service.cancel_order(order.id, 777)
        assert cancelled.status == "CANCELLED"
        assert sink.of_type(notification_service.ORDER_CANCELLED) == [{"order_id": order.id, "customer_id": 777}]

        with pytest.raises(AlreadyClaimed):
            acceptance_service.claim_order(order.id, acme_vendor.id)
        assert acceptance_service.list_claimable_orders(acme_vendor.id) == []

    def test_cannot_cancel_claimed_order(self, db_session, sink, acme_vendor, prime_product):
        assign(acme_vendor, prime_product, 68)
        order = place(prime_product, customer_id=777)
        acceptance_service.claim_order(order.id, acme_vendor.id)

        with pytest.raises(InvalidStatusTransition):
            fulfillment_service.cancel_order(order.id, 777)

    def test_other_customer_cannot_cancel(self, db_session, sink, prime_product):
        order = place(prime_product, customer_id=777)
        with pytest.raises(NotFoundError):
            fulfillment_service.cancel_order(order.id, 778)
