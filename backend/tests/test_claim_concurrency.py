# Overview: Threaded race tests (claims, lazy pricing entries) against a file-backed SQLite database.

"""
Concurrency tests for order claiming and order creation.

Each worker runs in its own app context, so it owns its own session and
connection; the database alone decides which write wins.
"""
import os
import tempfile
import threading
import unittest

from app import create_app
from app.extensions import db, NOTIFICATION_SINK_KEY
from app.models import Order, SaleRecord, VendorProductPricing
from app.models.vendors import VENDOR_CLASS_PRIME, VENDOR_CLASS_SHOP
from app.services import acceptance_service, catalog_service, fulfillment_service, pricing_service, routing_service, vendor_service
from app.services.acceptance_service import AlreadyClaimed
from app.services.lifecycle_service import InvalidStatusTransition
from app.services.notification_service import InMemoryNotificationSink, ORDER_CLAIMED
from app.validation import OrderLineInput


ADDRESS = {"street": "1 Race Street", "city": "Pune", "state": "MH", "pincode": "411001"}
VENDOR_COUNT = 6
CUSTOMER_COUNT = 4


class FileDatabaseTestCase(unittest.TestCase):
    """Fresh file-backed database per test plus a barrier-synchronised race runner."""

    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        db_path = os.path.join(self.tmpdir.name, "races.db")
        self.app = create_app({
            "TESTING": True,
            "SQLALCHEMY_DATABASE_URI": f"sqlite:///{db_path}",
            "SQLALCHEMY_ENGINE_OPTIONS": {"connect_args": {"timeout": 30}},
            "FULFILLER_VENDOR_ID": None,
        })
        self.sink = InMemoryNotificationSink()
        self.app.extensions[NOTIFICATION_SINK_KEY] = self.sink

        with self.app.app_context():
            db.drop_all()
            db.create_all()
            self.seed()

    def seed(self):
        pass

    def tearDown(self):
        with self.app.app_context():
            db.session.remove()
            db.drop_all()
            db.session.remove()
            db.engine.dispose()
        self.tmpdir.cleanup()

    def _race(self, workers, losing=(AlreadyClaimed,)):
        barrier = threading.Barrier(len(workers))
        results = []
        lock = threading.Lock()

        def run(label, action):
            with self.app.app_context():
                try:
                    barrier.wait()
                    action()
                    with lock:
                        results.append((label, "won"))
                except losing:
                    with lock:
                        results.append((label, "lost"))
                except Exception as exc:
                    with lock:
                        results.append((label, exc))
                finally:
                    db.session.remove()

        threads = [threading.Thread(target=run, args=worker) for worker in workers]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        return results


class ClaimConcurrencyTests(FileDatabaseTestCase):
    def seed(self):
        brand = catalog_service.create_brand("Race Brand")
        product = catalog_service.create_product(
            name="Race Blender", brand_id=brand.id, is_prime=True,
            mrp_cents=50000, selling_percentage=90, purchase_percentage=70,
        )
        self.product_id = product.id

        self.vendor_ids = []
        for index in range(VENDOR_COUNT):
            vendor = vendor_service.create_vendor(
                name=f"Racer {index}", vendor_class=VENDOR_CLASS_PRIME, approved=True,
            )
            pricing_service.assign_product_to_vendor(
                vendor_id=vendor.id,
                product_id=product.id,
                purchase_percentage=60 + index,
                available_stock=10,
            )
            self.vendor_ids.append(vendor.id)

        order = routing_service.create_order(
            customer_id=900,
            lines=[OrderLineInput(product_id=product.id, quantity=1)],
            address=ADDRESS,
        )
        self.order_id = order.id

    def test_exactly_one_vendor_wins(self):
        workers = [
            (vendor_id, lambda vendor_id=vendor_id: acceptance_service.claim_order(self.order_id, vendor_id))
            for vendor_id in self.vendor_ids
        ]
        results = self._race(workers)

        errors = [outcome for _, outcome in results if isinstance(outcome, Exception)]
        self.assertFalse(errors)

        winners = [label for label, outcome in results if outcome == "won"]
        losers = [label for label, outcome in results if outcome == "lost"]
        self.assertEqual(len(winners), 1)
        self.assertEqual(len(losers), VENDOR_COUNT - 1)

        winner = winners[0]
        with self.app.app_context():
            order = db.session.get(Order, self.order_id)
            self.assertEqual(order.status, "ACCEPTED")
            self.assertEqual(order.assigned_vendor_id, winner)

            # Priced with the winner's own percentage (60 + index)
            expected_purchase = pricing_service.get_entry(winner, self.product_id).purchase_price_cents
            self.assertEqual(order.total_purchase_cents, expected_purchase)
            self.assertEqual({item.vendor_id for item in order.items}, {winner})

            records = db.session.query(SaleRecord).filter_by(order_id=self.order_id).all()
            self.assertEqual([r.vendor_id for r in records], [winner])

        self.assertEqual([e["vendor_id"] for e in self.sink.of_type(ORDER_CLAIMED)], [winner])

    def test_claim_and_cancel_race(self):
        vendor_id = self.vendor_ids[0]
        workers = [
            ("claim", lambda: acceptance_service.claim_order(self.order_id, vendor_id)),
            ("cancel", lambda: fulfillment_service.cancel_order(self.order_id, 900)),
        ]
        # A cancel that reads the order after the claim sees an invalid transition
        results = dict(self._race(workers, losing=(AlreadyClaimed, InvalidStatusTransition)))

        outcomes = sorted(str(v) for v in results.values())
        self.assertEqual(outcomes, ["lost", "won"])

        with self.app.app_context():
            order = db.session.get(Order, self.order_id)
            if results["claim"] == "won":
                self.assertEqual(order.status, "ACCEPTED")
                self.assertEqual(order.assigned_vendor_id, vendor_id)
            else:
                self.assertEqual(order.status, "CANCELLED")
                self.assertIsNone(order.assigned_vendor_id)


class FulfillerEntryConcurrencyTests(FileDatabaseTestCase):
    def seed(self):
        brand = catalog_service.create_brand("House Brand")
        product = catalog_service.create_product(
            name="House Kettle", brand_id=brand.id,
            mrp_cents=20000, selling_percentage=80, purchase_percentage=60,
        )
        self.product_id = product.id
        self.shop_id = vendor_service.create_vendor(
            name="House Shop", vendor_class=VENDOR_CLASS_SHOP, approved=True,
        ).id

    def test_first_orders_share_one_lazy_entry(self):
        """Customers ordering a product the fulfiller has no entry for yet all succeed."""
        workers = [
            (customer_id, lambda customer_id=customer_id: routing_service.create_order(
                customer_id=customer_id,
                lines=[OrderLineInput(product_id=self.product_id, quantity=1)],
                address=ADDRESS,
            ))
            for customer_id in range(700, 700 + CUSTOMER_COUNT)
        ]
        results = self._race(workers, losing=())

        self.assertEqual([outcome for _, outcome in results], ["won"] * CUSTOMER_COUNT)

        with self.app.app_context():
            entries = db.session.query(VendorProductPricing).filter_by(
                vendor_id=self.shop_id, product_id=self.product_id,
            ).all()
            self.assertEqual(len(entries), 1)
            self.assertEqual(entries[0].purchase_percentage, 60.0)

            orders = db.session.query(Order).all()
            self.assertEqual(len(orders), CUSTOMER_COUNT)
            for order in orders:
                self.assertEqual(order.status, "ACCEPTED")
                self.assertEqual(order.assigned_vendor_id, self.shop_id)
                self.assertEqual(order.total_purchase_cents, 12000)


if __name__ == "__main__":
    unittest.main()
