"""
Pytest fixtures for the fulfillment backend tests.

Provides test database setup, a recording notification sink, catalog and
vendor fixtures, and header helpers for the test client.
"""

import pytest
from app import create_app
from app.extensions import db, NOTIFICATION_SINK_KEY
from app.models.vendors import VENDOR_CLASS_PRIME, VENDOR_CLASS_SHOP
from app.services import catalog_service, pricing_service, vendor_service
from app.services.notification_service import InMemoryNotificationSink
from app.validation import OrderLineInput


ADDRESS = {"street": "12 Market Road", "city": "Pune", "state": "MH", "pincode": "411001"}


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'FULFILLER_VENDOR_ID': None,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def sink(app):
    """Record every notification emitted during the test."""
    previous = app.extensions.get(NOTIFICATION_SINK_KEY)
    recorder = InMemoryNotificationSink()
    app.extensions[NOTIFICATION_SINK_KEY] = recorder
    yield recorder
    app.extensions[NOTIFICATION_SINK_KEY] = previous


@pytest.fixture(scope='function')
def acme(db_session):
    return catalog_service.create_brand("Acme")


@pytest.fixture(scope='function')
def globex(db_session):
    return catalog_service.create_brand("Globex")


@pytest.fixture(scope='function')
def regular_product(db_session, acme):
    """Regular kettle: mrp 200.00, sells at 80% (160.00), costs 60% (120.00)."""
    return catalog_service.create_product(
        name="Kettle", brand_id=acme.id, mrp_cents=20000, selling_percentage=80, purchase_percentage=60,
    )


@pytest.fixture(scope='function')
def prime_product(db_session, acme):
    """Prime Acme blender: mrp 500.00, sells at 90% (450.00), reference cost 70% (350.00)."""
    return catalog_service.create_product(
        name="Blender", brand_id=acme.id, is_prime=True,
        mrp_cents=50000, selling_percentage=90, purchase_percentage=70,
    )


@pytest.fixture(scope='function')
def globex_prime_product(db_session, globex):
    return catalog_service.create_product(
        name="Mixer", brand_id=globex.id, is_prime=True, mrp_cents=30000, selling_percentage=85,
    )


@pytest.fixture(scope='function')
def variant_product(db_session, acme):
    """Prime Acme toaster priced per variant (2-slice 150.00, 4-slice 250.00)."""
    return catalog_service.create_product(
        name="Toaster", brand_id=acme.id, is_prime=True,
        variants=[
            {"label": "2-slice", "mrp_cents": 15000, "selling_percentage": 90, "purchase_percentage": 65},
            {"label": "4-slice", "mrp_cents": 25000, "selling_percentage": 90, "purchase_percentage": 65},
        ],
    )


@pytest.fixture(scope='function')
def shop_vendor(db_session):
    return vendor_service.create_vendor(name="House Shop", vendor_class=VENDOR_CLASS_SHOP, approved=True)


@pytest.fixture(scope='function')
def acme_vendor(db_session, acme):
    """Approved PRIME vendor handling Acme only."""
    return vendor_service.create_vendor(
        name="Prime Acme", vendor_class=VENDOR_CLASS_PRIME, brand_ids=[acme.id], approved=True,
    )


@pytest.fixture(scope='function')
def any_brand_vendor(db_session):
    """Approved PRIME vendor with no declared brands."""
    return vendor_service.create_vendor(name="Prime Any", vendor_class=VENDOR_CLASS_PRIME, approved=True)


@pytest.fixture(scope='function')
def unapproved_vendor(db_session):
    return vendor_service.create_vendor(name="Prime Pending", vendor_class=VENDOR_CLASS_PRIME)


def assign(vendor, product, percentage, stock=10):
    """Give a vendor an active pricing entry for a product."""
    return pricing_service.assign_product_to_vendor(
        vendor_id=vendor.id,
        product_id=product.id,
        purchase_percentage=percentage,
        available_stock=stock,
    )


def line(product, quantity=1, variant=None):
    return OrderLineInput(
        product_id=product.id,
        quantity=quantity,
        variant_id=variant.id if variant is not None else None,
    )


def customer_headers(customer_id: int = 501) -> dict:
    return {'X-Customer-Id': str(customer_id)}


def vendor_headers(vendor_id: int) -> dict:
    return {'X-Vendor-Id': str(vendor_id)}


def admin_headers(admin_id: int = 1) -> dict:
    return {'X-Admin-Id': str(admin_id)}
