"""
HTTP tests for admin catalog maintenance.

Verifies:
- Catalog routes require the admin identity
- Price-term changes re-derive prices and re-price vendor entries
- Deactivated products and variants stop being orderable
"""

import pytest

from app.services import pricing_service

from conftest import ADDRESS, admin_headers, assign, customer_headers


class TestCatalogRoutes:

    @pytest.mark.parametrize(
        "method,path",
        [
            ("POST", "/api/catalog/brands"),
            ("POST", "/api/catalog/products"),
            ("PUT", "/api/catalog/products/1/terms"),
            ("PUT", "/api/catalog/variants/1"),
            ("PUT", "/api/catalog/products/1/active"),
        ],
    )
    def test_requires_admin(self, client, db_session, method, path):
        resp = getattr(client, method.lower())(path, json={}, headers=customer_headers())
        assert resp.status_code == 401, f"{method} {path} returned {resp.status_code}"

    def test_create_brand_and_product(self, client, db_session):
        brand = client.post("/api/catalog/brands", json={"name": "Initech"}, headers=admin_headers())
        assert brand.status_code == 201

        resp = client.post("/api/catalog/products", json={
            "name": "Stapler",
            "brand_id": brand.json["brand"]["id"],
            "is_prime": True,
            "mrp_cents": 2000,
            "selling_percentage": 90,
        }, headers=admin_headers())
        assert resp.status_code == 201
        product = resp.json["product"]
        assert product["selling_price_cents"] == 1800
        assert product["purchase_percentage"] == 60.0

    def test_duplicate_brand_is_400(self, client, db_session, acme):
        resp = client.post("/api/catalog/brands", json={"name": "Acme"}, headers=admin_headers())
        assert resp.status_code == 400

    def test_mixed_pricing_definitions_rejected(self, client, db_session, acme):
        resp = client.post("/api/catalog/products", json={
            "name": "Odd",
            "brand_id": acme.id,
            "mrp_cents": 1000,
            "selling_percentage": 90,
            "variants": [{"label": "S", "mrp_cents": 1000, "selling_percentage": 90}],
        }, headers=admin_headers())
        assert resp.status_code == 400

    def test_mrp_change_reprices_vendor_entries(self, client, db_session, acme_vendor, prime_product):
        assign(acme_vendor, prime_product, 68)

        resp = client.put(
            f"/api/catalog/products/{prime_product.id}/terms",
            json={"mrp_cents": 60000},
            headers=admin_headers(),
        )
        assert resp.status_code == 200
        assert resp.json["product"]["selling_price_cents"] == 54000

        entry = pricing_service.get_entry(acme_vendor.id, prime_product.id)
        assert entry.purchase_price_cents == 40800

    def test_terms_on_variant_product_is_400(self, client, db_session, variant_product):
        resp = client.put(
            f"/api/catalog/products/{variant_product.id}/terms",
            json={"mrp_cents": 60000},
            headers=admin_headers(),
        )
        assert resp.status_code == 400

    def test_deactivated_product_cannot_be_ordered(self, client, db_session, sink, prime_product):
        resp = client.put(
            f"/api/catalog/products/{prime_product.id}/active",
            json={"is_active": False},
            headers=admin_headers(),
        )
        assert resp.status_code == 200
        assert resp.json["product"]["is_active"] is False

        order = client.post("/api/orders", json={
            "items": [{"product_id": prime_product.id, "quantity": 1}], "address": ADDRESS,
        }, headers=customer_headers())
        assert order.status_code == 400

    def test_active_flag_required(self, client, db_session, prime_product):
        resp = client.put(
            f"/api/catalog/products/{prime_product.id}/active", json={"is_active": "no"}, headers=admin_headers(),
        )
        assert resp.status_code == 400

    def test_variant_update(self, client, db_session, variant_product):
        two_slice = variant_product.variants[0]
        resp = client.put(
            f"/api/catalog/variants/{two_slice.id}",
            json={"mrp_cents": 16000, "is_active": False},
            headers=admin_headers(),
        )
        assert resp.status_code == 200
        assert resp.json["variant"]["selling_price_cents"] == 14400
        assert resp.json["variant"]["is_active"] is False

    def test_unknown_variant_is_404(self, client, db_session):
        resp = client.put("/api/catalog/variants/424242", json={"is_active": False}, headers=admin_headers())
        assert resp.status_code == 404
