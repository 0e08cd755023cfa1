import pytest

from posdesk.models import Category
from posdesk.services.catalog import category_descendant_ids, lookup_code, scanned_code_is_plausible


@pytest.mark.parametrize(
    "code,expected",
    [
        ("", False),
        ("ab", False),
        ("12345", False),
        ("123456", True),
        ("abcdefg", False),
        ("abcdefgh", True),
        ("ABC-123", False),
        ("4006381333931", True),
        ("SKU9X2", True),
    ],
)
def test_scanned_code_plausibility(code, expected):
    assert scanned_code_is_plausible(code) is expected


class TestLookup:
    def test_exact_barcode_wins_over_name_match(self, db, make_product):
        make_product("Apple juice", barcode="5000112637922")
        make_product("5000112637922 poster")

        matches = lookup_code(db, "5000112637922")
        assert [product.name for product in matches] == ["Apple juice"]

    def test_duplicate_barcodes_return_every_product(self, db, make_product):
        make_product("Cola 330ml", barcode="111222333")
        make_product("Cola Zero 330ml", barcode="111222333")

        assert len(lookup_code(db, "111222333")) == 2

    def test_falls_back_to_name_search(self, db, make_product):
        make_product("Green Tea", sku="TEA-01")

        assert [product.sku for product in lookup_code(db, "green")] == ["TEA-01"]

    def test_inactive_products_are_hidden(self, db, make_product):
        make_product("Old Soap", barcode="999888777", is_active=False)

        assert lookup_code(db, "999888777") == []
        assert len(lookup_code(db, "999888777", active_only=False)) == 1


def test_category_descendants(db):
    root = Category(name="Food")
    db.add(root)
    db.flush()
    dairy = Category(name="Dairy", parent_category_id=root.id)
    db.add(dairy)
    db.flush()
    cheese = Category(name="Cheese", parent_category_id=dairy.id)
    db.add(cheese)
    db.commit()

    assert category_descendant_ids(db, root.id) == {root.id, dairy.id, cheese.id}
    assert category_descendant_ids(db, cheese.id) == {cheese.id}


class TestCatalogRoutes:
    def test_product_listing_is_paged_with_total_count(self, client, admin_headers, api_product):
        for name in ("Alpha", "Bravo", "Charlie"):
            api_product(name)

        response = client.get("/products", params={"skip": 1, "take": 1}, headers=admin_headers)
        assert response.status_code == 200
        body = response.json()
        assert body["count"] == 3
        assert [item["name"] for item in body["items"]] == ["Bravo"]

    def test_archived_products_are_excluded_by_default(self, client, admin_headers, api_product):
        product = api_product("Soap")
        assert client.delete(f"/products/{product['id']}", headers=admin_headers).json()["is_active"] is False

        assert client.get("/products", headers=admin_headers).json()["count"] == 0
        listing = client.get("/products", params={"include_inactive": True}, headers=admin_headers).json()
        assert listing["count"] == 1

    def test_duplicate_sku_is_a_conflict(self, client, admin_headers, api_product):
        api_product("Pen", sku="PEN-1")
        category_id = client.get("/categories", headers=admin_headers).json()[0]["id"]

        response = client.post(
            "/products",
            json={"name": "Pen copy", "category_id": category_id, "price": "1.00", "sku": "PEN-1"},
            headers=admin_headers,
        )
        assert response.status_code == 409

    def test_category_with_products_cannot_be_deleted(self, client, admin_headers, api_product):
        product = api_product("Tape")

        response = client.delete(f"/categories/{product['category_id']}", headers=admin_headers)
        assert response.status_code == 409

    def test_category_cannot_move_under_its_child(self, client, admin_headers):
        parent = client.post("/categories", json={"name": "Drinks"}, headers=admin_headers).json()
        child = client.post(
            "/categories", json={"name": "Juices", "parent_category_id": parent["id"]}, headers=admin_headers
        ).json()

        response = client.patch(
            f"/categories/{parent['id']}", json={"parent_category_id": child["id"]}, headers=admin_headers
        )
        assert response.status_code == 400

    def test_scan_check_endpoint(self, client, admin_headers):
        response = client.get("/products/scan-check", params={"code": "hello"}, headers=admin_headers)
        assert response.json() == {"code": "hello", "plausible": False}
