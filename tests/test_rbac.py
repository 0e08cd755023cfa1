from decimal import Decimal

import pytest

from posdesk.services.access import ADMINISTRATOR_ROLE, all_permission_codes, effective_permissions

from .conftest import login


def test_administrator_has_every_permission(db, admin):
    assert effective_permissions(db, admin.id) == all_permission_codes()


@pytest.fixture
def roles(client, admin_headers) -> dict[str, int]:
    return {role["name"]: role["id"] for role in client.get("/roles", headers=admin_headers).json()}


@pytest.fixture
def cashier_headers(client, admin_headers, roles) -> dict[str, str]:
    response = client.post(
        "/employees",
        json={
            "employee_id": "cash01",
            "name": "Carla Cashier",
            "email": "carla@posystem.com",
            "password": "till-secret",
            "role_ids": [roles["Cashier"]],
        },
        headers=admin_headers,
    )
    assert response.status_code == 201, response.text
    assert response.json()["employee_id"] == "CASH01"
    return login(client, "carla@posystem.com", "till-secret")


def test_system_roles_are_seeded(roles):
    assert {ADMINISTRATOR_ROLE, "Manager", "Cashier"} <= set(roles)


def test_cashier_can_sell_but_not_report(client, cashier_headers, api_product):
    product = api_product("Candy", price="1.00", stock="5")

    quote = client.post(
        "/sales/cart/quote",
        json={"items": [{"product_id": product["id"], "quantity": "2"}]},
        headers=cashier_headers,
    )
    assert quote.status_code == 200

    report = client.get("/reports/daily-sales", headers=cashier_headers)
    assert report.status_code == 403
    assert report.json()["detail"] == "Permission required: reports:view"


def test_granting_a_permission_takes_effect(client, admin_headers, cashier_headers, roles):
    assert client.get("/reports/inventory", headers=cashier_headers).status_code == 403

    response = client.post(
        f"/roles/{roles['Cashier']}/permissions",
        json={"permission": "reports:view", "granted": True},
        headers=admin_headers,
    )
    assert response.status_code == 200, response.text
    assert "reports:view" in response.json()["permissions"]

    assert client.get("/reports/inventory", headers=cashier_headers).status_code == 200


def test_system_roles_cannot_be_deleted(client, admin_headers, roles):
    assert client.delete(f"/roles/{roles['Cashier']}", headers=admin_headers).status_code == 400


def test_requests_without_token_are_unauthorized(client):
    assert client.get("/products").status_code == 401


def test_wrong_password(client):
    response = client.post("/auth/login", json={"email": "admin@posystem.com", "password": "nope"})
    assert response.status_code == 401


def test_inactive_employee_cannot_log_in(client, admin_headers, cashier_headers):
    employees = client.get("/employees", headers=admin_headers).json()
    cashier = next(employee for employee in employees if employee["employee_id"] == "CASH01")
    client.patch(f"/employees/{cashier['id']}", json={"is_active": False}, headers=admin_headers)

    assert client.get("/auth/me", headers=cashier_headers).status_code == 403
    response = client.post("/auth/login", json={"email": "carla@posystem.com", "password": "till-secret"})
    assert response.status_code == 403


def _set_cashier_permission(client, admin_headers, roles, permission, granted):
    response = client.post(
        f"/roles/{roles['Cashier']}/permissions",
        json={"permission": permission, "granted": granted},
        headers=admin_headers,
    )
    assert response.status_code == 200, response.text


class TestPriceOverrides:
    @pytest.fixture
    def candy(self, api_product):
        return api_product("Candy", price="1.00", stock="10")

    @pytest.mark.parametrize(
        "line_price,discount",
        [
            ("0.01", {}),
            (None, {"discount_type": "percentage", "discount_value": "100"}),
        ],
    )
    def test_discounting_needs_pos_discount(
        self, client, admin_headers, cashier_headers, roles, candy, line_price, discount
    ):
        _set_cashier_permission(client, admin_headers, roles, "pos:discount", False)
        item = {"product_id": candy["id"], "quantity": "1"}
        if line_price is not None:
            item["unit_price"] = line_price
        payload = {"items": [item], "payment_mode": "card", **discount}

        for path in ("/sales/cart/quote", "/sales/checkout"):
            response = client.post(path, json=payload, headers=cashier_headers)
            assert response.status_code == 403, path
            assert response.json()["detail"] == "Permission required: pos:discount"

        stored = client.get(f"/products/{candy['id']}", headers=admin_headers).json()
        assert Decimal(stored["stock_level"]) == Decimal("10")

    def test_plain_sale_needs_no_discount_permission(self, client, admin_headers, cashier_headers, roles, candy):
        _set_cashier_permission(client, admin_headers, roles, "pos:discount", False)

        response = client.post(
            "/sales/checkout",
            json={"items": [{"product_id": candy["id"], "quantity": "2"}], "payment_mode": "card"},
            headers=cashier_headers,
        )
        assert response.status_code == 201, response.text

    def test_cashier_with_pos_discount_may_reprice(self, client, cashier_headers, candy):
        response = client.post(
            "/sales/checkout",
            json={"items": [{"product_id": candy["id"], "quantity": "1", "unit_price": "0.80"}], "payment_mode": "card"},
            headers=cashier_headers,
        )
        assert response.status_code == 201, response.text
        assert Decimal(response.json()["total_amount"]) == Decimal("0.80")


def test_voiding_needs_pos_void_and_refund_needs_sales_refund(client, admin_headers, cashier_headers, roles, api_product):
    product = api_product("Candy", price="1.00", stock="10")
    sale = client.post(
        "/sales/checkout",
        json={"items": [{"product_id": product["id"], "quantity": "1"}], "payment_mode": "card"},
        headers=cashier_headers,
    ).json()
    void_path = f"/sales/invoices/{sale['id']}/void"

    response = client.post(void_path, json={"refund": True}, headers=cashier_headers)
    assert response.status_code == 403
    assert response.json()["detail"] == "Permission required: pos:void"

    _set_cashier_permission(client, admin_headers, roles, "pos:void", True)
    response = client.post(void_path, json={"refund": True}, headers=cashier_headers)
    assert response.status_code == 403
    assert response.json()["detail"] == "Permission required: sales:refund"

    response = client.post(void_path, json={"refund": True}, headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["payment_status"] == "void"
