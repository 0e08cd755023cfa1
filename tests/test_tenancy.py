import pytest

from posdesk.core.errors import TenantError
from posdesk.db.tenancy import normalize_schema, tenant_database_url

from .conftest import ADMIN_EMAIL, ADMIN_PASSWORD, DB_DIR, login


class TestSchemaNames:
    @pytest.mark.parametrize("value", [None, "", "  ", "public"])
    def test_public_aliases(self, value):
        assert normalize_schema(value) is None

    @pytest.mark.parametrize("value", ["Store1", "1store", "store-01", "a" * 64])
    def test_invalid_names(self, value):
        with pytest.raises(TenantError):
            normalize_schema(value)

    def test_sqlite_tenants_use_sibling_files(self):
        assert tenant_database_url("sqlite:////data/pos.db", "store_01") == "sqlite:////data/pos__store_01.db"

    def test_postgres_url_is_unchanged(self):
        url = "postgresql+psycopg://pos:secret@db:5432/pos"
        assert tenant_database_url(url, "store_01") == url

    def test_in_memory_sqlite_has_no_tenants(self):
        with pytest.raises(TenantError):
            tenant_database_url("sqlite:///:memory:", "store_01")


@pytest.fixture
def tenant(client, admin_headers) -> dict:
    response = client.post(
        "/tenants",
        json={"code": "north", "name": "North Branch", "schema_name": "store_north"},
        headers=admin_headers,
    )
    assert response.status_code == 201, response.text
    return response.json()


class TestTenantRouting:
    def test_provisioning_creates_bootstrapped_store(self, client, tenant):
        assert tenant["code"] == "NORTH"
        assert (DB_DIR / "posdesk__store_north.db").exists()

        headers = login(client, ADMIN_EMAIL, ADMIN_PASSWORD, schema="store_north")
        me = client.get("/auth/me", headers=headers)
        assert me.status_code == 200
        assert "tenants:manage" in me.json()["permissions"]

    def test_tenant_data_is_isolated(self, client, admin_headers, tenant):
        tenant_headers = login(client, ADMIN_EMAIL, ADMIN_PASSWORD, schema="store_north")
        client.post("/categories", json={"name": "Northern goods"}, headers=tenant_headers)

        assert [c["name"] for c in client.get("/categories", headers=tenant_headers).json()] == ["Northern goods"]
        assert client.get("/categories", headers=admin_headers).json() == []

    def test_token_is_bound_to_its_schema(self, client, admin_headers, tenant):
        tenant_headers = login(client, ADMIN_EMAIL, ADMIN_PASSWORD, schema="store_north")

        public_token_in_tenant = {**admin_headers, "X-Tenant-Schema": "store_north"}
        tenant_token_in_public = {"Authorization": tenant_headers["Authorization"]}
        assert client.get("/auth/me", headers=public_token_in_tenant).status_code == 401
        assert client.get("/auth/me", headers=tenant_token_in_public).status_code == 401

    def test_tenants_are_managed_from_public_only(self, client, tenant):
        tenant_headers = login(client, ADMIN_EMAIL, ADMIN_PASSWORD, schema="store_north")
        assert client.get("/tenants", headers=tenant_headers).status_code == 403

    def test_inactive_tenant_is_refused(self, client, admin_headers, tenant):
        client.patch(f"/tenants/{tenant['id']}", json={"is_active": False}, headers=admin_headers)

        response = client.post(
            "/auth/login",
            json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD},
            headers={"X-Tenant-Schema": "store_north"},
        )
        assert response.status_code == 403

    def test_duplicate_schema_is_a_conflict(self, client, admin_headers, tenant):
        response = client.post(
            "/tenants",
            json={"code": "other", "name": "Other", "schema_name": "store_north"},
            headers=admin_headers,
        )
        assert response.status_code == 409


def test_unknown_tenant_header(client):
    response = client.post(
        "/auth/login",
        json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD},
        headers={"X-Tenant-Schema": "nowhere"},
    )
    assert response.status_code == 404


def test_malformed_tenant_header(client):
    response = client.post(
        "/auth/login",
        json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD},
        headers={"X-Tenant-Schema": "Bad-Schema"},
    )
    assert response.status_code == 400


def test_responses_carry_correlation_id(client):
    response = client.get("/health", headers={"X-Correlation-ID": "abc123"})
    assert response.headers["X-Correlation-ID"] == "abc123"
