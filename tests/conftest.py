"""
Pytest fixtures for the POS API.

The database is a throwaway SQLite file; tenant schemas become sibling
files next to it. Every test starts from a freshly bootstrapped store.
"""

import os
import tempfile
from decimal import Decimal
from pathlib import Path

DB_DIR = Path(tempfile.mkdtemp(prefix="posdesk-tests-"))
os.environ["DATABASE_URL"] = f"sqlite:///{DB_DIR / 'posdesk.db'}"
os.environ["DEFAULT_ADMIN_EMAIL"] = "admin@posystem.com"
os.environ["DEFAULT_ADMIN_PASSWORD"] = "admin123"
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from posdesk.db.tenancy import create_schema_tables, dispose_engines, session_for, set_active_schema  # noqa: E402
from posdesk.main import app  # noqa: E402
from posdesk.models import Category, Employee, Product  # noqa: E402
from posdesk.services.setup import bootstrap_database  # noqa: E402

ADMIN_EMAIL = "admin@posystem.com"
ADMIN_PASSWORD = "admin123"


# =============================================================================
# DATABASE FIXTURES
# =============================================================================

@pytest.fixture(autouse=True)
def fresh_database():
    """Recreate the public store (and drop tenant files) around each test."""
    dispose_engines()
    set_active_schema(None)
    for path in DB_DIR.glob("*.db"):
        path.unlink()
    create_schema_tables(None)
    with session_for(None) as db:
        bootstrap_database(db)
    yield
    dispose_engines()


@pytest.fixture
def db():
    session = session_for(None)
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def admin(db) -> Employee:
    return db.query(Employee).filter(Employee.email == ADMIN_EMAIL).one()


@pytest.fixture
def make_product(db):
    """Factory for catalog products stored directly through the session."""
    created_categories: dict[str, Category] = {}

    def factory(name: str = "Milk 1L", *, price="10.00", stock="20", category: str = "Groceries", **fields) -> Product:
        cat = created_categories.get(category)
        if cat is None:
            cat = Category(name=category)
            db.add(cat)
            db.flush()
            created_categories[category] = cat
        product = Product(
            name=name,
            category_id=cat.id,
            price=Decimal(price),
            stock_level=Decimal(stock),
            **fields,
        )
        db.add(product)
        db.commit()
        db.refresh(product)
        return product

    return factory


# =============================================================================
# HTTP FIXTURES
# =============================================================================

@pytest.fixture
def client() -> TestClient:
    return TestClient(app)


def login(client: TestClient, email: str, password: str, schema: str | None = None) -> dict[str, str]:
    headers = {"X-Tenant-Schema": schema} if schema else {}
    response = client.post("/auth/login", json={"email": email, "password": password}, headers=headers)
    assert response.status_code == 200, response.text
    return {**headers, "Authorization": f"Bearer {response.json()['access_token']}"}


@pytest.fixture
def admin_headers(client) -> dict[str, str]:
    return login(client, ADMIN_EMAIL, ADMIN_PASSWORD)


@pytest.fixture
def api_product(client, admin_headers):
    """Factory for products created through the catalog endpoints."""

    def factory(name: str = "Bread", *, price: str = "5.00", stock: str = "10", **fields) -> dict:
        category = client.post("/categories", json={"name": f"{name} category"}, headers=admin_headers)
        assert category.status_code == 201, category.text
        payload = {"name": name, "category_id": category.json()["id"], "price": price, "stock_level": stock, **fields}
        response = client.post("/products", json=payload, headers=admin_headers)
        assert response.status_code == 201, response.text
        return response.json()

    return factory
