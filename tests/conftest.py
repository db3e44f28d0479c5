# tests/conftest.py
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from storefront.auth import TokenVerifier
from storefront.config import Settings
from storefront.database import InMemoryStore
from storefront.listing import PRODUCTS
from storefront.main import create_app
from storefront.seed import seed_products

CATALOG = Path(__file__).resolve().parent.parent / "data" / "products.json"
SECRET = "test-secret-0123456789abcdef0123456789abcdef"

COLORS = ["Red", "Blue", "Green", "Black", "White"]
NOUNS = ["Lamp", "Chair", "Kettle", "Blanket", "Speaker"]


def make_product(i: int, **overrides):
    doc = {
        "id": f"{i:03d}",
        "title": f"{COLORS[(i - 1) // 5 % 5]} {NOUNS[(i - 1) % 5]}",
        "price": 10.0 + i,
        "description": "",
        "category": "even" if i % 2 == 0 else "odd",
        "tags": [],
        "rating": 3.0,
        "stock": i,
        "images": [],
    }
    doc.update(overrides)
    return doc


@pytest.fixture(name="make_product")
def make_product_fixture():
    return make_product


@pytest.fixture
def settings():
    return Settings(AUTH_SECRET=SECRET, LOG_LEVEL="WARNING", DATABASE_URL=None, SEED_FILE=None)


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def generated_store(store):
    """25 products: ids 001..025, prices 11..35, five of each noun."""
    for i in range(1, 26):
        store.insert(PRODUCTS, make_product(i))
    return store


@pytest.fixture
def catalog_path():
    return CATALOG


@pytest.fixture
def catalog_store(store):
    seed_products(store, CATALOG)
    return store


@pytest.fixture
def verifier(settings):
    return TokenVerifier(settings.AUTH_SECRET, settings.AUTH_ALGORITHM, settings.AUTH_TOKEN_TTL_MINUTES)


@pytest.fixture
def client(settings, catalog_store, verifier):
    return TestClient(create_app(settings, store=catalog_store, verifier=verifier))


@pytest.fixture
def auth_headers(verifier):
    def _headers(email: str, name: str = None):
        return {"Authorization": f"Bearer {verifier.issue(email, name=name)}"}
    return _headers
