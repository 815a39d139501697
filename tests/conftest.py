# tests/conftest.py
import os
import sys
import tempfile
from datetime import datetime, timedelta
from pathlib import Path

import pandas as pd
import pytest
from fastapi.testclient import TestClient

# ensure project root is importable
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

# point DATA_DIR at a temp dir before farmly.config / farmly.database are imported
_tmp_data_dir = tempfile.mkdtemp(prefix="farmly_test_data_")
os.environ["DATA_DIR"] = _tmp_data_dir

from farmly import database as farmly_database  # noqa: E402
from farmly.main import app  # noqa: E402
from farmly.services.cart_store import registry  # noqa: E402


@pytest.fixture(autouse=True)
def temp_data_dir(tmp_path):
    """
    Every test gets its own empty data directory and a fresh set of cart sessions.
    """
    original = farmly_database.db.data_dir
    farmly_database.db.data_dir = Path(tmp_path)
    registry.reset()
    try:
        yield Path(tmp_path)
    finally:
        farmly_database.db.data_dir = original
        registry.reset()


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def db():
    return farmly_database.db


def write_table(table: str, rows):
    """Write `rows` as the whole CSV table (used to seed catalog data)."""
    path = farmly_database.db._file_path(table)
    path.parent.mkdir(parents=True, exist_ok=True)
    pd.DataFrame(rows).to_csv(path, index=False)
    return path


@pytest.fixture
def seeded_catalog(temp_data_dir):
    """
    Two farms, three products, one upcoming and one past event.
    Event 1 offers products 1 and 2; product 3 is not offered anywhere.
    """
    now = datetime.utcnow()
    write_table("farms", [
        {"id": 1, "name": "Green Valley", "description": "", "city": "Brno", "street": "Polni 1",
         "region": "JM", "postal_code": "60200", "country": "CZ", "created_at": "2026-01-01 10:00:00"},
        {"id": 2, "name": "Hill Dairy", "description": "", "city": "Olomouc", "street": "Kopec 3",
         "region": "OL", "postal_code": "77900", "country": "CZ", "created_at": "2026-02-01 10:00:00"},
    ])
    write_table("products", [
        {"id": 1, "name": "Carrots", "category": "Vegetables", "price": 2.5, "stock": 40, "farm_id": 1,
         "seller_name": "Green Valley", "rating": "", "created_at": "2026-01-01 10:00:00"},
        {"id": 2, "name": "Goat cheese", "category": "Dairy", "price": 6.0, "stock": 12, "farm_id": 2,
         "seller_name": "Hill Dairy", "rating": "", "created_at": "2026-01-02 10:00:00"},
        {"id": 3, "name": "Carrot juice", "category": "Drinks", "price": 3.0, "stock": 5, "farm_id": 1,
         "seller_name": "Green Valley", "rating": "", "created_at": "2026-01-03 10:00:00"},
    ])
    write_table("events", [
        {"id": 1, "title": "Saturday market", "description": "",
         "start_date": (now + timedelta(days=2)).isoformat(), "end_date": (now + timedelta(days=2, hours=6)).isoformat(),
         "city": "Brno", "street": "Zelny trh", "region": "JM", "postal_code": "60200", "country": "CZ"},
        {"id": 2, "title": "Last year's fair", "description": "",
         "start_date": (now - timedelta(days=300)).isoformat(), "end_date": (now - timedelta(days=299)).isoformat(),
         "city": "Praha", "street": "Namesti", "region": "PH", "postal_code": "11000", "country": "CZ"},
    ])
    write_table("event_products", [
        {"id": 1, "event_id": 1, "product_id": 1, "product_name": "Carrots", "seller_name": "Green Valley",
         "stall_name": "Stall A", "price": 2.3, "stock": 20},
        {"id": 2, "event_id": 1, "product_id": 2, "product_name": "Goat cheese", "seller_name": "Hill Dairy",
         "stall_name": "", "price": 5.5, "stock": 8},
    ])
    return temp_data_dir


def make_item(product_id=1, name="Carrots", seller="Green Valley", price=2.5, quantity=1, stock=None):
    item = {"productId": product_id, "productName": name, "sellerName": seller,
            "unitPrice": price, "quantity": quantity}
    if stock is not None:
        item["stock"] = stock
    return item


STANDARD_USER = {
    "email": "buyer@example.com",
    "contactName": "Jana Novakova",
    "contactPhone": "+420777123456",
    "deliveryCity": "Brno",
    "deliveryStreet": "Hlavni 5",
    "deliveryPostalCode": "60200",
    "deliveryCountry": "CZ",
    "paymentMethod": "CARD",
}

PREORDER_USER = {
    "email": "buyer@example.com",
    "contactName": "Jana Novakova",
    "contactPhone": "777123456",
}


@pytest.fixture
def place_order(client, seeded_catalog):
    """
    Fill the cart under `key` and check it out. Returns the checkout response JSON.
    Usage: order = place_order(payment_method="CASH")
    """
    def _fn(key="cart-orders", payment_method="CARD", items=None):
        for item in items or [make_item(quantity=2), make_item(2, "Goat cheese", "Hill Dairy", 6.0)]:
            r = client.post(f"/api/cart/{key}/items", json={"item": item, "kind": "STANDARD"})
            assert r.status_code == 200, r.text
        user = dict(STANDARD_USER, paymentMethod=payment_method)
        r = client.post(f"/api/checkout/{key}", json={"userInfo": user})
        assert r.status_code == 200, r.text
        return r.json()
    return _fn
