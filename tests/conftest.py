import os

# Settings are read at import time
os.environ["MONGODB_URI"] = "mongodb://localhost:27017"
os.environ["MONGODB_DB"] = "trendy_fashion_test"
os.environ["JWT_SECRET"] = "test-jwt-secret"
os.environ["RAZORPAY_KEY_SECRET"] = "test_key_secret"

import mongomock
import pytest
from fastapi.testclient import TestClient

import database
from main import app
from payments.gateway import RazorpayGateway, get_gateway
from seed import seed_products

GATEWAY_SECRET = "test_key_secret"


@pytest.fixture
def db():
    mock_db = mongomock.MongoClient()["trendy_fashion_test"]
    database.ensure_indexes(mock_db)
    return mock_db


@pytest.fixture
def gateway():
    # No key id: order creation falls back to a placeholder id, signatures still work
    return RazorpayGateway(key_id=None, key_secret=GATEWAY_SECRET)


@pytest.fixture
def client(db, gateway):
    app.dependency_overrides[database.get_db] = lambda: db
    app.dependency_overrides[get_gateway] = lambda: gateway
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def products(db):
    seed_products(db)
    return {p["name"]: str(p["_id"]) for p in db.products.find()}


@pytest.fixture
def register(client):
    def _register(name="Asha", email="asha@example.com", password="secret123"):
        res = client.post("/api/users/register", json={"name": name, "email": email, "password": password})
        assert res.status_code == 201, res.text
        return res.json()
    return _register


@pytest.fixture
def auth_headers(register):
    data = register()
    return {"Authorization": f"Bearer {data['token']}"}


@pytest.fixture
def shipping_info():
    return {
        "fullName": "Asha Rao",
        "email": "asha@example.com",
        "phone": "9876543210",
        "address": "12 MG Road",
        "city": "Bengaluru",
        "state": "Karnataka",
        "postalCode": "560001",
        "country": "India",
    }


@pytest.fixture
def place_order(client, products, shipping_info):
    def _place_order(headers, payment_method="cod"):
        body = {
            "items": [{"productId": products["Summer Dress"], "quantity": 1}],
            "shippingInfo": shipping_info,
            "paymentMethod": payment_method,
        }
        res = client.post("/api/orders", json=body, headers=headers)
        assert res.status_code == 201, res.text
        return res.json()
    return _place_order
