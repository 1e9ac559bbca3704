import uuid
from datetime import UTC, datetime

import pytest
from fastapi.testclient import TestClient

from marketplace.core.config import settings
from marketplace.main import app
from marketplace.routers.deps import get_order_service, get_organization_service, get_product_service
from marketplace.services import activity_log_service as activity_log_module
from marketplace.services.activity_log_service import ActivityLogService
from marketplace.services.order_service import OrderService
from marketplace.services.organization_service import OrganizationService
from marketplace.services.product_service import ProductService
from tests.fakes import FakeCollection, MemoryCollection, MemoryDatabase, make_product

CATEGORY_ID = str(uuid.uuid4())
ORG_HEADERS = {"X-User-Id": "u-1", "X-Organization-Id": "org-1"}


@pytest.fixture
def db():
    database = MemoryDatabase()
    database[settings.CATEGORIES_COLLECTION] = MemoryCollection([{"_id": CATEGORY_ID, "name": "Doces"}])
    database[settings.ORGANIZATIONS_COLLECTION] = MemoryCollection(
        [
            {"_id": "org-1", "name": "ONG Esperança", "email": "contato@esperanca.org"},
            {"_id": "org-2", "name": "Mãos que Tecem", "email": "oi@maos.org"},
        ]
    )
    database[settings.PRODUCTS_COLLECTION] = MemoryCollection(
        [
            make_product("Bolo de pote", "org-1", 12.5, stock_qty=5),
            make_product("Bolsa de crochê", "org-2", 80.0, stock_qty=2, category="Artesanato"),
        ]
    )
    return database


@pytest.fixture
def client(db):
    app.dependency_overrides[get_product_service] = lambda: ProductService(db)
    app.dependency_overrides[get_order_service] = lambda: OrderService(db)
    app.dependency_overrides[get_organization_service] = lambda: OrganizationService(db)
    activity_log_module._activity_log_service = ActivityLogService(FakeCollection())

    yield TestClient(app)

    app.dependency_overrides.clear()
    activity_log_module.reset_activity_log_service()


def product_id(db, name):
    return next(p["_id"] for p in db[settings.PRODUCTS_COLLECTION].documents if p["name"] == name)


def test_management_routes_require_organization(client):
    for method, path in [
        ("get", "/api/products"),
        ("post", "/api/products"),
        ("get", "/api/organizations"),
        ("get", "/api/organizations/orders"),
    ]:
        response = client.request(method.upper(), path, headers={"X-User-Id": "u-1"}, json={})
        assert response.status_code == 403, path
        assert response.json() == {"success": False, "message": "Organization membership required"}


def test_product_lifecycle(client, db):
    payload = {
        "name": "Brigadeiro gourmet",
        "description": "Caixa com 12 unidades",
        "price": 30,
        "categoryId": CATEGORY_ID,
        "stockQty": 10,
        "weightGrams": 200,
    }

    created = client.post("/api/products", json=payload, headers=ORG_HEADERS)
    assert created.status_code == 201
    product = created.json()["data"]["product"]
    assert product["category"]["name"] == "Doces"
    assert product["organization"]["name"] == "ONG Esperança"

    listing = client.get("/api/products", params={"search": "brigadeiro"}, headers=ORG_HEADERS).json()
    assert [p["id"] for p in listing["data"]["products"]] == [product["id"]]
    assert listing["data"]["pagination"]["limit"] == 10

    updated = client.put(
        f"/api/products/{product['id']}", json={"price": 35.5, "isActive": False}, headers=ORG_HEADERS
    )
    assert updated.status_code == 200
    assert updated.json()["data"]["product"]["price"] == 35.5
    assert updated.json()["data"]["product"]["is_active"] is False

    fetched = client.get(f"/api/products/{product['id']}", headers=ORG_HEADERS)
    assert fetched.json()["data"]["product"]["is_active"] is False

    deleted = client.delete(f"/api/products/{product['id']}", headers=ORG_HEADERS)
    assert deleted.json() == {
        "success": True,
        "message": "Product deleted successfully (including related order items)",
        "data": {"deleted": True},
    }
    assert client.get(f"/api/products/{product['id']}", headers=ORG_HEADERS).status_code == 404


def test_create_product_validation_and_unknown_category(client):
    invalid = client.post(
        "/api/products",
        json={"name": "", "description": "x", "price": 0, "categoryId": "nope", "stockQty": -1, "weightGrams": 0},
        headers=ORG_HEADERS,
    )
    assert invalid.status_code == 400
    assert invalid.json()["message"].startswith("Validation failed")

    unknown = client.post(
        "/api/products",
        json={
            "name": "Bolo",
            "description": "Bolo",
            "price": 10,
            "categoryId": str(uuid.uuid4()),
            "stockQty": 1,
            "weightGrams": 100,
        },
        headers=ORG_HEADERS,
    )
    assert unknown.status_code == 404
    assert unknown.json()["message"] == "Category not found"


def test_products_of_other_organizations_are_invisible(client, db):
    other = product_id(db, "Bolsa de crochê")

    assert client.get(f"/api/products/{other}", headers=ORG_HEADERS).status_code == 404
    assert client.put(f"/api/products/{other}", json={"price": 1}, headers=ORG_HEADERS).status_code == 404
    assert client.delete(f"/api/products/{other}", headers=ORG_HEADERS).status_code == 404
    assert client.get("/api/products/not-a-uuid", headers=ORG_HEADERS).json()["message"] == "Invalid product ID"


def test_checkout_splits_cart_by_organization(client, db):
    response = client.post(
        "/api/orders",
        json={
            "items": [
                {"productId": product_id(db, "Bolo de pote"), "quantity": 2},
                {"productId": product_id(db, "Bolsa de crochê"), "quantity": 1},
            ],
            "customerName": "Maria Silva",
            "customerEmail": "maria@example.com",
        },
    )

    assert response.status_code == 201
    data = response.json()["data"]
    assert data["summary"] == {"totalOrders": 2, "totalAmount": 105.0, "organizationsInvolved": 2}
    assert {o["organization_id"] for o in data["orders"]} == {"org-1", "org-2"}

    order_id = data["orders"][0]["id"]
    assert client.get(f"/api/orders/{order_id}").json()["data"]["order"]["customer_name"] == "Maria Silva"

    history = client.get("/api/orders/customer/Maria@Example.com").json()["data"]
    assert history["pagination"]["total"] == 2

    dashboard = client.get("/api/organizations", headers=ORG_HEADERS).json()["data"]["organization"]
    assert dashboard["name"] == "ONG Esperança"
    assert dashboard["product_count"] == 1
    assert dashboard["order_count"] == 1

    received = client.get("/api/organizations/orders", params={"status": "PENDING"}, headers=ORG_HEADERS)
    assert [o["total_amount"] for o in received.json()["data"]["orders"]] == [25.0]


def test_checkout_errors(client, db):
    base = {"customerName": "Maria Silva", "customerEmail": "maria@example.com"}

    bolsa = product_id(db, "Bolsa de crochê")
    short = client.post("/api/orders", json={**base, "items": [{"productId": bolsa, "quantity": 3}]})
    assert short.status_code == 400
    assert short.json()["message"] == "Insufficient stock for product: Bolsa de crochê"

    missing = client.post("/api/orders", json={**base, "items": [{"productId": str(uuid.uuid4()), "quantity": 1}]})
    assert missing.status_code == 404

    empty = client.post("/api/orders", json={**base, "items": []})
    assert empty.status_code == 400

    bad_email = client.post("/api/orders", json={**base, "customerEmail": "maria", "items": []})
    assert bad_email.status_code == 400


def test_order_lookup_errors(client, db):
    db[settings.ORDERS_COLLECTION].documents = [
        {"_id": str(uuid.uuid4()), "customer_email": "ana@example.com", "created_at": datetime(2024, 1, 1, tzinfo=UTC)}
    ]

    assert client.get("/api/orders/not-a-uuid").json()["message"] == "Invalid order ID"
    assert client.get(f"/api/orders/{uuid.uuid4()}").json()["message"] == "Order not found"
    assert client.get("/api/orders/customer/not-an-email").json()["message"] == "Invalid email format"
    assert client.get("/api/organizations/orders", params={"status": "LOST"}, headers=ORG_HEADERS).status_code == 400


def test_dashboard_for_unknown_organization(client):
    response = client.get("/api/organizations", headers={"X-Organization-Id": "org-404"})

    assert response.status_code == 404
    assert response.json()["message"] == "Organization not found"
