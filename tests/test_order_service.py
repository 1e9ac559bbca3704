from datetime import UTC, datetime

import pytest

from marketplace.core.config import settings
from marketplace.schemas.order import OrderCreate, OrderItemIn
from marketplace.services.order_service import OrderError, OrderService, group_items_by_organization
from tests.fakes import MemoryCollection, MemoryDatabase, make_product


def checkout(*items, email="Maria@Example.com"):
    return OrderCreate(
        items=[{"productId": product["_id"], "quantity": quantity} for product, quantity in items],
        customerName="Maria Silva",
        customerEmail=email,
    )


@pytest.fixture
def catalogue():
    return {
        "bolo": make_product("Bolo de pote", "org-a", 12.5),
        "brigadeiro": make_product("Brigadeiro", "org-a", 2.3, stock_qty=100),
        "bolsa": make_product("Bolsa de crochê", "org-b", 80.0, stock_qty=1, category="Artesanato"),
        "vaso": make_product("Vaso", "org-b", 40.0, is_active=False, category="Decoração"),
    }


@pytest.fixture
def db(catalogue):
    database = MemoryDatabase()
    database[settings.PRODUCTS_COLLECTION] = MemoryCollection(list(catalogue.values()))
    database[settings.ORGANIZATIONS_COLLECTION] = MemoryCollection(
        [
            {"_id": "org-a", "name": "ONG Esperança", "email": "contato@esperanca.org", "phone": "1133334444"},
            {"_id": "org-b", "name": "Mãos que Tecem", "email": "oi@maos.org", "phone": None},
        ]
    )
    return database


def test_grouping_keeps_cart_order_and_stored_prices(catalogue):
    products = {p["_id"]: p for p in catalogue.values()}
    items = [
        OrderItemIn(product_id=catalogue["bolsa"]["_id"], quantity=1),
        OrderItemIn(product_id=catalogue["bolo"]["_id"], quantity=2),
        OrderItemIn(product_id=catalogue["brigadeiro"]["_id"], quantity=3),
    ]

    groups = group_items_by_organization(items, products)

    assert list(groups) == ["org-b", "org-a"]
    assert groups["org-b"]["total_amount"] == 80.0
    assert groups["org-a"]["total_amount"] == 31.9
    assert [i["name"] for i in groups["org-a"]["items"]] == ["Bolo de pote", "Brigadeiro"]
    assert groups["org-a"]["items"][0]["price"] == 12.5


@pytest.mark.asyncio
async def test_checkout_creates_one_order_per_organization(db, catalogue):
    service = OrderService(db)

    orders, summary = await service.create_orders(
        checkout((catalogue["bolo"], 2), (catalogue["bolsa"], 1), (catalogue["brigadeiro"], 5))
    )

    assert summary == {"totalOrders": 2, "totalAmount": 116.5, "organizationsInvolved": 2}
    by_org = {o["organization_id"]: o for o in orders}
    assert by_org["org-a"]["total_amount"] == 36.5
    assert by_org["org-a"]["organization"]["name"] == "ONG Esperança"
    assert by_org["org-b"]["total_amount"] == 80.0
    assert all(o["status"] == "PENDING" for o in orders)
    assert all(o["customer_email"] == "maria@example.com" for o in orders)
    assert all("id" in o and "_id" not in o for o in orders)

    stored = db[settings.ORDERS_COLLECTION].documents
    assert len(stored) == 2


@pytest.mark.asyncio
async def test_checkout_rejects_inactive_or_unknown_products(db, catalogue):
    service = OrderService(db)

    with pytest.raises(OrderError) as exc_info:
        await service.create_orders(checkout((catalogue["bolo"], 1), (catalogue["vaso"], 1)))

    assert exc_info.value.status_code == 404
    assert exc_info.value.message == "One or more products not found or inactive"
    assert db[settings.ORDERS_COLLECTION].documents == []


@pytest.mark.asyncio
async def test_checkout_rejects_insufficient_stock(db, catalogue):
    service = OrderService(db)

    with pytest.raises(OrderError) as exc_info:
        await service.create_orders(checkout((catalogue["bolsa"], 2)))

    assert exc_info.value.status_code == 400
    assert exc_info.value.message == "Insufficient stock for product: Bolsa de crochê"


@pytest.mark.asyncio
async def test_stock_check_sums_repeated_cart_lines(db, catalogue):
    service = OrderService(db)

    with pytest.raises(OrderError) as exc_info:
        await service.create_orders(checkout((catalogue["bolsa"], 1), (catalogue["bolsa"], 1)))

    assert exc_info.value.status_code == 400


@pytest.mark.asyncio
async def test_customer_and_organization_listings(db):
    orders = db[settings.ORDERS_COLLECTION]
    for day, (org, email, status) in enumerate(
        [
            ("org-a", "maria@example.com", "PENDING"),
            ("org-b", "maria@example.com", "SHIPPED"),
            ("org-a", "joao@example.com", "PENDING"),
        ],
        start=1,
    ):
        await orders.insert_one(
            {
                "_id": f"order-{day}",
                "organization_id": org,
                "customer_email": email,
                "status": status,
                "created_at": datetime(2024, 3, day, tzinfo=UTC),
            }
        )
    service = OrderService(db)

    customer_orders, total = await service.list_for_customer("maria@example.com")
    assert total == 2
    assert [o["id"] for o in customer_orders] == ["order-2", "order-1"]

    org_orders, total = await service.list_for_organization("org-a", status="PENDING", limit=1)
    assert total == 2
    assert [o["id"] for o in org_orders] == ["order-3"]

    assert (await service.get_order("order-1"))["customer_email"] == "maria@example.com"
    assert await service.get_order("missing") is None
