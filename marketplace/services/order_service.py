"""Checkout: one cart becomes one order per organization"""

import logging
import uuid
from collections import Counter
from datetime import UTC, datetime
from typing import Any

from motor.motor_asyncio import AsyncIOMotorDatabase

from marketplace.core.config import settings
from marketplace.schemas.order import OrderCreate, OrderItemIn
from marketplace.services.product_service import with_id

logger = logging.getLogger(__name__)


class OrderError(Exception):
    """A checkout the store cannot accept (missing product, short stock)."""

    def __init__(self, message: str, status_code: int):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


def group_items_by_organization(
    items: list[OrderItemIn],
    products: dict[str, dict[str, Any]],
) -> dict[str, dict[str, Any]]:
    """
    Split cart lines by the organization that sells each product.

    Returns {organization_id: {"items": [...], "total_amount": float}} in the
    order organizations first appear in the cart. Prices are taken from the
    stored product, never from the client.
    """
    groups: dict[str, dict[str, Any]] = {}
    for item in items:
        product = products[item.product_id]
        group = groups.setdefault(product["organization_id"], {"items": [], "total_amount": 0.0})
        group["items"].append(
            {
                "product_id": item.product_id,
                "name": product["name"],
                "category": product.get("category"),
                "quantity": item.quantity,
                "price": product["price"],
            }
        )
        group["total_amount"] += product["price"] * item.quantity

    for group in groups.values():
        group["total_amount"] = round(group["total_amount"], 2)
    return groups


class OrderService:
    def __init__(self, db: AsyncIOMotorDatabase):
        self.collection = db[settings.ORDERS_COLLECTION]
        self.products_collection = db[settings.PRODUCTS_COLLECTION]
        self.organizations_collection = db[settings.ORGANIZATIONS_COLLECTION]

    async def create_orders(self, order: OrderCreate) -> tuple[list[dict[str, Any]], dict[str, Any]]:
        """
        Create one PENDING order per organization in the cart.

        Raises OrderError when a product is missing or inactive (404) or when
        the requested quantity exceeds stock (400). Stock is checked, not
        reserved.
        """
        product_ids = list(dict.fromkeys(item.product_id for item in order.items))
        cursor = self.products_collection.find({"_id": {"$in": product_ids}, "is_active": True})
        products = {p["_id"]: p for p in await cursor.to_list(length=None)}
        if len(products) != len(product_ids):
            raise OrderError("One or more products not found or inactive", 404)

        requested = Counter()
        for item in order.items:
            requested[item.product_id] += item.quantity
        for product_id, quantity in requested.items():
            product = products[product_id]
            if product.get("stock_qty", 0) < quantity:
                raise OrderError(f"Insufficient stock for product: {product['name']}", 400)

        groups = group_items_by_organization(order.items, products)

        cursor = self.organizations_collection.find({"_id": {"$in": list(groups)}}, {"name": 1, "email": 1, "phone": 1})
        organizations = {o["_id"]: o for o in await cursor.to_list(length=None)}

        now = datetime.now(UTC)
        created = []
        for organization_id, group in groups.items():
            organization = organizations.get(organization_id, {})
            document = {
                "_id": str(uuid.uuid4()),
                "organization_id": organization_id,
                "organization": {
                    "id": organization_id,
                    "name": organization.get("name"),
                    "email": organization.get("email"),
                    "phone": organization.get("phone"),
                },
                "customer_name": order.customer_name,
                "customer_email": order.customer_email,
                "customer_phone": order.customer_phone or None,
                "status": "PENDING",
                "total_amount": group["total_amount"],
                "items": group["items"],
                "created_at": now,
                "updated_at": now,
            }
            await self.collection.insert_one(document)
            created.append(with_id(document))

        summary = {
            "totalOrders": len(created),
            "totalAmount": round(sum(o["total_amount"] for o in created), 2),
            "organizationsInvolved": len(groups),
        }
        logger.info(
            f"🛒 Checkout completed: customer={order.customer_email} "
            f"orders={summary['totalOrders']} total={summary['totalAmount']}"
        )
        return created, summary

    async def _paginate(self, query: dict[str, Any], page: int, limit: int) -> tuple[list[dict[str, Any]], int]:
        skip = (page - 1) * limit
        cursor = self.collection.find(query).sort("created_at", -1).skip(skip).limit(limit)
        orders = await cursor.to_list(length=limit)
        total = await self.collection.count_documents(query)
        return [with_id(o) for o in orders], total

    async def list_for_customer(self, email: str, page: int = 1, limit: int = 10) -> tuple[list[dict[str, Any]], int]:
        return await self._paginate({"customer_email": email}, page, limit)

    async def list_for_organization(
        self,
        organization_id: str,
        page: int = 1,
        limit: int = 10,
        status: str | None = None,
    ) -> tuple[list[dict[str, Any]], int]:
        query: dict[str, Any] = {"organization_id": organization_id}
        if status:
            query["status"] = status
        return await self._paginate(query, page, limit)

    async def get_order(self, order_id: str) -> dict[str, Any] | None:
        order = await self.collection.find_one({"_id": order_id})
        if order is None:
            return None
        return with_id(order)
