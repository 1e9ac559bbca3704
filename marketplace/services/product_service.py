import logging
import re
import uuid
from datetime import UTC, datetime
from typing import Any

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument

from marketplace.core.config import settings
from marketplace.schemas.product import ProductCreate, ProductUpdate
from marketplace.schemas.search import SearchFilters

logger = logging.getLogger(__name__)


def _contains(text: str) -> dict[str, str]:
    """Case-insensitive substring match on user supplied text."""
    return {"$regex": re.escape(text), "$options": "i"}


def build_product_query(
    filters: SearchFilters,
    organization_id: str | None = None,
    exact_category: bool = True,
) -> dict[str, Any]:
    """
    Build the MongoDB filter for a product listing from search filters.

    Only active products are returned. A contradictory price range is passed
    through as-is and simply matches nothing.
    """
    query: dict[str, Any] = {"is_active": True}

    if organization_id:
        query["organization_id"] = organization_id

    if filters.category:
        query["category.name"] = filters.category if exact_category else _contains(filters.category)

    # Zero bounds are treated as absent
    if filters.price_min or filters.price_max:
        price: dict[str, float] = {}
        if filters.price_min:
            price["$gte"] = filters.price_min
        if filters.price_max:
            price["$lte"] = filters.price_max
        query["price"] = price

    if filters.keywords:
        phrase = " ".join(filters.keywords)
        query["$or"] = [{"name": _contains(phrase)}, {"description": _contains(phrase)}]

    if filters.organization:
        query["organization.name"] = _contains(filters.organization)

    return query


def with_id(document: dict[str, Any]) -> dict[str, Any]:
    document["id"] = str(document.pop("_id"))
    return document


def _category_ref(category: dict[str, Any]) -> dict[str, Any]:
    return {"id": str(category["_id"]), "name": category["name"]}


class ProductService:
    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db
        self.collection = db[settings.PRODUCTS_COLLECTION]
        self.categories_collection = db[settings.CATEGORIES_COLLECTION]
        self.organizations_collection = db[settings.ORGANIZATIONS_COLLECTION]

    async def find_matching(self, query: dict[str, Any], page: int = 1, limit: int = 20) -> tuple[list[dict[str, Any]], int]:
        """Return one page of matching products (newest first) and the total match count."""
        skip = (page - 1) * limit
        cursor = self.collection.find(query).sort("created_at", -1).skip(skip).limit(limit)
        products = await cursor.to_list(length=limit)
        total = await self.collection.count_documents(query)
        return [with_id(p) for p in products], total

    async def get_product(self, product_id: str) -> dict[str, Any] | None:
        product = await self.collection.find_one({"_id": product_id, "is_active": True})
        if product is None:
            return None
        return with_id(product)

    async def list_categories(self) -> list[dict[str, Any]]:
        """All categories with their active product counts, sorted by name."""
        pipeline = [
            {"$match": {"is_active": True}},
            {"$group": {"_id": "$category.name", "count": {"$sum": 1}}},
        ]
        counts = {row["_id"]: row["count"] async for row in self.collection.aggregate(pipeline)}

        cursor = self.categories_collection.find({}, {"name": 1}).sort("name", 1)
        categories = await cursor.to_list(length=None)
        return [
            {"id": str(c["_id"]), "name": c["name"], "product_count": counts.get(c["name"], 0)}
            for c in categories
        ]

    async def list_organizations(self) -> list[dict[str, Any]]:
        """Organizations that currently list at least one active product."""
        pipeline = [
            {"$match": {"is_active": True}},
            {"$group": {"_id": "$organization_id", "count": {"$sum": 1}}},
        ]
        counts = {row["_id"]: row["count"] async for row in self.collection.aggregate(pipeline)}
        if not counts:
            return []

        cursor = self.organizations_collection.find(
            {"_id": {"$in": list(counts)}},
            {"name": 1, "description": 1, "website": 1},
        ).sort("name", 1)
        organizations = await cursor.to_list(length=None)
        return [
            {
                "id": str(o["_id"]),
                "name": o["name"],
                "description": o.get("description"),
                "website": o.get("website"),
                "product_count": counts.get(o["_id"], 0),
            }
            for o in organizations
        ]

    # ------------------------------------------------------------------
    # Organization-scoped catalogue management
    # ------------------------------------------------------------------

    async def list_for_organization(
        self,
        organization_id: str,
        page: int = 1,
        limit: int = 10,
        category: str | None = None,
        search: str | None = None,
    ) -> tuple[list[dict[str, Any]], int]:
        """Every product of one organization, inactive ones included."""
        query: dict[str, Any] = {"organization_id": organization_id}
        if category:
            query["category.name"] = category
        if search:
            query["$or"] = [{"name": _contains(search)}, {"description": _contains(search)}]
        return await self.find_matching(query, page=page, limit=limit)

    async def get_for_organization(self, organization_id: str, product_id: str) -> dict[str, Any] | None:
        product = await self.collection.find_one({"_id": product_id, "organization_id": organization_id})
        if product is None:
            return None
        return with_id(product)

    async def get_category(self, category_id: str) -> dict[str, Any] | None:
        return await self.categories_collection.find_one({"_id": category_id})

    async def create_product(
        self,
        organization_id: str,
        data: ProductCreate,
        category: dict[str, Any],
    ) -> dict[str, Any]:
        organization = await self.organizations_collection.find_one({"_id": organization_id}, {"name": 1})
        now = datetime.now(UTC)
        document = {
            "_id": str(uuid.uuid4()),
            **data.model_dump(exclude={"category_id"}),
            "is_active": True,
            "category": _category_ref(category),
            "organization_id": organization_id,
            "organization": {"id": organization_id, "name": organization["name"] if organization else None},
            "created_at": now,
            "updated_at": now,
        }
        await self.collection.insert_one(document)
        logger.info(f"Product created: id={document['_id']} organization={organization_id}")
        return with_id(document)

    async def update_product(
        self,
        organization_id: str,
        product_id: str,
        data: ProductUpdate,
        category: dict[str, Any] | None = None,
    ) -> dict[str, Any] | None:
        """Apply the fields the client sent; None means the product is not in this organization."""
        changes = {
            key: value
            for key, value in data.model_dump(exclude_unset=True, exclude={"category_id"}).items()
            if value is not None or key == "image_url"
        }
        if category is not None:
            changes["category"] = _category_ref(category)
        changes["updated_at"] = datetime.now(UTC)

        product = await self.collection.find_one_and_update(
            {"_id": product_id, "organization_id": organization_id},
            {"$set": changes},
            return_document=ReturnDocument.AFTER,
        )
        if product is None:
            return None
        return with_id(product)

    async def delete_product(self, organization_id: str, product_id: str) -> bool:
        """Delete a product and remove it from the orders that reference it."""
        result = await self.collection.delete_one({"_id": product_id, "organization_id": organization_id})
        if not result.deleted_count:
            return False

        orders = self.db[settings.ORDERS_COLLECTION]
        pulled = await orders.update_many(
            {"items.product_id": product_id},
            {"$pull": {"items": {"product_id": product_id}}},
        )
        logger.info(
            f"Product deleted: id={product_id} organization={organization_id} orders_touched={pulled.modified_count}"
        )
        return True
