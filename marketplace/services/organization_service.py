from typing import Any

from motor.motor_asyncio import AsyncIOMotorDatabase

from marketplace.core.config import settings
from marketplace.services.product_service import with_id


class OrganizationService:
    def __init__(self, db: AsyncIOMotorDatabase):
        self.collection = db[settings.ORGANIZATIONS_COLLECTION]
        self.products_collection = db[settings.PRODUCTS_COLLECTION]
        self.orders_collection = db[settings.ORDERS_COLLECTION]

    async def get_dashboard(self, organization_id: str) -> dict[str, Any] | None:
        """The organization with its active product and order counts."""
        organization = await self.collection.find_one({"_id": organization_id})
        if organization is None:
            return None

        organization = with_id(organization)
        organization["product_count"] = await self.products_collection.count_documents(
            {"organization_id": organization_id, "is_active": True}
        )
        organization["order_count"] = await self.orders_collection.count_documents(
            {"organization_id": organization_id}
        )
        return organization
