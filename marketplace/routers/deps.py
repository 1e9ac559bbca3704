import uuid
from dataclasses import dataclass

from fastapi import Depends, Header, HTTPException, status

from marketplace.core.mongo import get_mongo_db
from marketplace.services.order_service import OrderService
from marketplace.services.organization_service import OrganizationService
from marketplace.services.product_service import ProductService

MAX_PAGE_SIZE = 50


@dataclass(frozen=True)
class Identity:
    user_id: str | None = None
    organization_id: str | None = None


async def resolve_identity(
    x_user_id: str | None = Header(default=None),
    x_organization_id: str | None = Header(default=None),
) -> Identity:
    """
    Identity attached by the upstream authentication step.
    - 'X-User-Id' and 'X-Organization-Id' headers, both optional.
    - Anonymous callers get an empty Identity.
    """
    return Identity(user_id=x_user_id or None, organization_id=x_organization_id or None)


async def require_organization(identity: Identity = Depends(resolve_identity)) -> str:
    """Organization id of the caller; management routes are closed to everyone else."""
    if not identity.organization_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Organization membership required")
    return identity.organization_id


def clamp_limit(limit: int) -> int:
    return min(MAX_PAGE_SIZE, max(1, limit))


def get_product_service() -> ProductService:
    db = get_mongo_db()
    return ProductService(db)


def get_order_service() -> OrderService:
    return OrderService(get_mongo_db())


def get_organization_service() -> OrganizationService:
    return OrganizationService(get_mongo_db())


def require_uuid(value: str, detail: str) -> str:
    """400 with the given message unless value is a UUID."""
    try:
        uuid.UUID(value)
    except ValueError:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=detail) from None
    return value
