from fastapi import APIRouter, Depends, HTTPException, Query, status

from marketplace.routers.deps import clamp_limit, get_order_service, get_organization_service, require_organization
from marketplace.schemas.order import OrderListData, OrderListResponse, OrderStatus
from marketplace.schemas.search import PaginationInfo
from marketplace.services.order_service import OrderService
from marketplace.services.organization_service import OrganizationService

router = APIRouter(prefix="/organizations", tags=["Organizations"])


@router.get("")
async def get_dashboard(
    organization_id: str = Depends(require_organization),
    service: OrganizationService = Depends(get_organization_service),
):
    """The caller's organization with active product and order counts."""
    organization = await service.get_dashboard(organization_id)
    if not organization:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Organization not found")
    return {"success": True, "data": {"organization": organization}}


@router.get("/orders", response_model=OrderListResponse)
async def list_orders(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, description="Page size, clamped to 1..50"),
    order_status: OrderStatus | None = Query(default=None, alias="status"),
    organization_id: str = Depends(require_organization),
    service: OrderService = Depends(get_order_service),
):
    """Orders received by the caller's organization, newest first."""
    limit = clamp_limit(limit)
    orders, total = await service.list_for_organization(organization_id, page=page, limit=limit, status=order_status)
    return OrderListResponse(data=OrderListData(orders=orders, pagination=PaginationInfo.build(page, limit, total)))
