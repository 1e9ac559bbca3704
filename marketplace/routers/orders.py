from fastapi import APIRouter, Depends, HTTPException, Query, status

from marketplace.routers.deps import clamp_limit, get_order_service, require_uuid
from marketplace.schemas.order import (
    OrderCreate,
    OrderCreateData,
    OrderCreateResponse,
    OrderListData,
    OrderListResponse,
    OrderSummary,
    normalize_email,
)
from marketplace.schemas.search import PaginationInfo
from marketplace.services.order_service import OrderError, OrderService

router = APIRouter(prefix="/orders", tags=["Orders"])


@router.post("", response_model=OrderCreateResponse, status_code=status.HTTP_201_CREATED)
async def create_orders(body: OrderCreate, service: OrderService = Depends(get_order_service)):
    """
    Checkout a cart.

    Items are grouped by the organization selling them and one order is
    created per organization. Guests can check out; no identity is required.
    """
    try:
        orders, summary = await service.create_orders(body)
    except OrderError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message) from None

    return OrderCreateResponse(data=OrderCreateData(orders=orders, summary=OrderSummary(**summary)))


@router.get("/customer/{email}", response_model=OrderListResponse)
async def list_customer_orders(
    email: str,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, description="Page size, clamped to 1..50"),
    service: OrderService = Depends(get_order_service),
):
    try:
        email = normalize_email(email)
    except ValueError:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid email format") from None

    limit = clamp_limit(limit)
    orders, total = await service.list_for_customer(email, page=page, limit=limit)
    return OrderListResponse(data=OrderListData(orders=orders, pagination=PaginationInfo.build(page, limit, total)))


@router.get("/{order_id}")
async def get_order(order_id: str, service: OrderService = Depends(get_order_service)):
    require_uuid(order_id, "Invalid order ID")
    order = await service.get_order(order_id)
    if not order:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Order not found")
    return {"success": True, "data": {"order": order}}
