from fastapi import APIRouter, Depends, HTTPException, Query, status

from marketplace.routers.deps import clamp_limit, get_product_service, require_organization, require_uuid
from marketplace.schemas.product import ProductCreate, ProductListData, ProductListResponse, ProductUpdate
from marketplace.schemas.search import PaginationInfo
from marketplace.services.product_service import ProductService

router = APIRouter(prefix="/products", tags=["Products"])


@router.get("", response_model=ProductListResponse)
async def list_products(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, description="Page size, clamped to 1..50"),
    category: str | None = Query(default=None, description="Exact category name"),
    search: str | None = Query(default=None, description="Text matched against name and description"),
    organization_id: str = Depends(require_organization),
    service: ProductService = Depends(get_product_service),
):
    """The caller's own catalogue, inactive products included."""
    limit = clamp_limit(limit)
    products, total = await service.list_for_organization(
        organization_id, page=page, limit=limit, category=category or None, search=search or None
    )
    return ProductListResponse(
        data=ProductListData(products=products, pagination=PaginationInfo.build(page, limit, total))
    )


@router.get("/{product_id}")
async def get_product(
    product_id: str,
    organization_id: str = Depends(require_organization),
    service: ProductService = Depends(get_product_service),
):
    require_uuid(product_id, "Invalid product ID")
    product = await service.get_for_organization(organization_id, product_id)
    if not product:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Product not found")
    return {"success": True, "data": {"product": product}}


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_product(
    body: ProductCreate,
    organization_id: str = Depends(require_organization),
    service: ProductService = Depends(get_product_service),
):
    category = await service.get_category(body.category_id)
    if not category:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Category not found")

    product = await service.create_product(organization_id, body, category)
    return {"success": True, "data": {"product": product}}


@router.put("/{product_id}")
async def update_product(
    product_id: str,
    body: ProductUpdate,
    organization_id: str = Depends(require_organization),
    service: ProductService = Depends(get_product_service),
):
    """
    Partial update of one of the caller's products.

    Only fields present in the body change; `isActive: false` hides the
    product from public listings and search.
    """
    require_uuid(product_id, "Invalid product ID")
    if not await service.get_for_organization(organization_id, product_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Product not found")

    category = None
    if body.category_id:
        category = await service.get_category(body.category_id)
        if not category:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Category not found")

    product = await service.update_product(organization_id, product_id, body, category)
    if not product:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Product not found")
    return {"success": True, "data": {"product": product}}


@router.delete("/{product_id}")
async def delete_product(
    product_id: str,
    organization_id: str = Depends(require_organization),
    service: ProductService = Depends(get_product_service),
):
    require_uuid(product_id, "Invalid product ID")
    if not await service.delete_product(organization_id, product_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Product not found")
    return {
        "success": True,
        "message": "Product deleted successfully (including related order items)",
        "data": {"deleted": True},
    }
