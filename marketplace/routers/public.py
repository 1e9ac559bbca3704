from fastapi import APIRouter, Depends, HTTPException, Query, status

from marketplace.routers.deps import clamp_limit, get_product_service, require_uuid
from marketplace.schemas.product import CategorySummary, OrganizationSummary, ProductListData, ProductListResponse
from marketplace.schemas.search import PaginationInfo, SearchData, SearchFilters, SearchInfo, SearchResponse
from marketplace.services.product_service import ProductService, build_product_query
from marketplace.services.search_service import SearchService, get_search_service

router = APIRouter(prefix="/public", tags=["Public"])


@router.get("/products", response_model=ProductListResponse)
async def list_products(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=12, description="Page size, clamped to 1..50"),
    category: str | None = Query(default=None),
    price_min: float | None = Query(default=None, ge=0, alias="priceMin"),
    price_max: float | None = Query(default=None, ge=0, alias="priceMax"),
    search: str | None = Query(default=None),
    organization: str | None = Query(default=None),
    service: ProductService = Depends(get_product_service),
):
    """Browse active products with optional filters."""
    limit = clamp_limit(limit)
    filters = SearchFilters(
        category=category or None,
        price_min=price_min,
        price_max=price_max,
        keywords=[search] if search else [],
        organization=organization or None,
    )
    products, total = await service.find_matching(build_product_query(filters), page=page, limit=limit)
    return ProductListResponse(
        data=ProductListData(products=products, pagination=PaginationInfo.build(page, limit, total))
    )


@router.get("/products/{product_id}")
async def get_product(product_id: str, service: ProductService = Depends(get_product_service)):
    """Get a single active product."""
    require_uuid(product_id, "Invalid product ID")
    product = await service.get_product(product_id)
    if not product:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Product not found")
    return {"success": True, "data": {"product": product}}


@router.get("/categories")
async def list_categories(service: ProductService = Depends(get_product_service)):
    """All categories with their active product counts."""
    categories = [CategorySummary(**c) for c in await service.list_categories()]
    return {"success": True, "data": {"categories": categories}}


@router.get("/organizations")
async def list_organizations(service: ProductService = Depends(get_product_service)):
    """Organizations with at least one active product."""
    organizations = [OrganizationSummary(**o) for o in await service.list_organizations()]
    return {"success": True, "data": {"organizations": organizations}}


@router.post("/search", response_model=SearchResponse)
async def public_search(
    q: str = Query(..., min_length=1, max_length=200, description="Natural language search query"),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=12),
    search_service: SearchService = Depends(get_search_service),
    product_service: ProductService = Depends(get_product_service),
):
    """Anonymous natural-language search; categories must match exactly."""
    q = q.strip()
    if not q:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Search query is required")

    limit = clamp_limit(limit)
    outcome = await search_service.search(q)

    products, total = await product_service.find_matching(
        build_product_query(outcome.filters), page=page, limit=limit
    )
    return SearchResponse(
        data=SearchData(
            products=products,
            pagination=PaginationInfo.build(page, limit, total),
            searchInfo=SearchInfo.from_outcome(q, outcome),
        )
    )
