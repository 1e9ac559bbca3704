import time

from fastapi import APIRouter, Depends, Query

from marketplace.routers.deps import Identity, get_product_service, resolve_identity
from marketplace.schemas.product import ProductListData, ProductListResponse
from marketplace.schemas.search import PaginationInfo, SearchData, SearchFilters, SearchInfo, SearchResponse
from marketplace.services.product_service import ProductService, build_product_query
from marketplace.services.search_service import SearchService, get_search_service

router = APIRouter(prefix="/search", tags=["Search"])


@router.get("/intelligent", response_model=SearchResponse)
async def intelligent_search(
    q: str = Query(..., min_length=1, max_length=200, description="Natural language search query"),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    identity: Identity = Depends(resolve_identity),
    search_service: SearchService = Depends(get_search_service),
    product_service: ProductService = Depends(get_product_service),
):
    """
    Natural-language product search.

    The query is interpreted by the AI model when available, otherwise by the
    rule-based parser. Results are scoped to the caller's organization when
    one is attached to the request.

    📝 **Examples:**
        ```
        GET /api/search/intelligent?q=doces até 50 reais
        GET /api/search/intelligent?q=artesanato da ONG Esperança
        ```
    """
    start = time.perf_counter()
    outcome = await search_service.search(q, identity.user_id, identity.organization_id)

    query = build_product_query(outcome.filters, identity.organization_id, exact_category=False)
    try:
        products, total = await product_service.find_matching(query, page=page, limit=limit)
    except Exception:
        latency_ms = int((time.perf_counter() - start) * 1000)
        search_service.record_failure(q, latency_ms, identity.user_id, identity.organization_id)
        raise

    return SearchResponse(
        data=SearchData(
            products=products,
            pagination=PaginationInfo.build(page, limit, total),
            searchInfo=SearchInfo.from_outcome(q, outcome),
        )
    )


@router.get("/products", response_model=ProductListResponse)
async def text_search(
    q: str | None = Query(default=None, description="Text matched against name and description"),
    category: str | None = Query(default=None),
    min_price: float | None = Query(default=None, ge=0, alias="minPrice"),
    max_price: float | None = Query(default=None, ge=0, alias="maxPrice"),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    product_service: ProductService = Depends(get_product_service),
):
    """Classic filtered search, no interpretation involved."""
    filters = SearchFilters(
        category=category or None,
        price_min=min_price,
        price_max=max_price,
        keywords=[q] if q else [],
    )
    query = build_product_query(filters, exact_category=False)
    products, total = await product_service.find_matching(query, page=page, limit=limit)

    return ProductListResponse(
        data=ProductListData(products=products, pagination=PaginationInfo.build(page, limit, total))
    )
