from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class SearchFilters(BaseModel):
    """Structured constraints derived from a free-text query. Every field is optional."""

    model_config = ConfigDict(populate_by_name=True)

    category: str | None = None
    price_min: float | None = Field(None, ge=0, alias="priceMin")
    price_max: float | None = Field(None, ge=0, alias="priceMax")
    keywords: list[str] = Field(default_factory=list)
    organization: str | None = None

    @field_validator("keywords", mode="before")
    @classmethod
    def _none_keywords(cls, value: Any) -> Any:
        return [] if value is None else value

    def is_empty(self) -> bool:
        return (
            self.category is None
            and self.price_min is None
            and self.price_max is None
            and not self.keywords
            and self.organization is None
        )


class Interpretation(BaseModel):
    """Filters plus the human-readable summary of what was understood"""

    filters: SearchFilters
    interpretation: str = Field(..., min_length=1)


class SearchOutcome(BaseModel):
    """Result handed back to the HTTP layer, whichever path produced it"""

    filters: SearchFilters
    interpretation: str = Field(..., min_length=1)
    ai_success: bool
    fallback_used: bool

    @model_validator(mode="after")
    def _exactly_one_path(self) -> "SearchOutcome":
        if self.ai_success == self.fallback_used:
            raise ValueError("exactly one of ai_success / fallback_used must be true")
        return self


class SearchActivityRecord(BaseModel):
    """One persisted entry per search invocation"""

    search_query: str
    ai_filters: SearchFilters
    ai_success: bool
    fallback_applied: bool
    user_id: str | None = None
    organization_id: str | None = None
    status_code: int = 200
    latency_ms: int = 0
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))

    def to_document(self) -> dict[str, Any]:
        document = self.model_dump(exclude={"ai_filters"})
        document["ai_filters"] = self.ai_filters.model_dump(by_alias=True, exclude_none=True)
        document["method"] = "SEARCH"
        document["route"] = "/api/search/intelligent"
        return document


# ============================================================================
# HTTP envelopes
# ============================================================================


class PaginationInfo(BaseModel):
    page: int
    limit: int
    total: int
    totalPages: int
    hasNext: bool
    hasPrev: bool

    @classmethod
    def build(cls, page: int, limit: int, total: int) -> "PaginationInfo":
        total_pages = -(-total // limit) if limit else 0
        return cls(
            page=page,
            limit=limit,
            total=total,
            totalPages=total_pages,
            hasNext=page < total_pages,
            hasPrev=page > 1,
        )


class SearchInfo(BaseModel):
    """Echo of the interpreted query, rendered back to the user"""

    query: str
    interpretation: str
    filters: dict[str, Any]
    aiSuccess: bool
    fallbackUsed: bool

    @classmethod
    def from_outcome(cls, query: str, outcome: SearchOutcome) -> "SearchInfo":
        return cls(
            query=query,
            interpretation=outcome.interpretation,
            filters=outcome.filters.model_dump(by_alias=True, exclude_none=True),
            aiSuccess=outcome.ai_success,
            fallbackUsed=outcome.fallback_used,
        )


class SearchData(BaseModel):
    products: list[dict[str, Any]]
    pagination: PaginationInfo
    searchInfo: SearchInfo


class SearchResponse(BaseModel):
    success: bool = True
    data: SearchData
