import uuid
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from marketplace.schemas.search import PaginationInfo


class ProductListData(BaseModel):
    products: list[dict[str, Any]]
    pagination: PaginationInfo


class ProductListResponse(BaseModel):
    success: bool = True
    data: ProductListData


class CategorySummary(BaseModel):
    id: str
    name: str
    product_count: int = 0


class OrganizationSummary(BaseModel):
    id: str
    name: str
    description: str | None = None
    website: str | None = None
    product_count: int = 0


def check_uuid(value: str) -> str:
    uuid.UUID(value)
    return value


class ProductCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    name: str = Field(..., min_length=1, max_length=255)
    description: str = Field(..., min_length=1, max_length=2000)
    price: float = Field(..., ge=0.01)
    category_id: str = Field(..., alias="categoryId")
    stock_qty: int = Field(..., ge=0, alias="stockQty")
    weight_grams: int = Field(..., ge=1, alias="weightGrams")
    image_url: str | None = Field(None, alias="imageUrl")

    @field_validator("category_id")
    @classmethod
    def validate_category_id(cls, value: str) -> str:
        return check_uuid(value)


class ProductUpdate(BaseModel):
    """Partial update; only the fields sent by the client are applied"""

    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    name: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = Field(None, min_length=1, max_length=2000)
    price: float | None = Field(None, ge=0.01)
    category_id: str | None = Field(None, alias="categoryId")
    stock_qty: int | None = Field(None, ge=0, alias="stockQty")
    weight_grams: int | None = Field(None, ge=1, alias="weightGrams")
    image_url: str | None = Field(None, alias="imageUrl")
    is_active: bool | None = Field(None, alias="isActive")

    @field_validator("category_id")
    @classmethod
    def validate_category_id(cls, value: str | None) -> str | None:
        return check_uuid(value) if value else None
