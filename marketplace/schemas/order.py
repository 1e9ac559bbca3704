import re
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from marketplace.schemas.product import check_uuid
from marketplace.schemas.search import PaginationInfo

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

OrderStatus = Literal["PENDING", "CONFIRMED", "PROCESSING", "SHIPPED", "DELIVERED", "CANCELLED"]


def normalize_email(value: str) -> str:
    value = value.strip().lower()
    if not EMAIL_PATTERN.match(value):
        raise ValueError("Invalid email format")
    return value


class OrderItemIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    product_id: str = Field(..., alias="productId")
    quantity: int = Field(..., ge=1)

    @field_validator("product_id")
    @classmethod
    def validate_product_id(cls, value: str) -> str:
        return check_uuid(value)


class OrderCreate(BaseModel):
    """Checkout payload; a cart may span several organizations"""

    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    items: list[OrderItemIn] = Field(..., min_length=1)
    customer_name: str = Field(..., min_length=2, max_length=255, alias="customerName")
    customer_email: str = Field(..., alias="customerEmail")
    customer_phone: str | None = Field(None, min_length=10, max_length=20, alias="customerPhone")

    @field_validator("customer_email")
    @classmethod
    def validate_customer_email(cls, value: str) -> str:
        return normalize_email(value)


class OrderSummary(BaseModel):
    totalOrders: int
    totalAmount: float
    organizationsInvolved: int


class OrderCreateData(BaseModel):
    orders: list[dict[str, Any]]
    summary: OrderSummary


class OrderCreateResponse(BaseModel):
    success: bool = True
    data: OrderCreateData


class OrderListData(BaseModel):
    orders: list[dict[str, Any]]
    pagination: PaginationInfo


class OrderListResponse(BaseModel):
    success: bool = True
    data: OrderListData
