from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from kitchen_stock.schemas.common import PaginationMeta

ALLOWED_ORDER_STATUSES = {"pending", "confirmed", "cancelled"}
# legacy spelling still sent by older order forms
ORDER_STATUS_ALIASES = {"pendente": "pending"}


class OrderItemIn(BaseModel):
    product_id: str
    quantity: Decimal = Field(ge=0)
    unit_price: Decimal = Field(ge=0)


class OrderItemOut(BaseModel):
    product_id: str
    quantity: float
    unit_price: float
    total_price: float


class PurchaseOrderCreate(BaseModel):
    supplier: str = Field(min_length=1, max_length=255)
    order_date: date
    items: list[OrderItemIn] = Field(min_length=1)
    status: str = "pending"
    operator_name: Optional[str] = Field(default=None, max_length=255)
    notes: Optional[str] = None

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "supplier": "Ortofrutta Bianchi",
                "order_date": "2026-10-01",
                "operator_name": "Giulia",
                "items": [
                    {"product_id": "product-x", "quantity": 10, "unit_price": 2.0},
                    {"product_id": "product-y", "quantity": 5, "unit_price": 3.0},
                ],
            }
        }
    )


class PurchaseOrderUpdate(BaseModel):
    supplier: Optional[str] = Field(default=None, min_length=1, max_length=255)
    order_date: Optional[date] = None
    items: Optional[list[OrderItemIn]] = Field(default=None, min_length=1)
    status: Optional[str] = None
    operator_name: Optional[str] = Field(default=None, max_length=255)
    notes: Optional[str] = None

    @model_validator(mode="after")
    def validate_not_empty(self) -> "PurchaseOrderUpdate":
        if not self.model_fields_set:
            raise ValueError("At least one field must be provided")
        return self


class OrderStatusUpdateIn(BaseModel):
    status: str

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "status": "confirmed",
            }
        }
    )


class PurchaseOrderOut(BaseModel):
    id: str
    supplier: str
    order_date: date
    items: list[OrderItemOut]
    total_amount: float
    status: str
    operator_name: str | None = None
    notes: str | None = None
    created_at: datetime
    updated_at: datetime


class PurchaseOrderUpdateOut(PurchaseOrderOut):
    movements_created: int = 0
    duplicate_activation: bool = False


class PurchaseOrderListOut(BaseModel):
    pagination: PaginationMeta
    status: str | None = None
    items: list[PurchaseOrderOut]
