from datetime import date, datetime
from decimal import Decimal
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from kitchen_stock.schemas.common import PaginationMeta

MovementDirection = Literal["in", "out"]
MovementSource = Literal["order", "sale", "waste", "personal_meal", "adjustment"]
# order entries only come from purchase order confirmation
ManualMovementSource = Literal["sale", "waste", "personal_meal", "adjustment"]


class StockMovementCreate(BaseModel):
    product_id: str
    direction: MovementDirection
    quantity: Decimal = Field(ge=0)
    unit_price: Optional[Decimal] = Field(default=None, ge=0)
    total_cost: Optional[Decimal] = Field(default=None, ge=0)
    source: ManualMovementSource
    source_id: Optional[str] = Field(default=None, max_length=36)
    movement_date: date
    note: Optional[str] = None

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "product_id": "product-id-here",
                "direction": "out",
                "quantity": 3,
                "unit_price": 2.0,
                "source": "sale",
                "movement_date": "2026-10-01",
                "note": "Counter sale",
            }
        }
    )


class StockMovementCorrection(BaseModel):
    quantity: Optional[Decimal] = Field(default=None, ge=0)
    unit_price: Optional[Decimal] = Field(default=None, ge=0)
    total_cost: Optional[Decimal] = Field(default=None, ge=0)
    movement_date: Optional[date] = None
    note: Optional[str] = None

    @model_validator(mode="after")
    def validate_not_empty(self) -> "StockMovementCorrection":
        if not self.model_fields_set:
            raise ValueError("At least one field must be provided")
        return self


class StockMovementOut(BaseModel):
    id: str
    product_id: str
    direction: MovementDirection
    quantity: float
    unit_price: float | None = None
    total_cost: float | None = None
    source: MovementSource
    source_id: str | None = None
    movement_date: date
    note: str | None = None
    created_at: datetime
    updated_at: datetime


class StockMovementListOut(BaseModel):
    items: list[StockMovementOut]
    pagination: PaginationMeta
