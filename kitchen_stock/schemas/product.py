from datetime import datetime
from decimal import Decimal
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

UnitOfMeasure = Literal["kg", "l", "pz"]


class ProductCreate(BaseModel):
    code: str = Field(min_length=1, max_length=64)
    name: str = Field(min_length=1, max_length=255)
    supplier: Optional[str] = Field(default=None, max_length=255)
    unit: UnitOfMeasure
    quantity: Decimal = Field(default=Decimal("0"), ge=0)
    price_per_unit: Decimal = Field(ge=0)
    waste_percent: Decimal = Field(default=Decimal("0"), ge=0, lt=100)
    notes: Optional[str] = None

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "code": "FLR-00",
                "name": "Flour 00",
                "supplier": "Molino Rossi",
                "unit": "kg",
                "quantity": 25,
                "price_per_unit": 1.2,
                "waste_percent": 2,
            }
        }
    )


class ProductUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    supplier: Optional[str] = Field(default=None, max_length=255)
    unit: Optional[UnitOfMeasure] = None
    quantity: Optional[Decimal] = Field(default=None, ge=0)
    price_per_unit: Optional[Decimal] = Field(default=None, ge=0)
    waste_percent: Optional[Decimal] = Field(default=None, ge=0, lt=100)
    notes: Optional[str] = None


class ProductOut(BaseModel):
    id: str
    code: str
    name: str
    supplier: str | None = None
    unit: str
    quantity: float
    price_per_unit: float
    waste_percent: float
    effective_price_per_unit: float
    notes: str | None = None
    created_at: datetime
    updated_at: datetime
