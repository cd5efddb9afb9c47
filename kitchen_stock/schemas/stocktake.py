from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class EditableInventoryCreate(BaseModel):
    product_id: str
    initial_quantity: Decimal = Field(default=Decimal("0"), ge=0)
    final_quantity: Decimal = Field(default=Decimal("0"), ge=0)
    notes: Optional[str] = None


class EditableInventoryUpsert(BaseModel):
    product_id: str
    initial_quantity: Decimal = Field(ge=0)
    final_quantity: Decimal = Field(ge=0)
    notes: Optional[str] = None

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "product_id": "product-id-here",
                "initial_quantity": 0,
                "final_quantity": 4,
                "notes": "Monday stocktake",
            }
        }
    )


class EditableInventoryUpdate(BaseModel):
    initial_quantity: Optional[Decimal] = Field(default=None, ge=0)
    final_quantity: Optional[Decimal] = Field(default=None, ge=0)
    notes: Optional[str] = None

    @model_validator(mode="after")
    def validate_not_empty(self) -> "EditableInventoryUpdate":
        if not self.model_fields_set:
            raise ValueError("At least one field must be provided")
        return self


class EditableInventoryOut(BaseModel):
    id: str
    product_id: str
    initial_quantity: float
    final_quantity: float
    notes: str | None = None
    last_updated: datetime
    created_at: datetime


class StocktakeIn(BaseModel):
    product_id: str
    actual_quantity: Decimal = Field(ge=0)
    snapshot_date: date

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "product_id": "product-id-here",
                "actual_quantity": 7.5,
                "snapshot_date": "2026-10-31",
            }
        }
    )


class StocktakeCorrection(BaseModel):
    actual_quantity: Decimal = Field(ge=0)


class InventorySnapshotOut(BaseModel):
    id: str
    product_id: str
    snapshot_date: date
    initial_quantity: float
    final_quantity: float
    theoretical_quantity: float | None = None
    variance: float | None = Field(default=None, description="actual - theoretical; positive means surplus")
    shrinkage: float | None = Field(
        default=None,
        description="theoretical - actual; same sign as the live grid variance (positive means shortage)",
    )
    created_at: datetime
