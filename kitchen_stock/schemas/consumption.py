from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field


class WasteCreate(BaseModel):
    product_id: str
    quantity: Decimal = Field(ge=0)
    cost: Decimal = Field(default=Decimal("0"), ge=0)
    waste_date: date
    notes: Optional[str] = None


class WasteOut(BaseModel):
    id: str
    product_id: str
    quantity: float
    cost: float
    waste_date: date
    notes: str | None = None
    created_at: datetime


class PersonalMealCreate(BaseModel):
    dish_id: str
    quantity: int = Field(default=1, ge=0)
    cost: Decimal = Field(default=Decimal("0"), ge=0)
    meal_date: date
    notes: Optional[str] = None


class PersonalMealOut(BaseModel):
    id: str
    dish_id: str
    quantity: int
    cost: float
    meal_date: date
    notes: str | None = None
    created_at: datetime


class DishSaleCreate(BaseModel):
    dish_id: str
    quantity_sold: int = Field(ge=1)
    unit_cost: Decimal = Field(ge=0)
    unit_revenue: Decimal = Field(ge=0)
    sale_date: date
    notes: Optional[str] = None


class DishSaleOut(BaseModel):
    id: str
    dish_id: str
    dish_name: str
    quantity_sold: int
    unit_cost: float
    unit_revenue: float
    total_cost: float
    total_revenue: float
    sale_date: date
    notes: str | None = None
    created_at: datetime


class DishSaleAggregateOut(BaseModel):
    dish_id: str
    dish_name: str
    sold_count: int
