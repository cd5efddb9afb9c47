from datetime import date, datetime
from typing import Literal

from pydantic import BaseModel, Field

VarianceStatus = Literal["ok", "warning", "critical"]


class OutboundBreakdownOut(BaseModel):
    product_id: str
    start_date: date | None = None
    end_date: date | None = None
    sales_ledger: float
    waste: float
    personal_meals: float
    dish_sales: float
    total: float


class VarianceOut(BaseModel):
    product_id: str
    initial_quantity: float
    inbound: float
    outbound: float
    final_quantity: float
    theoretical_quantity: float
    variance: float = Field(description="initial + inbound - outbound - final; positive means shortage")
    variance_value: float
    status: VarianceStatus


class InventoryGridRowOut(VarianceOut):
    product_code: str
    product_name: str
    unit: str


class InventoryGridOut(BaseModel):
    start_date: date | None = None
    end_date: date | None = None
    items: list[InventoryGridRowOut]
    total_variance_value: float
    warning_count: int
    critical_count: int


class FoodCostMetricsOut(BaseModel):
    year: int
    month: int
    total_food_sales: float
    cost_of_sales: float
    theoretical_food_cost_percentage: float
    opening_stock_value: float
    inbound_value: float
    closing_stock_value: float
    total_food_cost: float
    food_cost_percentage: float
    real_vs_theoretical_diff: float
    calculated_at: datetime
