import calendar
from dataclasses import dataclass
from datetime import date, datetime, timezone
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from kitchen_stock.core.exceptions import ValidationFailed
from kitchen_stock.core.money import ZERO_MONEY, to_money
from kitchen_stock.models.consumption import DishSale
from kitchen_stock.models.inventory import EditableInventory
from kitchen_stock.models.product import Product
from kitchen_stock.services.ledger_service import movement_value


@dataclass
class FoodCostMetrics:
    year: int
    month: int
    total_food_sales: Decimal
    cost_of_sales: Decimal
    opening_stock_value: Decimal
    inbound_value: Decimal
    closing_stock_value: Decimal
    calculated_at: datetime

    @property
    def theoretical_food_cost_percentage(self) -> Decimal:
        return _percentage(self.cost_of_sales, self.total_food_sales)

    @property
    def total_food_cost(self) -> Decimal:
        return to_money(self.opening_stock_value + self.inbound_value - self.closing_stock_value)

    @property
    def food_cost_percentage(self) -> Decimal:
        return _percentage(self.total_food_cost, self.total_food_sales)

    @property
    def real_vs_theoretical_diff(self) -> Decimal:
        return to_money(self.food_cost_percentage - self.theoretical_food_cost_percentage)


def _percentage(part: Decimal, whole: Decimal) -> Decimal:
    if whole <= 0:
        return ZERO_MONEY
    return to_money(part / whole * Decimal("100"))


def month_bounds(year: int, month: int) -> tuple[date, date]:
    if month < 1 or month > 12:
        raise ValidationFailed.for_field("month", "Month must be between 1 and 12")
    if year < 1900 or year > 9999:
        raise ValidationFailed.for_field("year", "Year is out of range")
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last_day)


def _stock_values(db: Session) -> tuple[Decimal, Decimal]:
    row = db.execute(
        select(
            func.coalesce(func.sum(EditableInventory.initial_quantity * Product.price_per_unit), 0),
            func.coalesce(func.sum(EditableInventory.final_quantity * Product.price_per_unit), 0),
        ).join(Product, Product.id == EditableInventory.product_id)
    ).one()
    return to_money(row[0]), to_money(row[1])


def food_cost_metrics(db: Session, *, year: int, month: int) -> FoodCostMetrics:
    """Real vs. theoretical food cost for one calendar month.

    Theoretical cost comes from the recorded dish sales. Real cost is opening
    stock value plus goods received in the month minus closing stock value,
    with stock valued at catalog price from the editable counts.
    """
    start_date, end_date = month_bounds(year, month)
    sales_row = db.execute(
        select(
            func.coalesce(func.sum(DishSale.total_revenue), 0),
            func.coalesce(func.sum(DishSale.total_cost), 0),
        ).where(DishSale.sale_date >= start_date, DishSale.sale_date <= end_date)
    ).one()
    opening_value, closing_value = _stock_values(db)

    return FoodCostMetrics(
        year=year,
        month=month,
        total_food_sales=to_money(sales_row[0]),
        cost_of_sales=to_money(sales_row[1]),
        opening_stock_value=opening_value,
        inbound_value=movement_value(db, direction="in", start_date=start_date, end_date=end_date),
        closing_stock_value=closing_value,
        calculated_at=datetime.now(timezone.utc),
    )
