from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from kitchen_stock.core.api_docs import error_responses
from kitchen_stock.core.deps import get_db
from kitchen_stock.core.exceptions import ValidationFailed
from kitchen_stock.schemas.report import (
    FoodCostMetricsOut,
    InventoryGridOut,
    InventoryGridRowOut,
    OutboundBreakdownOut,
    VarianceOut,
)
from kitchen_stock.services.metrics_service import food_cost_metrics
from kitchen_stock.services.outbound_service import outbound_breakdown
from kitchen_stock.services.product_service import get_product
from kitchen_stock.services.variance_service import VarianceResult, inventory_grid, product_variance

router = APIRouter(prefix="/reports", tags=["reports"])


def _check_window(start_date: date | None, end_date: date | None) -> None:
    if start_date and end_date and start_date > end_date:
        raise ValidationFailed.for_field("start_date", "start_date cannot be after end_date")


def _variance_fields(result: VarianceResult) -> dict:
    return {
        "product_id": result.product_id,
        "initial_quantity": float(result.initial_quantity),
        "inbound": float(result.inbound),
        "outbound": float(result.outbound),
        "final_quantity": float(result.final_quantity),
        "theoretical_quantity": float(result.theoretical_quantity),
        "variance": float(result.variance),
        "variance_value": float(result.variance_value),
        "status": result.status,
    }


@router.get(
    "/products/{product_id}/outbound",
    response_model=OutboundBreakdownOut,
    summary="Outbound quantity of a product by source",
    responses=error_responses(404, 422, 500),
)
def product_outbound(
    product_id: str,
    start_date: date | None = Query(default=None),
    end_date: date | None = Query(default=None),
    db: Session = Depends(get_db),
):
    _check_window(start_date, end_date)
    get_product(db, product_id)
    breakdown = outbound_breakdown(db, product_id, start_date=start_date, end_date=end_date)
    return OutboundBreakdownOut(
        product_id=product_id,
        start_date=start_date,
        end_date=end_date,
        sales_ledger=float(breakdown.sales_ledger),
        waste=float(breakdown.waste),
        personal_meals=float(breakdown.personal_meals),
        dish_sales=float(breakdown.dish_sales),
        total=float(breakdown.total),
    )


@router.get(
    "/products/{product_id}/variance",
    response_model=VarianceOut,
    summary="Variance between counted and theoretical stock",
    responses=error_responses(404, 422, 500),
)
def product_variance_report(
    product_id: str,
    start_date: date | None = Query(default=None),
    end_date: date | None = Query(default=None),
    db: Session = Depends(get_db),
):
    _check_window(start_date, end_date)
    result = product_variance(db, product_id, start_date=start_date, end_date=end_date)
    return VarianceOut(**_variance_fields(result))


@router.get(
    "/inventory-grid",
    response_model=InventoryGridOut,
    summary="Per-product reconciliation grid",
    responses=error_responses(422, 500),
)
def inventory_grid_report(
    start_date: date | None = Query(default=None),
    end_date: date | None = Query(default=None),
    db: Session = Depends(get_db),
):
    _check_window(start_date, end_date)
    items = []
    total_value = 0.0
    warning_count = critical_count = 0
    for product, result in inventory_grid(db, start_date=start_date, end_date=end_date):
        items.append(
            InventoryGridRowOut(
                product_code=product.code,
                product_name=product.name,
                unit=product.unit,
                **_variance_fields(result),
            )
        )
        total_value += float(result.variance_value)
        if result.status == "warning":
            warning_count += 1
        elif result.status == "critical":
            critical_count += 1
    return InventoryGridOut(
        start_date=start_date,
        end_date=end_date,
        items=items,
        total_variance_value=round(total_value, 2),
        warning_count=warning_count,
        critical_count=critical_count,
    )


@router.get(
    "/food-cost",
    response_model=FoodCostMetricsOut,
    summary="Monthly real vs. theoretical food cost",
    responses=error_responses(422, 500),
)
def food_cost_report(
    year: int = Query(ge=1900, le=9999),
    month: int = Query(ge=1, le=12),
    db: Session = Depends(get_db),
):
    metrics = food_cost_metrics(db, year=year, month=month)
    return FoodCostMetricsOut(
        year=metrics.year,
        month=metrics.month,
        total_food_sales=float(metrics.total_food_sales),
        cost_of_sales=float(metrics.cost_of_sales),
        theoretical_food_cost_percentage=float(metrics.theoretical_food_cost_percentage),
        opening_stock_value=float(metrics.opening_stock_value),
        inbound_value=float(metrics.inbound_value),
        closing_stock_value=float(metrics.closing_stock_value),
        total_food_cost=float(metrics.total_food_cost),
        food_cost_percentage=float(metrics.food_cost_percentage),
        real_vs_theoretical_diff=float(metrics.real_vs_theoretical_diff),
        calculated_at=metrics.calculated_at,
    )
