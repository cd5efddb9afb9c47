from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from kitchen_stock.core.api_docs import error_responses
from kitchen_stock.core.deps import get_db
from kitchen_stock.core.exceptions import ResourceNotFound
from kitchen_stock.core.id_utils import generate_shortuuid
from kitchen_stock.core.money import to_money, to_quantity
from kitchen_stock.models.consumption import DishSale, PersonalMeal, WasteRecord
from kitchen_stock.models.menu import Dish
from kitchen_stock.schemas.common import DeletedOut
from kitchen_stock.schemas.consumption import (
    DishSaleAggregateOut,
    DishSaleCreate,
    DishSaleOut,
    PersonalMealCreate,
    PersonalMealOut,
    WasteCreate,
    WasteOut,
)
from kitchen_stock.services.product_service import get_product

router = APIRouter(tags=["consumption"])


def _get_dish(db: Session, dish_id: str) -> Dish:
    dish = db.get(Dish, dish_id)
    if dish is None:
        raise ResourceNotFound("Dish", dish_id)
    return dish


def _waste_out(row: WasteRecord) -> WasteOut:
    return WasteOut(
        id=row.id,
        product_id=row.product_id,
        quantity=float(row.quantity),
        cost=float(row.cost),
        waste_date=row.waste_date,
        notes=row.notes,
        created_at=row.created_at,
    )


def _meal_out(row: PersonalMeal) -> PersonalMealOut:
    return PersonalMealOut(
        id=row.id,
        dish_id=row.dish_id,
        quantity=row.quantity,
        cost=float(row.cost),
        meal_date=row.meal_date,
        notes=row.notes,
        created_at=row.created_at,
    )


def _sale_out(row: DishSale) -> DishSaleOut:
    return DishSaleOut(
        id=row.id,
        dish_id=row.dish_id,
        dish_name=row.dish_name,
        quantity_sold=row.quantity_sold,
        unit_cost=float(row.unit_cost),
        unit_revenue=float(row.unit_revenue),
        total_cost=float(row.total_cost),
        total_revenue=float(row.total_revenue),
        sale_date=row.sale_date,
        notes=row.notes,
        created_at=row.created_at,
    )


@router.post(
    "/waste",
    response_model=WasteOut,
    summary="Record waste",
    responses=error_responses(404, 422, 500),
)
def create_waste(payload: WasteCreate, db: Session = Depends(get_db)):
    get_product(db, payload.product_id)
    row = WasteRecord(
        id=generate_shortuuid(),
        product_id=payload.product_id,
        quantity=to_quantity(payload.quantity),
        cost=to_money(payload.cost),
        waste_date=payload.waste_date,
        notes=payload.notes,
    )
    db.add(row)
    db.commit()
    db.refresh(row)
    return _waste_out(row)


@router.get(
    "/waste",
    response_model=list[WasteOut],
    summary="List waste records",
    responses=error_responses(422, 500),
)
def list_waste(
    product_id: str | None = Query(default=None),
    start_date: date | None = Query(default=None),
    end_date: date | None = Query(default=None),
    db: Session = Depends(get_db),
):
    stmt = select(WasteRecord)
    if product_id:
        stmt = stmt.where(WasteRecord.product_id == product_id)
    if start_date:
        stmt = stmt.where(WasteRecord.waste_date >= start_date)
    if end_date:
        stmt = stmt.where(WasteRecord.waste_date <= end_date)
    rows = db.execute(stmt.order_by(WasteRecord.waste_date.desc())).scalars().all()
    return [_waste_out(row) for row in rows]


@router.delete(
    "/waste/{waste_id}",
    response_model=DeletedOut,
    summary="Delete waste record",
    responses=error_responses(404, 500),
)
def delete_waste(waste_id: str, db: Session = Depends(get_db)):
    row = db.get(WasteRecord, waste_id)
    if row is None:
        raise ResourceNotFound("Waste record", waste_id)
    db.delete(row)
    db.commit()
    return DeletedOut(id=waste_id)


@router.post(
    "/personal-meals",
    response_model=PersonalMealOut,
    summary="Record staff meal",
    responses=error_responses(404, 422, 500),
)
def create_personal_meal(payload: PersonalMealCreate, db: Session = Depends(get_db)):
    _get_dish(db, payload.dish_id)
    row = PersonalMeal(
        id=generate_shortuuid(),
        dish_id=payload.dish_id,
        quantity=payload.quantity,
        cost=to_money(payload.cost),
        meal_date=payload.meal_date,
        notes=payload.notes,
    )
    db.add(row)
    db.commit()
    db.refresh(row)
    return _meal_out(row)


@router.get(
    "/personal-meals",
    response_model=list[PersonalMealOut],
    summary="List staff meals",
    responses=error_responses(422, 500),
)
def list_personal_meals(
    start_date: date | None = Query(default=None),
    end_date: date | None = Query(default=None),
    db: Session = Depends(get_db),
):
    stmt = select(PersonalMeal)
    if start_date:
        stmt = stmt.where(PersonalMeal.meal_date >= start_date)
    if end_date:
        stmt = stmt.where(PersonalMeal.meal_date <= end_date)
    rows = db.execute(stmt.order_by(PersonalMeal.meal_date.desc())).scalars().all()
    return [_meal_out(row) for row in rows]


@router.delete(
    "/personal-meals/{meal_id}",
    response_model=DeletedOut,
    summary="Delete staff meal",
    responses=error_responses(404, 500),
)
def delete_personal_meal(meal_id: str, db: Session = Depends(get_db)):
    row = db.get(PersonalMeal, meal_id)
    if row is None:
        raise ResourceNotFound("Personal meal", meal_id)
    db.delete(row)
    db.commit()
    return DeletedOut(id=meal_id)


@router.post(
    "/sales",
    response_model=DishSaleOut,
    summary="Record dish sale",
    responses=error_responses(404, 422, 500),
)
def create_dish_sale(payload: DishSaleCreate, db: Session = Depends(get_db)):
    dish = _get_dish(db, payload.dish_id)
    unit_cost = to_money(payload.unit_cost)
    unit_revenue = to_money(payload.unit_revenue)
    row = DishSale(
        id=generate_shortuuid(),
        dish_id=dish.id,
        dish_name=dish.name,
        quantity_sold=payload.quantity_sold,
        unit_cost=unit_cost,
        unit_revenue=unit_revenue,
        total_cost=to_money(unit_cost * payload.quantity_sold),
        total_revenue=to_money(unit_revenue * payload.quantity_sold),
        sale_date=payload.sale_date,
        notes=payload.notes,
    )
    db.add(row)
    db.commit()
    db.refresh(row)
    return _sale_out(row)


@router.get(
    "/sales",
    response_model=list[DishSaleOut],
    summary="List dish sales",
    responses=error_responses(422, 500),
)
def list_dish_sales(
    dish_id: str | None = Query(default=None),
    start_date: date | None = Query(default=None),
    end_date: date | None = Query(default=None),
    db: Session = Depends(get_db),
):
    stmt = select(DishSale)
    if dish_id:
        stmt = stmt.where(DishSale.dish_id == dish_id)
    if start_date:
        stmt = stmt.where(DishSale.sale_date >= start_date)
    if end_date:
        stmt = stmt.where(DishSale.sale_date <= end_date)
    rows = db.execute(stmt.order_by(DishSale.sale_date.desc())).scalars().all()
    return [_sale_out(row) for row in rows]


@router.get(
    "/sales/aggregates",
    response_model=list[DishSaleAggregateOut],
    summary="Cumulative sold count per dish",
    responses=error_responses(422, 500),
)
def dish_sale_aggregates(
    start_date: date | None = Query(default=None),
    end_date: date | None = Query(default=None),
    db: Session = Depends(get_db),
):
    stmt = select(DishSale.dish_id, Dish.name, func.sum(DishSale.quantity_sold)).join(Dish, Dish.id == DishSale.dish_id)
    if start_date:
        stmt = stmt.where(DishSale.sale_date >= start_date)
    if end_date:
        stmt = stmt.where(DishSale.sale_date <= end_date)
    stmt = stmt.group_by(DishSale.dish_id, Dish.name).order_by(Dish.name.asc())
    return [
        DishSaleAggregateOut(dish_id=dish_id, dish_name=name, sold_count=int(sold or 0))
        for dish_id, name, sold in db.execute(stmt).all()
    ]


@router.delete(
    "/sales/{sale_id}",
    response_model=DeletedOut,
    summary="Delete dish sale",
    responses=error_responses(404, 500),
)
def delete_dish_sale(sale_id: str, db: Session = Depends(get_db)):
    row = db.get(DishSale, sale_id)
    if row is None:
        raise ResourceNotFound("Dish sale", sale_id)
    db.delete(row)
    db.commit()
    return DeletedOut(id=sale_id)
