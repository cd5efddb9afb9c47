"""Multi-source outbound aggregation.

The outbound quantity of a product is never stored. It is recomputed on every
read from four sources:

* ledger entries with direction ``out`` and source ``sale``
* waste records
* staff meals, expanded through each dish's ingredient lines
* dish sales, the cumulative sold count per dish expanded the same way

Every function takes the reporting window explicitly; each source is filtered
on its own date column.
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any, Iterable

from pydantic import ValidationError
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from kitchen_stock.core.exceptions import ValidationFailed
from kitchen_stock.core.money import ZERO_QUANTITY, to_quantity
from kitchen_stock.models.consumption import DishSale, PersonalMeal, WasteRecord
from kitchen_stock.models.menu import Dish, Recipe
from kitchen_stock.schemas.menu import ProductIngredient, RecipeIngredient, dish_ingredients_adapter
from kitchen_stock.services.ledger_service import quantities_by_product


@dataclass
class OutboundBreakdown:
    product_id: str
    sales_ledger: Decimal = ZERO_QUANTITY
    waste: Decimal = ZERO_QUANTITY
    personal_meals: Decimal = ZERO_QUANTITY
    dish_sales: Decimal = ZERO_QUANTITY

    @property
    def total(self) -> Decimal:
        return self.sales_ledger + self.waste + self.personal_meals + self.dish_sales


def parse_dish_ingredients(raw_lines: Iterable[dict[str, Any]] | None) -> list[ProductIngredient | RecipeIngredient]:
    # rows written before recipe lines existed carry no type tag
    tagged = [{"type": "product", **line} if "type" not in line else line for line in (raw_lines or [])]
    try:
        return dish_ingredients_adapter.validate_python(tagged)
    except ValidationError as exc:
        raise ValidationFailed(
            "Invalid dish ingredient lines",
            details=[
                {
                    "field": ".".join(str(part) for part in err.get("loc", ())) or "ingredients",
                    "message": err.get("msg", "Invalid value"),
                    "type": err.get("type"),
                }
                for err in exc.errors()
            ],
        ) from None


def recipe_usage(recipe: Recipe | None) -> dict[str, Decimal]:
    usage: dict[str, Decimal] = {}
    if recipe is None:
        return usage
    for line in recipe.ingredients or []:
        product_id = line.get("product_id")
        if not product_id:
            continue
        usage[product_id] = usage.get(product_id, ZERO_QUANTITY) + to_quantity(line.get("quantity"))
    return usage


def dish_usage(dish: Dish | None, recipes: dict[str, Recipe]) -> dict[str, Decimal]:
    """Quantity of each product consumed by one portion of ``dish``.

    Every matching line counts. A recipe line contributes its own quantity times
    the recipe's per-unit quantity of the product. Unknown recipes contribute
    nothing.
    """
    usage: dict[str, Decimal] = {}
    if dish is None:
        return usage
    for line in parse_dish_ingredients(dish.ingredients):
        if isinstance(line, ProductIngredient):
            usage[line.product_id] = usage.get(line.product_id, ZERO_QUANTITY) + line.quantity
            continue
        for product_id, per_unit in recipe_usage(recipes.get(line.recipe_id)).items():
            usage[product_id] = usage.get(product_id, ZERO_QUANTITY) + line.quantity * per_unit
    return usage


def _date_window(column, start_date: date | None, end_date: date | None) -> list:
    clauses = []
    if start_date:
        clauses.append(column >= start_date)
    if end_date:
        clauses.append(column <= end_date)
    return clauses


def waste_by_product(
    db: Session,
    *,
    start_date: date | None = None,
    end_date: date | None = None,
) -> dict[str, Decimal]:
    stmt = (
        select(WasteRecord.product_id, func.coalesce(func.sum(WasteRecord.quantity), 0))
        .where(*_date_window(WasteRecord.waste_date, start_date, end_date))
        .group_by(WasteRecord.product_id)
    )
    return {product_id: to_quantity(quantity) for product_id, quantity in db.execute(stmt).all()}


def personal_meals_by_dish(
    db: Session,
    *,
    start_date: date | None = None,
    end_date: date | None = None,
) -> dict[str, int]:
    stmt = (
        select(PersonalMeal.dish_id, func.coalesce(func.sum(PersonalMeal.quantity), 0))
        .where(*_date_window(PersonalMeal.meal_date, start_date, end_date))
        .group_by(PersonalMeal.dish_id)
    )
    return {dish_id: int(count) for dish_id, count in db.execute(stmt).all()}


def sold_count_by_dish(
    db: Session,
    *,
    start_date: date | None = None,
    end_date: date | None = None,
) -> dict[str, int]:
    stmt = (
        select(DishSale.dish_id, func.coalesce(func.sum(DishSale.quantity_sold), 0))
        .where(*_date_window(DishSale.sale_date, start_date, end_date))
        .group_by(DishSale.dish_id)
    )
    return {dish_id: int(count) for dish_id, count in db.execute(stmt).all()}


def _load_menu(db: Session, dish_ids: Iterable[str]) -> tuple[dict[str, Dish], dict[str, Recipe]]:
    wanted = set(dish_ids)
    if not wanted:
        return {}, {}
    dishes = {dish.id: dish for dish in db.execute(select(Dish).where(Dish.id.in_(wanted))).scalars()}
    recipe_ids = set()
    for dish in dishes.values():
        for line in parse_dish_ingredients(dish.ingredients):
            if isinstance(line, RecipeIngredient):
                recipe_ids.add(line.recipe_id)
    recipes = {}
    if recipe_ids:
        recipes = {recipe.id: recipe for recipe in db.execute(select(Recipe).where(Recipe.id.in_(recipe_ids))).scalars()}
    return dishes, recipes


def _expand_dish_counts(
    counts: dict[str, int],
    dishes: dict[str, Dish],
    recipes: dict[str, Recipe],
) -> dict[str, Decimal]:
    totals: dict[str, Decimal] = {}
    for dish_id, count in counts.items():
        if not count:
            continue
        for product_id, per_portion in dish_usage(dishes.get(dish_id), recipes).items():
            totals[product_id] = totals.get(product_id, ZERO_QUANTITY) + per_portion * count
    return totals


def outbound_breakdowns(
    db: Session,
    *,
    start_date: date | None = None,
    end_date: date | None = None,
) -> dict[str, OutboundBreakdown]:
    """Outbound components for every product with any outbound activity."""
    sales = quantities_by_product(db, direction="out", source="sale", start_date=start_date, end_date=end_date)
    waste = waste_by_product(db, start_date=start_date, end_date=end_date)
    meal_counts = personal_meals_by_dish(db, start_date=start_date, end_date=end_date)
    sold_counts = sold_count_by_dish(db, start_date=start_date, end_date=end_date)

    dishes, recipes = _load_menu(db, set(meal_counts) | set(sold_counts))
    meals = _expand_dish_counts(meal_counts, dishes, recipes)
    dish_sales = _expand_dish_counts(sold_counts, dishes, recipes)

    breakdowns: dict[str, OutboundBreakdown] = {}
    for product_id in set(sales) | set(waste) | set(meals) | set(dish_sales):
        breakdowns[product_id] = OutboundBreakdown(
            product_id=product_id,
            sales_ledger=sales.get(product_id, ZERO_QUANTITY),
            waste=waste.get(product_id, ZERO_QUANTITY),
            personal_meals=to_quantity(meals.get(product_id, ZERO_QUANTITY)),
            dish_sales=to_quantity(dish_sales.get(product_id, ZERO_QUANTITY)),
        )
    return breakdowns


def outbound_breakdown(
    db: Session,
    product_id: str,
    *,
    start_date: date | None = None,
    end_date: date | None = None,
) -> OutboundBreakdown:
    breakdowns = outbound_breakdowns(db, start_date=start_date, end_date=end_date)
    return breakdowns.get(product_id, OutboundBreakdown(product_id=product_id))


def outbound_quantity(
    db: Session,
    product_id: str,
    *,
    start_date: date | None = None,
    end_date: date | None = None,
) -> Decimal:
    return outbound_breakdown(db, product_id, start_date=start_date, end_date=end_date).total
