from fastapi import APIRouter, Depends
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from kitchen_stock.core.api_docs import error_responses
from kitchen_stock.core.deps import get_db
from kitchen_stock.core.exceptions import ResourceConflict, ResourceNotFound, ValidationFailed
from kitchen_stock.core.id_utils import generate_shortuuid
from kitchen_stock.core.money import to_money, to_quantity
from kitchen_stock.models.consumption import DishSale, PersonalMeal
from kitchen_stock.models.menu import Dish, Recipe
from kitchen_stock.schemas.common import DeletedOut
from kitchen_stock.schemas.menu import (
    DishCreate,
    DishIngredient,
    DishOut,
    DishUpdate,
    ProductIngredient,
    ProductIngredientOut,
    RecipeCreate,
    RecipeIngredientOut,
    RecipeLineOut,
    RecipeOut,
    RecipeUpdate,
)
from kitchen_stock.services.outbound_service import parse_dish_ingredients
from kitchen_stock.services.product_service import ensure_products_exist

router = APIRouter(tags=["menu"])


def _recipe_out(recipe: Recipe) -> RecipeOut:
    return RecipeOut(
        id=recipe.id,
        name=recipe.name,
        ingredients=[
            RecipeLineOut(product_id=line["product_id"], quantity=float(to_quantity(line.get("quantity"))))
            for line in recipe.ingredients or []
        ],
        weight_adjustment=float(recipe.weight_adjustment),
        created_at=recipe.created_at,
        updated_at=recipe.updated_at,
    )


def _ingredient_out(line: DishIngredient) -> ProductIngredientOut | RecipeIngredientOut:
    if isinstance(line, ProductIngredient):
        return ProductIngredientOut(product_id=line.product_id, quantity=float(line.quantity))
    return RecipeIngredientOut(recipe_id=line.recipe_id, quantity=float(line.quantity))


def _dish_out(dish: Dish) -> DishOut:
    return DishOut(
        id=dish.id,
        name=dish.name,
        ingredients=[_ingredient_out(line) for line in parse_dish_ingredients(dish.ingredients)],
        selling_price=float(dish.selling_price),
        created_at=dish.created_at,
        updated_at=dish.updated_at,
    )


def _store_dish_lines(db: Session, lines: list[DishIngredient]) -> list[dict]:
    product_ids = [line.product_id for line in lines if isinstance(line, ProductIngredient)]
    recipe_ids = {line.recipe_id for line in lines if not isinstance(line, ProductIngredient)}
    ensure_products_exist(db, product_ids, field="ingredients.product_id")
    if recipe_ids:
        found = set(db.execute(select(Recipe.id).where(Recipe.id.in_(recipe_ids))).scalars())
        missing = sorted(recipe_ids - found)
        if missing:
            raise ValidationFailed.for_field("ingredients.recipe_id", f"Unknown recipe: {missing[0]}", "not_found")

    stored = []
    for line in lines:
        if isinstance(line, ProductIngredient):
            stored.append({"type": "product", "product_id": line.product_id, "quantity": float(to_quantity(line.quantity))})
        else:
            stored.append({"type": "recipe", "recipe_id": line.recipe_id, "quantity": float(to_quantity(line.quantity))})
    return stored


def _store_recipe_lines(db: Session, lines) -> list[dict]:
    ensure_products_exist(db, [line.product_id for line in lines], field="ingredients.product_id")
    return [{"product_id": line.product_id, "quantity": float(to_quantity(line.quantity))} for line in lines]


def _get_recipe(db: Session, recipe_id: str) -> Recipe:
    recipe = db.get(Recipe, recipe_id)
    if recipe is None:
        raise ResourceNotFound("Recipe", recipe_id)
    return recipe


def _get_dish(db: Session, dish_id: str) -> Dish:
    dish = db.get(Dish, dish_id)
    if dish is None:
        raise ResourceNotFound("Dish", dish_id)
    return dish


@router.post(
    "/recipes",
    response_model=RecipeOut,
    summary="Create recipe",
    responses=error_responses(422, 500),
)
def create_recipe(payload: RecipeCreate, db: Session = Depends(get_db)):
    recipe = Recipe(
        id=generate_shortuuid(),
        name=payload.name.strip(),
        ingredients=_store_recipe_lines(db, payload.ingredients),
        weight_adjustment=payload.weight_adjustment,
    )
    db.add(recipe)
    db.commit()
    db.refresh(recipe)
    return _recipe_out(recipe)


@router.get(
    "/recipes",
    response_model=list[RecipeOut],
    summary="List recipes",
    responses=error_responses(500),
)
def list_recipes(db: Session = Depends(get_db)):
    rows = db.execute(select(Recipe).order_by(Recipe.name.asc())).scalars().all()
    return [_recipe_out(row) for row in rows]


@router.get(
    "/recipes/{recipe_id}",
    response_model=RecipeOut,
    summary="Get recipe",
    responses=error_responses(404, 500),
)
def get_recipe(recipe_id: str, db: Session = Depends(get_db)):
    return _recipe_out(_get_recipe(db, recipe_id))


@router.put(
    "/recipes/{recipe_id}",
    response_model=RecipeOut,
    summary="Update recipe",
    responses=error_responses(404, 422, 500),
)
def update_recipe(recipe_id: str, payload: RecipeUpdate, db: Session = Depends(get_db)):
    recipe = _get_recipe(db, recipe_id)
    if payload.name is not None:
        recipe.name = payload.name.strip()
    if payload.ingredients is not None:
        # dish usage reads recipe lines at aggregation time
        recipe.ingredients = _store_recipe_lines(db, payload.ingredients)
    if payload.weight_adjustment is not None:
        recipe.weight_adjustment = payload.weight_adjustment
    db.commit()
    db.refresh(recipe)
    return _recipe_out(recipe)


@router.delete(
    "/recipes/{recipe_id}",
    response_model=DeletedOut,
    summary="Delete recipe",
    responses=error_responses(404, 500),
)
def delete_recipe(recipe_id: str, db: Session = Depends(get_db)):
    recipe = _get_recipe(db, recipe_id)
    db.delete(recipe)
    db.commit()
    return DeletedOut(id=recipe_id)


@router.post(
    "/dishes",
    response_model=DishOut,
    summary="Create dish",
    responses=error_responses(422, 500),
)
def create_dish(payload: DishCreate, db: Session = Depends(get_db)):
    dish = Dish(
        id=generate_shortuuid(),
        name=payload.name.strip(),
        ingredients=_store_dish_lines(db, payload.ingredients),
        selling_price=to_money(payload.selling_price),
    )
    db.add(dish)
    db.commit()
    db.refresh(dish)
    return _dish_out(dish)


@router.get(
    "/dishes",
    response_model=list[DishOut],
    summary="List dishes",
    responses=error_responses(500),
)
def list_dishes(db: Session = Depends(get_db)):
    rows = db.execute(select(Dish).order_by(Dish.name.asc())).scalars().all()
    return [_dish_out(row) for row in rows]


@router.get(
    "/dishes/{dish_id}",
    response_model=DishOut,
    summary="Get dish",
    responses=error_responses(404, 500),
)
def get_dish(dish_id: str, db: Session = Depends(get_db)):
    return _dish_out(_get_dish(db, dish_id))


@router.patch(
    "/dishes/{dish_id}",
    response_model=DishOut,
    summary="Update dish",
    responses=error_responses(404, 422, 500),
)
def update_dish(dish_id: str, payload: DishUpdate, db: Session = Depends(get_db)):
    dish = _get_dish(db, dish_id)
    if payload.name is not None:
        dish.name = payload.name.strip()
    if payload.ingredients is not None:
        dish.ingredients = _store_dish_lines(db, payload.ingredients)
    if payload.selling_price is not None:
        dish.selling_price = to_money(payload.selling_price)
    db.commit()
    db.refresh(dish)
    return _dish_out(dish)


@router.delete(
    "/dishes/{dish_id}",
    response_model=DeletedOut,
    summary="Delete dish",
    responses=error_responses(404, 409, 500),
)
def delete_dish(dish_id: str, db: Session = Depends(get_db)):
    dish = _get_dish(db, dish_id)
    sales = db.execute(select(func.count(DishSale.id)).where(DishSale.dish_id == dish_id)).scalar_one()
    meals = db.execute(select(func.count(PersonalMeal.id)).where(PersonalMeal.dish_id == dish_id)).scalar_one()
    if sales or meals:
        raise ResourceConflict("Dish has recorded sales or staff meals")
    db.delete(dish)
    db.commit()
    return DeletedOut(id=dish_id)
