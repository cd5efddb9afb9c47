from decimal import Decimal

import pytest

from kitchen_stock.core.exceptions import ValidationFailed
from kitchen_stock.models.menu import Dish, Recipe
from kitchen_stock.services.outbound_service import dish_usage, parse_dish_ingredients


def _outbound(client, product_id: str, **params) -> dict:
    response = client.get(f"/reports/products/{product_id}/outbound", params=params)
    assert response.status_code == 200, response.text
    return response.json()


def _create_dish(client, name: str, ingredients: list[dict]) -> str:
    response = client.post("/dishes", json={"name": name, "selling_price": 12, "ingredients": ingredients})
    assert response.status_code == 200, response.text
    return response.json()["id"]


def _record_waste(client, product_id: str, quantity: float, waste_date: str = "2026-10-02"):
    response = client.post(
        "/waste",
        json={"product_id": product_id, "quantity": quantity, "waste_date": waste_date},
    )
    assert response.status_code == 200, response.text


def _record_sale(client, dish_id: str, quantity_sold: int, sale_date: str = "2026-10-02"):
    response = client.post(
        "/sales",
        json={
            "dish_id": dish_id,
            "quantity_sold": quantity_sold,
            "unit_cost": 3,
            "unit_revenue": 10,
            "sale_date": sale_date,
        },
    )
    assert response.status_code == 200, response.text
    return response.json()


def test_outbound_sums_all_four_sources(test_context, create_product):
    client, _ = test_context
    product_id = create_product("Mozzarella")
    dish_id = _create_dish(client, "Margherita", [{"type": "product", "product_id": product_id, "quantity": 0.5}])

    sale_out = client.post(
        "/inventory/movements",
        json={
            "product_id": product_id,
            "direction": "out",
            "quantity": 1.5,
            "source": "sale",
            "movement_date": "2026-10-02",
        },
    )
    assert sale_out.status_code == 200, sale_out.text
    _record_waste(client, product_id, 2)
    meal = client.post("/personal-meals", json={"dish_id": dish_id, "quantity": 2, "meal_date": "2026-10-02"})
    assert meal.status_code == 200, meal.text
    _record_sale(client, dish_id, 4)

    body = _outbound(client, product_id)

    assert body["sales_ledger"] == 1.5
    assert body["waste"] == 2.0
    assert body["personal_meals"] == 1.0
    assert body["dish_sales"] == 2.0
    assert body["total"] == pytest.approx(
        body["sales_ledger"] + body["waste"] + body["personal_meals"] + body["dish_sales"]
    )
    assert body["total"] == 6.5


def test_adding_waste_increases_outbound_by_exactly_that_quantity(test_context, create_product):
    client, _ = test_context
    product_id = create_product("Rocket")
    _record_waste(client, product_id, 1.25)
    before = _outbound(client, product_id)["total"]

    _record_waste(client, product_id, 0.75)

    assert _outbound(client, product_id)["total"] == pytest.approx(before + 0.75)


def test_only_sale_outs_count_from_the_ledger(test_context, create_product):
    client, _ = test_context
    product_id = create_product("Olive oil", unit="l")
    adjustment = client.post(
        "/inventory/movements",
        json={
            "product_id": product_id,
            "direction": "out",
            "quantity": 3,
            "source": "adjustment",
            "movement_date": "2026-10-02",
        },
    )
    assert adjustment.status_code == 200, adjustment.text

    assert _outbound(client, product_id)["total"] == 0.0


def test_recipe_lines_expand_through_recipe_quantities(test_context, create_product):
    client, _ = test_context
    flour = create_product("Flour 00")
    recipe = client.post(
        "/recipes",
        json={"name": "Pizza dough", "ingredients": [{"product_id": flour, "quantity": 0.2}]},
    )
    assert recipe.status_code == 200, recipe.text
    dish_id = _create_dish(
        client,
        "Focaccia",
        [
            {"type": "recipe", "recipe_id": recipe.json()["id"], "quantity": 2},
            {"type": "product", "product_id": flour, "quantity": 0.5},
        ],
    )
    _record_sale(client, dish_id, 10)

    body = _outbound(client, flour)

    # (2 * 0.2 + 0.5) per portion, 10 portions sold
    assert body["dish_sales"] == pytest.approx(9.0)


def test_every_matching_ingredient_line_counts(test_context, create_product):
    client, _ = test_context
    cheese = create_product("Parmigiano")
    dish_id = _create_dish(
        client,
        "Lasagna",
        [
            {"type": "product", "product_id": cheese, "quantity": 0.5},
            {"type": "product", "product_id": cheese, "quantity": 0.25},
        ],
    )
    _record_sale(client, dish_id, 2)

    assert _outbound(client, cheese)["dish_sales"] == pytest.approx(1.5)


def test_dish_sales_use_cumulative_sold_count(test_context, create_product):
    client, _ = test_context
    product_id = create_product("Guanciale")
    dish_id = _create_dish(client, "Carbonara", [{"type": "product", "product_id": product_id, "quantity": 0.1}])
    _record_sale(client, dish_id, 3)
    _record_sale(client, dish_id, 2)

    aggregates = client.get("/sales/aggregates").json()

    assert aggregates == [{"dish_id": dish_id, "dish_name": "Carbonara", "sold_count": 5}]
    assert _outbound(client, product_id)["dish_sales"] == pytest.approx(0.5)


def test_reporting_window_filters_each_source_on_its_own_date(test_context, create_product):
    client, _ = test_context
    product_id = create_product("Salmon")
    dish_id = _create_dish(client, "Tartare", [{"type": "product", "product_id": product_id, "quantity": 0.2}])
    _record_waste(client, product_id, 1, waste_date="2026-09-30")
    _record_waste(client, product_id, 2, waste_date="2026-10-05")
    _record_sale(client, dish_id, 5, sale_date="2026-11-01")

    body = _outbound(client, product_id, start_date="2026-10-01", end_date="2026-10-31")

    assert body["waste"] == 2.0
    assert body["dish_sales"] == 0.0
    assert body["total"] == 2.0


def test_inverted_window_is_rejected(test_context, create_product):
    client, _ = test_context
    product_id = create_product()

    response = client.get(
        f"/reports/products/{product_id}/outbound",
        params={"start_date": "2026-10-31", "end_date": "2026-10-01"},
    )

    assert response.status_code == 422
    assert response.json()["error"]["details"][0]["field"] == "start_date"


def test_dish_usage_ignores_unknown_recipes_and_tags_legacy_lines():
    dish = Dish(
        id="dish-1",
        name="Legacy",
        ingredients=[
            {"product_id": "p1", "quantity": 0.3},
            {"type": "recipe", "recipe_id": "gone", "quantity": 5},
        ],
    )

    assert dish_usage(dish, {}) == {"p1": Decimal("0.3")}
    assert dish_usage(None, {}) == {}


def test_dish_usage_multiplies_recipe_quantities():
    recipe = Recipe(
        id="r1",
        name="Ragu",
        ingredients=[{"product_id": "beef", "quantity": 0.4}, {"product_id": "tomato", "quantity": 0.6}],
    )
    dish = Dish(id="d1", name="Tagliatelle", ingredients=[{"type": "recipe", "recipe_id": "r1", "quantity": 0.5}])

    usage = dish_usage(dish, {"r1": recipe})

    assert usage["beef"] == Decimal("0.2")
    assert usage["tomato"] == Decimal("0.3")


def test_malformed_dish_lines_raise_validation_error():
    with pytest.raises(ValidationFailed):
        parse_dish_ingredients([{"type": "recipe", "quantity": 1}])
