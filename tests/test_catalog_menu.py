import pytest

from kitchen_stock.services.audit_service import list_audit_events


def test_product_effective_price_accounts_for_waste(test_context):
    client, _ = test_context

    response = client.post(
        "/products",
        json={"code": "TOM-01", "name": "Tomatoes", "unit": "kg", "price_per_unit": 3.0, "waste_percent": 25},
    )

    assert response.status_code == 200, response.text
    body = response.json()
    assert body["effective_price_per_unit"] == 4.0
    assert body["quantity"] == 0.0


def test_duplicate_product_code_conflicts(test_context, create_product):
    client, _ = test_context
    create_product("Flour")

    response = client.post(
        "/products",
        json={"code": "P-001", "name": "Other flour", "unit": "kg", "price_per_unit": 1.0},
    )

    assert response.status_code == 409
    assert response.json()["error"]["code"] == "conflict"


def test_unknown_unit_is_rejected(test_context):
    client, _ = test_context

    response = client.post(
        "/products",
        json={"code": "X-1", "name": "Box", "unit": "crate", "price_per_unit": 1.0},
    )

    assert response.status_code == 422
    assert response.json()["error"]["details"][0]["field"] == "unit"


def test_product_search_and_detail(test_context, create_product):
    client, _ = test_context
    basil = create_product("Basil")
    create_product("Butter")

    found = client.get("/products", params={"q": "bas"}).json()
    assert [row["id"] for row in found] == [basil]

    assert client.get(f"/products/{basil}").json()["name"] == "Basil"
    assert client.get("/products/missing").status_code == 404


def test_pricing_edit_is_audited_with_operator(test_context, create_product):
    client, session_local = test_context
    product_id = create_product(price=2.0)

    response = client.patch(
        f"/products/{product_id}",
        json={"price_per_unit": 2.5},
        headers={"X-Operator-Name": "Marco"},
    )

    assert response.status_code == 200, response.text
    with session_local() as db:
        events = list_audit_events(db, target_type="product", target_id=product_id)
        assert [event.action for event in events] == ["product.pricing.update"]
        assert events[0].actor == "Marco"


def test_dish_round_trips_tagged_ingredient_lines(test_context, create_product):
    client, _ = test_context
    flour = create_product("Flour")
    recipe = client.post(
        "/recipes",
        json={"name": "Dough", "ingredients": [{"product_id": flour, "quantity": 0.3}]},
    ).json()

    created = client.post(
        "/dishes",
        json={
            "name": "Pizza",
            "selling_price": 9.5,
            "ingredients": [
                {"type": "recipe", "recipe_id": recipe["id"], "quantity": 1},
                {"type": "product", "product_id": flour, "quantity": 0.05},
            ],
        },
    )

    assert created.status_code == 200, created.text
    lines = client.get(f"/dishes/{created.json()['id']}").json()["ingredients"]
    assert lines == [
        {"type": "recipe", "recipe_id": recipe["id"], "quantity": 1.0},
        {"type": "product", "product_id": flour, "quantity": 0.05},
    ]


def test_dish_with_unknown_references_is_rejected(test_context):
    client, _ = test_context

    unknown_product = client.post(
        "/dishes",
        json={"name": "Ghost", "ingredients": [{"type": "product", "product_id": "nope", "quantity": 1}]},
    )
    unknown_recipe = client.post(
        "/dishes",
        json={"name": "Ghost", "ingredients": [{"type": "recipe", "recipe_id": "nope", "quantity": 1}]},
    )

    assert unknown_product.status_code == 422
    assert unknown_product.json()["error"]["details"][0]["field"] == "ingredients.product_id"
    assert unknown_recipe.status_code == 422
    assert unknown_recipe.json()["error"]["details"][0]["field"] == "ingredients.recipe_id"


def test_dish_update_requires_a_field(test_context):
    client, _ = test_context
    dish = client.post("/dishes", json={"name": "Salad"}).json()

    assert client.patch(f"/dishes/{dish['id']}", json={}).status_code == 422
    renamed = client.patch(f"/dishes/{dish['id']}", json={"name": "Green salad"})
    assert renamed.json()["name"] == "Green salad"


def test_recipe_edit_changes_outbound_on_next_read(test_context, create_product):
    client, _ = test_context
    flour = create_product("Flour")
    recipe = client.post(
        "/recipes",
        json={"name": "Dough", "ingredients": [{"product_id": flour, "quantity": 0.2}]},
    ).json()
    dish = client.post(
        "/dishes",
        json={"name": "Bread", "ingredients": [{"type": "recipe", "recipe_id": recipe["id"], "quantity": 1}]},
    ).json()
    client.post(
        "/sales",
        json={"dish_id": dish["id"], "quantity_sold": 10, "unit_cost": 1, "unit_revenue": 4, "sale_date": "2026-10-02"},
    )
    assert client.get(f"/reports/products/{flour}/outbound").json()["dish_sales"] == pytest.approx(2.0)

    updated = client.put(f"/recipes/{recipe['id']}", json={"ingredients": [{"product_id": flour, "quantity": 0.3}]})

    assert updated.status_code == 200, updated.text
    assert updated.json()["name"] == "Dough"
    assert client.get(f"/reports/products/{flour}/outbound").json()["dish_sales"] == pytest.approx(3.0)


def test_recipe_update_revalidates_products(test_context, create_product):
    client, _ = test_context
    flour = create_product("Flour")
    recipe = client.post(
        "/recipes",
        json={"name": "Dough", "ingredients": [{"product_id": flour, "quantity": 0.2}]},
    ).json()

    response = client.put(f"/recipes/{recipe['id']}", json={"ingredients": [{"product_id": "nope", "quantity": 1}]})

    assert response.status_code == 422
    assert response.json()["error"]["details"][0]["field"] == "ingredients.product_id"
    assert client.put(f"/recipes/{recipe['id']}", json={}).status_code == 422
    assert client.put("/recipes/missing", json={"name": "X"}).status_code == 404


def test_recipe_get_and_delete(test_context, create_product):
    client, _ = test_context
    flour = create_product("Flour")
    recipe = client.post(
        "/recipes",
        json={"name": "Dough", "ingredients": [{"product_id": flour, "quantity": 0.2}]},
    ).json()

    assert client.get(f"/recipes/{recipe['id']}").json()["ingredients"] == [{"product_id": flour, "quantity": 0.2}]
    assert client.delete(f"/recipes/{recipe['id']}").status_code == 200
    assert client.get(f"/recipes/{recipe['id']}").status_code == 404


def test_dish_delete_is_refused_once_consumption_is_recorded(test_context, create_product):
    client, _ = test_context
    flour = create_product("Flour")
    unused = client.post("/dishes", json={"name": "Draft"}).json()
    sold = client.post(
        "/dishes",
        json={"name": "Bread", "ingredients": [{"type": "product", "product_id": flour, "quantity": 0.2}]},
    ).json()
    client.post(
        "/sales",
        json={"dish_id": sold["id"], "quantity_sold": 1, "unit_cost": 1, "unit_revenue": 4, "sale_date": "2026-10-02"},
    )

    assert client.delete(f"/dishes/{unused['id']}").status_code == 200
    assert client.get(f"/dishes/{unused['id']}").status_code == 404
    refused = client.delete(f"/dishes/{sold['id']}")
    assert refused.status_code == 409
    assert refused.json()["error"]["code"] == "conflict"
