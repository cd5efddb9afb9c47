import pytest

from kitchen_stock.services.audit_service import list_audit_events


def _move(client, product_id: str, direction: str, quantity: float, movement_date: str, source: str = "adjustment"):
    response = client.post(
        "/inventory/movements",
        json={
            "product_id": product_id,
            "direction": direction,
            "quantity": quantity,
            "source": source,
            "movement_date": movement_date,
        },
    )
    assert response.status_code == 200, response.text


def _stocktake(client, product_id: str, actual: float, snapshot_date: str) -> dict:
    response = client.post(
        "/inventory-snapshots",
        json={"product_id": product_id, "actual_quantity": actual, "snapshot_date": snapshot_date},
    )
    assert response.status_code == 200, response.text
    return response.json()


def test_first_stocktake_starts_from_catalog_quantity(test_context, create_product):
    client, _ = test_context
    product_id = create_product(quantity=5)
    _move(client, product_id, "in", 10, "2026-10-01")
    _move(client, product_id, "out", 3, "2026-10-02", source="sale")

    body = _stocktake(client, product_id, 11, "2026-10-03")

    assert body["initial_quantity"] == 5.0
    assert body["theoretical_quantity"] == 12.0
    assert body["final_quantity"] == 11.0
    assert body["variance"] == -1.0
    assert body["shrinkage"] == 1.0


def test_next_stocktake_only_counts_movements_after_previous_one(test_context, create_product):
    client, _ = test_context
    product_id = create_product(quantity=5)
    _move(client, product_id, "in", 10, "2026-10-01")
    _move(client, product_id, "out", 3, "2026-10-02", source="sale")
    _stocktake(client, product_id, 11, "2026-10-03")
    _move(client, product_id, "in", 4, "2026-10-05")
    _move(client, product_id, "out", 1, "2026-10-20")

    body = _stocktake(client, product_id, 16, "2026-10-10")

    assert body["initial_quantity"] == 11.0
    assert body["theoretical_quantity"] == 15.0
    assert body["variance"] == 1.0
    assert body["shrinkage"] == -1.0


def test_first_stocktake_counts_movements_dated_after_it(test_context, create_product):
    client, _ = test_context
    product_id = create_product(quantity=5)
    _move(client, product_id, "in", 10, "2026-10-01")
    _move(client, product_id, "in", 4, "2026-10-20")

    body = _stocktake(client, product_id, 19, "2026-10-10")

    assert body["initial_quantity"] == 5.0
    assert body["theoretical_quantity"] == 19.0
    assert body["variance"] == 0.0


def test_same_day_recount_chains_onto_earlier_count(test_context, create_product):
    client, _ = test_context
    product_id = create_product(quantity=5)
    _move(client, product_id, "in", 10, "2026-10-01")
    _stocktake(client, product_id, 12, "2026-10-03")

    body = _stocktake(client, product_id, 12, "2026-10-03")

    assert body["initial_quantity"] == 12.0
    assert body["theoretical_quantity"] == 12.0
    assert body["variance"] == 0.0


def test_stocktake_correction_recomputes_variance(test_context, create_product):
    client, session_local = test_context
    product_id = create_product(quantity=5)
    recorded = _stocktake(client, product_id, 4, "2026-10-03")

    response = client.put(
        f"/inventory-snapshots/{recorded['id']}",
        json={"actual_quantity": 6},
        headers={"X-Operator-Name": "Chef Anna"},
    )

    assert response.status_code == 200, response.text
    body = response.json()
    assert body["final_quantity"] == 6.0
    assert body["theoretical_quantity"] == 5.0
    assert body["variance"] == 1.0
    assert body["shrinkage"] == -1.0
    with session_local() as db:
        actions = [event.action for event in list_audit_events(db, target_type="product", target_id=product_id)]
    assert "inventory_snapshot.correct" in actions


def test_stocktake_correction_validates_input(test_context, create_product):
    client, _ = test_context
    product_id = create_product()
    recorded = _stocktake(client, product_id, 1, "2026-10-03")

    assert client.put(f"/inventory-snapshots/{recorded['id']}", json={"actual_quantity": -1}).status_code == 422
    assert client.put("/inventory-snapshots/missing", json={"actual_quantity": 1}).status_code == 404


def test_stocktake_history_endpoints(test_context, create_product):
    client, _ = test_context
    product_id = create_product()
    first = _stocktake(client, product_id, 1, "2026-10-01")
    _stocktake(client, product_id, 2, "2026-10-08")

    history = client.get(f"/inventory-snapshots/product/{product_id}").json()
    assert [row["snapshot_date"] for row in history] == ["2026-10-08", "2026-10-01"]
    assert len(client.get("/inventory-snapshots").json()) == 2
    assert client.get(f"/inventory-snapshots/{first['id']}").json()["final_quantity"] == 1.0

    assert client.delete(f"/inventory-snapshots/{first['id']}").status_code == 200
    assert client.get(f"/inventory-snapshots/{first['id']}").status_code == 404


def test_stocktake_for_unknown_product_is_not_found(test_context):
    client, _ = test_context

    response = client.post(
        "/inventory-snapshots",
        json={"product_id": "missing", "actual_quantity": 1, "snapshot_date": "2026-10-01"},
    )

    assert response.status_code == 404


def test_food_cost_metrics_for_month(test_context, create_product):
    client, _ = test_context
    product_id = create_product(price=2.0)
    order = client.post(
        "/purchase-orders",
        json={
            "supplier": "Metro",
            "order_date": "2026-10-12",
            "status": "confirmed",
            "items": [{"product_id": product_id, "quantity": 5, "unit_price": 2.0}],
        },
    )
    assert order.status_code == 200, order.text
    client.post(
        "/purchase-orders",
        json={
            "supplier": "Metro",
            "order_date": "2026-09-30",
            "status": "confirmed",
            "items": [{"product_id": product_id, "quantity": 50, "unit_price": 2.0}],
        },
    )
    dish = client.post(
        "/dishes",
        json={"name": "Soup", "ingredients": [{"type": "product", "product_id": product_id, "quantity": 1}]},
    ).json()
    client.post(
        "/sales",
        json={"dish_id": dish["id"], "quantity_sold": 2, "unit_cost": 3, "unit_revenue": 10, "sale_date": "2026-10-15"},
    )
    client.post(
        "/editable-inventory/upsert",
        json={"product_id": product_id, "initial_quantity": 10, "final_quantity": 4},
    )

    response = client.get("/reports/food-cost", params={"year": 2026, "month": 10})

    assert response.status_code == 200, response.text
    body = response.json()
    assert body["total_food_sales"] == 20.0
    assert body["cost_of_sales"] == 6.0
    assert body["theoretical_food_cost_percentage"] == 30.0
    assert body["opening_stock_value"] == 20.0
    assert body["inbound_value"] == 10.0
    assert body["closing_stock_value"] == 8.0
    assert body["total_food_cost"] == 22.0
    assert body["food_cost_percentage"] == 110.0
    assert body["real_vs_theoretical_diff"] == pytest.approx(80.0)


def test_food_cost_rejects_invalid_month(test_context):
    client, _ = test_context

    response = client.get("/reports/food-cost", params={"year": 2026, "month": 13})

    assert response.status_code == 422
