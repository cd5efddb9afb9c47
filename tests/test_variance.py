import pytest
from sqlalchemy import func, select

from kitchen_stock.core.config import settings
from kitchen_stock.models.inventory import EditableInventory


def _confirmed_order(client, product_id: str, quantity: float, unit_price: float, order_date: str = "2026-10-01"):
    response = client.post(
        "/purchase-orders",
        json={
            "supplier": "Metro",
            "order_date": order_date,
            "status": "confirmed",
            "items": [{"product_id": product_id, "quantity": quantity, "unit_price": unit_price}],
        },
    )
    assert response.status_code == 200, response.text
    return response.json()


def _upsert(client, product_id: str, initial: float, final: float, notes: str | None = None):
    response = client.post(
        "/editable-inventory/upsert",
        json={"product_id": product_id, "initial_quantity": initial, "final_quantity": final, "notes": notes},
    )
    assert response.status_code == 200, response.text
    return response.json()


def _variance(client, product_id: str) -> dict:
    response = client.get(f"/reports/products/{product_id}/variance")
    assert response.status_code == 200, response.text
    return response.json()


def test_receipt_waste_and_dish_sales_reconcile_to_one_unit_short(test_context, create_product):
    client, _ = test_context
    product_x = create_product("Product X", price=2.0)
    _confirmed_order(client, product_x, 10, 2.0)
    client.post("/waste", json={"product_id": product_x, "quantity": 2, "waste_date": "2026-10-02"})
    dish = client.post(
        "/dishes",
        json={"name": "Plate", "ingredients": [{"type": "product", "product_id": product_x, "quantity": 1}]},
    ).json()
    client.post(
        "/sales",
        json={"dish_id": dish["id"], "quantity_sold": 3, "unit_cost": 2, "unit_revenue": 8, "sale_date": "2026-10-02"},
    )
    _upsert(client, product_x, 0, 4)

    body = _variance(client, product_x)

    assert body["inbound"] == 10.0
    assert body["outbound"] == 5.0
    assert body["theoretical_quantity"] == 5.0
    assert body["variance"] == 1.0
    assert body["variance_value"] == 2.0
    assert body["status"] == "critical"


def test_upsert_creates_once_then_updates_in_place(test_context, create_product):
    client, session_local = test_context
    product_id = create_product()

    first = _upsert(client, product_id, 3, 1, notes="Monday")
    second = _upsert(client, product_id, 5, 2)

    assert second["id"] == first["id"]
    assert second["initial_quantity"] == 5.0
    assert second["final_quantity"] == 2.0
    assert second["notes"] == "Monday"
    with session_local() as db:
        count = db.execute(
            select(func.count(EditableInventory.id)).where(EditableInventory.product_id == product_id)
        ).scalar_one()
    assert count == 1


def test_upsert_rejects_negative_counts(test_context, create_product):
    client, _ = test_context
    product_id = create_product()

    response = client.post(
        "/editable-inventory/upsert",
        json={"product_id": product_id, "initial_quantity": -1, "final_quantity": 0},
    )

    assert response.status_code == 422


def test_plain_create_conflicts_with_existing_snapshot(test_context, create_product):
    client, _ = test_context
    product_id = create_product()
    _upsert(client, product_id, 1, 1)

    response = client.post(
        "/editable-inventory",
        json={"product_id": product_id, "initial_quantity": 0, "final_quantity": 0},
    )

    assert response.status_code == 409
    assert response.json()["error"]["code"] == "conflict"


def test_snapshot_crud(test_context, create_product):
    client, _ = test_context
    product_id = create_product()
    created = client.post(
        "/editable-inventory",
        json={"product_id": product_id, "initial_quantity": 2, "final_quantity": 1},
    ).json()

    by_product = client.get(f"/editable-inventory/product/{product_id}")
    assert by_product.status_code == 200
    assert by_product.json()["id"] == created["id"]

    updated = client.put(f"/editable-inventory/{created['id']}", json={"final_quantity": 0.5}).json()
    assert updated["final_quantity"] == 0.5
    assert updated["initial_quantity"] == 2.0

    assert len(client.get("/editable-inventory").json()) == 1
    assert client.delete(f"/editable-inventory/{created['id']}").status_code == 200
    assert client.get(f"/editable-inventory/product/{product_id}").status_code == 404


def test_missing_snapshot_counts_default_to_zero(test_context, create_product):
    client, _ = test_context
    product_id = create_product()
    _confirmed_order(client, product_id, 3, 1.0)

    body = _variance(client, product_id)

    assert body["initial_quantity"] == 0.0
    assert body["final_quantity"] == 0.0
    assert body["variance"] == 3.0


@pytest.mark.parametrize(
    ("counts", "receipts", "waste"),
    [
        ((0, 0), [], []),
        ((4, 1), [2.5], [0.5]),
        ((10, 12), [1, 2, 3], [0.25, 0.25]),
    ],
)
def test_variance_identity_holds(test_context, create_product, counts, receipts, waste):
    client, _ = test_context
    product_id = create_product()
    for quantity in receipts:
        _confirmed_order(client, product_id, quantity, 1.0)
    for quantity in waste:
        client.post("/waste", json={"product_id": product_id, "quantity": quantity, "waste_date": "2026-10-03"})
    _upsert(client, product_id, *counts)

    body = _variance(client, product_id)

    expected = body["initial_quantity"] + body["inbound"] - body["outbound"] - body["final_quantity"]
    assert body["variance"] == pytest.approx(expected)
    assert body["theoretical_quantity"] == pytest.approx(body["initial_quantity"] + body["inbound"] - body["outbound"])


def test_price_edits_do_not_rewrite_ledger_history(test_context, create_product):
    client, _ = test_context
    product_id = create_product(price=2.0)
    order = _confirmed_order(client, product_id, 10, 2.0)

    response = client.patch(f"/products/{product_id}", json={"price_per_unit": 3.0, "waste_percent": 20})
    assert response.status_code == 200, response.text
    assert response.json()["effective_price_per_unit"] == 3.75

    movements = client.get("/inventory/movements", params={"source": "order"}).json()["items"]
    assert [(m["source_id"], m["total_cost"]) for m in movements] == [(order["id"], 20.0)]


def test_grid_flags_rows_by_relative_and_absolute_thresholds(test_context, create_product):
    client, _ = test_context
    steady = create_product("A steady", price=1.0)
    drifting = create_product("B drifting", price=1.0)
    empty = create_product("C empty", price=1.0)
    _confirmed_order(client, steady, 100, 1.0)
    _confirmed_order(client, drifting, 100, 1.0)
    _upsert(client, steady, 0, 98)  # 2% off
    _upsert(client, drifting, 0, 93)  # 7% off
    _upsert(client, empty, 0, 0.5)  # nothing expected, 0.5 counted

    response = client.get("/reports/inventory-grid")

    assert response.status_code == 200, response.text
    body = response.json()
    statuses = {row["product_id"]: row["status"] for row in body["items"]}
    assert statuses == {steady: "ok", drifting: "warning", empty: "warning"}
    assert body["warning_count"] == 2
    assert body["critical_count"] == 0
    assert body["total_variance_value"] == pytest.approx(2.0 + 7.0 - 0.5)


def test_grid_thresholds_follow_settings(test_context, create_product, monkeypatch):
    client, _ = test_context
    product_id = create_product(price=1.0)
    _confirmed_order(client, product_id, 100, 1.0)
    _upsert(client, product_id, 0, 93)
    monkeypatch.setattr(settings, "variance_warning_ratio", 0.01)
    monkeypatch.setattr(settings, "variance_critical_ratio", 0.05)

    row = client.get("/reports/inventory-grid").json()["items"][0]

    assert row["status"] == "critical"
