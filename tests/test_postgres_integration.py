import os
import threading
from datetime import date
from pathlib import Path

import pytest
from alembic import command
from alembic.config import Config
from sqlalchemy import create_engine, func, inspect, select, text
from sqlalchemy.orm import sessionmaker

from kitchen_stock.core.id_utils import generate_shortuuid
from kitchen_stock.db.base import Base
from kitchen_stock.models.inventory import EditableInventory, StockMovement
from kitchen_stock.models.product import Product
from kitchen_stock.services.order_service import create_purchase_order, update_purchase_order
from kitchen_stock.services.variance_service import upsert_snapshot


def _test_pg_url() -> str | None:
    return os.getenv("TEST_POSTGRES_DATABASE_URL")


@pytest.fixture()
def pg_session_local():
    url = _test_pg_url()
    if not url:
        pytest.skip("Set TEST_POSTGRES_DATABASE_URL to run Postgres integration tests.")
    engine = create_engine(url, pool_pre_ping=True, pool_size=10)
    Base.metadata.create_all(bind=engine)
    try:
        yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


def _seed_product(session_local) -> str:
    with session_local() as db:
        product = Product(
            id=generate_shortuuid(),
            code=f"PG-{generate_shortuuid()[:8]}",
            name="Concurrency flour",
            unit="kg",
            price_per_unit=2,
            waste_percent=0,
            effective_price_per_unit=2,
        )
        db.add(product)
        db.commit()
        return product.id


def _run_concurrently(worker, count: int) -> list[Exception]:
    barrier = threading.Barrier(count)
    errors: list[Exception] = []

    def _target():
        barrier.wait()
        try:
            worker()
        except Exception as exc:
            errors.append(exc)

    threads = [threading.Thread(target=_target) for _ in range(count)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=30)
    return errors


@pytest.mark.integration
def test_postgres_connection_and_core_tables(pg_session_local):
    engine = pg_session_local.kw["bind"]
    with engine.connect() as conn:
        assert conn.execute(text("SELECT 1")).scalar_one() == 1

    table_names = set(inspect(engine).get_table_names())
    assert {"products", "stock_movements", "purchase_orders", "editable_inventory"} <= table_names


@pytest.mark.integration
def test_concurrent_confirmations_materialize_once(pg_session_local):
    product_id = _seed_product(pg_session_local)
    with pg_session_local() as db:
        order_id = create_purchase_order(
            db,
            supplier="Metro",
            order_date=date(2026, 10, 1),
            items=[
                {"product_id": product_id, "quantity": 10, "unit_price": 2},
                {"product_id": product_id, "quantity": 5, "unit_price": 2},
            ],
            actor="pytest",
        ).order.id

    def confirm():
        with pg_session_local() as db:
            update_purchase_order(db, order_id, changes={"status": "confirmed"}, actor="pytest")

    errors = _run_concurrently(confirm, 8)

    assert errors == []
    with pg_session_local() as db:
        count = db.execute(
            select(func.count(StockMovement.id)).where(
                StockMovement.source == "order",
                StockMovement.source_id == order_id,
            )
        ).scalar_one()
    assert count == 2


@pytest.mark.integration
def test_concurrent_first_upserts_leave_one_snapshot(pg_session_local):
    product_id = _seed_product(pg_session_local)

    def upsert():
        with pg_session_local() as db:
            upsert_snapshot(db, product_id=product_id, initial_quantity=1, final_quantity=1, actor="pytest")

    errors = _run_concurrently(upsert, 6)

    assert errors == []
    with pg_session_local() as db:
        count = db.execute(
            select(func.count(EditableInventory.id)).where(EditableInventory.product_id == product_id)
        ).scalar_one()
    assert count == 1


@pytest.mark.integration
def test_alembic_upgrade_downgrade_smoke():
    url = _test_pg_url()
    if not url:
        pytest.skip("Set TEST_POSTGRES_DATABASE_URL to run migration smoke tests.")
    if os.getenv("ALLOW_DESTRUCTIVE_MIGRATION_TESTS") != "1":
        pytest.skip("Set ALLOW_DESTRUCTIVE_MIGRATION_TESTS=1 for downgrade smoke test.")

    from kitchen_stock.core.config import settings

    project_root = Path(__file__).resolve().parents[1]
    alembic_cfg = Config(str(project_root / "alembic.ini"))

    previous_database_url = settings.database_url
    settings.database_url = url
    try:
        command.upgrade(alembic_cfg, "head")
        command.downgrade(alembic_cfg, "20261005_0001")
        command.upgrade(alembic_cfg, "head")
        command.downgrade(alembic_cfg, "base")
    finally:
        settings.database_url = previous_database_url
