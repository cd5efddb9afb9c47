import pytest
import os
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault("DATABASE_URL", "sqlite://")

import kitchen_stock.models  # noqa: F401
from kitchen_stock.core.deps import get_db
from kitchen_stock.db.base import Base
from kitchen_stock.main import app


@pytest.fixture()
def test_context():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    session_local = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.create_all(bind=engine)

    def override_get_db():
        db = session_local()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as client:
        yield client, session_local

    app.dependency_overrides.clear()
    Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def create_product(test_context):
    client, _ = test_context
    counter = {"n": 0}

    def _create(name: str = "Flour", *, unit: str = "kg", price: float = 2.0, waste: float = 0, quantity: float = 0):
        counter["n"] += 1
        response = client.post(
            "/products",
            json={
                "code": f"P-{counter['n']:03d}",
                "name": name,
                "unit": unit,
                "price_per_unit": price,
                "waste_percent": waste,
                "quantity": quantity,
            },
        )
        assert response.status_code == 200, response.text
        return response.json()["id"]

    return _create
