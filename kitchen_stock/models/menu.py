from decimal import Decimal
from typing import Any

from sqlalchemy import JSON, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from kitchen_stock.db.base import Base, TimestampMixin


class Recipe(TimestampMixin, Base):
    __tablename__ = "recipes"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    # [{"product_id": ..., "quantity": ...}] per unit of prepared recipe
    ingredients: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)
    weight_adjustment: Mapped[Decimal] = mapped_column(Numeric(6, 2), nullable=False, default=0, server_default="0")


class Dish(TimestampMixin, Base):
    __tablename__ = "dishes"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    # tagged lines: {"type": "product", "product_id", "quantity"} | {"type": "recipe", "recipe_id", "quantity"}
    ingredients: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)
    selling_price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=0, server_default="0")
