from decimal import Decimal
from typing import Optional

from sqlalchemy import CheckConstraint, Index, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from kitchen_stock.db.base import Base, TimestampMixin

ALLOWED_UNITS = {"kg", "l", "pz"}


class Product(TimestampMixin, Base):
    """
    Catalog ingredient. Supplies unit of measure and unit price to every cost computation.
    """
    __tablename__ = "products"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    code: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    supplier: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    unit: Mapped[str] = mapped_column(String(10), nullable=False)  # "kg", "l", "pz"

    # catalog quantity, the stocktake baseline when no prior count exists
    quantity: Mapped[Decimal] = mapped_column(Numeric(14, 3), nullable=False, default=0, server_default="0")
    price_per_unit: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    waste_percent: Mapped[Decimal] = mapped_column(Numeric(5, 2), nullable=False, default=0, server_default="0")
    effective_price_per_unit: Mapped[Decimal] = mapped_column(Numeric(12, 4), nullable=False)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    __table_args__ = (
        CheckConstraint("quantity >= 0", name="ck_products_quantity_nonneg"),
        CheckConstraint("price_per_unit >= 0", name="ck_products_price_nonneg"),
        CheckConstraint("waste_percent >= 0 AND waste_percent < 100", name="ck_products_waste_0_100"),
        Index("ix_products_name", "name"),
    )
