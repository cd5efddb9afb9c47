from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import CheckConstraint, Date, DateTime, ForeignKey, Index, Numeric, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from kitchen_stock.db.base import Base, TimestampMixin

MOVEMENT_DIRECTIONS = ("in", "out")
MOVEMENT_SOURCES = ("order", "sale", "waste", "personal_meal", "adjustment")


class StockMovement(TimestampMixin, Base):
    """
    Append-only ledger. One row per quantity change for a product.
    Direction, source and product never change once written; only quantity,
    price, date and note can be corrected.
    """
    __tablename__ = "stock_movements"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    product_id: Mapped[str] = mapped_column(String(36), ForeignKey("products.id"), index=True)

    direction: Mapped[str] = mapped_column(String(3), nullable=False)  # "in" | "out"
    quantity: Mapped[Decimal] = mapped_column(Numeric(14, 3), nullable=False)
    unit_price: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2), nullable=True)
    total_cost: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2), nullable=True)

    source: Mapped[str] = mapped_column(String(20), nullable=False)
    source_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)  # e.g. purchase order id
    movement_date: Mapped[date] = mapped_column(Date, nullable=False)
    note: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    __table_args__ = (
        CheckConstraint("quantity >= 0", name="ck_stock_movements_quantity_nonneg"),
        CheckConstraint("direction IN ('in', 'out')", name="ck_stock_movements_direction"),
        CheckConstraint(
            "source IN ('order', 'sale', 'waste', 'personal_meal', 'adjustment')",
            name="ck_stock_movements_source",
        ),
        Index("ix_stock_movements_product_date", "product_id", "movement_date"),
        Index("ix_stock_movements_source_source_id", "source", "source_id"),
    )


class EditableInventory(Base):
    """Current user-counted stock for a product. Exactly one row per product."""
    __tablename__ = "editable_inventory"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    product_id: Mapped[str] = mapped_column(String(36), ForeignKey("products.id"), unique=True, nullable=False)
    initial_quantity: Mapped[Decimal] = mapped_column(Numeric(14, 3), nullable=False, default=0, server_default="0")
    final_quantity: Mapped[Decimal] = mapped_column(Numeric(14, 3), nullable=False, default=0, server_default="0")
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    last_updated: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        CheckConstraint("initial_quantity >= 0", name="ck_editable_inventory_initial_nonneg"),
        CheckConstraint("final_quantity >= 0", name="ck_editable_inventory_final_nonneg"),
    )


class InventorySnapshot(Base):
    """Dated stocktake: the counted quantity against the theoretical one."""
    __tablename__ = "inventory_snapshots"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    product_id: Mapped[str] = mapped_column(String(36), ForeignKey("products.id"), index=True)
    snapshot_date: Mapped[date] = mapped_column(Date, nullable=False)
    initial_quantity: Mapped[Decimal] = mapped_column(Numeric(14, 3), nullable=False)
    final_quantity: Mapped[Decimal] = mapped_column(Numeric(14, 3), nullable=False)
    theoretical_quantity: Mapped[Optional[Decimal]] = mapped_column(Numeric(14, 3), nullable=True)
    variance: Mapped[Optional[Decimal]] = mapped_column(Numeric(14, 3), nullable=True)  # actual - theoretical
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        CheckConstraint("initial_quantity >= 0", name="ck_inventory_snapshots_initial_nonneg"),
        CheckConstraint("final_quantity >= 0", name="ck_inventory_snapshots_final_nonneg"),
        Index("ix_inventory_snapshots_product_date", "product_id", "snapshot_date"),
    )
