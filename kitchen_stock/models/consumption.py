from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import CheckConstraint, Date, DateTime, ForeignKey, Index, Integer, Numeric, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from kitchen_stock.db.base import Base


class WasteRecord(Base):
    __tablename__ = "waste_records"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    product_id: Mapped[str] = mapped_column(String(36), ForeignKey("products.id"), index=True)
    quantity: Mapped[Decimal] = mapped_column(Numeric(14, 3), nullable=False)
    cost: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=0, server_default="0")
    waste_date: Mapped[date] = mapped_column(Date, nullable=False)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        CheckConstraint("quantity >= 0", name="ck_waste_records_quantity_nonneg"),
        Index("ix_waste_records_product_date", "product_id", "waste_date"),
    )


class PersonalMeal(Base):
    """Staff meal: a count of dishes consumed in-house."""
    __tablename__ = "personal_meals"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    dish_id: Mapped[str] = mapped_column(String(36), ForeignKey("dishes.id"), index=True)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=1, server_default="1")
    cost: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=0, server_default="0")
    meal_date: Mapped[date] = mapped_column(Date, nullable=False)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        CheckConstraint("quantity >= 0", name="ck_personal_meals_quantity_nonneg"),
    )


class DishSale(Base):
    __tablename__ = "dish_sales"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    dish_id: Mapped[str] = mapped_column(String(36), ForeignKey("dishes.id"), index=True)
    dish_name: Mapped[str] = mapped_column(String(255), nullable=False)
    quantity_sold: Mapped[int] = mapped_column(Integer, nullable=False)
    unit_cost: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    unit_revenue: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    total_cost: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)  # unit_cost * quantity_sold
    total_revenue: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)  # unit_revenue * quantity_sold
    sale_date: Mapped[date] = mapped_column(Date, nullable=False)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
    )

    __table_args__ = (
        CheckConstraint("quantity_sold >= 1", name="ck_dish_sales_quantity_pos"),
        Index("ix_dish_sales_dish_date", "dish_id", "sale_date"),
    )
