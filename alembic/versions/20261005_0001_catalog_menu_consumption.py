"""catalog, menu and consumption tables

Revision ID: 20261005_0001
Revises:
Create Date: 2026-10-05 09:30:00.000000
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "20261005_0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "products",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("code", sa.String(length=64), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("supplier", sa.String(length=255), nullable=True),
        sa.Column("unit", sa.String(length=10), nullable=False),
        sa.Column("quantity", sa.Numeric(14, 3), server_default="0", nullable=False),
        sa.Column("price_per_unit", sa.Numeric(12, 2), nullable=False),
        sa.Column("waste_percent", sa.Numeric(5, 2), server_default="0", nullable=False),
        sa.Column("effective_price_per_unit", sa.Numeric(12, 4), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        *_timestamps(),
        sa.CheckConstraint("quantity >= 0", name="ck_products_quantity_nonneg"),
        sa.CheckConstraint("price_per_unit >= 0", name="ck_products_price_nonneg"),
        sa.CheckConstraint("waste_percent >= 0 AND waste_percent < 100", name="ck_products_waste_0_100"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("code"),
    )
    op.create_index("ix_products_name", "products", ["name"], unique=False)

    op.create_table(
        "recipes",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("ingredients", sa.JSON(), nullable=False),
        sa.Column("weight_adjustment", sa.Numeric(6, 2), server_default="0", nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "dishes",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("ingredients", sa.JSON(), nullable=False),
        sa.Column("selling_price", sa.Numeric(12, 2), server_default="0", nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "waste_records",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("product_id", sa.String(length=36), nullable=False),
        sa.Column("quantity", sa.Numeric(14, 3), nullable=False),
        sa.Column("cost", sa.Numeric(12, 2), server_default="0", nullable=False),
        sa.Column("waste_date", sa.Date(), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.CheckConstraint("quantity >= 0", name="ck_waste_records_quantity_nonneg"),
        sa.ForeignKeyConstraint(["product_id"], ["products.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_waste_records_product_id"), "waste_records", ["product_id"], unique=False)
    op.create_index("ix_waste_records_product_date", "waste_records", ["product_id", "waste_date"], unique=False)

    op.create_table(
        "personal_meals",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("dish_id", sa.String(length=36), nullable=False),
        sa.Column("quantity", sa.Integer(), server_default="1", nullable=False),
        sa.Column("cost", sa.Numeric(12, 2), server_default="0", nullable=False),
        sa.Column("meal_date", sa.Date(), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.CheckConstraint("quantity >= 0", name="ck_personal_meals_quantity_nonneg"),
        sa.ForeignKeyConstraint(["dish_id"], ["dishes.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_personal_meals_dish_id"), "personal_meals", ["dish_id"], unique=False)

    op.create_table(
        "dish_sales",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("dish_id", sa.String(length=36), nullable=False),
        sa.Column("dish_name", sa.String(length=255), nullable=False),
        sa.Column("quantity_sold", sa.Integer(), nullable=False),
        sa.Column("unit_cost", sa.Numeric(12, 2), nullable=False),
        sa.Column("unit_revenue", sa.Numeric(12, 2), nullable=False),
        sa.Column("total_cost", sa.Numeric(12, 2), nullable=False),
        sa.Column("total_revenue", sa.Numeric(12, 2), nullable=False),
        sa.Column("sale_date", sa.Date(), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        *_timestamps(),
        sa.CheckConstraint("quantity_sold >= 1", name="ck_dish_sales_quantity_pos"),
        sa.ForeignKeyConstraint(["dish_id"], ["dishes.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_dish_sales_dish_id"), "dish_sales", ["dish_id"], unique=False)
    op.create_index("ix_dish_sales_dish_date", "dish_sales", ["dish_id", "sale_date"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_dish_sales_dish_date", table_name="dish_sales")
    op.drop_index(op.f("ix_dish_sales_dish_id"), table_name="dish_sales")
    op.drop_table("dish_sales")
    op.drop_index(op.f("ix_personal_meals_dish_id"), table_name="personal_meals")
    op.drop_table("personal_meals")
    op.drop_index("ix_waste_records_product_date", table_name="waste_records")
    op.drop_index(op.f("ix_waste_records_product_id"), table_name="waste_records")
    op.drop_table("waste_records")
    op.drop_table("dishes")
    op.drop_table("recipes")
    op.drop_index("ix_products_name", table_name="products")
    op.drop_table("products")
