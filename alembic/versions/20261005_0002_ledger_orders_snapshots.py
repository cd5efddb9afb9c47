"""stock ledger, purchase orders, snapshots and audit logs

Revision ID: 20261005_0002
Revises: 20261005_0001
Create Date: 2026-10-05 10:15:00.000000
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "20261005_0002"
down_revision: Union[str, None] = "20261005_0001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "stock_movements",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("product_id", sa.String(length=36), nullable=False),
        sa.Column("direction", sa.String(length=3), nullable=False),
        sa.Column("quantity", sa.Numeric(14, 3), nullable=False),
        sa.Column("unit_price", sa.Numeric(12, 2), nullable=True),
        sa.Column("total_cost", sa.Numeric(12, 2), nullable=True),
        sa.Column("source", sa.String(length=20), nullable=False),
        sa.Column("source_id", sa.String(length=36), nullable=True),
        sa.Column("movement_date", sa.Date(), nullable=False),
        sa.Column("note", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.CheckConstraint("quantity >= 0", name="ck_stock_movements_quantity_nonneg"),
        sa.CheckConstraint("direction IN ('in', 'out')", name="ck_stock_movements_direction"),
        sa.CheckConstraint(
            "source IN ('order', 'sale', 'waste', 'personal_meal', 'adjustment')",
            name="ck_stock_movements_source",
        ),
        sa.ForeignKeyConstraint(["product_id"], ["products.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_stock_movements_product_id"), "stock_movements", ["product_id"], unique=False)
    op.create_index("ix_stock_movements_product_date", "stock_movements", ["product_id", "movement_date"], unique=False)
    op.create_index("ix_stock_movements_source_source_id", "stock_movements", ["source", "source_id"], unique=False)

    op.create_table(
        "purchase_orders",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("supplier", sa.String(length=255), nullable=False),
        sa.Column("order_date", sa.Date(), nullable=False),
        sa.Column("items", sa.JSON(), nullable=False),
        sa.Column("total_amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("status", sa.String(length=20), server_default="pending", nullable=False),
        sa.Column("operator_name", sa.String(length=255), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_purchase_orders_status_order_date",
        "purchase_orders",
        ["status", "order_date"],
        unique=False,
    )

    op.create_table(
        "editable_inventory",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("product_id", sa.String(length=36), nullable=False),
        sa.Column("initial_quantity", sa.Numeric(14, 3), server_default="0", nullable=False),
        sa.Column("final_quantity", sa.Numeric(14, 3), server_default="0", nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("last_updated", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.CheckConstraint("initial_quantity >= 0", name="ck_editable_inventory_initial_nonneg"),
        sa.CheckConstraint("final_quantity >= 0", name="ck_editable_inventory_final_nonneg"),
        sa.ForeignKeyConstraint(["product_id"], ["products.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("product_id"),
    )

    op.create_table(
        "inventory_snapshots",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("product_id", sa.String(length=36), nullable=False),
        sa.Column("snapshot_date", sa.Date(), nullable=False),
        sa.Column("initial_quantity", sa.Numeric(14, 3), nullable=False),
        sa.Column("final_quantity", sa.Numeric(14, 3), nullable=False),
        sa.Column("theoretical_quantity", sa.Numeric(14, 3), nullable=True),
        sa.Column("variance", sa.Numeric(14, 3), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.CheckConstraint("initial_quantity >= 0", name="ck_inventory_snapshots_initial_nonneg"),
        sa.CheckConstraint("final_quantity >= 0", name="ck_inventory_snapshots_final_nonneg"),
        sa.ForeignKeyConstraint(["product_id"], ["products.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_inventory_snapshots_product_id"), "inventory_snapshots", ["product_id"], unique=False)
    op.create_index(
        "ix_inventory_snapshots_product_date",
        "inventory_snapshots",
        ["product_id", "snapshot_date"],
        unique=False,
    )

    op.create_table(
        "audit_logs",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("actor", sa.String(length=255), nullable=False),
        sa.Column("action", sa.String(length=100), nullable=False),
        sa.Column("target_type", sa.String(length=100), nullable=False),
        sa.Column("target_id", sa.String(length=36), nullable=True),
        sa.Column("metadata_json", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_audit_logs_target_id"), "audit_logs", ["target_id"], unique=False)
    op.create_index("ix_audit_logs_action_created_at", "audit_logs", ["action", "created_at"], unique=False)
    op.create_index("ix_audit_logs_target", "audit_logs", ["target_type", "target_id"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_audit_logs_target", table_name="audit_logs")
    op.drop_index("ix_audit_logs_action_created_at", table_name="audit_logs")
    op.drop_index(op.f("ix_audit_logs_target_id"), table_name="audit_logs")
    op.drop_table("audit_logs")
    op.drop_index("ix_inventory_snapshots_product_date", table_name="inventory_snapshots")
    op.drop_index(op.f("ix_inventory_snapshots_product_id"), table_name="inventory_snapshots")
    op.drop_table("inventory_snapshots")
    op.drop_table("editable_inventory")
    op.drop_index("ix_purchase_orders_status_order_date", table_name="purchase_orders")
    op.drop_table("purchase_orders")
    op.drop_index("ix_stock_movements_source_source_id", table_name="stock_movements")
    op.drop_index("ix_stock_movements_product_date", table_name="stock_movements")
    op.drop_index(op.f("ix_stock_movements_product_id"), table_name="stock_movements")
    op.drop_table("stock_movements")
