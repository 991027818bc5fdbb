"""initial kardex schema

Revision ID: 0001
Revises:
Create Date: 2026-10-19 00:00:00.000000
"""
from alembic import op
import sqlalchemy as sa

revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "inventory_items",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("org_id", sa.String(length=64), nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("unit", sa.Enum("g", "ml", "u", name="inventory_unit"), nullable=False),
        sa.Column("stock", sa.Numeric(14, 3), nullable=False, server_default="0"),
        sa.Column("cost_per_unit", sa.Numeric(14, 4), nullable=False, server_default="0"),
        sa.Column("category", sa.String(length=100), nullable=False, server_default="otros"),
        sa.Column("min_stock", sa.Numeric(14, 3), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.CheckConstraint("stock >= 0", name="ck_inventory_items_stock_non_negative"),
    )
    op.create_index("ix_inventory_items_org_id", "inventory_items", ["org_id"])
    op.create_index("ix_inventory_items_category", "inventory_items", ["category"])

    op.create_table(
        "stock_movements",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("org_id", sa.String(length=64), nullable=False),
        sa.Column("item_id", sa.Integer(), nullable=False),
        sa.Column("item_name", sa.String(length=200), nullable=True),
        sa.Column("unit", sa.String(length=10), nullable=True),
        sa.Column("type", sa.Enum("in", "out", name="stock_movement_type"), nullable=False),
        sa.Column("qty", sa.Numeric(14, 3), nullable=False),
        sa.Column("reason", sa.String(length=20), nullable=False, server_default="none"),
        sa.Column("order_id", sa.Integer(), nullable=True),
        sa.Column("purchase_id", sa.Integer(), nullable=True),
        sa.Column("actor_id", sa.String(length=64), nullable=True),
        sa.Column("date_key", sa.String(length=10), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.CheckConstraint("qty >= 0", name="ck_stock_movements_qty_non_negative"),
    )
    op.create_index("ix_stock_movements_org_id", "stock_movements", ["org_id"])
    op.create_index("ix_stock_movements_item_id", "stock_movements", ["item_id"])
    op.create_index("ix_stock_movements_order_id", "stock_movements", ["order_id"])
    op.create_index("ix_stock_movements_purchase_id", "stock_movements", ["purchase_id"])
    op.create_index("ix_stock_movements_date_key", "stock_movements", ["date_key"])

    op.create_table(
        "orders",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("org_id", sa.String(length=64), nullable=False),
        sa.Column(
            "status",
            sa.Enum("pending", "delivered", "canceled", name="order_status"),
            nullable=False,
            server_default="pending",
        ),
        sa.Column(
            "pay_method",
            sa.Enum("cash", "qr", "card", "other", name="pay_method"),
            nullable=False,
            server_default="cash",
        ),
        sa.Column("subtotal", sa.Numeric(14, 2), nullable=False, server_default="0"),
        sa.Column("discount", sa.Numeric(14, 2), nullable=False, server_default="0"),
        sa.Column("tax", sa.Numeric(14, 2), nullable=False, server_default="0"),
        sa.Column("round_delta", sa.Numeric(14, 2), nullable=False, server_default="0"),
        sa.Column("total", sa.Numeric(14, 2), nullable=False, server_default="0"),
        sa.Column("cogs", sa.Numeric(14, 2), nullable=False, server_default="0"),
        sa.Column("consumption", sa.JSON(), nullable=True),
        sa.Column("actor_id", sa.String(length=64), nullable=True),
        sa.Column("customer_id", sa.String(length=64), nullable=True),
        sa.Column("date_key", sa.String(length=10), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("delivered_at", sa.DateTime(), nullable=True),
        sa.Column("canceled_at", sa.DateTime(), nullable=True),
    )
    op.create_index("ix_orders_org_id", "orders", ["org_id"])
    op.create_index("ix_orders_date_key", "orders", ["date_key"])

    op.create_table(
        "order_lines",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("order_id", sa.Integer(), sa.ForeignKey("orders.id", ondelete="CASCADE"), nullable=False),
        sa.Column("product_id", sa.String(length=100), nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("price", sa.Numeric(14, 2), nullable=False),
        sa.Column("qty", sa.Numeric(14, 3), nullable=False),
        sa.Column("recipe", sa.JSON(), nullable=False),
    )

    op.create_table(
        "purchases",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("org_id", sa.String(length=64), nullable=False),
        sa.Column("supplier", sa.String(length=200), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column(
            "status",
            sa.Enum("draft", "ordered", "received", "canceled", name="purchase_status"),
            nullable=False,
            server_default="draft",
        ),
        sa.Column("total", sa.Numeric(14, 2), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("ordered_at", sa.DateTime(), nullable=True),
        sa.Column("received_at", sa.DateTime(), nullable=True),
        sa.Column("canceled_at", sa.DateTime(), nullable=True),
    )
    op.create_index("ix_purchases_org_id", "purchases", ["org_id"])

    op.create_table(
        "purchase_lines",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("purchase_id", sa.Integer(), sa.ForeignKey("purchases.id", ondelete="CASCADE"), nullable=False),
        sa.Column("item_id", sa.Integer(), nullable=False),
        sa.Column("item_name", sa.String(length=200), nullable=True),
        sa.Column("qty", sa.Numeric(14, 3), nullable=False),
        sa.Column("unit_cost", sa.Numeric(14, 4), nullable=False, server_default="0"),
    )


def downgrade() -> None:
    op.drop_table("purchase_lines")
    op.drop_index("ix_purchases_org_id", table_name="purchases")
    op.drop_table("purchases")
    op.drop_table("order_lines")
    op.drop_index("ix_orders_date_key", table_name="orders")
    op.drop_index("ix_orders_org_id", table_name="orders")
    op.drop_table("orders")
    op.drop_index("ix_stock_movements_date_key", table_name="stock_movements")
    op.drop_index("ix_stock_movements_purchase_id", table_name="stock_movements")
    op.drop_index("ix_stock_movements_order_id", table_name="stock_movements")
    op.drop_index("ix_stock_movements_item_id", table_name="stock_movements")
    op.drop_index("ix_stock_movements_org_id", table_name="stock_movements")
    op.drop_table("stock_movements")
    op.drop_index("ix_inventory_items_category", table_name="inventory_items")
    op.drop_index("ix_inventory_items_org_id", table_name="inventory_items")
    op.drop_table("inventory_items")
