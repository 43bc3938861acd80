"""initial schema - boutiques, stock snapshots, orders, sync jobs

Revision ID: 001_initial_schema
Revises: None
Create Date: 2025-11-05

Every table owned by a boutique cascades on boutique delete; order_items
cascade on order delete. Orders are unique per (boutique_id, remote_order_id).
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "001_initial_schema"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "boutiques",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("domain", sa.String(255), nullable=False),
        sa.Column("api_key", sa.Text(), nullable=False),
        sa.Column("logo_url", sa.String(255)),
        sa.Column("favicon_url", sa.String(255)),
        sa.Column("theme_color", sa.String(50)),
        sa.Column("low_stock_threshold", sa.Integer(), nullable=False, server_default="10"),
        sa.Column("created_at", sa.DateTime()),
        sa.Column("updated_at", sa.DateTime()),
    )

    op.create_table(
        "stock_snapshots",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "boutique_id",
            sa.Integer(),
            sa.ForeignKey("boutiques.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("remote_product_id", sa.Integer(), nullable=False),
        sa.Column("reference", sa.String(100)),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("category", sa.String(255)),
        sa.Column("quantity", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("collected_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_stock_boutique_collected", "stock_snapshots", ["boutique_id", "collected_at"])
    op.create_index(
        "ix_stock_boutique_product_collected",
        "stock_snapshots",
        ["boutique_id", "remote_product_id", "collected_at"],
    )

    op.create_table(
        "orders",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "boutique_id",
            sa.Integer(),
            sa.ForeignKey("boutiques.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("remote_order_id", sa.Integer(), nullable=False),
        sa.Column("reference", sa.String(50)),
        sa.Column("total_paid", sa.Numeric(10, 2), nullable=False, server_default="0"),
        sa.Column("current_state", sa.String(50), nullable=False, server_default="unknown"),
        sa.Column("payment", sa.String(100)),
        sa.Column("order_date", sa.DateTime(), nullable=False),
        sa.Column("collected_at", sa.DateTime(), nullable=False),
        sa.Column("customer_name", sa.String(255)),
        sa.Column("customer_email", sa.String(255)),
        sa.Column("customer_phone", sa.String(50)),
        sa.Column("delivery_address", sa.Text()),
        sa.Column("delivery_postcode", sa.String(20)),
        sa.Column("delivery_city", sa.String(255)),
        sa.Column("delivery_country", sa.String(255)),
        sa.UniqueConstraint("boutique_id", "remote_order_id", name="uq_order_boutique_remote"),
    )
    op.create_index("ix_orders_boutique_date", "orders", ["boutique_id", "order_date"])

    op.create_table(
        "order_items",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "order_id",
            sa.Integer(),
            sa.ForeignKey("orders.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("remote_product_id", sa.Integer(), nullable=False),
        sa.Column("product_name", sa.String(255), nullable=False),
        sa.Column("product_reference", sa.String(100)),
        sa.Column("quantity", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("unit_price", sa.Numeric(10, 2), nullable=False, server_default="0"),
        sa.Column("total_price", sa.Numeric(10, 2), nullable=False, server_default="0"),
        sa.Column("wholesale_price", sa.Numeric(10, 2)),
    )
    op.create_index("ix_order_items_order_id", "order_items", ["order_id"])

    op.create_table(
        "sync_jobs",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "boutique_id",
            sa.Integer(),
            sa.ForeignKey("boutiques.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("type", sa.String(50), nullable=False),
        sa.Column("status", sa.String(50), nullable=False, server_default="pending"),
        sa.Column("started_at", sa.DateTime(), nullable=False),
        sa.Column("completed_at", sa.DateTime()),
        sa.Column("items_processed", sa.Integer()),
        sa.Column("total_items", sa.Integer()),
        sa.Column("error_message", sa.Text()),
        sa.Column("orders_days", sa.Integer()),
    )
    op.create_index("ix_sync_jobs_boutique_started", "sync_jobs", ["boutique_id", "started_at"])
    op.create_index("ix_sync_jobs_status", "sync_jobs", ["status"])


def downgrade() -> None:
    op.drop_table("sync_jobs")
    op.drop_table("order_items")
    op.drop_table("orders")
    op.drop_table("stock_snapshots")
    op.drop_table("boutiques")
