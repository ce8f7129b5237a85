"""Add orders, pendencies, user_document_limits and collaborator_kpis tables.

Revision ID: a1f3c9d2e7b4
Revises:
Create Date: 2026-10-18
"""

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision = "a1f3c9d2e7b4"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    order_status = sa.Enum("pending", "in_progress", "delivered", name="order_status")
    pendency_status = sa.Enum("pending", "resolved", name="pendency_status")

    op.create_table(
        "orders",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("order_number", sa.String(length=80), nullable=True),
        sa.Column("assigned_to", sa.Uuid(), nullable=True),
        sa.Column("document_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("urgent_document_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("status", order_status, nullable=False, server_default="pending"),
        sa.Column("deadline", sa.DateTime(timezone=True), nullable=False),
        sa.Column("attribution_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("delivered_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_orders_assigned_to", "orders", ["assigned_to"])
    op.create_index("ix_orders_attribution_date", "orders", ["attribution_date"])
    op.create_index("ix_orders_delivered_at", "orders", ["delivered_at"])
    op.create_index("ix_orders_deadline", "orders", ["deadline"])

    op.create_table(
        "pendencies",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("order_id", sa.Uuid(), sa.ForeignKey("orders.id"), nullable=True),
        sa.Column("error_type", sa.String(length=80), nullable=False),
        sa.Column("description", sa.String(length=500), nullable=True),
        sa.Column("status", pendency_status, nullable=False, server_default="pending"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_pendencies_created_at", "pendencies", ["created_at"])
    op.create_index("ix_pendencies_error_type", "pendencies", ["error_type"])

    op.create_table(
        "user_document_limits",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("daily_limit", sa.Integer(), nullable=True),
        sa.Column("concurrent_order_limit", sa.Integer(), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("user_id", name="uq_user_document_limits_user"),
    )

    op.create_table(
        "collaborator_kpis",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("kpi_name", sa.String(length=80), nullable=False),
        sa.Column("kpi_label", sa.String(length=160), nullable=False),
        sa.Column("target_value", sa.Float(), nullable=False, server_default="0"),
        sa.Column("target_operator", sa.String(length=8), nullable=False, server_default="lte"),
        sa.Column("calculation_type", sa.String(length=40), nullable=False, server_default="error_rate"),
        sa.Column("unit", sa.String(length=16), nullable=False, server_default="%"),
        sa.Column("manual_value", sa.Float(), nullable=True),
        sa.Column("display_order", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_collaborator_kpis_user_active", "collaborator_kpis", ["user_id", "is_active"])


def downgrade() -> None:
    op.drop_index("ix_collaborator_kpis_user_active", table_name="collaborator_kpis")
    op.drop_table("collaborator_kpis")
    op.drop_table("user_document_limits")
    op.drop_index("ix_pendencies_error_type", table_name="pendencies")
    op.drop_index("ix_pendencies_created_at", table_name="pendencies")
    op.drop_table("pendencies")
    op.drop_index("ix_orders_deadline", table_name="orders")
    op.drop_index("ix_orders_delivered_at", table_name="orders")
    op.drop_index("ix_orders_attribution_date", table_name="orders")
    op.drop_index("ix_orders_assigned_to", table_name="orders")
    op.drop_table("orders")
    sa.Enum(name="pendency_status").drop(op.get_bind(), checkfirst=True)
    sa.Enum(name="order_status").drop(op.get_bind(), checkfirst=True)
