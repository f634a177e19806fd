"""orderflow schema: order hierarchy, audit, webhooks, system configuration

Revision ID: 0001
Revises:
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID

revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    ]


def upgrade() -> None:
    # customer orders
    op.create_table(
        "customer_orders",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("order_number", sa.String(50), unique=True, nullable=False),
        sa.Column("workstation_id", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(50), nullable=False, server_default="PENDING"),
        sa.Column("trigger_scenario", sa.String(50), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        *_timestamps(),
    )
    op.create_table(
        "customer_order_items",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("customer_order_id", UUID(as_uuid=True), sa.ForeignKey("customer_orders.id", ondelete="CASCADE"), nullable=False),
        sa.Column("item_type", sa.String(20), nullable=False),
        sa.Column("item_id", sa.Integer(), nullable=False),
        sa.Column("item_name", sa.String(255), nullable=True),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("fulfilled_quantity", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.CheckConstraint("quantity > 0", name="ck_customer_order_items_quantity_positive"),
        sa.CheckConstraint(
            "fulfilled_quantity >= 0 AND fulfilled_quantity <= quantity",
            name="ck_customer_order_items_fulfilled_bounds",
        ),
    )

    # warehouse orders
    op.create_table(
        "warehouse_orders",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("order_number", sa.String(50), unique=True, nullable=False),
        sa.Column("parent_type", sa.String(30), nullable=True),
        sa.Column("parent_id", UUID(as_uuid=True), nullable=True),
        sa.Column("workstation_id", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(50), nullable=False, server_default="PENDING"),
        sa.Column("trigger_scenario", sa.String(50), nullable=True),
        sa.Column("production_order_id", UUID(as_uuid=True), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_warehouse_orders_parent_id", "warehouse_orders", ["parent_id"])
    op.create_table(
        "warehouse_order_items",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("warehouse_order_id", UUID(as_uuid=True), sa.ForeignKey("warehouse_orders.id", ondelete="CASCADE"), nullable=False),
        sa.Column("item_type", sa.String(20), nullable=False, server_default="MODULE"),
        sa.Column("item_id", sa.Integer(), nullable=False),
        sa.Column("item_name", sa.String(255), nullable=True),
        sa.Column("requested_quantity", sa.Integer(), nullable=False),
        sa.Column("fulfilled_quantity", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.UniqueConstraint("warehouse_order_id", "item_type", "item_id", name="uq_warehouse_order_items_component"),
        sa.CheckConstraint(
            "fulfilled_quantity >= 0 AND fulfilled_quantity <= requested_quantity",
            name="ck_warehouse_order_items_fulfilled_bounds",
        ),
    )
    op.create_table(
        "warehouse_order_products",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("warehouse_order_id", UUID(as_uuid=True), sa.ForeignKey("warehouse_orders.id", ondelete="CASCADE"), nullable=False),
        sa.Column("product_id", sa.Integer(), nullable=False),
        sa.Column("product_name", sa.String(255), nullable=True),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("module_ids", sa.JSON(), nullable=False),
        sa.Column("final_assembly_order_id", UUID(as_uuid=True), nullable=True),
        sa.UniqueConstraint("warehouse_order_id", "product_id", name="uq_warehouse_order_products_product"),
    )

    # production orders
    op.create_table(
        "production_orders",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("order_number", sa.String(50), unique=True, nullable=False),
        sa.Column("parent_type", sa.String(30), nullable=True),
        sa.Column("parent_id", UUID(as_uuid=True), nullable=True),
        sa.Column("source_customer_order_id", UUID(as_uuid=True), nullable=True),
        sa.Column("status", sa.String(50), nullable=False, server_default="CREATED"),
        sa.Column("priority", sa.String(20), nullable=False, server_default="NORMAL"),
        sa.Column("trigger_scenario", sa.String(50), nullable=True),
        sa.Column("due_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("schedule_id", sa.String(100), nullable=True),
        sa.Column("estimated_duration_minutes", sa.Integer(), nullable=True),
        sa.Column("expected_completion_time", sa.DateTime(timezone=True), nullable=True),
        sa.Column("actual_completion_time", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_by_workstation_id", sa.Integer(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_production_orders_parent_id", "production_orders", ["parent_id"])
    op.create_table(
        "production_order_items",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("production_order_id", UUID(as_uuid=True), sa.ForeignKey("production_orders.id", ondelete="CASCADE"), nullable=False),
        sa.Column("item_type", sa.String(20), nullable=False, server_default="MODULE"),
        sa.Column("item_id", sa.Integer(), nullable=False),
        sa.Column("item_name", sa.String(255), nullable=True),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("estimated_time_minutes", sa.Integer(), nullable=False, server_default="30"),
        sa.Column("workstation_type", sa.String(20), nullable=False),
        sa.Column("target_workstation_id", sa.Integer(), nullable=False),
        sa.UniqueConstraint("production_order_id", "item_type", "item_id", name="uq_production_order_items_component"),
    )

    # control orders and workstation orders
    op.create_table(
        "control_orders",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("control_order_number", sa.String(50), unique=True, nullable=False),
        sa.Column("control_type", sa.String(20), nullable=False),
        sa.Column("production_order_id", UUID(as_uuid=True), sa.ForeignKey("production_orders.id", ondelete="CASCADE"), nullable=False),
        sa.Column("schedule_id", sa.String(100), nullable=True),
        sa.Column("status", sa.String(50), nullable=False, server_default="ASSIGNED"),
        sa.Column("priority", sa.String(20), nullable=False, server_default="NORMAL"),
        sa.Column("instructions", sa.Text(), nullable=True),
        sa.Column("target_completion_time", sa.DateTime(timezone=True), nullable=True),
        sa.Column("actual_start_time", sa.DateTime(timezone=True), nullable=True),
        sa.Column("actual_completion_time", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_control_orders_production_order_id", "control_orders", ["production_order_id"])
    op.create_table(
        "workstation_orders",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("order_number", sa.String(50), unique=True, nullable=False),
        sa.Column("control_order_id", UUID(as_uuid=True), sa.ForeignKey("control_orders.id", ondelete="CASCADE"), nullable=False),
        sa.Column("kind", sa.String(30), nullable=False),
        sa.Column("workstation_id", sa.Integer(), nullable=False),
        sa.Column("output_item_type", sa.String(20), nullable=False, server_default="MODULE"),
        sa.Column("output_item_id", sa.Integer(), nullable=False),
        sa.Column("output_item_name", sa.String(255), nullable=True),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("required_items", sa.JSON(), nullable=False),
        sa.Column("status", sa.String(50), nullable=False, server_default="PENDING"),
        sa.Column("priority", sa.String(20), nullable=False, server_default="NORMAL"),
        sa.Column("supply_order_id", UUID(as_uuid=True), nullable=True),
        sa.Column("schedule_task_id", sa.String(150), nullable=True),
        sa.Column("halt_reason", sa.Text(), nullable=True),
        sa.Column("operator_notes", sa.Text(), nullable=True),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_workstation_orders_workstation_id", "workstation_orders", ["workstation_id"])

    # supply orders
    op.create_table(
        "supply_orders",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("order_number", sa.String(50), unique=True, nullable=False),
        sa.Column("source_control_order_id", UUID(as_uuid=True), nullable=True),
        sa.Column("source_control_order_type", sa.String(20), nullable=True),
        sa.Column("workstation_order_id", UUID(as_uuid=True), nullable=True),
        sa.Column("requesting_workstation_id", sa.Integer(), nullable=False),
        sa.Column("supply_workstation_id", sa.Integer(), nullable=False),
        sa.Column("priority", sa.String(20), nullable=False, server_default="MEDIUM"),
        sa.Column("requested_by_time", sa.DateTime(timezone=True), nullable=True),
        sa.Column("status", sa.String(50), nullable=False, server_default="PENDING"),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("fulfilled_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("rejected_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("cancelled_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_supply_orders_source_control_order_id", "supply_orders", ["source_control_order_id"])
    op.create_index("ix_supply_orders_requesting_workstation_id", "supply_orders", ["requesting_workstation_id"])
    op.create_table(
        "supply_order_items",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("supply_order_id", UUID(as_uuid=True), sa.ForeignKey("supply_orders.id", ondelete="CASCADE"), nullable=False),
        sa.Column("part_id", sa.Integer(), nullable=False),
        sa.Column("part_name", sa.String(255), nullable=True),
        sa.Column("quantity_requested", sa.Integer(), nullable=False),
        sa.Column("quantity_supplied", sa.Integer(), nullable=True),
        sa.Column("unit", sa.String(20), nullable=False, server_default="piece"),
        sa.Column("notes", sa.Text(), nullable=True),
    )

    # final assembly orders
    op.create_table(
        "final_assembly_orders",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("order_number", sa.String(50), unique=True, nullable=False),
        sa.Column("parent_type", sa.String(30), nullable=False),
        sa.Column("parent_id", UUID(as_uuid=True), nullable=False),
        sa.Column("workstation_id", sa.Integer(), nullable=False),
        sa.Column("output_product_id", sa.Integer(), nullable=False),
        sa.Column("output_product_name", sa.String(255), nullable=True),
        sa.Column("output_quantity", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(50), nullable=False, server_default="PENDING"),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("start_time", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completion_time", sa.DateTime(timezone=True), nullable=True),
        sa.Column("submit_time", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.CheckConstraint(
            "parent_type IN ('WAREHOUSE_ORDER', 'PRODUCTION_ORDER')",
            name="ck_final_assembly_orders_parent_type",
        ),
    )
    op.create_index("ix_final_assembly_orders_parent_id", "final_assembly_orders", ["parent_id"])

    # audit trail (append-only)
    op.create_table(
        "audit_events",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("source_type", sa.String(50), nullable=False),
        sa.Column("order_id", UUID(as_uuid=True), nullable=False),
        sa.Column("event_type", sa.String(100), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    )
    op.create_index("ix_audit_events_source_order", "audit_events", ["source_type", "order_id"])
    op.create_index("ix_audit_events_created_at", "audit_events", ["created_at"])

    # webhooks
    op.create_table(
        "webhooks",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("url", sa.String(2048), nullable=False),
        sa.Column("secret", sa.String(255), nullable=False),
        sa.Column("event_type", sa.String(100), nullable=False, server_default="ANY"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default="true"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    )
    op.create_table(
        "webhook_deliveries",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("webhook_id", UUID(as_uuid=True), sa.ForeignKey("webhooks.id", ondelete="CASCADE"), nullable=False),
        sa.Column("event_type", sa.String(100), nullable=False),
        sa.Column("payload", sa.JSON(), nullable=False),
        sa.Column("status", sa.String(50), nullable=False, server_default="PENDING"),
        sa.Column("response_code", sa.Integer(), nullable=True),
        sa.Column("response_body", sa.Text(), nullable=True),
        sa.Column("attempts", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("last_attempt_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("delivered_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    )

    # system configuration
    op.create_table(
        "system_configurations",
        sa.Column("key", sa.String(100), primary_key=True),
        sa.Column("value", sa.String(255), nullable=False),
        sa.Column("value_type", sa.String(20), nullable=False, server_default="STRING"),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("editable", sa.Boolean(), nullable=False, server_default="true"),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    )
    op.execute(
        "INSERT INTO system_configurations (key, value, value_type, description, editable) VALUES "
        "('LOT_SIZE_THRESHOLD', '3', 'INTEGER', "
        "'Total order quantity at or above which orders go straight to production planning', true)"
    )


def downgrade() -> None:
    op.drop_table("system_configurations")
    op.drop_table("webhook_deliveries")
    op.drop_table("webhooks")
    op.drop_index("ix_audit_events_created_at", table_name="audit_events")
    op.drop_index("ix_audit_events_source_order", table_name="audit_events")
    op.drop_table("audit_events")
    op.drop_index("ix_final_assembly_orders_parent_id", table_name="final_assembly_orders")
    op.drop_table("final_assembly_orders")
    op.drop_table("supply_order_items")
    op.drop_index("ix_supply_orders_requesting_workstation_id", table_name="supply_orders")
    op.drop_index("ix_supply_orders_source_control_order_id", table_name="supply_orders")
    op.drop_table("supply_orders")
    op.drop_index("ix_workstation_orders_workstation_id", table_name="workstation_orders")
    op.drop_table("workstation_orders")
    op.drop_index("ix_control_orders_production_order_id", table_name="control_orders")
    op.drop_table("control_orders")
    op.drop_table("production_order_items")
    op.drop_index("ix_production_orders_parent_id", table_name="production_orders")
    op.drop_table("production_orders")
    op.drop_table("warehouse_order_products")
    op.drop_table("warehouse_order_items")
    op.drop_index("ix_warehouse_orders_parent_id", table_name="warehouse_orders")
    op.drop_table("warehouse_orders")
    op.drop_table("customer_order_items")
    op.drop_table("customer_orders")
