"""Initial ledger schema: catalog, purchasing, FIFO layers, balances, audit.

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-19 09:00:00.000000
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect


# revision identifiers, used by Alembic.
revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None


def _table_exists(table_name: str) -> bool:
    bind = op.get_bind()
    return bool(inspect(bind).has_table(table_name))


def _timestamps():
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    ]


def upgrade() -> None:
    if not _table_exists("parts"):
        op.create_table(
            "parts",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("part_number", sa.String(length=64), nullable=False),
            sa.Column("description", sa.String(length=255), nullable=False, server_default=""),
            sa.Column("unit_of_measure", sa.String(length=16), nullable=False, server_default="EA"),
            sa.Column("classification", sa.String(length=64), nullable=False, server_default="General"),
            sa.Column("cost", sa.Numeric(12, 4), nullable=True),
            sa.Column("manufacturer", sa.String(length=128), nullable=True),
            sa.Column("mfg_part_number", sa.String(length=64), nullable=True),
            sa.Column("notes", sa.Text(), nullable=True),
            *_timestamps(),
            sa.UniqueConstraint("part_number", name="uq_parts_part_number"),
        )
        op.create_index("ix_parts_id", "parts", ["id"])
        op.create_index("ix_parts_part_number", "parts", ["part_number"])
        op.create_index("ix_parts_classification", "parts", ["classification"])

    if not _table_exists("locations"):
        op.create_table(
            "locations",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("name", sa.String(length=128), nullable=False),
            sa.Column("type", sa.String(length=21), nullable=False),
            *_timestamps(),
            sa.UniqueConstraint("name", name="uq_locations_name"),
        )
        op.create_index("ix_locations_id", "locations", ["id"])
        op.create_index("ix_locations_name", "locations", ["name"])

    if not _table_exists("suppliers"):
        op.create_table(
            "suppliers",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("name", sa.String(length=128), nullable=False),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
            sa.UniqueConstraint("name", name="uq_suppliers_name"),
        )
        op.create_index("ix_suppliers_id", "suppliers", ["id"])
        op.create_index("ix_suppliers_name", "suppliers", ["name"])

    if not _table_exists("purchase_orders"):
        op.create_table(
            "purchase_orders",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("po_number", sa.String(length=32), nullable=False),
            sa.Column("supplier_id", sa.Integer(), sa.ForeignKey("suppliers.id"), nullable=False),
            sa.Column("status", sa.String(length=18), nullable=False),
            sa.Column("expected_delivery_date", sa.Date(), nullable=True),
            *_timestamps(),
            sa.UniqueConstraint("po_number", name="uq_purchase_orders_po_number"),
        )
        op.create_index("ix_purchase_orders_id", "purchase_orders", ["id"])
        op.create_index("ix_purchase_orders_po_number", "purchase_orders", ["po_number"])
        op.create_index("ix_purchase_orders_status", "purchase_orders", ["status"])
        op.create_index("ix_purchase_orders_supplier", "purchase_orders", ["supplier_id"])

    if not _table_exists("po_line_items"):
        op.create_table(
            "po_line_items",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column(
                "purchase_order_id",
                sa.Integer(),
                sa.ForeignKey("purchase_orders.id", ondelete="CASCADE"),
                nullable=False,
            ),
            sa.Column("part_id", sa.Integer(), sa.ForeignKey("parts.id"), nullable=False),
            sa.Column("quantity_ordered", sa.Integer(), nullable=False),
            sa.Column("quantity_received", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("unit_cost", sa.Numeric(12, 4), nullable=False),
            sa.CheckConstraint("quantity_ordered > 0", name="ck_po_line_items_ordered_positive"),
            sa.CheckConstraint("quantity_received >= 0", name="ck_po_line_items_received_non_negative"),
            sa.CheckConstraint("quantity_received <= quantity_ordered", name="ck_po_line_items_received_le_ordered"),
            sa.CheckConstraint("unit_cost >= 0", name="ck_po_line_items_unit_cost_non_negative"),
        )
        op.create_index("ix_po_line_items_id", "po_line_items", ["id"])
        op.create_index("ix_po_line_items_po", "po_line_items", ["purchase_order_id"])
        op.create_index("ix_po_line_items_part_id", "po_line_items", ["part_id"])

    if not _table_exists("fifo_layers"):
        op.create_table(
            "fifo_layers",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("part_id", sa.Integer(), sa.ForeignKey("parts.id"), nullable=False),
            sa.Column("location_id", sa.Integer(), sa.ForeignKey("locations.id"), nullable=False),
            sa.Column("source_type", sa.String(length=10), nullable=False),
            sa.Column("source_ref", sa.String(length=128), nullable=True),
            sa.Column("original_qty", sa.Integer(), nullable=False),
            sa.Column("remaining_qty", sa.Integer(), nullable=False),
            sa.Column("unit_cost", sa.Numeric(12, 4), nullable=False),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
            sa.CheckConstraint("original_qty > 0", name="ck_fifo_layers_original_qty_positive"),
            sa.CheckConstraint("remaining_qty >= 0", name="ck_fifo_layers_remaining_qty_non_negative"),
            sa.CheckConstraint("remaining_qty <= original_qty", name="ck_fifo_layers_remaining_le_original"),
            sa.CheckConstraint("unit_cost >= 0", name="ck_fifo_layers_unit_cost_non_negative"),
        )
        op.create_index("ix_fifo_layers_id", "fifo_layers", ["id"])
        op.create_index("ix_fifo_layers_part_id", "fifo_layers", ["part_id"])
        op.create_index("ix_fifo_layers_location_id", "fifo_layers", ["location_id"])
        op.create_index("ix_fifo_layers_part_location", "fifo_layers", ["part_id", "location_id", "remaining_qty"])
        op.create_index("ix_fifo_layers_fifo_order", "fifo_layers", ["part_id", "location_id", "created_at", "id"])

    if not _table_exists("inventory"):
        op.create_table(
            "inventory",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("part_id", sa.Integer(), sa.ForeignKey("parts.id"), nullable=False),
            sa.Column("location_id", sa.Integer(), sa.ForeignKey("locations.id"), nullable=False),
            sa.Column("quantity_on_hand", sa.Integer(), nullable=False, server_default="0"),
            sa.UniqueConstraint("part_id", "location_id", name="uq_inventory_part_location"),
            sa.CheckConstraint("quantity_on_hand >= 0", name="ck_inventory_quantity_non_negative"),
        )
        op.create_index("ix_inventory_id", "inventory", ["id"])
        op.create_index("ix_inventory_part_id", "inventory", ["part_id"])
        op.create_index("ix_inventory_location_id", "inventory", ["location_id"])

    if not _table_exists("inventory_transactions"):
        op.create_table(
            "inventory_transactions",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("transaction_type", sa.String(length=10), nullable=False),
            sa.Column("part_id", sa.Integer(), sa.ForeignKey("parts.id"), nullable=False),
            sa.Column("location_id", sa.Integer(), sa.ForeignKey("locations.id"), nullable=False),
            sa.Column("to_location_id", sa.Integer(), sa.ForeignKey("locations.id"), nullable=True),
            sa.Column("quantity", sa.Integer(), nullable=False),
            sa.Column("unit_cost", sa.Numeric(12, 4), nullable=True),
            sa.Column("total_cost", sa.Numeric(12, 4), nullable=True),
            sa.Column("reference_type", sa.String(length=6), nullable=True),
            sa.Column("reference_id", sa.Integer(), nullable=True),
            sa.Column("target_ref", sa.String(length=128), nullable=True),
            sa.Column("reason", sa.Text(), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        )
        op.create_index("ix_inventory_transactions_id", "inventory_transactions", ["id"])
        op.create_index("ix_inventory_transactions_transaction_type", "inventory_transactions", ["transaction_type"])
        op.create_index("ix_inventory_transactions_part", "inventory_transactions", ["part_id"])
        op.create_index("ix_inventory_transactions_location", "inventory_transactions", ["location_id"])
        op.create_index(
            "ix_inventory_transactions_created_desc",
            "inventory_transactions",
            [sa.text("created_at DESC")],
        )

    if not _table_exists("inventory_transaction_layers"):
        op.create_table(
            "inventory_transaction_layers",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column(
                "transaction_id",
                sa.Integer(),
                sa.ForeignKey("inventory_transactions.id"),
                nullable=False,
            ),
            sa.Column("layer_id", sa.Integer(), sa.ForeignKey("fifo_layers.id"), nullable=False),
            sa.Column("created_layer_id", sa.Integer(), sa.ForeignKey("fifo_layers.id"), nullable=True),
            sa.Column("quantity", sa.Integer(), nullable=False),
            sa.Column("unit_cost", sa.Numeric(12, 4), nullable=False),
            sa.Column("cost", sa.Numeric(12, 4), nullable=False),
        )
        op.create_index("ix_inventory_transaction_layers_id", "inventory_transaction_layers", ["id"])
        op.create_index("ix_inventory_transaction_layers_txn", "inventory_transaction_layers", ["transaction_id"])
        op.create_index("ix_inventory_transaction_layers_layer", "inventory_transaction_layers", ["layer_id"])


def downgrade() -> None:
    for table_name in (
        "inventory_transaction_layers",
        "inventory_transactions",
        "inventory",
        "fifo_layers",
        "po_line_items",
        "purchase_orders",
        "suppliers",
        "locations",
        "parts",
    ):
        if _table_exists(table_name):
            op.drop_table(table_name)
