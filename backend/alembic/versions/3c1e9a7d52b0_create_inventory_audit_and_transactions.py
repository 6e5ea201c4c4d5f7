"""create inventory, audit and stock transaction tables

Revision ID: 3c1e9a7d52b0
Revises:
Create Date: 2026-10-18 09:12:44.107351
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "3c1e9a7d52b0"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        "inventory_items",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("sku", sa.String(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("quantity", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("min_stock_level", sa.Integer(), nullable=True),
        sa.Column("max_stock_level", sa.Integer(), nullable=True),
        sa.Column("unit_price", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("category_id", sa.String(), nullable=True),
        sa.Column("location_id", sa.String(), nullable=True),
        sa.Column("status", sa.String(), nullable=False, server_default="active"),
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.Column("deleted_at", sa.DateTime(), nullable=True),
        # CHECK constraints
        sa.CheckConstraint("quantity >= 0", name="ck_items_quantity_non_negative"),
        sa.CheckConstraint("unit_price >= 0", name="ck_items_unit_price_non_negative"),
        sa.CheckConstraint(
            "min_stock_level IS NULL OR min_stock_level >= 0",
            name="ck_items_min_stock_non_negative",
        ),
        sa.CheckConstraint(
            "max_stock_level IS NULL OR max_stock_level >= 0",
            name="ck_items_max_stock_non_negative",
        ),
    )
    # partial UNIQUE index: deleted rows release their SKU
    op.create_index(
        "uq_inventory_items_live_sku",
        "inventory_items",
        ["sku"],
        unique=True,
        sqlite_where=sa.text("deleted_at IS NULL"),
        postgresql_where=sa.text("deleted_at IS NULL"),
    )
    op.create_index("ix_inventory_items_category", "inventory_items", ["category_id"])
    op.create_index("ix_inventory_items_location", "inventory_items", ["location_id"])

    op.create_table(
        "audit_entries",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("action", sa.String(), nullable=False),
        sa.Column("item_id", sa.String(36), nullable=False),
        sa.Column("sku", sa.String(), nullable=False),
        sa.Column("delta", sa.Integer(), nullable=True),
        sa.Column("prev_quantity", sa.Integer(), nullable=True),
        sa.Column("new_quantity", sa.Integer(), nullable=True),
        sa.Column("before", sa.JSON(), nullable=True),
        sa.Column("after", sa.JSON(), nullable=True),
        sa.Column("transaction_id", sa.String(36), nullable=True),
        sa.Column("actor", sa.String(), nullable=False, server_default="system"),
        sa.Column("note", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_audit_entries_id", "audit_entries", ["id"])
    op.create_index("ix_audit_entries_action", "audit_entries", ["action"])
    op.create_index("ix_audit_entries_item_id", "audit_entries", ["item_id"])
    op.create_index("ix_audit_entries_transaction_id", "audit_entries", ["transaction_id"])
    op.create_index("ix_audit_entries_created_at", "audit_entries", ["created_at"])

    op.create_table(
        "stock_transactions",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("type", sa.String(), nullable=False),
        sa.Column("status", sa.String(), nullable=False, server_default="completed"),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_by", sa.String(), nullable=False, server_default="system"),
        sa.Column("subtotal", sa.Numeric(14, 2), nullable=False, server_default="0"),
        sa.Column("tax_rate", sa.Numeric(6, 4), nullable=False, server_default="0"),
        sa.Column("tax", sa.Numeric(14, 2), nullable=False, server_default="0"),
        sa.Column("total", sa.Numeric(14, 2), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_stock_transactions_type", "stock_transactions", ["type"])
    op.create_index("ix_stock_transactions_created_by", "stock_transactions", ["created_by"])
    op.create_index("ix_stock_transactions_created_at", "stock_transactions", ["created_at"])

    op.create_table(
        "stock_transaction_lines",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "transaction_id",
            sa.String(36),
            sa.ForeignKey("stock_transactions.id"),
            nullable=False,
        ),
        sa.Column("item_id", sa.String(36), nullable=False),
        sa.Column("sku", sa.String(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("unit_price", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("total_price", sa.Numeric(14, 2), nullable=False, server_default="0"),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.CheckConstraint("quantity > 0", name="ck_tx_lines_quantity_positive"),
    )
    op.create_index(
        "ix_stock_transaction_lines_transaction_id",
        "stock_transaction_lines",
        ["transaction_id"],
    )
    op.create_index("ix_stock_transaction_lines_item_id", "stock_transaction_lines", ["item_id"])


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_table("stock_transaction_lines")
    op.drop_table("stock_transactions")
    op.drop_table("audit_entries")

    op.drop_index("uq_inventory_items_live_sku", table_name="inventory_items")
    op.drop_table("inventory_items")
