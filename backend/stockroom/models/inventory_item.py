import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    Column,
    Integer,
    Numeric,
    String,
    Text,
    DateTime,
    CheckConstraint,
    Index,
    text,
)
from stockroom.core.database import Base

ITEM_STATUSES = ("active", "inactive", "discontinued")

# column ranges: 32-bit INTEGER and NUMERIC(12, 2)
MAX_QUANTITY = 2_147_483_647
MAX_UNIT_PRICE = Decimal("9999999999.99")

# fields a caller may set; id/version/timestamps are system-owned
ITEM_FIELDS = (
    "sku",
    "name",
    "description",
    "quantity",
    "min_stock_level",
    "max_stock_level",
    "unit_price",
    "category_id",
    "location_id",
    "status",
)


def new_item_id() -> str:
    return str(uuid.uuid4())


class InventoryItem(Base):
    __tablename__ = "inventory_items"

    __table_args__ = (
        # SAFETY CONSTRAINTS
        CheckConstraint("quantity >= 0", name="ck_items_quantity_non_negative"),
        CheckConstraint("unit_price >= 0", name="ck_items_unit_price_non_negative"),
        CheckConstraint(
            "min_stock_level IS NULL OR min_stock_level >= 0",
            name="ck_items_min_stock_non_negative",
        ),
        CheckConstraint(
            "max_stock_level IS NULL OR max_stock_level >= 0",
            name="ck_items_max_stock_non_negative",
        ),
        # one live item per SKU; soft-deleted rows release their SKU
        Index(
            "uq_inventory_items_live_sku",
            "sku",
            unique=True,
            sqlite_where=text("deleted_at IS NULL"),
            postgresql_where=text("deleted_at IS NULL"),
        ),
        # PERFORMANCE INDEXES
        Index("ix_inventory_items_category", "category_id"),
        Index("ix_inventory_items_location", "location_id"),
    )

    id = Column(String(36), primary_key=True, default=new_item_id)

    sku = Column(String, nullable=False)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)

    quantity = Column(Integer, nullable=False, default=0)
    min_stock_level = Column(Integer, nullable=True)
    max_stock_level = Column(Integer, nullable=True)
    unit_price = Column(Numeric(12, 2), nullable=False, default=0)

    # opaque references, existence is the caller's concern
    category_id = Column(String, nullable=True)
    location_id = Column(String, nullable=True)

    status = Column(String, nullable=False, default="active")

    # optimistic locking for patches
    version = Column(Integer, nullable=False, default=1)

    # timestamps
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(
        DateTime,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
        nullable=False,
    )

    # soft delete
    deleted_at = Column(DateTime, nullable=True)

    __mapper_args__ = {"version_id_col": version}

    def snapshot(self, fields=ITEM_FIELDS) -> dict:
        out = {}
        for f in fields:
            v = getattr(self, f)
            # keep JSON-friendly values in audit snapshots
            if f == "unit_price" and v is not None:
                v = str(v)
            out[f] = v
        return out
