import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from stockroom.core.exceptions import (
    ConflictError,
    FieldViolation,
    InsufficientStockError,
    NotFoundError,
    ValidationError,
)
from stockroom.models.inventory_item import MAX_QUANTITY, InventoryItem, new_item_id

logger = logging.getLogger(__name__)


class ItemStore:
    def __init__(self, db: Session):
        self.db = db

    def _live(self):
        return select(InventoryItem).where(InventoryItem.deleted_at.is_(None))

    def get(self, item_id: str) -> InventoryItem:
        item = self.db.execute(
            self._live().where(InventoryItem.id == str(item_id))
        ).scalar_one_or_none()
        if item is None:
            raise NotFoundError(str(item_id))
        return item

    def find_by_sku(self, sku: str) -> Optional[InventoryItem]:
        return self.db.execute(
            self._live().where(InventoryItem.sku == sku)
        ).scalar_one_or_none()

    def list(
        self,
        *,
        status: Optional[str] = None,
        category_id: Optional[str] = None,
        location_id: Optional[str] = None,
        search: Optional[str] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> List[InventoryItem]:
        q = self._live().order_by(InventoryItem.created_at, InventoryItem.id)
        if status:
            q = q.where(InventoryItem.status == status)
        if category_id:
            q = q.where(InventoryItem.category_id == category_id)
        if location_id:
            q = q.where(InventoryItem.location_id == location_id)
        if search:
            like = f"%{search.strip()}%"
            q = q.where(or_(InventoryItem.sku.ilike(like), InventoryItem.name.ilike(like)))
        if offset:
            q = q.offset(offset)
        if limit is not None:
            q = q.limit(limit)
        return list(self.db.execute(q).scalars())

    def create(self, fields: Dict[str, Any]) -> InventoryItem:
        sku = fields["sku"]
        if self.find_by_sku(sku) is not None:
            raise ConflictError(sku)

        item = InventoryItem(id=new_item_id(), **fields)
        self.db.add(item)
        try:
            self.db.flush()
        except IntegrityError as e:
            # lost a race on the live-SKU unique index
            logger.info(f"SKU '{sku}' insert rejected by unique index: {e.orig}")
            raise ConflictError(sku) from e
        return item

    def update(self, item_id: str, patch: Dict[str, Any]) -> Tuple[InventoryItem, Dict[str, Any]]:
        """Apply ``patch`` and return ``(item, previous values of patched fields)``.

        Raises ``StaleDataError`` on flush when another writer bumped the
        version in between; callers retry.
        """
        item = self.get(item_id)
        before = item.snapshot(tuple(patch))
        for k, v in patch.items():
            setattr(item, k, v)
        self.db.flush()
        return item, before

    def delete(self, item_id: str) -> InventoryItem:
        item = self.get(item_id)
        item.deleted_at = datetime.utcnow()
        self.db.flush()
        return item

    def apply_delta(self, item_id: str, delta: int) -> Tuple[InventoryItem, int]:
        """Add ``delta`` to the item's quantity unless that would leave the column range.

        One conditional UPDATE, so concurrent adjustments of the same row
        serialize in the database. Returns ``(item, previous quantity)``.
        """
        result = self.db.execute(
            update(InventoryItem)
            .where(
                InventoryItem.id == str(item_id),
                InventoryItem.deleted_at.is_(None),
                # bounds written against the bare column so the sum cannot overflow
                InventoryItem.quantity >= -delta,
                InventoryItem.quantity <= MAX_QUANTITY - delta,
            )
            .values(
                quantity=InventoryItem.quantity + delta,
                version=InventoryItem.version + 1,
                updated_at=datetime.utcnow(),
            )
            .execution_options(synchronize_session=False)
        )

        current = self.db.execute(
            self._live()
            .where(InventoryItem.id == str(item_id))
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

        if current is None:
            raise NotFoundError(str(item_id))
        if result.rowcount == 0 and delta > 0:
            raise ValidationError([FieldViolation("quantity", "out_of_range")])
        if result.rowcount == 0:
            raise InsufficientStockError(str(item_id), requested=abs(delta), available=current.quantity)
        return current, current.quantity - delta
