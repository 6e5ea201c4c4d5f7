import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from stockroom.core.config import settings
from stockroom.core.exceptions import (
    ConcurrentModificationError,
    ConflictError,
    FieldViolation,
    RequestShapeError,
    StockroomError,
    StorageError,
    ValidationError,
)
from stockroom.models.inventory_item import InventoryItem
from stockroom.services.audit import AuditLog
from stockroom.services.item_store import ItemStore
from stockroom.services.normalize import delete_ref, normalize_item, split_patch
from stockroom.services.validator import CREATE, UPDATE, clean_item

logger = logging.getLogger(__name__)

OPERATIONS = ("create", "update", "delete")


@dataclass
class ItemOutcome:
    index: int
    id: Optional[str] = None
    value: Any = None
    error: Optional[StockroomError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class ItemError:
    index: int
    id: Optional[str]
    reason: str
    code: str
    violations: List[Dict[str, str]] = field(default_factory=list)


@dataclass
class BulkMutationResult:
    operation: str
    total: int = 0
    successful: int = 0
    failed: int = 0
    errors: List[ItemError] = field(default_factory=list)
    items: List[Any] = field(default_factory=list)

    @classmethod
    def from_outcomes(cls, operation: str, outcomes: Sequence[ItemOutcome]) -> "BulkMutationResult":
        result = cls(operation=operation, total=len(outcomes))
        for o in sorted(outcomes, key=lambda o: o.index):
            if o.ok:
                result.successful += 1
                result.items.append(o.value)
                continue
            result.failed += 1
            violations = getattr(o.error, "violations", [])
            result.errors.append(
                ItemError(
                    index=o.index,
                    id=o.id,
                    reason=o.error.message,
                    code=o.error.code,
                    violations=[v.to_dict() for v in violations],
                )
            )
        return result

    @property
    def message(self) -> str:
        return f"Bulk {self.operation} operation completed: {self.successful} of {self.total} succeeded"


def check_batch(items: Any, max_batch_size: int) -> List[Any]:
    if items is None or not isinstance(items, list) or len(items) == 0:
        raise RequestShapeError("Invalid request", "Items array is required and must not be empty")
    if len(items) > max_batch_size:
        raise RequestShapeError(
            "Request too large",
            f"Maximum {max_batch_size} items allowed per bulk operation",
        )
    return items


class BulkMutationEngine:
    def __init__(
        self,
        db: Session,
        store: ItemStore,
        audit: AuditLog,
        actor: str,
        max_batch_size: int = None,
        write_retries: int = None,
    ):
        self.db = db
        self.store = store
        self.audit = audit
        self.actor = actor
        self.max_batch_size = max_batch_size or settings.max_batch_size
        self.write_retries = settings.write_retries if write_retries is None else write_retries

    # ---------- batch entry points ----------

    def run(self, operation: Any, items: Any) -> BulkMutationResult:
        check_batch(items, self.max_batch_size)
        if operation not in OPERATIONS:
            raise RequestShapeError(
                "Invalid operation",
                'Operation must be "create", "update" or "delete"',
            )
        return getattr(self, f"bulk_{operation}")(items)

    def bulk_create(self, items: Any) -> BulkMutationResult:
        check_batch(items, self.max_batch_size)
        committed_skus = set()

        def step(payload):
            item = self._create_step(payload, committed_skus)
            committed_skus.add(item.sku)
            return item

        outcomes = [self._attempt(i, None, step, payload) for i, payload in enumerate(items)]
        return self._finish("create", outcomes)

    def bulk_update(self, patches: Any) -> BulkMutationResult:
        check_batch(patches, self.max_batch_size)
        outcomes = []
        for i, patch in enumerate(patches):
            item_id = split_patch(patch)[0] if isinstance(patch, dict) else None
            outcomes.append(self._attempt(i, item_id, self._update_step, patch))
        return self._finish("update", outcomes)

    def bulk_delete(self, ids: Any) -> BulkMutationResult:
        check_batch(ids, self.max_batch_size)
        outcomes = []
        for i, ref in enumerate(ids):
            item_id = delete_ref(ref)
            outcomes.append(self._attempt(i, item_id, self._delete_step, item_id))
        return self._finish("delete", outcomes)

    # ---------- single-item entry points ----------

    def create_one(self, payload: Dict[str, Any]) -> InventoryItem:
        try:
            return self._commit_one(lambda: self._create_step(payload, set()), None)
        except ValidationError as e:
            if all(v.reason == "duplicate" for v in e.violations):
                raise ConflictError(normalize_item(payload).get("sku")) from e
            raise

    def update_one(self, item_id: str, patch: Dict[str, Any]) -> InventoryItem:
        body = dict(patch, id=item_id)
        return self._commit_one(lambda: self._update_step(body), item_id)

    def delete_one(self, item_id: str) -> InventoryItem:
        return self._commit_one(lambda: self._delete_step(item_id), item_id)

    # ---------- per-item steps (no commit) ----------

    def _create_step(self, payload: Any, committed_skus) -> InventoryItem:
        if not isinstance(payload, dict):
            raise ValidationError([FieldViolation("item", "not_an_object")])
        fields = clean_item(normalize_item(payload), CREATE, self.store)
        if fields["sku"] in committed_skus:
            raise ValidationError([FieldViolation("sku", "duplicate")])

        item = self.store.create(fields)
        self.audit.append(
            action="insert",
            item=item,
            actor=self.actor,
            prev_quantity=0,
            new_quantity=item.quantity,
            after=item.snapshot(),
        )
        return item

    def _update_step(self, raw: Any) -> InventoryItem:
        if not isinstance(raw, dict):
            raise ValidationError([FieldViolation("item", "not_an_object")])
        item_id, patch = split_patch(raw)
        if not item_id:
            raise ValidationError([FieldViolation("id", "required")])

        current = self.store.get(item_id)
        prev_qty = current.quantity
        fields = clean_item(patch, UPDATE, self.store, current)

        item, before = self.store.update(item_id, fields)
        self.audit.append(
            action="update",
            item=item,
            actor=self.actor,
            prev_quantity=prev_qty,
            new_quantity=item.quantity,
            before=before,
            after=item.snapshot(tuple(fields)),
        )
        return item

    def _delete_step(self, item_id: Any) -> str:
        if not item_id:
            raise ValidationError([FieldViolation("id", "required")])

        item = self.store.delete(item_id)
        self.audit.append(
            action="delete",
            item=item,
            actor=self.actor,
            prev_quantity=item.quantity,
            new_quantity=item.quantity,
            before=item.snapshot(),
        )
        return item.id

    # ---------- transaction handling ----------

    def _commit_one(self, step: Callable[[], Any], item_id: Optional[str]):
        """Run one step in its own transaction, retrying stale optimistic writes."""
        for attempt in range(self.write_retries + 1):
            try:
                value = step()
                self.db.commit()
                return value
            except StaleDataError:
                self.db.rollback()
                logger.info(f"Stale write on item {item_id}, attempt {attempt + 1}")
            except (SQLAlchemyError, OverflowError) as e:
                self.db.rollback()
                logger.warning(f"Storage rejected write on item {item_id}: {e}")
                raise StorageError(item_id, str(e)) from e
            except Exception:
                self.db.rollback()
                raise
        raise ConcurrentModificationError(item_id)

    def _attempt(self, index: int, item_id: Optional[str], step, payload) -> ItemOutcome:
        try:
            value = self._commit_one(lambda: step(payload), item_id)
        except StockroomError as e:
            return ItemOutcome(index=index, id=item_id, error=e)
        return ItemOutcome(index=index, id=item_id or getattr(value, "id", None), value=value)

    def _finish(self, operation: str, outcomes: List[ItemOutcome]) -> BulkMutationResult:
        result = BulkMutationResult.from_outcomes(operation, outcomes)
        log = logger.warning if result.failed else logger.info
        log(
            f"Bulk {operation} by {self.actor}: "
            f"{result.successful}/{result.total} succeeded, {result.failed} failed"
        )
        return result
