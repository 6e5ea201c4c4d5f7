from dataclasses import dataclass
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class FieldViolation:
    field: str
    reason: str

    _TEXT = {
        "required": "is required",
        "not_a_number": "is not a number",
        "must_be_non_negative": "must be non-negative",
        "must_be_non_zero": "must be non-zero",
        "must_be_positive": "must be positive",
        "min_exceeds_max": "minimum exceeds maximum",
        "invalid_choice": "is not a valid choice",
        "immutable": "cannot be changed",
        "not_an_object": "must be an object",
        "out_of_range": "is out of range",
    }

    @property
    def message(self) -> str:
        if self.reason == "duplicate":
            return f"duplicate {self.field}"
        text = self._TEXT.get(self.reason, self.reason.replace("_", " "))
        return f"{self.field} {text}"

    def to_dict(self) -> Dict[str, str]:
        return {"field": self.field, "reason": self.reason}


class StockroomError(Exception):
    """Base exception for all stockroom errors."""

    code: str = "STOCKROOM_ERROR"
    status_code: int = 500

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)

    @property
    def details(self) -> Optional[Dict[str, Any]]:
        return None


class RequestShapeError(StockroomError):
    """The request envelope is malformed; nothing was processed."""

    code = "REQUEST_SHAPE_ERROR"
    status_code = 400

    def __init__(self, error: str, message: str):
        self.error = error
        super().__init__(message)

    @property
    def details(self):
        return {"message": self.message}


class ValidationError(StockroomError):
    code = "VALIDATION_ERROR"
    status_code = 400

    def __init__(self, violations: List[FieldViolation]):
        self.violations = list(violations)
        super().__init__("; ".join(v.message for v in self.violations))

    @property
    def is_duplicate(self) -> bool:
        return any(v.reason == "duplicate" for v in self.violations)

    @property
    def details(self):
        return {"violations": [v.to_dict() for v in self.violations]}


class NotFoundError(StockroomError):
    code = "NOT_FOUND"
    status_code = 404

    def __init__(self, entity_id: str, entity: str = "item"):
        self.entity_id = entity_id
        self.entity = entity
        super().__init__("not found")

    @property
    def details(self):
        return {"id": self.entity_id, "entity": self.entity}


class ConflictError(StockroomError):
    code = "CONFLICT"
    status_code = 409

    def __init__(self, sku: str):
        self.sku = sku
        self.violations = [FieldViolation("sku", "duplicate")]
        super().__init__("duplicate sku")

    @property
    def details(self):
        return {"sku": self.sku}


class InsufficientStockError(StockroomError):
    code = "INSUFFICIENT_STOCK"
    status_code = 409

    def __init__(self, item_id: str, requested: int, available: int):
        self.item_id = item_id
        self.requested = requested
        self.available = available
        super().__init__(
            f"insufficient stock: requested {requested}, available {available}"
        )

    @property
    def details(self):
        return {
            "itemId": self.item_id,
            "requested": self.requested,
            "available": self.available,
        }


class AuditImmutableError(StockroomError):
    code = "AUDIT_IMMUTABLE"
    status_code = 500

    def __init__(self, entry_id, operation: str):
        self.entry_id = entry_id
        self.operation = operation
        super().__init__(f"audit entry {entry_id} is append-only ({operation} blocked)")


class ConcurrentModificationError(StockroomError):
    code = "CONCURRENT_MODIFICATION"
    status_code = 409

    def __init__(self, item_id: str):
        self.item_id = item_id
        super().__init__("item was modified concurrently, retry the request")

    @property
    def details(self):
        return {"id": self.item_id}


class StorageError(StockroomError):
    """The database refused a write the validator let through."""

    code = "STORAGE_ERROR"
    status_code = 500

    def __init__(self, entity_id: Optional[str], cause: str):
        self.entity_id = entity_id
        self.cause = cause
        super().__init__("storage error")

    @property
    def details(self):
        return {"id": self.entity_id}
