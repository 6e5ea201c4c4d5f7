from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Dict, List, Optional, Tuple

from stockroom.core.exceptions import FieldViolation, ValidationError
from stockroom.models.inventory_item import (
    ITEM_STATUSES,
    MAX_QUANTITY,
    MAX_UNIT_PRICE,
    InventoryItem,
)

CREATE = "create"
UPDATE = "update"

REQUIRED_ON_CREATE = ("sku", "name", "quantity", "unit_price")
INT_FIELDS = ("quantity", "min_stock_level", "max_stock_level")
TEXT_FIELDS = ("description", "category_id", "location_id")

CENT = Decimal("0.01")


class NotANumber(ValueError):
    pass


def to_int(value: Any) -> int:
    # bool is an int subclass, but True is not a quantity
    if isinstance(value, bool):
        raise NotANumber(value)
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if value.is_integer():
            return int(value)
        raise NotANumber(value)
    if isinstance(value, (str, Decimal)):
        try:
            d = Decimal(str(value).strip())
        except InvalidOperation:
            raise NotANumber(value)
        if not d.is_finite() or d != d.to_integral_value():
            raise NotANumber(value)
        return int(d)
    raise NotANumber(value)


def to_decimal(value: Any, quantum: Optional[Decimal] = CENT) -> Decimal:
    if isinstance(value, bool) or not isinstance(value, (int, float, str, Decimal)):
        raise NotANumber(value)
    try:
        d = Decimal(str(value).strip())
    except InvalidOperation:
        raise NotANumber(value)
    if not d.is_finite():
        raise NotANumber(value)
    if quantum is None:
        return d
    return d.quantize(quantum, rounding=ROUND_HALF_UP)


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def check_count(value: Any) -> Tuple[Optional[int], Optional[str]]:
    """Coerce a stock count; returns ``(value, None)`` or ``(None, reason)``."""
    try:
        n = to_int(value)
    except NotANumber:
        return None, "not_a_number"
    if n < 0:
        return None, "must_be_non_negative"
    if n > MAX_QUANTITY:
        return None, "out_of_range"
    return n, None


def check_price(value: Any) -> Tuple[Optional[Decimal], Optional[str]]:
    try:
        raw = to_decimal(value, quantum=None)
    except NotANumber:
        return None, "not_a_number"
    # sign is judged before rounding, -0.004 must not become 0.00
    if raw < 0:
        return None, "must_be_non_negative"
    if raw > MAX_UNIT_PRICE:
        return None, "out_of_range"
    price = raw.quantize(CENT, rounding=ROUND_HALF_UP)
    if price > MAX_UNIT_PRICE:
        return None, "out_of_range"
    return price, None


def check_fields(payload: Dict[str, Any], mode: str) -> Tuple[Dict[str, Any], List[FieldViolation]]:
    """Local checks and coercion for one canonical payload."""
    values: Dict[str, Any] = {}
    violations: List[FieldViolation] = []

    if mode == CREATE:
        for field in REQUIRED_ON_CREATE:
            if _is_blank(payload.get(field)):
                violations.append(FieldViolation(field, "required"))

    for field in ("sku", "name"):
        if field not in payload:
            continue
        value = payload[field]
        if _is_blank(value):
            if mode == UPDATE:
                violations.append(FieldViolation(field, "required"))
            continue
        values[field] = str(value).strip()

    for field in INT_FIELDS:
        if field not in payload:
            continue
        value = payload[field]
        if _is_blank(value):
            if field == "quantity" and mode == UPDATE:
                violations.append(FieldViolation(field, "required"))
            elif field != "quantity":
                values[field] = None
            continue
        n, reason = check_count(value)
        if reason:
            violations.append(FieldViolation(field, reason))
        else:
            values[field] = n

    if "unit_price" in payload:
        value = payload["unit_price"]
        if _is_blank(value):
            if mode == UPDATE:
                violations.append(FieldViolation("unit_price", "required"))
        else:
            price, reason = check_price(value)
            if reason:
                violations.append(FieldViolation("unit_price", reason))
            else:
                values["unit_price"] = price

    if "status" in payload and payload["status"] is not None:
        status = str(payload["status"]).strip().lower()
        if status not in ITEM_STATUSES:
            violations.append(FieldViolation("status", "invalid_choice"))
        else:
            values["status"] = status

    for field in TEXT_FIELDS:
        if field in payload:
            value = payload[field]
            values[field] = None if value is None else str(value)

    return values, violations


def _check_stock_levels(
    payload: Dict[str, Any],
    values: Dict[str, Any],
    current: Optional[InventoryItem],
) -> Optional[FieldViolation]:
    def level(field):
        if field in payload:
            return values.get(field)
        return getattr(current, field) if current is not None else None

    lo, hi = level("min_stock_level"), level("max_stock_level")
    if lo is not None and hi is not None and lo > hi:
        return FieldViolation("stockLevels", "min_exceeds_max")
    return None


def validate_item(
    payload: Dict[str, Any],
    mode: str,
    store=None,
    current: Optional[InventoryItem] = None,
) -> List[FieldViolation]:
    """Return every violation of ``payload``; an empty list means valid.

    In update mode ``current`` is the stored item the patch applies to: its
    id is excluded from the SKU uniqueness check and its stock levels fill
    in whichever side the patch leaves out.
    """
    return _validate(payload, mode, store, current)[1]


def _validate(payload, mode, store, current):
    if mode not in (CREATE, UPDATE):
        raise ValueError(f"unknown validation mode: {mode}")

    values, violations = check_fields(payload, mode)

    # a stock-level field that already failed is not compared again
    failed = {v.field for v in violations}
    if not failed & {"min_stock_level", "max_stock_level"}:
        levels = _check_stock_levels(payload, values, current)
        if levels is not None:
            violations.append(levels)

    sku = values.get("sku")
    if sku is not None:
        if mode == UPDATE and current is not None and sku != current.sku:
            violations.append(FieldViolation("sku", "immutable"))
        elif store is not None:
            existing = store.find_by_sku(sku)
            if existing is not None and (current is None or existing.id != current.id):
                violations.append(FieldViolation("sku", "duplicate"))

    return values, violations


def clean_item(
    payload: Dict[str, Any],
    mode: str,
    store=None,
    current: Optional[InventoryItem] = None,
) -> Dict[str, Any]:
    values, violations = _validate(payload, mode, store, current)
    if violations:
        raise ValidationError(violations)
    if mode == CREATE:
        values.setdefault("status", "active")
    return values
