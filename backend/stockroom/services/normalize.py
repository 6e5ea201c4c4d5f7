"""Maps loose JSON bodies onto canonical field names."""
from typing import Any, Dict, List, Optional, Tuple

from stockroom.models.inventory_item import ITEM_FIELDS

ITEM_ALIASES = {
    "unitPrice": "unit_price",
    "price": "unit_price",
    "minStockLevel": "min_stock_level",
    "minStock": "min_stock_level",
    "min_stock": "min_stock_level",
    "maxStockLevel": "max_stock_level",
    "maxStock": "max_stock_level",
    "max_stock": "max_stock_level",
    "categoryId": "category_id",
    "locationId": "location_id",
}

_STRIPPED = ("sku", "name")


def normalize_item(raw: Dict[str, Any]) -> Dict[str, Any]:
    """Map a raw item payload onto canonical keys; unknown keys are dropped.

    Keys present with a null value are kept, so the validator can tell
    "missing" from "explicitly cleared".
    """
    out: Dict[str, Any] = {}
    for key, value in raw.items():
        canonical = ITEM_ALIASES.get(key, key)
        if canonical not in ITEM_FIELDS:
            continue
        # canonical spelling wins over an alias sent in the same body
        if canonical in out and key != canonical:
            continue
        if canonical in _STRIPPED and isinstance(value, str):
            value = value.strip()
        out[canonical] = value
    return out


def split_patch(raw: Dict[str, Any]) -> Tuple[Optional[Any], Dict[str, Any]]:
    """Split an update payload into ``(id, canonical patch)``."""
    item_id = raw.get("id", raw.get("itemId"))
    rest = {k: v for k, v in raw.items() if k not in ("id", "itemId")}
    return item_id, normalize_item(rest)


def delete_ref(raw: Any) -> Optional[Any]:
    if isinstance(raw, dict):
        return raw.get("id", raw.get("itemId"))
    return raw


def normalize_line(raw: Dict[str, Any]) -> Dict[str, Any]:
    """Map one transaction line item onto ``item_id/quantity/unit_price/notes``."""
    product = raw.get("product") if isinstance(raw.get("product"), dict) else {}
    item_id = (
        raw.get("item_id")
        or raw.get("itemId")
        or raw.get("productId")
        or raw.get("product_id")
        or product.get("id")
    )
    unit_price = raw.get("unit_price", raw.get("unitPrice"))
    return {
        "item_id": item_id,
        "quantity": raw.get("quantity"),
        "unit_price": unit_price,
        "notes": raw.get("notes"),
    }


def normalize_transaction(raw: Dict[str, Any]) -> Dict[str, Any]:
    lines = raw.get("lineItems", raw.get("line_items", raw.get("lines")))
    if isinstance(lines, list):
        lines = [normalize_line(l) if isinstance(l, dict) else l for l in lines]
    return {
        "type": raw.get("type"),
        "lines": lines,
        "notes": raw.get("notes"),
        "tax_rate": raw.get("taxRate", raw.get("tax_rate", 0)),
    }

