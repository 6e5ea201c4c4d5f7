from decimal import Decimal
from typing import Dict, Iterable, Literal, Optional

from stockroom.models.inventory_item import ITEM_STATUSES, InventoryItem

StockStatus = Literal["good_stock", "low_stock", "out_of_stock"]


def compute_stock_status(quantity: int, min_stock_level: Optional[int]) -> StockStatus:
    qty = quantity or 0
    if qty <= 0:
        return "out_of_stock"
    if min_stock_level is not None and qty <= min_stock_level:
        return "low_stock"
    return "good_stock"


def compute_stock_fields(item: InventoryItem) -> dict:
    return {"stock_status": compute_stock_status(item.quantity, item.min_stock_level)}


def summarize(items: Iterable[InventoryItem]) -> dict:
    total_items = 0
    total_quantity = 0
    total_value = Decimal("0")
    low = 0
    out = 0
    by_status: Dict[str, int] = {s: 0 for s in ITEM_STATUSES}

    for item in items:
        qty = item.quantity or 0
        total_items += 1
        total_quantity += qty
        total_value += Decimal(item.unit_price or 0) * qty
        by_status[item.status] = by_status.get(item.status, 0) + 1

        status = compute_stock_status(qty, item.min_stock_level)
        if status == "low_stock":
            low += 1
        elif status == "out_of_stock":
            out += 1

    return {
        "total_items": total_items,
        "total_quantity": total_quantity,
        "total_value": total_value,
        "low_stock": low,
        "out_of_stock": out,
        "by_status": by_status,
    }
