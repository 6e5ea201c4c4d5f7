# backend/stockroom/api/bulk_routes.py

import csv
import io

from fastapi import APIRouter, Body, Depends
from fastapi.responses import StreamingResponse

from stockroom.api.deps import CurrentActor, get_bulk_engine, get_current_actor, get_item_store
from stockroom.api.schemas import (
    BulkDeleteIn,
    BulkIn,
    BulkOut,
    ImportOut,
    to_bulk_out,
    to_import_out,
)
from stockroom.services.bulk import BulkMutationEngine
from stockroom.services.csv_import import import_csv
from stockroom.services.item_store import ItemStore
from stockroom.services.stock_status import compute_stock_status

# Included ahead of the item router: /inventory/bulk, /inventory/import and
# /inventory/export.csv must not be taken for /inventory/{item_id}.
router = APIRouter()

EXPORT_COLUMNS = [
    "sku",
    "name",
    "description",
    "category_id",
    "location_id",
    "quantity",
    "min_stock_level",
    "max_stock_level",
    "unit_price",
    "status",
    "stock_status",
]


@router.post("/inventory/bulk", response_model=BulkOut)
def bulk_mutation(
    payload: BulkIn,
    engine: BulkMutationEngine = Depends(get_bulk_engine),
):
    result = engine.run(payload.operation, payload.items)
    return to_bulk_out(result)


@router.delete("/inventory/bulk", response_model=BulkOut)
def bulk_delete(
    payload: BulkDeleteIn,
    engine: BulkMutationEngine = Depends(get_bulk_engine),
):
    result = engine.bulk_delete(payload.ids)
    return to_bulk_out(result)


# ---------- CSV IMPORT / EXPORT ----------

@router.post("/inventory/import", response_model=ImportOut)
def import_items_csv(
    payload: bytes = Body(..., media_type="text/csv"),
    engine: BulkMutationEngine = Depends(get_bulk_engine),
):
    result = import_csv(engine, payload)
    return to_import_out(result)


@router.get("/inventory/export.csv")
def export_items_csv(
    store: ItemStore = Depends(get_item_store),
    _actor: CurrentActor = Depends(get_current_actor),
):
    buf = io.StringIO()
    w = csv.writer(buf)
    w.writerow(EXPORT_COLUMNS)

    for item in store.list():
        w.writerow(
            [
                item.sku,
                item.name,
                item.description or "",
                item.category_id or "",
                item.location_id or "",
                item.quantity,
                "" if item.min_stock_level is None else item.min_stock_level,
                "" if item.max_stock_level is None else item.max_stock_level,
                item.unit_price,
                item.status,
                compute_stock_status(item.quantity, item.min_stock_level),
            ]
        )

    return StreamingResponse(
        io.BytesIO(buf.getvalue().encode("utf-8")),
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="inventory.csv"'},
    )
