# backend/stockroom/api/routes.py

from datetime import datetime
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends

from stockroom.api.deps import (
    CurrentActor,
    get_audit_log,
    get_bulk_engine,
    get_current_actor,
    get_item_store,
    get_stock_poster,
)
from stockroom.api.schemas import (
    AuditEntryOut,
    AuditListOut,
    DeleteOut,
    ItemListOut,
    ItemOut,
    StockAdjustIn,
    SummaryOut,
    to_item,
)
from stockroom.services.audit import AuditLog
from stockroom.services.bulk import BulkMutationEngine
from stockroom.services.item_store import ItemStore
from stockroom.services.stock import StockPoster
from stockroom.services.stock_status import summarize

router = APIRouter()

# ---------- INVENTORY (viewer+manager can read) ----------


@router.get("/inventory", response_model=ItemListOut)
def list_items(
    status: Optional[str] = None,
    category_id: Optional[str] = None,
    location_id: Optional[str] = None,
    search: Optional[str] = None,
    limit: int = 100,
    offset: int = 0,
    store: ItemStore = Depends(get_item_store),
    _actor: CurrentActor = Depends(get_current_actor),
):
    limit = max(1, min(limit, 500))
    offset = max(0, offset)

    items = store.list(
        status=status,
        category_id=category_id,
        location_id=location_id,
        search=search,
        limit=limit,
        offset=offset,
    )
    data = [to_item(i) for i in items]
    return ItemListOut(data=data, count=len(data))


# declared before /inventory/{item_id} so "summary" is not read as an id
@router.get("/inventory/summary", response_model=SummaryOut)
def inventory_summary(
    store: ItemStore = Depends(get_item_store),
    _actor: CurrentActor = Depends(get_current_actor),
):
    totals = summarize(store.list())
    totals["total_value"] = float(totals["total_value"])
    return SummaryOut(**totals)


@router.get("/inventory/{item_id}", response_model=ItemOut)
def get_item(
    item_id: str,
    store: ItemStore = Depends(get_item_store),
    _actor: CurrentActor = Depends(get_current_actor),
):
    return ItemOut(data=to_item(store.get(item_id)))


# ---------- INVENTORY (manager only can write) ----------


@router.post("/inventory", response_model=ItemOut, status_code=201)
def create_item(
    payload: Dict[str, Any] = Body(...),
    engine: BulkMutationEngine = Depends(get_bulk_engine),
):
    return ItemOut(data=to_item(engine.create_one(payload)))


@router.patch("/inventory/{item_id}", response_model=ItemOut)
def update_item(
    item_id: str,
    payload: Dict[str, Any] = Body(...),
    engine: BulkMutationEngine = Depends(get_bulk_engine),
):
    return ItemOut(data=to_item(engine.update_one(item_id, payload)))


@router.delete("/inventory/{item_id}", response_model=DeleteOut)
def delete_item(
    item_id: str,
    engine: BulkMutationEngine = Depends(get_bulk_engine),
):
    deleted_id = engine.delete_one(item_id)
    return DeleteOut(data={"id": deleted_id})


@router.post("/inventory/{item_id}/adjust", response_model=ItemOut)
def adjust_item_stock(
    item_id: str,
    payload: StockAdjustIn,
    poster: StockPoster = Depends(get_stock_poster),
):
    item = poster.adjust_stock(item_id, payload.delta, note=payload.note)
    return ItemOut(data=to_item(item))


# ---------- AUDIT LOG READ (viewer+manager can read) ----------


@router.get("/audit-logs", response_model=AuditListOut)
def list_audit_logs(
    item_id: Optional[str] = None,
    action: Optional[str] = None,
    actor: Optional[str] = None,
    since: Optional[datetime] = None,
    until: Optional[datetime] = None,
    limit: int = 50,
    audit: AuditLog = Depends(get_audit_log),
    _actor: CurrentActor = Depends(get_current_actor),
):
    limit = max(1, min(limit, 200))

    entries = audit.list(
        item_id=item_id,
        action=action,
        actor=actor,
        since=since,
        until=until,
        limit=limit,
    )
    return AuditListOut(data=[AuditEntryOut.model_validate(e) for e in entries])
