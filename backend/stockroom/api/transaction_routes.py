# backend/stockroom/api/transaction_routes.py

from datetime import datetime
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends
from sqlalchemy.orm import Session

from stockroom.api.deps import CurrentActor, get_current_actor, get_db, get_stock_poster
from stockroom.api.schemas import Transaction, TransactionListOut, TransactionOut
from stockroom.services.normalize import normalize_transaction
from stockroom.services.stock import StockPoster, get_transaction, list_transactions

router = APIRouter()


@router.post("/transactions", response_model=TransactionOut, status_code=201)
def create_transaction(
    payload: Dict[str, Any] = Body(...),
    poster: StockPoster = Depends(get_stock_poster),
):
    body = normalize_transaction(payload)
    tx = poster.post_transaction(
        body["type"],
        body["lines"],
        notes=body["notes"],
        tax_rate=body["tax_rate"],
    )
    return TransactionOut(data=Transaction.model_validate(tx))


@router.get("/transactions", response_model=TransactionListOut)
def list_stock_transactions(
    type: Optional[str] = None,
    created_by: Optional[str] = None,
    since: Optional[datetime] = None,
    until: Optional[datetime] = None,
    limit: int = 50,
    db: Session = Depends(get_db),
    _actor: CurrentActor = Depends(get_current_actor),
):
    limit = max(1, min(limit, 200))

    txs = list_transactions(
        db,
        tx_type=type,
        created_by=created_by,
        since=since,
        until=until,
        limit=limit,
    )
    return TransactionListOut(data=[Transaction.model_validate(t) for t in txs])


@router.get("/transactions/{transaction_id}", response_model=TransactionOut)
def get_stock_transaction(
    transaction_id: str,
    db: Session = Depends(get_db),
    _actor: CurrentActor = Depends(get_current_actor),
):
    return TransactionOut(data=Transaction.model_validate(get_transaction(db, transaction_id)))
