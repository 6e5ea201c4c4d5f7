# backend/stockroom/api/deps.py

from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel
from sqlalchemy.orm import Session

from stockroom.core.database import SessionLocal
from stockroom.core.security import decode_token
from stockroom.services.audit import AuditLog
from stockroom.services.bulk import BulkMutationEngine
from stockroom.services.item_store import ItemStore
from stockroom.services.stock import StockPoster

# Tokens are issued by the external auth provider; we only read the claims.
bearer_scheme = HTTPBearer(auto_error=False)


class CurrentActor(BaseModel):
    sub: str
    name: Optional[str] = None
    role: str  # "manager" | "viewer"

    @property
    def label(self) -> str:
        return self.name or self.sub


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_current_actor(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> CurrentActor:
    cred_exc = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Not authenticated",
        headers={"WWW-Authenticate": "Bearer"},
    )

    if credentials is None or not credentials.credentials:
        raise cred_exc

    try:
        payload = decode_token(credentials.credentials)
    except ValueError:
        raise cred_exc

    sub = payload.get("sub")
    if not sub:
        raise cred_exc

    return CurrentActor(
        sub=str(sub),
        name=payload.get("name"),
        role=payload.get("role") or "viewer",
    )


def require_manager(actor: CurrentActor = Depends(get_current_actor)) -> CurrentActor:
    if actor.role != "manager":
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Manager role required")
    return actor


# ---------- CORE SERVICES ----------


def get_item_store(db: Session = Depends(get_db)) -> ItemStore:
    return ItemStore(db)


def get_audit_log(db: Session = Depends(get_db)) -> AuditLog:
    return AuditLog(db)


def get_bulk_engine(
    db: Session = Depends(get_db),
    actor: CurrentActor = Depends(require_manager),
) -> BulkMutationEngine:
    return BulkMutationEngine(db, ItemStore(db), AuditLog(db), actor=actor.label)


def get_stock_poster(
    db: Session = Depends(get_db),
    actor: CurrentActor = Depends(require_manager),
) -> StockPoster:
    return StockPoster(db, ItemStore(db), AuditLog(db), actor=actor.label)
