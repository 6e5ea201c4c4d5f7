from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from stockroom.models.audit_entry import AUDIT_ACTIONS, AuditEntry
from stockroom.models.inventory_item import InventoryItem


class AuditLog:
    """Append-only record of committed mutations.

    Read for display and verification only; current item state always comes
    from the item store.
    """

    def __init__(self, db: Session):
        self.db = db

    def append(
        self,
        *,
        action: str,
        item: InventoryItem,
        actor: str,
        note: Optional[str] = None,
        delta: Optional[int] = None,
        prev_quantity: Optional[int] = None,
        new_quantity: Optional[int] = None,
        before: Optional[Dict[str, Any]] = None,
        after: Optional[Dict[str, Any]] = None,
        transaction_id: Optional[str] = None,
    ) -> AuditEntry:
        if action not in AUDIT_ACTIONS:
            raise ValueError(f"unknown audit action: {action}")

        entry = AuditEntry(
            action=action,
            item_id=item.id,
            sku=item.sku,
            actor=actor or "system",
            note=note,
            delta=delta,
            prev_quantity=prev_quantity,
            new_quantity=new_quantity,
            before=before,
            after=after,
            transaction_id=transaction_id,
        )
        self.db.add(entry)
        return entry

    def list(
        self,
        *,
        item_id: Optional[str] = None,
        action: Optional[str] = None,
        actor: Optional[str] = None,
        transaction_id: Optional[str] = None,
        since: Optional[datetime] = None,
        until: Optional[datetime] = None,
        limit: Optional[int] = 50,
    ) -> List[AuditEntry]:
        q = select(AuditEntry).order_by(AuditEntry.id.desc())

        if item_id is not None:
            q = q.where(AuditEntry.item_id == item_id)
        if action is not None:
            q = q.where(AuditEntry.action == action)
        if actor is not None:
            q = q.where(AuditEntry.actor == actor)
        if transaction_id is not None:
            q = q.where(AuditEntry.transaction_id == transaction_id)
        if since is not None:
            q = q.where(AuditEntry.created_at >= since)
        if until is not None:
            q = q.where(AuditEntry.created_at <= until)
        if limit is not None:
            q = q.limit(limit)

        return list(self.db.execute(q).scalars())
