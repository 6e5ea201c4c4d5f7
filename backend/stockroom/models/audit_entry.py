import logging
from datetime import datetime

from sqlalchemy import JSON, Column, DateTime, Integer, String, Text, event, func
from stockroom.core.database import Base
from stockroom.core.exceptions import AuditImmutableError

logger = logging.getLogger(__name__)

AUDIT_ACTIONS = ("insert", "update", "delete", "stock_in", "stock_out")


class AuditEntry(Base):
    __tablename__ = "audit_entries"

    # append order
    id = Column(Integer, primary_key=True, index=True)

    # what happened
    action = Column(String, nullable=False, index=True)  # one of AUDIT_ACTIONS

    # what item (kept after the item itself is deleted)
    item_id = Column(String(36), nullable=False, index=True)
    sku = Column(String, nullable=False)

    # change details
    delta = Column(Integer, nullable=True)
    prev_quantity = Column(Integer, nullable=True)
    new_quantity = Column(Integer, nullable=True)
    before = Column(JSON, nullable=True)
    after = Column(JSON, nullable=True)

    # set when the entry belongs to a multi-line posting
    transaction_id = Column(String(36), nullable=True, index=True)

    # who/why
    actor = Column(String, nullable=False, default="system")
    note = Column(Text, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, server_default=func.now(), nullable=False, index=True)


def _block_update(mapper, connection, target):
    logger.error(f"Blocked update of audit entry {target.id}")
    raise AuditImmutableError(target.id, "update")


def _block_delete(mapper, connection, target):
    logger.error(f"Blocked delete of audit entry {target.id}")
    raise AuditImmutableError(target.id, "delete")


def register_append_only_guards():
    """Reject ORM updates and deletes of audit entries. Safe to call repeatedly."""
    if not event.contains(AuditEntry, "before_update", _block_update):
        event.listen(AuditEntry, "before_update", _block_update)
    if not event.contains(AuditEntry, "before_delete", _block_delete):
        event.listen(AuditEntry, "before_delete", _block_delete)
