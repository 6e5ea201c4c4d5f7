import logging
import uuid
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, List, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from stockroom.core.config import settings
from stockroom.core.exceptions import (
    FieldViolation,
    NotFoundError,
    RequestShapeError,
    StockroomError,
    StorageError,
    ValidationError,
)
from stockroom.models.inventory_item import MAX_QUANTITY, InventoryItem
from stockroom.models.stock_transaction import (
    TRANSACTION_TYPES,
    StockTransaction,
    StockTransactionLine,
)
from stockroom.services.audit import AuditLog
from stockroom.services.item_store import ItemStore
from stockroom.services.validator import NotANumber, check_count, check_price, to_decimal, to_int

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")


def direction_of(delta: int) -> str:
    return "stock_in" if delta > 0 else "stock_out"


@dataclass
class PostingLine:
    item_id: str
    quantity: int
    unit_price: Optional[Decimal] = None
    notes: Optional[str] = None


def parse_lines(lines: Any, max_lines: int) -> List[PostingLine]:
    if not isinstance(lines, list) or not lines:
        raise RequestShapeError(
            "Invalid transaction data",
            "Transaction type and line items are required",
        )
    if len(lines) > max_lines:
        raise RequestShapeError(
            "Request too large",
            f"Maximum {max_lines} line items allowed per transaction",
        )

    parsed: List[PostingLine] = []
    violations: List[FieldViolation] = []
    for i, raw in enumerate(lines):
        prefix = f"lineItems[{i}]"
        if not isinstance(raw, dict):
            violations.append(FieldViolation(prefix, "not_an_object"))
            continue

        item_id = raw.get("item_id")
        if not item_id:
            violations.append(FieldViolation(f"{prefix}.itemId", "required"))

        quantity, reason = (None, "required") if raw.get("quantity") is None else check_count(raw["quantity"])
        if reason is None and quantity == 0:
            reason = "must_be_positive"
        if reason == "must_be_non_negative":
            reason = "must_be_positive"
        if reason:
            violations.append(FieldViolation(f"{prefix}.quantity", reason))

        unit_price = None
        if raw.get("unit_price") is not None:
            unit_price, reason = check_price(raw["unit_price"])
            if reason:
                violations.append(FieldViolation(f"{prefix}.unitPrice", reason))

        parsed.append(PostingLine(str(item_id), quantity, unit_price, raw.get("notes")))

    if violations:
        raise ValidationError(violations)
    return parsed


class StockPoster:
    def __init__(self, db: Session, store: ItemStore, audit: AuditLog, actor: str):
        self.db = db
        self.store = store
        self.audit = audit
        self.actor = actor

    def adjust_stock(self, item_id: str, delta: Any, note: Optional[str] = None) -> InventoryItem:
        try:
            delta = to_int(delta)
        except NotANumber:
            raise ValidationError([FieldViolation("delta", "not_a_number")])
        if delta == 0:
            raise ValidationError([FieldViolation("delta", "must_be_non_zero")])
        if abs(delta) > MAX_QUANTITY:
            raise ValidationError([FieldViolation("delta", "out_of_range")])

        try:
            item, prev_qty = self.store.apply_delta(item_id, delta)
            self.audit.append(
                action=direction_of(delta),
                item=item,
                actor=self.actor,
                note=note,
                delta=delta,
                prev_quantity=prev_qty,
                new_quantity=item.quantity,
            )
            self.db.commit()
        except StockroomError as e:
            self.db.rollback()
            logger.warning(f"Stock adjustment {delta:+d} on item {item_id} rejected: {e.message}")
            raise
        except (SQLAlchemyError, OverflowError) as e:
            self.db.rollback()
            logger.error(f"Stock adjustment {delta:+d} on item {item_id} failed in storage: {e}")
            raise StorageError(str(item_id), str(e)) from e
        except Exception:
            self.db.rollback()
            raise

        logger.info(f"Stock adjustment {delta:+d} on item {item_id} by {self.actor}: {prev_qty} -> {item.quantity}")
        return item

    def post_transaction(
        self,
        tx_type: Any,
        lines: Any,
        notes: Optional[str] = None,
        tax_rate: Any = 0,
    ) -> StockTransaction:
        if tx_type not in TRANSACTION_TYPES:
            raise RequestShapeError(
                "Invalid transaction data",
                'Transaction type must be "sale" or "stock_addition"',
            )
        parsed = parse_lines(lines, settings.max_batch_size)
        try:
            rate = to_decimal(tax_rate or 0, quantum=None)
        except NotANumber:
            raise ValidationError([FieldViolation("taxRate", "not_a_number")])
        if rate < 0:
            raise ValidationError([FieldViolation("taxRate", "must_be_non_negative")])
        if rate >= 100:
            raise ValidationError([FieldViolation("taxRate", "out_of_range")])

        sign = -1 if tx_type == "sale" else 1
        tx = StockTransaction(
            id=str(uuid.uuid4()),
            type=tx_type,
            status="completed",
            notes=notes,
            created_by=self.actor,
            tax_rate=rate,
        )
        self.db.add(tx)

        subtotal = Decimal("0")
        try:
            for line in parsed:
                delta = sign * line.quantity
                item, prev_qty = self.store.apply_delta(line.item_id, delta)

                price = line.unit_price if line.unit_price is not None else Decimal(item.unit_price or 0)
                line_total = (price * line.quantity).quantize(CENT, rounding=ROUND_HALF_UP)
                subtotal += line_total

                tx.lines.append(
                    StockTransactionLine(
                        item_id=item.id,
                        sku=item.sku,
                        name=item.name,
                        quantity=line.quantity,
                        unit_price=price,
                        total_price=line_total,
                        notes=line.notes,
                    )
                )
                self.audit.append(
                    action=direction_of(delta),
                    item=item,
                    actor=self.actor,
                    note=line.notes or notes,
                    delta=delta,
                    prev_quantity=prev_qty,
                    new_quantity=item.quantity,
                    transaction_id=tx.id,
                )

            tx.subtotal = subtotal
            tx.tax = (subtotal * rate).quantize(CENT, rounding=ROUND_HALF_UP)
            tx.total = tx.subtotal + tx.tax
            self.db.commit()
        except StockroomError as e:
            self.db.rollback()
            logger.warning(f"Posting of {tx_type} transaction by {self.actor} aborted: {e.message}")
            raise
        except (SQLAlchemyError, OverflowError) as e:
            self.db.rollback()
            logger.error(f"Posting of {tx_type} transaction by {self.actor} failed in storage: {e}")
            raise StorageError(tx.id, str(e)) from e
        except Exception:
            self.db.rollback()
            raise

        logger.info(f"Posted {tx_type} transaction {tx.id} with {len(parsed)} line(s) by {self.actor}")
        return tx


def get_transaction(db: Session, transaction_id: str) -> StockTransaction:
    tx = db.execute(
        select(StockTransaction)
        .options(selectinload(StockTransaction.lines))
        .where(StockTransaction.id == transaction_id)
    ).scalar_one_or_none()
    if tx is None:
        raise NotFoundError(transaction_id, entity="transaction")
    return tx


def list_transactions(
    db: Session,
    *,
    tx_type: Optional[str] = None,
    created_by: Optional[str] = None,
    since: Optional[datetime] = None,
    until: Optional[datetime] = None,
    limit: int = 50,
) -> List[StockTransaction]:
    q = (
        select(StockTransaction)
        .options(selectinload(StockTransaction.lines))
        .order_by(StockTransaction.created_at.desc(), StockTransaction.id)
    )
    if tx_type is not None:
        q = q.where(StockTransaction.type == tx_type)
    if created_by is not None:
        q = q.where(StockTransaction.created_by == created_by)
    if since is not None:
        q = q.where(StockTransaction.created_at >= since)
    if until is not None:
        q = q.where(StockTransaction.created_at <= until)
    return list(db.execute(q.limit(limit)).scalars())
