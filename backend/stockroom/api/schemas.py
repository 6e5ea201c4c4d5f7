# backend/stockroom/api/schemas.py

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, field_validator

from stockroom.services.bulk import BulkMutationResult
from stockroom.services.csv_import import ImportResult
from stockroom.services.stock_status import compute_stock_fields

# ---------- ITEMS ----------


class Item(BaseModel):
    id: str
    sku: str
    name: str
    description: Optional[str] = None

    quantity: int
    min_stock_level: Optional[int] = None
    max_stock_level: Optional[int] = None
    unit_price: float

    category_id: Optional[str] = None
    location_id: Optional[str] = None
    status: str
    stock_status: Optional[str] = None

    version: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True

    @field_validator("unit_price", mode="before")
    @classmethod
    def money_as_float(cls, v):
        return None if v is None else float(v)


def to_item(item) -> Item:
    return Item.model_validate(item).model_copy(update=compute_stock_fields(item))


class ItemOut(BaseModel):
    success: bool = True
    data: Item


class ItemListOut(BaseModel):
    success: bool = True
    data: List[Item]
    count: int


class DeleteOut(BaseModel):
    success: bool = True
    data: Dict[str, str]


class StockAdjustIn(BaseModel):
    # left loose so non-numeric input reaches the validator
    delta: Any = None
    note: Optional[str] = None


class SummaryOut(BaseModel):
    success: bool = True
    total_items: int
    total_quantity: int
    total_value: float
    low_stock: int
    out_of_stock: int
    by_status: Dict[str, int]


# ---------- BULK ----------


class BulkIn(BaseModel):
    operation: Optional[Any] = None
    items: Optional[Any] = None


class BulkDeleteIn(BaseModel):
    ids: Optional[Any] = None


class BulkErrorOut(BaseModel):
    index: int
    id: Optional[str] = None
    reason: str
    code: str
    violations: List[Dict[str, str]] = []


class BulkOut(BaseModel):
    success: bool = True
    operation: str
    message: str
    successful: int
    failed: int
    errors: List[BulkErrorOut]
    items: List[Item] = []
    deleted_ids: List[str] = []


def to_bulk_out(result: BulkMutationResult) -> BulkOut:
    items: List[Item] = []
    deleted: List[str] = []
    for value in result.items:
        if result.operation == "delete":
            deleted.append(str(value))
        else:
            items.append(to_item(value))

    return BulkOut(
        operation=result.operation,
        message=result.message,
        successful=result.successful,
        failed=result.failed,
        errors=[
            BulkErrorOut(
                index=e.index,
                id=None if e.id is None else str(e.id),
                reason=e.reason,
                code=e.code,
                violations=e.violations,
            )
            for e in result.errors
        ],
        items=items,
        deleted_ids=deleted,
    )


# ---------- CSV IMPORT ----------


class ImportErrorOut(BaseModel):
    row: int
    sku: Optional[str] = None
    reason: str
    code: str
    violations: List[Dict[str, str]] = []


class ImportOut(BaseModel):
    success: bool = True
    message: str
    total_rows: int
    imported: int
    failed: int
    errors: List[ImportErrorOut]
    unmapped_columns: List[str] = []
    items: List[Item] = []


def to_import_out(result: ImportResult) -> ImportOut:
    return ImportOut(
        message=result.message,
        total_rows=result.total_rows,
        imported=result.imported,
        failed=result.failed,
        errors=[ImportErrorOut(**vars(e)) for e in result.errors],
        unmapped_columns=result.unmapped_columns,
        items=[to_item(i) for i in result.items],
    )


# ---------- AUDIT ----------


class AuditEntryOut(BaseModel):
    id: int
    action: str

    item_id: str
    sku: str

    delta: Optional[int] = None
    prev_quantity: Optional[int] = None
    new_quantity: Optional[int] = None
    before: Optional[Dict[str, Any]] = None
    after: Optional[Dict[str, Any]] = None
    transaction_id: Optional[str] = None

    actor: str
    note: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class AuditListOut(BaseModel):
    success: bool = True
    data: List[AuditEntryOut]


# ---------- TRANSACTIONS ----------


class TransactionLine(BaseModel):
    id: int
    item_id: str
    sku: str
    name: str
    quantity: int
    unit_price: float
    total_price: float
    notes: Optional[str] = None

    class Config:
        from_attributes = True

    @field_validator("unit_price", "total_price", mode="before")
    @classmethod
    def money_as_float(cls, v):
        return None if v is None else float(v)


class Transaction(BaseModel):
    id: str
    type: str
    status: str
    notes: Optional[str] = None
    created_by: str

    subtotal: float
    tax_rate: float
    tax: float
    total: float

    lines: List[TransactionLine]
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True

    @field_validator("subtotal", "tax_rate", "tax", "total", mode="before")
    @classmethod
    def money_as_float(cls, v):
        return None if v is None else float(v)


class TransactionOut(BaseModel):
    success: bool = True
    data: Transaction


class TransactionListOut(BaseModel):
    success: bool = True
    data: List[Transaction]
