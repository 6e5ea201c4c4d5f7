import csv
import io
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from stockroom.core.config import settings
from stockroom.core.exceptions import RequestShapeError
from stockroom.models.inventory_item import ITEM_FIELDS
from stockroom.services.bulk import BulkMutationEngine
from stockroom.services.normalize import ITEM_ALIASES

logger = logging.getLogger(__name__)

DELIMITERS = ",;\t|"

# spreadsheet headers seen in the wild, keyed by their lowercased/underscored form
HEADER_ALIASES = {
    "code": "sku",
    "item_code": "sku",
    "product_code": "sku",
    "product": "name",
    "product_name": "name",
    "item_name": "name",
    "qty": "quantity",
    "stock": "quantity",
    "on_hand": "quantity",
    "price": "unit_price",
    "unitprice": "unit_price",
    "unit_cost": "unit_price",
    "cost": "unit_price",
    "min_stock": "min_stock_level",
    "minstocklevel": "min_stock_level",
    "reorder_point": "min_stock_level",
    "max_stock": "max_stock_level",
    "maxstocklevel": "max_stock_level",
    "category": "category_id",
    "categoryid": "category_id",
    "location": "location_id",
    "locationid": "location_id",
}

REQUIRED_COLUMNS = ("sku", "name")

# blank cells fall back to these before validation
DEFAULTS = {"quantity": 0, "unit_price": 0}


@dataclass
class RowError:
    row: int
    sku: Optional[str]
    reason: str
    code: str
    violations: List[Dict[str, str]] = field(default_factory=list)


@dataclass
class ImportResult:
    total_rows: int = 0
    imported: int = 0
    failed: int = 0
    errors: List[RowError] = field(default_factory=list)
    items: List[Any] = field(default_factory=list)
    unmapped_columns: List[str] = field(default_factory=list)

    @property
    def message(self) -> str:
        return f"CSV import completed: {self.imported} of {self.total_rows} rows imported"


def decode_payload(payload: bytes) -> str:
    try:
        return payload.decode("utf-8-sig")
    except UnicodeDecodeError:
        # spreadsheet exports from older desktop tools
        return payload.decode("latin-1")


def canonical_column(header: str) -> Optional[str]:
    raw = header.strip()
    if raw in ITEM_FIELDS:
        return raw
    if raw in ITEM_ALIASES:
        return ITEM_ALIASES[raw]
    key = raw.lower().replace(" ", "_").replace("-", "_")
    key = HEADER_ALIASES.get(key, key)
    return key if key in ITEM_FIELDS else None


def _dialect(text: str):
    sample = "\n".join(text.splitlines()[:20])
    try:
        return csv.Sniffer().sniff(sample, delimiters=DELIMITERS)
    except csv.Error:
        return csv.excel


def parse_csv(text: str) -> Tuple[List[Tuple[int, Dict[str, Any]]], List[str]]:
    """Read ``text`` into ``[(row number, item payload)]`` plus the ignored headers.

    Row numbers count the header as row 1, the way a spreadsheet shows them.
    """
    if not text.strip():
        raise RequestShapeError("Invalid CSV", "File is empty")

    reader = csv.reader(io.StringIO(text), _dialect(text))
    try:
        header = next(reader)
    except csv.Error as e:
        raise RequestShapeError("Invalid CSV", f"Could not read header: {e}") from e

    columns: List[Optional[str]] = []
    unmapped: List[str] = []
    for h in header:
        col = canonical_column(h)
        if col is None or col in columns:
            if h.strip():
                unmapped.append(h.strip())
            col = None
        columns.append(col)

    missing = [c for c in REQUIRED_COLUMNS if c not in columns]
    if missing:
        raise RequestShapeError("Invalid CSV", f"Missing required column(s): {', '.join(missing)}")

    rows: List[Tuple[int, Dict[str, Any]]] = []
    try:
        for values in reader:
            if not any(v.strip() for v in values):
                continue
            record: Dict[str, Any] = {}
            for col, value in zip(columns, values):
                if col is not None and value.strip():
                    record[col] = value.strip()
            for key, default in DEFAULTS.items():
                record.setdefault(key, default)
            rows.append((reader.line_num, record))
    except csv.Error as e:
        raise RequestShapeError("Invalid CSV", f"Line {reader.line_num}: {e}") from e

    if not rows:
        raise RequestShapeError("Invalid CSV", "No data rows found")
    return rows, unmapped


def import_csv(engine: BulkMutationEngine, payload: bytes, max_bytes: int = None) -> ImportResult:
    """Create one item per CSV row, in chunks the bulk engine accepts.

    Rows fail independently; a bad file (empty, no sku/name column, too
    large) is rejected before anything is written.
    """
    max_bytes = max_bytes or settings.max_import_bytes
    if len(payload) > max_bytes:
        raise RequestShapeError("Request too large", f"Maximum file size is {max_bytes} bytes")

    rows, unmapped = parse_csv(decode_payload(payload))
    result = ImportResult(total_rows=len(rows), unmapped_columns=unmapped)

    size = engine.max_batch_size
    for start in range(0, len(rows), size):
        chunk = rows[start:start + size]
        batch = engine.bulk_create([record for _, record in chunk])
        result.imported += batch.successful
        result.failed += batch.failed
        result.items.extend(batch.items)
        for err in batch.errors:
            row, record = chunk[err.index]
            result.errors.append(
                RowError(
                    row=row,
                    sku=record.get("sku"),
                    reason=err.reason,
                    code=err.code,
                    violations=err.violations,
                )
            )

    log = logger.warning if result.failed else logger.info
    log(
        f"CSV import by {engine.actor}: {result.imported}/{result.total_rows} rows imported, "
        f"{result.failed} failed, ignored columns {unmapped}"
    )
    return result
