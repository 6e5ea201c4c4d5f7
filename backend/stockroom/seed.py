from datetime import timedelta

from stockroom.core.database import SessionLocal, create_tables
from stockroom.core.logging_config import configure_logging
from stockroom.core.security import create_access_token
from stockroom.models.audit_entry import register_append_only_guards
from stockroom.services.audit import AuditLog
from stockroom.services.bulk import BulkMutationEngine
from stockroom.services.item_store import ItemStore

DEMO_ITEMS = [
    {
        "sku": "SKU-001",
        "name": "Widget A",
        "quantity": 12,
        "unitPrice": 4.50,
        "minStockLevel": 10,
        "maxStockLevel": 100,
        "categoryId": "widgets",
        "locationId": "main",
    },
    {
        "sku": "SKU-002",
        "name": "Widget B",
        "quantity": 6,
        "unitPrice": 5.25,
        "minStockLevel": 10,
        "maxStockLevel": 80,
        "categoryId": "widgets",
        "locationId": "main",
    },
    {
        "sku": "SKU-003",
        "name": "Gadget C",
        "quantity": 0,
        "unitPrice": 19.99,
        "minStockLevel": 8,
        "categoryId": "gadgets",
        "locationId": "backroom",
    },
]


def seed():
    configure_logging()
    register_append_only_guards()
    create_tables()

    db = SessionLocal()
    try:
        engine = BulkMutationEngine(db, ItemStore(db), AuditLog(db), actor="seed")
        # items already present fail as duplicates and are left alone
        result = engine.bulk_create(DEMO_ITEMS)
    finally:
        db.close()

    print(result.message)
    for e in result.errors:
        print(f"  skipped #{e.index}: {e.reason}")

    token = create_access_token(
        {"sub": "dev-manager", "name": "Dev Manager", "role": "manager"},
        expires_delta=timedelta(days=7),
    )
    print(f"Dev manager token:\n{token}")


if __name__ == "__main__":
    seed()
