# backend/stockroom/main.py

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from stockroom.api.bulk_routes import router as bulk_router
from stockroom.api.errors import setup_exception_handlers
from stockroom.api.routes import router as api_router
from stockroom.api.transaction_routes import router as transaction_router
from stockroom.core.config import settings
from stockroom.core.database import create_tables
from stockroom.core.logging_config import configure_logging
from stockroom.models.audit_entry import register_append_only_guards

configure_logging()
register_append_only_guards()

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.auto_create_tables:
        create_tables()
    logger.info(f"Stockroom API started (env={settings.app_env})")
    yield


app = FastAPI(title="Stockroom API", version="0.1.0", lifespan=lifespan)

# Comma-separated allowlist in prod via CORS_ORIGINS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allow_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["Authorization", "Content-Type"],
)

setup_exception_handlers(app)

# bulk first so /inventory/bulk wins over /inventory/{item_id}
app.include_router(bulk_router, prefix="/api", tags=["bulk"])
app.include_router(api_router, prefix="/api", tags=["inventory"])
app.include_router(transaction_router, prefix="/api", tags=["transactions"])


@app.get("/health")
def health():
    return {"status": "ok"}
