# backend/stockroom/api/errors.py

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from stockroom.core.exceptions import RequestShapeError, StockroomError

logger = logging.getLogger(__name__)


def error_body(error: str, code: str, details: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    body: Dict[str, Any] = {
        "success": False,
        "error": error,
        "code": code,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
    if details:
        body["details"] = details
    return body


def setup_exception_handlers(app: FastAPI):

    @app.exception_handler(StockroomError)
    async def stockroom_exception_handler(request: Request, exc: StockroomError):
        error = exc.error if isinstance(exc, RequestShapeError) else exc.message
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc.code} {exc.message}")
        return JSONResponse(
            content=jsonable_encoder(error_body(error, exc.code, exc.details)),
            status_code=exc.status_code,
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        code = {401: "UNAUTHORIZED", 403: "FORBIDDEN", 404: "NOT_FOUND"}.get(exc.status_code, "HTTP_ERROR")
        return JSONResponse(
            content=error_body(str(exc.detail), code),
            status_code=exc.status_code,
            headers=getattr(exc, "headers", None),
        )

    # body/query parse errors answer 400 like every other bad request
    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            content=jsonable_encoder(
                error_body("Invalid request", "REQUEST_SHAPE_ERROR", {"errors": exc.errors()})
            ),
            status_code=400,
        )

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception):
        logger.exception(f"Unhandled exception on {request.method} {request.url.path}")
        return JSONResponse(
            content=error_body("Internal server error", "INTERNAL_ERROR"),
            status_code=500,
        )
