"""Error responses shared by the resource routes and the generic model endpoint"""

import json
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from pydantic import ValidationError
import structlog

from app.store.errors import (
    FailureReason,
    KnownRequestError,
    StoreError,
)

logger = structlog.get_logger()

POLICY_REASONS = (FailureReason.ACCESS_POLICY_VIOLATION, FailureReason.RESULT_NOT_READABLE)


def make_error(
    message: str,
    reason: Optional[str] = None,
    validation_errors: Optional[List[Dict[str, Any]]] = None,
) -> Dict[str, Any]:
    """Build the ``{"error": {...}}`` body clients inspect for rejection causes"""
    error: Dict[str, Any] = {"message": message}
    if reason is not None:
        error["reason"] = reason
        if reason in POLICY_REASONS:
            error["rejectedByPolicy"] = True
        elif reason == FailureReason.DATA_VALIDATION_VIOLATION:
            error["rejectedByValidation"] = True
    if validation_errors is not None:
        error["zodErrors"] = validation_errors
    return {"error": error}


def format_validation_error(exc: ValidationError) -> str:
    """One-line summary of every issue, e.g. 'Validation error: Field required at "data.name"'"""
    issues = []
    for err in exc.errors():
        location = ".".join(str(part) for part in err["loc"])
        issues.append(f'{err["msg"]} at "{location}"' if location else err["msg"])
    return "Validation error: " + "; ".join(issues)


def validation_details(exc: ValidationError) -> List[Dict[str, Any]]:
    """JSON-safe issue list"""
    return json.loads(exc.json(include_url=False))


def store_error_response(exc: StoreError) -> JSONResponse:
    """Status and body for a store failure"""
    if isinstance(exc, KnownRequestError):
        body = make_error(exc.message, exc.reason)
        body["error"].update(prisma=True, code=exc.code)
        return JSONResponse(status_code=exc.http_status, content=body)

    body = make_error(exc.message)
    body["error"]["prisma"] = True
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=body)


def register_error_handlers(app: FastAPI) -> None:
    """Register the global error handlers on the FastAPI app"""
    _register_store_error_handler(app)
    _register_validation_error_handler(app)
    _register_generic_error_handler(app)


def _register_store_error_handler(app: FastAPI) -> None:

    @app.exception_handler(StoreError)
    async def store_error_handler(request: Request, exc: StoreError):
        logger.warning(
            "Store request rejected",
            path=request.url.path,
            error=exc.message,
            code=getattr(exc, "code", None),
        )
        return store_error_response(exc)


def _register_validation_error_handler(app: FastAPI) -> None:

    @app.exception_handler(ValidationError)
    async def validation_error_handler(request: Request, exc: ValidationError):
        """Request bodies validated inside a route"""
        logger.info("Validation error", path=request.url.path, errors=exc.error_count())
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={
                "message": format_validation_error(exc),
                "details": validation_details(exc),
            },
        )


def _register_generic_error_handler(app: FastAPI) -> None:

    @app.exception_handler(Exception)
    async def generic_error_handler(request: Request, exc: Exception):
        """Catch-all, never leaks internal details"""
        logger.error(
            "Unhandled exception",
            path=request.url.path,
            error=str(exc),
            exc_info=True,
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"message": "Internal server error"},
        )
