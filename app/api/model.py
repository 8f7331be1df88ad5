"""Generic model endpoint: /api/model/{model}/{operation}"""

import json

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from app.api.auth import get_policy
from app.database import get_db
from app.store import AccessPolicy, StoreClient

logger = structlog.get_logger()

router = APIRouter()


async def _read_body(request: Request):
    raw = await request.body()
    if not raw:
        return None
    return json.loads(raw)


@router.api_route("/{path:path}", methods=["GET", "POST", "PUT", "PATCH", "DELETE"])
async def handle_model_request(
    path: str,
    request: Request,
    policy: AccessPolicy = Depends(get_policy),
    db: AsyncSession = Depends(get_db),
):
    """Run one store operation on behalf of the caller"""
    handler = getattr(request.app.state, "rpc_handler", None)
    if handler is None or db is None:
        return JSONResponse(status_code=500, content={"message": "unable to get store from request context"})

    if not path:
        return JSONResponse(status_code=400, content={"message": "missing path parameter"})

    try:
        body = await _read_body(request)
    except ValueError:
        return JSONResponse(status_code=400, content={"error": {"message": "invalid request body"}})

    client = StoreClient(db, handler.options.model_meta, policy)
    try:
        response = await handler.handle_request(
            client,
            method=request.method,
            path=path,
            query=dict(request.query_params),
            body=body,
        )
    except Exception as e:
        logger.error("Unhandled error in model endpoint", path=path, exc_info=True)
        return JSONResponse(status_code=500, content={"message": f"An unhandled error occurred: {e}"})

    return JSONResponse(status_code=response.status, content=response.body)
