"""Per-resource REST endpoints: /api/menus, /api/orders, ... and /{id} below each"""

from typing import Sequence, Type

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from app.api.auth import get_policy
from app.database import get_db
from app.jobs.notify import notify_change
from app.store import AccessPolicy, Entity, StoreClient
from app.utils import convert_method_to_operation, convert_query_to_store_args, convert_route_to_entity

logger = structlog.get_logger()

ALL_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE"]


def method_not_allowed(method: str) -> JSONResponse:
    return JSONResponse(status_code=405, content={"message": f"Method {method} not allowed"})


async def read_json_body(request: Request):
    try:
        return await request.json()
    except ValueError:
        # undecodable bytes or malformed JSON
        raise HTTPException(status_code=400, detail="invalid request body")


def store_client(request: Request, db: AsyncSession, policy: AccessPolicy) -> StoreClient:
    return StoreClient(db, request.app.state.model_meta, policy)


def build_resource_router(
    segment: str,
    validation: Type[BaseModel],
    collection_methods: Sequence[str] = ("GET", "POST"),
    item_methods: Sequence[str] = ("GET", "PUT", "DELETE"),
) -> APIRouter:
    """
    Router for one resource segment.

    The collection lists (with ``totalCount``) and creates. The item route
    checks the caller's access to the record for the request's method before
    anything else, then reads, updates or deletes it.
    """
    entity = Entity(convert_route_to_entity(segment))
    router = APIRouter()

    @router.api_route("", methods=ALL_METHODS)
    async def collection(
        request: Request,
        policy: AccessPolicy = Depends(get_policy),
        db: AsyncSession = Depends(get_db),
    ):
        method = request.method
        if method not in collection_methods:
            return method_not_allowed(method)

        client = store_client(request, db, policy)
        delegate = client.delegate(entity)

        if method == "GET":
            args = convert_query_to_store_args(dict(request.query_params), delegate.entity_meta)
            data = await delegate.find_many(args)
            total = await delegate.count({"where": args.get("where")})
            return JSONResponse(
                status_code=200,
                content=jsonable_encoder({"data": data, "totalCount": total}),
            )

        payload = validation.model_validate(await read_json_body(request))
        data = await delegate.create({"data": payload.model_dump(exclude_unset=True)})
        await notify_change(db, policy, entity, data["id"], "create", jsonable_encoder(data))
        return JSONResponse(status_code=201, content=jsonable_encoder(data))

    @router.api_route("/{record_id}", methods=ALL_METHODS)
    async def item(
        record_id: str,
        request: Request,
        policy: AccessPolicy = Depends(get_policy),
        db: AsyncSession = Depends(get_db),
    ):
        method = request.method
        client = store_client(request, db, policy)
        delegate = client.delegate(entity)

        allowed = await delegate.has_access(record_id, convert_method_to_operation(method))
        if not allowed:
            logger.info("Access denied", entity=entity.value, record_id=record_id, method=method)
            return JSONResponse(status_code=403, content={"message": "Forbidden"})

        if method not in item_methods:
            return method_not_allowed(method)

        if method == "GET":
            query = dict(request.query_params)
            query["id"] = record_id
            data = await delegate.find_first(convert_query_to_store_args(query, delegate.entity_meta))
            return JSONResponse(status_code=200, content=jsonable_encoder(data))

        if method == "PUT":
            payload = validation.model_validate(await read_json_body(request))
            data = await delegate.update({
                "where": {"id": record_id},
                "data": payload.model_dump(exclude_unset=True),
            })
            await notify_change(db, policy, entity, data["id"], "update", jsonable_encoder(data))
            return JSONResponse(status_code=200, content=jsonable_encoder(data))

        await notify_change(db, policy, entity, record_id, "delete")
        data = await delegate.delete({"where": {"id": record_id}})
        return JSONResponse(status_code=200, content=jsonable_encoder(data))

    return router
