"""
RPC-style model endpoint: ``{model}/{operation}`` mapped onto store operations.

Each operation belongs to a group that fixes the HTTP method it accepts and
where its arguments come from:

    write   create, createMany, upsert         POST, JSON body     201
    read    findFirst, findUnique, findMany,
            aggregate, groupBy, count          GET, ?q=&meta=       200
    update  update, updateMany                 PUT/PATCH, body      200
    delete  delete, deleteMany                 DELETE, ?q=&meta=    200

Results are sent as ``{"data": json, "meta": {"serialization": meta}}`` so rich
values survive the trip; requests may carry the same ``meta`` alongside their
arguments.
"""

import json
from dataclasses import dataclass
from typing import Any, Dict, Mapping, NamedTuple, Optional, Tuple, Type

from pydantic import BaseModel, ValidationError
import structlog

from app.api.error_handlers import format_validation_error, make_error, validation_details
from app.serialization import SerializationError, deserialize, serialize
from app.store import (
    Entity,
    FailureReason,
    KnownRequestError,
    ModelMeta,
    Operation,
    OperationGroup,
    QueryValidationError,
    StoreClient,
    UnknownRequestError,
)

logger = structlog.get_logger()

GROUP_METHODS: Mapping[OperationGroup, Tuple[str, ...]] = {
    OperationGroup.WRITE: ("POST",),
    OperationGroup.READ: ("GET",),
    OperationGroup.UPDATE: ("PUT", "PATCH"),
    OperationGroup.DELETE: ("DELETE",),
}

WRONG_METHOD_MESSAGES: Mapping[OperationGroup, str] = {
    OperationGroup.WRITE: "invalid request method, only POST is supported",
    OperationGroup.READ: "invalid request method, only GET is supported",
    OperationGroup.UPDATE: "invalid request method, only PUT AND PATCH are supported",
    OperationGroup.DELETE: "invalid request method, only DELETE is supported",
}


@dataclass(frozen=True)
class HandlerOptions:
    """Immutable configuration built once at startup"""
    model_meta: ModelMeta
    input_schemas: Mapping[Tuple[Entity, Operation], Type[BaseModel]]

    def input_schema(self, entity: Optional[Entity], operation: Operation) -> Optional[Type[BaseModel]]:
        if entity is None:
            return None
        return self.input_schemas.get((entity, operation))


class RpcResponse(NamedTuple):
    status: int
    body: Any


class RequestError(Exception):
    """A malformed request, answered with 400 before the store is touched"""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


def parse_operation(name: str) -> Optional[Operation]:
    try:
        return Operation(name)
    except ValueError:
        return None


def unmarshal_query(query: Mapping[str, Any]) -> Any:
    """Arguments from the ``q`` and ``meta`` query parameters"""
    q = query.get("q")
    if not q:
        return {}
    try:
        value = json.loads(q)
    except ValueError:
        raise RequestError('invalid "q" query parameter')

    meta = query.get("meta")
    if not meta:
        return value
    try:
        parsed_meta = json.loads(meta)
    except ValueError:
        raise RequestError('invalid "meta" query parameter')
    if not isinstance(parsed_meta, dict):
        raise RequestError('invalid "meta" query parameter')

    if parsed_meta.get("serialization"):
        try:
            return deserialize(value, parsed_meta["serialization"])
        except SerializationError:
            raise RequestError('invalid "q" query parameter')
    return value


def unmarshal_body(body: Any) -> Any:
    """Strip the body's ``meta`` and rebuild rich values it describes"""
    if not isinstance(body, dict) or "meta" not in body:
        return body
    rest = {key: value for key, value in body.items() if key != "meta"}
    meta = body["meta"]
    if isinstance(meta, dict) and meta.get("serialization"):
        try:
            return deserialize(rest, meta["serialization"])
        except SerializationError:
            raise RequestError('invalid "meta" in request body')
    return rest


class RequestHandler:
    """Dispatches one model request per call; holds no per-request state"""

    def __init__(self, options: HandlerOptions):
        self.options = options

    def _arguments(self, operation: Operation, method: str, query: Mapping[str, Any], body: Any) -> Any:
        group = operation.group
        if method not in GROUP_METHODS[group]:
            raise RequestError(WRONG_METHOD_MESSAGES[group])

        if group in (OperationGroup.WRITE, OperationGroup.UPDATE):
            if not body:
                raise RequestError("missing request body")
            return unmarshal_body(body)
        return unmarshal_query(query)

    def _validate(self, entity: Optional[Entity], operation: Operation, args: Any) -> Optional[RpcResponse]:
        schema = self.options.input_schema(entity, operation)
        if schema is None:
            return None
        try:
            schema.model_validate(args)
        except ValidationError as e:
            return RpcResponse(400, make_error(
                format_validation_error(e),
                FailureReason.DATA_VALIDATION_VIOLATION,
                validation_details(e),
            ))
        return None

    async def handle_request(
        self,
        client: StoreClient,
        method: str,
        path: str,
        query: Optional[Mapping[str, Any]] = None,
        body: Any = None,
    ) -> RpcResponse:
        parts = [part for part in path.split("/") if part]
        if len(parts) != 2:
            return RpcResponse(400, make_error("invalid request path"))
        model, op_name = parts

        operation = parse_operation(op_name)
        if operation is None:
            return RpcResponse(400, make_error(f"invalid operation: {op_name}"))

        try:
            args = self._arguments(operation, method.upper(), query or {}, body)
        except RequestError as e:
            return RpcResponse(400, make_error(e.message))

        entity = self.options.model_meta.resolve(model)

        rejection = self._validate(entity, operation, args)
        if rejection is not None:
            return rejection

        if entity is None:
            return RpcResponse(400, make_error(f"unknown model name: {model}"))

        status = 201 if operation.group is OperationGroup.WRITE else 200
        try:
            if operation is Operation.UPSERT:
                result, created = await client.delegate(entity).upsert(args)
                if not created:
                    status = 200
            else:
                result = await client.execute(entity, operation, args)
        except KnownRequestError as e:
            logger.info("Store request rejected", model=model, operation=op_name, code=e.code, error=e.message)
            body = make_error(e.message, e.reason, e.meta.get("zodErrors"))
            body["error"].update(prisma=True, code=e.code)
            return RpcResponse(e.http_status, body)
        except (UnknownRequestError, QueryValidationError) as e:
            logger.error("Store request failed", model=model, operation=op_name, error=e.message)
            body = make_error(e.message)
            body["error"]["prisma"] = True
            return RpcResponse(400, body)
        except Exception as e:
            logger.error("Unexpected error handling model request", model=model, operation=op_name, exc_info=True)
            return RpcResponse(400, make_error(str(e)))

        data, meta = serialize(result)
        response: Dict[str, Any] = {"data": data}
        if meta is not None:
            response["meta"] = {"serialization": meta}
        return RpcResponse(status, response)
