"""Query-string to store-argument conversion for the resource routes"""

from typing import Any, Dict, Mapping

from sqlalchemy import JSON, Boolean, Integer, String, Text

from app.store import OperationKind, QueryValidationError
from app.store.meta import EntityMeta

METHOD_OPERATIONS: Mapping[str, OperationKind] = {
    "GET": OperationKind.READ,
    "POST": OperationKind.CREATE,
    "PUT": OperationKind.UPDATE,
    "PATCH": OperationKind.UPDATE,
    "DELETE": OperationKind.DELETE,
}


def convert_method_to_operation(method: str) -> OperationKind:
    """Access check an HTTP method needs; anything unrecognised only reads"""
    return METHOD_OPERATIONS.get(method.upper(), OperationKind.READ)


def _split(value: str):
    return [part.strip() for part in value.split(",") if part.strip()]


def _query_value(entity_meta: EntityMeta, name: str, value: str) -> Any:
    column_type = entity_meta.columns[name].type
    if isinstance(column_type, Boolean):
        if value.lower() not in ("true", "false"):
            raise QueryValidationError(f"Invalid value for `{name}`: expected true or false")
        return value.lower() == "true"
    if isinstance(column_type, Integer):
        return _integer(name, value)
    return value


def _integer(name: str, value: str) -> int:
    try:
        return int(value)
    except ValueError:
        raise QueryValidationError(f"Invalid value for `{name}`: expected an integer")


def convert_query_to_store_args(query: Mapping[str, str], entity_meta: EntityMeta) -> Dict[str, Any]:
    """
    Turn list/detail query parameters into find arguments.

    ``?restaurant_id=r1&relations=restaurant&limit=10&offset=20&order=name:desc``
    becomes ``{"where": {"restaurant_id": "r1"}, "include": {"restaurant": True},
    "take": 10, "skip": 20, "orderBy": {"name": "desc"}}``.
    """
    args: Dict[str, Any] = {}
    where: Dict[str, Any] = {}

    for name, value in query.items():
        if name in entity_meta.visible_fields and not isinstance(entity_meta.columns[name].type, JSON):
            where[name] = _query_value(entity_meta, name, value)

    relations = query.get("relations")
    if relations:
        args["include"] = {name: True for name in _split(relations)}

    if query.get("limit"):
        args["take"] = _integer("limit", query["limit"])
    if query.get("offset"):
        args["skip"] = _integer("offset", query["offset"])

    order = query.get("order")
    if order:
        field, _, direction = order.partition(":")
        args["orderBy"] = {field: direction or "asc"}

    search_term = query.get("searchTerm")
    search_keys = _split(query.get("searchTermKeys") or "")
    if search_term and search_keys:
        for key in search_keys:
            column = entity_meta.columns.get(key)
            if column is None or key in entity_meta.hidden or not isinstance(column.type, (String, Text)):
                raise QueryValidationError(f"Cannot search on field `{key}`")
        where["OR"] = [
            {key: {"contains": search_term, "mode": "insensitive"}} for key in search_keys
        ]

    if where:
        args["where"] = where
    return args
