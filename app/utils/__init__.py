"""Helpers shared by the resource routes"""

from app.utils.query import convert_method_to_operation, convert_query_to_store_args
from app.utils.routes import ROUTE_ENTITIES, convert_route_to_entity

__all__ = [
    "ROUTE_ENTITIES",
    "convert_method_to_operation",
    "convert_query_to_store_args",
    "convert_route_to_entity",
]
