"""Plural URL segments and the entities they serve"""

from types import MappingProxyType
from typing import Mapping

ROUTE_ENTITIES: Mapping[str, str] = MappingProxyType({
    "menus": "menu",
    "orders": "order",
    "reservations": "reservation",
    "restaurants": "restaurant",
    "reviews": "review",
    "users": "user",
})


def convert_route_to_entity(route: str) -> str:
    """Entity name for a route segment; unknown segments are returned unchanged"""
    return ROUTE_ENTITIES.get(route, route)
