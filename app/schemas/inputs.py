"""
Input schemas for the generic model endpoint.

Each (entity, operation) pair that carries a payload maps to a pydantic
model describing its arguments. Pairs missing from ``INPUT_SCHEMAS`` are
passed to the store unvalidated.
"""

from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Tuple, Type

from pydantic import BaseModel, create_model

from app.schemas.menu import MenuUpdate, MenuValidation
from app.schemas.order import OrderUpdate, OrderValidation
from app.schemas.reservation import ReservationUpdate, ReservationValidation
from app.schemas.restaurant import RestaurantUpdate, RestaurantValidation
from app.schemas.review import ReviewUpdate, ReviewValidation
from app.schemas.user import UserProfileValidation
from app.store.meta import Entity, Operation

# entity -> (full payload, partial payload)
ENTITY_SCHEMAS: Mapping[Entity, Tuple[Optional[Type[BaseModel]], Type[BaseModel]]] = MappingProxyType({
    Entity.MENU: (MenuValidation, MenuUpdate),
    Entity.ORDER: (OrderValidation, OrderUpdate),
    Entity.RESERVATION: (ReservationValidation, ReservationUpdate),
    Entity.RESTAURANT: (RestaurantValidation, RestaurantUpdate),
    Entity.REVIEW: (ReviewValidation, ReviewUpdate),
    Entity.USER: (None, UserProfileValidation),
})

_SHAPE = {
    "select": (Optional[Dict[str, Any]], None),
    "include": (Optional[Dict[str, Any]], None),
}


def _entity_inputs(entity: Entity, full: Optional[Type[BaseModel]], partial: Type[BaseModel]):
    prefix = "".join(part.capitalize() for part in entity.value.split("_"))
    inputs = {
        (entity, Operation.UPDATE): create_model(
            f"{prefix}UpdateArgs",
            where=(Dict[str, Any], ...),
            data=(partial, ...),
            **_SHAPE,
        ),
        (entity, Operation.UPDATE_MANY): create_model(
            f"{prefix}UpdateManyArgs",
            where=(Optional[Dict[str, Any]], None),
            data=(partial, ...),
        ),
    }
    if full is not None:
        inputs[(entity, Operation.CREATE)] = create_model(
            f"{prefix}CreateArgs",
            data=(full, ...),
            **_SHAPE,
        )
        inputs[(entity, Operation.CREATE_MANY)] = create_model(
            f"{prefix}CreateManyArgs",
            data=(List[full], ...),
            skipDuplicates=(Optional[bool], None),
        )
        inputs[(entity, Operation.UPSERT)] = create_model(
            f"{prefix}UpsertArgs",
            where=(Dict[str, Any], ...),
            create=(full, ...),
            update=(partial, ...),
            **_SHAPE,
        )
    return inputs


def build_input_schemas() -> Mapping[Tuple[Entity, Operation], Type[BaseModel]]:
    """Immutable (entity, operation) -> argument model registry"""
    schemas: Dict[Tuple[Entity, Operation], Type[BaseModel]] = {}
    for entity, (full, partial) in ENTITY_SCHEMAS.items():
        schemas.update(_entity_inputs(entity, full, partial))
    return MappingProxyType(schemas)


INPUT_SCHEMAS = build_input_schemas()
