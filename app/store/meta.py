"""Model metadata: the closed set of entities and operations the store serves"""

import enum
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, FrozenSet, Mapping, Optional, Tuple, Type

from sqlalchemy import Column, inspect
from sqlalchemy.orm import MANYTOONE

from app.database import Base
from app.models import Menu, Order, Reservation, Restaurant, Review, User


class Entity(str, enum.Enum):
    MENU = "menu"
    ORDER = "order"
    RESERVATION = "reservation"
    RESTAURANT = "restaurant"
    REVIEW = "review"
    USER = "user"


class OperationGroup(str, enum.Enum):
    WRITE = "write"
    READ = "read"
    UPDATE = "update"
    DELETE = "delete"


class Operation(str, enum.Enum):
    CREATE = "create"
    CREATE_MANY = "createMany"
    UPSERT = "upsert"
    FIND_FIRST = "findFirst"
    FIND_UNIQUE = "findUnique"
    FIND_MANY = "findMany"
    AGGREGATE = "aggregate"
    GROUP_BY = "groupBy"
    COUNT = "count"
    UPDATE = "update"
    UPDATE_MANY = "updateMany"
    DELETE = "delete"
    DELETE_MANY = "deleteMany"

    @property
    def group(self) -> OperationGroup:
        return OPERATION_GROUPS[self]


OPERATION_GROUPS: Mapping[Operation, OperationGroup] = MappingProxyType({
    Operation.CREATE: OperationGroup.WRITE,
    Operation.CREATE_MANY: OperationGroup.WRITE,
    Operation.UPSERT: OperationGroup.WRITE,
    Operation.FIND_FIRST: OperationGroup.READ,
    Operation.FIND_UNIQUE: OperationGroup.READ,
    Operation.FIND_MANY: OperationGroup.READ,
    Operation.AGGREGATE: OperationGroup.READ,
    Operation.GROUP_BY: OperationGroup.READ,
    Operation.COUNT: OperationGroup.READ,
    Operation.UPDATE: OperationGroup.UPDATE,
    Operation.UPDATE_MANY: OperationGroup.UPDATE,
    Operation.DELETE: OperationGroup.DELETE,
    Operation.DELETE_MANY: OperationGroup.DELETE,
})


class OperationKind(str, enum.Enum):
    """What an access check is asked to allow"""
    READ = "read"
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


@dataclass(frozen=True)
class RelationMeta:
    name: str
    target: Entity
    many: bool
    # Column holding the key: on this model for to-one, on the target for to-many
    foreign_key: str


@dataclass(frozen=True)
class EntityMeta:
    entity: Entity
    model: Type[Base]
    columns: Mapping[str, Column]
    relations: Mapping[str, RelationMeta]
    unique_fields: Tuple[str, ...]
    hidden: FrozenSet[str] = frozenset()
    # JSON columns that must hold a list of strings
    string_lists: FrozenSet[str] = frozenset()

    @property
    def visible_fields(self) -> Tuple[str, ...]:
        return tuple(name for name in self.columns if name not in self.hidden)

    @property
    def foreign_keys(self) -> Dict[str, Entity]:
        """Scalar foreign key column -> entity it must reference"""
        return {
            rel.foreign_key: rel.target
            for rel in self.relations.values()
            if not rel.many
        }

    def required_fields(self) -> Tuple[str, ...]:
        return tuple(
            name for name, column in self.columns.items()
            if not column.nullable and column.default is None and not column.primary_key
        )


@dataclass(frozen=True)
class ModelMeta:
    entities: Mapping[Entity, EntityMeta] = field(default_factory=dict)

    def __getitem__(self, entity: Entity) -> EntityMeta:
        return self.entities[entity]

    def resolve(self, name: str) -> Optional[Entity]:
        """Entity for a model name, or None when the store does not know it"""
        try:
            return Entity(name)
        except ValueError:
            return None


ENTITY_MODELS: Mapping[Entity, Type[Base]] = MappingProxyType({
    Entity.MENU: Menu,
    Entity.ORDER: Order,
    Entity.RESERVATION: Reservation,
    Entity.RESTAURANT: Restaurant,
    Entity.REVIEW: Review,
    Entity.USER: User,
})

HIDDEN_FIELDS: Mapping[Entity, FrozenSet[str]] = MappingProxyType({
    Entity.USER: frozenset({"hashed_password"}),
})

STRING_LIST_FIELDS: Mapping[Entity, FrozenSet[str]] = MappingProxyType({
    Entity.USER: frozenset({"roles"}),
})


def _entity_for_model(model) -> Entity:
    for entity, candidate in ENTITY_MODELS.items():
        if candidate is model:
            return entity
    raise LookupError(f"{model.__name__} is not exposed through the store")


def _describe(entity: Entity, model: Type[Base]) -> EntityMeta:
    mapper = inspect(model)

    columns = {attr.key: attr.columns[0] for attr in mapper.column_attrs}

    relations = {}
    for rel in mapper.relationships:
        many = rel.direction is not MANYTOONE
        key_columns = rel.remote_side if many else rel.local_columns
        relations[rel.key] = RelationMeta(
            name=rel.key,
            target=_entity_for_model(rel.mapper.class_),
            many=many,
            foreign_key=next(iter(key_columns)).key,
        )

    unique_fields = tuple(
        name for name, column in columns.items() if column.primary_key or column.unique
    )

    return EntityMeta(
        entity=entity,
        model=model,
        columns=MappingProxyType(columns),
        relations=MappingProxyType(relations),
        unique_fields=unique_fields,
        hidden=HIDDEN_FIELDS.get(entity, frozenset()),
        string_lists=STRING_LIST_FIELDS.get(entity, frozenset()),
    )


def build_model_meta() -> ModelMeta:
    """Describe every exposed entity from its mapped SQLAlchemy model"""
    return ModelMeta(
        entities=MappingProxyType({
            entity: _describe(entity, model) for entity, model in ENTITY_MODELS.items()
        })
    )
