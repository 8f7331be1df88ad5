"""Translate ORM-style query arguments into SQLAlchemy expressions"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import Boolean, Column, DateTime, Integer, JSON, String, Text, and_, not_, or_, true
from sqlalchemy.sql.elements import ColumnElement

from app.store.errors import QueryValidationError
from app.store.meta import EntityMeta, ModelMeta

STRING_OPERATORS = ("contains", "startsWith", "endsWith")
COMPARISON_OPERATORS = ("lt", "lte", "gt", "gte")
FILTER_OPERATORS = (
    ("equals", "not", "in", "notIn", "mode") + COMPARISON_OPERATORS + STRING_OPERATORS
)


def _parse_datetime(name: str, value: str) -> datetime:
    text = value[:-1] + "+00:00" if value.endswith("Z") else value
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        raise QueryValidationError(f"Invalid value for argument `{name}`: expected ISO-8601 DateTime")
    return parsed


def coerce_value(name: str, column: Column, value: Any) -> Any:
    """Check ``value`` against the column type, converting where the wire form differs"""
    if value is None:
        return None

    column_type = column.type
    if isinstance(column_type, DateTime):
        if isinstance(value, str):
            value = _parse_datetime(name, value)
        if not isinstance(value, datetime):
            raise QueryValidationError(f"Invalid value for argument `{name}`: expected DateTime")
        # Columns hold naive UTC
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc).replace(tzinfo=None)
        return value

    if isinstance(column_type, Boolean):
        if not isinstance(value, bool):
            raise QueryValidationError(f"Invalid value for argument `{name}`: expected Boolean")
        return value

    if isinstance(column_type, Integer):
        if isinstance(value, bool) or not isinstance(value, int):
            raise QueryValidationError(f"Invalid value for argument `{name}`: expected Int")
        return value

    if isinstance(column_type, (String, Text)):
        if not isinstance(value, str):
            raise QueryValidationError(f"Invalid value for argument `{name}`: expected String")
        return value

    if isinstance(column_type, JSON):
        return value

    return value


def _field_filter(name: str, column: Column, condition: Any) -> ColumnElement:
    if not isinstance(condition, dict):
        value = coerce_value(name, column, condition)
        return column.is_(None) if value is None else column == value

    unknown = set(condition) - set(FILTER_OPERATORS)
    if unknown:
        raise QueryValidationError(f"Unknown filter `{sorted(unknown)[0]}` on field `{name}`")

    insensitive = condition.get("mode") == "insensitive"
    clauses = []
    for op, operand in condition.items():
        if op == "mode":
            continue
        if op == "equals":
            value = coerce_value(name, column, operand)
            clauses.append(column.is_(None) if value is None else column == value)
        elif op == "not":
            if isinstance(operand, dict):
                clauses.append(not_(_field_filter(name, column, operand)))
            else:
                value = coerce_value(name, column, operand)
                clauses.append(column.isnot(None) if value is None else column != value)
        elif op in ("in", "notIn"):
            if not isinstance(operand, list):
                raise QueryValidationError(f"Argument `{op}` on field `{name}` must be a list")
            values = [coerce_value(name, column, v) for v in operand]
            clauses.append(column.in_(values) if op == "in" else column.not_in(values))
        elif op in COMPARISON_OPERATORS:
            value = coerce_value(name, column, operand)
            clauses.append({
                "lt": column < value,
                "lte": column <= value,
                "gt": column > value,
                "gte": column >= value,
            }[op])
        else:
            if not isinstance(operand, str):
                raise QueryValidationError(f"Argument `{op}` on field `{name}` must be a string")
            if op == "contains":
                method = column.icontains if insensitive else column.contains
            elif op == "startsWith":
                method = column.istartswith if insensitive else column.startswith
            else:
                method = column.iendswith if insensitive else column.endswith
            clauses.append(method(operand, autoescape=True))

    return and_(true(), *clauses)


def build_where(meta: ModelMeta, entity_meta: EntityMeta, where: Optional[Dict[str, Any]]) -> List[ColumnElement]:
    """Build the list of WHERE clauses for ``where``"""
    if where is None:
        return []
    if not isinstance(where, dict):
        raise QueryValidationError("Argument `where` must be an object")

    model = entity_meta.model
    clauses = []
    for key, condition in where.items():
        if key in ("AND", "OR"):
            parts = condition if isinstance(condition, list) else [condition]
            nested = [and_(true(), *build_where(meta, entity_meta, part)) for part in parts]
            if key == "AND":
                clauses.append(and_(true(), *nested))
            else:
                clauses.append(or_(*nested) if nested else true())
        elif key == "NOT":
            parts = condition if isinstance(condition, list) else [condition]
            for part in parts:
                clauses.append(not_(and_(true(), *build_where(meta, entity_meta, part))))
        elif key in entity_meta.columns and key not in entity_meta.hidden:
            clauses.append(_field_filter(key, getattr(model, key), condition))
        elif key in entity_meta.relations:
            clauses.append(_relation_filter(meta, entity_meta, key, condition))
        else:
            raise QueryValidationError(f"Unknown argument `{key}` in where of {entity_meta.entity.value}")
    return clauses


def _relation_filter(meta: ModelMeta, entity_meta: EntityMeta, name: str, condition: Any) -> ColumnElement:
    relation = entity_meta.relations[name]
    target_meta = meta[relation.target]
    attr = getattr(entity_meta.model, name)

    if not isinstance(condition, dict):
        raise QueryValidationError(f"Filter on relation `{name}` must be an object")

    def nested(part):
        return and_(true(), *build_where(meta, target_meta, part))

    if relation.many:
        unknown = set(condition) - {"some", "every", "none"}
        if unknown:
            raise QueryValidationError(f"Unknown filter `{sorted(unknown)[0]}` on relation `{name}`")
        clauses = []
        if "some" in condition:
            clauses.append(attr.any(nested(condition["some"])))
        if "none" in condition:
            clauses.append(~attr.any(nested(condition["none"])))
        if "every" in condition:
            clauses.append(~attr.any(not_(nested(condition["every"]))))
        return and_(true(), *clauses)

    if "is" in condition or "isNot" in condition:
        clauses = []
        if "is" in condition:
            clauses.append(attr.has(nested(condition["is"])))
        if "isNot" in condition:
            clauses.append(~attr.has(nested(condition["isNot"])))
        return and_(true(), *clauses)
    return attr.has(nested(condition))


def build_order_by(entity_meta: EntityMeta, order_by: Any) -> list:
    if order_by is None:
        return []
    items = order_by if isinstance(order_by, list) else [order_by]
    ordering = []
    for item in items:
        if not isinstance(item, dict):
            raise QueryValidationError("Argument `orderBy` must be an object or a list of objects")
        for name, direction in item.items():
            if name not in entity_meta.columns or name in entity_meta.hidden:
                raise QueryValidationError(f"Unknown field `{name}` in orderBy")
            if direction not in ("asc", "desc"):
                raise QueryValidationError(f"Invalid sort direction `{direction}` for `{name}`")
            column = getattr(entity_meta.model, name)
            ordering.append(column.asc() if direction == "asc" else column.desc())
    return ordering


def pagination(args: Dict[str, Any]):
    """Validated (skip, take) from the arguments"""
    skip = args.get("skip")
    take = args.get("take")
    for name, value in (("skip", skip), ("take", take)):
        if value is not None and (isinstance(value, bool) or not isinstance(value, int) or value < 0):
            raise QueryValidationError(f"Argument `{name}` must be a non-negative integer")
    return skip, take
