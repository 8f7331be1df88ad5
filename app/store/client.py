"""Store client: ORM-style model operations over an async SQLAlchemy session"""

from contextlib import asynccontextmanager
from typing import Any, Dict, Iterable, List, Optional, Tuple

from sqlalchemy import Integer, delete as sa_delete, func, select, update as sa_update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from sqlalchemy.sql.elements import ColumnElement
import structlog

from app.store.errors import (
    ErrorCode,
    FailureReason,
    KnownRequestError,
    QueryValidationError,
    StoreError,
    UnknownRequestError,
    access_denied,
    record_not_found,
)
from app.store.filters import build_order_by, build_where, coerce_value, pagination
from app.store.meta import Entity, EntityMeta, ModelMeta, Operation, OperationKind, RelationMeta
from app.store.policy import AccessPolicy

logger = structlog.get_logger()

FIND_ARGS = {"where", "select", "include", "orderBy", "skip", "take"}
FIND_UNIQUE_ARGS = {"where", "select", "include"}
COUNT_ARGS = {"where", "select", "orderBy", "skip", "take"}
AGGREGATES = ("_count", "_sum", "_avg", "_min", "_max")
AGGREGATE_ARGS = {"where", "orderBy", "skip", "take", *AGGREGATES}
GROUP_BY_ARGS = {"by", "where", "orderBy", "skip", "take", *AGGREGATES}
CREATE_ARGS = {"data", "select", "include"}
CREATE_MANY_ARGS = {"data", "skipDuplicates"}
UPSERT_ARGS = {"where", "create", "update", "select", "include"}
UPDATE_ARGS = {"where", "data", "select", "include"}
UPDATE_MANY_ARGS = {"where", "data"}
DELETE_ARGS = {"where", "select", "include"}
DELETE_MANY_ARGS = {"where"}

AGGREGATE_FUNCTIONS = {
    "_sum": func.sum,
    "_avg": func.avg,
    "_min": func.min,
    "_max": func.max,
}


def _check_args(args: Optional[Dict[str, Any]], allowed: Iterable[str]) -> Dict[str, Any]:
    if args is None:
        return {}
    if not isinstance(args, dict):
        raise QueryValidationError("Arguments must be an object")
    unknown = set(args) - set(allowed)
    if unknown:
        raise QueryValidationError(f"Unknown argument `{sorted(unknown)[0]}`")
    return args


def _unique_failed(field_name: str) -> KnownRequestError:
    return KnownRequestError(
        ErrorCode.UNIQUE_CONSTRAINT_FAILED,
        f"Unique constraint failed on the fields: (`{field_name}`)",
        {"target": [field_name]},
    )


def _integrity_error(error: IntegrityError) -> StoreError:
    text = str(error.orig).lower()
    if "unique" in text or "duplicate" in text:
        return KnownRequestError(
            ErrorCode.UNIQUE_CONSTRAINT_FAILED, "Unique constraint failed", {"cause": str(error.orig)}
        )
    if "foreign key" in text:
        return KnownRequestError(
            ErrorCode.FOREIGN_KEY_CONSTRAINT_FAILED, "Foreign key constraint failed", {"cause": str(error.orig)}
        )
    if "not null" in text or "null value" in text:
        return KnownRequestError(
            ErrorCode.NULL_CONSTRAINT_FAILED, "Null constraint violation", {"cause": str(error.orig)}
        )
    return UnknownRequestError(str(error.orig))


class ModelDelegate:
    """Operations on one entity, scoped by the client's access policy"""

    def __init__(self, client: "StoreClient", entity_meta: EntityMeta):
        self.client = client
        self.entity_meta = entity_meta
        self.model = entity_meta.model

    @property
    def session(self) -> AsyncSession:
        return self.client.session

    @property
    def name(self) -> str:
        return self.entity_meta.entity.value

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @asynccontextmanager
    async def _guard(self):
        """Roll back on failure and translate database errors"""
        try:
            yield
        except IntegrityError as e:
            await self.session.rollback()
            raise _integrity_error(e) from e
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error("Store query failed", entity=self.name, error=str(e))
            raise UnknownRequestError(str(e)) from e
        except Exception:
            await self.session.rollback()
            raise

    def _scope(self, entity_meta: EntityMeta, kind: OperationKind) -> List[ColumnElement]:
        policy = self.client.policy
        if policy is None:
            return []
        return [policy.filter_for(entity_meta, kind)]

    def _where(self, where: Optional[Dict[str, Any]]) -> List[ColumnElement]:
        return build_where(self.client.meta, self.entity_meta, where)

    def _require_unique(self, where: Any):
        if not isinstance(where, dict) or not any(
            key in where and not isinstance(where[key], dict) for key in self.entity_meta.unique_fields
        ):
            fields = ", ".join(self.entity_meta.unique_fields)
            raise QueryValidationError(
                f"Argument `where` of {self.name} needs at least one of: {fields}"
            )

    def _shape(self, entity_meta: EntityMeta, select_spec: Any, include_spec: Any):
        """Resolve select/include into (fields, relations, counted relations)"""
        if select_spec is not None and include_spec is not None:
            raise QueryValidationError("Please either use `include` or `select`, but not both at the same time.")
        spec = select_spec if select_spec is not None else include_spec
        if spec is not None and not isinstance(spec, dict):
            raise QueryValidationError("Arguments `select` and `include` must be objects")

        fields = [] if select_spec is not None else list(entity_meta.visible_fields)
        relations: Dict[str, Tuple[Any, Any]] = {}
        counts: List[str] = []
        for key, value in (spec or {}).items():
            if not value:
                continue
            if key == "_count":
                counts = self._counted_relations(entity_meta, value)
            elif key in entity_meta.relations:
                nested = value if isinstance(value, dict) else {}
                unknown = set(nested) - {"select", "include"}
                if unknown:
                    raise QueryValidationError(f"Unknown argument `{sorted(unknown)[0]}` on relation `{key}`")
                relations[key] = (nested.get("select"), nested.get("include"))
            elif select_spec is not None and key in entity_meta.visible_fields:
                fields.append(key)
            else:
                raise QueryValidationError(f"Unknown field `{key}` on model {entity_meta.entity.value}")
        return fields, relations, counts

    def _counted_relations(self, entity_meta: EntityMeta, value: Any) -> List[str]:
        many = [name for name, rel in entity_meta.relations.items() if rel.many]
        if value is True:
            return many
        if not isinstance(value, dict) or not isinstance(value.get("select"), dict):
            raise QueryValidationError("Argument `_count` must be true or {select: {...}}")
        names = [name for name, wanted in value["select"].items() if wanted]
        for name in names:
            if name not in many:
                raise QueryValidationError(f"Cannot count `{name}` on model {entity_meta.entity.value}")
        return names

    def _load_options(self, entity_meta: EntityMeta, select_spec: Any, include_spec: Any) -> list:
        _, relations, counts = self._shape(entity_meta, select_spec, include_spec)
        options = []
        for name in set(relations) | set(counts):
            relation: RelationMeta = entity_meta.relations[name]
            target_meta = self.client.meta[relation.target]
            attr = getattr(entity_meta.model, name)
            scope = self._scope(target_meta, OperationKind.READ)
            loader = selectinload(attr.and_(*scope) if scope else attr)
            if name in relations:
                nested_select, nested_include = relations[name]
                children = self._load_options(target_meta, nested_select, nested_include)
                if children:
                    loader = loader.options(*children)
            options.append(loader)
        return options

    def _project(self, entity_meta: EntityMeta, obj: Any, select_spec: Any, include_spec: Any) -> Dict[str, Any]:
        fields, relations, counts = self._shape(entity_meta, select_spec, include_spec)
        record = {name: getattr(obj, name) for name in fields}
        for name, (nested_select, nested_include) in relations.items():
            relation = entity_meta.relations[name]
            target_meta = self.client.meta[relation.target]
            value = getattr(obj, name)
            if relation.many:
                record[name] = [
                    self._project(target_meta, item, nested_select, nested_include) for item in value
                ]
            else:
                record[name] = (
                    None if value is None
                    else self._project(target_meta, value, nested_select, nested_include)
                )
        if counts:
            record["_count"] = {name: len(getattr(obj, name)) for name in counts}
        return record

    def _select(self, args: Dict[str, Any], kind: OperationKind = OperationKind.READ):
        skip, take = pagination(args)
        stmt = (
            select(self.model)
            .where(*self._where(args.get("where")), *self._scope(self.entity_meta, kind))
            .order_by(*build_order_by(self.entity_meta, args.get("orderBy")))
            .options(*self._load_options(self.entity_meta, args.get("select"), args.get("include")))
            .execution_options(populate_existing=True)
        )
        if skip:
            stmt = stmt.offset(skip)
        if take is not None:
            stmt = stmt.limit(take)
        return stmt

    async def _fetch(self, record_id: str, args: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        stmt = self._select({
            "where": {"id": record_id},
            "select": args.get("select"),
            "include": args.get("include"),
        })
        obj = (await self.session.execute(stmt)).scalars().first()
        if obj is None:
            return None
        return self._project(self.entity_meta, obj, args.get("select"), args.get("include"))

    async def _read_back(self, record_id: str, args: Dict[str, Any]) -> Dict[str, Any]:
        async with self._guard():
            record = await self._fetch(record_id, args)
        if record is None:
            raise KnownRequestError(
                ErrorCode.CONSTRAINT_FAILED,
                "result is not allowed to be read back",
                {"reason": FailureReason.RESULT_NOT_READABLE},
            )
        return record

    async def _locate(self, where: Dict[str, Any], operation: str) -> str:
        """Id of the row ``where`` identifies, ignoring the policy"""
        stmt = select(self.model.id).where(*self._where(where)).limit(1)
        record_id = (await self.session.execute(stmt)).scalar_one_or_none()
        if record_id is None:
            raise record_not_found(self.name, operation)
        return record_id

    async def _ids_in_scope(self, where: Optional[Dict[str, Any]], kind: OperationKind) -> List[str]:
        stmt = select(self.model.id).where(*self._where(where), *self._scope(self.entity_meta, kind))
        return list((await self.session.execute(stmt)).scalars().all())

    async def _ensure_allowed(self, record_ids: List[str], kind: OperationKind):
        if self.client.policy is None or not record_ids:
            return
        wanted = set(record_ids)
        stmt = (
            select(func.count())
            .select_from(self.model)
            .where(self.model.id.in_(list(wanted)), *self._scope(self.entity_meta, kind))
        )
        allowed = (await self.session.execute(stmt)).scalar_one()
        if allowed < len(wanted):
            raise access_denied(self.name, kind.value)

    def _ensure_fields_allowed(self, values: Dict[str, Any], record_ids: List[str]):
        policy = self.client.policy
        if policy is None or not record_ids:
            return
        if not policy.allows_fields(self.entity_meta, values, record_ids):
            raise access_denied(self.name, OperationKind.UPDATE.value)

    async def _connect(self, relation: RelationMeta, value: Any) -> str:
        if not isinstance(value, dict) or set(value) != {"connect"}:
            raise QueryValidationError(f"Relation `{relation.name}` only supports `connect`")
        target = self.client.delegate(relation.target)
        target._require_unique(value["connect"])
        stmt = select(target.model.id).where(*target._where(value["connect"])).limit(1)
        target_id = (await self.session.execute(stmt)).scalar_one_or_none()
        if target_id is None:
            raise KnownRequestError(
                ErrorCode.REQUIRED_CONNECTED_RECORD_NOT_FOUND,
                f"No '{relation.target.value}' record was found for a nested connect on relation '{relation.name}'.",
                {"relation": relation.name},
            )
        return target_id

    async def _prepare_data(self, data: Any, argument: str = "data") -> Dict[str, Any]:
        if not isinstance(data, dict):
            raise QueryValidationError(f"Argument `{argument}` must be an object")
        values = {}
        for key, value in data.items():
            if key in self.entity_meta.string_lists:
                if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
                    raise QueryValidationError(f"Invalid value for argument `{key}`: expected a list of strings")
                values[key] = value
            elif key in self.entity_meta.visible_fields:
                values[key] = coerce_value(key, getattr(self.model, key), value)
            elif key in self.entity_meta.relations and not self.entity_meta.relations[key].many:
                relation = self.entity_meta.relations[key]
                values[relation.foreign_key] = await self._connect(relation, value)
            else:
                raise QueryValidationError(f"Unknown argument `{key}` in {argument} of {self.name}")
        return values

    async def _check_unique(self, rows: List[Dict[str, Any]], exclude_id: Optional[str] = None):
        for name in self.entity_meta.unique_fields:
            seen = set()
            for values in rows:
                value = values.get(name)
                if value is None:
                    continue
                if value in seen:
                    raise _unique_failed(name)
                seen.add(value)
            if not seen:
                continue
            stmt = select(self.model.id).where(getattr(self.model, name).in_(list(seen)))
            if exclude_id is not None:
                stmt = stmt.where(self.model.id != exclude_id)
            if (await self.session.execute(stmt.limit(1))).scalar_one_or_none() is not None:
                raise _unique_failed(name)

    async def _check_foreign_keys(self, values: Dict[str, Any]):
        for field_name, target in self.entity_meta.foreign_keys.items():
            value = values.get(field_name)
            if value is None:
                continue
            target_model = self.client.meta[target].model
            stmt = select(target_model.id).where(target_model.id == value).limit(1)
            if (await self.session.execute(stmt)).scalar_one_or_none() is None:
                raise KnownRequestError(
                    ErrorCode.FOREIGN_KEY_CONSTRAINT_FAILED,
                    f"Foreign key constraint failed on the field: `{field_name}`",
                    {"field_name": field_name},
                )

    async def _check_dependents(self, record_ids: List[str]):
        for relation in self.entity_meta.relations.values():
            if not relation.many:
                continue
            target_model = self.client.meta[relation.target].model
            foreign_key = getattr(target_model, relation.foreign_key)
            stmt = select(target_model.id).where(foreign_key.in_(record_ids)).limit(1)
            if (await self.session.execute(stmt)).scalar_one_or_none() is not None:
                raise KnownRequestError(
                    ErrorCode.FOREIGN_KEY_CONSTRAINT_FAILED,
                    f"Foreign key constraint failed on the field: `{relation.foreign_key}`",
                    {"field_name": relation.foreign_key, "relation": relation.name},
                )

    def _missing_required(self, values: Dict[str, Any]):
        for name in self.entity_meta.required_fields():
            if values.get(name) is None:
                raise QueryValidationError(f"Argument `{name}` is missing.")

    def _aggregate_columns(self, args: Dict[str, Any], source) -> list:
        """(aggregate, field, labelled expression) for every requested aggregate"""
        columns = []
        for aggregate in AGGREGATES:
            spec = args.get(aggregate)
            if not spec:
                continue
            if aggregate == "_count" and spec is True:
                columns.append((aggregate, None, func.count().label("_count___all")))
                continue
            if not isinstance(spec, dict):
                raise QueryValidationError(f"Argument `{aggregate}` must be an object")
            for name, wanted in spec.items():
                if not wanted:
                    continue
                label = f"{aggregate}__{name}"
                if aggregate == "_count":
                    expr = func.count() if name == "_all" else func.count(self._aggregate_source(source, name))
                else:
                    column = self._aggregate_source(source, name)
                    if aggregate in ("_sum", "_avg") and not isinstance(
                        self.entity_meta.columns[name].type, Integer
                    ):
                        raise QueryValidationError(f"Cannot compute {aggregate} of non-numeric field `{name}`")
                    expr = AGGREGATE_FUNCTIONS[aggregate](column)
                columns.append((aggregate, name, expr.label(label)))
        return columns

    def _aggregate_source(self, source, name: str):
        if name not in self.entity_meta.visible_fields:
            raise QueryValidationError(f"Unknown field `{name}` in aggregation")
        return source(name)

    @staticmethod
    def _fold_aggregates(row, columns) -> Dict[str, Any]:
        result: Dict[str, Any] = {}
        for aggregate, name, expr in columns:
            value = row[expr.name]
            if name is None:
                result[aggregate] = value
            else:
                result.setdefault(aggregate, {})[name] = value
        return result

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def find_many(self, args: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        args = _check_args(args, FIND_ARGS)
        async with self._guard():
            rows = (await self.session.execute(self._select(args))).scalars().all()
        return [self._project(self.entity_meta, row, args.get("select"), args.get("include")) for row in rows]

    async def find_first(self, args: Optional[Dict[str, Any]] = None) -> Optional[Dict[str, Any]]:
        args = dict(_check_args(args, FIND_ARGS))
        args["take"] = 1
        records = await self.find_many(args)
        return records[0] if records else None

    async def find_unique(self, args: Optional[Dict[str, Any]] = None) -> Optional[Dict[str, Any]]:
        args = _check_args(args, FIND_UNIQUE_ARGS)
        self._require_unique(args.get("where"))
        return await self.find_first(args)

    async def count(self, args: Optional[Dict[str, Any]] = None):
        args = _check_args(args, COUNT_ARGS)
        skip, take = pagination(args)
        inner = (
            select(self.model)
            .where(*self._where(args.get("where")), *self._scope(self.entity_meta, OperationKind.READ))
            .order_by(*build_order_by(self.entity_meta, args.get("orderBy")))
        )
        if skip:
            inner = inner.offset(skip)
        if take is not None:
            inner = inner.limit(take)
        subquery = inner.subquery()

        select_spec = args.get("select")
        if select_spec is None:
            async with self._guard():
                return (await self.session.execute(select(func.count()).select_from(subquery))).scalar_one()

        columns = self._aggregate_columns({"_count": select_spec}, lambda name: subquery.c[name])
        if not columns:
            raise QueryValidationError("Argument `select` of count selects nothing")
        async with self._guard():
            row = (await self.session.execute(select(*[c[2] for c in columns]).select_from(subquery))).mappings().one()
        return self._fold_aggregates(row, columns)["_count"]

    async def aggregate(self, args: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        args = _check_args(args, AGGREGATE_ARGS)
        skip, take = pagination(args)
        inner = (
            select(self.model)
            .where(*self._where(args.get("where")), *self._scope(self.entity_meta, OperationKind.READ))
            .order_by(*build_order_by(self.entity_meta, args.get("orderBy")))
        )
        if skip:
            inner = inner.offset(skip)
        if take is not None:
            inner = inner.limit(take)
        subquery = inner.subquery()

        columns = self._aggregate_columns(args, lambda name: subquery.c[name])
        if not columns:
            return {}
        async with self._guard():
            row = (await self.session.execute(select(*[c[2] for c in columns]).select_from(subquery))).mappings().one()
        return self._fold_aggregates(row, columns)

    async def group_by(self, args: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        args = _check_args(args, GROUP_BY_ARGS)
        by = args.get("by")
        if isinstance(by, str):
            by = [by]
        if not by or not isinstance(by, list):
            raise QueryValidationError("Argument `by` is missing.")
        for name in by:
            if name not in self.entity_meta.visible_fields:
                raise QueryValidationError(f"Unknown field `{name}` in by")

        order_by = args.get("orderBy")
        for item in (order_by if isinstance(order_by, list) else [order_by] if order_by else []):
            for name in (item if isinstance(item, dict) else {}):
                if name not in by:
                    raise QueryValidationError(f"Every field used for orderBy must be included in the by-arguments: `{name}`")

        skip, take = pagination(args)
        by_columns = [getattr(self.model, name) for name in by]
        columns = self._aggregate_columns(args, lambda name: getattr(self.model, name))
        stmt = (
            select(*by_columns, *[c[2] for c in columns])
            .where(*self._where(args.get("where")), *self._scope(self.entity_meta, OperationKind.READ))
            .group_by(*by_columns)
            .order_by(*build_order_by(self.entity_meta, order_by))
        )
        if skip:
            stmt = stmt.offset(skip)
        if take is not None:
            stmt = stmt.limit(take)

        async with self._guard():
            rows = (await self.session.execute(stmt)).mappings().all()
        groups = []
        for row in rows:
            group = {name: row[name] for name in by}
            group.update(self._fold_aggregates(row, columns))
            groups.append(group)
        return groups

    async def has_access(self, record_id: str, kind: OperationKind) -> bool:
        """True when the row exists and the policy grants ``kind`` on it"""
        stmt = (
            select(self.model.id)
            .where(self.model.id == record_id, *self._scope(self.entity_meta, kind))
            .limit(1)
        )
        async with self._guard():
            return (await self.session.execute(stmt)).scalar_one_or_none() is not None

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def create(self, args: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        args = _check_args(args, CREATE_ARGS)
        # reject a bad result shape before anything is written
        self._load_options(self.entity_meta, args.get("select"), args.get("include"))
        async with self._guard():
            values = await self._prepare_data(args.get("data"))
            self._missing_required(values)
            await self._check_foreign_keys(values)
            await self._check_unique([values])

            obj = self.model(**values)
            self.session.add(obj)
            await self.session.flush()
            await self._ensure_allowed([obj.id], OperationKind.CREATE)
            await self.session.commit()
        logger.info("Record created", entity=self.name, record_id=obj.id)
        return await self._read_back(obj.id, args)

    async def create_many(self, args: Optional[Dict[str, Any]] = None) -> Dict[str, int]:
        args = _check_args(args, CREATE_MANY_ARGS)
        data = args.get("data")
        if not isinstance(data, list):
            raise QueryValidationError("Argument `data` must be a list")

        async with self._guard():
            rows = []
            for item in data:
                values = await self._prepare_data(item)
                self._missing_required(values)
                await self._check_foreign_keys(values)
                rows.append(values)

            if args.get("skipDuplicates"):
                given = [values["id"] for values in rows if values.get("id")]
                existing = set()
                if given:
                    stmt = select(self.model.id).where(self.model.id.in_(given))
                    existing = set((await self.session.execute(stmt)).scalars().all())
                kept = []
                for values in rows:
                    if values.get("id") in existing:
                        continue
                    if values.get("id"):
                        existing.add(values["id"])
                    kept.append(values)
                rows = kept
            await self._check_unique(rows)

            objs = [self.model(**values) for values in rows]
            self.session.add_all(objs)
            await self.session.flush()
            await self._ensure_allowed([obj.id for obj in objs], OperationKind.CREATE)
            await self.session.commit()
        logger.info("Records created", entity=self.name, count=len(objs))
        return {"count": len(objs)}

    async def upsert(self, args: Optional[Dict[str, Any]] = None) -> Tuple[Dict[str, Any], bool]:
        """Create or update; returns the record and whether it was created"""
        args = _check_args(args, UPSERT_ARGS)
        self._load_options(self.entity_meta, args.get("select"), args.get("include"))
        where = args.get("where")
        self._require_unique(where)
        shape = {"select": args.get("select"), "include": args.get("include")}

        async with self._guard():
            stmt = select(self.model.id).where(*self._where(where)).limit(1)
            existing = (await self.session.execute(stmt)).scalar_one_or_none()

        if existing is None:
            if not isinstance(args.get("create"), dict):
                raise QueryValidationError("Argument `create` must be an object")
            return await self.create({"data": args["create"], **shape}), True

        if not isinstance(args.get("update"), dict):
            raise QueryValidationError("Argument `update` must be an object")
        return await self.update({"where": {"id": existing}, "data": args["update"], **shape}), False

    async def upsert_record(self, args: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        record, _ = await self.upsert(args)
        return record

    async def update(self, args: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        args = _check_args(args, UPDATE_ARGS)
        self._load_options(self.entity_meta, args.get("select"), args.get("include"))
        where = args.get("where")
        self._require_unique(where)

        async with self._guard():
            values = await self._prepare_data(args.get("data"))
            await self._check_foreign_keys(values)

            record_id = await self._locate(where, "update")
            await self._check_unique([values], exclude_id=record_id)
            await self._ensure_allowed([record_id], OperationKind.UPDATE)
            self._ensure_fields_allowed(values, [record_id])
            if values:
                await self.session.execute(
                    sa_update(self.model)
                    .where(self.model.id == record_id)
                    .values(**values)
                    .execution_options(synchronize_session=False)
                )
                await self._ensure_allowed([record_id], OperationKind.UPDATE)
            await self.session.commit()
        logger.info("Record updated", entity=self.name, record_id=record_id)
        return await self._read_back(record_id, args)

    async def update_many(self, args: Optional[Dict[str, Any]] = None) -> Dict[str, int]:
        args = _check_args(args, UPDATE_MANY_ARGS)

        async with self._guard():
            values = await self._prepare_data(args.get("data"))
            await self._check_foreign_keys(values)

            record_ids = await self._ids_in_scope(args.get("where"), OperationKind.UPDATE)
            self._ensure_fields_allowed(values, record_ids)
            if record_ids and values:
                await self.session.execute(
                    sa_update(self.model)
                    .where(self.model.id.in_(record_ids))
                    .values(**values)
                    .execution_options(synchronize_session=False)
                )
                await self._ensure_allowed(record_ids, OperationKind.UPDATE)
            await self.session.commit()
        logger.info("Records updated", entity=self.name, count=len(record_ids))
        return {"count": len(record_ids)}

    async def delete(self, args: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        args = _check_args(args, DELETE_ARGS)
        where = args.get("where")
        self._require_unique(where)

        async with self._guard():
            record_id = await self._locate(where, "delete")
            await self._ensure_allowed([record_id], OperationKind.DELETE)
            record = await self._fetch(record_id, args)
            await self._check_dependents([record_id])
            await self.session.execute(
                sa_delete(self.model)
                .where(self.model.id == record_id)
                .execution_options(synchronize_session=False)
            )
            await self.session.commit()
        logger.info("Record deleted", entity=self.name, record_id=record_id)

        if record is None:
            raise KnownRequestError(
                ErrorCode.CONSTRAINT_FAILED,
                "result is not allowed to be read back",
                {"reason": FailureReason.RESULT_NOT_READABLE},
            )
        return record

    async def delete_many(self, args: Optional[Dict[str, Any]] = None) -> Dict[str, int]:
        args = _check_args(args, DELETE_MANY_ARGS)

        async with self._guard():
            record_ids = await self._ids_in_scope(args.get("where"), OperationKind.DELETE)
            if record_ids:
                await self._check_dependents(record_ids)
                await self.session.execute(
                    sa_delete(self.model)
                    .where(self.model.id.in_(record_ids))
                    .execution_options(synchronize_session=False)
                )
            await self.session.commit()
        logger.info("Records deleted", entity=self.name, count=len(record_ids))
        return {"count": len(record_ids)}


class StoreClient:
    """Entry point to the store, optionally bound to a caller's access policy"""

    def __init__(self, session: AsyncSession, meta: ModelMeta, policy: Optional[AccessPolicy] = None):
        self.session = session
        self.meta = meta
        self.policy = policy
        self._delegates: Dict[Entity, ModelDelegate] = {}

    def delegate(self, entity: Entity) -> ModelDelegate:
        if entity not in self._delegates:
            self._delegates[entity] = ModelDelegate(self, self.meta[entity])
        return self._delegates[entity]

    async def execute(self, entity: Entity, operation: Operation, args: Optional[Dict[str, Any]] = None):
        """Run ``operation`` on ``entity`` through the explicit operation table"""
        delegate = self.delegate(entity)
        handlers = {
            Operation.CREATE: delegate.create,
            Operation.CREATE_MANY: delegate.create_many,
            Operation.UPSERT: delegate.upsert_record,
            Operation.FIND_FIRST: delegate.find_first,
            Operation.FIND_UNIQUE: delegate.find_unique,
            Operation.FIND_MANY: delegate.find_many,
            Operation.AGGREGATE: delegate.aggregate,
            Operation.GROUP_BY: delegate.group_by,
            Operation.COUNT: delegate.count,
            Operation.UPDATE: delegate.update,
            Operation.UPDATE_MANY: delegate.update_many,
            Operation.DELETE: delegate.delete,
            Operation.DELETE_MANY: delegate.delete_many,
        }
        return await handlers[operation](args)
