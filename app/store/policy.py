"""Row-level access policy derived from the caller's tenant and roles"""

from typing import Iterable, Optional, Sequence

from sqlalchemy import false, or_, true
from sqlalchemy.sql.elements import ColumnElement

from app.config import Settings, settings
from app.models import Restaurant, User
from app.store.meta import Entity, EntityMeta, OperationKind

# Entities a customer may read regardless of tenant
PUBLIC_ENTITIES = (Entity.RESTAURANT, Entity.MENU, Entity.REVIEW)

# Account fields only tenant roles may change, and never on their own record
PROTECTED_USER_FIELDS = frozenset({"roles", "tenant_id", "is_active"})


class AccessPolicy:
    """
    Access rules for one authenticated caller.

    Tenant roles manage everything whose restaurant belongs to their tenant.
    Customer roles read restaurants, menus and reviews everywhere plus their
    own orders. Everyone may read and update their own user record.
    """

    def __init__(
        self,
        user_id: str,
        tenant_id: Optional[str],
        roles: Iterable[str],
        config: Settings = settings,
    ):
        self.user_id = user_id
        self.tenant_id = tenant_id
        self.roles = list(roles)
        self.config = config

    def __repr__(self):
        return f"AccessPolicy(user_id={self.user_id!r}, tenant_id={self.tenant_id!r}, roles={self.roles!r})"

    def _has_any(self, roles: Sequence[str]) -> bool:
        return any(role in self.roles for role in roles)

    @property
    def is_tenant_member(self) -> bool:
        return self.tenant_id is not None and self._has_any(self.config.tenant_roles)

    @property
    def is_customer(self) -> bool:
        return self._has_any(self.config.customer_roles)

    def _tenant_scope(self, entity_meta: EntityMeta) -> ColumnElement:
        model = entity_meta.model
        if entity_meta.entity in (Entity.RESTAURANT, Entity.USER):
            return model.tenant_id == self.tenant_id
        return model.restaurant.has(Restaurant.tenant_id == self.tenant_id)

    def filter_for(self, entity_meta: EntityMeta, kind: OperationKind) -> ColumnElement:
        """Rows of ``entity_meta`` this caller may apply ``kind`` to"""
        entity = entity_meta.entity
        grants = []

        if self.is_tenant_member:
            grants.append(self._tenant_scope(entity_meta))

        if kind is OperationKind.READ and self.is_customer:
            if entity in PUBLIC_ENTITIES:
                grants.append(true())
            elif entity is Entity.ORDER:
                grants.append(entity_meta.model.user_id == self.user_id)

        if entity is Entity.USER and kind in (OperationKind.READ, OperationKind.UPDATE):
            grants.append(User.id == self.user_id)

        if not grants:
            return false()
        return or_(*grants)

    def allows_fields(self, entity_meta: EntityMeta, fields: Iterable[str], record_ids: Iterable[str]) -> bool:
        """Whether this caller may set ``fields`` on the given rows"""
        if entity_meta.entity is not Entity.USER or not PROTECTED_USER_FIELDS & set(fields):
            return True
        # nobody changes their own roles, tenant or active flag
        return self.is_tenant_member and self.user_id not in set(record_ids)
