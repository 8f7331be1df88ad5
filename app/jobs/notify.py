"""Change notifications for writes made through the resource routes"""

from typing import Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from app.models import AuditLog, Restaurant, User
from app.store import AccessPolicy, Entity
from app.store.meta import ENTITY_MODELS
from app.jobs.tasks import send_entity_notification

logger = structlog.get_logger()


async def _owners(db: AsyncSession, entity: Entity, record_id: str) -> List[User]:
    """Users who own the restaurant the record belongs to"""
    if entity is Entity.USER:
        stmt = select(User).where(User.id == record_id)
    elif entity is Entity.RESTAURANT:
        stmt = select(User).join(Restaurant, Restaurant.user_id == User.id).where(Restaurant.id == record_id)
    else:
        model = ENTITY_MODELS[entity]
        stmt = (
            select(User)
            .join(Restaurant, Restaurant.user_id == User.id)
            .join(model, model.restaurant_id == Restaurant.id)
            .where(model.id == record_id)
        )
    return list((await db.execute(stmt)).scalars().all())


async def notify_change(
    db: AsyncSession,
    actor: AccessPolicy,
    entity: Entity,
    record_id: str,
    action: str,
    data: Optional[Dict] = None,
):
    """Record the change in the audit log and queue the owner notification"""
    owners = await _owners(db, entity, record_id)

    db.add(AuditLog(
        tenant_id=actor.tenant_id,
        actor_id=actor.user_id,
        action=action,
        resource_type=entity.value,
        resource_id=record_id,
        data_json=data,
    ))
    await db.commit()

    recipients = [{"user_id": owner.id, "phone": owner.phone} for owner in owners]
    send_entity_notification.delay(entity.value, record_id, action, recipients)
    logger.info("Change notification queued", entity=entity.value, record_id=record_id, action=action)
