"""Background job tasks"""

from typing import Dict, List

import structlog
from twilio.rest import Client as TwilioClient

from app.jobs.celery_app import celery_app
from app.config import settings

logger = structlog.get_logger()

ACTION_VERBS = {
    "create": "created",
    "update": "updated",
    "delete": "deleted",
}


def notification_text(entity: str, record_id: str, action: str) -> str:
    verb = ACTION_VERBS.get(action, action)
    return f"{settings.application_name}: {entity} {record_id} was {verb}."


@celery_app.task(name="send_entity_notification")
def send_entity_notification(entity: str, record_id: str, action: str, recipients: List[Dict[str, str]]):
    """Tell the owners of a restaurant that one of its records changed"""
    logger.info(
        "Entity notification",
        entity=entity,
        record_id=record_id,
        action=action,
        recipients=[r["user_id"] for r in recipients],
    )

    if not settings.twilio_enabled:
        return 0

    client = TwilioClient(settings.twilio_account_sid, settings.twilio_auth_token)
    body = notification_text(entity, record_id, action)
    sent = 0
    for recipient in recipients:
        if not recipient.get("phone"):
            continue
        try:
            client.messages.create(
                body=body,
                from_=settings.twilio_phone_number,
                to=recipient["phone"],
            )
            sent += 1
        except Exception as e:
            logger.error(
                "Failed to send entity notification",
                user_id=recipient["user_id"],
                error=str(e),
            )
    logger.info("Entity notification sent", entity=entity, record_id=record_id, sent=sent)
    return sent
