import logging
from typing import Any, Optional
from uuid import UUID

import httpx
from sqlalchemy.ext.asyncio import AsyncSession

from talento_local.db.models import OutboxEvent
from talento_local.domain.states import NotificationEvent

logger = logging.getLogger(__name__)

def enqueue_notification(
    session: AsyncSession,
    recipient_id: UUID,
    event: NotificationEvent,
    payload: dict[str, Any],
) -> OutboxEvent:
    """
    Records a notification in the outbox as part of the caller's transaction.
    Nothing is delivered until the transaction commits and the OutboxProcessor picks it up.
    """
    outbox_event = OutboxEvent(
        recipient_id=recipient_id,
        event_type=event,
        payload=payload,
    )
    session.add(outbox_event)
    return outbox_event

class NotificationService:
    """
    Best-effort delivery of user notifications.

    Push delivery itself lives outside this service; when a webhook URL is
    configured the notification is forwarded there as JSON, otherwise it is
    only logged.
    """

    def __init__(self, webhook_url: Optional[str] = None, timeout: float = 5.0):
        self.webhook_url = webhook_url
        self.timeout = timeout

    async def notify(self, user_id: UUID, event: str, payload: dict[str, Any]) -> None:
        logger.info(f"NOTIFY user={user_id} event={event} payload={payload}")
        if not self.webhook_url:
            return

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            resp = await client.post(self.webhook_url, json={
                "user_id": str(user_id),
                "event": event,
                "payload": payload,
            })
            resp.raise_for_status()
