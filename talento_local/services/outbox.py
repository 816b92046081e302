import asyncio
import logging
from datetime import datetime, timezone

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from talento_local.db.models import OutboxEvent
from talento_local.domain.retry import calculate_next_attempt
from talento_local.domain.states import OutboxStatus
from talento_local.services.notifications import NotificationService
from talento_local.api.v1.metrics import NOTIFICATIONS_DELIVERED

logger = logging.getLogger(__name__)

class OutboxProcessor:
    """
    Delivers queued notifications after the transaction that wrote them has committed.
    Only ever reads and updates outbox rows.
    """

    def __init__(
        self,
        sessionmaker: async_sessionmaker[AsyncSession],
        notifier: NotificationService,
        interval: float = 1.0,
        batch_size: int = 50,
        max_attempts: int = 5,
        retry_base_seconds: float = 2.0,
        retry_max_seconds: float = 300.0,
    ):
        self.sessionmaker = sessionmaker
        self.notifier = notifier
        self.interval = interval
        self.batch_size = batch_size
        self.max_attempts = max_attempts
        self.retry_base_seconds = retry_base_seconds
        self.retry_max_seconds = retry_max_seconds
        self.running = False
        self._task = None

    async def start(self):
        self.running = True
        self._task = asyncio.create_task(self.run_loop())
        logger.info("OutboxProcessor started.")

    async def stop(self):
        self.running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        logger.info("OutboxProcessor stopped.")

    async def run_loop(self):
        while self.running:
            try:
                published = await self.process_batch()
                # Failed rows are not due again until next_attempt_at
                if published == 0:
                    await asyncio.sleep(self.interval)
            except Exception as e:
                logger.error(f"Error in OutboxProcessor: {e}", exc_info=True)
                await asyncio.sleep(self.interval)

    async def process_batch(self) -> int:
        """Delivers one batch of due notifications. Returns how many were published."""
        now = datetime.now(timezone.utc)
        async with self.sessionmaker() as session:
            async with session.begin():
                stmt = (
                    select(OutboxEvent)
                    .where(
                        OutboxEvent.status == OutboxStatus.PENDING,
                        or_(OutboxEvent.next_attempt_at.is_(None), OutboxEvent.next_attempt_at <= now),
                    )
                    .order_by(OutboxEvent.id.asc())
                    .with_for_update(skip_locked=True)
                    .limit(self.batch_size)
                )
                events = (await session.execute(stmt)).scalars().all()

                published = 0
                for event in events:
                    if await self._deliver(event):
                        published += 1

                return published

    async def _deliver(self, event: OutboxEvent) -> bool:
        try:
            await self.notifier.notify(event.recipient_id, event.event_type, event.payload)
        except Exception as e:
            event.attempts += 1
            event.last_error = str(e)[:1000]
            if event.attempts >= self.max_attempts:
                event.status = OutboxStatus.FAILED
                event.next_attempt_at = None
                logger.error(f"Notification {event.id} ({event.event_type}) failed permanently after {event.attempts} attempts: {e}")
            else:
                event.next_attempt_at = calculate_next_attempt(
                    event.attempts,
                    base_delay_seconds=self.retry_base_seconds,
                    max_delay_seconds=self.retry_max_seconds,
                )
                logger.error(
                    f"Notification {event.id} ({event.event_type}) failed, attempt {event.attempts}/{self.max_attempts}, "
                    f"next try at {event.next_attempt_at.isoformat()}: {e}"
                )
            NOTIFICATIONS_DELIVERED.labels(result="failed").inc()
            return False

        event.attempts += 1
        event.status = OutboxStatus.PUBLISHED
        event.published_at = datetime.now(timezone.utc)
        event.next_attempt_at = None
        NOTIFICATIONS_DELIVERED.labels(result="published").inc()
        return True
