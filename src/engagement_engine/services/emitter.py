"""Audit/Notification Emitter.

``emit`` is fire-and-forget: it schedules delivery on the running loop and
returns immediately, so a slow database or webhook never delays a
transition response. Delivery fans out to every sink in order; a failing
sink is logged and skipped, never raised to the caller.

Sinks:
    - LogSink:          structured log line per event
    - EventLogSink:     append-only engagement_events table
    - NotificationSink: outbound notification channel (with its own retry policy)
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Protocol

from engagement_engine.infrastructure.database.repositories import EventRepository
from engagement_engine.logging_config import get_logger

if TYPE_CHECKING:
    from collections.abc import Iterable

    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

    from engagement_engine.domain.models import EngagementEvent
    from engagement_engine.domain.ports import NotificationChannel
    from engagement_engine.infrastructure.retry import RetryPolicy

logger = get_logger(__name__)


class EventSink(Protocol):
    async def deliver(self, event: EngagementEvent) -> None: ...


class LogSink:
    async def deliver(self, event: EngagementEvent) -> None:
        logger.info(
            "engagement.event",
            engagement_id=event.engagement_id,
            event_type=event.event_type.value,
            name=event.name,
            before=event.before,
            after=event.after,
            actor_role=event.actor_role,
            actor_id=event.actor_id,
        )


class EventLogSink:
    """Appends each event to the SQL audit log in its own transaction."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def deliver(self, event: EngagementEvent) -> None:
        async with self._session_factory() as session:
            await EventRepository(session).record(event)
            await session.commit()


class NotificationSink:
    def __init__(self, channel: NotificationChannel, retry: RetryPolicy) -> None:
        self._channel = channel
        self._retry = retry

    async def deliver(self, event: EngagementEvent) -> None:
        await self._retry.run(self._channel.notify, event.to_dict())


class AuditEmitter:
    def __init__(self, sinks: Iterable[EventSink]) -> None:
        self._sinks = list(sinks)
        self._pending: set[asyncio.Task[None]] = set()

    def emit(self, event: EngagementEvent) -> None:
        """Schedule delivery of ``event``; must be called from the event loop."""
        task = asyncio.get_running_loop().create_task(self._deliver(event))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _deliver(self, event: EngagementEvent) -> None:
        for sink in self._sinks:
            try:
                await sink.deliver(event)
            except Exception:
                logger.exception(
                    "emitter.sink_failed",
                    sink=type(sink).__name__,
                    engagement_id=event.engagement_id,
                    event_type=event.event_type.value,
                )

    async def drain(self) -> None:
        """Wait for every scheduled delivery (shutdown, tests)."""
        while self._pending:
            await asyncio.gather(*list(self._pending))

    @property
    def pending(self) -> int:
        return len(self._pending)
