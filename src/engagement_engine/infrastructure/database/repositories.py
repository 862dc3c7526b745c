"""Repository classes for database access.

Repositories encapsulate all SQL queries and provide a clean interface
to the service layer. They accept an AsyncSession and never manage
their own transactions (that's the caller's responsibility).
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import select

from engagement_engine.infrastructure.database.orm_models import EngagementEventRecord

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from engagement_engine.domain.models import EngagementEvent


class EventRepository:
    """Data access for the append-only audit event log."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def record(self, event: EngagementEvent) -> EngagementEventRecord:
        """Append a new audit event. This is the ONLY write operation allowed."""
        row = EngagementEventRecord(
            engagement_id=event.engagement_id,
            event_type=event.event_type.value,
            name=event.name,
            before=event.before,
            after=event.after,
            actor_role=event.actor_role,
            actor_id=event.actor_id,
            metadata_json=event.metadata or None,
            occurred_at=event.occurred_at,
        )
        self._session.add(row)
        await self._session.flush()
        return row

    async def get_by_engagement(self, engagement_id: str) -> list[EngagementEventRecord]:
        """Fetch all events for an engagement in chronological order."""
        result = await self._session.execute(
            select(EngagementEventRecord)
            .where(EngagementEventRecord.engagement_id == engagement_id)
            .order_by(EngagementEventRecord.occurred_at.asc())
        )
        return list(result.scalars().all())
