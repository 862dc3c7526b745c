"""SQLAlchemy 2.0 ORM models for the Engagement Engine.

One table:
    engagement_events - Append-only audit log of every committed transition
                        and every gate-affecting write.

Engagements, escrow holds, NDA requests and assessments are owned by the
external services; the engine only keeps the audit trail.

Design decisions:
    - UUID primary keys.
    - JSONB metadata on PostgreSQL, plain JSON elsewhere (tests run on SQLite).
    - Indexes on the hot-path query columns (engagement_id, event_type).
    - engagement_events is append-only: no UPDATE or DELETE at the application level.
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime

from sqlalchemy import JSON, DateTime, Index, String, Uuid
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

_JSON = JSON().with_variant(JSONB(), "postgresql")


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


class EngagementEventRecord(Base):
    """Immutable audit record of one engagement event.

    This table is APPEND-ONLY. Every row represents a single committed
    transition or gate change.
    """

    __tablename__ = "engagement_events"

    # --- Primary Key ---
    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )

    # --- Subject ---
    engagement_id: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        comment="Ledger transaction id of the engagement",
    )

    # --- Event Details ---
    event_type: Mapped[str] = mapped_column(
        String(40),
        nullable=False,
        comment="EventType enum value (e.g., TRANSITION_COMMITTED, DEPOSIT_CONFIRMED)",
    )
    name: Mapped[str] = mapped_column(
        String(80),
        nullable=False,
        comment="Ledger transition name or gate-change name",
    )
    before: Mapped[str | None] = mapped_column(
        String(40),
        nullable=True,
        comment="State/status before this event (null for creation)",
    )
    after: Mapped[str | None] = mapped_column(
        String(40),
        nullable=True,
        comment="State/status after this event",
    )
    actor_role: Mapped[str] = mapped_column(String(20), nullable=False, default="system")
    actor_id: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        default="SYSTEM",
        comment="Who triggered this event",
    )
    metadata_json: Mapped[dict | None] = mapped_column(
        "metadata",
        _JSON,
        nullable=True,
        default=None,
        comment="Arbitrary context: amounts, reasons, signer roles",
    )

    # --- Timestamp ---
    occurred_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(UTC),
    )

    # --- Indexes ---
    __table_args__ = (
        Index("idx_event_engagement", "engagement_id"),
        Index("idx_event_type", "event_type"),
        Index("idx_event_occurred_at", "occurred_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<EngagementEventRecord id={self.id} type={self.event_type} "
            f"{self.before}->{self.after}>"
        )
