"""Database infrastructure - engine, ORM models, and the audit event repository."""

from engagement_engine.infrastructure.database.engine import (
    close_db,
    get_session_factory,
    init_db,
)
from engagement_engine.infrastructure.database.orm_models import (
    Base,
    EngagementEventRecord,
)
from engagement_engine.infrastructure.database.repositories import EventRepository

__all__ = [
    "Base",
    "EngagementEventRecord",
    "EventRepository",
    "get_session_factory",
    "init_db",
    "close_db",
]
