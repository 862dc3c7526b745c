"""Shared test fixtures for the Engagement Engine test suite.

Provides:
    - An engine wired to in-memory backends with a no-op retry sleep
    - A recording event sink to assert on emitted events
    - Factory helpers for seeding engagements in a given state
    - Async test support via pytest-asyncio (asyncio_mode = auto)
"""

from __future__ import annotations

import os

# Tests never talk to PostgreSQL; must be set before Settings is first built
os.environ.setdefault("AUDIT_LOG_ENABLED", "false")
os.environ.setdefault("SIMULATE_EXTERNAL_SERVICES", "true")
os.environ.setdefault("NOTIFICATION_URL", "")

import pytest

from engagement_engine.bootstrap import EngagementEngine, build_engine
from engagement_engine.config import Settings
from engagement_engine.domain.enums import EventType
from engagement_engine.infrastructure.memory import (
    InMemoryAssessmentStore,
    InMemoryEscrowStore,
    InMemoryLedger,
    InMemoryNdaClient,
    RecordingNotificationChannel,
)

CUSTOMER = "student-1"
PROVIDER = "partner-1"
ADMIN = "admin-1"


class RecordingSink:
    """Event sink that keeps every delivered event."""

    def __init__(self) -> None:
        self.events = []

    async def deliver(self, event) -> None:
        self.events.append(event)

    def of_type(self, event_type: EventType) -> list:
        return [e for e in self.events if e.event_type == event_type]


class SleepRecorder:
    """Stand-in for asyncio.sleep that records delays instead of waiting."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


# ---------------------------------------------------------------------------
# Engine Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        audit_log_enabled=False,
        simulate_external_services=True,
        notification_url="",
        retry_max_retries=3,
        retry_base_delay_seconds=0.5,
        retry_max_delay_seconds=8.0,
        external_timeout_seconds=1.0,
    )


@pytest.fixture
def ledger() -> InMemoryLedger:
    return InMemoryLedger()


@pytest.fixture
def escrow_store() -> InMemoryEscrowStore:
    return InMemoryEscrowStore()


@pytest.fixture
def nda_client() -> InMemoryNdaClient:
    return InMemoryNdaClient()


@pytest.fixture
def assessment_store() -> InMemoryAssessmentStore:
    return InMemoryAssessmentStore()


@pytest.fixture
def notifications() -> RecordingNotificationChannel:
    return RecordingNotificationChannel()


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def sleeps() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture
def engine(
    settings,
    ledger,
    escrow_store,
    nda_client,
    assessment_store,
    notifications,
    sink,
    sleeps,
) -> EngagementEngine:
    return build_engine(
        settings,
        ledger=ledger,
        escrow_store=escrow_store,
        nda_client=nda_client,
        assessment_store=assessment_store,
        notification_channel=notifications,
        extra_sinks=[sink],
        retry_sleep=sleeps,
    )


# ---------------------------------------------------------------------------
# Domain Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def seed(ledger):
    """Return a factory that seeds an engagement at a given ledger transition."""

    def _seed(
        engagement_id: str = "eng-1",
        last_transition: str = "transition/inquire",
        requires_deposit: bool = False,
        requires_nda: bool = False,
    ):
        return ledger.create_engagement(
            engagement_id,
            customer_id=CUSTOMER,
            provider_id=PROVIDER,
            requires_deposit=requires_deposit,
            requires_nda=requires_nda,
            last_transition=last_transition,
        )

    return _seed


@pytest.fixture
def full_ratings() -> dict[str, int]:
    return {
        "deliverable_quality": 5,
        "accuracy": 4,
        "critical_thinking": 4,
        "creativity_initiative": 3,
        "written_communication": 5,
        "verbal_communication": 4,
        "responsiveness": 5,
        "active_listening": 4,
        "reliability": 5,
        "adaptability": 4,
        "teamwork": 4,
        "professional_conduct": 5,
        "overall_rating": 5,
    }
