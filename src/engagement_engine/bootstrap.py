"""Composition root.

Wires ports, retry policies, gates, the workspace controller, the emitter
and the services into one ``EngagementEngine``. The FastAPI app, the
simulation script and the tests all build the engine here; tests pass
in-memory backends and a no-op sleep through the keyword overrides.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from engagement_engine.config import Settings, get_settings
from engagement_engine.infrastructure.http_clients import (
    HttpAssessmentStore,
    HttpEscrowStore,
    HttpLedgerClient,
    HttpNdaClient,
    HttpNotificationChannel,
)
from engagement_engine.infrastructure.memory import (
    InMemoryAssessmentStore,
    InMemoryEscrowStore,
    InMemoryLedger,
    InMemoryNdaClient,
)
from engagement_engine.infrastructure.retry import RetryPolicy
from engagement_engine.logging_config import get_logger
from engagement_engine.services.assessment_service import AssessmentService
from engagement_engine.services.emitter import (
    AuditEmitter,
    EventLogSink,
    EventSink,
    LogSink,
    NotificationSink,
)
from engagement_engine.services.escrow_service import EscrowService
from engagement_engine.services.gates import AssessmentGate, EscrowGate, NdaGate
from engagement_engine.services.locks import EngagementLocks
from engagement_engine.services.nda_service import NdaService
from engagement_engine.services.transition_service import TransitionService
from engagement_engine.services.workspace import GateCache, WorkspaceAccessController

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

    from engagement_engine.domain.ports import (
        AssessmentStore,
        EscrowStore,
        LedgerClient,
        NdaClient,
        NotificationChannel,
    )

logger = get_logger(__name__)


@dataclass
class EngagementEngine:
    settings: Settings
    ledger: LedgerClient
    escrow_store: EscrowStore
    nda_client: NdaClient
    assessment_store: AssessmentStore
    notification_channel: NotificationChannel | None
    emitter: AuditEmitter
    escrow_gate: EscrowGate
    nda_gate: NdaGate
    assessment_gate: AssessmentGate
    workspace: WorkspaceAccessController
    transitions: TransitionService
    escrow: EscrowService
    nda: NdaService
    assessments: AssessmentService

    async def aclose(self) -> None:
        """Flush pending events and close any HTTP clients."""
        await self.emitter.drain()
        for client in (
            self.ledger,
            self.escrow_store,
            self.nda_client,
            self.assessment_store,
            self.notification_channel,
        ):
            aclose = getattr(client, "aclose", None)
            if aclose is not None:
                await aclose()


def _http_backends(settings: Settings) -> dict[str, Any]:
    timeout = settings.external_timeout_seconds
    return {
        "ledger": HttpLedgerClient(settings.ledger_base_url, settings.ledger_api_token, timeout),
        "escrow_store": HttpEscrowStore(settings.escrow_api_url, settings.escrow_api_token, timeout),
        "nda_client": HttpNdaClient(settings.nda_api_url, settings.nda_api_token, timeout),
        "assessment_store": HttpAssessmentStore(
            settings.assessment_api_url, settings.assessment_api_token, timeout
        ),
    }


def _memory_backends() -> dict[str, Any]:
    return {
        "ledger": InMemoryLedger(),
        "escrow_store": InMemoryEscrowStore(),
        "nda_client": InMemoryNdaClient(),
        "assessment_store": InMemoryAssessmentStore(),
    }


def build_engine(
    settings: Settings | None = None,
    *,
    ledger: LedgerClient | None = None,
    escrow_store: EscrowStore | None = None,
    nda_client: NdaClient | None = None,
    assessment_store: AssessmentStore | None = None,
    notification_channel: NotificationChannel | None = None,
    session_factory: async_sessionmaker[AsyncSession] | None = None,
    extra_sinks: list[EventSink] | None = None,
    retry_sleep: Callable[[float], Awaitable[Any]] | None = None,
) -> EngagementEngine:
    """Assemble an engine. Any backend not passed in comes from settings."""
    settings = settings or get_settings()

    if None in (ledger, escrow_store, nda_client, assessment_store):
        defaults = (
            _memory_backends() if settings.simulate_external_services else _http_backends(settings)
        )
        ledger = ledger or defaults["ledger"]
        escrow_store = escrow_store or defaults["escrow_store"]
        nda_client = nda_client or defaults["nda_client"]
        assessment_store = assessment_store or defaults["assessment_store"]
    if notification_channel is None and settings.notification_url:
        notification_channel = HttpNotificationChannel(
            settings.notification_url, timeout=settings.external_timeout_seconds
        )

    def policy(service: str, max_retries: int | None = None) -> RetryPolicy:
        built = RetryPolicy.from_settings(service, settings, max_retries=max_retries)
        return dataclasses.replace(built, sleep=retry_sleep) if retry_sleep else built

    ledger_retry = policy("ledger")
    escrow_retry = policy("escrow")
    nda_retry = policy("nda")
    assessment_retry = policy("assessment")

    # --- Emitter ---
    sinks: list[EventSink] = [LogSink()]
    if settings.audit_log_enabled and session_factory is not None:
        sinks.append(EventLogSink(session_factory))
    if notification_channel is not None:
        sinks.append(
            NotificationSink(
                notification_channel,
                policy("notifications", max_retries=settings.notification_max_retries),
            )
        )
    sinks.extend(extra_sinks or [])
    emitter = AuditEmitter(sinks)

    # --- Gates & workspace ---
    escrow_gate = EscrowGate(ledger, escrow_store, ledger_retry, escrow_retry)
    nda_gate = NdaGate(ledger, nda_client, ledger_retry, nda_retry)
    assessment_gate = AssessmentGate(ledger, assessment_store, ledger_retry, assessment_retry)
    workspace = WorkspaceAccessController(
        ledger, ledger_retry, escrow_gate, nda_gate,
        GateCache(max_entries=settings.workspace_cache_max_entries),
    )

    # --- Services ---
    locks = EngagementLocks()
    escrow = EscrowService(ledger, escrow_store, locks, workspace, emitter, ledger_retry, escrow_retry)
    nda = NdaService(
        ledger, nda_client, locks, workspace, emitter, ledger_retry, nda_retry,
        document_id=settings.default_nda_document_id,
    )
    assessments = AssessmentService(
        ledger, assessment_store, assessment_gate, locks, emitter, ledger_retry, assessment_retry
    )
    transitions = TransitionService(
        ledger=ledger,
        ledger_retry=ledger_retry,
        escrow_gate=escrow_gate,
        nda_gate=nda_gate,
        assessment_gate=assessment_gate,
        locks=locks,
        workspace=workspace,
        emitter=emitter,
        escrow_service=escrow,
        nda_service=nda,
    )

    logger.info(
        "engine.built",
        simulated=settings.simulate_external_services,
        sinks=[type(sink).__name__ for sink in sinks],
    )
    return EngagementEngine(
        settings=settings,
        ledger=ledger,
        escrow_store=escrow_store,
        nda_client=nda_client,
        assessment_store=assessment_store,
        notification_channel=notification_channel,
        emitter=emitter,
        escrow_gate=escrow_gate,
        nda_gate=nda_gate,
        assessment_gate=assessment_gate,
        workspace=workspace,
        transitions=transitions,
        escrow=escrow,
        nda=nda,
        assessments=assessments,
    )
