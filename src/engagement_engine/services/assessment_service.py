"""Assessment Service - the provider's performance assessment of the student."""

from __future__ import annotations

from typing import TYPE_CHECKING

from engagement_engine.domain.assessment_criteria import (
    criteria_catalogue,
    overall_average,
    section_averages,
    validate_ratings,
)
from engagement_engine.domain.enums import ActorRole, EventType
from engagement_engine.domain.exceptions import AssessmentError, UnauthorizedError
from engagement_engine.domain.models import Assessment, EngagementEvent, utcnow
from engagement_engine.logging_config import engagement_context, get_logger

if TYPE_CHECKING:
    from engagement_engine.domain.models import Engagement
    from engagement_engine.domain.ports import AssessmentStore, LedgerClient
    from engagement_engine.infrastructure.retry import RetryPolicy
    from engagement_engine.services.emitter import AuditEmitter
    from engagement_engine.services.gates import AssessmentGate
    from engagement_engine.services.locks import EngagementLocks

logger = get_logger(__name__)


class AssessmentService:
    def __init__(
        self,
        ledger: LedgerClient,
        store: AssessmentStore,
        gate: AssessmentGate,
        locks: EngagementLocks,
        emitter: AuditEmitter,
        ledger_retry: RetryPolicy,
        store_retry: RetryPolicy,
    ) -> None:
        self._ledger = ledger
        self._store = store
        self._gate = gate
        self._locks = locks
        self._emitter = emitter
        self._ledger_retry = ledger_retry
        self._store_retry = store_retry

    def get_criteria(self) -> dict:
        return criteria_catalogue()

    async def get_pending_assessments(self, provider_id: str) -> list[Engagement]:
        """The provider's completed engagements that still owe an assessment."""
        engagements = await self._ledger_retry.run(self._ledger.query_transactions, provider_id)
        pending = []
        for engagement in engagements:
            if engagement.provider_id != provider_id or not engagement.state.is_completed_or_later:
                continue
            result = await self._gate.evaluate_for(engagement)
            if not result.passed:
                pending.append(engagement)
        return pending

    async def get_assessment(self, engagement_id: str) -> Assessment | None:
        return await self._store_retry.run(self._store.get_assessment, engagement_id)

    async def submit_assessment(
        self,
        engagement_id: str,
        ratings: dict[str, int],
        actor_role: str,
        actor_id: str,
        *,
        student_id: str | None = None,
        comments: dict[str, str] | None = None,
        overall_comments: str = "",
        strengths: str = "",
        areas_for_improvement: str = "",
        recommend_for_future: bool = False,
    ) -> Assessment:
        """Record the provider's assessment; at most one per engagement."""
        if actor_role != ActorRole.PROVIDER:
            raise UnauthorizedError(actor_role=str(actor_role), action="submit-assessment")

        with engagement_context(engagement_id, action="submit-assessment"):
            async with self._locks.hold(engagement_id):
                engagement = await self._ledger_retry.run(self._ledger.get_transaction, engagement_id)
                if engagement.provider_id != actor_id:
                    raise UnauthorizedError(
                        str(actor_role), "submit-assessment", reason="not_a_party"
                    )
                if student_id is not None and student_id != engagement.customer_id:
                    raise AssessmentError("Student does not match the engagement's customer")
                if not engagement.state.is_completed_or_later:
                    raise AssessmentError(
                        f"Engagement must be completed before it is assessed (state: {engagement.state})"
                    )
                if await self._store_retry.run(self._store.get_assessment, engagement_id) is not None:
                    raise AssessmentError("An assessment was already submitted for this engagement")
                errors = validate_ratings(ratings)
                if errors:
                    raise AssessmentError("Invalid ratings", errors=errors)

                assessment = Assessment(
                    engagement_id=engagement_id,
                    submitted_by=actor_id,
                    student_id=engagement.customer_id,
                    ratings=dict(ratings),
                    section_averages=section_averages(ratings),
                    overall_average=overall_average(ratings),
                    submitted_at=utcnow(),
                    comments=dict(comments or {}),
                    overall_comments=overall_comments,
                    strengths=strengths,
                    areas_for_improvement=areas_for_improvement,
                    recommend_for_future=recommend_for_future,
                )
                assessment = await self._store_retry.run(self._store.save_assessment, assessment)
                self._emitter.emit(
                    EngagementEvent(
                        engagement_id=engagement_id,
                        event_type=EventType.ASSESSMENT_SUBMITTED,
                        name="assessment/submit",
                        actor_role=ActorRole.PROVIDER.value,
                        actor_id=actor_id,
                        before=None,
                        after="submitted",
                        metadata={"overall_average": assessment.overall_average},
                    )
                )

        logger.info(
            "assessment.submitted",
            engagement_id=engagement_id,
            overall_average=assessment.overall_average,
        )
        return assessment
