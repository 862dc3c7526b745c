"""Domain value objects.

Plain frozen dataclasses: the engine never mutates an entity in place, it
derives a new value and hands it to the owning store. Serialization helpers
(``to_dict`` / ``from_dict``) produce the JSON shapes used by the HTTP
clients and the audit log.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from engagement_engine.domain.enums import (
    ActorRole,
    EngagementState,
    EscrowStatus,
    EventType,
    GateName,
    NdaStatus,
)


def utcnow() -> datetime:
    return datetime.now(UTC)


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def _parse_dt(value: str | datetime | None) -> datetime | None:
    if value is None or isinstance(value, datetime):
        return value
    return datetime.fromisoformat(value)


# ---------------------------------------------------------------------------
# Engagement (owned by the ledger)
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Engagement:
    """Read model of a ledger transaction.

    Attributes:
        id: Ledger transaction id.
        customer_id: The student.
        provider_id: The corporate partner.
        listing_id: The project listing applied to.
        state: Lifecycle state derived from ``last_transition``.
        last_transition: Ledger transition name that produced ``state``.
        last_transitioned_at: When the ledger committed it.
        requires_deposit: Escrow gate applies.
        requires_nda: NDA gate applies.
        version: Ledger optimistic-concurrency token.
    """

    id: str
    customer_id: str
    provider_id: str
    listing_id: str
    state: EngagementState
    last_transition: str | None = None
    last_transitioned_at: datetime | None = None
    requires_deposit: bool = False
    requires_nda: bool = False
    version: int = 0

    def party_id(self, role: ActorRole) -> str | None:
        """Return the user id holding ``role`` in this engagement, if any."""
        if role == ActorRole.CUSTOMER:
            return self.customer_id
        if role == ActorRole.PROVIDER:
            return self.provider_id
        return None


# ---------------------------------------------------------------------------
# Escrow hold
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class EscrowHold:
    """Deposit confirmation record and the work hold derived from it.

    ``hold_cleared`` is the admin's explicit release of the work hold; the
    hold is only inactive when the deposit is confirmed AND cleared.
    """

    engagement_id: str
    status: EscrowStatus = EscrowStatus.NONE
    amount: int | None = None
    payment_method: str | None = None
    notes: str | None = None
    confirmed_by: str | None = None
    confirmed_at: datetime | None = None
    revoked_by: str | None = None
    revoked_at: datetime | None = None
    revoke_reason: str | None = None
    hold_cleared: bool = False
    hold_cleared_by: str | None = None
    hold_cleared_at: datetime | None = None
    reinstated_by: str | None = None
    reinstated_at: datetime | None = None
    reinstate_reason: str | None = None

    @property
    def hold_active(self) -> bool:
        return not (self.status == EscrowStatus.CONFIRMED and self.hold_cleared)

    def to_dict(self) -> dict[str, Any]:
        data = dataclasses.asdict(self)
        for key, value in data.items():
            if isinstance(value, datetime):
                data[key] = value.isoformat()
        data["status"] = self.status.value
        data["hold_active"] = self.hold_active
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> EscrowHold:
        names = {f.name for f in dataclasses.fields(cls)}
        kwargs = {k: v for k, v in data.items() if k in names}
        kwargs["status"] = EscrowStatus(kwargs.get("status", EscrowStatus.NONE))
        for key in ("confirmed_at", "revoked_at", "hold_cleared_at", "reinstated_at"):
            kwargs[key] = _parse_dt(kwargs.get(key))
        return cls(**kwargs)


# ---------------------------------------------------------------------------
# NDA signature request
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class NdaSigner:
    party_role: ActorRole
    signed_at: datetime | None = None

    @property
    def signed(self) -> bool:
        return self.signed_at is not None


@dataclass(frozen=True)
class NdaSignatureRequest:
    """E-signature request for one engagement's NDA.

    Status is derived from the signers, so it can only move forward as
    signatures are recorded.
    """

    engagement_id: str
    document_id: str
    signers: tuple[NdaSigner, ...]
    requested_at: datetime | None = None

    @property
    def status(self) -> NdaStatus:
        signed = sum(1 for s in self.signers if s.signed)
        if signed == 0:
            return NdaStatus.REQUESTED
        if signed < len(self.signers):
            return NdaStatus.PARTIALLY_SIGNED
        return NdaStatus.FULLY_SIGNED

    def signer(self, role: ActorRole) -> NdaSigner | None:
        return next((s for s in self.signers if s.party_role == role), None)

    def with_signature(self, role: ActorRole, signed_at: datetime) -> NdaSignatureRequest:
        signers = tuple(
            NdaSigner(s.party_role, signed_at) if s.party_role == role and not s.signed else s
            for s in self.signers
        )
        return dataclasses.replace(self, signers=signers)

    def to_dict(self) -> dict[str, Any]:
        return {
            "engagement_id": self.engagement_id,
            "document_id": self.document_id,
            "status": self.status.value,
            "requested_at": _iso(self.requested_at),
            "signers": [
                {"party_role": s.party_role.value, "signed_at": _iso(s.signed_at)}
                for s in self.signers
            ],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> NdaSignatureRequest:
        return cls(
            engagement_id=data["engagement_id"],
            document_id=data["document_id"],
            requested_at=_parse_dt(data.get("requested_at")),
            signers=tuple(
                NdaSigner(ActorRole(s["party_role"]), _parse_dt(s.get("signed_at")))
                for s in data.get("signers", [])
            ),
        )


def nda_status(request: NdaSignatureRequest | None) -> NdaStatus:
    """Status of a possibly-missing signature request."""
    return request.status if request is not None else NdaStatus.NOT_REQUESTED


# ---------------------------------------------------------------------------
# Assessment
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Assessment:
    """A provider's performance assessment of the student, after completion."""

    engagement_id: str
    submitted_by: str
    student_id: str
    ratings: dict[str, int]
    section_averages: dict[str, float | None]
    overall_average: float | None
    submitted_at: datetime
    comments: dict[str, str] = field(default_factory=dict)
    overall_comments: str = ""
    strengths: str = ""
    areas_for_improvement: str = ""
    recommend_for_future: bool = False

    def to_dict(self) -> dict[str, Any]:
        data = dataclasses.asdict(self)
        data["submitted_at"] = self.submitted_at.isoformat()
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Assessment:
        names = {f.name for f in dataclasses.fields(cls)}
        kwargs = {k: v for k, v in data.items() if k in names}
        kwargs["submitted_at"] = _parse_dt(kwargs["submitted_at"])
        return cls(**kwargs)


# ---------------------------------------------------------------------------
# Engine results
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class GateResult:
    """Output of a gate evaluator. ``reason`` is set when the gate fails."""

    gate: GateName
    passed: bool
    reason: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"gate": self.gate.value, "passed": self.passed, "reason": self.reason}


@dataclass(frozen=True)
class TransitionResult:
    """Outcome of ``apply_transition``.

    ``committed`` is False when the call was answered as an idempotent replay
    of a transition the ledger had already applied.
    """

    engagement_id: str
    transition: str
    ledger_transition: str
    previous_state: EngagementState
    state: EngagementState
    committed: bool


@dataclass(frozen=True)
class EngagementStatus:
    """Current state, what each role may do next, and every gate's verdict."""

    engagement: Engagement
    allowed_transitions: dict[str, list[str]]
    gates: tuple[GateResult, ...]


@dataclass(frozen=True)
class EngagementDeposit:
    """An engagement together with its escrow hold, for admin listings."""

    engagement: Engagement
    hold: EscrowHold


@dataclass(frozen=True)
class BulkHoldClearResult:
    """Outcome of clearing every eligible work hold of one provider."""

    provider_id: str
    cleared: tuple[str, ...]
    skipped: dict[str, str]


@dataclass(frozen=True)
class WorkspaceAccess:
    engagement_id: str
    unlocked: bool
    state: EngagementState
    gates: tuple[GateResult, ...]
    denied_reason: str | None = None


@dataclass(frozen=True)
class EngagementEvent:
    """Audit/notification record for a committed transition or gate change."""

    engagement_id: str
    event_type: EventType
    name: str
    actor_role: str
    actor_id: str
    before: str | None
    after: str | None
    occurred_at: datetime = field(default_factory=utcnow)
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "engagement_id": self.engagement_id,
            "event_type": self.event_type.value,
            "name": self.name,
            "actor_role": self.actor_role,
            "actor_id": self.actor_id,
            "before": self.before,
            "after": self.after,
            "occurred_at": self.occurred_at.isoformat(),
            "metadata": self.metadata,
        }
