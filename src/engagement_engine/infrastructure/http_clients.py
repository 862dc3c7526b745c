"""HTTP clients for the external services the engine coordinates.

JSON over REST via ``httpx.AsyncClient`` with bearer-token auth. Every client
maps transport and status failures onto the domain error hierarchy so the
retry policy and the services never see httpx types:

    network failure         -> ExternalServiceError(status_code=None)   retryable
    404                     -> None / EngagementNotFoundError
    409 on ledger transition-> VersionConflictError
    other >= 400            -> ExternalServiceError(status_code)         5xx retryable

Retries are NOT done here; callers wrap calls in a RetryPolicy.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

import httpx

from engagement_engine.domain.enums import ActorRole
from engagement_engine.domain.exceptions import (
    EngagementNotFoundError,
    ExternalServiceError,
    VersionConflictError,
)
from engagement_engine.domain.models import (
    Assessment,
    Engagement,
    EscrowHold,
    NdaSignatureRequest,
)
from engagement_engine.domain.transitions import state_for_last_transition
from engagement_engine.logging_config import get_logger

logger = get_logger(__name__)


class _JsonServiceClient:
    """Shared request/error-mapping plumbing for one external service."""

    service = "external"

    def __init__(
        self,
        base_url: str,
        api_token: str = "",
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        headers = {"Accept": "application/json"}
        if api_token:
            headers["Authorization"] = f"Bearer {api_token}"
        self._client = httpx.AsyncClient(
            base_url=base_url,
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
    ) -> httpx.Response:
        try:
            response = await self._client.request(method, path, json=json, params=params)
        except httpx.TransportError as exc:
            logger.warning("http.request_failed", service=self.service, path=path, error=str(exc))
            raise ExternalServiceError(self.service, f"{type(exc).__name__}: {exc}") from exc
        return response

    def _raise_for_status(self, response: httpx.Response) -> None:
        if response.status_code >= 400:
            logger.warning(
                "http.error_status",
                service=self.service,
                path=response.request.url.path,
                status_code=response.status_code,
            )
            raise ExternalServiceError(
                self.service,
                f"HTTP {response.status_code}: {response.text[:200]}",
                status_code=response.status_code,
            )


# ---------------------------------------------------------------------------
# Ledger
# ---------------------------------------------------------------------------


def _engagement_from_json(data: dict[str, Any]) -> Engagement:
    last_transition = data["last_transition"]
    transitioned_at = data.get("last_transitioned_at")
    return Engagement(
        id=data["id"],
        customer_id=data["customer_id"],
        provider_id=data["provider_id"],
        listing_id=data["listing_id"],
        state=state_for_last_transition(last_transition),
        last_transition=last_transition,
        last_transitioned_at=datetime.fromisoformat(transitioned_at) if transitioned_at else None,
        requires_deposit=bool(data.get("requires_deposit", False)),
        requires_nda=bool(data.get("requires_nda", False)),
        version=int(data.get("version", 0)),
    )


class HttpLedgerClient(_JsonServiceClient):
    """Marketplace ledger (transaction API)."""

    service = "ledger"

    def _engagement(self, data: dict[str, Any], response: httpx.Response) -> Engagement:
        try:
            return _engagement_from_json(data)
        except (KeyError, ValueError) as exc:
            # A well-formed HTTP reply with an unusable body; retrying will not help
            logger.error("http.malformed_transaction", service=self.service, error=str(exc))
            raise ExternalServiceError(
                self.service,
                f"malformed transaction: {exc}",
                status_code=response.status_code,
            ) from exc

    async def get_transaction(self, engagement_id: str) -> Engagement:
        response = await self._request("GET", f"/transactions/{engagement_id}")
        if response.status_code == 404:
            raise EngagementNotFoundError(engagement_id)
        self._raise_for_status(response)
        return self._engagement(response.json(), response)

    async def transition(
        self, engagement_id: str, ledger_transition: str, expected_version: int
    ) -> Engagement:
        response = await self._request(
            "POST",
            f"/transactions/{engagement_id}/transitions",
            json={"transition": ledger_transition, "expected_version": expected_version},
        )
        if response.status_code == 404:
            raise EngagementNotFoundError(engagement_id)
        if response.status_code == 409:
            raise VersionConflictError(engagement_id, expected_version)
        self._raise_for_status(response)
        return self._engagement(response.json(), response)

    async def query_transactions(
        self, provider_id: str | None = None, last_transition: str | None = None
    ) -> list[Engagement]:
        params = {"provider_id": provider_id, "last_transition": last_transition}
        response = await self._request(
            "GET", "/transactions", params={k: v for k, v in params.items() if v is not None}
        )
        self._raise_for_status(response)
        return [self._engagement(item, response) for item in response.json().get("data", [])]


# ---------------------------------------------------------------------------
# Gate entity stores
# ---------------------------------------------------------------------------


class HttpEscrowStore(_JsonServiceClient):
    service = "escrow"

    async def get_hold(self, engagement_id: str) -> EscrowHold | None:
        response = await self._request("GET", f"/holds/{engagement_id}")
        if response.status_code == 404:
            return None
        self._raise_for_status(response)
        return EscrowHold.from_dict(response.json())

    async def save_hold(self, hold: EscrowHold) -> EscrowHold:
        response = await self._request("PUT", f"/holds/{hold.engagement_id}", json=hold.to_dict())
        self._raise_for_status(response)
        return EscrowHold.from_dict(response.json())


class HttpNdaClient(_JsonServiceClient):
    """E-signature provider."""

    service = "nda"

    async def create_request(
        self, engagement_id: str, document_id: str, signer_roles: tuple[ActorRole, ...]
    ) -> NdaSignatureRequest:
        response = await self._request(
            "POST",
            "/requests",
            json={
                "engagement_id": engagement_id,
                "document_id": document_id,
                "signer_roles": [role.value for role in signer_roles],
            },
        )
        self._raise_for_status(response)
        return NdaSignatureRequest.from_dict(response.json())

    async def get_request(self, engagement_id: str) -> NdaSignatureRequest | None:
        response = await self._request("GET", f"/requests/{engagement_id}")
        if response.status_code == 404:
            return None
        self._raise_for_status(response)
        return NdaSignatureRequest.from_dict(response.json())

    async def record_signature(
        self,
        engagement_id: str,
        signer_role: ActorRole,
        signature_data: dict[str, Any],
        signed_at: datetime,
    ) -> NdaSignatureRequest:
        response = await self._request(
            "POST",
            f"/requests/{engagement_id}/signatures",
            json={
                "signer_role": signer_role.value,
                "signature_data": signature_data,
                "signed_at": signed_at.isoformat(),
            },
        )
        self._raise_for_status(response)
        return NdaSignatureRequest.from_dict(response.json())


class HttpAssessmentStore(_JsonServiceClient):
    service = "assessment"

    async def get_assessment(self, engagement_id: str) -> Assessment | None:
        response = await self._request("GET", f"/assessments/{engagement_id}")
        if response.status_code == 404:
            return None
        self._raise_for_status(response)
        return Assessment.from_dict(response.json())

    async def save_assessment(self, assessment: Assessment) -> Assessment:
        response = await self._request(
            "PUT", f"/assessments/{assessment.engagement_id}", json=assessment.to_dict()
        )
        self._raise_for_status(response)
        return Assessment.from_dict(response.json())


# ---------------------------------------------------------------------------
# Notifications
# ---------------------------------------------------------------------------


class HttpNotificationChannel(_JsonServiceClient):
    """POSTs event payloads to a webhook; delivery mechanics are the receiver's."""

    service = "notifications"

    def __init__(
        self,
        url: str,
        api_token: str = "",
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__(url, api_token=api_token, timeout=timeout, transport=transport)

    async def notify(self, payload: dict[str, Any]) -> None:
        response = await self._request("POST", "", json=payload)
        self._raise_for_status(response)
