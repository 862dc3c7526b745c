"""Workspace Access Controller.

Answers "may the parties open the secure project workspace?" for read-only
callers. The answer requires:

    state in {accepted, completed, reviewed_by_*, reviewed}
    AND escrow gate passes (if a deposit is required)
    AND NDA gate passes (if an NDA is required)

Results are cached per engagement in a GateCache owned by the controller.
There is no TTL: every write the engine makes to an engagement, its escrow
hold or its NDA request invalidates the entry. Each invalidation bumps a
per-engagement generation; a read that started before the bump may not
store its (possibly stale) result. The cache is bounded and evicts the least
recently used entry when full.
"""

from __future__ import annotations

from collections import Counter, OrderedDict
from contextlib import contextmanager
from typing import TYPE_CHECKING

from engagement_engine.domain.enums import WORKSPACE_STATES
from engagement_engine.domain.models import WorkspaceAccess
from engagement_engine.logging_config import get_logger

if TYPE_CHECKING:
    from collections.abc import Iterator

    from engagement_engine.domain.ports import LedgerClient
    from engagement_engine.infrastructure.retry import RetryPolicy
    from engagement_engine.services.gates import EscrowGate, NdaGate

logger = get_logger(__name__)

NOT_ACCEPTED = "not_accepted"
DEPOSIT_PENDING = "deposit_pending"
NDA_PENDING = "nda_pending"


class GateCache:
    """Per-engagement WorkspaceAccess cache with generation-guarded writes.

    Entries are kept in least-recently-used order and the oldest is evicted
    once ``max_entries`` is reached. Generation counters exist only while a
    read of that engagement is in flight; with no reader there is nothing to
    guard, so invalidation just drops the entry.
    """

    def __init__(self, max_entries: int = 10_000) -> None:
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self.max_entries = max_entries
        self._entries: OrderedDict[str, WorkspaceAccess] = OrderedDict()
        self._generations: dict[str, int] = {}
        self._readers: Counter[str] = Counter()

    def generation(self, engagement_id: str) -> int:
        return self._generations.get(engagement_id, 0)

    @contextmanager
    def reading(self, engagement_id: str) -> Iterator[int]:
        """Register an in-flight read and yield the generation it started at."""
        self._readers[engagement_id] += 1
        self._generations.setdefault(engagement_id, 0)
        try:
            yield self._generations[engagement_id]
        finally:
            self._readers[engagement_id] -= 1
            if self._readers[engagement_id] <= 0:
                del self._readers[engagement_id]
                self._generations.pop(engagement_id, None)

    def get(self, engagement_id: str) -> WorkspaceAccess | None:
        access = self._entries.get(engagement_id)
        if access is not None:
            self._entries.move_to_end(engagement_id)
        return access

    def put(self, engagement_id: str, access: WorkspaceAccess, generation: int) -> bool:
        """Store ``access`` unless the entry was invalidated since ``generation``."""
        if self.generation(engagement_id) != generation:
            return False
        self._entries[engagement_id] = access
        self._entries.move_to_end(engagement_id)
        while len(self._entries) > self.max_entries:
            evicted, _ = self._entries.popitem(last=False)
            logger.debug("workspace.cache_evicted", engagement_id=evicted)
        return True

    def invalidate(self, engagement_id: str) -> None:
        if engagement_id in self._readers:
            self._generations[engagement_id] = self.generation(engagement_id) + 1
        self._entries.pop(engagement_id, None)

    def tracked_generations(self) -> int:
        return len(self._generations)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, engagement_id: object) -> bool:
        return engagement_id in self._entries


class WorkspaceAccessController:
    def __init__(
        self,
        ledger: LedgerClient,
        ledger_retry: RetryPolicy,
        escrow_gate: EscrowGate,
        nda_gate: NdaGate,
        cache: GateCache | None = None,
    ) -> None:
        self._ledger = ledger
        self._ledger_retry = ledger_retry
        self._escrow_gate = escrow_gate
        self._nda_gate = nda_gate
        self.cache = cache if cache is not None else GateCache()

    async def is_workspace_unlocked(self, engagement_id: str) -> bool:
        access = await self.get_access(engagement_id)
        return access.unlocked

    async def get_access(self, engagement_id: str) -> WorkspaceAccess:
        cached = self.cache.get(engagement_id)
        if cached is not None:
            return cached

        with self.cache.reading(engagement_id) as generation:
            access = await self._evaluate(engagement_id)
            if not self.cache.put(engagement_id, access, generation):
                logger.debug("workspace.stale_read_discarded", engagement_id=engagement_id)
        return access

    async def _evaluate(self, engagement_id: str) -> WorkspaceAccess:
        engagement = await self._ledger_retry.run(self._ledger.get_transaction, engagement_id)
        escrow = await self._escrow_gate.evaluate_for(engagement)
        nda = await self._nda_gate.evaluate_for(engagement)

        denied_reason = None
        if engagement.state not in WORKSPACE_STATES:
            denied_reason = NOT_ACCEPTED
        elif not escrow.passed:
            denied_reason = DEPOSIT_PENDING
        elif not nda.passed:
            denied_reason = NDA_PENDING

        return WorkspaceAccess(
            engagement_id=engagement_id,
            unlocked=denied_reason is None,
            state=engagement.state,
            gates=(escrow, nda),
            denied_reason=denied_reason,
        )

    def invalidate(self, engagement_id: str) -> None:
        self.cache.invalidate(engagement_id)
        logger.debug("workspace.cache_invalidated", engagement_id=engagement_id)
