"""Per-engagement serialization.

Transitions and gate writes on one engagement run one at a time; different
engagements never contend. Slots live in a WeakValueDictionary, so an
engagement nobody is working on holds no lock object.
"""

from __future__ import annotations

import asyncio
import weakref
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import AsyncIterator


class _Slot:
    __slots__ = ("lock", "commits", "__weakref__")

    def __init__(self) -> None:
        self.lock = asyncio.Lock()
        self.commits = 0


class LockHandle:
    """Held while a caller owns an engagement's lock.

    ``raced`` tells whether another caller committed a transition on the
    same engagement while this one was waiting for the lock.
    """

    def __init__(self, slot: _Slot, commits_seen: int) -> None:
        self._slot = slot
        self._commits_seen = commits_seen

    @property
    def raced(self) -> bool:
        return self._slot.commits != self._commits_seen

    def mark_committed(self) -> None:
        self._slot.commits += 1


class EngagementLocks:
    """Registry of per-engagement asyncio locks."""

    def __init__(self) -> None:
        self._slots: weakref.WeakValueDictionary[str, _Slot] = weakref.WeakValueDictionary()

    def _slot(self, engagement_id: str) -> _Slot:
        slot = self._slots.get(engagement_id)
        if slot is None:
            slot = _Slot()
            self._slots[engagement_id] = slot
        return slot

    @asynccontextmanager
    async def hold(self, engagement_id: str) -> AsyncIterator[LockHandle]:
        slot = self._slot(engagement_id)
        commits_seen = slot.commits
        async with slot.lock:
            yield LockHandle(slot, commits_seen)

    def __len__(self) -> int:
        return len(self._slots)
