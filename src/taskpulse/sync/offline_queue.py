# src/taskpulse/sync/offline_queue.py

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any

from ..core.errors import RemoteCallFailure
from ..domain.models import utcnow
from .optimistic import MutationKind, RollbackToken

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class PendingOperation:
    entity_id: str
    kind: MutationKind
    payload: Any
    enqueued_at: datetime = field(default_factory=utcnow)
    # Token of the optimistic apply, so replay can reconcile the local entity.
    token: RollbackToken | None = field(default=None, compare=False, repr=False)


@dataclass(slots=True, frozen=True)
class DrainOutcome:
    replayed: int = 0
    remaining: int = 0
    failure: RemoteCallFailure | None = None
    skipped: bool = False

    @property
    def ok(self) -> bool:
        return self.failure is None and not self.skipped


ReplayFn = Callable[[PendingOperation], Awaitable[Any]]


class OfflineQueue:
    """
    FIFO of mutations not yet confirmed by the authoritative store.

    Lives in memory only. Nothing is merged or deduplicated: two edits of the
    same entity are two operations.
    """

    def __init__(self) -> None:
        self._ops: list[PendingOperation] = []
        self._draining = False

    def __len__(self) -> int:
        return len(self._ops)

    @property
    def is_draining(self) -> bool:
        return self._draining

    def snapshot(self) -> tuple[PendingOperation, ...]:
        return tuple(self._ops)

    def enqueue(self, op: PendingOperation) -> None:
        self._ops.append(op)
        logger.debug("Queued %s id=%s (pending=%d)", op.kind.value, op.entity_id, len(self._ops))

    def remap(self, old_id: str, new_id: str) -> int:
        """Point queued operations at a new id (temp id -> store id). Returns the count rewritten."""
        n = 0
        for i, op in enumerate(self._ops):
            if op.entity_id == old_id:
                self._ops[i] = replace(op, entity_id=new_id)
                if op.token is not None:
                    op.token.entity_id = new_id
                n += 1
        if n:
            logger.debug("Remapped %d queued operation(s) %s -> %s", n, old_id, new_id)
        return n

    async def drain(self, replay: ReplayFn) -> DrainOutcome:
        """
        Replay operations strictly in order, stopping at the first failure.

        Each replayed operation is removed once its call succeeds; the failed one and
        everything behind it stay queued. Operations enqueued while the drain runs are
        picked up by the same drain.
        """
        if self._draining:
            logger.debug("drain already in progress")
            return DrainOutcome(remaining=len(self._ops), skipped=True)

        self._draining = True
        replayed = 0
        try:
            while self._ops:
                op = self._ops[0]
                try:
                    await replay(op)
                except RemoteCallFailure as e:
                    logger.warning(
                        "Replay failed kind=%s id=%s: %s (pending=%d)",
                        op.kind.value,
                        op.entity_id,
                        e.message,
                        len(self._ops),
                    )
                    return DrainOutcome(replayed=replayed, remaining=len(self._ops), failure=e)
                # replay() may have remapped ids, so pop by position, not by value.
                self._ops.pop(0)
                replayed += 1
        finally:
            self._draining = False

        logger.info("Offline queue drained (replayed=%d)", replayed)
        return DrainOutcome(replayed=replayed, remaining=0)
