# src/taskpulse/sync/optimistic.py

from __future__ import annotations

"""
Optimistic mutation engine.

apply() changes the local collection immediately and returns a RollbackToken.
When the remote call settles, the owner calls reconcile() (success) or rollback()
(failure) with that token.

Collections are tuples; every operation returns a new tuple so the owning store can
swap its reference in one assignment.

Interleaved mutations on one entity:
each apply bumps a per-entity sequence number. A rollback (or an update reconcile)
whose token is older than the entity's latest mutation is a no-op, so a slow failing
request cannot clobber a newer local edit. Create reconciles always remap the
temporary id.
"""

import itertools
import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum
from typing import Any, Generic, TypeVar

from ..core.errors import NotFoundLocally
from ..domain.models import utcnow

logger = logging.getLogger(__name__)

T = TypeVar("T")

TEMP_ID_PREFIX = "temp-"


def is_temp_id(entity_id: str | None) -> bool:
    return bool(entity_id) and str(entity_id).startswith(TEMP_ID_PREFIX)


class MutationKind(StrEnum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


@dataclass(slots=True, frozen=True)
class MutationDescriptor:
    """
    What to apply.

    - CREATE: `fields` is the create input handed to the entity factory.
    - UPDATE: `entity` is the full new value; its id selects the target.
    - DELETE: `entity_id` selects the target.
    """

    kind: MutationKind
    entity_id: str | None = None
    entity: Any = None
    fields: Any = None

    @classmethod
    def create(cls, fields: Any) -> MutationDescriptor:
        return cls(MutationKind.CREATE, fields=fields)

    @classmethod
    def update(cls, entity: Any) -> MutationDescriptor:
        return cls(MutationKind.UPDATE, entity_id=entity.id, entity=entity)

    @classmethod
    def delete(cls, entity_id: str) -> MutationDescriptor:
        return cls(MutationKind.DELETE, entity_id=entity_id)


@dataclass(slots=True)
class RollbackToken:
    """Mutation record captured right before an optimistic apply."""

    entity_id: str
    kind: MutationKind
    snapshot: Any | None
    index: int | None
    sequence: int
    consumed: bool = False


EntityFactory = Callable[[Any, str, datetime], T]


class OptimisticEngine(Generic[T]):
    def __init__(
        self,
        factory: EntityFactory[T],
        *,
        sort_key: Callable[[T], Any] | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._factory = factory
        self._sort_key = sort_key
        self._clock = clock
        self._temp_ids = itertools.count(1)
        self._sequence = itertools.count(1)
        self._latest: dict[str, int] = {}

    # ---- helpers ----

    def mint_temp_id(self) -> str:
        return f"{TEMP_ID_PREFIX}{next(self._temp_ids)}"

    def _ordered(self, items: list[T]) -> tuple[T, ...]:
        if self._sort_key is not None:
            items = sorted(items, key=self._sort_key)
        return tuple(items)

    @staticmethod
    def _index_of(collection: tuple[T, ...], entity_id: str) -> int | None:
        for i, item in enumerate(collection):
            if getattr(item, "id") == entity_id:
                return i
        return None

    def _stamp(self, entity_id: str) -> int:
        seq = next(self._sequence)
        self._latest[entity_id] = seq
        return seq

    def is_stale(self, token: RollbackToken) -> bool:
        latest = self._latest.get(token.entity_id, token.sequence)
        return token.sequence < latest

    def remap(self, old_id: str, new_id: str) -> None:
        """Carry sequence tracking over when a temporary id gets its store id."""
        seq = self._latest.pop(old_id, None)
        if seq is not None:
            self._latest[new_id] = max(seq, self._latest.get(new_id, 0))

    def _release(self, token: RollbackToken) -> None:
        token.consumed = True
        if self._latest.get(token.entity_id) == token.sequence:
            del self._latest[token.entity_id]

    # ---- public API ----

    def apply(
        self, collection: tuple[T, ...], descriptor: MutationDescriptor
    ) -> tuple[tuple[T, ...], RollbackToken]:
        if descriptor.kind == MutationKind.CREATE:
            temp_id = self.mint_temp_id()
            entity = self._factory(descriptor.fields, temp_id, self._clock())
            token = RollbackToken(
                entity_id=temp_id,
                kind=MutationKind.CREATE,
                snapshot=None,
                index=None,
                sequence=self._stamp(temp_id),
            )
            logger.debug("apply create temp_id=%s", temp_id)
            return self._ordered([entity, *collection]), token

        entity_id = str(descriptor.entity_id)
        idx = self._index_of(collection, entity_id)
        if idx is None:
            raise NotFoundLocally(entity_id)

        items = list(collection)
        previous = items[idx]

        if descriptor.kind == MutationKind.UPDATE:
            items[idx] = descriptor.entity
            token = RollbackToken(
                entity_id=entity_id,
                kind=MutationKind.UPDATE,
                snapshot=previous,
                index=idx,
                sequence=self._stamp(entity_id),
            )
            logger.debug("apply update id=%s seq=%s", entity_id, token.sequence)
            return self._ordered(items), token

        del items[idx]
        token = RollbackToken(
            entity_id=entity_id,
            kind=MutationKind.DELETE,
            snapshot=previous,
            index=idx,
            sequence=self._stamp(entity_id),
        )
        logger.debug("apply delete id=%s index=%s", entity_id, idx)
        return tuple(items), token

    def reconcile(self, collection: tuple[T, ...], token: RollbackToken, server_truth: T | None) -> tuple[T, ...]:
        """Replace optimistic state with what the store returned."""
        if token.consumed:
            return collection

        if token.kind == MutationKind.DELETE or server_truth is None:
            self._release(token)
            return collection

        if token.kind == MutationKind.UPDATE and self.is_stale(token):
            logger.debug("reconcile skipped (newer local edit) id=%s", token.entity_id)
            token.consumed = True
            return collection

        real_id = getattr(server_truth, "id")
        items = [
            item for item in collection
            if not (real_id != token.entity_id and getattr(item, "id") == real_id)
        ]
        idx = self._index_of(tuple(items), token.entity_id)
        self._release(token)
        if idx is None:
            logger.debug("reconcile target gone id=%s", token.entity_id)
            return self._ordered(items)

        items[idx] = server_truth
        if token.kind == MutationKind.CREATE:
            logger.debug("reconcile create %s -> %s", token.entity_id, real_id)
        return self._ordered(items)

    def rollback(self, collection: tuple[T, ...], token: RollbackToken) -> tuple[T, ...]:
        """Restore the pre-mutation state. Safe to call twice."""
        if token.consumed:
            return collection

        if token.kind == MutationKind.CREATE:
            self._release(token)
            return tuple(item for item in collection if getattr(item, "id") != token.entity_id)

        if self.is_stale(token):
            logger.info("rollback skipped (newer local edit) id=%s kind=%s", token.entity_id, token.kind.value)
            token.consumed = True
            return collection

        self._release(token)
        items = list(collection)
        idx = self._index_of(collection, token.entity_id)

        if token.kind == MutationKind.UPDATE:
            if idx is None:
                return collection
            items[idx] = token.snapshot
            return self._ordered(items)

        if idx is not None:
            return collection
        if self._sort_key is not None:
            return self._ordered([*items, token.snapshot])
        at = min(token.index if token.index is not None else len(items), len(items))
        items.insert(at, token.snapshot)
        return tuple(items)
