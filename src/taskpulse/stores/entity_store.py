# src/taskpulse/stores/entity_store.py

from __future__ import annotations

"""
Entity store: in-memory mirror of one collection in the authoritative store.

Every mutation follows the same shape:
1. apply the change locally through the optimistic engine (visible immediately),
2. offline (or while a drain is running): queue it and return the optimistic value,
3. online: await the remote call, then reconcile on success or roll back on failure.

Remote failures never escape create/update/delete. They become a rollback plus a
human-readable `last_error`, and the caller gets None/False.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from collections.abc import Callable
from datetime import datetime
from typing import Any, Generic, TypeVar

from ..core.errors import SYNC_FAILED_MESSAGE, RemoteCallFailure, friendly_error_message
from ..core.ports import Filters, ResourceClient
from ..domain.models import utcnow
from ..sync.offline_queue import DrainOutcome, OfflineQueue, PendingOperation
from ..sync.optimistic import MutationDescriptor, MutationKind, OptimisticEngine
from ..sync.periodic import DEFAULT_SYNC_INTERVAL_SECONDS, BackgroundSync

logger = logging.getLogger(__name__)

T = TypeVar("T")


class EntityStore(ABC, Generic[T]):
    name = "entities"
    label = "item"

    def __init__(
        self,
        client: ResourceClient[T],
        *,
        online: bool = True,
        sync_interval_seconds: float = DEFAULT_SYNC_INTERVAL_SECONDS,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._client = client
        self._clock = clock
        self._engine: OptimisticEngine[T] = OptimisticEngine(
            self._synthesize, sort_key=self._order_key(), clock=clock
        )
        self._queue = OfflineQueue()
        self._items: tuple[T, ...] = ()
        self._filters: Filters | None = None
        self._drain_task: asyncio.Task[DrainOutcome] | None = None
        self._background = BackgroundSync(self, interval_seconds=sync_interval_seconds)

        self.selected: T | None = None
        self.is_loading = False
        self.is_syncing = False
        self.is_online = bool(online)
        self.last_error: str | None = None
        self.last_sync_at: datetime | None = None

    # ---- entity-specific hooks ----

    @abstractmethod
    def _synthesize(self, fields: Any, temp_id: str, now: datetime) -> T:
        """Build the optimistic entity shown until the store confirms the create."""

    @abstractmethod
    def _update_payload(self, entity: T) -> dict[str, Any]:
        """Fields sent with an update call."""

    def _order_key(self) -> Callable[[T], Any] | None:
        return None

    # ---- read side ----

    @property
    def items(self) -> tuple[T, ...]:
        return self._items

    @property
    def pending_operations(self) -> tuple[PendingOperation, ...]:
        return self._queue.snapshot()

    @property
    def is_background_sync_running(self) -> bool:
        return self._background.is_running

    def get(self, entity_id: str) -> T | None:
        for item in self._items:
            if getattr(item, "id") == entity_id:
                return item
        return None

    def clear_error(self) -> None:
        self.last_error = None

    # ---- helpers ----

    def _should_queue(self) -> bool:
        return not self.is_online or self.is_syncing

    def _fail(self, failure: RemoteCallFailure) -> None:
        self.last_error = friendly_error_message(failure)
        logger.warning("%s: %s failed: %s", self.name, failure.operation, failure.message)

    def _sync_selected(self, entity_id: str) -> None:
        if self.selected is not None and getattr(self.selected, "id") == entity_id:
            self.selected = self.get(entity_id)

    def ingest(self, entity: T) -> None:
        """Accept one entity of server truth (e.g. from a due-reminder poll)."""
        entity_id = getattr(entity, "id")
        if self.get(entity_id) is None:
            self._items = (entity, *self._items)
        else:
            self._items = tuple(entity if getattr(i, "id") == entity_id else i for i in self._items)

    # ---- fetch ----

    async def fetch_all(self, filters: Filters | None = None) -> bool:
        """Replace the whole collection. On failure the previous collection stays."""
        self.is_loading = True
        self.last_error = None
        self._filters = filters
        try:
            page = await self._client.list(filters, None)
        except RemoteCallFailure as e:
            self._fail(e)
            return False
        finally:
            self.is_loading = False

        self._items = tuple(page.items)
        self.last_sync_at = self._clock()
        logger.debug("%s: fetched %d item(s)", self.name, len(self._items))
        return True

    async def refresh(self) -> bool:
        return await self.fetch_all(self._filters)

    async def fetch_one(self, entity_id: str) -> T | None:
        self.is_loading = True
        self.last_error = None
        try:
            entity = await self._client.get(entity_id)
        except RemoteCallFailure as e:
            self._fail(e)
            return None
        finally:
            self.is_loading = False
        self.selected = entity
        return entity

    # ---- mutations ----

    async def create(self, fields: Any) -> T | None:
        self._items, token = self._engine.apply(self._items, MutationDescriptor.create(fields))
        optimistic = self.get(token.entity_id)

        if self._should_queue():
            self._queue.enqueue(PendingOperation(token.entity_id, MutationKind.CREATE, fields, token=token))
            return optimistic

        try:
            created = await self._client.create(fields)
        except RemoteCallFailure as e:
            self._items = self._engine.rollback(self._items, token)
            self._fail(e)
            return None

        self._items = self._engine.reconcile(self._items, token, created)
        return created

    async def update(self, entity: T) -> T | None:
        entity_id = getattr(entity, "id")
        self._items, token = self._engine.apply(self._items, MutationDescriptor.update(entity))
        self._sync_selected(entity_id)

        if self._should_queue():
            self._queue.enqueue(PendingOperation(entity_id, MutationKind.UPDATE, entity, token=token))
            return entity

        try:
            updated = await self._client.update(entity_id, self._update_payload(entity))
        except RemoteCallFailure as e:
            self._items = self._engine.rollback(self._items, token)
            self._sync_selected(entity_id)
            self._fail(e)
            return None

        self._items = self._engine.reconcile(self._items, token, updated)
        self._sync_selected(entity_id)
        return updated

    async def delete(self, entity_id: str) -> bool:
        self._items, token = self._engine.apply(self._items, MutationDescriptor.delete(entity_id))
        if self.selected is not None and getattr(self.selected, "id") == entity_id:
            self.selected = None

        if self._should_queue():
            self._queue.enqueue(PendingOperation(entity_id, MutationKind.DELETE, None, token=token))
            return True

        try:
            await self._client.delete(entity_id)
        except RemoteCallFailure as e:
            self._items = self._engine.rollback(self._items, token)
            self._fail(e)
            return False

        self._items = self._engine.reconcile(self._items, token, None)
        return True

    # ---- offline queue ----

    def set_online_status(self, online: bool) -> asyncio.Task[DrainOutcome] | None:
        """
        Flip connectivity. Going offline -> online schedules exactly one drain and
        returns its task; every other transition only updates the flag.
        """
        was_online = self.is_online
        self.is_online = bool(online)
        if self.is_online == was_online:
            return None

        logger.info("%s: %s (pending=%d)", self.name, "online" if self.is_online else "offline", len(self._queue))
        if not self.is_online:
            return None

        self._drain_task = asyncio.get_running_loop().create_task(
            self.sync_pending_operations(), name=f"drain[{self.name}]"
        )
        return self._drain_task

    async def sync_pending_operations(self) -> DrainOutcome:
        if not self.is_online or self.is_syncing:
            return DrainOutcome(remaining=len(self._queue), skipped=True)
        if not len(self._queue):
            return DrainOutcome()

        self.is_syncing = True
        try:
            outcome = await self._queue.drain(self._replay)
        finally:
            self.is_syncing = False

        if outcome.failure is not None:
            self.last_error = SYNC_FAILED_MESSAGE
            return outcome

        await self.fetch_all(self._filters)
        return outcome

    async def _replay(self, op: PendingOperation) -> None:
        if op.kind == MutationKind.CREATE:
            created = await self._client.create(op.payload)
            if op.token is not None:
                self._items = self._engine.reconcile(self._items, op.token, created)
            real_id = getattr(created, "id")
            if real_id != op.entity_id:
                self._queue.remap(op.entity_id, real_id)
                self._engine.remap(op.entity_id, real_id)
            return

        if op.kind == MutationKind.UPDATE:
            updated = await self._client.update(op.entity_id, self._update_payload(op.payload))
            if op.token is not None:
                self._items = self._engine.reconcile(self._items, op.token, updated)
            return

        await self._client.delete(op.entity_id)
        if op.token is not None:
            self._items = self._engine.reconcile(self._items, op.token, None)

    # ---- background sync ----

    def start_background_sync(self) -> asyncio.Task[None]:
        return self._background.start()

    def stop_background_sync(self) -> None:
        self._background.stop()

    async def close(self) -> None:
        await self._background.stop_and_wait()
        if self._drain_task is not None and not self._drain_task.done():
            await self._drain_task
