# src/taskpulse/stores/tag_store.py

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime
from typing import Any

from ..domain.models import Tag, TagCreate
from .entity_store import EntityStore


class TagStore(EntityStore[Tag]):
    """Tags, kept sorted by name (rollbacks re-sort instead of restoring a position)."""

    name = "tags"
    label = "tag"

    def _order_key(self) -> Callable[[Tag], Any] | None:
        return lambda tag: tag.name.casefold()

    def _synthesize(self, fields: TagCreate, temp_id: str, now: datetime) -> Tag:
        return Tag(id=temp_id, name=fields.name.strip(), color=fields.color, created_at=now, updated_at=now)

    def _update_payload(self, entity: Tag) -> dict[str, Any]:
        return {"name": entity.name, "color": entity.color}
