# tests/test_optimistic.py

from __future__ import annotations

from dataclasses import replace

import pytest

from taskpulse.core.errors import NotFoundLocally
from taskpulse.domain.models import Tag
from taskpulse.sync.optimistic import MutationDescriptor, OptimisticEngine, is_temp_id

from .fakes import T0, make_task


def _factory(fields, temp_id, now):
    return make_task(temp_id, fields["title"], created_at=now, updated_at=now)


def _engine(**kw) -> OptimisticEngine:
    return OptimisticEngine(_factory, clock=lambda: T0, **kw)


def test_create_prepends_temp_entity_and_rollback_removes_it() -> None:
    eng = _engine()
    before = (make_task("a"), make_task("b"))

    after, token = eng.apply(before, MutationDescriptor.create({"title": "X"}))
    assert len(after) == 3
    assert is_temp_id(after[0].id)
    assert after[0].title == "X"

    restored = eng.rollback(after, token)
    assert restored == before
    # second rollback is a no-op
    assert eng.rollback(restored, token) == before


def test_create_reconcile_replaces_temp_id() -> None:
    eng = _engine()
    after, token = eng.apply((), MutationDescriptor.create({"title": "X"}))
    server = make_task("srv-1", "X")

    out = eng.reconcile(after, token, server)
    assert out == (server,)


def test_reconcile_drops_duplicate_of_real_id() -> None:
    eng = _engine()
    after, token = eng.apply((), MutationDescriptor.create({"title": "X"}))
    server = make_task("srv-1", "X")
    # a refetch already delivered the server copy
    after = (*after, server)

    out = eng.reconcile(after, token, server)
    assert [t.id for t in out] == ["srv-1"]


def test_update_rollback_restores_snapshot() -> None:
    eng = _engine()
    original = make_task("a", "old")
    after, token = eng.apply((original,), MutationDescriptor.update(replace(original, title="new")))
    assert after[0].title == "new"

    assert eng.rollback(after, token) == (original,)


def test_delete_rollback_restores_position_and_fields() -> None:
    eng = _engine()
    items = (make_task("a"), make_task("b", "keep me", notes="n"), make_task("c"))

    after, token = eng.apply(items, MutationDescriptor.delete("b"))
    assert [t.id for t in after] == ["a", "c"]

    assert eng.rollback(after, token) == items


def test_stale_rollback_does_not_clobber_newer_edit() -> None:
    eng = _engine()
    original = make_task("a", "v0")
    step1, token1 = eng.apply((original,), MutationDescriptor.update(replace(original, title="v1")))
    step2, token2 = eng.apply(step1, MutationDescriptor.update(replace(original, title="v2")))

    # the first request fails after the second edit was applied
    out = eng.rollback(step2, token1)
    assert out[0].title == "v2"

    # the latest one still rolls back to its own snapshot
    assert eng.rollback(out, token2)[0].title == "v1"


def test_update_or_delete_of_unknown_id_raises() -> None:
    eng = _engine()
    with pytest.raises(NotFoundLocally):
        eng.apply((), MutationDescriptor.delete("missing"))
    with pytest.raises(NotFoundLocally):
        eng.apply((), MutationDescriptor.update(make_task("missing")))


def test_sorted_collection_rollback_resorts() -> None:
    def tag(tag_id: str, name: str) -> Tag:
        return Tag(id=tag_id, name=name, color="#000000", created_at=T0, updated_at=T0)

    eng = OptimisticEngine(lambda f, tid, now: tag(tid, f), sort_key=lambda t: t.name.casefold())
    items = (tag("1", "alpha"), tag("2", "beta"), tag("3", "gamma"))

    after, token = eng.apply(items, MutationDescriptor.delete("2"))
    # an unrelated create lands in between
    after, _ = eng.apply(after, MutationDescriptor.create("Bravo"))

    out = eng.rollback(after, token)
    assert [t.name for t in out] == ["alpha", "beta", "Bravo", "gamma"]
