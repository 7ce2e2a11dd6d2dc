# tests/test_commands.py

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from taskpulse.cli.commands import CommandRegistry, parse_when, registry
from taskpulse.domain.models import TaskStatus

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)


@pytest.mark.asyncio
async def test_command_registry_routes_and_aliases(state) -> None:
    reg = CommandRegistry()
    called: list[list[str]] = []

    async def handler(state, args):
        called.append(args)
        return "ok"

    reg.register("a", handler, "a", aliases=["alpha"])

    assert await reg.handle(state, "/a x y") == "ok"
    assert await reg.handle(state, "/ALPHA") == "ok"
    assert called == [["x", "y"], []]
    assert "/a - a" in reg.build_help()


@pytest.mark.asyncio
async def test_command_registry_unknown_and_non_command(state) -> None:
    reg = CommandRegistry()
    assert await reg.handle(state, "hello") is None
    assert "Unknown command" in (await reg.handle(state, "/nope") or "")
    assert "Empty command" in (await reg.handle(state, "/") or "")


def test_parse_when() -> None:
    assert parse_when("10", NOW) == NOW + timedelta(minutes=10)
    assert parse_when("2h", NOW) == NOW + timedelta(hours=2)
    assert parse_when("30s", NOW) == NOW + timedelta(seconds=30)
    assert parse_when("2026-03-02T09:00:00+00:00", NOW) == datetime(2026, 3, 2, 9, tzinfo=UTC)
    assert parse_when("soonish", NOW) is None


@pytest.mark.asyncio
async def test_add_done_rm_flow(state, task_client) -> None:
    reply = await registry.handle(state, "/add Buy milk !high")
    assert reply is not None and reply.startswith("Task added: Buy milk")

    listing = await registry.handle(state, "/tasks")
    assert "[pending] Buy milk (high)" in (listing or "")

    assert (await registry.handle(state, "/done 1")) == "Completed: Buy milk"
    assert state.task_store.items[0].status == TaskStatus.COMPLETED

    assert (await registry.handle(state, "/rm 1")) == "Deleted: Buy milk"
    assert state.task_store.items == ()
    assert task_client.items == {}


@pytest.mark.asyncio
async def test_add_reports_friendly_error(state, task_client) -> None:
    task_client.fail_on.add("create")
    reply = await registry.handle(state, "/add Anything")
    assert reply == "Network error. Please check your connection and try again."


@pytest.mark.asyncio
async def test_offline_then_online_replays(state, task_client) -> None:
    assert (await registry.handle(state, "/offline")).startswith("Offline")
    await registry.handle(state, "/add queued task")
    assert task_client.calls == []

    pending = await registry.handle(state, "/pending")
    assert "tasks: create temp-1" in (pending or "")

    reply = await registry.handle(state, "/online")
    assert reply == "Online. Replayed 1 change(s)."
    assert [t.id for t in state.task_store.items] == ["srv-1"]
    assert await registry.handle(state, "/pending") == "No pending changes."


@pytest.mark.asyncio
async def test_remind_with_repeat_and_trigger(state, reminder_client, presenter_parts) -> None:
    reply = await registry.handle(state, "/remind 10m Water plants @every_2_days")
    assert reply is not None and "[Every 2 days]" in reply

    assert "Invalid repeat" in (await registry.handle(state, "/remind 10m X @every_0_days") or "")

    # nobody listening yet
    assert "Nobody" in (await registry.handle(state, "/trigger 1") or "")

    state.scheduler.subscribe()
    assert (await registry.handle(state, "/trigger 1")) == "Triggered: Water plants"
    await state.scheduler.stop()
    assert presenter_parts.toaster.shown


@pytest.mark.asyncio
async def test_tag_and_status(state) -> None:
    assert (await registry.handle(state, "/tag home")) == "Tag added: home"
    assert "home #3b82f6" in (await registry.handle(state, "/tags") or "")
    assert "Unknown tag" in (await registry.handle(state, "/add x #nope") or "")

    status = await registry.handle(state, "/status")
    assert "tags: 1 loaded, online" in (status or "")
