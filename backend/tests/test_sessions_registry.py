"""Tests for SessionRegistry capacity and idle expiry."""

import pytest
from attune.errors import SessionLimitError
from attune.sessions import SessionRegistry


def _registry(source, clock, **overrides):
    options = dict(max_sessions=3)
    options.update(overrides)
    return SessionRegistry(source, clock=clock, **options)


@pytest.mark.asyncio
async def test_create_generates_ids_and_enforces_limit(source, clock):
    registry = _registry(source, clock, max_sessions=2)
    first = await registry.create()
    await registry.create("named")
    assert len(first.session_id) == 32
    with pytest.raises(SessionLimitError):
        await registry.create()
    with pytest.raises(ValueError, match="already exists"):
        await registry.create("named")


@pytest.mark.asyncio
async def test_prune_idle_closes_abandoned_sessions(source, clock):
    registry = _registry(source, clock)
    stale = await registry.create("stale")
    active = await registry.create("active")
    clock.advance(100)
    await active.ingest_event({"focusScore": 60})

    expired = await registry.prune_idle(60)

    assert expired == ["stale"]
    assert stale.closed is True
    assert await registry.get("stale") is None
    assert await registry.get("active") is active


@pytest.mark.asyncio
async def test_prune_idle_keeps_connected_or_attached_sessions(source, clock):
    registry = _registry(source, clock)
    streaming = await registry.create("streaming")
    await registry.create("watched")
    streaming.note_source_connected(True)
    clock.advance(600)

    expired = await registry.prune_idle(60, is_attached=lambda session_id: session_id == "watched")

    assert expired == []
    assert await registry.count() == 2


@pytest.mark.asyncio
async def test_prune_idle_disabled_with_zero_timeout(source, clock):
    registry = _registry(source, clock)
    await registry.create("s")
    clock.advance(10_000)
    assert await registry.prune_idle(0) == []
    assert await registry.count() == 1


@pytest.mark.asyncio
async def test_expired_session_frees_capacity(source, clock):
    registry = _registry(source, clock, max_sessions=1)
    await registry.create("old")
    clock.advance(61)
    await registry.prune_idle(60)
    assert (await registry.create("new")).session_id == "new"
