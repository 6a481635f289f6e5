"""Tests for WebSocketHub per-session connection limits and broadcast."""

from unittest.mock import AsyncMock

import pytest
from attune.ws import WebSocketHub


def _mock_ws():
    """Create a mock WebSocket with accept/close/send_json methods."""
    ws = AsyncMock()
    ws.accept = AsyncMock()
    ws.close = AsyncMock()
    ws.send_json = AsyncMock()
    return ws


@pytest.mark.asyncio
async def test_add_accepts_websocket():
    hub = WebSocketHub(max_connections=5)
    ws = _mock_ws()
    result = await hub.add("s1", ws)
    assert result is True
    ws.accept.assert_awaited_once()
    assert hub.connection_count("s1") == 1
    assert hub.connection_count() == 1


@pytest.mark.asyncio
async def test_add_rejects_at_capacity():
    hub = WebSocketHub(max_connections=2)
    ws1 = _mock_ws()
    ws2 = _mock_ws()
    ws3 = _mock_ws()

    assert await hub.add("s1", ws1) is True
    assert await hub.add("s1", ws2) is True

    result = await hub.add("s1", ws3)
    assert result is False
    ws3.close.assert_awaited_once_with(code=1013, reason="max connections reached")
    ws3.accept.assert_not_awaited()
    assert hub.connection_count("s1") == 2


@pytest.mark.asyncio
async def test_capacity_is_per_session():
    hub = WebSocketHub(max_connections=1)
    assert await hub.add("s1", _mock_ws()) is True
    assert await hub.add("s2", _mock_ws()) is True
    assert hub.connection_count() == 2


@pytest.mark.asyncio
async def test_remove_allows_new_connection_after_disconnect():
    hub = WebSocketHub(max_connections=1)
    ws1 = _mock_ws()
    ws2 = _mock_ws()

    assert await hub.add("s1", ws1) is True
    assert await hub.add("s1", ws2) is False

    await hub.remove("s1", ws1)
    assert hub.connection_count("s1") == 0
    assert await hub.add("s1", ws2) is True


@pytest.mark.asyncio
async def test_broadcast_only_reaches_session_clients():
    hub = WebSocketHub(max_connections=5)
    mine = _mock_ws()
    other = _mock_ws()
    await hub.add("s1", mine)
    await hub.add("s2", other)

    await hub.broadcast_json("s1", {"type": "attention_changed"})
    mine.send_json.assert_awaited_once_with({"type": "attention_changed"})
    other.send_json.assert_not_awaited()


@pytest.mark.asyncio
async def test_broadcast_removes_stale_clients():
    hub = WebSocketHub(max_connections=5)
    ws_good = _mock_ws()
    ws_bad = _mock_ws()
    ws_bad.send_json.side_effect = Exception("connection closed")

    await hub.add("s1", ws_good)
    await hub.add("s1", ws_bad)

    await hub.broadcast_json("s1", {"type": "test"})
    assert hub.connection_count("s1") == 1


@pytest.mark.asyncio
async def test_listener_for_broadcasts():
    hub = WebSocketHub()
    ws = _mock_ws()
    await hub.add("s1", ws)
    listener = hub.listener_for("s1")
    await listener({"type": "content_loading"})
    ws.send_json.assert_awaited_once_with({"type": "content_loading"})


@pytest.mark.asyncio
async def test_drop_session_closes_sockets():
    hub = WebSocketHub()
    ws1 = _mock_ws()
    ws2 = _mock_ws()
    ws2.close.side_effect = RuntimeError("already closed")
    await hub.add("s1", ws1)
    await hub.add("s1", ws2)

    dropped = await hub.drop_session("s1")
    assert dropped == 2
    ws1.close.assert_awaited_once_with(code=1000, reason="session closed")
    assert hub.connection_count("s1") == 0
