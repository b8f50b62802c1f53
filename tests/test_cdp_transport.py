import asyncio
import json

import pytest

from core.exceptions import AlreadyClosed, CommandFailure
from tools.browsers._engine.cdp_transport import CDPTransport, page_ws_url


class FakeWebSocket:
    def __init__(self):
        self.sent = []
        self.closed = False

    async def send_str(self, text):
        self.sent.append(json.loads(text))

    async def close(self):
        self.closed = True


def _transport():
    transport = CDPTransport(page_ws_url(9222, "ABC"), target_id="ABC")
    transport._ws = FakeWebSocket()
    return transport


def test_page_ws_url():
    assert page_ws_url(9333, "F00") == "ws://127.0.0.1:9333/devtools/page/F00"


@pytest.mark.asyncio
async def test_responses_match_by_id_not_order():
    transport = _transport()
    first = asyncio.ensure_future(transport.send("Runtime.evaluate", {"expression": "1"}))
    second = asyncio.ensure_future(transport.send("DOM.getDocument"))
    await asyncio.sleep(0)

    ids = [m["id"] for m in transport._ws.sent]
    assert ids == [1, 2]
    assert transport._ws.sent[0]["params"] == {"expression": "1"}
    assert transport._ws.sent[1]["params"] == {}

    transport._dispatch({"id": 2, "result": {"root": {}}})
    assert await second == {"root": {}}
    assert not first.done()

    transport._dispatch({"id": 1, "result": {"value": 1}})
    assert await first == {"value": 1}


@pytest.mark.asyncio
async def test_error_response_raises_command_failure():
    transport = _transport()
    pending = asyncio.ensure_future(transport.send("Nope.method"))
    await asyncio.sleep(0)

    transport._dispatch({"id": 1, "error": {"code": -32601, "message": "'Nope.method' wasn't found"}})
    with pytest.raises(CommandFailure) as info:
        await pending
    assert info.value.method == "Nope.method"
    assert "wasn't found" in str(info.value)


def test_events_reach_every_listener_until_unsubscribed():
    transport = _transport()
    seen_a, seen_b = [], []
    unsubscribe = transport.on_event(lambda method, params: seen_a.append((method, params)))
    transport.on_event(lambda method, params: seen_b.append(method))

    transport._dispatch({"method": "Page.loadEventFired", "params": {"timestamp": 1.0}})
    unsubscribe()
    transport._dispatch({"method": "Network.requestWillBeSent", "params": {}})

    assert seen_a == [("Page.loadEventFired", {"timestamp": 1.0})]
    assert seen_b == ["Page.loadEventFired", "Network.requestWillBeSent"]


def test_failing_listener_does_not_block_others():
    transport = _transport()
    seen = []

    def broken(method, params):
        raise ValueError("boom")

    transport.on_event(broken)
    transport.on_event(lambda method, params: seen.append(method))
    transport._dispatch({"method": "Log.entryAdded", "params": {}})
    assert seen == ["Log.entryAdded"]


def test_unknown_response_id_is_ignored():
    transport = _transport()
    transport._dispatch({"id": 99, "result": {}})


@pytest.mark.asyncio
async def test_detach_fails_pending_and_blocks_new_sends():
    transport = _transport()
    ws = transport._ws
    pending = asyncio.ensure_future(transport.send("Page.navigate", {"url": "https://x.test"}))
    await asyncio.sleep(0)

    await transport.detach()
    await transport.detach()

    with pytest.raises(AlreadyClosed):
        await pending
    with pytest.raises(AlreadyClosed):
        await transport.send("Page.reload")
    assert ws.closed is True
    assert transport.connected is False
