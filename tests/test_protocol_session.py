import asyncio

import pytest

from core.events import CommandError, CommandResult, ProtocolEvent
from core.exceptions import CommandFailure, SessionAttachFailure
from core.page_hooks import ExposedFunc, STARTUP_SCRIPT
from core.protocol_session import ProtocolSession
from fakes import FakeClipboard, FakePage, FakeTransport, settle


async def _attached(page=None, clipboard=None, transport=None, color_scheme="dark"):
    page = page or FakePage()
    transport = transport or FakeTransport()

    async def factory(p):
        return transport

    session = ProtocolSession(page, clipboard or FakeClipboard(), factory, color_scheme=color_scheme)
    await session.attach()
    received = []
    session.subscribe(received.append)
    return session, page, transport, received


@pytest.mark.asyncio
async def test_attach_installs_hooks_script_and_theme():
    session, page, transport, _ = await _attached(color_scheme="light")

    assert set(page.exposed) == {f.value for f in ExposedFunc}
    assert page.init_scripts == [STARTUP_SCRIPT]
    assert page.color_scheme == "light"
    assert session.id == "T1"
    assert session.attached is True
    assert len(transport.listeners) == 1


def test_startup_script_checks_probe_before_listening():
    probe = STARTUP_SCRIPT.index(ExposedFunc.ENABLE_COPY_PASTE.value)
    listeners = STARTUP_SCRIPT.index("addEventListener('copy'")
    assert probe < listeners
    assert "screencastEnabled" in STARTUP_SCRIPT
    assert "addEventListener('cut'" in STARTUP_SCRIPT
    assert "preventDefault" in STARTUP_SCRIPT


@pytest.mark.asyncio
async def test_expose_failure_degrades_without_failing_attach():
    page = FakePage()
    page.fail_expose = {ExposedFunc.EMIT_COPY.value}
    session, page, _, _ = await _attached(page=page)
    assert ExposedFunc.EMIT_COPY.value not in page.exposed
    assert session.attached is True


@pytest.mark.asyncio
async def test_transport_failure_is_attach_failure():
    async def factory(page):
        raise ConnectionRefusedError("no debugger")

    session = ProtocolSession(FakePage(), FakeClipboard(), factory)
    with pytest.raises(SessionAttachFailure):
        await session.attach()


@pytest.mark.asyncio
async def test_page_hooks_sync_clipboard():
    clipboard = FakeClipboard(text="from os")
    _, page, _, _ = await _attached(clipboard=clipboard)

    assert await page.exposed[ExposedFunc.ENABLE_COPY_PASTE.value]() is True
    assert await page.exposed[ExposedFunc.GET_PASTE.value]() == "from os"
    await page.exposed[ExposedFunc.EMIT_COPY.value]("copied in page")
    assert clipboard.text == "copied in page"


@pytest.mark.asyncio
async def test_page_hooks_survive_clipboard_failure():
    clipboard = FakeClipboard()
    clipboard.fail = True
    _, page, _, _ = await _attached(clipboard=clipboard)

    assert await page.exposed[ExposedFunc.EMIT_COPY.value]("x") is False
    assert await page.exposed[ExposedFunc.GET_PASTE.value]() == ""


@pytest.mark.asyncio
async def test_unrecognized_action_forwards_verbatim_and_emits_once():
    transport = FakeTransport()
    transport.responses["DOM.getDocument"] = {"root": {"nodeId": 1}}
    session, _, _, received = await _attached(transport=transport)

    await session.send("DOM.getDocument", {"depth": 1}, 7)

    assert transport.sent == [("DOM.getDocument", {"depth": 1})]
    assert received == [CommandResult(correlation_id=7, result={"root": {"nodeId": 1}})]


@pytest.mark.asyncio
async def test_command_failure_emits_error_only():
    transport = FakeTransport()
    transport.responses["Bad.method"] = CommandFailure("Bad.method", "not found")
    session, _, _, received = await _attached(transport=transport)

    await session.send("Bad.method", {}, 3)

    assert len(received) == 1
    assert isinstance(received[0], CommandError)
    assert received[0].correlation_id == 3
    assert "not found" in received[0].error
    assert received[0].to_message() == {"correlationId": 3, "error": received[0].error}


@pytest.mark.asyncio
async def test_navigation_shortcuts_use_page_history():
    session, page, transport, received = await _attached()

    await session.send("Page.goForward", correlation_id=1)
    await session.send("Page.goBackward", correlation_id=2)
    await session.send("Page.goBack", correlation_id=3)

    assert page.calls == ["forward", "back", "back"]
    assert transport.sent == []
    assert [e.correlation_id for e in received] == [1, 2, 3]
    assert all(isinstance(e, CommandResult) for e in received)


@pytest.mark.asyncio
async def test_clipboard_shortcut():
    clipboard = FakeClipboard()
    await clipboard.write_text("abc")
    session, _, transport, received = await _attached(clipboard=clipboard)

    await session.send("Clipboard.readText", correlation_id=5)
    assert received == [CommandResult(correlation_id=5, result="abc")]
    assert transport.sent == []

    clipboard.fail = True
    await session.send("Clipboard.readText", correlation_id=6)
    assert isinstance(received[-1], CommandError)
    assert received[-1].correlation_id == 6


@pytest.mark.asyncio
async def test_send_before_attach_emits_error():
    async def factory(page):
        return FakeTransport()

    session = ProtocolSession(FakePage(), FakeClipboard(), factory)
    received = []
    session.subscribe(received.append)

    await session.send("Runtime.enable", correlation_id=1)
    assert len(received) == 1
    assert isinstance(received[0], CommandError)


@pytest.mark.asyncio
async def test_concurrent_commands_complete_out_of_order():
    transport = FakeTransport()
    transport.gates["Slow.call"] = asyncio.Event()
    session, _, _, received = await _attached(transport=transport)

    slow = asyncio.ensure_future(session.send("Slow.call", {}, 1))
    await settle()
    await session.send("Fast.call", {}, 2)
    transport.gates["Slow.call"].set()
    await slow

    assert [e.correlation_id for e in received] == [2, 1]


@pytest.mark.asyncio
async def test_protocol_events_are_re_emitted_in_order():
    session, _, transport, received = await _attached()

    transport.fire("Page.frameNavigated", {"frame": {"id": "T1"}})
    transport.fire("Runtime.consoleAPICalled", {"type": "log"})
    await settle()

    assert received == [
        ProtocolEvent(method="Page.frameNavigated", result={"frame": {"id": "T1"}}),
        ProtocolEvent(method="Runtime.consoleAPICalled", result={"type": "log"}),
    ]
    assert received[0].to_message() == {"method": "Page.frameNavigated", "result": {"frame": {"id": "T1"}}}


@pytest.mark.asyncio
async def test_dispose_detaches_removes_hooks_and_closes_page():
    session, page, transport, _ = await _attached()

    await session.dispose()

    assert transport.detach_count == 1
    assert sorted(page.removed) == sorted(f.value for f in ExposedFunc)
    assert page.exposed == {}
    assert page.closed is True
    assert session.attached is False


@pytest.mark.asyncio
async def test_dispose_swallows_hook_removal_failures():
    session, page, _, _ = await _attached()
    page.fail_remove = True

    await session.dispose()
    assert page.closed is True


@pytest.mark.asyncio
async def test_late_response_after_dispose_is_discarded():
    transport = FakeTransport()
    transport.gates["Page.captureScreenshot"] = asyncio.Event()
    session, _, _, received = await _attached(transport=transport)

    in_flight = asyncio.ensure_future(session.send("Page.captureScreenshot", {}, 9))
    await settle()
    await session.dispose()

    transport.gates["Page.captureScreenshot"].set()
    await in_flight
    transport.fire("Page.loadEventFired", {})
    await settle()

    assert received == []
