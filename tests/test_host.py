import pytest

from core.host import HeadlessHost


@pytest.mark.asyncio
async def test_teardown_runs_newest_first():
    host = HeadlessHost()
    order = []

    async def first():
        order.append("first")

    async def second():
        order.append("second")

    host.register_teardown(first)
    host.register_teardown(second)
    await host.teardown()

    assert order == ["second", "first"]
    await host.teardown()
    assert order == ["second", "first"]


@pytest.mark.asyncio
async def test_unregistered_teardown_does_not_run():
    host = HeadlessHost()
    ran = []

    async def callback():
        ran.append(True)

    unregister = host.register_teardown(callback)
    unregister()
    unregister()
    await host.teardown()

    assert ran == []


def test_show_error_records_message():
    host = HeadlessHost()
    host.show_error("Failed to launch browser: boom")
    assert host.errors == ["Failed to launch browser: boom"]
