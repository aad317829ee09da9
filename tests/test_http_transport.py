from __future__ import annotations

import asyncio
import threading

import httpx
import pytest

from ariproxy.channel import Channel
from ariproxy.command import Command, Method
from ariproxy.continuation import Continuation
from ariproxy.errors import ConnectionClosedError, TransportError
from ariproxy.transport import HttpTransport, issue


def _transport(handler) -> HttpTransport:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return HttpTransport("http://asterisk:8088", client=client)


def test_success_resolves_with_body() -> None:
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, json={"value": "100"})

    async def scenario() -> str | None:
        async with _transport(handler) as transport:
            channel = Channel(transport, "c1")
            return await channel.get_var("CALLERID(num)")

    assert asyncio.run(scenario()) == "100"
    [request] = requests
    assert request.method == "GET"
    assert request.url.path == "/ari/channels/c1/variable"
    assert request.content == b'{"variable":"CALLERID(num)"}'
    assert request.headers["content-type"] == "application/json"


def test_query_is_sent_as_built() -> None:
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(204)

    async def scenario() -> None:
        async with _transport(handler) as transport:
            await Channel(transport, "c1").send_dtmf("1", between=100, after=50)

    asyncio.run(scenario())
    assert requests[0].method == "POST"
    assert requests[0].url.raw_path == b"/ari/channels/c1/dtmf?dtmf=1&between=100&after=50"


def test_error_status_fails_continuation() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(404, json={"message": "Channel not found"})

    async def scenario() -> TransportError:
        async with _transport(handler) as transport:
            with pytest.raises(TransportError) as info:
                await Channel(transport, "gone").answer()
            return info.value

    error = asyncio.run(scenario())
    assert error.status_code == 404
    assert error.reason == "Channel not found"
    assert error.command is not None
    assert error.command.target == "/ari/channels/gone/answer"


def test_connection_failure_fails_continuation() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    async def scenario() -> TransportError:
        async with _transport(handler) as transport:
            errors: list[TransportError] = []
            cont = Channel(transport, "c1").hangup().on_error(errors.append)
            with pytest.raises(TransportError):
                await cont
            return errors[0]

    error = asyncio.run(scenario())
    assert error.status_code is None
    assert "connection refused" in error.reason


def test_aclose_fails_pending_commands() -> None:
    async def handler(request: httpx.Request) -> httpx.Response:
        await asyncio.sleep(10)
        return httpx.Response(204)

    async def scenario() -> tuple[Continuation, Continuation]:
        transport = _transport(handler)
        first = issue(transport, Command(Method.POST, "/ari/channels/c1/answer"))
        await asyncio.sleep(0)
        assert transport.pending == 1
        await transport.aclose()
        late = issue(transport, Command(Method.POST, "/ari/channels/c1/ring"))
        return first, late

    first, late = asyncio.run(scenario())
    assert isinstance(first.exception(), ConnectionClosedError)
    assert isinstance(late.exception(), ConnectionClosedError)


def test_operation_without_event_loop_fails_through_continuation() -> None:
    transport = HttpTransport("http://asterisk:8088")

    cont = Channel(transport, "c1").answer()

    assert cont.done() is True
    error = cont.exception()
    assert isinstance(error, TransportError)
    assert not isinstance(error, ConnectionClosedError)
    assert error.command is not None
    assert error.command.target == "/ari/channels/c1/answer"


def test_submit_from_another_thread_runs_on_transport_loop() -> None:
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(204)

    async def scenario() -> tuple[int, int]:
        loop_thread = threading.get_ident()
        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        async with HttpTransport("http://asterisk:8088", client=client, loop=asyncio.get_running_loop()) as transport:
            channel = Channel(transport, "c1")
            cont = await asyncio.to_thread(channel.answer)
            callback_threads: list[int] = []
            cont.on_success(lambda _: callback_threads.append(threading.get_ident()))
            await cont
        return loop_thread, callback_threads[0]

    loop_thread, callback_thread = asyncio.run(scenario())
    assert callback_thread == loop_thread
    assert [r.url.path for r in requests] == ["/ari/channels/c1/answer"]
