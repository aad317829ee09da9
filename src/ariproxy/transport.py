"""Command transports.

:class:`Transport` is the narrow seam every resource talks to: it accepts a command
together with the continuation to resolve. :class:`HttpTransport` is the production
implementation on top of ``httpx``; tests plug in a fake that records commands.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Protocol, TypeVar, overload

import httpx

from ariproxy.command import Command
from ariproxy.continuation import Continuation
from ariproxy.errors import ConnectionClosedError, TransportError

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")


class Transport(Protocol):
    def submit(self, command: Command, continuation: Continuation) -> None:
        """Send ``command`` and resolve ``continuation`` later; must not block."""


@overload
def issue(transport: Transport, command: Command) -> Continuation[None]: ...


@overload
def issue(transport: Transport, command: Command, *, payload: T) -> Continuation[T]: ...


@overload
def issue(transport: Transport, command: Command, *, decode: Callable[[str], T]) -> Continuation[T]: ...


def issue(transport, command, *, payload=None, decode=None):
    """Hand ``command`` to ``transport`` and return its continuation.

    ``payload`` is an object created up front and delivered on success (playback and
    recording handles). ``decode`` derives the payload from the response body instead.
    """

    if decode is None:
        decode = (lambda _body: payload) if payload is not None else None
    continuation: Continuation = Continuation(f"{command.method.value} {command.target}", decode)
    LOGGER.debug("Issuing %s %s", command.method.value, command.target)
    transport.submit(command, continuation)
    return continuation


class HttpTransport:
    """``httpx`` based transport; resolves continuations on its event loop.

    The loop is the one passed in, or else the loop running at the first ``submit``.
    Commands submitted from other threads are handed over to that loop, so callbacks
    always run on it. Without any loop the continuation fails with TransportError.
    """

    def __init__(
        self,
        base_url: str,
        *,
        auth: tuple[str, str] | None = None,
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._client = client or httpx.AsyncClient(auth=auth, timeout=timeout)
        self._loop = loop
        self._pending: dict[asyncio.Task, tuple[Command, Continuation]] = {}
        self._closed = False

    @property
    def pending(self) -> int:
        return len(self._pending)

    def submit(self, command: Command, continuation: Continuation) -> None:
        try:
            running: asyncio.AbstractEventLoop | None = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if self._loop is None or self._loop.is_closed():
            self._loop = running

        loop = self._loop
        if loop is None:
            LOGGER.warning("No event loop for %s %s", command.method.value, command.target)
            continuation.set_exception(TransportError(None, "no running event loop", command))
            return

        if running is loop:
            self._start(command, continuation)
        else:
            loop.call_soon_threadsafe(self._start, command, continuation)

    def _start(self, command: Command, continuation: Continuation) -> None:
        if self._closed:
            continuation.set_exception(ConnectionClosedError(command))
            return

        task = self._loop.create_task(self._send(command, continuation))
        self._pending[task] = (command, continuation)
        task.add_done_callback(self._forget)

    def _forget(self, task: asyncio.Task) -> None:
        self._pending.pop(task, None)

    async def _send(self, command: Command, continuation: Continuation) -> None:
        headers = {"Content-Type": "application/json"} if command.body is not None else None
        try:
            resp = await self._client.request(
                command.method.value,
                f"{self._base_url}{command.target}",
                content=command.body,
                headers=headers,
            )
        except httpx.HTTPError as exc:
            LOGGER.warning("ARI command %s %s failed: %s", command.method.value, command.target, exc)
            continuation.set_exception(TransportError(None, str(exc) or type(exc).__name__, command))
            return

        if resp.is_success:
            continuation.set_result(resp.text)
            return

        LOGGER.warning(
            "ARI command %s %s rejected: %s %s",
            command.method.value,
            command.target,
            resp.status_code,
            resp.text,
        )
        continuation.set_exception(TransportError(resp.status_code, _reason(resp), command))

    async def aclose(self) -> None:
        """Fail every in-flight command with ConnectionClosedError and close the client."""

        self._closed = True
        pending = list(self._pending.items())
        self._pending.clear()
        for task, (command, continuation) in pending:
            task.cancel()
            if not continuation.done():
                continuation.set_exception(ConnectionClosedError(command))
        if pending:
            await asyncio.gather(*(task for task, _ in pending), return_exceptions=True)
        await self._client.aclose()

    async def __aenter__(self) -> HttpTransport:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()


def _reason(resp: httpx.Response) -> str:
    # ARI error bodies look like {"message": "Channel not found"}
    try:
        data = resp.json()
    except ValueError:
        return resp.text or resp.reason_phrase
    if isinstance(data, dict) and data.get("message"):
        return str(data["message"])
    return resp.text or resp.reason_phrase
