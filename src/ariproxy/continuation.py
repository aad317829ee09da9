"""Command/response correlation.

A :class:`Continuation` stands for one in-flight ARI command. The transport resolves it
exactly once, either with a response body (converted to the typed payload) or with a
:class:`~ariproxy.errors.TransportError`. Callers attach callbacks or simply ``await`` it.

Everything runs on the single event loop that also delivers ARI events, so there is no
locking here. Callbacks registered after resolution fire immediately.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Generator
from enum import Enum
from typing import Any, Generic, TypeVar

from ariproxy.errors import InvalidStateError, TransportError

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")

SuccessCallback = Callable[[T], Any]
ErrorCallback = Callable[[TransportError], Any]


class _Status(Enum):
    PENDING = "pending"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


def _discard_body(_body: str) -> None:
    return None


class Continuation(Generic[T]):
    """Typed handle for one pending command.

    ``convert`` turns the raw response body into the success payload; by default the
    body is dropped and callbacks receive ``None``.
    """

    def __init__(self, description: str = "", convert: Callable[[str], T] | None = None) -> None:
        self._description = description
        self._convert = convert or _discard_body  # type: ignore[assignment]
        self._status = _Status.PENDING
        self._result: T | None = None
        self._error: TransportError | None = None
        self._success_callbacks: list[SuccessCallback] = []
        self._error_callbacks: list[ErrorCallback] = []

    def __repr__(self) -> str:
        return f"<Continuation {self._description or '?'} {self._status.value}>"

    # -- caller side -------------------------------------------------------

    def on_success(self, callback: SuccessCallback) -> Continuation[T]:
        if self._status is _Status.SUCCEEDED:
            self._invoke(callback, self._result)
        elif self._status is _Status.PENDING:
            self._success_callbacks.append(callback)
        return self

    def on_error(self, callback: ErrorCallback) -> Continuation[T]:
        if self._status is _Status.FAILED:
            self._invoke(callback, self._error)
        elif self._status is _Status.PENDING:
            self._error_callbacks.append(callback)
        return self

    def done(self) -> bool:
        return self._status is not _Status.PENDING

    def result(self) -> T | None:
        """Return the payload, raise the failure, or raise InvalidStateError while pending."""

        if self._status is _Status.PENDING:
            raise InvalidStateError("Continuation is still pending.")
        if self._error is not None:
            raise self._error
        return self._result

    def exception(self) -> TransportError | None:
        if self._status is _Status.PENDING:
            raise InvalidStateError("Continuation is still pending.")
        return self._error

    def __await__(self) -> Generator[Any, None, T | None]:
        if not self.done():
            future: asyncio.Future[T | None] = asyncio.get_running_loop().create_future()

            def _set_result(value: T | None) -> None:
                if not future.done():
                    future.set_result(value)

            def _set_exception(error: TransportError) -> None:
                if not future.done():
                    future.set_exception(error)

            self.on_success(_set_result)
            self.on_error(_set_exception)
            yield from future.__await__()
        return self.result()

    # -- transport side ----------------------------------------------------

    def set_result(self, body: str = "") -> None:
        """Resolve successfully; ``body`` is the raw response text."""

        self._ensure_pending()
        try:
            value = self._convert(body)
        except Exception as exc:  # noqa: BLE001 - a bad body is a failed command for the caller
            LOGGER.warning("Could not decode response for %s: %s", self._description, exc)
            self.set_exception(TransportError(None, f"invalid response body: {exc}"))
            return

        self._status = _Status.SUCCEEDED
        self._result = value
        callbacks = self._success_callbacks
        self._success_callbacks = []
        self._error_callbacks = []
        LOGGER.debug("Resolved %s", self._description)
        for callback in callbacks:
            self._invoke(callback, value)

    def set_exception(self, error: TransportError) -> None:
        self._ensure_pending()
        self._status = _Status.FAILED
        self._error = error
        callbacks = self._error_callbacks
        self._success_callbacks = []
        self._error_callbacks = []
        if not callbacks:
            LOGGER.debug("Unobserved failure for %s: %s", self._description, error)
        for callback in callbacks:
            self._invoke(callback, error)

    def _ensure_pending(self) -> None:
        if self._status is not _Status.PENDING:
            raise InvalidStateError(f"{self!r} already resolved")

    @staticmethod
    def _invoke(callback: Callable[[Any], Any], value: Any) -> None:
        try:
            callback(value)
        except Exception:
            LOGGER.exception("Continuation callback %r failed", callback)
