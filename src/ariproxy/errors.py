"""Exceptions raised or delivered by the ARI client layer.

Command failures are never raised synchronously from channel operations; they reach
callers through :class:`ariproxy.continuation.Continuation` error callbacks.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ariproxy.command import Command


class AriError(Exception):
    default_detail: str = "ARI error"

    def __init__(self, detail: str | None = None) -> None:
        super().__init__(detail or self.default_detail)
        self.detail = detail or self.default_detail


class InvalidStateError(AriError):
    default_detail = "Continuation already resolved."


class TransportError(AriError):
    """A command failed at the protocol level (non-2xx response or connection failure)."""

    default_detail = "ARI command failed."

    def __init__(
        self,
        status_code: int | None = None,
        reason: str | None = None,
        command: Command | None = None,
    ) -> None:
        self.status_code = status_code
        self.reason = reason or ""
        self.command = command

        parts = []
        if command is not None:
            parts.append(f"{command.method.value} {command.target}")
        if status_code is not None:
            parts.append(f"status={status_code}")
        if self.reason:
            parts.append(self.reason)
        super().__init__(": ".join(parts) if parts else None)


class ConnectionClosedError(TransportError):
    default_detail = "ARI transport closed before the command completed."

    def __init__(self, command: Command | None = None) -> None:
        super().__init__(None, self.default_detail, command)
