from __future__ import annotations

from ariproxy.command import Command, Method, url_encode
from ariproxy.continuation import Continuation
from ariproxy.transport import Transport, issue


class LiveRecording:
    """Handle for a recording started by ``Channel.record``; addressed by name."""

    def __init__(self, transport: Transport, name: str) -> None:
        self._transport = transport
        self._name = name

    def __repr__(self) -> str:
        return f"<LiveRecording {self._name}>"

    @property
    def name(self) -> str:
        return self._name

    @property
    def _path(self) -> str:
        return f"/ari/recordings/live/{url_encode(self._name)}"

    def stop(self) -> Continuation[None]:
        """Stop and store the recording."""

        return issue(self._transport, Command(Method.POST, f"{self._path}/stop"))

    def cancel(self) -> Continuation[None]:
        """Stop and discard the recording."""

        return issue(self._transport, Command(Method.DELETE, self._path))

    def pause(self) -> Continuation[None]:
        return issue(self._transport, Command(Method.POST, f"{self._path}/pause"))

    def unpause(self) -> Continuation[None]:
        return issue(self._transport, Command(Method.DELETE, f"{self._path}/pause"))

    def mute(self) -> Continuation[None]:
        return issue(self._transport, Command(Method.POST, f"{self._path}/mute"))

    def unmute(self) -> Continuation[None]:
        return issue(self._transport, Command(Method.DELETE, f"{self._path}/mute"))
