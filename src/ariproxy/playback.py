from __future__ import annotations

import uuid
from typing import Literal

from ariproxy.command import Command, Method
from ariproxy.continuation import Continuation
from ariproxy.transport import Transport, issue

PlaybackOperation = Literal["restart", "pause", "unpause", "reverse", "forward"]


class Playback:
    """Handle for a media playback started by ``Channel.play``.

    The id is fixed at construction so it can be sent with the play request itself.
    """

    def __init__(self, transport: Transport, playback_id: str | None = None) -> None:
        self._transport = transport
        self._id = playback_id or uuid.uuid4().hex

    def __repr__(self) -> str:
        return f"<Playback {self._id}>"

    @property
    def id(self) -> str:
        return self._id

    def stop(self) -> Continuation[None]:
        return issue(self._transport, Command(Method.DELETE, f"/ari/playbacks/{self._id}"))

    def control(self, operation: PlaybackOperation) -> Continuation[None]:
        return issue(
            self._transport,
            Command(Method.POST, f"/ari/playbacks/{self._id}/control", (("operation", operation),)),
        )
