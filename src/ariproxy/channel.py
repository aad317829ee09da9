"""Local proxy for one ARI channel (call leg).

Every operation builds a :class:`~ariproxy.command.Command`, hands it to the transport
and returns a :class:`~ariproxy.continuation.Continuation` immediately. Remote failures
(unknown channel, bad parameter) only ever arrive through the continuation's error path.

State, liveness and caller details are driven by ARI events. Only the
:class:`ChannelMutator` paired with a channel can change them, and the event router is
the only holder of that mutator.
"""

from __future__ import annotations

import json
import logging
import uuid
from collections.abc import Mapping
from enum import Enum
from typing import Any

from ariproxy.causes import HangupCause
from ariproxy.command import Command, Method, QueryBuilder
from ariproxy.continuation import Continuation
from ariproxy.dtmf import TerminationDtmf
from ariproxy.playback import Playback
from ariproxy.recording import LiveRecording
from ariproxy.transport import Transport, issue

LOGGER = logging.getLogger(__name__)

CHANNELS_PATH = "/ari/channels"


class ChannelState(str, Enum):
    DOWN = "down"
    RESERVED = "reserved"
    OFFHOOK = "offhook"
    DIALING = "dialing"
    RING = "ring"
    RINGING = "ringing"
    UP = "up"
    BUSY = "busy"
    DIALING_OFFHOOK = "dialingoffhook"
    PRERING = "prering"
    MUTE = "mute"
    UNKNOWN = "unknown"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def from_label(cls, label: str) -> ChannelState:
        """Map an Asterisk state label (``"Dialing Offhook"``, ``"Rsrvd"``...); unmatched -> UNKNOWN."""

        return _STATE_LABELS.get(label, cls.UNKNOWN)


_STATE_LABELS: dict[str, ChannelState] = {
    "Down": ChannelState.DOWN,
    "Rsrvd": ChannelState.RESERVED,
    "OffHook": ChannelState.OFFHOOK,
    "Dialing": ChannelState.DIALING,
    "Ring": ChannelState.RING,
    "Ringing": ChannelState.RINGING,
    "Up": ChannelState.UP,
    "Busy": ChannelState.BUSY,
    "Dialing Offhook": ChannelState.DIALING_OFFHOOK,
    "Pre-ring": ChannelState.PRERING,
    "Mute": ChannelState.MUTE,
    "Unknown": ChannelState.UNKNOWN,
}


class Direction(str, Enum):
    NONE = "none"
    BOTH = "both"
    IN = "in"
    OUT = "out"

    def __str__(self) -> str:
        return self.value


class Channel:
    def __init__(self, transport: Transport, channel_id: str | None = None, state: str = "") -> None:
        self._transport = transport
        self._id = channel_id or uuid.uuid4().hex
        self._state = ChannelState.from_label(state)
        self._destroyed = False
        self._cause = -1
        self._cause_text = ""
        self._name = ""
        self._extension = ""
        self._caller_number = ""
        self._caller_name = ""
        self._closed = False

    def __repr__(self) -> str:
        return f"<Channel {self._id} state={self._state} destroyed={self._destroyed}>"

    # -- observed state ----------------------------------------------------

    @property
    def id(self) -> str:
        return self._id

    @property
    def state(self) -> ChannelState:
        return self._state

    @property
    def destroyed(self) -> bool:
        """True once Asterisk reported the channel gone; never reverts."""

        return self._destroyed

    @property
    def cause(self) -> int:
        """Q.850 cause code of the hangup, ``-1`` until the channel is destroyed."""

        return self._cause

    @property
    def cause_text(self) -> str:
        return self._cause_text

    @property
    def hangup_cause(self) -> HangupCause | None:
        return HangupCause.lookup(self._cause)

    @property
    def name(self) -> str:
        return self._name

    @property
    def extension(self) -> str:
        return self._extension

    @property
    def caller_number(self) -> str:
        return self._caller_number

    @property
    def caller_name(self) -> str:
        return self._caller_name

    # -- operations --------------------------------------------------------

    @property
    def _path(self) -> str:
        return f"{CHANNELS_PATH}/{self._id}"

    def _issue(self, method: Method, path: str, query: QueryBuilder | None = None, body: str | None = None):
        return issue(self._transport, Command(method, path, query.build() if query else (), body))

    def ring(self) -> Continuation[None]:
        return self._issue(Method.POST, f"{self._path}/ring")

    def ring_stop(self) -> Continuation[None]:
        return self._issue(Method.DELETE, f"{self._path}/ring")

    def mute(self, direction: Direction = Direction.BOTH) -> Continuation[None]:
        return self._issue(Method.POST, f"{self._path}/mute", QueryBuilder().add("direction", direction))

    def unmute(self, direction: Direction = Direction.BOTH) -> Continuation[None]:
        return self._issue(Method.DELETE, f"{self._path}/mute", QueryBuilder().add("direction", direction))

    def hold(self) -> Continuation[None]:
        return self._issue(Method.POST, f"{self._path}/hold")

    def unhold(self) -> Continuation[None]:
        return self._issue(Method.DELETE, f"{self._path}/hold")

    def silence(self) -> Continuation[None]:
        return self._issue(Method.POST, f"{self._path}/silence")

    def stop_silence(self) -> Continuation[None]:
        return self._issue(Method.DELETE, f"{self._path}/silence")

    def start_moh(self, moh_class: str = "") -> Continuation[None]:
        return self._issue(Method.POST, f"{self._path}/moh", QueryBuilder().add_if("mohClass", moh_class))

    def stop_moh(self) -> Continuation[None]:
        return self._issue(Method.DELETE, f"{self._path}/moh")

    def answer(self) -> Continuation[None]:
        return self._issue(Method.POST, f"{self._path}/answer")

    def hangup(self) -> Continuation[None]:
        """Hang up; a later :meth:`close` will not send a second DELETE."""

        self._closed = True
        return self._issue(Method.DELETE, self._path)

    def call(
        self,
        endpoint: str,
        application: str,
        caller_id: str,
        variables: Mapping[str, Any] | str | None = None,
    ) -> Continuation[None]:
        """Originate this channel and dial immediately.

        Args:
            endpoint: Endpoint to call, e.g. ``pjsip/100``.
            application: Stasis application that receives the channel once answered.
            caller_id: Caller ID presented to the callee.
            variables: Channel variables to set on creation, e.g.
                ``{"CALLERID(name)": "Alice"}``; a pre-serialized JSON object is sent as-is.
        """

        query = (
            QueryBuilder()
            .add("endpoint", endpoint, encode=True)
            .add("app", application, encode=True)
            .add("channelId", self._id, encode=True)
            .add("callerId", caller_id, encode=True)
            .add("timeout", -1)
            .add("appArgs", "internal")
        )
        return self._issue(Method.POST, CHANNELS_PATH, query, _variables_body(variables))

    def create(self, endpoint: str, application: str) -> Continuation[None]:
        """Create the channel without dialing; follow up with :meth:`dial`."""

        query = (
            QueryBuilder()
            .add("endpoint", endpoint, encode=True)
            .add("app", application, encode=True)
            .add("channelId", self._id, encode=True)
            .add("appArgs", "internal")
        )
        return self._issue(Method.POST, f"{CHANNELS_PATH}/create", query)

    def dial(self) -> Continuation[None]:
        return self._issue(Method.POST, f"{self._path}/dial")

    def redirect(self, endpoint: str) -> Continuation[None]:
        return self._issue(
            Method.POST,
            f"{self._path}/redirect",
            QueryBuilder().add("endpoint", endpoint, encode=True),
        )

    def send_dtmf(
        self,
        dtmf: str,
        between: int = -1,
        duration: int = -1,
        before: int = -1,
        after: int = -1,
    ) -> Continuation[None]:
        """Send DTMF digits; timings are in milliseconds and omitted when negative."""

        query = (
            QueryBuilder()
            .add("dtmf", dtmf, encode=True)
            .add_non_negative("between", between)
            .add_non_negative("duration", duration)
            .add_non_negative("before", before)
            .add_non_negative("after", after)
        )
        return self._issue(Method.POST, f"{self._path}/dtmf", query)

    def play(
        self,
        media: str,
        lang: str = "",
        playback_id: str = "",
        offsetms: int = -1,
        skipms: int = -1,
    ) -> Continuation[Playback]:
        """Start playing ``media`` (``sound:...``, ``recording:...``).

        The returned continuation resolves to a :class:`Playback` whose id is already
        in the request, so ``PlaybackStarted`` events can be matched before the
        response arrives.
        """

        playback = Playback(self._transport, playback_id or None)
        query = (
            QueryBuilder()
            .add("media", media, encode=True)
            .add("playbackId", playback.id)
            .add_if("lang", lang)
            .add_non_negative("offsetms", offsetms)
            .add_non_negative("skipms", skipms)
        )
        return issue(
            self._transport,
            Command(Method.POST, f"{self._path}/play", query.build()),
            payload=playback,
        )

    def record(
        self,
        name: str,
        format: str,
        max_duration_seconds: int = -1,
        max_silence_seconds: int = -1,
        if_exists: str = "",
        beep: bool = False,
        terminate_on: TerminationDtmf = TerminationDtmf.NONE,
    ) -> Continuation[LiveRecording]:
        recording = LiveRecording(self._transport, name)
        query = (
            QueryBuilder()
            .add("name", name, encode=True)
            .add("format", format)
            .add("terminateOn", terminate_on, encode=True)
            .add("beep", "true" if beep else "false")
            .add_if("ifExists", if_exists)
            .add_non_negative("maxDurationSeconds", max_duration_seconds)
            .add_non_negative("maxSilenceSeconds", max_silence_seconds)
        )
        return issue(
            self._transport,
            Command(Method.POST, f"{self._path}/record", query.build()),
            payload=recording,
        )

    def set_var(self, variable: str, value: str = "") -> Continuation[None]:
        query = QueryBuilder().add("variable", variable, encode=True).add_if("value", value, encode=True)
        return self._issue(Method.POST, f"{self._path}/variable", query)

    def get_var(self, variable: str) -> Continuation[str]:
        body = json.dumps({"variable": variable}, separators=(",", ":"))
        return issue(
            self._transport,
            Command(Method.GET, f"{self._path}/variable", body=body),
            decode=_variable_value,
        )

    def snoop(
        self,
        app: str,
        spy: Direction = Direction.NONE,
        whisper: Direction = Direction.NONE,
        app_args: str = "",
        snoop_id: str = "",
    ) -> Continuation[None]:
        query = (
            QueryBuilder()
            .add("app", app)
            .add("spy", spy)
            .add("whisper", whisper)
            .add_if("appArgs", app_args)
            .add_if("snoopId", snoop_id)
        )
        return self._issue(Method.POST, f"{self._path}/snoop", query)

    # -- teardown ----------------------------------------------------------

    def close(self) -> Continuation[None] | None:
        """Hang up unless the channel is already destroyed or closed.

        Returns the hangup continuation, or ``None`` when nothing was sent.
        """

        if self._closed or self._destroyed:
            return None
        LOGGER.debug("Closing channel %s", self._id)
        return self.hangup()

    def __enter__(self) -> Channel:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


class ChannelMutator:
    """Write access to the event-driven fields of one :class:`Channel`."""

    def __init__(self, channel: Channel) -> None:
        self._channel = channel

    @property
    def channel(self) -> Channel:
        return self._channel

    def state_changed(self, label: str) -> None:
        self._channel._state = ChannelState.from_label(label)

    def started(self, name: str, extension: str, caller_number: str, caller_name: str) -> None:
        channel = self._channel
        channel._name = name
        channel._extension = extension
        channel._caller_number = caller_number
        channel._caller_name = caller_name

    def dead(self, cause: int, cause_text: str = "") -> None:
        channel = self._channel
        channel._destroyed = True
        channel._cause = cause
        channel._cause_text = cause_text


def _variables_body(variables: Mapping[str, Any] | str | None) -> str | None:
    if not variables:
        return None
    if isinstance(variables, str):
        return '{"variables":' + variables + "}"
    return json.dumps({"variables": dict(variables)}, separators=(",", ":"))


def _variable_value(body: str) -> str:
    data = json.loads(body)
    return str(data["value"])
