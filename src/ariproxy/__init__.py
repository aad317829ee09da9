"""Asterisk ARI channel control.

Channel operations return continuations that the transport resolves asynchronously;
channel state follows ARI events routed by :class:`EventRouter`.
"""

from ariproxy.causes import HangupCause
from ariproxy.channel import Channel, ChannelMutator, ChannelState, Direction
from ariproxy.client import AriClient
from ariproxy.command import Command, Method
from ariproxy.continuation import Continuation
from ariproxy.dtmf import TerminationDtmf
from ariproxy.errors import AriError, ConnectionClosedError, InvalidStateError, TransportError
from ariproxy.playback import Playback
from ariproxy.recording import LiveRecording
from ariproxy.router import EventRouter
from ariproxy.transport import HttpTransport, Transport, issue

__all__ = [
    "AriClient",
    "AriError",
    "Channel",
    "ChannelMutator",
    "ChannelState",
    "Command",
    "ConnectionClosedError",
    "Continuation",
    "Direction",
    "EventRouter",
    "HangupCause",
    "HttpTransport",
    "InvalidStateError",
    "LiveRecording",
    "Method",
    "Playback",
    "TerminationDtmf",
    "Transport",
    "TransportError",
    "issue",
]
