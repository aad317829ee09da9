"""Routes ARI channel events to the matching :class:`~ariproxy.channel.Channel`.

The router keeps a registry of live channels by id, together with the
:class:`~ariproxy.channel.ChannelMutator` for each. It is the only component that
applies event-driven transitions. A channel leaves the registry when Asterisk reports it
destroyed; from then on only callers that still hold it keep it alive.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from pydantic import ValidationError

from ariproxy.channel import Channel, ChannelMutator
from ariproxy.events import (
    HANDLED_EVENT_TYPES,
    ChannelDestroyed,
    ChannelStateChange,
    StasisStart,
    parse_channel_event,
)
from ariproxy.transport import Transport

LOGGER = logging.getLogger(__name__)

StasisStartHandler = Callable[[Channel, StasisStart], Any]
StateChangeHandler = Callable[[Channel, ChannelStateChange], Any]
DestroyedHandler = Callable[[Channel, ChannelDestroyed], Any]


class EventRouter:
    def __init__(self, transport: Transport) -> None:
        self._transport = transport
        self._channels: dict[str, ChannelMutator] = {}
        self._on_stasis_start: list[StasisStartHandler] = []
        self._on_state_change: list[StateChangeHandler] = []
        self._on_destroyed: list[DestroyedHandler] = []

    def __len__(self) -> int:
        return len(self._channels)

    def __contains__(self, channel_id: object) -> bool:
        return channel_id in self._channels

    def channel(self, channel_id: str) -> Channel | None:
        mutator = self._channels.get(channel_id)
        return mutator.channel if mutator else None

    def create_channel(self, channel_id: str | None = None) -> Channel:
        """Register a locally originated channel; use ``call``/``create`` on it to dial."""

        return self._register(Channel(self._transport, channel_id))

    def _register(self, channel: Channel) -> Channel:
        if channel.id in self._channels:
            raise ValueError(f"Channel {channel.id} is already registered")
        self._channels[channel.id] = ChannelMutator(channel)
        return channel

    # -- handler registration ---------------------------------------------

    def on_stasis_start(self, handler: StasisStartHandler) -> Callable[[], None]:
        return _subscribe(self._on_stasis_start, handler)

    def on_state_change(self, handler: StateChangeHandler) -> Callable[[], None]:
        return _subscribe(self._on_state_change, handler)

    def on_destroyed(self, handler: DestroyedHandler) -> Callable[[], None]:
        return _subscribe(self._on_destroyed, handler)

    # -- dispatch ----------------------------------------------------------

    def dispatch(self, event: dict[str, Any]) -> None:
        """Apply one decoded ARI event."""

        event_type = str(event.get("type") or "")
        if event_type not in HANDLED_EVENT_TYPES:
            LOGGER.debug("Ignoring ARI event %s", event_type or "<untyped>")
            return

        try:
            parsed = parse_channel_event(event)
        except ValidationError as exc:
            LOGGER.warning("Malformed %s event: %s", event_type, exc)
            return

        if isinstance(parsed, StasisStart):
            self._stasis_start(parsed)
        elif isinstance(parsed, ChannelStateChange):
            self._state_change(parsed)
        else:
            self._destroyed(parsed)

    def _stasis_start(self, event: StasisStart) -> None:
        snapshot = event.channel
        mutator = self._channels.get(snapshot.id)
        if mutator is None:
            mutator = self._channels[snapshot.id] = ChannelMutator(Channel(self._transport, snapshot.id))

        mutator.state_changed(snapshot.state)
        mutator.started(snapshot.name, snapshot.dialplan.exten, snapshot.caller.number, snapshot.caller.name)
        LOGGER.info("StasisStart channel=%s state=%s", snapshot.id, mutator.channel.state)
        _notify(self._on_stasis_start, mutator.channel, event)

    def _state_change(self, event: ChannelStateChange) -> None:
        mutator = self._channels.get(event.channel.id)
        if mutator is None:
            LOGGER.debug("State change for unknown channel %s", event.channel.id)
            return

        mutator.state_changed(event.channel.state)
        LOGGER.debug("Channel %s is now %s", event.channel.id, mutator.channel.state)
        _notify(self._on_state_change, mutator.channel, event)

    def _destroyed(self, event: ChannelDestroyed) -> None:
        mutator = self._channels.pop(event.channel.id, None)
        if mutator is None:
            LOGGER.debug("Destroy for unknown channel %s", event.channel.id)
            return

        mutator.dead(event.cause, event.cause_txt)
        LOGGER.info("Channel %s destroyed cause=%s (%s)", event.channel.id, event.cause, event.cause_txt)
        _notify(self._on_destroyed, mutator.channel, event)


def _subscribe(handlers: list, handler: Callable) -> Callable[[], None]:
    handlers.append(handler)

    def unsubscribe() -> None:
        if handler in handlers:
            handlers.remove(handler)

    return unsubscribe


def _notify(handlers: list, channel: Channel, event: Any) -> None:
    for handler in list(handlers):
        try:
            handler(channel, event)
        except Exception:
            LOGGER.exception("Handler %r failed for %s", handler, type(event).__name__)
