from __future__ import annotations

import argparse
import asyncio
import logging

from ariproxy.channel import Channel
from ariproxy.client import AriClient
from ariproxy.continuation import Continuation
from ariproxy.errors import TransportError
from ariproxy.events import ChannelDestroyed, StasisStart
from ariproxy.playback import Playback
from config.settings import Settings, get_settings

LOGGER = logging.getLogger(__name__)

# Channels originated through Channel.call/create enter Stasis with this argument.
INTERNAL_APP_ARG = "internal"


class AriController:
    """Stasis application: answers incoming channels and plays a greeting.

    It expects an Asterisk dialplan that sends channels into the Stasis app, e.g.
    ``exten => _X.,1,Stasis(ariproxy)``. Any failed command hangs the channel up.
    """

    def __init__(self, client: AriClient | None = None, settings: Settings | None = None) -> None:
        settings = settings or get_settings()
        self._client = client or AriClient(settings)
        self._greeting = settings.ari_greeting_media
        self._active: dict[str, Channel] = {}

        self._client.router.on_stasis_start(self._on_stasis_start)
        self._client.router.on_destroyed(self._on_destroyed)

    @property
    def active_channels(self) -> list[Channel]:
        return list(self._active.values())

    async def run_forever(self) -> None:
        try:
            await self._client.run_forever()
        finally:
            await self.shutdown()

    async def shutdown(self) -> None:
        """Hang up held channels, wait for the hangups to settle, then close the client."""

        hangups = self.close_all()
        if hangups:
            await asyncio.gather(*hangups, return_exceptions=True)
        await self._client.aclose()

    def close_all(self) -> list[Continuation[None]]:
        """Hang up every channel still held by the controller; returns the hangups sent."""

        hangups = [hangup for channel in self._active.values() if (hangup := channel.close()) is not None]
        self._active.clear()
        return hangups

    def _on_stasis_start(self, channel: Channel, event: StasisStart) -> None:
        if INTERNAL_APP_ARG in event.args:
            return

        LOGGER.info("Incoming call channel=%s from=%s <%s>", channel.id, channel.caller_name, channel.caller_number)
        self._active[channel.id] = channel
        channel.answer().on_success(lambda _: self._greet(channel)).on_error(
            lambda error: self._abort(channel, "answer", error)
        )

    def _greet(self, channel: Channel) -> None:
        channel.play(self._greeting).on_success(
            lambda playback: self._on_playback(channel, playback)
        ).on_error(lambda error: self._abort(channel, "play", error))

    def _on_playback(self, channel: Channel, playback: Playback) -> None:
        LOGGER.info("Playing %s on channel=%s (playback=%s)", self._greeting, channel.id, playback.id)

    def _abort(self, channel: Channel, step: str, error: TransportError) -> None:
        LOGGER.warning("%s failed on channel=%s: %s", step, channel.id, error)
        self._active.pop(channel.id, None)
        channel.close()

    def _on_destroyed(self, channel: Channel, event: ChannelDestroyed) -> None:
        if self._active.pop(channel.id, None) is not None:
            LOGGER.info("Call ended channel=%s cause=%s", channel.id, channel.hangup_cause or channel.cause)


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="ARI Stasis application answering incoming channels")
    parser.add_argument("--app", default=None, help="Stasis application name (overrides ASTERISK_STASIS_APP)")
    parser.add_argument("--greeting", default=None, help="Media URI to play (overrides ARI_GREETING_MEDIA)")
    return parser.parse_args()


async def _amain(settings: Settings) -> None:
    ctrl = AriController(settings=settings)
    await ctrl.run_forever()


def main() -> None:
    args = _parse_args()
    settings = get_settings()
    overrides = {
        key: value
        for key, value in {"asterisk_stasis_app": args.app, "ari_greeting_media": args.greeting}.items()
        if value
    }
    if overrides:
        settings = settings.model_copy(update=overrides)

    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    asyncio.run(_amain(settings))


if __name__ == "__main__":
    main()
