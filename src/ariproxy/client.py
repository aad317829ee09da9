from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import AsyncIterator
from dataclasses import dataclass
from urllib.parse import urlencode

import websockets

from ariproxy.channel import Channel
from ariproxy.router import EventRouter
from ariproxy.transport import HttpTransport
from config.settings import Settings, get_settings

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class AriAuth:
    username: str
    password: str


class AriClient:
    """ARI connection: HTTP commands plus the ``/events`` websocket.

    Commands and event dispatch share the running event loop, which is what keeps
    channel state consistent without locks.
    """

    def __init__(self, settings: Settings | None = None, *, transport: HttpTransport | None = None) -> None:
        settings = settings or get_settings()
        if not settings.asterisk_ari_username or not settings.asterisk_ari_password:
            raise RuntimeError("ASTERISK_ARI_USERNAME/PASSWORD not configured")

        self._base_url = settings.asterisk_ari_url
        self._app = settings.asterisk_stasis_app
        self._auth = AriAuth(settings.asterisk_ari_username, settings.asterisk_ari_password)
        self._reconnect_delay = settings.ari_reconnect_delay
        self._ping_interval = settings.ari_ping_interval
        self._transport = transport or HttpTransport(
            settings.ari_server_url,
            auth=(self._auth.username, self._auth.password),
            timeout=settings.ari_request_timeout,
        )
        self._router = EventRouter(self._transport)

    @property
    def app(self) -> str:
        return self._app

    @property
    def router(self) -> EventRouter:
        return self._router

    @property
    def transport(self) -> HttpTransport:
        return self._transport

    def create_channel(self, channel_id: str | None = None) -> Channel:
        return self._router.create_channel(channel_id)

    async def run_forever(self) -> None:
        """Consume ARI events until cancelled, reconnecting on failures."""

        ws_url = self.events_ws_url()
        LOGGER.info("Connecting to ARI events for app=%s", self._app)

        async for ws in self._ws_connect_loop(ws_url):
            try:
                await self._handle_events(ws)
            except websockets.ConnectionClosed:
                LOGGER.warning("ARI websocket closed; reconnecting")
            except Exception:
                LOGGER.exception("ARI event loop crashed; reconnecting")

    async def _handle_events(self, ws: AsyncIterator[str | bytes]) -> None:
        async for message in ws:
            try:
                event = json.loads(message)
            except json.JSONDecodeError:
                LOGGER.warning("Dropping undecodable ARI event")
                continue
            if not isinstance(event, dict):
                continue
            self._router.dispatch(event)

    def events_ws_url(self) -> str:
        # ARI events WS endpoint: /ari/events?app=<app>&api_key=<user>:<pass>
        base = self._base_url
        if base.startswith("https://"):
            scheme = "wss://"
            rest = base.removeprefix("https://")
        elif base.startswith("http://"):
            scheme = "ws://"
            rest = base.removeprefix("http://")
        else:
            scheme = "ws://"
            rest = base

        query = urlencode({"app": self._app, "api_key": f"{self._auth.username}:{self._auth.password}"})
        return f"{scheme}{rest}/events?{query}"

    async def _ws_connect_loop(self, ws_url: str):
        while True:
            try:
                async with websockets.connect(
                    ws_url,
                    ping_interval=self._ping_interval,
                    ping_timeout=self._ping_interval,
                ) as ws:
                    LOGGER.info("Connected to ARI events")
                    yield ws
            except (OSError, websockets.WebSocketException):
                LOGGER.exception("Failed to connect to ARI websocket; retrying")
            await asyncio.sleep(self._reconnect_delay)

    async def aclose(self) -> None:
        await self._transport.aclose()
