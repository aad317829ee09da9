from __future__ import annotations

import pytest

from ariproxy.channel import ChannelState
from ariproxy.router import EventRouter


def _snapshot(channel_id: str = "c1", state: str = "Ring") -> dict:
    return {
        "id": channel_id,
        "name": "PJSIP/100-00000001",
        "state": state,
        "caller": {"name": "Alice", "number": "100"},
        "connected": {"name": "", "number": ""},
        "dialplan": {"context": "from-internal", "exten": "200", "priority": 1},
        "creationtime": "2024-01-01T10:00:00.000+0000",
        "language": "en",
    }


def stasis_start(channel_id: str = "c1", state: str = "Ring", args: list[str] | None = None) -> dict:
    return {
        "type": "StasisStart",
        "application": "ariproxy",
        "args": args or [],
        "channel": _snapshot(channel_id, state),
    }


def state_change(channel_id: str = "c1", state: str = "Up") -> dict:
    return {"type": "ChannelStateChange", "application": "ariproxy", "channel": _snapshot(channel_id, state)}


def destroyed(channel_id: str = "c1", cause: int = 16, cause_txt: str = "Normal Clearing") -> dict:
    return {
        "type": "ChannelDestroyed",
        "application": "ariproxy",
        "cause": cause,
        "cause_txt": cause_txt,
        "channel": _snapshot(channel_id, "Up"),
    }


@pytest.fixture()
def router(transport) -> EventRouter:
    return EventRouter(transport)


def test_stasis_start_creates_and_populates_channel(router) -> None:
    started = []
    router.on_stasis_start(lambda channel, event: started.append((channel, event.args)))

    router.dispatch(stasis_start(args=["x"]))

    channel = router.channel("c1")
    assert channel is not None
    assert "c1" in router
    assert channel.state is ChannelState.RING
    assert channel.name == "PJSIP/100-00000001"
    assert channel.extension == "200"
    assert channel.caller_number == "100"
    assert channel.caller_name == "Alice"
    assert started == [(channel, ["x"])]


def test_stasis_start_reuses_locally_created_channel(router) -> None:
    channel = router.create_channel("leg-1")
    router.dispatch(stasis_start("leg-1", state="Up", args=["internal"]))

    assert router.channel("leg-1") is channel
    assert channel.state is ChannelState.UP
    assert len(router) == 1


def test_create_channel_rejects_duplicate_id(router) -> None:
    router.create_channel("leg-1")
    with pytest.raises(ValueError):
        router.create_channel("leg-1")


def test_state_change_updates_state(router) -> None:
    changes = []
    router.on_state_change(lambda channel, event: changes.append(channel.state))
    router.dispatch(stasis_start())

    router.dispatch(state_change(state="Dialing Offhook"))
    router.dispatch(state_change(state="Something new"))

    assert changes == [ChannelState.DIALING_OFFHOOK, ChannelState.UNKNOWN]


def test_destroyed_marks_dead_and_drops_registry_entry(router) -> None:
    router.dispatch(stasis_start())
    channel = router.channel("c1")
    ended = []
    router.on_destroyed(lambda ch, event: ended.append((ch.destroyed, event.cause)))

    router.dispatch(destroyed(cause=17, cause_txt="User busy"))

    assert channel.destroyed is True
    assert channel.cause == 17
    assert channel.cause_text == "User busy"
    assert router.channel("c1") is None
    assert len(router) == 0
    assert ended == [(True, 17)]


def test_events_after_destroy_do_not_revive_channel(router) -> None:
    router.dispatch(stasis_start())
    channel = router.channel("c1")
    router.dispatch(destroyed())

    router.dispatch(state_change(state="Up"))
    router.dispatch(destroyed(cause=1))

    assert channel.destroyed is True
    assert channel.cause == 16


def test_unknown_channel_events_are_ignored(router) -> None:
    router.dispatch(state_change("nope"))
    router.dispatch(destroyed("nope"))
    assert len(router) == 0


@pytest.mark.parametrize(
    "event",
    [
        {},
        {"type": "PlaybackStarted", "playback": {"id": "p1"}},
        {"type": "StasisStart"},
        {"type": "ChannelStateChange", "channel": {"id": ""}},
        {"type": "ChannelDestroyed", "channel": {"id": "c1"}, "cause": "not-a-number"},
    ],
)
def test_malformed_or_unhandled_events_are_skipped(router, event: dict) -> None:
    router.dispatch(event)
    assert len(router) == 0


def test_failing_handler_does_not_stop_others(router) -> None:
    seen = []

    def broken(channel, event) -> None:
        raise RuntimeError("handler bug")

    router.on_stasis_start(broken)
    router.on_stasis_start(lambda channel, event: seen.append(channel.id))
    router.dispatch(stasis_start())

    assert seen == ["c1"]


def test_unsubscribe(router) -> None:
    seen = []
    unsubscribe = router.on_stasis_start(lambda channel, event: seen.append(channel.id))
    unsubscribe()
    unsubscribe()

    router.dispatch(stasis_start())
    assert seen == []


def test_routed_channels_issue_commands_on_router_transport(router, transport) -> None:
    router.dispatch(stasis_start())
    router.channel("c1").answer()
    assert transport.last.target == "/ari/channels/c1/answer"
