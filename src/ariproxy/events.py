"""Pydantic schemas for the ARI channel events the router understands."""

from __future__ import annotations

from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter


class _AriModel(BaseModel):
    model_config = ConfigDict(extra="ignore")


class CallerId(_AriModel):
    name: str = ""
    number: str = ""


class DialplanLocation(_AriModel):
    context: str = ""
    exten: str = ""
    priority: int = 0


class ChannelSnapshot(_AriModel):
    """The ``channel`` object embedded in channel events."""

    id: str = Field(min_length=1)
    name: str = ""
    state: str = ""
    caller: CallerId = Field(default_factory=CallerId)
    dialplan: DialplanLocation = Field(default_factory=DialplanLocation)


class StasisStart(_AriModel):
    type: Literal["StasisStart"]
    channel: ChannelSnapshot
    args: list[str] = Field(default_factory=list)


class ChannelStateChange(_AriModel):
    type: Literal["ChannelStateChange"]
    channel: ChannelSnapshot


class ChannelDestroyed(_AriModel):
    type: Literal["ChannelDestroyed"]
    channel: ChannelSnapshot
    cause: int = -1
    cause_txt: str = ""


ChannelEvent = Annotated[
    Union[StasisStart, ChannelStateChange, ChannelDestroyed],
    Field(discriminator="type"),
]

HANDLED_EVENT_TYPES = frozenset({"StasisStart", "ChannelStateChange", "ChannelDestroyed"})

_EVENT_ADAPTER: TypeAdapter[ChannelEvent] = TypeAdapter(ChannelEvent)


def parse_channel_event(data: dict[str, Any]) -> StasisStart | ChannelStateChange | ChannelDestroyed:
    """Validate a decoded ARI event; raises ``pydantic.ValidationError`` when malformed."""

    return _EVENT_ADAPTER.validate_python(data)
