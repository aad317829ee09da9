from __future__ import annotations

from enum import Enum


class TerminationDtmf(str, Enum):
    """DTMF that stops a recording (``terminateOn``)."""

    NONE = "none"
    ANY = "any"
    STAR = "*"
    HASH = "#"

    def __str__(self) -> str:
        return self.value
