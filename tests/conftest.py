from __future__ import annotations

import sys
from pathlib import Path

import pytest

REPO_ROOT = Path(__file__).resolve().parents[1]
SRC_PATH = REPO_ROOT / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))

from ariproxy.command import Command  # noqa: E402
from ariproxy.continuation import Continuation  # noqa: E402
from ariproxy.errors import TransportError  # noqa: E402


class FakeTransport:
    """Records submitted commands; tests resolve them in whatever order they like."""

    def __init__(self) -> None:
        self.submitted: list[tuple[Command, Continuation]] = []

    def submit(self, command: Command, continuation: Continuation) -> None:
        self.submitted.append((command, continuation))

    @property
    def commands(self) -> list[Command]:
        return [command for command, _ in self.submitted]

    @property
    def last(self) -> Command:
        return self.submitted[-1][0]

    def succeed(self, index: int = -1, body: str = "") -> None:
        self.submitted[index][1].set_result(body)

    def fail(self, index: int = -1, status_code: int = 404, reason: str = "Channel not found") -> None:
        command, continuation = self.submitted[index]
        continuation.set_exception(TransportError(status_code, reason, command))


@pytest.fixture()
def transport() -> FakeTransport:
    return FakeTransport()
