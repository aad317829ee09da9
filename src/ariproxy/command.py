from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from urllib.parse import quote


class Method(str, Enum):
    GET = "GET"
    POST = "POST"
    DELETE = "DELETE"


def url_encode(value: str) -> str:
    """Percent-encode a query value; ``/`` is encoded too (``pjsip/100`` -> ``pjsip%2F100``)."""

    return quote(value, safe="")


@dataclass(frozen=True, slots=True)
class Command:
    """One outbound ARI request.

    ``query`` keeps the wire order and may repeat keys; values are already in wire form.
    """

    method: Method
    path: str
    query: tuple[tuple[str, str], ...] = ()
    body: str | None = None

    @property
    def query_string(self) -> str:
        return "&".join(f"{key}={value}" for key, value in self.query)

    @property
    def target(self) -> str:
        if not self.query:
            return self.path
        return f"{self.path}?{self.query_string}"

    def params(self, key: str) -> list[str]:
        """All wire values recorded for ``key``, in order."""

        return [value for k, value in self.query if k == key]


class QueryBuilder:
    """Append-only query builder; pairs keep insertion order."""

    def __init__(self) -> None:
        self._pairs: list[tuple[str, str]] = []

    def add(self, key: str, value: object, *, encode: bool = False) -> QueryBuilder:
        text = str(value)
        self._pairs.append((key, url_encode(text) if encode else text))
        return self

    def add_if(self, key: str, value: str, *, encode: bool = False) -> QueryBuilder:
        """Append only non-empty strings."""

        if value:
            self.add(key, value, encode=encode)
        return self

    def add_non_negative(self, key: str, value: int) -> QueryBuilder:
        """Append only values ``>= 0``; negative means "not set"."""

        if value >= 0:
            self.add(key, value)
        return self

    def build(self) -> tuple[tuple[str, str], ...]:
        return tuple(self._pairs)
