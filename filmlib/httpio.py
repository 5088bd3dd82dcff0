"""Minimal request and response objects and JSON reply helpers."""

from __future__ import annotations

import json
from collections.abc import Iterator, Mapping, MutableMapping
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import parse_qs

_JSON_ESCAPES = {
    "&": "\\u0026",
    "<": "\\u003c",
    ">": "\\u003e",
    "\u2028": "\\u2028",
    "\u2029": "\\u2029",
}


class _Headers(MutableMapping[str, str]):
    """Header mapping with case-insensitive names."""

    def __init__(self, items: Mapping[str, str] | None = None) -> None:
        self._items: dict[str, tuple[str, str]] = {}
        if items:
            self.update(items)

    def __getitem__(self, key: str) -> str:
        return self._items[key.lower()][1]

    def __setitem__(self, key: str, value: str) -> None:
        self._items[key.lower()] = (key, value)

    def __delitem__(self, key: str) -> None:
        self._items.pop(key.lower())

    def __iter__(self) -> Iterator[str]:
        return (name for name, _ in self._items.values())

    def __len__(self) -> int:
        return len(self._items)

    def __repr__(self) -> str:
        return repr(dict(self.items()))


@dataclass
class Request:
    """An incoming HTTP request. A query string in ``path`` is split off into ``query``."""

    method: str = "GET"
    path: str = "/"
    headers: MutableMapping[str, str] = field(default_factory=dict)
    body: bytes = b""
    query: str = ""
    context: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not isinstance(self.headers, _Headers):
            self.headers = _Headers(self.headers)
        if isinstance(self.body, str):
            self.body = self.body.encode("utf-8")
        if "?" in self.path:
            self.path, _, query = self.path.partition("?")
            if not self.query:
                self.query = query

    def json(self) -> Any:
        """Decode the body as JSON; raise ValueError if it is empty or malformed."""
        return json.loads(self.body)

    def query_param(self, name: str) -> str:
        """Return the first value of a query parameter, or an empty string."""
        return parse_qs(self.query, keep_blank_values=True).get(name, [""])[0]


@dataclass
class Response:
    """An HTTP response ready to be sent."""

    status: int = 200
    headers: MutableMapping[str, str] = field(default_factory=dict)
    body: bytes = b""

    def __post_init__(self) -> None:
        if not isinstance(self.headers, _Headers):
            self.headers = _Headers(self.headers)

    def json(self) -> Any:
        return json.loads(self.body)


def _encode_json(payload: Any) -> bytes:
    text = json.dumps(payload, ensure_ascii=False, separators=(",", ":"))
    for char, escape in _JSON_ESCAPES.items():
        text = text.replace(char, escape)
    return (text + "\n").encode("utf-8")


def json_response(payload: Any, status: int = 200) -> Response:
    """Serialise ``payload`` as a JSON response."""
    return Response(
        status=status,
        headers={"Content-Type": "application/json"},
        body=_encode_json(payload),
    )


def write_json_error(message: str, status: int) -> Response:
    """Build a JSON error response of the form {"message": ...}."""
    return json_response({"message": message}, status)


def text_error(message: str, status: int) -> Response:
    """Build a plain-text error response."""
    return Response(
        status=status,
        headers={
            "Content-Type": "text/plain; charset=utf-8",
            "X-Content-Type-Options": "nosniff",
        },
        body=(message + "\n").encode("utf-8"),
    )