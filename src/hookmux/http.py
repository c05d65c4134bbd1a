"""Request and Response value objects handed to middleware and handlers.

The dispatcher only needs a request that carries params and a response
that can take a format and be sent. Reading the wire and writing headers
back belongs to the transport (see ``hookmux.wsgi``).
"""

from __future__ import annotations

from collections.abc import Callable, Iterator, Mapping
from dataclasses import dataclass, field

# short names accepted by Response.set_format
FORMATS: dict[str, str] = {
    "html": "text/html; charset=utf-8",
    "text": "text/plain; charset=utf-8",
    "txt": "text/plain; charset=utf-8",
    "json": "application/json",
    "xml": "application/xml",
    "csv": "text/csv; charset=utf-8",
}

DEFAULT_FORMAT = FORMATS["html"]


class Headers(Mapping[str, str]):
    """Read-only, case-insensitive view over request headers."""

    __slots__ = ("_items",)

    def __init__(self, items: Mapping[str, str] | None = None) -> None:
        self._items = {k.lower(): v for k, v in (items or {}).items()}

    def __getitem__(self, key: str) -> str:
        return self._items[key.lower()]

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and key.lower() in self._items

    def __iter__(self) -> Iterator[str]:
        return iter(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __repr__(self) -> str:
        return f"Headers({self._items!r})"


@dataclass(slots=True)
class Request:
    """An incoming request as the handler sees it."""

    method: str = ""
    path: str = ""
    params: dict[str, str] = field(default_factory=dict)
    headers: Headers = field(default_factory=Headers)
    query: str = ""

    def get_param(self, name: str, default: str | None = None) -> str | None:
        return self.params.get(name, default)


class Response:
    """Outgoing response state, built up by middleware and the handler.

    Nothing reaches the wire until ``send`` is called; ``send`` hands the
    response to ``on_send`` when the transport provided one.
    """

    __slots__ = ("_on_send", "body", "format", "headers", "request", "sent", "status")

    def __init__(
        self,
        request: Request | None = None,
        *,
        on_send: Callable[[Response], None] | None = None,
    ) -> None:
        self.request = request
        self.status = 200
        self.format = DEFAULT_FORMAT
        self.headers: list[tuple[str, str]] = []
        self.body: list[str | bytes] = []
        self.sent = False
        self._on_send = on_send

    def set_format(self, fmt: str) -> None:
        """Set the content type, by short name (``"json"``) or full MIME type."""
        self.format = FORMATS.get(fmt.lower(), fmt)

    def set_header(self, name: str, value: str) -> None:
        """Set *name*, replacing any earlier value (case-insensitive)."""
        lowered = name.lower()
        self.headers = [(n, v) for n, v in self.headers if n.lower() != lowered]
        self.headers.append((name, value))

    def add_header(self, name: str, value: str) -> None:
        self.headers.append((name, value))

    def get_header(self, name: str) -> str | None:
        lowered = name.lower()
        for n, v in reversed(self.headers):
            if n.lower() == lowered:
                return v
        return None

    def add(self, chunk: str | bytes) -> None:
        """Append *chunk* to the body."""
        self.body.append(chunk)

    def send(self, status: int = 200, fmt: str | None = None) -> None:
        """Finalise status and format, and pass the response to the transport."""
        if fmt is not None:
            self.set_format(fmt)
        self.status = status
        self.sent = True
        if self._on_send is not None:
            self._on_send(self)

    def all_headers(self) -> list[tuple[str, str]]:
        """Headers to emit, with Content-Type first unless set explicitly."""
        if self.get_header("content-type") is not None:
            return list(self.headers)
        return [("Content-Type", self.format), *self.headers]

    def body_bytes(self) -> bytes:
        return b"".join(
            c.encode("utf-8") if isinstance(c, str) else c for c in self.body
        )
