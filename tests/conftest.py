from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from hookmux.http import Request, Response
from hookmux.middleware.base import Middleware


@dataclass
class MockHandler:
    """Handler that records the requests it was called with."""

    result: Any = None
    calls: list[Request] = field(default_factory=list)

    def __call__(self, request: Request, response: Response) -> Any:
        self.calls.append(request)
        return self.result


class RecordingMiddleware(Middleware):
    """Middleware that appends "<name>:<hook>" to a shared log."""

    def __init__(self, name: str, log: list[str], result: Any = None) -> None:
        super().__init__()
        self.name = name
        self.log = log
        self.result = result

    def preprocess(self, router: Any) -> None:
        self.log.append(f"{self.name}:preprocess")

    def preroute(self, request: Request, response: Response) -> Any:
        self.log.append(f"{self.name}:preroute")
        return self.result


class StartResponse:
    """Captures what a WSGI app passes to start_response."""

    def __init__(self) -> None:
        self.status: str | None = None
        self.headers: list[tuple[str, str]] = []

    def __call__(self, status: str, headers: list[tuple[str, str]]) -> None:
        self.status = status
        self.headers = headers

    def header(self, name: str) -> str | None:
        for n, v in self.headers:
            if n.lower() == name.lower():
                return v
        return None


def mock_environ(
    path: str = "/",
    method: str = "GET",
    headers: Mapping[str, str] | None = None,
    query: str = "",
) -> dict[str, Any]:
    environ: dict[str, Any] = {
        "REQUEST_METHOD": method,
        "PATH_INFO": path,
        "QUERY_STRING": query,
        "SERVER_NAME": "localhost",
        "SERVER_PORT": "8000",
        "wsgi.url_scheme": "http",
    }
    for name, value in (headers or {}).items():
        environ["HTTP_" + name.upper().replace("-", "_")] = value
    return environ
