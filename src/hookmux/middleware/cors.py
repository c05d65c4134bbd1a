"""CORS middleware.

Adds Access-Control headers in the preroute phase. Preflight requests
that matched an explicit OPTIONS route are answered with 204 and the
dispatch is aborted; unmatched preflights fall through to the router's
OPTIONS response, which carries the headers added here.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from hookmux.context import request_context
from hookmux.middleware.base import Decision, Middleware

if TYPE_CHECKING:
    from hookmux.http import Request, Response


@dataclass(frozen=True, slots=True)
class CORSConfig:
    """CORS middleware configuration.

    All fields have secure defaults (nothing is allowed).
    Override what you need::

        CORSConfig(
            allow_origins=("https://example.com",),
            allow_methods=("GET", "POST"),
        )
    """

    allow_origins: tuple[str, ...] = ()
    allow_methods: tuple[str, ...] = ("GET", "HEAD", "OPTIONS")
    allow_headers: tuple[str, ...] = ()
    expose_headers: tuple[str, ...] = ()
    allow_credentials: bool = False
    max_age: int = 600  # 10 minutes


class CORSMiddleware(Middleware):
    """Usage::

    router.attach(CORSMiddleware, CORSConfig(allow_origins=("*",)))
    """

    def __init__(self, config: CORSConfig | None = None) -> None:
        super().__init__()
        self.config = config or CORSConfig()

    def _is_allowed_origin(self, origin: str) -> bool:
        if "*" in self.config.allow_origins:
            return True
        return origin in self.config.allow_origins

    def preroute(self, request: Request, response: Response) -> Any:
        origin = request.headers.get("origin")
        if origin is None or not self._is_allowed_origin(origin):
            return None

        cfg = self.config
        if "*" in cfg.allow_origins and not cfg.allow_credentials:
            response.set_header("Access-Control-Allow-Origin", "*")
        else:
            response.set_header("Access-Control-Allow-Origin", origin)
            response.add_header("Vary", "Origin")
        if cfg.allow_credentials:
            response.set_header("Access-Control-Allow-Credentials", "true")
        if cfg.expose_headers:
            response.set_header(
                "Access-Control-Expose-Headers", ", ".join(cfg.expose_headers)
            )

        is_preflight = (
            request.method.upper() == "OPTIONS"
            and "access-control-request-method" in request.headers
        )
        if not is_preflight:
            return None

        response.set_header("Access-Control-Allow-Methods", ", ".join(cfg.allow_methods))
        if cfg.allow_headers:
            response.set_header(
                "Access-Control-Allow-Headers", ", ".join(cfg.allow_headers)
            )
        response.set_header("Access-Control-Max-Age", str(cfg.max_age))

        ctx = request_context.get(None)
        if ctx is not None and ctx.pattern:
            response.send(204)
            return Decision.ABORT
        return None
