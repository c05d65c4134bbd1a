"""Per-dispatch request context, published through ContextVars.

The dispatcher sets these for the duration of one dispatch and resets them
before returning, so middleware and handlers can introspect the match
without it being threaded through every call.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field
from typing import Any

request_context: ContextVar[RequestContext] = ContextVar("request_context")
path_params: ContextVar[dict[str, str]] = ContextVar("path_params")
http_route: ContextVar[str] = ContextVar("http_route")


@dataclass(slots=True, frozen=True)
class RequestContext:
    """What a dispatch matched.

    ``pattern`` is the raw template string of the matched route, or ``""``
    on the OPTIONS fallback where nothing matched.
    """

    http_method: str
    pattern: str = ""
    handler: Any = None
    params: dict[str, str] = field(default_factory=dict)


@contextmanager
def bind(ctx: RequestContext) -> Iterator[RequestContext]:
    """Publish *ctx* (and its pattern and params) until the block exits."""
    ctx_token = request_context.set(ctx)
    params_token = path_params.set(ctx.params)
    route_token = http_route.set(ctx.pattern)
    try:
        yield ctx
    finally:
        http_route.reset(route_token)
        path_params.reset(params_token)
        request_context.reset(ctx_token)
