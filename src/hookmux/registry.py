"""The registry: one route table and one middleware chain, built at bootstrap.

Routers that share a registry share routes and middleware. A registry is
filled during bootstrap and only read while serving; it takes no locks, so
registering routes or attaching middleware while dispatches are running is
undefined behaviour. The one write made while serving, loading a
handler source file on its first dispatch, is serialised in
``hookmux.callback.load_source``.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any, TypeAlias, TypeVar

from hookmux.middleware.base import MiddlewareChain, MiddlewareProtocol
from hookmux.table import HandlerRef, Route, RouteTable
from hookmux.template import Template

logger = logging.getLogger(__name__)

OverwriteHook: TypeAlias = Callable[[Route, Route], None]
M = TypeVar("M", bound=MiddlewareProtocol)


class Registry:
    __slots__ = ("middleware", "on_overwrite", "table")

    def __init__(self, *, on_overwrite: OverwriteHook | None = None) -> None:
        self.table = RouteTable()
        self.middleware = MiddlewareChain()
        self.on_overwrite = on_overwrite

    def add_route(
        self,
        method: str,
        path: str,
        template: Template,
        handler: HandlerRef,
        source: str | None = None,
    ) -> Route:
        """Register a route. Re-registering (method, path) replaces it.

        Replacements are logged as a warning and reported to ``on_overwrite``.
        """
        previous = self.table.add_route(method, path, template, handler, source)
        route = self.table.get(method, path)
        assert route is not None
        if previous is None:
            logger.debug("registered %s %s -> %s", method.upper(), path, _qualname(handler))
        else:
            logger.warning(
                "route %s %s re-registered: %s replaces %s",
                method.upper(),
                path,
                _qualname(handler),
                _qualname(previous.handler),
            )
            if self.on_overwrite is not None:
                self.on_overwrite(previous, route)
        return route

    def attach(
        self, factory: Callable[..., M], *args: Any, **kwargs: Any
    ) -> M:
        return self.middleware.attach(factory, *args, **kwargs)

    def routes(self) -> list[Route]:
        return self.table.routes()


def _qualname(obj: object) -> str:
    """Extract __qualname__ from a callable, falling back to repr."""
    if isinstance(obj, str):
        return obj
    if isinstance(obj, tuple):
        owner, method = obj
        return f"{_qualname(owner)}.{method}"
    return str(obj.__qualname__) if hasattr(obj, "__qualname__") else repr(obj)


def format_routes(registry: Registry) -> str:
    """Format registered routes as a column-aligned list, in lookup order.

        GET      /users/{id}   show_user
        POST     /users        create_user   [handlers.py]
    """
    rows = [
        (
            route.method.upper(),
            route.template.get_template(),
            _qualname(route.handler),
            route.source or "",
        )
        for route in registry.routes()
    ]
    if not rows:
        return ""

    method_w = max(len(r[0]) for r in rows)
    path_w = max(len(r[1]) for r in rows)
    handler_w = max(len(r[2]) for r in rows)

    lines: list[str] = []
    for method, path, handler, source in rows:
        if source:
            lines.append(
                f"{method:<{method_w}}   {path:<{path_w}}   "
                f"{handler:<{handler_w}}   [{source}]"
            )
        else:
            lines.append(f"{method:<{method_w}}   {path:<{path_w}}   {handler}")
    return "\n".join(lines)
