"""Method-keyed route table with insertion-ordered lookup."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Literal, TypeAlias

from hookmux.template import Template

Handler: TypeAlias = Callable[..., Any]
HandlerRef: TypeAlias = Handler | str | tuple[Any, str]
HTTPMethod: TypeAlias = Literal["get", "post", "put", "patch", "delete", "head", "options"]

# Verbs a route may be registered for, in announcement order.
# Restricted to the common ones; OPTIONS fallbacks announce all of them.
HTTP_METHODS: tuple[HTTPMethod, ...] = (
    "get",
    "post",
    "put",
    "patch",
    "delete",
    "head",
    "options",
)


@dataclass(slots=True, frozen=True)
class Route:
    """A registered (method, template, handler) binding.

    ``source`` is an optional locator (a file path) used to load ``handler``
    lazily at dispatch time.
    """

    method: str
    path: str
    template: Template
    handler: HandlerRef
    source: str | None = None


class RouteTable:
    """Routes keyed by method, then by raw path string.

    Registering the same (method, path) twice replaces the first route.
    Lookup order is registration order, and the first matching template wins,
    so overlapping templates must be registered most-specific-first.
    """

    __slots__ = ("_routes",)

    def __init__(self) -> None:
        self._routes: dict[str, dict[str, Route]] = {}

    def add_route(
        self,
        method: str,
        path: str,
        template: Template,
        handler: HandlerRef,
        source: str | None = None,
    ) -> Route | None:
        """Register a route; return the route it replaced, if any."""
        key = method.lower()
        if key not in HTTP_METHODS:
            msg = f"unsupported HTTP method {method!r}, expected one of {HTTP_METHODS}"
            raise ValueError(msg)
        by_path = self._routes.setdefault(key, {})
        previous = by_path.get(path)
        # assigning to an existing key keeps its original position
        by_path[path] = Route(key, path, template, handler, source)
        return previous

    def lookup(self, method: str) -> list[Route]:
        """Routes for *method* in registration order."""
        return list(self._routes.get(method.lower(), {}).values())

    def get(self, method: str, path: str) -> Route | None:
        return self._routes.get(method.lower(), {}).get(path)

    @staticmethod
    def all_methods() -> tuple[HTTPMethod, ...]:
        """The fixed set of supported verbs, regardless of registrations."""
        return HTTP_METHODS

    def routes(self) -> list[Route]:
        """Every route, grouped by method in ``HTTP_METHODS`` order."""
        return [
            route
            for method in HTTP_METHODS
            for route in self._routes.get(method, {}).values()
        ]

    def __len__(self) -> int:
        return sum(len(by_path) for by_path in self._routes.values())
