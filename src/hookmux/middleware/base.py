"""Hook-based middleware: base class, abort protocol, and the ordered chain.

A middleware provides three hooks, run by the router around dispatch:

    preprocess(router)          every dispatch, before route lookup
    should_run(hook) -> bool    gate checked before each preroute call
    preroute(request, response) after a match, in attachment order

A preroute that returns ``Decision.ABORT`` (or exactly ``False``) stops the
dispatch: later preroutes and the handler are skipped. Any other return
value continues. Subclassing ``Middleware`` is optional; the chain checks
the shape, not the lineage.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Iterator
from enum import Enum
from typing import TYPE_CHECKING, Any, Protocol, TypeVar, runtime_checkable

from hookmux.context import request_context
from hookmux.errors import InvalidMiddlewareClassError

if TYPE_CHECKING:
    from hookmux.http import Request, Response
    from hookmux.router import Router

logger = logging.getLogger(__name__)

HOOKS: tuple[str, ...] = ("preprocess", "should_run", "preroute")

ANY = "*"


class Decision(Enum):
    """What a preroute hook wants the dispatcher to do next."""

    CONTINUE = "continue"
    ABORT = "abort"

    def __repr__(self) -> str:
        return f"Decision.{self.name}"


def is_abort(result: object) -> bool:
    """True for ``Decision.ABORT`` and for exactly ``False``; nothing else."""
    return result is Decision.ABORT or result is False


@runtime_checkable
class MiddlewareProtocol(Protocol):
    def preprocess(self, router: Router) -> None: ...

    def should_run(self, hook: str) -> bool: ...

    def preroute(self, request: Request, response: Response) -> Any: ...


M = TypeVar("M", bound=MiddlewareProtocol)


class Middleware:
    """Base class with no-op hooks and per-hook method/route restrictions.

    Example::

        class AdminOnly(Middleware):
            def __init__(self) -> None:
                super().__init__()
                self.restrict("preroute", "*", "/admin/{action}")

            def preroute(self, request, response):
                if request.headers.get("x-admin") != "yes":
                    response.send(403)
                    return Decision.ABORT
    """

    # hook -> lowercased method (or "*") -> route patterns (or "*")
    scope: dict[str, dict[str, list[str]]]

    def __init__(self) -> None:
        self.scope = {}

    def preprocess(self, router: Router) -> None:
        return None

    def preroute(self, request: Request, response: Response) -> Any:
        return None

    def restrict(
        self,
        hook: str,
        methods: str | Iterable[str],
        routes: str | Iterable[str],
    ) -> None:
        """Limit *hook* to the given methods and route patterns.

        ``"*"`` stands for any method or any route. Calls accumulate.
        """
        if isinstance(methods, str):
            methods = [methods]
        if isinstance(routes, str):
            routes = [routes]
        routes = list(routes)
        # subclasses may skip super().__init__(), so scope is created on demand
        scope = self.__dict__.setdefault("scope", {})
        by_method = scope.setdefault(hook, {})
        for method in methods:
            by_method.setdefault(method.lower(), []).extend(routes)

    def should_run(self, hook: str) -> bool:
        """Whether *hook* applies to the route currently being dispatched."""
        by_method = self.__dict__.get("scope", {}).get(hook)
        if by_method is None:
            return True
        ctx = request_context.get(None)
        if ctx is None:
            return False
        routes = [*by_method.get(ctx.http_method.lower(), ()), *by_method.get(ANY, ())]
        return ANY in routes or ctx.pattern in routes


def _missing_hooks(obj: object) -> list[str]:
    return [name for name in HOOKS if not callable(getattr(obj, name, None))]


class MiddlewareChain:
    """Middleware instances in attachment order."""

    __slots__ = ("_items",)

    def __init__(self) -> None:
        self._items: list[MiddlewareProtocol] = []

    def attach(
        self, factory: Callable[..., M], *args: Any, **kwargs: Any
    ) -> M:
        """Validate *factory*, build it with the given arguments, and append it.

        Classes are checked for the hooks before anything is instantiated;
        other factories are checked on the object they return. Either way a
        failed check raises ``InvalidMiddlewareClassError`` and leaves the
        chain unchanged.
        """
        name = getattr(factory, "__qualname__", repr(factory))
        if not callable(factory):
            msg = f"middleware factory {name} is not callable"
            raise InvalidMiddlewareClassError(msg, factory)
        if isinstance(factory, type):
            missing = _missing_hooks(factory)
            if missing:
                msg = (
                    f"middleware class {name} does not implement "
                    f"{', '.join(missing)}; subclass hookmux.Middleware"
                )
                raise InvalidMiddlewareClassError(msg, factory)
        instance = factory(*args, **kwargs)
        missing = _missing_hooks(instance)
        if missing:
            msg = f"middleware factory {name} returned an object without {', '.join(missing)}"
            raise InvalidMiddlewareClassError(msg, factory)
        self._items.append(instance)
        logger.debug("attached middleware %s at position %d", name, len(self._items))
        return instance

    def detach(self, instance: MiddlewareProtocol) -> None:
        """Remove *instance*; ValueError if it is not attached."""
        for i, item in enumerate(self._items):
            if item is instance:
                del self._items[i]
                return
        msg = f"{instance!r} is not attached"
        raise ValueError(msg)

    def __iter__(self) -> Iterator[MiddlewareProtocol]:
        return iter(tuple(self._items))

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, instance: object) -> bool:
        return any(item is instance for item in self._items)
