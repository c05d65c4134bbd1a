"""Router: route registration and dispatch with hook-based middleware.

Dispatch of one request runs, in order:

1. ``preprocess(router)`` on every middleware, unconditionally;
2. the routes registered for the method, first matching template wins;
3. on a match, the gated ``preroute`` hooks (any may abort), then the handler;
4. with no match, the OPTIONS capability response for OPTIONS requests,
   and ``InvalidPathError`` for everything else.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from typing import Any, TypeVar

from hookmux.callback import resolve_callback
from hookmux.context import RequestContext, bind
from hookmux.errors import InvalidPathError
from hookmux.http import Request, Response
from hookmux.middleware.base import Decision, MiddlewareProtocol, is_abort
from hookmux.registry import Registry
from hookmux.table import HTTP_METHODS, Handler, HandlerRef, Route
from hookmux.template import compile_template

logger = logging.getLogger(__name__)

OPTIONS_FORMAT = "httpd/unix-directory"

M = TypeVar("M", bound=MiddlewareProtocol)


class Router:
    __slots__ = ("registry",)

    def __init__(self, registry: Registry | None = None) -> None:
        self.registry = registry if registry is not None else Registry()

    # --- registration ---------------------------------------------------------
    def add_route(
        self,
        path: str,
        *,
        patterns: Mapping[str, str] | None = None,
        file: str | None = None,
        **handlers: HandlerRef,
    ) -> list[Route]:
        """Registers handlers for path, one per method keyword.

        Example:
            router.add_route(
                "/users/{id}",
                patterns={"id": "num"},
                get=show_user,
                delete=delete_user,
            )

        All methods of one call share a single compiled template. ``file`` is
        the source the handler references are loaded from at dispatch time.
        """
        unknown = [key for key in handlers if key not in HTTP_METHODS]
        if unknown:
            msg = f"add_route() got unsupported method(s): {', '.join(unknown)}"
            raise TypeError(msg)
        if not handlers:
            msg = "add_route() needs at least one method handler, e.g. get=handler"
            raise TypeError(msg)
        template = compile_template(path, patterns)
        return [
            self.registry.add_route(method, path, template, handlers[method], file)
            for method in HTTP_METHODS
            if method in handlers
        ]

    def get(
        self,
        path: str,
        handler: HandlerRef,
        *,
        patterns: Mapping[str, str] | None = None,
        file: str | None = None,
    ) -> Route:
        """Registers handler at path for GET."""
        return self.add_route(path, patterns=patterns, file=file, get=handler)[0]

    def post(
        self,
        path: str,
        handler: HandlerRef,
        *,
        patterns: Mapping[str, str] | None = None,
        file: str | None = None,
    ) -> Route:
        """Registers handler at path for POST."""
        return self.add_route(path, patterns=patterns, file=file, post=handler)[0]

    def put(
        self,
        path: str,
        handler: HandlerRef,
        *,
        patterns: Mapping[str, str] | None = None,
        file: str | None = None,
    ) -> Route:
        """Registers handler at path for PUT."""
        return self.add_route(path, patterns=patterns, file=file, put=handler)[0]

    def patch(
        self,
        path: str,
        handler: HandlerRef,
        *,
        patterns: Mapping[str, str] | None = None,
        file: str | None = None,
    ) -> Route:
        """Registers handler at path for PATCH."""
        return self.add_route(path, patterns=patterns, file=file, patch=handler)[0]

    def delete(
        self,
        path: str,
        handler: HandlerRef,
        *,
        patterns: Mapping[str, str] | None = None,
        file: str | None = None,
    ) -> Route:
        """Registers handler at path for DELETE."""
        return self.add_route(path, patterns=patterns, file=file, delete=handler)[0]

    def head(
        self,
        path: str,
        handler: HandlerRef,
        *,
        patterns: Mapping[str, str] | None = None,
        file: str | None = None,
    ) -> Route:
        """Registers handler at path for HEAD."""
        return self.add_route(path, patterns=patterns, file=file, head=handler)[0]

    def options(
        self,
        path: str,
        handler: HandlerRef,
        *,
        patterns: Mapping[str, str] | None = None,
        file: str | None = None,
    ) -> Route:
        """Registers handler at path for OPTIONS, replacing the default response."""
        return self.add_route(path, patterns=patterns, file=file, options=handler)[0]

    def attach(
        self, factory: Callable[..., M], *args: Any, **kwargs: Any
    ) -> M:
        """Builds middleware from factory(*args, **kwargs) and appends it to the chain."""
        return self.registry.attach(factory, *args, **kwargs)

    # --- dispatch -------------------------------------------------------------
    def route(
        self,
        uri: str,
        method: str,
        *,
        request: Request | None = None,
        response: Response | None = None,
    ) -> Any:
        """Dispatches method + uri and returns the handler's result.

        Returns ``Decision.ABORT`` when a preroute hook stopped the dispatch,
        and ``True`` for the OPTIONS capability response.
        Raises ``InvalidPathError`` when nothing matches.

        Transports may pass their own request/response; the dispatcher sets the
        request's params.
        """
        if request is None:
            request = Request(method=method.upper(), path=uri)
        method = method.lower()

        for m in self.registry.middleware:
            m.preprocess(self)

        for route in self.registry.table.lookup(method):
            params = route.template.match(uri)
            if params is None:
                continue
            ctx = RequestContext(
                http_method=method,
                pattern=route.template.get_template(),
                handler=route.handler,
                params=params,
            )
            logger.debug("matched %s %s -> %s", method.upper(), uri, ctx.pattern)
            callback = resolve_callback(route.handler, route.source)
            with bind(ctx):
                return self.invoke_callback(
                    callback, params, request=request, response=response
                )

        if method == "options":
            with bind(RequestContext(http_method=method)):
                return self.invoke_options(request=request, response=response)

        logger.debug("no route matches %s %s", method.upper(), uri)
        raise InvalidPathError(method, uri)

    def invoke_callback(
        self,
        callback: Handler,
        params: dict[str, str],
        *,
        request: Request | None = None,
        response: Response | None = None,
    ) -> Any:
        """Runs the gated preroute hooks, then the handler unless one aborted.

        Separate from ``route`` so subclasses can change how handlers are called.
        """
        request, response = _prepare(request, response, params)

        for m in self.registry.middleware:
            if m.should_run("preroute") and is_abort(m.preroute(request, response)):
                logger.debug("dispatch aborted by %s", type(m).__qualname__)
                return Decision.ABORT

        return callback(request, response)

    def invoke_options(
        self,
        *,
        request: Request | None = None,
        response: Response | None = None,
    ) -> bool:
        """Answers an unmatched OPTIONS request with every supported method.

        Preroute hooks run for their side effects; they cannot abort here.
        """
        request, response = _prepare(request, response, {})

        for m in self.registry.middleware:
            if m.should_run("preroute"):
                m.preroute(request, response)

        response.set_format(OPTIONS_FORMAT)
        response.set_header(
            "Allow", ",".join(m.upper() for m in self.registry.table.all_methods())
        )
        response.send(200)
        logger.debug("answered OPTIONS with the full method set")
        return True


def _prepare(
    request: Request | None,
    response: Response | None,
    params: dict[str, str],
) -> tuple[Request, Response]:
    if request is None:
        request = Request(params=params)
    else:
        request.params = params
    if response is None:
        response = Response(request)
    return request, response
