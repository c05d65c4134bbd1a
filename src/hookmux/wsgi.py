"""WSGI transport adapter.

Reads the method and path from the WSGI environ, dispatches through a
Router, and writes the resulting Response back::

    from wsgiref.simple_server import make_server

    app = WSGIApp(router)
    make_server("127.0.0.1", 8000, app).serve_forever()

Status-code policy lives here, not in the router: a path that is not valid
UTF-8 is answered with 400 without being routed, ``InvalidPathError``
becomes 404 (or whatever the ``not_found`` handler sends), everything else
is the status the handler or middleware sent, 200 by default.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping
from http import HTTPStatus
from typing import Any, TypeAlias

from hookmux.errors import InvalidPathError
from hookmux.http import Headers, Request, Response
from hookmux.router import Router

logger = logging.getLogger(__name__)

StartResponse: TypeAlias = Callable[[str, list[tuple[str, str]]], Any]
NotFoundHandler: TypeAlias = Callable[[Request, Response], Any]


def _status_line(status: int) -> str:
    try:
        return f"{status} {HTTPStatus(status).phrase}"
    except ValueError:
        return f"{status} Unknown"


def _request_headers(environ: Mapping[str, Any]) -> Headers:
    headers: dict[str, str] = {}
    for key, value in environ.items():
        if key.startswith("HTTP_"):
            headers[key[5:].replace("_", "-").lower()] = value
        elif key in ("CONTENT_TYPE", "CONTENT_LENGTH") and value:
            headers[key.replace("_", "-").lower()] = value
    return Headers(headers)


def request_path(environ: Mapping[str, Any]) -> str:
    """The percent-decoded request path.

    WSGI servers decode PATH_INFO as latin-1 (PEP 3333); re-decode as UTF-8.
    Raises ``UnicodeError`` when the raw path is not valid UTF-8.
    """
    path = environ.get("PATH_INFO", "") or "/"
    return path.encode("latin-1").decode("utf-8")


def default_not_found(request: Request, response: Response) -> None:
    response.set_format("text")
    response.add("Not Found")
    response.send(404)


def bad_request(request: Request, response: Response) -> None:
    response.set_format("text")
    response.add("Bad Request")
    response.send(400)


class WSGIApp:
    __slots__ = ("not_found", "router")

    def __init__(
        self,
        router: Router,
        *,
        not_found: NotFoundHandler = default_not_found,
    ) -> None:
        self.router = router
        self.not_found = not_found

    def __call__(
        self, environ: Mapping[str, Any], start_response: StartResponse
    ) -> Iterable[bytes]:
        method = environ.get("REQUEST_METHOD", "GET").upper()
        request = Request(
            method=method,
            path=environ.get("PATH_INFO", ""),
            headers=_request_headers(environ),
            query=environ.get("QUERY_STRING", ""),
        )
        response = Response(request)

        try:
            path = request_path(environ)
        except UnicodeError:
            logger.info("%s %r -> bad request, path is not UTF-8", method, request.path)
            bad_request(request, response)
            return self._finish(method, response, start_response)
        request.path = path

        try:
            result = self.router.route(path, method, request=request, response=response)
        except InvalidPathError:
            logger.info("%s %s -> not found", method, path)
            self.not_found(request, response)
        else:
            if isinstance(result, (str, bytes)) and not response.sent:
                response.add(result)

        return self._finish(method, response, start_response)

    def _finish(
        self, method: str, response: Response, start_response: StartResponse
    ) -> Iterable[bytes]:
        body = response.body_bytes()
        start_response(_status_line(response.status), response.all_headers())
        if method == "HEAD":
            return [b""]
        return [body]
