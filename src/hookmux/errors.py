"""Exceptions raised at the hookmux boundary.

Every error subclasses HookmuxError so callers can catch the whole family.
Middleware aborts are not errors: they are returned as ``Decision.ABORT``.
"""

from __future__ import annotations

from typing import Any


class HookmuxError(Exception):
    """Base for all hookmux errors."""


class PatternError(HookmuxError, ValueError):
    """Path template is malformed, or an override names an unknown token.

    Raised at registration time; bootstrap should not continue past it.
    """

    def __init__(self, msg: str, pattern: str) -> None:
        super().__init__(msg)
        self.pattern = pattern


class InvalidMiddlewareClassError(HookmuxError, TypeError):
    """Attach target does not provide preprocess/should_run/preroute."""

    def __init__(self, msg: str, factory: Any) -> None:
        super().__init__(msg)
        self.factory = factory


class InvalidPathError(HookmuxError, LookupError):
    """No route matched and the method was not OPTIONS.

    Transports usually map this to a 404.
    """

    def __init__(self, method: str, uri: str) -> None:
        super().__init__(f"Invalid path: no route matches {method.upper()} {uri!r}")
        self.method = method
        self.uri = uri


class HandlerResolutionError(HookmuxError, LookupError):
    """A handler reference or its source file could not be loaded."""
