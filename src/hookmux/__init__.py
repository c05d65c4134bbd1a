from importlib.metadata import version

from .context import RequestContext, http_route, path_params, request_context
from .errors import (
    HandlerResolutionError,
    HookmuxError,
    InvalidMiddlewareClassError,
    InvalidPathError,
    PatternError,
)
from .http import Request, Response
from .middleware.base import Decision, Middleware
from .registry import Registry, format_routes
from .router import Router
from .table import HTTP_METHODS, Route, RouteTable
from .template import PATTERNS, Template, compile_template

__all__ = [
    "HTTP_METHODS",
    "PATTERNS",
    "Decision",
    "HandlerResolutionError",
    "HookmuxError",
    "InvalidMiddlewareClassError",
    "InvalidPathError",
    "Middleware",
    "PatternError",
    "Registry",
    "Request",
    "RequestContext",
    "Response",
    "Route",
    "RouteTable",
    "Router",
    "Template",
    "__version__",
    "compile_template",
    "format_routes",
    "http_route",
    "path_params",
    "request_context",
]

__version__ = version("hookmux")
