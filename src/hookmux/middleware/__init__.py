"""Middleware with preprocess / should_run / preroute hooks.

Built-in middleware:
    CORSMiddleware -- Cross-Origin Resource Sharing headers and preflights
    OTelMiddleware -- OpenTelemetry route naming (``hookmux.middleware.otel``,
                      requires the ``otel`` extra, so not imported here)
"""

from hookmux.middleware.base import (
    HOOKS,
    Decision,
    Middleware,
    MiddlewareChain,
    MiddlewareProtocol,
)
from hookmux.middleware.cors import CORSConfig, CORSMiddleware

__all__ = [
    "HOOKS",
    "CORSConfig",
    "CORSMiddleware",
    "Decision",
    "Middleware",
    "MiddlewareChain",
    "MiddlewareProtocol",
]
