"""OpenTelemetry tracing and metrics middleware.

Names the request's server span after the matched route and records
routing metrics with HTTP semantic conventions.

Install with: uv add "hookmux[otel]"
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from hookmux.http import Request, Response
    from hookmux.router import Router

try:
    from opentelemetry import metrics, trace
    from opentelemetry.trace import SpanKind, TracerProvider
except ImportError as e:
    msg = (
        "OpenTelemetry middleware requires the 'otel' extra. "
        "Install with: uv add 'hookmux[otel]'"
    )
    raise ImportError(msg) from e

from hookmux.context import request_context
from hookmux.middleware.base import Middleware


class OTelMiddleware(Middleware):
    """Route-aware OpenTelemetry instrumentation.

    When the transport already runs a server span (e.g. from
    ``opentelemetry-instrumentation-wsgi``), ``preroute`` renames it to
    ``"METHOD /route"`` and adds ``http.route`` and path param attributes.
    Without a recording span it emits a short internal ``route`` span carrying
    the same attributes.

    Metrics emitted:
        - ``hookmux.dispatch.attempts`` (counter, every dispatch)
        - ``http.server.routed_requests`` (counter, per method and route)

    Args:
        tracer_provider: Optional TracerProvider. If None, uses the global provider.
        meter_provider: Optional MeterProvider. If None, uses the global provider.

    Example:
        router.attach(OTelMiddleware)

        # With custom providers
        from opentelemetry.sdk.trace import TracerProvider
        from opentelemetry.sdk.metrics import MeterProvider
        router.attach(
            OTelMiddleware,
            tracer_provider=TracerProvider(),
            meter_provider=MeterProvider(),
        )
    """

    def __init__(
        self,
        *,
        tracer_provider: TracerProvider | None = None,
        meter_provider: metrics.MeterProvider | None = None,
    ) -> None:
        super().__init__()
        self.tracer = trace.get_tracer("hookmux", tracer_provider=tracer_provider)
        meter = metrics.get_meter("hookmux", meter_provider=meter_provider)
        self.dispatch_counter = meter.create_counter(
            "hookmux.dispatch.attempts",
            unit="{dispatch}",
            description="Number of dispatch attempts, matched or not.",
        )
        self.routed_counter = meter.create_counter(
            "http.server.routed_requests",
            unit="{request}",
            description="Number of requests that reached the preroute phase.",
        )

    def preprocess(self, router: Router) -> None:
        self.dispatch_counter.add(1)

    def preroute(self, request: Request, response: Response) -> Any:
        ctx = request_context.get(None)
        route = ctx.pattern if ctx is not None else ""
        method = request.method.upper() or (ctx.http_method.upper() if ctx else "")

        attributes: dict[str, str] = {"http.request.method": method}
        if request.path:
            attributes["url.path"] = request.path
        if route:
            attributes["http.route"] = route
        # below isn't part of semantic conventions but having path params is useful
        for key, value in request.params.items():
            attributes[f"http.route.param.{key}"] = value

        metric_attrs = {"http.request.method": method}
        if route:
            metric_attrs["http.route"] = route
        self.routed_counter.add(1, metric_attrs)

        span_name = f"{method} {route}" if route else method
        span = trace.get_current_span()
        if span.is_recording():
            span.update_name(span_name)
            span.set_attributes(attributes)
        else:
            with self.tracer.start_as_current_span(
                f"route {span_name}",
                kind=SpanKind.INTERNAL,
                attributes=attributes,
            ):
                pass
        return None
