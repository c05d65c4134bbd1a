# /// script
# requires-python = ">=3.12"
# dependencies = [
#     "hookmux[otel]",
#     "opentelemetry-sdk>=1.27",
# ]
#
# [tool.uv.sources]
# hookmux = { path = "../", editable = true }
# ///
"""OpenTelemetry middleware demo.

Dispatches a few requests directly through the router with an in-memory
exporter so spans can be printed without an external collector.
"""

import logging

from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter

from hookmux import InvalidPathError, Request, Response, Router
from hookmux.middleware.otel import OTelMiddleware


# --- handlers ---
def hello(request: Request, response: Response) -> str:
    return "hello world"


def greet(request: Request, response: Response) -> str:
    return f"hello {request.params['name']}"


def main() -> None:
    logging.basicConfig(level=logging.INFO)

    exporter = InMemorySpanExporter()
    provider = TracerProvider()
    provider.add_span_processor(SimpleSpanProcessor(exporter))

    router = Router()
    router.attach(OTelMiddleware, tracer_provider=provider)
    router.get("/", hello)
    router.get("/greet/{name}", greet)

    for path in ("/", "/greet/world", "/missing"):
        try:
            print(path, "->", router.route(path, "GET"))
        except InvalidPathError as e:
            print(path, "->", e)

    for span in exporter.get_finished_spans():
        print(f"{span.name}: {dict(span.attributes or {})}")


if __name__ == "__main__":
    main()
