"""OpenTelemetry configuration for distributed tracing.

Spans are exported over OTLP/HTTP to a collector. Tracing is opt-in: when
it is not configured, the global no-op tracer provider stays in place and
``trace_function`` costs a no-op span per call.
"""

import functools
import inspect
from typing import Any, Callable, Optional, TypeVar

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.sdk.trace.sampling import ParentBased, TraceIdRatioBased
from opentelemetry.trace import Status, StatusCode

F = TypeVar("F", bound=Callable[..., Any])


def configure_tracing(
    service_name: str,
    endpoint: str = "http://localhost:4318/v1/traces",
    sampling_rate: float = 0.1,
    environment: str = "production",
    service_version: str = "1.0.0",
) -> TracerProvider:
    """Configure OpenTelemetry tracing for the service.

    Args:
        service_name: Name of the service (e.g., "booknview-api")
        endpoint: OTLP/HTTP traces endpoint of the collector
        sampling_rate: Sampling rate (0.0 to 1.0)
        environment: Deployment environment resource attribute
        service_version: Service version resource attribute

    Returns:
        Configured TracerProvider
    """
    resource = Resource(
        attributes={
            "service.name": service_name,
            "service.namespace": "booknview",
            "service.version": service_version,
            "deployment.environment": environment,
        }
    )

    provider = TracerProvider(
        resource=resource,
        sampler=ParentBased(TraceIdRatioBased(sampling_rate)),
    )
    provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(endpoint=endpoint)))

    trace.set_tracer_provider(provider)

    return provider


def instrument_app(app: Any, provider: Optional[TracerProvider] = None) -> None:
    """Attach FastAPI server spans to an application."""
    from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor

    FastAPIInstrumentor.instrument_app(
        app,
        tracer_provider=provider,
        excluded_urls="health,ready,metrics",
    )


def get_tracer(name: str) -> trace.Tracer:
    """Get a tracer instance.

    Args:
        name: Tracer name (typically __name__)

    Returns:
        Tracer instance
    """
    return trace.get_tracer(name)


def trace_function(span_name: Optional[str] = None) -> Callable[[F], F]:
    """Decorator to automatically trace a function.

    Args:
        span_name: Optional custom span name (defaults to function name)

    Returns:
        Decorated function with automatic tracing
    """

    def decorator(func: F) -> F:
        name = span_name or func.__qualname__

        @functools.wraps(func)
        def sync_wrapper(*args: Any, **kwargs: Any) -> Any:
            tracer = get_tracer(func.__module__)

            with tracer.start_as_current_span(name) as span:
                span.set_attribute("code.function", func.__name__)
                span.set_attribute("code.namespace", func.__module__)
                try:
                    result = func(*args, **kwargs)
                except Exception as exc:
                    span.record_exception(exc)
                    span.set_status(Status(StatusCode.ERROR, str(exc)))
                    raise
                span.set_status(Status(StatusCode.OK))
                return result

        @functools.wraps(func)
        async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
            tracer = get_tracer(func.__module__)

            with tracer.start_as_current_span(name) as span:
                span.set_attribute("code.function", func.__name__)
                span.set_attribute("code.namespace", func.__module__)
                try:
                    result = await func(*args, **kwargs)
                except Exception as exc:
                    span.record_exception(exc)
                    span.set_status(Status(StatusCode.ERROR, str(exc)))
                    raise
                span.set_status(Status(StatusCode.OK))
                return result

        if inspect.iscoroutinefunction(func):
            return async_wrapper  # type: ignore
        return sync_wrapper  # type: ignore

    return decorator
