"""
Tracer Factory and NoOp Implementations

Provides get_tracer() factory that returns either a real OTel tracer
or a NoOpTracer for graceful degradation.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Iterator, Protocol


# ---------------------------------------------------------------------------
# PROTOCOLS
# ---------------------------------------------------------------------------


class SpanProtocol(Protocol):
    """Protocol for span operations."""

    def set_attribute(self, key: str, value: Any) -> None:
        """Set a span attribute."""
        ...

    def set_status(self, status: str, description: str | None = None) -> None:
        """Set span status (ok, error)."""
        ...

    def record_exception(self, exception: BaseException) -> None:
        """Record an exception on the span."""
        ...


class TracerProtocol(Protocol):
    """Protocol for tracer operations."""

    def start_span(
        self, name: str, attributes: dict[str, Any] | None = None
    ) -> Any:
        """Start a new span as context manager yielding a SpanProtocol."""
        ...


# ---------------------------------------------------------------------------
# NOOP IMPLEMENTATIONS (for graceful degradation)
# ---------------------------------------------------------------------------


class NoOpSpan:
    """No-op span that does nothing."""

    def set_attribute(self, key: str, value: Any) -> None:
        pass

    def set_status(self, status: str, description: str | None = None) -> None:
        pass

    def record_exception(self, exception: BaseException) -> None:
        pass


class NoOpTracer:
    """No-op tracer that creates no-op spans."""

    @contextmanager
    def start_span(self, name: str, attributes: dict[str, Any] | None = None) -> Iterator[NoOpSpan]:
        yield NoOpSpan()


# ---------------------------------------------------------------------------
# REAL OTEL TRACER (wrapped for our protocol)
# ---------------------------------------------------------------------------


class OTelSpan:
    """Wrapper around OTel span to match our protocol."""

    def __init__(self, span: Any):
        self._span = span

    def set_attribute(self, key: str, value: Any) -> None:
        self._span.set_attribute(key, value)

    def set_status(self, status: str, description: str | None = None) -> None:
        from opentelemetry.trace import StatusCode
        code = StatusCode.OK if status == "ok" else StatusCode.ERROR
        # OTel only accepts a description alongside ERROR
        self._span.set_status(code, description if code == StatusCode.ERROR else None)

    def record_exception(self, exception: BaseException) -> None:
        self._span.record_exception(exception)


class OTelTracer:
    """Wrapper around OTel tracer to match our protocol."""

    def __init__(self, tracer: Any):
        self._tracer = tracer

    @contextmanager
    def start_span(self, name: str, attributes: dict[str, Any] | None = None) -> Iterator[OTelSpan]:
        with self._tracer.start_as_current_span(name, attributes=attributes) as span:
            yield OTelSpan(span)


# ---------------------------------------------------------------------------
# FACTORY
# ---------------------------------------------------------------------------


_tracer: TracerProtocol | None = None


def get_tracer(service_name: str = "prompt-librarian") -> TracerProtocol:
    """
    Get the global tracer instance.

    Returns OTelTracer if Phoenix is enabled and OTel is available,
    otherwise returns NoOpTracer for zero overhead.

    Args:
        service_name: Service name for the tracer (used on first call only)
    """
    global _tracer
    if _tracer is not None:
        return _tracer

    from prompt_librarian.observability.config import get_config

    config = get_config()

    if not config.enabled:
        _tracer = NoOpTracer()
        return _tracer

    try:
        from opentelemetry import trace
        from opentelemetry.sdk.trace import TracerProvider

        provider = trace.get_tracer_provider()
        if not isinstance(provider, TracerProvider):
            # init_phoenix() hasn't installed a provider yet
            _tracer = NoOpTracer()
            return _tracer

        _tracer = OTelTracer(trace.get_tracer(service_name))
        return _tracer

    except ImportError:
        _tracer = NoOpTracer()
        return _tracer


def reset_tracer() -> None:
    """Reset tracer (useful for testing)."""
    global _tracer
    _tracer = None
