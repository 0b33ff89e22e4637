"""
Observability Module - Phoenix + OpenTelemetry Integration

Traces embedding calls, searches and suggestion generation using
Arize Phoenix with OpenInference auto-instrumentation for OpenAI.

USAGE:
------
# At application startup:
from prompt_librarian.observability import init_phoenix

init_phoenix()  # Starts local Phoenix UI if PHOENIX_ENABLED=true

# In code that needs tracing:
from prompt_librarian.observability import get_tracer

tracer = get_tracer()
with tracer.start_span("my_operation", attributes={"key": "value"}) as span:
    span.set_attribute("result", "success")
"""

from __future__ import annotations

import logging

from prompt_librarian.observability.config import (
    PhoenixConfig,
    get_config,
    reset_config,
)
from prompt_librarian.observability.tracer import (
    TracerProtocol,
    SpanProtocol,
    NoOpTracer,
    NoOpSpan,
    get_tracer,
    reset_tracer,
)
from prompt_librarian.observability.attributes import (
    GEN_AI_SYSTEM,
    GEN_AI_REQUEST_MODEL,
    GEN_AI_USAGE_INPUT_TOKENS,
    LIBRARIAN_SEARCH_RESULTS,
    LIBRARIAN_SUGGESTION_COUNT,
    search_attributes,
    suggestion_attributes,
)

logger = logging.getLogger(__name__)

_phoenix_initialized = False


def init_phoenix(config: PhoenixConfig | None = None) -> bool:
    """
    Initialize Phoenix observability.

    This should be called once at application startup.
    Sets up OpenTelemetry tracer provider and registers auto-instrumentors.

    Returns:
        True if Phoenix was initialized, False if disabled or failed
    """
    global _phoenix_initialized
    if _phoenix_initialized:
        return True

    config = config or get_config()

    if not config.enabled:
        logger.debug("Phoenix observability disabled")
        return False

    try:
        from opentelemetry import trace
        from opentelemetry.sdk.trace import TracerProvider
        from opentelemetry.sdk.trace.export import BatchSpanProcessor

        if config.collector_endpoint:
            from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
            exporter = OTLPSpanExporter(endpoint=config.collector_endpoint)
            logger.info(f"Phoenix connecting to remote: {config.collector_endpoint}")
        else:
            import phoenix as px
            from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
            session = px.launch_app()
            exporter = OTLPSpanExporter(endpoint=f"{session.url.rstrip('/')}/v1/traces")
            logger.info(f"Phoenix UI available at: {session.url}")

        provider = TracerProvider()
        provider.add_span_processor(BatchSpanProcessor(exporter))
        trace.set_tracer_provider(provider)

        from prompt_librarian.observability.instrumentation import register_instrumentors
        register_instrumentors()

        reset_tracer()
        _phoenix_initialized = True
        return True

    except ImportError as e:
        logger.warning(f"Phoenix not installed, observability disabled: {e}")
        return False
    except Exception as e:
        logger.error(f"Failed to initialize Phoenix: {e}")
        return False


def shutdown_phoenix() -> None:
    """Shutdown Phoenix and cleanup resources."""
    global _phoenix_initialized

    if not _phoenix_initialized:
        return

    try:
        from opentelemetry import trace
        provider = trace.get_tracer_provider()
        if hasattr(provider, "shutdown"):
            provider.shutdown()
    except Exception as e:
        logger.warning(f"Error shutting down Phoenix: {e}")

    reset_tracer()
    reset_config()
    _phoenix_initialized = False


__all__ = [
    # Initialization
    "init_phoenix",
    "shutdown_phoenix",
    # Config
    "PhoenixConfig",
    "get_config",
    "reset_config",
    # Tracer
    "TracerProtocol",
    "SpanProtocol",
    "NoOpTracer",
    "NoOpSpan",
    "get_tracer",
    "reset_tracer",
    # Attributes
    "GEN_AI_SYSTEM",
    "GEN_AI_REQUEST_MODEL",
    "GEN_AI_USAGE_INPUT_TOKENS",
    "LIBRARIAN_SEARCH_RESULTS",
    "LIBRARIAN_SUGGESTION_COUNT",
    "search_attributes",
    "suggestion_attributes",
]
