"""
Observability setup:
  - OpenTelemetry distributed tracing → Jaeger (via OTLP gRPC)
  - Prometheus metrics: nearby_query_latency_seconds, favorite_toggles_total, ...

Both are initialised once at startup and injected into FastAPI via middleware.
"""
import logging

from opentelemetry import trace
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.httpx import HTTPXClientInstrumentor
from opentelemetry.instrumentation.sqlalchemy import SQLAlchemyInstrumentor
from prometheus_client import Counter, Histogram

from petfinder.config import settings

logger = logging.getLogger(__name__)

# ─────────────────────────── Prometheus Metrics ───────────────────────────
NEARBY_QUERY_LATENCY = Histogram(
    "nearby_query_latency_seconds",
    "Latency of GET /api/places/nearby",
    buckets=[0.005, 0.01, 0.05, 0.1, 0.25, 0.5, 1.0],
)

NEARBY_RESULTS = Histogram(
    "nearby_results_count",
    "Places returned by a bounding-box query",
    buckets=[0, 1, 5, 10, 25, 50, 100, 250],
)

FAVORITE_CHANGES_TOTAL = Counter(
    "favorite_changes_total",
    "Favorite create/delete requests by outcome",
    ["action", "outcome"],  # action: add|remove, outcome: ok|duplicate|missing
)

COMMENTS_CREATED_TOTAL = Counter(
    "comments_created_total",
    "Total number of comments created",
)

THREAD_LIKES_TOTAL = Counter(
    "thread_likes_total",
    "Thread like/unlike actions",
    ["direction"],  # 'up' or 'down'
)

UNHANDLED_ERRORS_TOTAL = Counter(
    "unhandled_errors_total",
    "Requests that ended in a generic 500",
)


# ─────────────────────────── OpenTelemetry Setup ──────────────────────────
def setup_tracing() -> None:
    """Configure the global OTel TracerProvider with OTLP/Jaeger export."""
    if not settings.otel_enabled:
        logger.info("OTel tracing disabled")
        return

    resource = Resource.create(
        {
            "service.name": settings.service_name,
            "deployment.environment": settings.environment,
        }
    )

    provider = TracerProvider(resource=resource)

    try:
        otlp_exporter = OTLPSpanExporter(
            endpoint=settings.otel_exporter_otlp_endpoint,
            insecure=True,
        )
        provider.add_span_processor(BatchSpanProcessor(otlp_exporter))
        logger.info(
            "OTel tracing configured → %s", settings.otel_exporter_otlp_endpoint
        )
    except Exception as exc:
        logger.warning("Could not connect to OTLP exporter: %s — traces disabled", exc)

    trace.set_tracer_provider(provider)

    # Auto-instrument libraries so their spans appear in traces
    HTTPXClientInstrumentor().instrument()
    SQLAlchemyInstrumentor().instrument()


def instrument_app(app) -> None:  # noqa: ANN001
    """Call after app is created to add FastAPI request spans."""
    if settings.otel_enabled:
        FastAPIInstrumentor.instrument_app(app)
