"""Observability for Linkly.

Structured logs carry the request ID of the request being served.
Prometheus counters cover redirects, link changes, limiter denials and
recorded clicks. Sentry and OpenTelemetry only start when their
settings are filled in.
"""

import logging
import time
import uuid

import sentry_sdk
import structlog
from fastapi import FastAPI, Request, Response
from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.sdk.resources import SERVICE_NAME, SERVICE_VERSION, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest
from sentry_sdk.integrations.fastapi import FastApiIntegration
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from linkly.core.config import Settings

REQUEST_ID_HEADER = "X-Request-ID"

# Paths that are not aliases
_FIXED_PATHS = {"/", "/health", "/metrics", "/docs", "/redoc", "/openapi.json"}

REQUEST_COUNT = Counter(
    "http_requests_total",
    "HTTP requests by route and status",
    ["method", "endpoint", "status_code"],
)

REQUEST_LATENCY = Histogram(
    "http_request_duration_seconds",
    "Time spent serving HTTP requests",
    ["method", "endpoint"],
    # Redirects should land in the lowest buckets
    buckets=[0.001, 0.0025, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0],
)

REDIRECT_COUNT = Counter(
    "redirects_total",
    "Alias resolutions by response status",
    ["status_code"],
)

LINK_OPERATIONS = Counter(
    "link_operations_total",
    "Link changes made through the management API",
    ["operation"],
)

RATE_LIMIT_DENIALS = Counter(
    "rate_limit_denials_total",
    "Visits denied by the per-client limiter",
    ["enforced"],
)

CLICKS_RECORDED = Counter(
    "clicks_recorded_total",
    "Click events appended to the click log",
)


def normalize_endpoint(path: str) -> str:
    """Collapse path parameters so metric labels stay low-cardinality."""
    if path.startswith("/api/v1/links/"):
        if path.endswith("/analytics"):
            return "/api/v1/links/{id}/analytics"
        return "/api/v1/links/{id}"
    if path.startswith("/api/") or path in _FIXED_PATHS:
        return path
    return "/{alias}"


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Tags each request with an ID, logs it and records HTTP metrics.

    A caller supplied X-Request-ID is reused, otherwise a new one is
    made. The ID is bound into the structlog context for the duration
    of the request and echoed back on the response.
    """

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            method=request.method,
            path=request.url.path,
        )
        logger = structlog.get_logger()
        started = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception:
            logger.exception("Request failed")
            raise

        elapsed = time.perf_counter() - started
        endpoint = normalize_endpoint(request.url.path)
        REQUEST_COUNT.labels(request.method, endpoint, response.status_code).inc()
        REQUEST_LATENCY.labels(request.method, endpoint).observe(elapsed)

        logger.info(
            "Request served",
            status_code=response.status_code,
            duration_ms=round(elapsed * 1000, 2),
            client_ip=request.client.host if request.client else None,
        )
        response.headers[REQUEST_ID_HEADER] = request_id
        return response


def configure_structlog(debug: bool = False) -> None:
    """Route structlog through stdlib logging.

    Output is JSON, or coloured console lines when ``debug`` is on.
    """
    renderer = structlog.dev.ConsoleRenderer() if debug else structlog.processors.JSONRenderer()

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(format="%(message)s", level=logging.DEBUG if debug else logging.INFO)


def setup_opentelemetry(app: FastAPI, settings: Settings) -> None:
    """Export request spans over OTLP when an endpoint is configured."""
    logger = structlog.get_logger()
    if not settings.otlp_endpoint:
        logger.info("Tracing disabled", reason="no OTLP endpoint")
        return

    resource = Resource.create({
        SERVICE_NAME: settings.app_name.lower(),
        SERVICE_VERSION: settings.app_version,
    })
    provider = TracerProvider(resource=resource)
    exporter = OTLPSpanExporter(endpoint=settings.otlp_endpoint, insecure=settings.otlp_insecure)
    provider.add_span_processor(BatchSpanProcessor(exporter))
    trace.set_tracer_provider(provider)

    FastAPIInstrumentor.instrument_app(app, tracer_provider=provider, excluded_urls="metrics,health")
    logger.info("Tracing enabled", otlp_endpoint=settings.otlp_endpoint)


def setup_sentry(settings: Settings) -> None:
    """Report unhandled errors to Sentry when a DSN is configured."""
    logger = structlog.get_logger()
    if not settings.sentry_dsn:
        logger.info("Sentry disabled", reason="no DSN")
        return

    sentry_sdk.init(
        dsn=settings.sentry_dsn,
        environment=settings.environment,
        release=f"linkly@{settings.app_version}",
        traces_sample_rate=settings.sentry_traces_sample_rate,
        integrations=[FastApiIntegration(transaction_style="endpoint")],
        send_default_pii=False,
    )
    logger.info("Sentry enabled", environment=settings.environment)


def setup_observability(app: FastAPI, settings: Settings) -> None:
    """Configure logging, Sentry and tracing, and serve /metrics."""
    configure_structlog(settings.debug)
    setup_sentry(settings)
    setup_opentelemetry(app, settings)

    @app.get("/metrics", include_in_schema=False)
    async def metrics() -> Response:
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)


def record_redirect(status_code: int) -> None:
    REDIRECT_COUNT.labels(status_code=status_code).inc()


def record_link_operation(operation: str) -> None:
    """Count a create, update or delete made through the API."""
    LINK_OPERATIONS.labels(operation=operation).inc()


def record_rate_limit_denial(enforced: bool) -> None:
    RATE_LIMIT_DENIALS.labels(enforced=str(enforced).lower()).inc()


def record_click_recorded() -> None:
    CLICKS_RECORDED.inc()
