"""Prometheus metric definitions."""

from prometheus_client import Counter, Histogram, generate_latest
from starlette.responses import Response


payment_requests_total = Counter(
    "payment_requests_total",
    "Total payment initiations by kind (stk, b2c)",
    ["service", "kind"],
)
payment_sent_total = Counter(
    "payment_sent_total",
    "Initiations accepted by the gateway",
    ["service", "kind"],
)
payment_failure_total = Counter(
    "payment_failure_total",
    "Initiations that failed before reaching a pending state",
    ["service", "kind", "reason"],
)
callbacks_total = Counter(
    "callbacks_total",
    "Inbound gateway callbacks by kind and outcome",
    ["service", "kind", "outcome"],
)
duplicate_callbacks_skipped_total = Counter(
    "duplicate_callbacks_skipped_total",
    "Callbacks ignored because the attempt was already terminal",
    ["service", "kind"],
)
gateway_request_duration_seconds = Histogram(
    "gateway_request_duration_seconds",
    "Outbound M-Pesa call duration seconds",
    ["service", "endpoint"],
)
retries_total = Counter("retries_total", "Retry count", ["service", "dependency"])
http_requests_total = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["service", "route", "method", "status_code"],
)
http_request_duration_seconds = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration seconds",
    ["service", "route", "method"],
)


def metrics_response() -> Response:
    """Expose all registered Prometheus metrics in text format."""

    return Response(content=generate_latest(), media_type="text/plain")
