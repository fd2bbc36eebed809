from prometheus_client import Counter, Gauge, Histogram, make_asgi_app

# Route templates (e.g. /admin/uploads), never raw paths, to keep label cardinality low
REQUESTS = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "route", "status"],
)

LATENCY = Histogram(
    "http_request_duration_seconds",
    "Request latency in seconds",
    ["method", "route"],
)

UPLOAD_OPERATIONS = Counter(
    "multipart_upload_operations_total",
    "Multipart upload operations by outcome",
    ["operation", "outcome"],
)

LIVE_SESSIONS = Gauge(
    "multipart_upload_live_sessions",
    "Upload sessions started but not yet completed, aborted or expired",
)

metrics_app = make_asgi_app()
