"""Prometheus metrics: request count by route/status, latency, signed-url mint, expired links, storage errors."""
from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST

REQUEST_COUNT = Counter(
    "http_requests_total",
    "Total requests",
    ["method", "path", "status_class"],
)
REQUEST_LATENCY = Histogram(
    "http_request_duration_seconds",
    "Request latency",
    ["method", "path"],
    buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0),
)
SIGNED_URL_MINT_TOTAL = Counter(
    "object_storage_signed_url_mint_total",
    "Signed URL mints",
    ["dataset", "implementation"],
)
SIGNED_LINK_REJECTED_TOTAL = Counter(
    "object_storage_signed_link_rejected_total",
    "Local signed links rejected because they expired",
)
STORAGE_ERRORS_TOTAL = Counter(
    "object_storage_errors_total",
    "Backend failures reported to callers as absent",
    ["dataset", "operation"],  # get | get_signed_url
)

_SIGNED_LINKS_PREFIX = "/local-object-signed-links/"


def _status_class(status: int) -> str:
    if status < 200:
        return "1xx"
    if status < 300:
        return "2xx"
    if status < 400:
        return "3xx"
    if status < 500:
        return "4xx"
    return "5xx"


def record_request(method: str, path: str, status_code: int, latency_seconds: float) -> None:
    path = path or "/"
    # Normalize path to avoid high cardinality (one label per object key otherwise)
    if path.startswith(_SIGNED_LINKS_PREFIX):
        path = _SIGNED_LINKS_PREFIX + "{dataset}/{key}"
    elif path.startswith("/profile-images/") and len(path) > len("/profile-images/"):
        path = "/profile-images/{key}"
    elif path.startswith("/floorplans/") and len(path) > len("/floorplans/"):
        path = "/floorplans/{id}"
    sc = _status_class(status_code)
    REQUEST_COUNT.labels(method=method, path=path, status_class=sc).inc()
    REQUEST_LATENCY.labels(method=method, path=path).observe(latency_seconds)


def record_signed_url_mint(dataset: str, implementation: str) -> None:
    SIGNED_URL_MINT_TOTAL.labels(dataset=dataset, implementation=implementation).inc()


def record_signed_link_rejected() -> None:
    SIGNED_LINK_REJECTED_TOTAL.inc()


def record_storage_error(dataset: str, operation: str) -> None:
    STORAGE_ERRORS_TOTAL.labels(dataset=dataset, operation=operation).inc()


def get_metrics() -> tuple[bytes, str]:
    return generate_latest(), CONTENT_TYPE_LATEST
