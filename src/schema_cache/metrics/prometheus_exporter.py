"""Prometheus metrics for schema cache lookups, registry requests and codec builds."""

from prometheus_client import CollectorRegistry, Counter, Histogram, generate_latest

# Use a separate registry to avoid default Python metrics
REGISTRY = CollectorRegistry()

schema_cache_lookups_total = Counter(
    "schema_cache_lookups_total",
    "Schema cache lookups by key space and outcome",
    ["key_space", "outcome"],
    registry=REGISTRY,
)

schema_registry_requests_total = Counter(
    "schema_registry_requests_total",
    "Requests sent to the schema registry by method and outcome",
    ["method", "outcome"],
    registry=REGISTRY,
)

schema_registry_request_seconds = Histogram(
    "schema_registry_request_seconds",
    "Schema registry request latency in seconds",
    ["method"],
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
    registry=REGISTRY,
)

schema_codec_compilations_total = Counter(
    "schema_codec_compilations_total",
    "Codec compilations by schema type and outcome",
    ["schema_type", "outcome"],
    registry=REGISTRY,
)


def record_lookup(key_space: str, hit: bool) -> None:
    schema_cache_lookups_total.labels(key_space=key_space, outcome="hit" if hit else "miss").inc()


def record_request(method: str, outcome: str, latency_seconds: float) -> None:
    """Record one registry request.

    Args:
        method: HTTP method
        outcome: "ok", "http_error" or "transport_error"
        latency_seconds: Wall-clock duration of the request
    """
    schema_registry_requests_total.labels(method=method, outcome=outcome).inc()
    schema_registry_request_seconds.labels(method=method).observe(latency_seconds)


def record_compilation(schema_type: str, ok: bool) -> None:
    schema_codec_compilations_total.labels(
        schema_type=schema_type, outcome="ok" if ok else "error"
    ).inc()


def generate_metrics() -> bytes:
    """Generate Prometheus format metrics output.

    Returns:
        Prometheus text format as bytes
    """
    result: bytes = generate_latest(REGISTRY)
    return result
