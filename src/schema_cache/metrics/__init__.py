"""Prometheus metrics for the schema cache."""

from .prometheus_exporter import (
    REGISTRY,
    generate_metrics,
    record_compilation,
    record_lookup,
    record_request,
)

__all__ = [
    "REGISTRY",
    "generate_metrics",
    "record_compilation",
    "record_lookup",
    "record_request",
]
