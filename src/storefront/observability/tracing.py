"""
OpenTelemetry availability check for storefront.

This module is the single place that tries to import OpenTelemetry, so the
rest of the package can depend on the ``OTEL_AVAILABLE`` flag instead of
repeating the import dance.
"""

from __future__ import annotations

# Optional OpenTelemetry import - single source of truth
try:
    from opentelemetry import trace  # noqa: F401

    OTEL_AVAILABLE = True
except ImportError:
    OTEL_AVAILABLE = False

__all__ = [
    "OTEL_AVAILABLE",
]
