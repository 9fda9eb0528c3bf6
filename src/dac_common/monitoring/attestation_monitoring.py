"""Prometheus metrics for device attestation verification.

Provides:
- Verification outcome counters labelled by result and failure category
- Verification latency histogram
- Trust anchor lookup counters
"""

from __future__ import annotations

import logging

from prometheus_client import Counter, Histogram

attestation_verifications_total = Counter(
    "attestation_verifications_total",
    "Total device attestation verifications",
    ["result", "category"],
)

attestation_verification_duration_seconds = Histogram(
    "attestation_verification_duration_seconds",
    "Device attestation verification duration",
)

trust_anchor_lookups_total = Counter(
    "trust_anchor_lookups_total",
    "Total trust anchor lookups",
    ["status"],  # "found", "not_found", "buffer_too_small"
)


class AttestationMonitor:
    """Attestation verification metrics."""

    def __init__(self) -> None:
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    def record_verification(self, result: str, category: str, duration_seconds: float) -> None:
        """Record one verification outcome."""
        attestation_verifications_total.labels(result=result, category=category).inc()
        attestation_verification_duration_seconds.observe(duration_seconds)
        self.logger.debug("Recorded attestation outcome %s in %.4fs", result, duration_seconds)

    def record_trust_anchor_lookup(self, status: str) -> None:
        trust_anchor_lookups_total.labels(status=status).inc()
