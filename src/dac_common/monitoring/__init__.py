"""Monitoring utilities."""

from .attestation_monitoring import AttestationMonitor

__all__ = ["AttestationMonitor"]
