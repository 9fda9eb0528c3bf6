"""Configuration package for the device attestation verifier."""

from .service_config import (
    AttestationConfig,
    LoggingConfig,
    TrustStoreConfig,
    VerifierConfig,
    get_config,
    get_environment,
)

__all__ = [
    "AttestationConfig",
    "LoggingConfig",
    "TrustStoreConfig",
    "VerifierConfig",
    "get_config",
    "get_environment",
]
