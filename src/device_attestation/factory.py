"""Configuration driven construction of trust anchor stores and verifiers."""

from __future__ import annotations

import logging
import threading

from dac_common.config import AttestationConfig, get_config
from dac_common.exceptions import ConfigurationError
from device_attestation.verifier import DefaultDACVerifier, DeviceAttestationVerifier
from trust_anchor.registry import TEST_TRUST_ANCHORS, FileTrustAnchorRegistry, TrustAnchorStore

logger = logging.getLogger(__name__)

_example_verifier: DefaultDACVerifier | None = None
_example_verifier_lock = threading.Lock()


def create_trust_store(config: AttestationConfig) -> TrustAnchorStore:
    """
    Build the trust anchor store selected by ``config.trust_store``.

    Raises:
        ConfigurationError: If a file store has no usable directory.
    """
    store_config = config.trust_store
    if store_config.type == "file":
        if not store_config.path:
            raise ConfigurationError("trust_store.path is required for the file trust store")
        logger.info("Using trust anchors from %s", store_config.path)
        return FileTrustAnchorRegistry(store_config.path)

    logger.info("Using built-in test trust anchors")
    return TEST_TRUST_ANCHORS


def create_verifier(config: AttestationConfig | None = None) -> DeviceAttestationVerifier:
    """Build a verifier from ``config``, loading the active configuration when omitted."""
    config = config or get_config()
    return DefaultDACVerifier(
        create_trust_store(config),
        max_vendor_reserved=config.verifier.max_vendor_reserved,
        check_validity=config.verifier.check_certificate_validity,
    )


def get_example_dac_verifier() -> DefaultDACVerifier:
    """Process-wide verifier bound to the built-in test trust anchors."""
    global _example_verifier
    with _example_verifier_lock:
        if _example_verifier is None:
            _example_verifier = DefaultDACVerifier(TEST_TRUST_ANCHORS)
        return _example_verifier
