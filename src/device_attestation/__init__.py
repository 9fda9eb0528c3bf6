"""
Device attestation verification.

Verifies that a device attestation certificate chains to a registered
product attestation authority and that the device signed a fresh attestation
payload.
"""

from .elements import (
    AttestationElements,
    construct_attestation_elements,
    deconstruct_attestation_elements,
)
from .factory import create_trust_store, create_verifier, get_example_dac_verifier
from .results import AttestationRequest, AttestationVerificationResult, FailureCategory
from .verifier import DefaultDACVerifier, DeviceAttestationVerifier

__all__ = [
    "AttestationElements",
    "AttestationRequest",
    "AttestationVerificationResult",
    "DefaultDACVerifier",
    "DeviceAttestationVerifier",
    "FailureCategory",
    "construct_attestation_elements",
    "create_trust_store",
    "create_verifier",
    "deconstruct_attestation_elements",
    "get_example_dac_verifier",
]
