"""Device attestation verification outcomes."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class FailureCategory(Enum):
    """Coarse classification of verification outcomes."""

    NONE = "none"
    FORMAT = "format"  # malformed leaf/intermediate/signature/payload encoding
    TRUST = "trust"  # unresolvable trust anchor
    CRYPTO = "crypto"  # signature or chain verification failure
    POLICY = "policy"  # vendor id or nonce mismatch
    RESOURCE = "resource"  # scratch allocation failure


class AttestationVerificationResult(Enum):
    """Exactly one outcome is returned per verification."""

    SUCCESS = "success"
    VENDOR_ID_MISMATCH = "vendor_id_mismatch"
    INTERMEDIATE_FORMAT_INVALID = "intermediate_format_invalid"
    LEAF_FORMAT_INVALID = "leaf_format_invalid"
    SIGNATURE_FORMAT_INVALID = "signature_format_invalid"
    SIGNATURE_INVALID = "signature_invalid"
    TRUST_ANCHOR_NOT_FOUND = "trust_anchor_not_found"
    CHAIN_INVALID = "chain_invalid"
    PAYLOAD_MALFORMED = "payload_malformed"
    NONCE_MISMATCH = "nonce_mismatch"
    RESOURCE_EXHAUSTED = "resource_exhausted"

    @property
    def category(self) -> FailureCategory:
        return _CATEGORIES[self]

    @property
    def is_success(self) -> bool:
        return self is AttestationVerificationResult.SUCCESS


_CATEGORIES = {
    AttestationVerificationResult.SUCCESS: FailureCategory.NONE,
    AttestationVerificationResult.VENDOR_ID_MISMATCH: FailureCategory.POLICY,
    AttestationVerificationResult.INTERMEDIATE_FORMAT_INVALID: FailureCategory.FORMAT,
    AttestationVerificationResult.LEAF_FORMAT_INVALID: FailureCategory.FORMAT,
    AttestationVerificationResult.SIGNATURE_FORMAT_INVALID: FailureCategory.FORMAT,
    AttestationVerificationResult.SIGNATURE_INVALID: FailureCategory.CRYPTO,
    AttestationVerificationResult.TRUST_ANCHOR_NOT_FOUND: FailureCategory.TRUST,
    # A broken chain of custody is treated like an invalid signature.
    AttestationVerificationResult.CHAIN_INVALID: FailureCategory.CRYPTO,
    AttestationVerificationResult.PAYLOAD_MALFORMED: FailureCategory.FORMAT,
    AttestationVerificationResult.NONCE_MISMATCH: FailureCategory.POLICY,
    AttestationVerificationResult.RESOURCE_EXHAUSTED: FailureCategory.RESOURCE,
}


@dataclass(frozen=True)
class AttestationRequest:
    """Raw inputs of one verification. The verifier does not retain it."""

    payload: bytes
    challenge: bytes
    signature: bytes
    leaf_cert: bytes
    expected_nonce: bytes
    intermediate_cert: bytes | None = None
