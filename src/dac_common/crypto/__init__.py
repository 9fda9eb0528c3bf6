"""
Cryptographic collaborators for device attestation: certificate codec and
P-256 signature engine.
"""

from .certificate_codec import (
    KEY_IDENTIFIER_LENGTH,
    MAX_DER_CERT_LENGTH,
    VENDOR_ID_OID,
    extract_authority_key_id,
    extract_public_key,
    extract_subject_key_id,
    extract_vendor_id,
    format_key_identifier,
    load_certificate,
    load_certificate_der,
    validate_certificate_chain,
)
from .signatures import (
    P256ECDSASignature,
    sign_attestation_message,
    validate_attestation_signature,
    verify_p256_signature,
)

__all__ = [
    "KEY_IDENTIFIER_LENGTH",
    "MAX_DER_CERT_LENGTH",
    "P256ECDSASignature",
    "VENDOR_ID_OID",
    "extract_authority_key_id",
    "extract_public_key",
    "extract_subject_key_id",
    "extract_vendor_id",
    "format_key_identifier",
    "load_certificate",
    "load_certificate_der",
    "sign_attestation_message",
    "validate_attestation_signature",
    "validate_certificate_chain",
    "verify_p256_signature",
]
