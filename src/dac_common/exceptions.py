"""
Exception hierarchy shared by the device attestation packages.

Collaborators (certificate codec, signature engine, TLV codec, trust anchor
stores) raise these; the attestation verifier translates each of them into a
single verification outcome.
"""

from __future__ import annotations


class AttestationError(Exception):
    """Base exception for all attestation-related errors."""

    default_error_code = "ATTESTATION_ERROR"

    def __init__(self, message: str, error_code: str | None = None) -> None:
        """Initialize attestation error."""
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.default_error_code


class ConfigurationError(AttestationError):
    """Raised when configuration cannot be loaded or is invalid."""

    default_error_code = "CONFIGURATION_ERROR"


# Certificate codec
class CertificateError(AttestationError):
    """Base class for certificate handling errors."""

    default_error_code = "CERTIFICATE_ERROR"


class CertificateFormatError(CertificateError):
    """Raised when a certificate or one of its fields cannot be decoded."""

    default_error_code = "CERTIFICATE_FORMAT_INVALID"


class ExtensionNotFoundError(CertificateError):
    """Raised when a requested certificate attribute or extension is absent."""

    default_error_code = "EXTENSION_NOT_FOUND"


class ChainValidationError(CertificateError):
    """Raised when a certificate chain fails validation."""

    default_error_code = "CHAIN_INVALID"


# Signature engine
class SignatureError(AttestationError):
    """Base class for signature errors."""

    default_error_code = "SIGNATURE_ERROR"


class SignatureFormatError(SignatureError):
    """Raised when a signature does not fit the signature container."""

    default_error_code = "SIGNATURE_FORMAT_INVALID"


class SignatureVerificationError(SignatureError):
    """Raised when a signature does not verify."""

    default_error_code = "SIGNATURE_INVALID"


# Payload codec
class TLVError(AttestationError):
    """Raised for malformed TLV encodings."""

    default_error_code = "TLV_INVALID"


class AttestationElementsError(TLVError):
    """Raised when a TLV payload is not a well-formed attestation elements structure."""

    default_error_code = "ATTESTATION_ELEMENTS_MALFORMED"


# Trust anchor stores
class TrustAnchorError(AttestationError):
    """Base class for trust anchor store errors."""

    default_error_code = "TRUST_ANCHOR_ERROR"


class TrustAnchorNotFoundError(TrustAnchorError):
    """Raised when no trust anchor matches a key identifier."""

    default_error_code = "TRUST_ANCHOR_NOT_FOUND"


class BufferTooSmallError(TrustAnchorError):
    """Raised when a caller-provided buffer cannot hold the requested data."""

    default_error_code = "BUFFER_TOO_SMALL"

    def __init__(self, required: int, available: int) -> None:
        super().__init__(f"Buffer too small: need {required} bytes, have {available}")
        self.required = required
        self.available = available
