"""
Shared library for the device attestation packages.

Contains the exception hierarchy, logging and configuration helpers, the TLV
codec and the cryptographic collaborators used by the attestation verifier.
"""

__version__ = "0.1.0"

from .exceptions import (
    AttestationElementsError,
    AttestationError,
    BufferTooSmallError,
    CertificateError,
    CertificateFormatError,
    ChainValidationError,
    ConfigurationError,
    ExtensionNotFoundError,
    SignatureError,
    SignatureFormatError,
    SignatureVerificationError,
    TLVError,
    TrustAnchorError,
    TrustAnchorNotFoundError,
)

__all__ = [
    "AttestationElementsError",
    "AttestationError",
    "BufferTooSmallError",
    "CertificateError",
    "CertificateFormatError",
    "ChainValidationError",
    "ConfigurationError",
    "ExtensionNotFoundError",
    "SignatureError",
    "SignatureFormatError",
    "SignatureVerificationError",
    "TLVError",
    "TrustAnchorError",
    "TrustAnchorNotFoundError",
]
