"""
X.509 helpers for device attestation certificates.

This module extracts the fields the attestation verifier needs from DER
encoded PAA, PAI and DAC certificates and validates the chain of custody
anchor -> [intermediate] -> leaf.

The vendor identifier is carried as a subject DN attribute whose
value is a four digit upper-case hexadecimal string (for example "FFF1").
"""

from __future__ import annotations

import binascii
import logging
from datetime import datetime, timezone

from cryptography import x509
from cryptography.exceptions import InvalidSignature, UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.x509.oid import ExtensionOID

from dac_common.exceptions import (
    CertificateFormatError,
    ChainValidationError,
    ExtensionNotFoundError,
)

logger = logging.getLogger(__name__)

VENDOR_ID_OID = x509.ObjectIdentifier("1.3.6.1.4.1.37244.2.1")

KEY_IDENTIFIER_LENGTH = 20
MAX_DER_CERT_LENGTH = 600


def load_certificate(cert_der: bytes) -> x509.Certificate:
    """Parse a DER certificate, raising CertificateFormatError on failure."""
    if not cert_der:
        raise CertificateFormatError("Empty certificate buffer")
    try:
        return x509.load_der_x509_certificate(bytes(cert_der))
    except (ValueError, TypeError) as exc:
        raise CertificateFormatError(f"Unable to parse DER certificate: {exc}") from exc


def load_certificate_der(data: bytes) -> bytes:
    """Accept a PEM or DER encoded certificate and return its DER encoding."""
    data = bytes(data)
    if data.lstrip().startswith(b"-----BEGIN"):
        try:
            certificate = x509.load_pem_x509_certificate(data)
        except ValueError as exc:
            raise CertificateFormatError(f"Unable to parse PEM certificate: {exc}") from exc
        return certificate.public_bytes(serialization.Encoding.DER)
    load_certificate(data)
    return data


def _extract_hex_attribute(cert_der: bytes, oid: x509.ObjectIdentifier, label: str) -> int:
    certificate = load_certificate(cert_der)
    try:
        attributes = certificate.subject.get_attributes_for_oid(oid)
    except ValueError as exc:
        raise CertificateFormatError(f"Unable to read subject of certificate: {exc}") from exc

    if not attributes:
        raise ExtensionNotFoundError(f"Certificate subject carries no {label}")
    if len(attributes) > 1:
        raise CertificateFormatError(f"Certificate subject carries more than one {label}")

    raw_value = attributes[0].value
    if not isinstance(raw_value, str) or len(raw_value) != 4:
        raise CertificateFormatError(f"Malformed {label} attribute: {raw_value!r}")
    try:
        return int(raw_value, 16)
    except ValueError as exc:
        raise CertificateFormatError(f"Malformed {label} attribute: {raw_value!r}") from exc


def extract_vendor_id(cert_der: bytes) -> int:
    """
    Return the vendor id carried in the certificate subject.

    Raises:
        ExtensionNotFoundError: The subject has no vendor id attribute.
        CertificateFormatError: The certificate or the attribute is malformed.
    """
    return _extract_hex_attribute(cert_der, VENDOR_ID_OID, "vendor id")


def extract_public_key(cert_der: bytes) -> ec.EllipticCurvePublicKey:
    """Return the certificate's P-256 public key."""
    certificate = load_certificate(cert_der)
    try:
        public_key = certificate.public_key()
    except (ValueError, UnsupportedAlgorithm) as exc:
        raise CertificateFormatError(f"Unable to decode public key: {exc}") from exc

    if not isinstance(public_key, ec.EllipticCurvePublicKey):
        raise CertificateFormatError(
            f"Unsupported public key type: {type(public_key).__name__}"
        )
    if not isinstance(public_key.curve, ec.SECP256R1):
        raise CertificateFormatError(f"Unsupported curve: {public_key.curve.name}")
    return public_key


def extract_authority_key_id(cert_der: bytes) -> bytes:
    """Return the 20-byte key identifier from the authority key identifier extension."""
    certificate = load_certificate(cert_der)
    try:
        extension = certificate.extensions.get_extension_for_oid(
            ExtensionOID.AUTHORITY_KEY_IDENTIFIER
        )
    except x509.ExtensionNotFound as exc:
        raise ExtensionNotFoundError("Certificate has no authority key identifier") from exc
    except (ValueError, x509.DuplicateExtension) as exc:
        raise CertificateFormatError(f"Unable to decode extensions: {exc}") from exc

    key_identifier = extension.value.key_identifier
    if key_identifier is None or len(key_identifier) != KEY_IDENTIFIER_LENGTH:
        raise CertificateFormatError("Authority key identifier must be 20 bytes")
    return bytes(key_identifier)


def extract_subject_key_id(cert_der: bytes) -> bytes:
    """Return the 20-byte subject key identifier."""
    certificate = load_certificate(cert_der)
    try:
        extension = certificate.extensions.get_extension_for_oid(
            ExtensionOID.SUBJECT_KEY_IDENTIFIER
        )
    except x509.ExtensionNotFound as exc:
        raise ExtensionNotFoundError("Certificate has no subject key identifier") from exc
    except (ValueError, x509.DuplicateExtension) as exc:
        raise CertificateFormatError(f"Unable to decode extensions: {exc}") from exc

    key_identifier = extension.value.digest
    if len(key_identifier) != KEY_IDENTIFIER_LENGTH:
        raise CertificateFormatError("Subject key identifier must be 20 bytes")
    return bytes(key_identifier)


def _subject_name(certificate: x509.Certificate) -> str:
    try:
        return certificate.subject.rfc4514_string()
    except ValueError:
        return "<unparseable subject>"


def _basic_constraints(certificate: x509.Certificate) -> x509.BasicConstraints | None:
    try:
        return certificate.extensions.get_extension_for_class(x509.BasicConstraints).value
    except x509.ExtensionNotFound:
        return None
    except (ValueError, x509.DuplicateExtension) as exc:
        raise ChainValidationError(
            f"Unable to decode extensions of {_subject_name(certificate)}: {exc}"
        ) from exc


def _check_validity(certificate: x509.Certificate, validation_time: datetime) -> None:
    if validation_time < certificate.not_valid_before_utc:
        raise ChainValidationError(
            f"Certificate {_subject_name(certificate)} not valid until "
            f"{certificate.not_valid_before_utc.isoformat()}"
        )
    if validation_time > certificate.not_valid_after_utc:
        raise ChainValidationError(
            f"Certificate {_subject_name(certificate)} expired on "
            f"{certificate.not_valid_after_utc.isoformat()}"
        )


def _verify_issued_by(subject: x509.Certificate, issuer: x509.Certificate) -> None:
    if subject.issuer != issuer.subject:
        raise ChainValidationError(
            f"Issuer of {_subject_name(subject)} does not match {_subject_name(issuer)}"
        )
    try:
        subject.verify_directly_issued_by(issuer)
    except InvalidSignature as exc:
        raise ChainValidationError(
            f"Signature on {_subject_name(subject)} does not verify under {_subject_name(issuer)}"
        ) from exc
    except (ValueError, TypeError, UnsupportedAlgorithm) as exc:
        raise ChainValidationError(
            f"Unable to verify {_subject_name(subject)}: {exc}"
        ) from exc


def validate_certificate_chain(
    anchor_der: bytes,
    intermediate_der: bytes | None,
    leaf_der: bytes,
    validation_time: datetime | None = None,
    check_validity: bool = True,
) -> None:
    """
    Validate anchor -> [intermediate] -> leaf.

    The anchor must be a self-signed CA, every issuer must be a CA whose path
    length constraint admits the certificates below it, the leaf must not be
    a CA, and each signature must verify under its issuer's key.

    Raises:
        ChainValidationError: If any of the checks fails.
    """
    validation_time = validation_time or datetime.now(timezone.utc)

    try:
        anchor = load_certificate(anchor_der)
        leaf = load_certificate(leaf_der)
        intermediate = load_certificate(intermediate_der) if intermediate_der else None
    except CertificateFormatError as exc:
        raise ChainValidationError(exc.message) from exc

    # leaf first, anchor last
    path = [leaf] + ([intermediate] if intermediate is not None else []) + [anchor]

    _verify_issued_by(anchor, anchor)

    for depth, (subject, issuer) in enumerate(zip(path, path[1:])):
        constraints = _basic_constraints(issuer)
        if constraints is None or not constraints.ca:
            raise ChainValidationError(f"Issuer {_subject_name(issuer)} is not a CA")
        # number of CA certificates between this issuer and the leaf
        if constraints.path_length is not None and depth > constraints.path_length:
            raise ChainValidationError(
                f"Path length constraint of {_subject_name(issuer)} exceeded"
            )
        _verify_issued_by(subject, issuer)

    leaf_constraints = _basic_constraints(leaf)
    if leaf_constraints is not None and leaf_constraints.ca:
        raise ChainValidationError("Leaf certificate must not be a CA")

    if check_validity:
        for certificate in path:
            _check_validity(certificate, validation_time)

    logger.debug(
        "Certificate chain validated for %s (anchor %s)",
        _subject_name(leaf),
        _subject_name(anchor),
    )


def format_key_identifier(key_identifier: bytes) -> str:
    """Hex representation of a key identifier for logs."""
    return binascii.hexlify(bytes(key_identifier)).decode().upper()
