"""
Product Attestation Authority trust anchor stores.

A trust anchor store maps a 20-byte subject key identifier to the DER
encoding of a PAA certificate. Stores are immutable once constructed and may
be shared by any number of concurrent verifications.

Implementations:
- StaticTrustAnchorRegistry: fixed in-memory table
- FileTrustAnchorRegistry: PAA certificates provisioned into a directory
- TEST_TRUST_ANCHORS: the static table of development PAAs
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from pathlib import Path

from cryptography import x509

from dac_common.crypto.certificate_codec import (
    KEY_IDENTIFIER_LENGTH,
    MAX_DER_CERT_LENGTH,
    extract_subject_key_id,
    format_key_identifier,
    load_certificate,
    load_certificate_der,
)
from dac_common.exceptions import (
    BufferTooSmallError,
    CertificateError,
    ConfigurationError,
    TrustAnchorNotFoundError,
)
from trust_anchor.builtin_anchors import TEST_PAA_CERTIFICATES

logger = logging.getLogger(__name__)

CERTIFICATE_SUFFIXES = (".der", ".pem", ".crt")


@dataclass(frozen=True)
class TrustAnchorEntry:
    """A PAA certificate and the key identifier it is registered under."""

    key_identifier: bytes
    certificate: bytes

    def __post_init__(self) -> None:
        if len(self.key_identifier) != KEY_IDENTIFIER_LENGTH:
            msg = f"Key identifier must be {KEY_IDENTIFIER_LENGTH} bytes"
            raise ValueError(msg)
        if not self.certificate:
            raise ValueError("Trust anchor certificate must not be empty")
        if len(self.certificate) > MAX_DER_CERT_LENGTH:
            msg = f"Trust anchor certificate exceeds {MAX_DER_CERT_LENGTH} bytes"
            raise ValueError(msg)
        object.__setattr__(self, "key_identifier", bytes(self.key_identifier))
        object.__setattr__(self, "certificate", bytes(self.certificate))


class TrustAnchorStore(ABC):
    """Lookup contract shared by every trust anchor store."""

    @abstractmethod
    def lookup(self, key_identifier: bytes) -> bytes:
        """
        Return the DER certificate registered under ``key_identifier``.

        Raises:
            TrustAnchorNotFoundError: If no anchor matches exactly.
        """

    def copy_certificate(self, key_identifier: bytes, out_buffer: bytearray | memoryview) -> int:
        """
        Copy the matching certificate into ``out_buffer``.

        Returns:
            Number of bytes written.

        Raises:
            TrustAnchorNotFoundError: If no anchor matches exactly.
            BufferTooSmallError: If ``out_buffer`` cannot hold the certificate.
        """
        certificate = self.lookup(key_identifier)
        if len(certificate) > len(out_buffer):
            raise BufferTooSmallError(len(certificate), len(out_buffer))
        out_buffer[: len(certificate)] = certificate
        return len(certificate)


class StaticTrustAnchorRegistry(TrustAnchorStore):
    """Immutable, ordered in-memory table of trust anchors."""

    def __init__(self, entries: Iterable[TrustAnchorEntry]) -> None:
        entries = tuple(entries)
        seen: set[bytes] = set()
        for entry in entries:
            if entry.key_identifier in seen:
                msg = (
                    "Duplicate trust anchor key identifier "
                    f"{format_key_identifier(entry.key_identifier)}"
                )
                raise ValueError(msg)
            seen.add(entry.key_identifier)
        self._entries: tuple[TrustAnchorEntry, ...] = entries

    def lookup(self, key_identifier: bytes) -> bytes:
        key_identifier = bytes(key_identifier)
        for entry in self._entries:
            if entry.key_identifier == key_identifier:
                return entry.certificate

        logger.debug("No trust anchor for key identifier %s", format_key_identifier(key_identifier))
        raise TrustAnchorNotFoundError(
            f"No trust anchor registered for key identifier {format_key_identifier(key_identifier)}"
        )

    @property
    def entries(self) -> tuple[TrustAnchorEntry, ...]:
        return self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[TrustAnchorEntry]:
        return iter(self._entries)

    def __contains__(self, key_identifier: object) -> bool:
        if not isinstance(key_identifier, (bytes, bytearray, memoryview)):
            return False
        key_identifier = bytes(key_identifier)
        return any(entry.key_identifier == key_identifier for entry in self._entries)


class FileTrustAnchorRegistry(StaticTrustAnchorRegistry):
    """
    Trust anchors provisioned as certificate files in a directory.

    The directory is read once at construction. Files that cannot be used as
    a PAA (unparseable, not a CA, no 20-byte subject key identifier, larger
    than the certificate buffer) are skipped with a warning. When two files
    share a key identifier the first one in sorted order wins.
    """

    def __init__(self, directory: Path | str) -> None:
        self.directory = Path(directory)
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

        if not self.directory.is_dir():
            raise ConfigurationError(f"Trust anchor directory not found: {self.directory}")

        entries: list[TrustAnchorEntry] = []
        seen: set[bytes] = set()
        for cert_file in sorted(self.directory.iterdir()):
            if cert_file.suffix.lower() not in CERTIFICATE_SUFFIXES or not cert_file.is_file():
                continue

            entry = self._load_entry(cert_file)
            if entry is None:
                continue
            if entry.key_identifier in seen:
                self.logger.warning(
                    "Skipping %s: key identifier %s already registered",
                    cert_file.name,
                    format_key_identifier(entry.key_identifier),
                )
                continue
            seen.add(entry.key_identifier)
            entries.append(entry)

        super().__init__(entries)
        self.logger.info("Loaded %d trust anchors from %s", len(entries), self.directory)

    def _load_entry(self, cert_file: Path) -> TrustAnchorEntry | None:
        try:
            cert_der = load_certificate_der(cert_file.read_bytes())
            certificate = load_certificate(cert_der)
            constraints = certificate.extensions.get_extension_for_class(x509.BasicConstraints)
            if not constraints.value.ca:
                self.logger.warning("Skipping %s: not a CA certificate", cert_file.name)
                return None
            key_identifier = extract_subject_key_id(cert_der)
            return TrustAnchorEntry(key_identifier=key_identifier, certificate=cert_der)
        except x509.ExtensionNotFound:
            self.logger.warning("Skipping %s: no basic constraints", cert_file.name)
        except (CertificateError, ValueError, x509.DuplicateExtension, OSError) as e:
            self.logger.warning("Skipping %s: %s", cert_file.name, e)
        return None


def _build_test_registry() -> StaticTrustAnchorRegistry:
    return StaticTrustAnchorRegistry(
        TrustAnchorEntry(key_identifier=skid, certificate=cert_der)
        for skid, cert_der in TEST_PAA_CERTIFICATES
    )


TEST_TRUST_ANCHORS = _build_test_registry()
