"""
ECDSA P-256 signature engine for device attestation.

Attestation signatures travel as raw ``r || s`` (32 bytes each). They are
loaded into a fixed-capacity container before any verification is attempted,
so an oversized buffer is rejected without touching the public key.
"""

from __future__ import annotations

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.asymmetric.utils import (
    decode_dss_signature,
    encode_dss_signature,
)

from dac_common.exceptions import SignatureFormatError, SignatureVerificationError

P256_COORDINATE_LENGTH = 32
P256_RAW_SIGNATURE_LENGTH = 2 * P256_COORDINATE_LENGTH


class P256ECDSASignature:
    """Fixed-capacity holder for a raw P-256 ECDSA signature."""

    MAX_LENGTH = P256_RAW_SIGNATURE_LENGTH

    __slots__ = ("_buffer", "_length")

    def __init__(self) -> None:
        self._buffer = bytearray(self.MAX_LENGTH)
        self._length = 0

    @classmethod
    def from_bytes(cls, data: bytes) -> P256ECDSASignature:
        """
        Copy ``data`` into a new container.

        Raises:
            SignatureFormatError: If ``data`` exceeds the container capacity
                or is not a complete raw signature.
        """
        signature = cls()
        signature.set_bytes(data)
        return signature

    def set_bytes(self, data: bytes) -> None:
        if len(data) > self.MAX_LENGTH:
            raise SignatureFormatError(
                f"Signature of {len(data)} bytes exceeds capacity of {self.MAX_LENGTH}"
            )
        if len(data) != P256_RAW_SIGNATURE_LENGTH:
            raise SignatureFormatError(
                f"Raw P-256 signature must be {P256_RAW_SIGNATURE_LENGTH} bytes, got {len(data)}"
            )
        self._buffer[: len(data)] = data
        self._length = len(data)

    def __len__(self) -> int:
        return self._length

    def __bytes__(self) -> bytes:
        return bytes(self._buffer[: self._length])

    def to_der(self) -> bytes:
        """Return the DER (``Ecdsa-Sig-Value``) form expected by ``cryptography``."""
        if self._length != P256_RAW_SIGNATURE_LENGTH:
            raise SignatureFormatError("Signature container is empty")
        r = int.from_bytes(self._buffer[:P256_COORDINATE_LENGTH], "big")
        s = int.from_bytes(self._buffer[P256_COORDINATE_LENGTH : self._length], "big")
        return encode_dss_signature(r, s)

    @classmethod
    def from_der(cls, der_signature: bytes) -> P256ECDSASignature:
        try:
            r, s = decode_dss_signature(der_signature)
        except ValueError as exc:
            raise SignatureFormatError(f"Invalid DER signature: {exc}") from exc
        try:
            raw = r.to_bytes(P256_COORDINATE_LENGTH, "big") + s.to_bytes(
                P256_COORDINATE_LENGTH, "big"
            )
        except OverflowError as exc:
            raise SignatureFormatError("Signature coordinates exceed P-256 size") from exc
        return cls.from_bytes(raw)


def verify_p256_signature(
    public_key: ec.EllipticCurvePublicKey,
    message: bytes,
    signature: P256ECDSASignature,
) -> None:
    """
    Verify an ECDSA-SHA256 signature over ``message``.

    Raises:
        SignatureVerificationError: If the signature does not verify.
    """
    try:
        public_key.verify(signature.to_der(), bytes(message), ec.ECDSA(hashes.SHA256()))
    except InvalidSignature as exc:
        raise SignatureVerificationError("ECDSA signature verification failed") from exc


def validate_attestation_signature(
    public_key: ec.EllipticCurvePublicKey,
    attestation_elements: bytes,
    attestation_challenge: bytes,
    signature: P256ECDSASignature,
) -> None:
    """Verify a device signature over ``attestation_elements || attestation_challenge``."""
    message = bytes(attestation_elements) + bytes(attestation_challenge)
    verify_p256_signature(public_key, message, signature)


def sign_attestation_message(
    private_key: ec.EllipticCurvePrivateKey,
    attestation_elements: bytes,
    attestation_challenge: bytes,
) -> P256ECDSASignature:
    """Device-side counterpart of validate_attestation_signature."""
    message = bytes(attestation_elements) + bytes(attestation_challenge)
    der_signature = private_key.sign(message, ec.ECDSA(hashes.SHA256()))
    return P256ECDSASignature.from_der(der_signature)
