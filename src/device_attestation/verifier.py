"""
Device attestation verifier.

Verification runs six ordered stages and stops at the first failure:

1. Vendor id of the intermediate (when it carries one) matches the leaf
2. Leaf public key can be extracted
3. Signature over ``payload || challenge`` is well formed and valid
4. Trust anchor is resolved from the authority key id and the chain validates
5. Attestation elements payload decodes
6. Embedded nonce equals the expected nonce
"""

from __future__ import annotations

import hmac
import logging
import time
from abc import ABC, abstractmethod

from cryptography.hazmat.primitives.asymmetric import ec
from opentelemetry import trace

from dac_common.crypto.certificate_codec import (
    MAX_DER_CERT_LENGTH,
    extract_authority_key_id,
    extract_public_key,
    extract_vendor_id,
    format_key_identifier,
    validate_certificate_chain,
)
from dac_common.crypto.signatures import P256ECDSASignature, validate_attestation_signature
from dac_common.exceptions import (
    AttestationElementsError,
    BufferTooSmallError,
    CertificateError,
    ChainValidationError,
    ExtensionNotFoundError,
    SignatureFormatError,
    SignatureVerificationError,
    TrustAnchorNotFoundError,
)
from dac_common.monitoring import AttestationMonitor
from device_attestation.elements import (
    DEFAULT_MAX_VENDOR_RESERVED,
    AttestationElements,
    deconstruct_attestation_elements,
)
from device_attestation.results import AttestationRequest, AttestationVerificationResult
from trust_anchor.registry import TrustAnchorStore

tracer = trace.get_tracer(__name__)

Result = AttestationVerificationResult


def _allocate_scratch(size: int) -> bytearray:
    """Call-scoped buffer for a trust anchor certificate."""
    return bytearray(size)


class _StageFailure(Exception):
    """Carries the outcome of the first failing stage."""

    def __init__(self, result: AttestationVerificationResult, reason: str) -> None:
        super().__init__(reason)
        self.result = result
        self.reason = reason


class DeviceAttestationVerifier(ABC):
    """Capability interface for device attestation verification."""

    @abstractmethod
    def verify_attestation(
        self,
        attestation_info: bytes,
        attestation_challenge: bytes,
        attestation_signature: bytes,
        intermediate_cert_der: bytes | None,
        leaf_cert_der: bytes,
        expected_nonce: bytes,
    ) -> AttestationVerificationResult:
        """
        Verify a device attestation.

        Args:
            attestation_info: TLV encoded attestation elements.
            attestation_challenge: Session challenge appended to the signed message.
            attestation_signature: Raw P-256 ``r || s`` signature.
            intermediate_cert_der: PAI certificate, or None/empty when absent.
            leaf_cert_der: DAC certificate.
            expected_nonce: Nonce the commissioner sent to the device.

        Returns:
            Exactly one verification outcome. Never raises.
        """

    def verify(self, request: AttestationRequest) -> AttestationVerificationResult:
        return self.verify_attestation(
            request.payload,
            request.challenge,
            request.signature,
            request.intermediate_cert,
            request.leaf_cert,
            request.expected_nonce,
        )


class DefaultDACVerifier(DeviceAttestationVerifier):
    """Verifier resolving trust anchors through an injected store."""

    def __init__(
        self,
        trust_store: TrustAnchorStore,
        *,
        max_vendor_reserved: int = DEFAULT_MAX_VENDOR_RESERVED,
        check_validity: bool = True,
    ) -> None:
        self.trust_store = trust_store
        self.max_vendor_reserved = max_vendor_reserved
        self.check_validity = check_validity
        self.monitor = AttestationMonitor()
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    def verify_attestation(
        self,
        attestation_info: bytes,
        attestation_challenge: bytes,
        attestation_signature: bytes,
        intermediate_cert_der: bytes | None,
        leaf_cert_der: bytes,
        expected_nonce: bytes,
    ) -> AttestationVerificationResult:
        intermediate = bytes(intermediate_cert_der) if intermediate_cert_der else None
        start = time.perf_counter()

        with tracer.start_as_current_span("device_attestation.verify") as span:
            span.set_attribute("attestation.has_intermediate", intermediate is not None)
            try:
                self._check_vendor_id(intermediate, leaf_cert_der)
                public_key = self._extract_leaf_key(leaf_cert_der)
                self._check_signature(
                    public_key, attestation_info, attestation_challenge, attestation_signature
                )
                self._validate_chain(intermediate, leaf_cert_der)
                elements = self._decode_payload(attestation_info)
                self._check_nonce(elements, expected_nonce)
            except _StageFailure as failure:
                result = failure.result
                self.logger.warning(
                    "Device attestation failed: %s (%s)",
                    result.name,
                    failure.reason,
                    extra={"attestation_result": result.value},
                )
            except MemoryError:
                result = Result.RESOURCE_EXHAUSTED
                self.logger.error("Device attestation failed: unable to allocate scratch buffer")
            else:
                result = Result.SUCCESS
                self.logger.info(
                    "Device attestation succeeded", extra={"attestation_result": result.value}
                )
            span.set_attribute("attestation.result", result.value)

        self.monitor.record_verification(
            result.value, result.category.value, time.perf_counter() - start
        )
        return result

    def _check_vendor_id(self, intermediate: bytes | None, leaf_cert_der: bytes) -> None:
        if intermediate is None:
            self.logger.debug("No intermediate certificate, skipping vendor id check")
            return

        try:
            intermediate_vid = extract_vendor_id(intermediate)
        except ExtensionNotFoundError:
            self.logger.debug("Intermediate carries no vendor id, skipping vendor id check")
            return
        except CertificateError as exc:
            raise _StageFailure(Result.INTERMEDIATE_FORMAT_INVALID, exc.message) from exc

        try:
            leaf_vid = extract_vendor_id(leaf_cert_der)
        except CertificateError as exc:
            raise _StageFailure(Result.LEAF_FORMAT_INVALID, exc.message) from exc

        if leaf_vid != intermediate_vid:
            raise _StageFailure(
                Result.VENDOR_ID_MISMATCH,
                f"leaf vendor id {leaf_vid:04X} != intermediate vendor id {intermediate_vid:04X}",
            )
        self.logger.debug("Vendor id %04X consistent", leaf_vid)

    def _extract_leaf_key(self, leaf_cert_der: bytes) -> ec.EllipticCurvePublicKey:
        try:
            return extract_public_key(leaf_cert_der)
        except CertificateError as exc:
            raise _StageFailure(Result.LEAF_FORMAT_INVALID, exc.message) from exc

    def _check_signature(
        self,
        public_key: ec.EllipticCurvePublicKey,
        attestation_info: bytes,
        attestation_challenge: bytes,
        attestation_signature: bytes,
    ) -> None:
        try:
            signature = P256ECDSASignature.from_bytes(attestation_signature)
        except SignatureFormatError as exc:
            raise _StageFailure(Result.SIGNATURE_FORMAT_INVALID, exc.message) from exc

        try:
            validate_attestation_signature(
                public_key, attestation_info, attestation_challenge, signature
            )
        except SignatureVerificationError as exc:
            raise _StageFailure(Result.SIGNATURE_INVALID, exc.message) from exc
        self.logger.debug("Attestation signature verified")

    def _validate_chain(self, intermediate: bytes | None, leaf_cert_der: bytes) -> None:
        try:
            key_identifier = extract_authority_key_id(
                intermediate if intermediate is not None else leaf_cert_der
            )
        except CertificateError as exc:
            raise _StageFailure(Result.TRUST_ANCHOR_NOT_FOUND, exc.message) from exc

        anchor_buffer = _allocate_scratch(MAX_DER_CERT_LENGTH)
        try:
            length = self.trust_store.copy_certificate(key_identifier, anchor_buffer)
        except TrustAnchorNotFoundError as exc:
            self.monitor.record_trust_anchor_lookup("not_found")
            raise _StageFailure(Result.TRUST_ANCHOR_NOT_FOUND, exc.message) from exc
        except BufferTooSmallError as exc:
            self.monitor.record_trust_anchor_lookup("buffer_too_small")
            raise _StageFailure(Result.TRUST_ANCHOR_NOT_FOUND, exc.message) from exc
        self.monitor.record_trust_anchor_lookup("found")
        anchor_id = format_key_identifier(key_identifier)
        self.logger.debug(
            "Resolved trust anchor %s", anchor_id, extra={"key_identifier": anchor_id}
        )

        try:
            validate_certificate_chain(
                bytes(anchor_buffer[:length]),
                intermediate,
                leaf_cert_der,
                check_validity=self.check_validity,
            )
        except ChainValidationError as exc:
            raise _StageFailure(Result.CHAIN_INVALID, exc.message) from exc

    def _decode_payload(self, attestation_info: bytes) -> AttestationElements:
        try:
            return deconstruct_attestation_elements(
                attestation_info, max_vendor_reserved=self.max_vendor_reserved
            )
        except AttestationElementsError as exc:
            raise _StageFailure(Result.PAYLOAD_MALFORMED, exc.message) from exc

    def _check_nonce(self, elements: AttestationElements, expected_nonce: bytes) -> None:
        if not hmac.compare_digest(elements.attestation_nonce, bytes(expected_nonce)):
            raise _StageFailure(Result.NONCE_MISMATCH, "attestation nonce does not match")
