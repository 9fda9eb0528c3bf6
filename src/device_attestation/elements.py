"""
Attestation elements: the TLV payload a device signs during attestation.

Layout (anonymous structure):

    1 certification_declaration   byte string (required)
    2 attestation_nonce           byte string, 32 bytes (required)
    3 timestamp                   unsigned int, 32 bit (required)
    4 firmware_information        byte string (optional)
    vendor reserved               byte strings under fully qualified tags
                                  (vendor_id, profile_num, n), n >= 1

Context tags must appear in ascending order. All vendor reserved elements
share one vendor id and profile number.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from dac_common.exceptions import AttestationElementsError, TLVError
from dac_common.tlv import (
    ANONYMOUS_TAG,
    ElementType,
    TLVWriter,
    context_tag,
    decode_tlv,
    profile_tag,
)

CERTIFICATION_DECLARATION_TAG = 1
ATTESTATION_NONCE_TAG = 2
TIMESTAMP_TAG = 3
FIRMWARE_INFO_TAG = 4

ATTESTATION_NONCE_LENGTH = 32
DEFAULT_MAX_VENDOR_RESERVED = 2

_REQUIRED_TAGS = (CERTIFICATION_DECLARATION_TAG, ATTESTATION_NONCE_TAG, TIMESTAMP_TAG)


@dataclass(frozen=True)
class AttestationElements:
    """Decoded attestation elements."""

    certification_declaration: bytes
    attestation_nonce: bytes
    timestamp: int
    firmware_info: bytes = b""
    vendor_reserved: tuple[bytes, ...] = ()
    vendor_id: int = 0
    profile_num: int = 0


def construct_attestation_elements(
    certification_declaration: bytes,
    attestation_nonce: bytes,
    timestamp: int,
    firmware_info: bytes = b"",
    vendor_reserved: Sequence[bytes] = (),
    vendor_id: int = 0,
    profile_num: int = 0,
) -> bytes:
    """
    Encode attestation elements as TLV.

    Empty vendor reserved entries are skipped; the remaining ones are numbered
    from 1 in the order given.

    Raises:
        ValueError: On an empty certification declaration, a nonce that is
            not 32 bytes, or an out of range timestamp.
    """
    if not certification_declaration:
        raise ValueError("Certification declaration must not be empty")
    if len(attestation_nonce) != ATTESTATION_NONCE_LENGTH:
        raise ValueError(f"Attestation nonce must be {ATTESTATION_NONCE_LENGTH} bytes")
    if not 0 <= timestamp <= 0xFFFFFFFF:
        raise ValueError("Timestamp must fit in 32 bits")

    writer = TLVWriter()
    with writer.structure(ANONYMOUS_TAG):
        writer.put_bytes(context_tag(CERTIFICATION_DECLARATION_TAG), certification_declaration)
        writer.put_bytes(context_tag(ATTESTATION_NONCE_TAG), attestation_nonce)
        writer.put_unsigned(context_tag(TIMESTAMP_TAG), timestamp)
        if firmware_info:
            writer.put_bytes(context_tag(FIRMWARE_INFO_TAG), firmware_info)

        tag_number = 1
        for element in vendor_reserved:
            if not element:
                continue
            writer.put_bytes(profile_tag(vendor_id, profile_num, tag_number), element)
            tag_number += 1

    return writer.getvalue()


def deconstruct_attestation_elements(
    attestation_elements: bytes,
    max_vendor_reserved: int = DEFAULT_MAX_VENDOR_RESERVED,
) -> AttestationElements:
    """
    Decode a TLV attestation elements payload.

    Raises:
        AttestationElementsError: If the payload is not valid TLV or breaks
            any of the layout rules above.
    """
    try:
        root = decode_tlv(attestation_elements)
    except AttestationElementsError:
        raise
    except TLVError as exc:
        raise AttestationElementsError(f"Invalid TLV: {exc.message}") from exc

    if root.element_type is not ElementType.STRUCTURE or not root.tag.is_anonymous:
        raise AttestationElementsError("Attestation elements must be an anonymous structure")

    fields: dict[int, bytes | int] = {}
    last_context_tag = 0
    vendor_reserved: list[bytes] = []
    vendor_id: int | None = None
    profile_num: int | None = None

    try:
        for element in root.children():
            tag = element.tag
            if tag.is_context:
                if tag.number <= last_context_tag:
                    raise AttestationElementsError(
                        f"Context tag {tag.number} out of order or duplicated"
                    )
                if tag.number in (CERTIFICATION_DECLARATION_TAG, ATTESTATION_NONCE_TAG, FIRMWARE_INFO_TAG):
                    fields[tag.number] = element.get_bytes()
                elif tag.number == TIMESTAMP_TAG:
                    fields[tag.number] = element.get_unsigned(max_value=0xFFFFFFFF)
                else:
                    raise AttestationElementsError(f"Unexpected context tag {tag.number}")
                last_context_tag = tag.number
            elif tag.is_profile:
                if len(vendor_reserved) >= max_vendor_reserved:
                    raise AttestationElementsError(
                        f"More than {max_vendor_reserved} vendor reserved elements"
                    )
                if vendor_id is None:
                    vendor_id, profile_num = tag.vendor_id, tag.profile_num
                elif (tag.vendor_id, tag.profile_num) != (vendor_id, profile_num):
                    raise AttestationElementsError(
                        "Vendor reserved elements use inconsistent vendor id or profile"
                    )
                vendor_reserved.append(element.get_bytes())
            else:
                raise AttestationElementsError("Unexpected tag form in attestation elements")
    except AttestationElementsError:
        raise
    except TLVError as exc:
        raise AttestationElementsError(exc.message) from exc

    missing = [tag for tag in _REQUIRED_TAGS if tag not in fields]
    if missing:
        raise AttestationElementsError(f"Missing required attestation elements: {missing}")

    return AttestationElements(
        certification_declaration=fields[CERTIFICATION_DECLARATION_TAG],
        attestation_nonce=fields[ATTESTATION_NONCE_TAG],
        timestamp=fields[TIMESTAMP_TAG],
        firmware_info=fields.get(FIRMWARE_INFO_TAG, b""),
        vendor_reserved=tuple(vendor_reserved),
        vendor_id=vendor_id or 0,
        profile_num=profile_num or 0,
    )
