"""Tests for the attestation elements codec."""

import pytest

from dac_common.exceptions import AttestationElementsError
from dac_common.tlv import ANONYMOUS_TAG, TLVWriter, context_tag, implicit_tag, profile_tag
from device_attestation.elements import (
    ATTESTATION_NONCE_LENGTH,
    construct_attestation_elements,
    deconstruct_attestation_elements,
)

NONCE = bytes(range(ATTESTATION_NONCE_LENGTH))
CD = b"\x30\x03\x02\x01\x01"


def _payload(build):
    writer = TLVWriter()
    with writer.structure(ANONYMOUS_TAG):
        build(writer)
    return writer.getvalue()


def _required(writer, nonce=NONCE):
    writer.put_bytes(context_tag(1), CD)
    writer.put_bytes(context_tag(2), nonce)
    writer.put_unsigned(context_tag(3), 1700000000)


def test_construct_and_deconstruct():
    data = construct_attestation_elements(
        CD,
        NONCE,
        1700000000,
        firmware_info=b"fw",
        vendor_reserved=[b"one", b"", b"two"],
        vendor_id=0xFFF1,
        profile_num=0x003E,
    )
    elements = deconstruct_attestation_elements(data)

    assert elements.certification_declaration == CD
    assert elements.attestation_nonce == NONCE
    assert elements.timestamp == 1700000000
    assert elements.firmware_info == b"fw"
    assert elements.vendor_reserved == (b"one", b"two")
    assert elements.vendor_id == 0xFFF1
    assert elements.profile_num == 0x003E


def test_minimal_payload():
    elements = deconstruct_attestation_elements(construct_attestation_elements(CD, NONCE, 0))
    assert elements.firmware_info == b""
    assert elements.vendor_reserved == ()


def test_construct_layout():
    data = construct_attestation_elements(CD, NONCE, 1)
    assert data[0] == 0x15
    assert data[1:3] == bytes([0x30, 0x01])
    assert data[-1] == 0x18


def test_vendor_reserved_tags_start_at_one():
    data = construct_attestation_elements(
        CD, NONCE, 0, vendor_reserved=[b"v"], vendor_id=0xFFF1, profile_num=2
    )
    assert bytes([0xD0, 0xF1, 0xFF, 0x02, 0x00, 0x01, 0x00, 0x01]) + b"v" in data


@pytest.mark.parametrize(
    ("kwargs", "match"),
    [
        ({"certification_declaration": b""}, "Certification declaration"),
        ({"attestation_nonce": bytes(31)}, "nonce"),
        ({"attestation_nonce": bytes(33)}, "nonce"),
        ({"timestamp": -1}, "Timestamp"),
        ({"timestamp": 1 << 32}, "Timestamp"),
    ],
)
def test_construct_rejects_invalid_arguments(kwargs, match):
    arguments = {"certification_declaration": CD, "attestation_nonce": NONCE, "timestamp": 0}
    arguments.update(kwargs)
    with pytest.raises(ValueError, match=match):
        construct_attestation_elements(**arguments)


def test_nonce_of_any_length_is_decoded():
    data = _payload(lambda w: _required(w, nonce=b"short"))
    assert deconstruct_attestation_elements(data).attestation_nonce == b"short"


def _missing_timestamp(w):
    w.put_bytes(context_tag(1), CD)
    w.put_bytes(context_tag(2), NONCE)


def _out_of_order(w):
    w.put_bytes(context_tag(2), NONCE)
    w.put_bytes(context_tag(1), CD)
    w.put_unsigned(context_tag(3), 0)


def _duplicate_tag(w):
    _required(w)
    w.put_unsigned(context_tag(3), 0)


def _unknown_context_tag(w):
    _required(w)
    w.put_bytes(context_tag(5), b"?")


def _wrong_cd_type(w):
    w.put_unsigned(context_tag(1), 1)
    w.put_bytes(context_tag(2), NONCE)
    w.put_unsigned(context_tag(3), 0)


def _oversized_timestamp(w):
    w.put_bytes(context_tag(1), CD)
    w.put_bytes(context_tag(2), NONCE)
    w.put_unsigned(context_tag(3), 1 << 40)


def _inconsistent_vendor(w):
    _required(w)
    w.put_bytes(profile_tag(0xFFF1, 1, 1), b"a")
    w.put_bytes(profile_tag(0xFFF2, 1, 2), b"b")


def _too_many_vendor_reserved(w):
    _required(w)
    for n in range(1, 4):
        w.put_bytes(profile_tag(0xFFF1, 1, n), b"x")


def _vendor_reserved_not_bytes(w):
    _required(w)
    w.put_unsigned(profile_tag(0xFFF1, 1, 1), 7)


def _implicit_tag(w):
    _required(w)
    w.put_bytes(implicit_tag(1), b"x")


@pytest.mark.parametrize(
    "build",
    [
        _missing_timestamp,
        _out_of_order,
        _duplicate_tag,
        _unknown_context_tag,
        _wrong_cd_type,
        _oversized_timestamp,
        _inconsistent_vendor,
        _too_many_vendor_reserved,
        _vendor_reserved_not_bytes,
        _implicit_tag,
    ],
)
def test_deconstruct_rejects_invalid_layout(build):
    with pytest.raises(AttestationElementsError):
        deconstruct_attestation_elements(_payload(build))


def test_deconstruct_rejects_signed_timestamp():
    data = (
        bytes([0x15])
        + bytes([0x30, 0x01, len(CD)]) + CD
        + bytes([0x30, 0x02, len(NONCE)]) + NONCE
        + bytes([0x20, 0x03, 0x05])  # int8 timestamp
        + bytes([0x18])
    )
    with pytest.raises(AttestationElementsError):
        deconstruct_attestation_elements(data)


def test_vendor_reserved_limit_is_configurable():
    data = _payload(_too_many_vendor_reserved)
    elements = deconstruct_attestation_elements(data, max_vendor_reserved=3)
    assert len(elements.vendor_reserved) == 3

    with pytest.raises(AttestationElementsError):
        deconstruct_attestation_elements(
            construct_attestation_elements(CD, NONCE, 0, vendor_reserved=[b"a"], vendor_id=1),
            max_vendor_reserved=0,
        )


@pytest.mark.parametrize(
    "data",
    [
        b"",
        b"\x15",
        bytes([0x16, 0x18]),  # array at top level
        bytes([0x35, 0x01, 0x18]),  # tagged structure at top level
        construct_attestation_elements(CD, NONCE, 0) + b"\x00",
    ],
)
def test_deconstruct_rejects_malformed_tlv(data):
    with pytest.raises(AttestationElementsError):
        deconstruct_attestation_elements(data)


def test_any_single_byte_truncation_is_rejected():
    data = construct_attestation_elements(CD, NONCE, 1700000000, firmware_info=b"fw")
    for length in range(len(data)):
        with pytest.raises(AttestationElementsError):
            deconstruct_attestation_elements(data[:length])
