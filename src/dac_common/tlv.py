"""
Tag-Length-Value codec used for device attestation payloads.

Every element starts with a control byte: the upper three bits select the tag
form, the lower five bits the element type. Tags, lengths and integer values
are little-endian.

Tag forms:
- anonymous (no tag bytes)
- context-specific (1 byte tag number)
- common profile (2 or 4 byte tag number)
- implicit profile (2 or 4 byte tag number)
- fully qualified (vendor id, profile number, 2 or 4 byte tag number)
"""

from __future__ import annotations

import struct
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Any

from dac_common.exceptions import TLVError

MAX_CONTAINER_DEPTH = 16


class ElementType(IntEnum):
    """TLV element types (lower five bits of the control byte)."""

    INT8 = 0x00
    INT16 = 0x01
    INT32 = 0x02
    INT64 = 0x03
    UINT8 = 0x04
    UINT16 = 0x05
    UINT32 = 0x06
    UINT64 = 0x07
    BOOL_FALSE = 0x08
    BOOL_TRUE = 0x09
    FLOAT32 = 0x0A
    FLOAT64 = 0x0B
    UTF8_1 = 0x0C
    UTF8_2 = 0x0D
    UTF8_4 = 0x0E
    UTF8_8 = 0x0F
    BYTES_1 = 0x10
    BYTES_2 = 0x11
    BYTES_4 = 0x12
    BYTES_8 = 0x13
    NULL = 0x14
    STRUCTURE = 0x15
    ARRAY = 0x16
    LIST = 0x17
    END_OF_CONTAINER = 0x18


class TagControl(IntEnum):
    """TLV tag forms (upper three bits of the control byte)."""

    ANONYMOUS = 0x00
    CONTEXT = 0x20
    COMMON_PROFILE_2 = 0x40
    COMMON_PROFILE_4 = 0x60
    IMPLICIT_PROFILE_2 = 0x80
    IMPLICIT_PROFILE_4 = 0xA0
    FULLY_QUALIFIED_6 = 0xC0
    FULLY_QUALIFIED_8 = 0xE0


class TagKind(Enum):
    ANONYMOUS = "anonymous"
    CONTEXT = "context"
    PROFILE = "profile"
    IMPLICIT = "implicit"


_SIGNED_TYPES = {
    ElementType.INT8: 1,
    ElementType.INT16: 2,
    ElementType.INT32: 4,
    ElementType.INT64: 8,
}
_UNSIGNED_TYPES = {
    ElementType.UINT8: 1,
    ElementType.UINT16: 2,
    ElementType.UINT32: 4,
    ElementType.UINT64: 8,
}
_UTF8_TYPES = {
    ElementType.UTF8_1: 1,
    ElementType.UTF8_2: 2,
    ElementType.UTF8_4: 4,
    ElementType.UTF8_8: 8,
}
_BYTES_TYPES = {
    ElementType.BYTES_1: 1,
    ElementType.BYTES_2: 2,
    ElementType.BYTES_4: 4,
    ElementType.BYTES_8: 8,
}
_CONTAINER_TYPES = frozenset({ElementType.STRUCTURE, ElementType.ARRAY, ElementType.LIST})


@dataclass(frozen=True)
class TLVTag:
    """A TLV tag. Common profile tags are profile tags with vendor id and profile number 0."""

    kind: TagKind
    number: int | None = None
    vendor_id: int | None = None
    profile_num: int | None = None

    @property
    def is_anonymous(self) -> bool:
        return self.kind is TagKind.ANONYMOUS

    @property
    def is_context(self) -> bool:
        return self.kind is TagKind.CONTEXT

    @property
    def is_profile(self) -> bool:
        return self.kind is TagKind.PROFILE


ANONYMOUS_TAG = TLVTag(TagKind.ANONYMOUS)


def context_tag(number: int) -> TLVTag:
    if not 0 <= number <= 0xFF:
        raise ValueError(f"Context tag number out of range: {number}")
    return TLVTag(TagKind.CONTEXT, number)


def profile_tag(vendor_id: int, profile_num: int, number: int) -> TLVTag:
    if not (0 <= vendor_id <= 0xFFFF and 0 <= profile_num <= 0xFFFF):
        raise ValueError("Vendor id and profile number must fit in 16 bits")
    if not 0 <= number <= 0xFFFFFFFF:
        raise ValueError(f"Profile tag number out of range: {number}")
    return TLVTag(TagKind.PROFILE, number, vendor_id, profile_num)


def implicit_tag(number: int) -> TLVTag:
    if not 0 <= number <= 0xFFFFFFFF:
        raise ValueError(f"Implicit tag number out of range: {number}")
    return TLVTag(TagKind.IMPLICIT, number)


@dataclass(frozen=True)
class TLVElement:
    """A decoded TLV element. Containers hold a tuple of child elements."""

    tag: TLVTag
    element_type: ElementType
    value: Any

    @property
    def is_container(self) -> bool:
        return self.element_type in _CONTAINER_TYPES

    def get_bytes(self) -> bytes:
        if self.element_type not in _BYTES_TYPES:
            raise TLVError(f"Expected byte string, found {self.element_type.name}")
        return self.value

    def get_unsigned(self, max_value: int = 0xFFFFFFFFFFFFFFFF) -> int:
        if self.element_type not in _UNSIGNED_TYPES:
            raise TLVError(f"Expected unsigned integer, found {self.element_type.name}")
        if self.value > max_value:
            raise TLVError(f"Unsigned integer {self.value} exceeds {max_value}")
        return self.value

    def children(self) -> tuple[TLVElement, ...]:
        if not self.is_container:
            raise TLVError(f"Expected container, found {self.element_type.name}")
        return self.value


class TLVWriter:
    """
    Incremental TLV encoder.

    Integers are written with the smallest width that holds the value;
    byte string lengths likewise.
    """

    def __init__(self) -> None:
        self._buffer = bytearray()
        self._open_containers: list[ElementType] = []

    def put_unsigned(self, tag: TLVTag, value: int) -> None:
        if value < 0:
            raise ValueError("Unsigned value must not be negative")
        for element_type, width in _UNSIGNED_TYPES.items():
            if value < (1 << (8 * width)):
                self._put(tag, element_type, value.to_bytes(width, "little"))
                return
        raise ValueError(f"Unsigned value too large: {value}")

    def put_bytes(self, tag: TLVTag, value: bytes) -> None:
        data = bytes(value)
        for element_type, width in _BYTES_TYPES.items():
            if len(data) < (1 << (8 * width)):
                self._put(tag, element_type, len(data).to_bytes(width, "little") + data)
                return
        raise ValueError("Byte string too long")  # pragma: no cover

    @contextmanager
    def container(self, tag: TLVTag, element_type: ElementType) -> Iterator[TLVWriter]:
        if element_type not in _CONTAINER_TYPES:
            raise ValueError(f"Not a container type: {element_type.name}")
        self._put(tag, element_type, b"")
        self._open_containers.append(element_type)
        try:
            yield self
        finally:
            self._open_containers.pop()
            self._buffer.append(ElementType.END_OF_CONTAINER)

    def structure(self, tag: TLVTag = ANONYMOUS_TAG):
        return self.container(tag, ElementType.STRUCTURE)

    def getvalue(self) -> bytes:
        if self._open_containers:
            raise TLVError("Cannot finalize TLV with open containers")
        return bytes(self._buffer)

    def _put(self, tag: TLVTag, element_type: ElementType, payload: bytes) -> None:
        control, tag_bytes = _encode_tag(tag)
        self._buffer.append(control | element_type)
        self._buffer += tag_bytes
        self._buffer += payload


def _encode_tag(tag: TLVTag) -> tuple[int, bytes]:
    if tag.kind is TagKind.ANONYMOUS:
        return TagControl.ANONYMOUS, b""
    if tag.kind is TagKind.CONTEXT:
        return TagControl.CONTEXT, bytes([tag.number])
    if tag.kind is TagKind.IMPLICIT:
        if tag.number <= 0xFFFF:
            return TagControl.IMPLICIT_PROFILE_2, tag.number.to_bytes(2, "little")
        return TagControl.IMPLICIT_PROFILE_4, tag.number.to_bytes(4, "little")

    if tag.vendor_id == 0 and tag.profile_num == 0:
        if tag.number <= 0xFFFF:
            return TagControl.COMMON_PROFILE_2, tag.number.to_bytes(2, "little")
        return TagControl.COMMON_PROFILE_4, tag.number.to_bytes(4, "little")

    prefix = tag.vendor_id.to_bytes(2, "little") + tag.profile_num.to_bytes(2, "little")
    if tag.number <= 0xFFFF:
        return TagControl.FULLY_QUALIFIED_6, prefix + tag.number.to_bytes(2, "little")
    return TagControl.FULLY_QUALIFIED_8, prefix + tag.number.to_bytes(4, "little")


class _TLVReader:
    """Cursor over an encoded TLV buffer."""

    def __init__(self, data: bytes) -> None:
        self._data = data
        self._offset = 0

    @property
    def remaining(self) -> int:
        return len(self._data) - self._offset

    def _take(self, count: int) -> bytes:
        if count > self.remaining:
            raise TLVError(
                f"Truncated TLV: need {count} bytes at offset {self._offset}, have {self.remaining}"
            )
        chunk = self._data[self._offset : self._offset + count]
        self._offset += count
        return chunk

    def _take_uint(self, width: int) -> int:
        return int.from_bytes(self._take(width), "little")

    def _read_tag(self, control: int) -> TLVTag:
        if control == TagControl.ANONYMOUS:
            return ANONYMOUS_TAG
        if control == TagControl.CONTEXT:
            return TLVTag(TagKind.CONTEXT, self._take_uint(1))
        if control == TagControl.COMMON_PROFILE_2:
            return TLVTag(TagKind.PROFILE, self._take_uint(2), 0, 0)
        if control == TagControl.COMMON_PROFILE_4:
            return TLVTag(TagKind.PROFILE, self._take_uint(4), 0, 0)
        if control == TagControl.IMPLICIT_PROFILE_2:
            return TLVTag(TagKind.IMPLICIT, self._take_uint(2))
        if control == TagControl.IMPLICIT_PROFILE_4:
            return TLVTag(TagKind.IMPLICIT, self._take_uint(4))

        vendor_id = self._take_uint(2)
        profile_num = self._take_uint(2)
        width = 2 if control == TagControl.FULLY_QUALIFIED_6 else 4
        return TLVTag(TagKind.PROFILE, self._take_uint(width), vendor_id, profile_num)

    def read_element(self, depth: int) -> TLVElement | None:
        """Read one element; returns None for an end-of-container marker."""
        control_byte = self._take_uint(1)
        type_bits = control_byte & 0x1F
        try:
            element_type = ElementType(type_bits)
        except ValueError as exc:
            raise TLVError(f"Unknown TLV element type 0x{type_bits:02X}") from exc

        tag = self._read_tag(control_byte & 0xE0)

        if element_type is ElementType.END_OF_CONTAINER:
            if not tag.is_anonymous:
                raise TLVError("End-of-container marker must be anonymous")
            return None

        if element_type in _SIGNED_TYPES:
            width = _SIGNED_TYPES[element_type]
            value: Any = int.from_bytes(self._take(width), "little", signed=True)
        elif element_type in _UNSIGNED_TYPES:
            value = self._take_uint(_UNSIGNED_TYPES[element_type])
        elif element_type in (ElementType.BOOL_FALSE, ElementType.BOOL_TRUE):
            value = element_type is ElementType.BOOL_TRUE
        elif element_type is ElementType.FLOAT32:
            value = struct.unpack("<f", self._take(4))[0]
        elif element_type is ElementType.FLOAT64:
            value = struct.unpack("<d", self._take(8))[0]
        elif element_type in _BYTES_TYPES:
            length = self._take_uint(_BYTES_TYPES[element_type])
            value = bytes(self._take(length))
        elif element_type in _UTF8_TYPES:
            length = self._take_uint(_UTF8_TYPES[element_type])
            try:
                value = bytes(self._take(length)).decode("utf-8")
            except UnicodeDecodeError as exc:
                raise TLVError("Invalid UTF-8 string") from exc
        elif element_type is ElementType.NULL:
            value = None
        else:
            value = self._read_container_members(element_type, depth + 1)

        return TLVElement(tag, element_type, value)

    def _read_container_members(
        self, element_type: ElementType, depth: int
    ) -> tuple[TLVElement, ...]:
        if depth > MAX_CONTAINER_DEPTH:
            raise TLVError(f"TLV nesting exceeds {MAX_CONTAINER_DEPTH} levels")

        members: list[TLVElement] = []
        while True:
            if self.remaining == 0:
                raise TLVError(f"Unterminated {element_type.name.lower()}")
            member = self.read_element(depth)
            if member is None:
                return tuple(members)
            if element_type is ElementType.STRUCTURE and member.tag.is_anonymous:
                raise TLVError("Structure members must be tagged")
            if element_type is ElementType.ARRAY and not member.tag.is_anonymous:
                raise TLVError("Array members must be anonymous")
            members.append(member)


def decode_tlv(data: bytes) -> TLVElement:
    """
    Decode exactly one top-level TLV element.

    Raises:
        TLVError: On truncation, trailing bytes, unknown element types,
            unterminated containers or excessive nesting.
    """
    reader = _TLVReader(bytes(data))
    element = reader.read_element(depth=0)
    if element is None:
        raise TLVError("Unexpected end-of-container at top level")
    if reader.remaining:
        raise TLVError(f"{reader.remaining} trailing bytes after TLV element")
    return element
