"""Skylink encoding.

A skylink is 34 bytes: a little-endian uint16 bitfield followed by a 32-byte
root, written as unpadded base64url (46 characters).

V1 bitfield layout, from the least significant bit:

- 2 bits version (0 for V1, 1 for V2),
- ``mode`` one-bits terminated by a zero-bit; the alignment of offset and
  fetch size is ``4096 << mode``,
- 3 bits fetch size, stored as ``ceil(fetch_size / alignment) - 1``,
- remaining bits offset, stored as ``offset / alignment``.

A V2 skylink has bitfield 1 and its root is a registry entry id.
"""

from __future__ import annotations

import base64
import binascii
import struct
from dataclasses import dataclass

from skynet_utils.crypto.ed25519 import encode_sia_public_key
from skynet_utils.crypto.encoding import HASH_SIZE, hash_all

SECTOR_SIZE = 1 << 22
SKYLINK_SIZE = 2 + HASH_SIZE
SKYLINK_STRING_LEN = 46
URI_PREFIX = "sia://"

_BASE_ALIGNMENT = 4096
_MAX_MODE = 7
_VERSION_MASK = 0b11


def strip_uri_prefix(value: str) -> str:
    value = value.strip()
    if value.startswith(URI_PREFIX):
        return value[len(URI_PREFIX) :]
    return value


def registry_entry_id(public_key: bytes, lookup_key: bytes) -> bytes:
    return hash_all(encode_sia_public_key(public_key), lookup_key)


def encode_v1_bitfield(offset: int, fetch_size: int) -> int:
    if fetch_size <= 0:
        raise ValueError("fetch size must be positive")
    if offset < 0 or offset + fetch_size > SECTOR_SIZE:
        raise ValueError("offset plus fetch size cannot exceed the size of a sector")

    mode = 0
    alignment = _BASE_ALIGNMENT
    while fetch_size > alignment * 8:
        mode += 1
        alignment *= 2
    if mode > _MAX_MODE:  # pragma: no cover - bounded by the sector check
        raise ValueError("fetch size is too large")
    if offset % alignment != 0:
        raise ValueError(f"offset must be aligned to {alignment} bytes for this fetch size")

    offset_units = offset // alignment
    offset_width = 16 - 2 - (mode + 1) - 3
    if offset_units >= 1 << offset_width:  # pragma: no cover - bounded by the sector check
        raise ValueError("offset does not fit in the bitfield")

    bitfield = ((1 << mode) - 1) << 2
    bitfield |= ((fetch_size - 1) // alignment) << (3 + mode)
    bitfield |= offset_units << (6 + mode)
    return bitfield


def decode_v1_bitfield(bitfield: int) -> tuple[int, int]:
    """Return ``(offset, fetch_size)`` for a V1 bitfield."""
    if bitfield & _VERSION_MASK != 0:
        raise ValueError("bitfield is not a V1 skylink")
    remaining = bitfield >> 2
    if remaining & 0xFF == 0xFF:
        raise ValueError("prohibited skylink mode")
    mode = 0
    while remaining & 1:
        remaining >>= 1
        mode += 1
    remaining >>= 1
    alignment = _BASE_ALIGNMENT << mode
    fetch_size = ((remaining & 0b111) + 1) * alignment
    offset = (remaining >> 3) * alignment
    if offset + fetch_size > SECTOR_SIZE:
        raise ValueError("skylink offset and fetch size exceed the size of a sector")
    return offset, fetch_size


@dataclass(frozen=True)
class Skylink:
    bitfield: int
    merkle_root: bytes

    @classmethod
    def v1(cls, merkle_root: bytes, offset: int, fetch_size: int) -> Skylink:
        if len(merkle_root) != HASH_SIZE:
            raise ValueError("merkle root must be 32 bytes")
        return cls(bitfield=encode_v1_bitfield(offset, fetch_size), merkle_root=bytes(merkle_root))

    @classmethod
    def v2(cls, public_key: bytes, lookup_key: bytes) -> Skylink:
        return cls(bitfield=1, merkle_root=registry_entry_id(public_key, lookup_key))

    @classmethod
    def from_bytes(cls, raw: bytes) -> Skylink:
        if len(raw) != SKYLINK_SIZE:
            raise ValueError(f"skylink must be {SKYLINK_SIZE} bytes")
        (bitfield,) = struct.unpack("<H", raw[:2])
        link = cls(bitfield=bitfield, merkle_root=bytes(raw[2:]))
        if link.version == 1:
            decode_v1_bitfield(bitfield)
        return link

    @classmethod
    def from_string(cls, value: str) -> Skylink:
        encoded = strip_uri_prefix(value)
        if len(encoded) != SKYLINK_STRING_LEN:
            raise ValueError(f"skylink must be {SKYLINK_STRING_LEN} characters")
        try:
            raw = base64.urlsafe_b64decode(encoded + "==")
        except (binascii.Error, ValueError) as exc:
            raise ValueError("skylink is not valid base64") from exc
        return cls.from_bytes(raw)

    @property
    def version(self) -> int:
        return (self.bitfield & _VERSION_MASK) + 1

    @property
    def offset_and_fetch_size(self) -> tuple[int, int]:
        return decode_v1_bitfield(self.bitfield)

    def to_bytes(self) -> bytes:
        return struct.pack("<H", self.bitfield) + self.merkle_root

    def __str__(self) -> str:
        return base64.urlsafe_b64encode(self.to_bytes()).decode("ascii").rstrip("=")
