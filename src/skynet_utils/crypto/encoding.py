"""Sia binary encoding and hashing primitives.

Integers are little-endian; byte slices and strings carry an 8-byte length
prefix; fixed-size arrays (hashes, specifiers) are written raw. ``hash_all``
is blake2b-256 over the concatenated encodings.
"""

from __future__ import annotations

import hashlib
import struct

HASH_SIZE = 32
SPECIFIER_SIZE = 16


def encode_uint8(value: int) -> bytes:
    return struct.pack("<B", value)


def encode_uint64(value: int) -> bytes:
    if value < 0 or value >= 1 << 64:
        raise ValueError("value does not fit in a uint64")
    return struct.pack("<Q", value)


def encode_prefixed_bytes(data: bytes) -> bytes:
    return encode_uint64(len(data)) + data


def encode_string(value: str | bytes) -> bytes:
    raw = value.encode("utf-8") if isinstance(value, str) else value
    return encode_prefixed_bytes(raw)


def encode_specifier(name: str) -> bytes:
    raw = name.encode("ascii")
    if len(raw) > SPECIFIER_SIZE:
        raise ValueError("specifier is longer than 16 bytes")
    return raw.ljust(SPECIFIER_SIZE, b"\x00")


def blake2b256(data: bytes) -> bytes:
    return hashlib.blake2b(data, digest_size=HASH_SIZE).digest()


def hash_all(*encoded: bytes) -> bytes:
    return blake2b256(b"".join(encoded))


def hash_object(value: str | bytes) -> bytes:
    """Hash of a single Sia-encoded string."""
    return blake2b256(encode_string(value))
