"""Ed25519 signing and verification helpers."""

from __future__ import annotations

from cryptography.hazmat.primitives.asymmetric.ed25519 import (
    Ed25519PrivateKey,
    Ed25519PublicKey,
)
from cryptography.hazmat.primitives.serialization import (
    Encoding,
    NoEncryption,
    PrivateFormat,
    PublicFormat,
)

from skynet_utils.crypto.encoding import encode_prefixed_bytes, encode_specifier

KEY_SIZE = 32
SIGNATURE_SIZE = 64
ALGORITHM = "ed25519"


def verify_ed25519(signature: bytes, message: bytes, public_key: bytes) -> bool:
    try:
        key = Ed25519PublicKey.from_public_bytes(public_key)
        key.verify(signature, message)
    except Exception:
        return False
    return True


def sign_ed25519(message: bytes, private_key: bytes) -> bytes:
    return Ed25519PrivateKey.from_private_bytes(private_key).sign(message)


def keypair_from_entropy(entropy: bytes) -> tuple[bytes, bytes]:
    """Return ``(private_key_bytes, public_key_bytes)`` for a 32-byte Ed25519 seed."""
    if len(entropy) != KEY_SIZE:
        raise ValueError("ed25519 entropy must be 32 bytes")
    private = Ed25519PrivateKey.from_private_bytes(entropy)
    private_bytes = private.private_bytes(Encoding.Raw, PrivateFormat.Raw, NoEncryption())
    public_bytes = private.public_key().public_bytes(Encoding.Raw, PublicFormat.Raw)
    return private_bytes, public_bytes


def public_key_from_private(private_key: bytes) -> bytes:
    private = Ed25519PrivateKey.from_private_bytes(private_key)
    return private.public_key().public_bytes(Encoding.Raw, PublicFormat.Raw)


def sia_public_key_string(public_key: bytes) -> str:
    return f"{ALGORITHM}:{public_key.hex()}"


def parse_sia_public_key(value: str) -> bytes:
    algorithm, _, key_hex = value.partition(":")
    if algorithm != ALGORITHM or not key_hex:
        raise ValueError(f"unsupported public key: {value!r}")
    try:
        key = bytes.fromhex(key_hex)
    except ValueError as exc:
        raise ValueError("public key is not valid hex") from exc
    if len(key) != KEY_SIZE:
        raise ValueError("ed25519 public key must be 32 bytes")
    return key


def encode_sia_public_key(public_key: bytes) -> bytes:
    """Binary encoding of a SiaPublicKey: algorithm specifier then prefixed key."""
    return encode_specifier(ALGORITHM) + encode_prefixed_bytes(public_key)
