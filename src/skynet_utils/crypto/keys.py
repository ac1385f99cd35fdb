"""Deterministic key derivation from a seed and a salt.

The same (seed, salt) pair always yields the same signing keypair and lookup
key, so a registry slot can be recovered from a memorized phrase alone.
Signing and lookup material use distinct domain tags.
"""

from __future__ import annotations

from dataclasses import dataclass

from skynet_utils.crypto.ed25519 import keypair_from_entropy, sia_public_key_string
from skynet_utils.crypto.encoding import hash_object
from skynet_utils.errors import InvalidSeedError
from skynet_utils.mnemonic import SEED_SIZE, MnemonicCodec

SIGNING_DOMAIN_TAG = "v2SkylinkFromSeed"
LOOKUP_DOMAIN_TAG = "v2SkylinkFromSeedDataKey"


@dataclass(frozen=True)
class SigningKeyPair:
    private_key_bytes: bytes
    public_key_bytes: bytes

    @property
    def sia_public_key(self) -> str:
        return sia_public_key_string(self.public_key_bytes)


@dataclass(frozen=True)
class DerivedKeys:
    keypair: SigningKeyPair
    lookup_key: bytes


def derive_entropy(seed: bytes, salt: str, domain_tag: str) -> bytes:
    if len(seed) != SEED_SIZE:
        raise InvalidSeedError(f"seed must be exactly {SEED_SIZE} bytes")
    return hash_object(domain_tag.encode("utf-8") + salt.encode("utf-8") + bytes(seed))


def derive_keypair(seed: bytes, salt: str) -> SigningKeyPair:
    private_bytes, public_bytes = keypair_from_entropy(
        derive_entropy(seed, salt, SIGNING_DOMAIN_TAG)
    )
    return SigningKeyPair(private_key_bytes=private_bytes, public_key_bytes=public_bytes)


def derive_lookup_key(seed: bytes, salt: str) -> bytes:
    return derive_entropy(seed, salt, LOOKUP_DOMAIN_TAG)


def derive_keys(seed: bytes, salt: str) -> DerivedKeys:
    return DerivedKeys(keypair=derive_keypair(seed, salt), lookup_key=derive_lookup_key(seed, salt))


def derive_keys_from_phrase(
    phrase: str,
    salt: str,
    *,
    codec: MnemonicCodec | None = None,
) -> DerivedKeys:
    seed = (codec or MnemonicCodec()).phrase_to_seed(phrase)
    return derive_keys(seed, salt)
