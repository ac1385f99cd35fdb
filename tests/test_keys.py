from __future__ import annotations

import os

import pytest

from skynet_utils.crypto.ed25519 import sign_ed25519, verify_ed25519
from skynet_utils.crypto.keys import (
    LOOKUP_DOMAIN_TAG,
    SIGNING_DOMAIN_TAG,
    derive_entropy,
    derive_keypair,
    derive_keys_from_phrase,
    derive_lookup_key,
)
from skynet_utils.errors import ChecksumMismatchError, InvalidSeedError
from skynet_utils.mnemonic import seed_to_phrase
from skynet_utils.skylink import Skylink

ZERO_SEED = bytes(16)


def test_zero_seed_vectors() -> None:
    assert derive_entropy(ZERO_SEED, "salt", SIGNING_DOMAIN_TAG).hex() == (
        "9d2170c42e3f8309b2cde2da7b714057410b9e5f7b40f1db3342da5cd783c034"
    )
    assert derive_lookup_key(ZERO_SEED, "salt").hex() == (
        "b991c2e3dd2d4e9afb993b77b1df4537449005e4a74f89b1f3a80b7525fab85a"
    )
    keypair = derive_keypair(ZERO_SEED, "salt")
    assert keypair.public_key_bytes.hex() == (
        "20888f466a4a4c689ed71b1f3a4db88c7a11aa8ba03216af081051c5fc92ec67"
    )
    assert keypair.sia_public_key == "ed25519:" + keypair.public_key_bytes.hex()


def test_zero_seed_v2_skylink() -> None:
    keypair = derive_keypair(ZERO_SEED, "salt")
    lookup_key = derive_lookup_key(ZERO_SEED, "salt")
    assert str(Skylink.v2(keypair.public_key_bytes, lookup_key)) == (
        "AQA2hzGJxJys8V4WBjKNvWrwxA6G3I6-5CWDbyfo5IdfmQ"
    )


def test_derivation_is_repeatable() -> None:
    seed = os.urandom(16)
    assert derive_keypair(seed, "app") == derive_keypair(seed, "app")
    assert derive_lookup_key(seed, "app") == derive_lookup_key(seed, "app")


def test_salts_and_domains_separate_keys() -> None:
    seed = os.urandom(16)
    assert derive_lookup_key(seed, "one") != derive_lookup_key(seed, "two")
    assert derive_keypair(seed, "one") != derive_keypair(seed, "two")
    assert derive_entropy(seed, "one", SIGNING_DOMAIN_TAG) != derive_entropy(
        seed, "one", LOOKUP_DOMAIN_TAG
    )


def test_derived_keypair_signs() -> None:
    keypair = derive_keypair(os.urandom(16), "app")
    signature = sign_ed25519(b"message", keypair.private_key_bytes)
    assert verify_ed25519(signature, b"message", keypair.public_key_bytes) is True
    assert verify_ed25519(signature, b"other", keypair.public_key_bytes) is False


def test_derive_keys_from_phrase_matches_seed_derivation() -> None:
    seed = os.urandom(16)
    keys = derive_keys_from_phrase(seed_to_phrase(seed), "app")
    assert keys.keypair == derive_keypair(seed, "app")
    assert keys.lookup_key == derive_lookup_key(seed, "app")


def test_derive_keys_from_bad_phrase() -> None:
    words = seed_to_phrase(ZERO_SEED).split()
    words[14] = words[13]
    with pytest.raises(ChecksumMismatchError):
        derive_keys_from_phrase(" ".join(words), "app")


def test_derivation_rejects_bad_seed() -> None:
    with pytest.raises(InvalidSeedError):
        derive_lookup_key(bytes(8), "app")
