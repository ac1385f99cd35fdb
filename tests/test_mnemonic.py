from __future__ import annotations

import os

import pytest

from skynet_utils.dictionary import DICTIONARY_V1
from skynet_utils.errors import (
    ChecksumMismatchError,
    InternalFault,
    InvalidSeedError,
    InvalidVersionWordError,
    MalformedPhraseError,
    UnknownWordError,
)
from skynet_utils.mnemonic import (
    MnemonicCodec,
    find_shared_prefixes,
    generate_seed,
    match_word_prefix,
    phrase_to_seed,
    seed_to_phrase,
)

ZERO_SEED_PHRASE = " ".join(["abbey"] * 13 + ["amidst", "punch"])
FULL_SEED_PHRASE = " ".join(["yanks"] * 12 + ["eggs", "voyage", "topic"])


def test_zero_seed_encodes_to_known_phrase() -> None:
    seed = bytes(16)
    phrase = seed_to_phrase(seed)
    assert phrase == ZERO_SEED_PHRASE
    assert phrase_to_seed(phrase) == seed
    assert seed_to_phrase(phrase_to_seed(phrase)) == phrase


def test_all_ones_seed_encodes_to_known_phrase() -> None:
    seed = b"\xff" * 16
    assert seed_to_phrase(seed) == FULL_SEED_PHRASE
    assert phrase_to_seed(FULL_SEED_PHRASE) == seed


@pytest.mark.parametrize("seed", [os.urandom(16) for _ in range(25)] + [generate_seed()])
def test_random_seeds_round_trip(seed: bytes) -> None:
    codec = MnemonicCodec()
    words = codec.encode(seed)
    assert len(words) == 15
    assert codec.decode(words) == seed


def test_abbreviated_words_decode() -> None:
    seed = os.urandom(16)
    words = MnemonicCodec().encode(seed)
    abbreviated = [word[:3] for word in words[:13]] + words[13:]
    assert phrase_to_seed(" ".join(abbreviated)) == seed


@pytest.mark.parametrize("count", [14, 16])
def test_wrong_word_count_is_malformed(count: int) -> None:
    words = ZERO_SEED_PHRASE.split()
    words = (words + ["abbey"])[:count]
    with pytest.raises(MalformedPhraseError):
        MnemonicCodec().decode(words)


def test_checksum_words_are_verified() -> None:
    words = seed_to_phrase(os.urandom(16)).split()
    for position in (13, 14):
        tampered = list(words)
        index = DICTIONARY_V1.index(tampered[position])
        tampered[position] = DICTIONARY_V1[(index + 1) % len(DICTIONARY_V1)]
        with pytest.raises(ChecksumMismatchError):
            MnemonicCodec().decode(tampered)


def test_checksum_words_must_match_exactly() -> None:
    words = ZERO_SEED_PHRASE.split()
    words[13] = words[13][:3]
    with pytest.raises(ChecksumMismatchError):
        MnemonicCodec().decode(words)


def test_unknown_word_is_rejected() -> None:
    words = ZERO_SEED_PHRASE.split()
    words[4] = "qqqqq"
    with pytest.raises(UnknownWordError):
        MnemonicCodec().decode(words)


def test_short_word_is_rejected() -> None:
    words = ZERO_SEED_PHRASE.split()
    words[0] = "ab"
    with pytest.raises(UnknownWordError):
        MnemonicCodec().decode(words)


def test_thirteenth_word_above_256_is_rejected() -> None:
    words = ZERO_SEED_PHRASE.split()
    words[12] = DICTIONARY_V1[257]
    with pytest.raises(InvalidVersionWordError):
        MnemonicCodec().decode(words)


def test_thirteenth_word_index_256_is_accepted_up_to_checksum() -> None:
    words = ZERO_SEED_PHRASE.split()
    words[12] = DICTIONARY_V1[256]
    # Index 256 only differs from index 0 in a bit that is dropped.
    assert MnemonicCodec().decode(words) == bytes(16)


def test_error_messages_do_not_echo_words() -> None:
    words = ZERO_SEED_PHRASE.split()
    words[2] = "qqsecret"
    with pytest.raises(UnknownWordError) as exc_info:
        MnemonicCodec().decode(words)
    assert "qqsecret" not in str(exc_info.value)


@pytest.mark.parametrize("seed", [b"", bytes(15), bytes(17)])
def test_encode_rejects_wrong_seed_size(seed: bytes) -> None:
    with pytest.raises(InvalidSeedError):
        seed_to_phrase(seed)


def test_match_word_prefix_first_entry_wins() -> None:
    dictionary = ["apple", "apply", "banana"]
    assert match_word_prefix("apply", dictionary) == 0
    assert match_word_prefix("appxyz", dictionary) == 0
    assert match_word_prefix("banjo", dictionary) == 2
    with pytest.raises(UnknownWordError):
        match_word_prefix("cherry", dictionary)


def test_find_shared_prefixes() -> None:
    assert find_shared_prefixes(["apple", "apply", "banana"]) == {"app": ["apple", "apply"]}
    assert find_shared_prefixes(DICTIONARY_V1) == {}


def test_dictionary_is_immutable_and_complete() -> None:
    assert isinstance(DICTIONARY_V1, tuple)
    assert len(DICTIONARY_V1) == 1024
    assert DICTIONARY_V1[0] == "abbey"
    assert DICTIONARY_V1[-1] == "yanks"


def test_codec_rejects_short_dictionary() -> None:
    with pytest.raises(ValueError):
        MnemonicCodec(DICTIONARY_V1[:-1])


def test_encode_self_check_raises_internal_fault() -> None:
    # A second "abb" entry can be written but never read back.
    broken = list(DICTIONARY_V1)
    broken[1] = "abbott"
    codec = MnemonicCodec(broken)
    seed = b"\x00\x40" + bytes(14)
    with pytest.raises(InternalFault):
        codec.encode(seed)
