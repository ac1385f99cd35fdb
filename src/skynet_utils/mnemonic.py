"""Seed phrase codec.

A seed is 16 bytes of entropy. It is written as 15 dictionary words:

- words 1-12 carry 10 bits of the seed each,
- word 13 carries the final 8 bits (its index must not exceed 256),
- words 14-15 are checksum words taken from ``sha512(seed)``.

Words 1-13 are matched on their first three characters only, so users can
abbreviate. Checksum words must match exactly.
"""

from __future__ import annotations

import hashlib
import secrets
from collections.abc import Sequence

from skynet_utils.dictionary import DICTIONARY_SIZE, DICTIONARY_V1
from skynet_utils.errors import (
    ChecksumMismatchError,
    InternalFault,
    InvalidSeedError,
    InvalidVersionWordError,
    MalformedPhraseError,
    UnknownWordError,
)

SEED_SIZE = 16
PHRASE_WORDS = 15
SEED_WORDS = 13
PREFIX_LEN = 3
WORD_BITS = 10
LAST_WORD_BITS = 8
MAX_LAST_WORD_INDEX = 256


def generate_seed() -> bytes:
    """Return a fresh random seed."""
    return secrets.token_bytes(SEED_SIZE)


def match_word_prefix(word: str, dictionary: Sequence[str] = DICTIONARY_V1) -> int:
    """Return the index of the first dictionary entry sharing ``word``'s 3-char prefix.

    Entries are scanned in dictionary order and the first match wins. If two
    entries ever shared a prefix the later one would be unreachable; existing
    phrases depend on this rule, so it must not be changed to a closest-match
    search.
    """
    if len(word) < PREFIX_LEN:
        raise UnknownWordError("seed word is shorter than 3 characters")
    prefix = word[:PREFIX_LEN]
    for index, entry in enumerate(dictionary):
        if entry[:PREFIX_LEN] == prefix:
            return index
    raise UnknownWordError("invalid seed word")


def find_shared_prefixes(dictionary: Sequence[str] = DICTIONARY_V1) -> dict[str, list[str]]:
    """Report dictionary entries that share a 3-char prefix.

    Any non-empty result means some entries can never be decoded from a phrase.
    """
    by_prefix: dict[str, list[str]] = {}
    for entry in dictionary:
        by_prefix.setdefault(entry[:PREFIX_LEN], []).append(entry)
    return {prefix: entries for prefix, entries in by_prefix.items() if len(entries) > 1}


def _checksum_indices(seed: bytes) -> tuple[int, int]:
    digest = hashlib.sha512(seed).digest()
    first = ((digest[0] << 8) | digest[1]) >> 6
    second = (((digest[1] << 10) & 0xFFFF) + (digest[2] << 2)) >> 6
    return first, second


def _check_seed(seed: bytes) -> bytes:
    if not isinstance(seed, (bytes, bytearray)) or len(seed) != SEED_SIZE:
        raise InvalidSeedError(f"seed must be exactly {SEED_SIZE} bytes")
    return bytes(seed)


class MnemonicCodec:
    def __init__(self, dictionary: Sequence[str] = DICTIONARY_V1) -> None:
        if len(dictionary) != DICTIONARY_SIZE:
            raise ValueError(f"dictionary must contain exactly {DICTIONARY_SIZE} words")
        self._dictionary = tuple(dictionary)

    @property
    def dictionary(self) -> tuple[str, ...]:
        return self._dictionary

    def encode(self, seed: bytes) -> list[str]:
        """Encode ``seed`` into 15 words.

        The result is decoded again before it is returned; a mismatch is a bug
        in this module and raises :class:`InternalFault`.
        """
        seed = _check_seed(seed)

        words: list[str] = []
        current = 0
        used = 0
        width = WORD_BITS
        for byte_index, byte in enumerate(seed):
            for bit in range(8):
                if byte & (1 << (7 - bit)):
                    current |= 1 << (width - used - 1)
                used += 1
                if used >= width:
                    words.append(self._dictionary[current])
                    current = 0
                    used = 0
                    # The last 8 seed bits fill the 13th word.
                    if byte_index >= 14:
                        width = LAST_WORD_BITS

        first, second = _checksum_indices(seed)
        words.append(self._dictionary[first])
        words.append(self._dictionary[second])

        try:
            verified = self.decode(words)
        except Exception as exc:
            raise InternalFault("seed phrase failed its own validation") from exc
        if verified != seed:
            raise InternalFault("seed phrase does not decode to the original seed")
        return words

    def decode(self, words: Sequence[str]) -> bytes:
        """Decode 15 words back into the 16-byte seed, verifying the checksum."""
        if len(words) != PHRASE_WORDS:
            raise MalformedPhraseError(f"seed phrase must be {PHRASE_WORDS} words")

        indices: list[int] = []
        for position in range(SEED_WORDS):
            index = match_word_prefix(words[position], self._dictionary)
            if position == SEED_WORDS - 1 and index > MAX_LAST_WORD_INDEX:
                raise InvalidVersionWordError("13th word of seed phrase is invalid")
            indices.append(index)

        seed = bytearray(SEED_SIZE)
        byte_index = 0
        bit_index = 0
        for position, index in enumerate(indices):
            width = LAST_WORD_BITS if position == SEED_WORDS - 1 else WORD_BITS
            for bit in range(width):
                if index & (1 << (width - bit - 1)):
                    seed[byte_index] |= 1 << (7 - bit_index)
                bit_index += 1
                if bit_index >= 8:
                    byte_index += 1
                    bit_index = 0

        first, second = _checksum_indices(bytes(seed))
        if words[13] != self._dictionary[first] or words[14] != self._dictionary[second]:
            raise ChecksumMismatchError("checksum does not match")
        return bytes(seed)

    def seed_to_phrase(self, seed: bytes) -> str:
        return " ".join(self.encode(seed))

    def phrase_to_seed(self, phrase: str) -> bytes:
        return self.decode(phrase.split())


_default_codec = MnemonicCodec()


def seed_to_phrase(seed: bytes) -> str:
    return _default_codec.seed_to_phrase(seed)


def phrase_to_seed(phrase: str) -> bytes:
    return _default_codec.phrase_to_seed(phrase)


__all__ = [
    "MnemonicCodec",
    "find_shared_prefixes",
    "generate_seed",
    "match_word_prefix",
    "phrase_to_seed",
    "seed_to_phrase",
]
