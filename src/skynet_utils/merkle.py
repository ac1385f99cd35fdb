"""Sia Merkle roots over 64-byte segments."""

from __future__ import annotations

import hashlib

from skynet_utils.crypto.encoding import HASH_SIZE

SEGMENT_SIZE = 64

_LEAF_PREFIX = b"\x00"
_NODE_PREFIX = b"\x01"


def _hash(data: bytes) -> bytes:
    return hashlib.blake2b(data, digest_size=HASH_SIZE).digest()


def leaf_hash(segment: bytes) -> bytes:
    return _hash(_LEAF_PREFIX + segment)


def node_hash(left: bytes, right: bytes) -> bytes:
    return _hash(_NODE_PREFIX + left + right)


def merkle_root(data: bytes) -> bytes:
    """Merkle root of ``data`` split into 64-byte leaves.

    A short final segment is hashed as-is. When a level has an odd number of
    nodes the last one moves up unchanged, which matches the stack-based tree
    where a smaller right subtree joins the larger one on its left.
    """
    if not data:
        return bytes(HASH_SIZE)

    view = memoryview(data)
    zero_segment = bytes(SEGMENT_SIZE)
    zero_leaf = leaf_hash(zero_segment)
    level: list[bytes] = []
    for start in range(0, len(data), SEGMENT_SIZE):
        segment = bytes(view[start : start + SEGMENT_SIZE])
        level.append(zero_leaf if segment == zero_segment else leaf_hash(segment))

    # Identical sibling pairs (mostly zero padding) are hashed once per level.
    while len(level) > 1:
        cache: dict[tuple[bytes, bytes], bytes] = {}
        parents: list[bytes] = []
        for index in range(0, len(level) - 1, 2):
            pair = (level[index], level[index + 1])
            parent = cache.get(pair)
            if parent is None:
                parent = node_hash(*pair)
                if pair[0] == pair[1]:
                    cache[pair] = parent
            parents.append(parent)
        if len(level) % 2:
            parents.append(level[-1])
        level = parents
    return level[0]
