"""Signed, versioned registry entries.

An entry lives at ``(public_key, lookup_key)`` and carries up to 113 bytes of
data, a revision number and a signature. Portals accept a write only when its
revision is strictly greater than the stored one, which is the sole
protection against concurrent writers. Nothing here takes a lock.

Because every entry is signed, a portal cannot forge data. It can still serve
a stale entry, or claim an entry does not exist.
"""

from __future__ import annotations

import base64
import json
import logging
from dataclasses import dataclass, field

from pydantic import ValidationError

from skynet_utils.crypto.ed25519 import (
    KEY_SIZE,
    public_key_from_private,
    sia_public_key_string,
    sign_ed25519,
    verify_ed25519,
)
from skynet_utils.crypto.encoding import (
    HASH_SIZE,
    encode_prefixed_bytes,
    encode_uint8,
    encode_uint64,
    hash_all,
)
from skynet_utils.errors import (
    PortalRequestError,
    PortalResponseError,
    StaleRevisionError,
    UntrustedResponseError,
)
from skynet_utils.schemas import (
    MAX_REGISTRY_DATA_SIZE,
    REGISTRY_TYPE_WITHOUT_PUBKEY,
    RegistryEntryResponse,
)
from skynet_utils.transport import Transport

logger = logging.getLogger(__name__)

REGISTRY_PATH = "/skynet/registry"
MAX_RESPONSE_SIZE = 10_000_000
MAX_REVISION = (1 << 64) - 1
_STALE_REVISION_STATUSES = (409,)


@dataclass(frozen=True)
class RegistryEntry:
    public_key: bytes
    lookup_key: bytes
    data: bytes
    revision: int
    signature: bytes
    type: int = REGISTRY_TYPE_WITHOUT_PUBKEY


def entry_hash(lookup_key: bytes, data: bytes, revision: int, entry_type: int) -> bytes:
    parts = [lookup_key, encode_prefixed_bytes(data), encode_uint64(revision)]
    if entry_type != REGISTRY_TYPE_WITHOUT_PUBKEY:
        parts.append(encode_uint8(entry_type))
    return hash_all(*parts)


def sign_entry(
    private_key: bytes,
    lookup_key: bytes,
    data: bytes,
    revision: int,
    entry_type: int = REGISTRY_TYPE_WITHOUT_PUBKEY,
) -> RegistryEntry:
    _check_lookup_key(lookup_key)
    if len(data) > MAX_REGISTRY_DATA_SIZE:
        raise ValueError(f"registry data must be at most {MAX_REGISTRY_DATA_SIZE} bytes")
    signature = sign_ed25519(entry_hash(lookup_key, data, revision, entry_type), private_key)
    return RegistryEntry(
        public_key=public_key_from_private(private_key),
        lookup_key=bytes(lookup_key),
        data=bytes(data),
        revision=revision,
        signature=signature,
        type=entry_type,
    )


def verify_entry(entry: RegistryEntry, public_key: bytes) -> bool:
    message = entry_hash(entry.lookup_key, entry.data, entry.revision, entry.type)
    return verify_ed25519(entry.signature, message, public_key)


def _check_lookup_key(lookup_key: bytes) -> None:
    if len(lookup_key) != HASH_SIZE:
        raise ValueError("lookup key must be 32 bytes")


def _is_stale_revision_error(exc: PortalRequestError) -> bool:
    if exc.status_code in _STALE_REVISION_STATUSES:
        return True
    return exc.status_code == 400 and "revision" in (exc.detail or "").lower()


@dataclass
class RegistryClient:
    transport: Transport
    _observed: dict[tuple[bytes, bytes], int] = field(default_factory=dict, init=False, repr=False)

    def _observe(self, public_key: bytes, lookup_key: bytes, revision: int) -> None:
        slot = (bytes(public_key), bytes(lookup_key))
        if revision > self._observed.get(slot, -1):
            self._observed[slot] = revision

    def last_observed_revision(self, public_key: bytes, lookup_key: bytes) -> int | None:
        return self._observed.get((bytes(public_key), bytes(lookup_key)))

    def read(self, public_key: bytes, lookup_key: bytes) -> RegistryEntry | None:
        """Fetch and verify the entry at ``(public_key, lookup_key)``.

        Returns ``None`` when the portal reports the entry does not exist. An
        entry whose signature does not verify raises
        :class:`UntrustedResponseError` and its data is discarded.
        """
        if len(public_key) != KEY_SIZE:
            raise ValueError("public key must be 32 bytes")
        _check_lookup_key(lookup_key)

        response = self.transport.execute(
            "GET",
            REGISTRY_PATH,
            query={
                "publickey": sia_public_key_string(public_key),
                "datakey": lookup_key.hex(),
            },
            accept_status=(404,),
            max_body_size=MAX_RESPONSE_SIZE,
        )
        if response.status_code == 404:
            logger.debug("registry entry not found: datakey=%s", lookup_key.hex())
            return None
        if len(response.body) > MAX_RESPONSE_SIZE:
            raise PortalResponseError("registry response is larger than 10 MB")

        try:
            parsed = RegistryEntryResponse.model_validate_json(response.body)
        except ValidationError as exc:
            raise PortalResponseError(f"unable to parse registry response: {exc}") from exc

        entry = RegistryEntry(
            public_key=bytes(public_key),
            lookup_key=bytes(lookup_key),
            data=parsed.data_bytes,
            revision=parsed.revision,
            signature=parsed.signature_bytes,
            type=parsed.type,
        )
        if not verify_entry(entry, public_key):
            raise UntrustedResponseError("signature returned by portal does not match")

        self._observe(public_key, lookup_key, entry.revision)
        return entry

    def write(
        self,
        private_key: bytes,
        lookup_key: bytes,
        data: bytes,
        revision: int,
        *,
        entry_type: int = REGISTRY_TYPE_WITHOUT_PUBKEY,
    ) -> RegistryEntry:
        """Sign and submit an entry at an explicit revision.

        Refuses locally to write at or below a revision this client has
        already seen for the slot. A portal rejection for the same reason
        raises :class:`StaleRevisionError`; it is never retried here. So does
        a revision past the uint64 range, since an entry at the maximum
        revision can never be superseded.
        """
        if revision > MAX_REVISION:
            raise StaleRevisionError(
                f"revision {revision} exceeds the maximum registry revision",
                revision=revision,
            )
        entry = sign_entry(private_key, lookup_key, data, revision, entry_type)
        last_seen = self.last_observed_revision(entry.public_key, lookup_key)
        if last_seen is not None and revision <= last_seen:
            raise StaleRevisionError(
                f"revision {revision} is not greater than observed revision {last_seen}",
                revision=revision,
            )

        payload = {
            "publickey": sia_public_key_string(entry.public_key),
            "datakey": entry.lookup_key.hex(),
            "revision": entry.revision,
            "signature": list(entry.signature),
            "data": base64.b64encode(entry.data).decode("ascii"),
            "type": entry.type,
        }
        try:
            self.transport.execute(
                "POST",
                REGISTRY_PATH,
                headers={"Content-Type": "application/json"},
                body=json.dumps(payload).encode("utf-8"),
            )
        except PortalRequestError as exc:
            if _is_stale_revision_error(exc):
                raise StaleRevisionError(
                    f"portal rejected revision {revision}: {exc.detail}",
                    revision=revision,
                ) from exc
            raise

        self._observe(entry.public_key, lookup_key, entry.revision)
        logger.info(
            "registry entry written: datakey=%s revision=%d", lookup_key.hex(), entry.revision
        )
        return entry

    def overwrite(self, private_key: bytes, lookup_key: bytes, data: bytes) -> int:
        """Replace the entry with ``data`` at the next revision and return that revision.

        WARNING: this reads the current revision and writes ``revision + 1``.
        If the read saw stale data, or reported the entry missing when it was
        not, the previous value is destroyed. Only use it for entries whose
        new value does not depend on the old one, e.g. publishing a new
        application build. For anything derived from the previous value, pass
        the revision you actually read to :meth:`write`.
        """
        public_key = public_key_from_private(private_key)
        current = self.read(public_key, lookup_key)
        revision = 0 if current is None else current.revision + 1
        self.write(private_key, lookup_key, data, revision)
        return revision
