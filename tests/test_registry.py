from __future__ import annotations

import json
import os

import pytest

from skynet_utils.crypto.keys import derive_keypair, derive_lookup_key
from skynet_utils.errors import (
    PortalRequestError,
    PortalResponseError,
    PortalUnavailableError,
    StaleRevisionError,
    UntrustedResponseError,
)
from skynet_utils.registry import (
    MAX_RESPONSE_SIZE,
    MAX_REVISION,
    RegistryClient,
    entry_hash,
    sign_entry,
    verify_entry,
)
from skynet_utils.transport import TransportResponse


def _keys(salt: str = "registry-test"):
    seed = os.urandom(16)
    return derive_keypair(seed, salt), derive_lookup_key(seed, salt)


def test_read_missing_entry_returns_none(portal) -> None:
    keypair, lookup_key = _keys()
    client = RegistryClient(portal)
    assert client.read(keypair.public_key_bytes, lookup_key) is None
    request = portal.requests[0]
    assert request["method"] == "GET"
    assert request["query"] == {
        "publickey": keypair.sia_public_key,
        "datakey": lookup_key.hex(),
    }


def test_write_then_read_round_trip(portal) -> None:
    keypair, lookup_key = _keys()
    writer = RegistryClient(portal)
    writer.write(keypair.private_key_bytes, lookup_key, b"hello", 3)

    entry = RegistryClient(portal).read(keypair.public_key_bytes, lookup_key)
    assert entry is not None
    assert entry.data == b"hello"
    assert entry.revision == 3
    assert verify_entry(entry, keypair.public_key_bytes) is True


def test_write_request_body(portal) -> None:
    keypair, lookup_key = _keys()
    RegistryClient(portal).write(keypair.private_key_bytes, lookup_key, b"\x01\x02", 0)
    body = json.loads(portal.requests[0]["body"])
    assert body["publickey"] == keypair.sia_public_key
    assert body["datakey"] == lookup_key.hex()
    assert body["revision"] == 0
    assert body["type"] == 1
    assert body["data"] == "AQI="
    assert len(body["signature"]) == 64


def test_overwrite_starts_at_zero_then_increments(portal) -> None:
    keypair, lookup_key = _keys()
    client = RegistryClient(portal)
    assert client.overwrite(keypair.private_key_bytes, lookup_key, b"first") == 0
    assert client.overwrite(keypair.private_key_bytes, lookup_key, b"second") == 1

    entry = client.read(keypair.public_key_bytes, lookup_key)
    assert entry is not None
    assert (entry.data, entry.revision) == (b"second", 1)


def test_bad_signature_is_untrusted(portal) -> None:
    keypair, lookup_key = _keys()
    RegistryClient(portal).write(keypair.private_key_bytes, lookup_key, b"secret", 0)
    portal.tamper_signature = True
    with pytest.raises(UntrustedResponseError):
        RegistryClient(portal).read(keypair.public_key_bytes, lookup_key)


def test_entry_signed_by_other_key_is_untrusted(portal) -> None:
    keypair, lookup_key = _keys()
    other, _ = _keys()
    RegistryClient(portal).write(keypair.private_key_bytes, lookup_key, b"data", 0)
    # Serve the entry under a different public key.
    stored = portal.entries.pop((keypair.sia_public_key, lookup_key.hex()))
    portal.entries[(other.sia_public_key, lookup_key.hex())] = stored
    with pytest.raises(UntrustedResponseError):
        RegistryClient(portal).read(other.public_key_bytes, lookup_key)


def test_concurrent_writer_causes_stale_revision(portal) -> None:
    keypair, lookup_key = _keys()
    alice = RegistryClient(portal)
    bob = RegistryClient(portal)
    alice.overwrite(keypair.private_key_bytes, lookup_key, b"v0")

    current = alice.read(keypair.public_key_bytes, lookup_key)
    bob.overwrite(keypair.private_key_bytes, lookup_key, b"bob")
    with pytest.raises(StaleRevisionError) as exc_info:
        alice.write(keypair.private_key_bytes, lookup_key, b"alice", current.revision + 1)
    assert exc_info.value.revision == 1
    assert isinstance(exc_info.value.__cause__, PortalRequestError)

    entry = alice.read(keypair.public_key_bytes, lookup_key)
    assert entry.data == b"bob"


def test_client_refuses_revision_it_has_already_seen(portal) -> None:
    keypair, lookup_key = _keys()
    client = RegistryClient(portal)
    client.write(keypair.private_key_bytes, lookup_key, b"a", 5)
    requests_before = len(portal.requests)
    with pytest.raises(StaleRevisionError):
        client.write(keypair.private_key_bytes, lookup_key, b"b", 5)
    assert len(portal.requests) == requests_before
    assert client.last_observed_revision(keypair.public_key_bytes, lookup_key) == 5


def test_overwrite_does_not_retry_stale_revision(portal, monkeypatch) -> None:
    keypair, lookup_key = _keys()
    client = RegistryClient(portal)
    monkeypatch.setattr(client, "read", lambda public_key, lookup_key: None)
    portal.entries[(keypair.sia_public_key, lookup_key.hex())] = {"revision": 7}
    with pytest.raises(StaleRevisionError):
        client.overwrite(keypair.private_key_bytes, lookup_key, b"lost")
    posts = [item for item in portal.requests if item["method"] == "POST"]
    assert len(posts) == 1


def test_transport_error_is_not_not_found(portal) -> None:
    keypair, lookup_key = _keys()
    portal.offline = True
    with pytest.raises(PortalUnavailableError):
        RegistryClient(portal).read(keypair.public_key_bytes, lookup_key)


def test_other_http_errors_propagate() -> None:
    keypair, lookup_key = _keys()

    class _Transport:
        def execute(self, method, path, **kwargs):  # noqa: ANN001
            raise PortalRequestError("500 response from GET: boom", status_code=500)

    with pytest.raises(PortalRequestError):
        RegistryClient(_Transport()).read(keypair.public_key_bytes, lookup_key)


@pytest.mark.parametrize(
    "body",
    [
        b"not json",
        b'{"data": "zz", "revision": 1, "signature": "00"}',
        b'{"data": "", "revision": -1, "signature": "' + b"00" * 64 + b'"}',
        b'{"data": "de ad", "revision": 1, "signature": "' + b"00" * 64 + b'"}',
    ],
)
def test_unparseable_response(body: bytes) -> None:
    keypair, lookup_key = _keys()

    class _Transport:
        def execute(self, method, path, **kwargs):  # noqa: ANN001
            return TransportResponse(status_code=200, headers={}, body=body)

    with pytest.raises(PortalResponseError):
        RegistryClient(_Transport()).read(keypair.public_key_bytes, lookup_key)


def test_data_size_limit() -> None:
    keypair, lookup_key = _keys()
    sign_entry(keypair.private_key_bytes, lookup_key, b"x" * 113, 0)
    with pytest.raises(ValueError):
        sign_entry(keypair.private_key_bytes, lookup_key, b"x" * 114, 0)


def test_entry_hash_binds_type_for_typed_entries() -> None:
    lookup_key = bytes(32)
    untyped = entry_hash(lookup_key, b"data", 1, 1)
    typed = entry_hash(lookup_key, b"data", 1, 2)
    assert untyped != typed
    assert entry_hash(lookup_key, b"data", 2, 1) != untyped


def test_conflict_status_is_stale_revision() -> None:
    keypair, lookup_key = _keys()

    class _Transport:
        def execute(self, method, path, **kwargs):  # noqa: ANN001
            raise PortalRequestError("409 response from POST: conflict", status_code=409)

    with pytest.raises(StaleRevisionError) as exc_info:
        RegistryClient(_Transport()).write(keypair.private_key_bytes, lookup_key, b"x", 4)
    assert exc_info.value.revision == 4
    assert exc_info.value.__cause__.status_code == 409


def test_bad_request_without_revision_message_is_not_stale() -> None:
    keypair, lookup_key = _keys()

    class _Transport:
        def execute(self, method, path, **kwargs):  # noqa: ANN001
            raise PortalRequestError(
                "400 response from POST: malformed signature",
                status_code=400,
                detail="malformed signature",
            )

    with pytest.raises(PortalRequestError) as exc_info:
        RegistryClient(_Transport()).write(keypair.private_key_bytes, lookup_key, b"x", 0)
    assert not isinstance(exc_info.value, StaleRevisionError)
    assert exc_info.value.status_code == 400


def test_overwrite_refuses_locally_when_portal_serves_older_entry(portal) -> None:
    keypair, lookup_key = _keys()
    client = RegistryClient(portal)
    client.write(keypair.private_key_bytes, lookup_key, b"new", 5)
    portal.store_entry(sign_entry(keypair.private_key_bytes, lookup_key, b"old", 2))
    posts_before = [item for item in portal.requests if item["method"] == "POST"]

    with pytest.raises(StaleRevisionError) as exc_info:
        client.overwrite(keypair.private_key_bytes, lookup_key, b"newer")
    assert exc_info.value.revision == 3
    posts_after = [item for item in portal.requests if item["method"] == "POST"]
    assert posts_after == posts_before


def test_overwrite_at_max_revision_is_stale(portal) -> None:
    keypair, lookup_key = _keys()
    portal.store_entry(sign_entry(keypair.private_key_bytes, lookup_key, b"last", MAX_REVISION))
    client = RegistryClient(portal)

    with pytest.raises(StaleRevisionError) as exc_info:
        client.overwrite(keypair.private_key_bytes, lookup_key, b"one more")
    assert exc_info.value.revision == MAX_REVISION + 1
    assert [item["method"] for item in portal.requests] == ["GET"]


def test_read_passes_response_size_limit(portal) -> None:
    keypair, lookup_key = _keys()
    seen: list[object] = []
    execute = portal.execute

    def recording_execute(method, path, **kwargs):  # noqa: ANN001
        seen.append(kwargs.get("max_body_size"))
        return execute(method, path, **kwargs)

    portal.execute = recording_execute
    RegistryClient(portal).read(keypair.public_key_bytes, lookup_key)
    assert seen == [MAX_RESPONSE_SIZE]
