from __future__ import annotations

import base64
import json
import struct

import pytest

from skynet_utils.crypto.ed25519 import parse_sia_public_key, sia_public_key_string
from skynet_utils.errors import PortalUnavailableError
from skynet_utils.merkle import merkle_root
from skynet_utils.skyfile import BACKUP_HEADER_SIZE, LAYOUT_SIZE
from skynet_utils.skylink import Skylink
from skynet_utils.transport import TransportResponse, make_response_error


class FakePortal:
    """In-memory portal speaking the registry, restore and pin endpoints."""

    def __init__(self) -> None:
        self.entries: dict[tuple[str, str], dict] = {}
        self.requests: list[dict] = []
        self.tamper_skylink: str | None = None
        self.tamper_signature = False
        self.offline = False

    def store_entry(self, entry) -> None:  # noqa: ANN001
        """Place a signed entry directly, bypassing the revision check."""
        self.entries[(sia_public_key_string(entry.public_key), entry.lookup_key.hex())] = {
            "publickey": sia_public_key_string(entry.public_key),
            "datakey": entry.lookup_key.hex(),
            "revision": entry.revision,
            "signature": list(entry.signature),
            "data": base64.b64encode(entry.data).decode("ascii"),
            "type": entry.type,
        }

    def _respond(self, method: str, status: int, payload=None, headers=None, accept=()):
        body = b"" if payload is None else json.dumps(payload).encode("utf-8")
        if status >= 400 and status not in accept:
            raise make_response_error(method, status, body)
        return TransportResponse(status_code=status, headers=headers or {}, body=body)

    def execute(
        self,
        method,
        path,
        *,
        query=None,
        headers=None,
        body=None,
        accept_status=(),
        max_body_size=None,
    ):
        self.requests.append(
            {"method": method, "path": path, "query": query, "headers": headers, "body": body}
        )
        if self.offline:
            raise PortalUnavailableError("could not execute request: connection refused")

        if path == "/skynet/registry" and method == "GET":
            stored = self.entries.get((query["publickey"], query["datakey"]))
            if stored is None:
                return self._respond(method, 404, {"message": "not found"}, accept=accept_status)
            signature = bytes(stored["signature"])
            if self.tamper_signature:
                signature = bytes([signature[0] ^ 0xFF]) + signature[1:]
            return self._respond(
                method,
                200,
                {
                    "data": base64.b64decode(stored["data"]).hex(),
                    "revision": stored["revision"],
                    "signature": signature.hex(),
                    "type": stored["type"],
                },
            )

        if path == "/skynet/registry" and method == "POST":
            request = json.loads(body)
            parse_sia_public_key(request["publickey"])
            slot = (request["publickey"], request["datakey"])
            current = self.entries.get(slot)
            if current is not None and request["revision"] <= current["revision"]:
                return self._respond(
                    method, 400, {"message": "provided revision number is invalid"}
                )
            self.entries[slot] = request
            return self._respond(method, 204)

        if path == "/skynet/restore" and method == "POST":
            sector = body[BACKUP_HEADER_SIZE:]
            filesize, metadata_size = struct.unpack("<QQ", sector[1:17])
            fetch_size = LAYOUT_SIZE + metadata_size + filesize
            skylink = str(Skylink.v1(merkle_root(sector), 0, fetch_size))
            return self._respond(method, 200, {"skylink": self.tamper_skylink or skylink})

        if path.startswith("/skynet/pin/") and method == "POST":
            return self._respond(
                method, 204, headers={"skynet-skylink": path[len("/skynet/pin/") :]}
            )

        return self._respond(method, 404, {"message": f"no route for {method} {path}"})


@pytest.fixture
def portal() -> FakePortal:
    return FakePortal()
