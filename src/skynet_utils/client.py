"""Typed SDK client for Skynet portal endpoints."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from pydantic import ValidationError

from skynet_utils.crypto.ed25519 import public_key_from_private
from skynet_utils.errors import PortalResponseError
from skynet_utils.registry import RegistryClient, RegistryEntry
from skynet_utils.schemas import SkylinkMetadata
from skynet_utils.skylink import Skylink, strip_uri_prefix
from skynet_utils.transport import RequestsTransport, Transport
from skynet_utils.upload import SecureUploader

logger = logging.getLogger(__name__)

PIN_PATH = "/skynet/pin/"
SKYLINK_HEADER = "skynet-skylink"


@dataclass
class PortalClient:
    transport: Transport = field(default_factory=RequestsTransport)

    def __post_init__(self) -> None:
        self.registry = RegistryClient(self.transport)
        self.uploader = SecureUploader(self.transport)

    def read_registry(self, public_key: bytes, lookup_key: bytes) -> RegistryEntry | None:
        return self.registry.read(public_key, lookup_key)

    def overwrite_registry(self, private_key: bytes, lookup_key: bytes, data: bytes) -> int:
        return self.registry.overwrite(private_key, lookup_key, data)

    def upload_file_secure(self, path: str | Path) -> str:
        return self.uploader.upload_secure(path)

    def file_skylink(self, path: str | Path) -> str:
        return self.uploader.dry_run(path)

    def publish_to_v2(self, v1_skylink: str, private_key: bytes, lookup_key: bytes) -> str:
        """Point the V2 skylink for ``(private_key, lookup_key)`` at ``v1_skylink``.

        Uses :meth:`RegistryClient.overwrite`, so the previous target is
        replaced unconditionally.
        """
        skylink = Skylink.from_string(v1_skylink)
        if skylink.version != 1:
            raise ValueError("only V1 skylinks can be published to a V2 skylink")
        self.registry.overwrite(private_key, lookup_key, skylink.to_bytes())
        v2 = Skylink.v2(public_key_from_private(private_key), lookup_key)
        logger.info("published %s to %s", skylink, v2)
        return str(v2)

    def pin_skylink(self, skylink: str) -> str:
        response = self.transport.execute("POST", PIN_PATH + strip_uri_prefix(skylink))
        if response.status_code != 204:
            raise PortalResponseError(
                f"expected response status code to be 204 but got {response.status_code}"
            )
        return response.headers.get(SKYLINK_HEADER, "")

    def metadata(self, skylink: str) -> SkylinkMetadata:
        link = strip_uri_prefix(skylink)
        response = self.transport.execute("HEAD", f"/{link}")
        content_length = response.headers.get("content-length")
        if not content_length:
            raise PortalResponseError(
                f"error retrieving metadata for skylink: {link} - content-length is absent"
            )
        try:
            return SkylinkMetadata(
                content_type=response.headers.get("content-type"),
                etag=response.headers.get("etag"),
                skylink=response.headers.get(SKYLINK_HEADER),
                content_length=content_length,
            )
        except ValidationError as exc:
            raise PortalResponseError(f"invalid metadata headers: {exc}") from exc


__all__ = ["PortalClient"]
