"""Portal wire schemas."""

from __future__ import annotations

import binascii
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

REGISTRY_TYPE_WITHOUT_PUBKEY = 1
MAX_REGISTRY_DATA_SIZE = 113


def _decode_hex(value: str, field_name: str) -> bytes:
    try:
        return binascii.unhexlify(value)
    except ValueError as exc:
        raise ValueError(f"{field_name} must be hex encoded") from exc


class RegistryEntryResponse(BaseModel):
    """Body of ``GET /skynet/registry``."""

    model_config = ConfigDict(extra="ignore")

    data: str
    revision: int = Field(..., ge=0, lt=1 << 64)
    signature: str
    type: int = Field(REGISTRY_TYPE_WITHOUT_PUBKEY, ge=0, le=255)

    @field_validator("data")
    @classmethod
    def _data_is_hex(cls, value: str) -> str:
        _decode_hex(value, "data")
        return value

    @field_validator("signature")
    @classmethod
    def _signature_is_hex(cls, value: str) -> str:
        if len(_decode_hex(value, "signature")) != 64:
            raise ValueError("signature must be 64 bytes")
        return value

    @property
    def data_bytes(self) -> bytes:
        return _decode_hex(self.data, "data")

    @property
    def signature_bytes(self) -> bytes:
        return _decode_hex(self.signature, "signature")


class RestoreResponse(BaseModel):
    """Body of ``POST /skynet/restore``."""

    model_config = ConfigDict(extra="ignore")

    skylink: str


class SkyfileMetadata(BaseModel):
    """Metadata section of a base sector."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    filename: str = Field(..., min_length=1)
    length: int = Field(0, ge=0)
    mode: int = Field(0, ge=0, le=0xFFFFFFFF)

    @field_validator("filename")
    @classmethod
    def _filename_is_plain(cls, value: str) -> str:
        if value in {".", ".."} or "/" in value or "\x00" in value:
            raise ValueError(f"invalid filename: {value!r}")
        return value


class SkylinkMetadata(BaseModel):
    """Headers returned by ``HEAD /<skylink>``."""

    content_type: Optional[str] = None
    etag: Optional[str] = None
    skylink: Optional[str] = None
    content_length: int = Field(..., ge=0)
