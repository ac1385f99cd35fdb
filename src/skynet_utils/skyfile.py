"""Base sector construction and local skylink computation.

A base sector is ``layout || fanout || metadata || file``, zero-padded to a
full sector. Only single-sector files are supported, so the fanout section is
always empty. The skylink is the sector's Merkle root with offset 0 and a
fetch size covering the unpadded bytes.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass

from skynet_utils.crypto.encoding import encode_string, encode_uint8, encode_uint64
from skynet_utils.errors import FileTooLargeError, InternalFault
from skynet_utils.merkle import merkle_root
from skynet_utils.schemas import SkyfileMetadata
from skynet_utils.skylink import SECTOR_SIZE, Skylink

logger = logging.getLogger(__name__)

MAX_BASE_SECTOR_FILE_SIZE = 4_000_000
SKYFILE_VERSION = 1
LAYOUT_SIZE = 99
CIPHER_TYPE_PLAIN = bytes(7) + b"\x01"
KEY_DATA_SIZE = 64

BACKUP_HEADER_SIZE = 92
BACKUP_METADATA_HEADER = "Skyfile Backup\n"
BACKUP_METADATA_VERSION = "v1.5.4\n"


@dataclass(frozen=True)
class SkyfileLayout:
    filesize: int
    metadata_size: int
    fanout_size: int = 0
    fanout_data_pieces: int = 0
    fanout_parity_pieces: int = 0
    cipher_type: bytes = CIPHER_TYPE_PLAIN
    key_data: bytes = bytes(KEY_DATA_SIZE)

    def encode(self) -> bytes:
        encoded = b"".join(
            (
                encode_uint8(SKYFILE_VERSION),
                encode_uint64(self.filesize),
                encode_uint64(self.metadata_size),
                encode_uint64(self.fanout_size),
                encode_uint8(self.fanout_data_pieces),
                encode_uint8(self.fanout_parity_pieces),
                self.cipher_type,
                self.key_data,
            )
        )
        if len(encoded) != LAYOUT_SIZE:
            raise InternalFault(f"layout encoded to {len(encoded)} bytes, expected {LAYOUT_SIZE}")
        return encoded


@dataclass(frozen=True)
class BaseSector:
    sector: bytes
    fetch_size: int
    skylink: Skylink

    @property
    def payload(self) -> bytes:
        return self.sector[: self.fetch_size]


def encode_metadata(metadata: SkyfileMetadata) -> bytes:
    """Encode metadata the way the portal's JSON encoder does.

    Keys keep declaration order, zero ``length``/``mode`` are omitted and
    HTML-sensitive characters are escaped.
    """
    fields: dict[str, object] = {"filename": metadata.filename}
    if metadata.length:
        fields["length"] = metadata.length
    if metadata.mode:
        fields["mode"] = metadata.mode
    text = json.dumps(fields, separators=(",", ":"), ensure_ascii=False)
    for raw, escaped in (
        ("<", "\\u003c"),
        (">", "\\u003e"),
        ("&", "\\u0026"),
        ("\u2028", "\\u2028"),
        ("\u2029", "\\u2029"),
    ):
        text = text.replace(raw, escaped)
    return text.encode("utf-8")


def build_base_sector(file_bytes: bytes, metadata: SkyfileMetadata) -> BaseSector:
    if len(file_bytes) > MAX_BASE_SECTOR_FILE_SIZE:
        raise FileTooLargeError(
            f"cannot upload files larger than {MAX_BASE_SECTOR_FILE_SIZE} bytes securely"
        )
    if metadata.length != len(file_bytes):
        raise ValueError("metadata length does not match the file size")

    metadata_bytes = encode_metadata(metadata)
    layout_bytes = SkyfileLayout(
        filesize=len(file_bytes),
        metadata_size=len(metadata_bytes),
    ).encode()
    payload = layout_bytes + metadata_bytes + bytes(file_bytes)
    if len(payload) > SECTOR_SIZE:
        raise FileTooLargeError("file and metadata do not fit into a single sector")

    sector = payload + bytes(SECTOR_SIZE - len(payload))
    skylink = Skylink.v1(merkle_root(sector), 0, len(payload))
    logger.debug("built base sector: fetch_size=%d skylink=%s", len(payload), skylink)
    return BaseSector(sector=sector, fetch_size=len(payload), skylink=skylink)


def compute_address(file_bytes: bytes, metadata: SkyfileMetadata) -> str:
    return str(build_base_sector(file_bytes, metadata).skylink)


def encode_backup_header(skylink: str) -> bytes:
    encoded = b"".join(
        (
            encode_string(BACKUP_METADATA_HEADER),
            encode_string(BACKUP_METADATA_VERSION),
            encode_string(skylink),
        )
    )
    if len(encoded) > BACKUP_HEADER_SIZE:
        raise InternalFault("backup header exceeded the maximum size")
    return encoded.ljust(BACKUP_HEADER_SIZE, b"\x00")
