"""Secure single-sector uploads.

The skylink is computed locally before anything is sent, and the file is
uploaded through the portal's restore endpoint, which stores the base sector
bit-for-bit. The portal's reported skylink must equal the local one; any
difference means the portal stored something else and the upload fails.
"""

from __future__ import annotations

import logging
import os
import stat
from dataclasses import dataclass
from pathlib import Path

from pydantic import ValidationError

from skynet_utils.errors import (
    AddressMismatchError,
    FileTooLargeError,
    PortalResponseError,
    PortalUnavailableError,
)
from skynet_utils.schemas import RestoreResponse, SkyfileMetadata
from skynet_utils.skyfile import (
    MAX_BASE_SECTOR_FILE_SIZE,
    BaseSector,
    build_base_sector,
    compute_address,
    encode_backup_header,
)
from skynet_utils.transport import Transport

logger = logging.getLogger(__name__)

RESTORE_PATH = "/skynet/restore"

# Portals record the mode as a Go os.FileMode, which keeps these bits apart
# from the permission bits.
GO_MODE_SETUID = 1 << 23
GO_MODE_SETGID = 1 << 22
GO_MODE_STICKY = 1 << 20


def go_file_mode(st_mode: int) -> int:
    """Translate a regular file's ``st_mode`` into its Go ``os.FileMode`` value."""
    mode = stat.S_IMODE(st_mode) & 0o777
    if st_mode & stat.S_ISUID:
        mode |= GO_MODE_SETUID
    if st_mode & stat.S_ISGID:
        mode |= GO_MODE_SETGID
    if st_mode & stat.S_ISVTX:
        mode |= GO_MODE_STICKY
    return mode


def metadata_filename(file_path: Path) -> str:
    """File name as the portal's JSON encoder sees it; invalid UTF-8 becomes U+FFFD."""
    return os.fsencode(file_path.name).decode("utf-8", errors="replace")


@dataclass(frozen=True)
class PreparedFile:
    path: Path
    metadata: SkyfileMetadata
    base_sector: BaseSector

    @property
    def skylink(self) -> str:
        return str(self.base_sector.skylink)


def read_file_metadata(path: str | Path) -> tuple[bytes, SkyfileMetadata]:
    """Read a regular file fully and describe it as base sector metadata."""
    file_path = Path(os.path.normpath(path))
    info = file_path.stat()
    if not stat.S_ISREG(info.st_mode):
        raise ValueError(f"not a regular file: {file_path}")
    if info.st_size > MAX_BASE_SECTOR_FILE_SIZE:
        raise FileTooLargeError(
            f"cannot upload files larger than {MAX_BASE_SECTOR_FILE_SIZE} bytes securely"
        )
    file_bytes = file_path.read_bytes()
    metadata = SkyfileMetadata(
        filename=metadata_filename(file_path),
        length=len(file_bytes),
        mode=go_file_mode(info.st_mode),
    )
    return file_bytes, metadata


def prepare_file(path: str | Path) -> PreparedFile:
    file_bytes, metadata = read_file_metadata(path)
    return PreparedFile(
        path=Path(path),
        metadata=metadata,
        base_sector=build_base_sector(file_bytes, metadata),
    )


@dataclass
class SecureUploader:
    transport: Transport | None = None

    def compute_address(self, file_bytes: bytes, metadata: SkyfileMetadata) -> str:
        return compute_address(file_bytes, metadata)

    def dry_run(self, path: str | Path) -> str:
        """Return the skylink ``upload_secure`` would produce, without uploading."""
        return prepare_file(path).skylink

    def upload_secure(self, path: str | Path) -> str:
        if self.transport is None:
            raise PortalUnavailableError("secure upload requires a portal transport")

        prepared = prepare_file(path)
        expected = prepared.skylink
        body = encode_backup_header(expected) + prepared.base_sector.sector

        response = self.transport.execute(
            "POST",
            RESTORE_PATH,
            headers={"Content-Type": "application/octet-stream"},
            body=body,
        )
        try:
            parsed = RestoreResponse.model_validate_json(response.body)
        except ValidationError as exc:
            raise PortalResponseError(f"unable to parse upload response: {exc}") from exc

        if parsed.skylink != expected:
            raise AddressMismatchError(
                "portal skylink differs from locally computed skylink",
                expected=expected,
                actual=parsed.skylink,
            )
        logger.info("uploaded %s as %s", prepared.metadata.filename, expected)
        return expected


def file_skylink(path: str | Path) -> str:
    return SecureUploader().dry_run(path)
