"""SDK error types."""

from __future__ import annotations


class SkynetSDKError(RuntimeError):
    """Base SDK error."""


class PhraseError(SkynetSDKError, ValueError):
    """Seed phrase could not be decoded."""


class MalformedPhraseError(PhraseError):
    """Seed phrase does not have exactly 15 words."""


class UnknownWordError(PhraseError):
    """Seed phrase word does not match any dictionary entry."""


class InvalidVersionWordError(PhraseError):
    """13th seed phrase word overlaps the reserved version bits."""


class ChecksumMismatchError(PhraseError):
    """Seed phrase checksum words do not match the decoded seed."""


class InvalidSeedError(SkynetSDKError, ValueError):
    """Seed is not exactly 16 bytes."""


class IntegrityError(SkynetSDKError):
    """Data returned by a portal failed verification."""


class UntrustedResponseError(IntegrityError):
    """Registry entry signature does not verify under the queried public key."""


class StaleRevisionError(IntegrityError):
    """Registry write revision is not greater than the latest known revision."""

    def __init__(self, message: str, *, revision: int | None = None) -> None:
        super().__init__(message)
        self.revision = revision


class AddressMismatchError(IntegrityError):
    """Portal returned a skylink that differs from the locally computed one."""

    def __init__(self, message: str, *, expected: str, actual: str) -> None:
        super().__init__(message)
        self.expected = expected
        self.actual = actual


class FileTooLargeError(SkynetSDKError, ValueError):
    """File does not fit into a single base sector."""


class InternalFault(SkynetSDKError):
    """Internal consistency check failed."""


class PortalUnavailableError(SkynetSDKError):
    """Portal could not be reached."""


class PortalRequestError(PortalUnavailableError):
    """Portal returned an HTTP error response."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        detail: str | None = None,
        body: bytes | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.detail = detail
        self.body = body


class PortalResponseError(PortalUnavailableError):
    """Portal returned a response body that could not be parsed."""
