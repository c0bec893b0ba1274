"""Error taxonomy for the command workflows.

Every coordinator failure is one of these types. Coordinators post a status
message for the failure and then raise the error to the caller.
"""

from __future__ import annotations

from typing import Optional


class VoiceVaultError(Exception):
    """Base error carrying a human-readable message."""

    def __init__(self, message: str = "") -> None:
        super().__init__(message)
        self.message = message


class ValidationError(VoiceVaultError):
    """Malformed input; raised before any external call is made."""


class ConnectivityRequired(VoiceVaultError):
    """No connected actor is available."""

    def __init__(self, message: str = "Please connect wallet first") -> None:
        super().__init__(message)


class OperationInProgress(VoiceVaultError):
    """The same kind of operation is already running."""


class EncryptionFailed(VoiceVaultError):
    pass


class SubmissionRejectedByUser(VoiceVaultError):
    """The actor explicitly rejected the ledger transaction."""

    def __init__(self, message: str = "Transaction rejected by user") -> None:
        super().__init__(message)


class SubmissionFailed(VoiceVaultError):
    pass


class AlreadyVerifiedRace(VoiceVaultError):
    """The record was verified by someone else first. Treated as success."""

    def __init__(self, message: str = "Data already verified") -> None:
        super().__init__(message)


class OracleFailed(VoiceVaultError):
    pass


class DecryptionFailed(VoiceVaultError):
    pass


class RefreshPartialFailure(VoiceVaultError):
    """A single record could not be loaded during refresh. Logged, never raised."""

    def __init__(self, command_id: str, cause: Optional[BaseException] = None) -> None:
        super().__init__(f"Failed to load record {command_id}: {cause}")
        self.command_id = command_id
        self.cause = cause


USER_REJECTED_MARKERS = ("user rejected", "user denied")
ALREADY_VERIFIED_MARKER = "already verified"


def is_already_verified(exc: BaseException) -> bool:
    if isinstance(exc, AlreadyVerifiedRace):
        return True
    return ALREADY_VERIFIED_MARKER in str(exc).lower()


def classify_ledger_error(exc: BaseException) -> VoiceVaultError:
    """Map a raw ledger exception onto the error taxonomy."""
    if isinstance(exc, (SubmissionRejectedByUser, SubmissionFailed, AlreadyVerifiedRace)):
        return exc
    if is_already_verified(exc):
        return AlreadyVerifiedRace(str(exc))
    text = str(exc).lower()
    if any(marker in text for marker in USER_REJECTED_MARKERS):
        return SubmissionRejectedByUser()
    return SubmissionFailed(str(exc) or exc.__class__.__name__)
