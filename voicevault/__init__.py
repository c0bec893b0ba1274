"""voicevault: coordinator for FHE-protected voice command records."""

from .core.errors import (
    AlreadyVerifiedRace,
    ConnectivityRequired,
    DecryptionFailed,
    EncryptionFailed,
    OperationInProgress,
    OracleFailed,
    RefreshPartialFailure,
    SubmissionFailed,
    SubmissionRejectedByUser,
    ValidationError,
    VoiceVaultError,
)
from .schemas.command import (
    Actor,
    CreateEntry,
    DecryptEntry,
    PendingStatus,
    StatusPhase,
    UsageStats,
    VoiceCommand,
)
from .workflows.session import VoiceSession, open_session
from .workflows.stats import compute_usage_stats

__version__ = "0.1.0"

__all__ = [
    "VoiceSession",
    "open_session",
    "compute_usage_stats",
    "Actor",
    "VoiceCommand",
    "UsageStats",
    "PendingStatus",
    "StatusPhase",
    "CreateEntry",
    "DecryptEntry",
    "VoiceVaultError",
    "ValidationError",
    "ConnectivityRequired",
    "OperationInProgress",
    "EncryptionFailed",
    "SubmissionRejectedByUser",
    "SubmissionFailed",
    "AlreadyVerifiedRace",
    "OracleFailed",
    "DecryptionFailed",
    "RefreshPartialFailure",
]
