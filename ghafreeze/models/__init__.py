"""gha-freeze data models — all Pydantic v2, all frozen (immutable)."""

from ghafreeze.models.actions import (
    SHA_PATTERN,
    ActionReference,
    Replacement,
    ResolutionFailure,
    ResolvedVersion,
    is_commit_sha,
)
from ghafreeze.models.backups import BackupSnapshot
from ghafreeze.models.ratelimit import RateLimitStatus
from ghafreeze.models.session import VALID_TRANSITIONS, Phase, PinningSession

__all__ = [
    # actions
    "SHA_PATTERN",
    "ActionReference",
    "Replacement",
    "ResolutionFailure",
    "ResolvedVersion",
    "is_commit_sha",
    # backups
    "BackupSnapshot",
    # rate limiting
    "RateLimitStatus",
    # session
    "Phase",
    "PinningSession",
    "VALID_TRANSITIONS",
]
