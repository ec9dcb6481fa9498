"""Error taxonomy for the pinning pipeline.

Every failure raised by the pipeline derives from ``FreezeError`` so the
orchestrator can capture it into session state without swallowing
unrelated exceptions.

- NotFoundError     : missing workflow directory, file, or snapshot
- ParseError        : a workflow document is not valid YAML
- ResolutionError   : a ref could not be mapped to a commit SHA
- RefNotFoundError  : the lookup reported "not found" (drives tag->branch fallback)
- RateLimitError    : API budget exhausted, handled as a distinct recovery path
- FileIOError       : read/write/copy failure on a workflow or snapshot file
- ValidationError   : bad user input or an invalid backup snapshot
"""

from __future__ import annotations


class FreezeError(RuntimeError):
    """Base class for every pipeline failure."""


class NotFoundError(FreezeError):
    """Raised when a required directory or file does not exist."""


class ParseError(FreezeError):
    """Raised when a workflow document is not syntactically valid YAML."""


class ResolutionError(FreezeError):
    """Raised when a mutable ref cannot be resolved to a commit SHA."""


class RefNotFoundError(ResolutionError):
    """Raised when the remote reports that a tag, branch or commit does not exist."""


class RateLimitError(ResolutionError):
    """Raised when the resolution API refuses a request for lack of budget."""

    def __init__(
        self,
        message: str = "GitHub API rate limit exceeded",
        *,
        limit: int | None = None,
        remaining: int | None = None,
        reset: int | None = None,
    ) -> None:
        super().__init__(message)
        self.limit = limit
        self.remaining = remaining
        self.reset = reset


class FileIOError(FreezeError):
    """Raised when a workflow or snapshot file cannot be read, written or copied."""


class ValidationError(FreezeError):
    """Raised for invalid selections and invalid backup snapshots."""


class InvalidTransitionError(FreezeError):
    """Raised when the orchestrator is asked for a transition it does not allow."""
