"""Version resolution — maps a mutable ref to the commit it currently names.

Policy:
1. Refs starting with ``v`` are tried as a tag first, since semantic
   version refs (``v1``, ``v1.2.3``) are conventionally tags.
2. If the tag lookup reports "not found", the ref is retried as a
   branch / commit-ish. Any other failure is raised immediately.
3. Everything else is resolved directly as a branch / commit-ish.

The resolved SHA is always a full 40-character commit hash.
"""

from __future__ import annotations

import logging
from typing import Protocol

from ghafreeze.errors import RateLimitError, RefNotFoundError, ResolutionError
from ghafreeze.models.actions import (
    ActionReference,
    Replacement,
    ResolutionFailure,
    ResolvedVersion,
    is_commit_sha,
)
from ghafreeze.models.ratelimit import RateLimitStatus

logger = logging.getLogger(__name__)


class ResolutionCapability(Protocol):
    """What the resolver needs from a remote. GitHubClient implements it."""

    def get_tag_commit(self, owner: str, repo: str, tag: str) -> str: ...

    def get_commit(self, owner: str, repo: str, ref: str) -> str: ...

    def check_rate_limit(self) -> RateLimitStatus: ...


class VersionResolver:
    """Resolves ``owner/repo@ref`` to a ResolvedVersion via a capability."""

    def __init__(self, capability: ResolutionCapability) -> None:
        self._capability = capability

    def resolve(self, owner: str, repo: str, ref: str) -> ResolvedVersion:
        """Resolve ``ref`` with the tag-then-branch policy.

        Raises RateLimitError when the remote is out of budget and
        ResolutionError for every other failure.
        """
        if ref.startswith("v"):
            try:
                sha = self._capability.get_tag_commit(owner, repo, ref)
            except RefNotFoundError:
                logger.debug("No tag %s in %s/%s, trying as branch", ref, owner, repo)
            else:
                return self._checked(owner, repo, ref, sha)

        sha = self._capability.get_commit(owner, repo, ref)
        return self._checked(owner, repo, ref, sha)

    @staticmethod
    def _checked(owner: str, repo: str, ref: str, sha: str) -> ResolvedVersion:
        sha = sha.strip().lower()
        if not is_commit_sha(sha):
            raise ResolutionError(
                f"{owner}/{repo}@{ref} resolved to {sha!r}, not a full commit SHA"
            )
        return ResolvedVersion(sha=sha, original_ref=ref)

    def resolve_action(self, action: ActionReference) -> Replacement:
        resolved = self.resolve(action.owner, action.repo, action.ref)
        return Replacement(action=action, sha=resolved.sha, original_ref=resolved.original_ref)

    def resolve_all(
        self, actions: list[ActionReference]
    ) -> tuple[list[Replacement], list[ResolutionFailure]]:
        """Resolve ``actions`` one at a time, in order.

        Per-action failures are collected, not raised. A RateLimitError
        stops the pass and propagates; whatever was resolved so far is
        discarded by the caller and the whole set is retried later.
        """
        replacements: list[Replacement] = []
        failures: list[ResolutionFailure] = []

        for action in actions:
            try:
                replacements.append(self.resolve_action(action))
            except RateLimitError:
                logger.warning(
                    "Rate limited while resolving %s@%s", action.slug, action.ref
                )
                raise
            except ResolutionError as exc:
                logger.warning("Could not resolve %s@%s: %s", action.slug, action.ref, exc)
                failures.append(ResolutionFailure(action=action, message=str(exc)))

        return replacements, failures

    def check_rate_limit(self) -> RateLimitStatus:
        return self._capability.check_rate_limit()
