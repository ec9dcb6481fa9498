"""Action reference models — what the parser finds and the resolver pins."""

from __future__ import annotations

import re

from pydantic import BaseModel, ConfigDict, computed_field

# A pinned ref is a full, lowercase commit hash. Abbreviations never count.
SHA_PATTERN = re.compile(r"^[0-9a-f]{40}$")


def is_commit_sha(ref: str) -> bool:
    """Return True if ``ref`` is a 40-character lowercase hex commit hash."""
    return bool(SHA_PATTERN.match(ref))


class ActionReference(BaseModel):
    """A single ``owner/repo[/path]@ref`` usage inside a workflow step.

    ``full_uses`` is the exact ``uses:`` value that was parsed. The
    replacer searches for this literal text again at write time, so it
    must never be normalized beyond surrounding whitespace.
    """

    model_config = ConfigDict(frozen=True)

    owner: str
    repo: str
    path: str = ""  # sub-directory action, e.g. "init" in github/codeql-action/init
    ref: str
    file_path: str
    line_number: int = 0  # 0 when the raw-text scan could not place it
    full_uses: str

    @computed_field  # type: ignore[prop-decorator]
    @property
    def is_pinned(self) -> bool:
        return is_commit_sha(self.ref)

    @property
    def slug(self) -> str:
        """``owner/repo`` as used for API lookups."""
        return f"{self.owner}/{self.repo}"

    @property
    def uses_slug(self) -> str:
        """``owner/repo[/path]`` as written in the workflow."""
        if self.path:
            return f"{self.owner}/{self.repo}/{self.path}"
        return self.slug

    @property
    def location(self) -> str:
        return f"{self.file_path}:{self.line_number}"


class ResolvedVersion(BaseModel):
    """The commit a mutable ref pointed at when it was resolved."""

    model_config = ConfigDict(frozen=True)

    sha: str
    original_ref: str


class Replacement(BaseModel):
    """One pending rewrite: ``action`` becomes ``uses_slug@sha # original_ref``."""

    model_config = ConfigDict(frozen=True)

    action: ActionReference
    sha: str
    original_ref: str

    @property
    def old_text(self) -> str:
        return f"{self.action.uses_slug}@{self.action.ref}"

    @property
    def new_text(self) -> str:
        return f"{self.action.uses_slug}@{self.sha} # {self.original_ref}"


class ResolutionFailure(BaseModel):
    """An action that could not be resolved during a resolution pass."""

    model_config = ConfigDict(frozen=True)

    action: ActionReference
    message: str
