"""Action reference extraction from workflow YAML.

Walks ``jobs.<id>.steps[*].uses`` in the parsed document and turns every
``owner/repo[/path]@ref`` value into an ActionReference. Local actions
(``./...``), Docker actions (``docker://...``) and anything else that
does not look like a repository action are skipped silently.

Line numbers come from a second pass over the raw text: the first line
containing both ``uses:`` and the exact value wins. Identical ``uses:``
lines earlier in the file therefore attribute later steps to the first
occurrence. This is best-effort and only used for display.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Any

import yaml

from ghafreeze.errors import FileIOError, NotFoundError, ParseError
from ghafreeze.models.actions import ActionReference

logger = logging.getLogger(__name__)

# owner and repo exclude "/", an optional sub-path follows the repo.
_SLUG_PATTERN = re.compile(r"^(?P<owner>[^/\s]+)/(?P<repo>[^/\s]+)(?:/(?P<path>\S+))?$")

_SKIPPED_PREFIXES = ("./", "../", "docker://")


def parse_uses(uses: str, file_path: str = "", line_number: int = 0) -> ActionReference | None:
    """Parse one ``uses:`` value. Returns None for non-repository actions."""
    uses = uses.strip()
    if not uses or uses.startswith(_SKIPPED_PREFIXES):
        return None

    slug, sep, ref = uses.rpartition("@")
    if not sep or not slug or not ref:
        return None

    match = _SLUG_PATTERN.match(slug)
    if match is None:
        return None

    return ActionReference(
        owner=match.group("owner"),
        repo=match.group("repo"),
        path=match.group("path") or "",
        ref=ref,
        file_path=file_path,
        line_number=line_number,
        full_uses=uses,
    )


def find_line_number(lines: list[str], uses: str) -> int:
    """Return the 1-based line of the first ``uses:`` line containing ``uses``."""
    for index, line in enumerate(lines, start=1):
        if "uses:" in line and uses in line:
            return index
    return 0


def _iter_step_uses(document: Any) -> list[str]:
    """Collect every string ``uses`` value under jobs.*.steps[*], in document order."""
    values: list[str] = []
    if not isinstance(document, dict):
        return values

    jobs = document.get("jobs")
    if not isinstance(jobs, dict):
        return values

    for job in jobs.values():
        if not isinstance(job, dict):
            continue
        steps = job.get("steps")
        if not isinstance(steps, list):
            continue
        for step in steps:
            if isinstance(step, dict) and isinstance(step.get("uses"), str):
                values.append(step["uses"])
    return values


def parse_workflow_text(text: str, file_path: str = "") -> list[ActionReference]:
    """Extract every repository action reference from a workflow document.

    Raises ParseError if the text is not valid YAML. Individual malformed
    ``uses`` values never fail the document.
    """
    try:
        document = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ParseError(f"failed to parse YAML in {file_path or '<text>'}: {exc}") from exc

    lines = text.splitlines()
    actions: list[ActionReference] = []
    for raw in _iter_step_uses(document):
        uses = raw.strip()
        action = parse_uses(uses, file_path, find_line_number(lines, uses))
        if action is None:
            logger.debug("Skipping non-repository action %r in %s", uses, file_path)
            continue
        actions.append(action)
    return actions


def parse_workflow_file(file_path: Path | str) -> list[ActionReference]:
    """Read ``file_path`` and extract its action references."""
    path = Path(file_path)
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError as exc:
        raise NotFoundError(f"workflow file not found: {path}") from exc
    except UnicodeDecodeError as exc:
        raise ParseError(f"workflow file {path} is not valid UTF-8: {exc}") from exc
    except OSError as exc:
        raise FileIOError(f"failed to read file {path}: {exc}") from exc
    return parse_workflow_text(text, str(file_path))
