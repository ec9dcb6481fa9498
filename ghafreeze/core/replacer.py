"""In-place rewriting of action references to pinned SHAs.

Each Replacement turns ``owner/repo@ref`` into ``owner/repo@<sha> # ref``
on the first ``uses:`` line that still carries the original text. Every
other byte of the file, line endings included, is left untouched.

Re-running is a no-op: once rewritten, a line no longer contains the
original ``owner/repo@ref`` token and the replacement is skipped.
"""

from __future__ import annotations

import logging
import os
import re
import shutil
import tempfile
from collections import defaultdict
from collections.abc import Iterable
from pathlib import Path

from ghafreeze.errors import FileIOError
from ghafreeze.models.actions import Replacement

logger = logging.getLogger(__name__)

# Characters that may continue a uses token. A match must not be followed
# or preceded by one, so "actions/checkout@v4" never matches "...@v4.1.0".
_TOKEN_CHARS = r"\w./@-"


def _token_pattern(text: str) -> re.Pattern[str]:
    return re.compile(rf"(?<![{_TOKEN_CHARS}]){re.escape(text)}(?![{_TOKEN_CHARS}])")


def rewrite_text(content: str, replacements: Iterable[Replacement]) -> tuple[str, int]:
    """Apply ``replacements`` to ``content``.

    Returns the new content and the number of replacements applied.
    Replacements whose original text is no longer present are skipped.
    """
    lines = content.splitlines(keepends=True)
    applied = 0

    for repl in replacements:
        anchor = _token_pattern(repl.action.full_uses)
        target = _token_pattern(repl.old_text)
        for index, line in enumerate(lines):
            if "uses:" not in line or not anchor.search(line):
                continue
            new_line, count = target.subn(repl.new_text, line, count=1)
            if count:
                lines[index] = new_line
                applied += 1
            break
        else:
            logger.debug(
                "No line with %r in %s; already pinned or edited",
                repl.action.full_uses,
                repl.action.file_path,
            )

    return "".join(lines), applied


def _write_atomic(path: Path, content: str) -> None:
    """Write ``content`` to a sibling temp file, then rename over ``path``."""
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="") as handle:
            handle.write(content)
        shutil.copymode(path, tmp_name)
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


def replace_actions_in_file(file_path: Path | str, replacements: list[Replacement]) -> int:
    """Rewrite ``file_path`` in place. Returns the number of references pinned.

    Raises FileIOError on read or write failure. A read failure leaves the
    file untouched; writes go through a temp file and rename.
    """
    path = Path(file_path)
    try:
        with path.open("r", encoding="utf-8", newline="") as handle:
            content = handle.read()
    except (OSError, UnicodeDecodeError) as exc:
        raise FileIOError(f"failed to read file {path}: {exc}") from exc

    new_content, applied = rewrite_text(content, replacements)
    if new_content == content:
        return 0

    try:
        _write_atomic(path, new_content)
    except OSError as exc:
        raise FileIOError(f"failed to write file {path}: {exc}") from exc

    logger.info("Pinned %d action(s) in %s", applied, path)
    return applied


def group_by_file(replacements: Iterable[Replacement]) -> dict[str, list[Replacement]]:
    """Group replacements by the workflow file they target, keeping order."""
    grouped: dict[str, list[Replacement]] = defaultdict(list)
    for repl in replacements:
        grouped[repl.action.file_path].append(repl)
    return dict(grouped)


def apply_replacements(replacements: Iterable[Replacement]) -> dict[str, int]:
    """Apply every replacement, one file at a time.

    Returns a mapping of file path to references pinned in it. Stops at
    the first FileIOError; files already written stay written.
    """
    results: dict[str, int] = {}
    for file_path, repls in group_by_file(replacements).items():
        results[file_path] = replace_actions_in_file(file_path, repls)
    return results
