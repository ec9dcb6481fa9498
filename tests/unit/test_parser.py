"""Tests for action reference extraction from workflow YAML."""

from __future__ import annotations

from pathlib import Path

import pytest

from ghafreeze.core.parser import (
    find_line_number,
    parse_uses,
    parse_workflow_file,
    parse_workflow_text,
)
from ghafreeze.errors import NotFoundError, ParseError


class TestParseUses:
    def test_owner_repo_ref(self):
        action = parse_uses("actions/checkout@v4", "ci.yml", 3)
        assert action is not None
        assert (action.owner, action.repo, action.ref) == ("actions", "checkout", "v4")
        assert action.path == ""
        assert action.file_path == "ci.yml"
        assert action.line_number == 3
        assert action.full_uses == "actions/checkout@v4"
        assert action.is_pinned is False

    def test_subdirectory_action(self):
        action = parse_uses("github/codeql-action/init@v3")
        assert action is not None
        assert action.slug == "github/codeql-action"
        assert action.path == "init"
        assert action.uses_slug == "github/codeql-action/init"

    def test_pinned_sha(self, shas):
        action = parse_uses(f"actions/cache@{shas.pinned}")
        assert action is not None
        assert action.is_pinned is True

    def test_uppercase_or_short_sha_is_not_pinned(self):
        assert parse_uses("actions/cache@8E5E7E5AB8B370D6C329EC480221332ADA57F0AB").is_pinned is False
        assert parse_uses("actions/cache@8e5e7e5").is_pinned is False

    def test_ref_is_after_last_at(self):
        action = parse_uses("owner/repo@feature@2")
        assert action is not None
        assert action.ref == "2"

    def test_strips_whitespace(self):
        action = parse_uses("  actions/checkout@v4  ")
        assert action is not None
        assert action.full_uses == "actions/checkout@v4"

    @pytest.mark.parametrize(
        "uses",
        [
            "./.github/actions/setup",
            "../shared/action",
            "docker://alpine:3.19",
            "actions/checkout",
            "checkout@v4",
            "actions/checkout@",
            "",
        ],
    )
    def test_non_repository_actions_skipped(self, uses: str):
        assert parse_uses(uses) is None


class TestFindLineNumber:
    def test_first_matching_uses_line(self):
        lines = ["steps:", "  - uses: a/b@v1", "  - uses: a/b@v1"]
        assert find_line_number(lines, "a/b@v1") == 2

    def test_requires_uses_token(self):
        lines = ["# a/b@v1 is great", "  - uses: a/b@v1"]
        assert find_line_number(lines, "a/b@v1") == 2

    def test_not_found_is_zero(self):
        assert find_line_number(["name: x"], "a/b@v1") == 0


class TestParseWorkflowText:
    def test_sample_workflow(self, sample_workflow: str):
        actions = parse_workflow_text(sample_workflow, "ci.yml")
        assert [a.full_uses.split("@")[0] for a in actions] == [
            "actions/checkout",
            "actions/setup-python",
            "actions/cache",
        ]
        assert [a.line_number for a in actions] == [11, 13, 16]
        assert [a.is_pinned for a in actions] == [False, False, True]

    def test_multiple_jobs_in_document_order(self):
        text = (
            "jobs:\n"
            "  lint:\n"
            "    steps:\n"
            "      - uses: actions/checkout@v4\n"
            "  test:\n"
            "    steps:\n"
            "      - uses: actions/setup-node@v4\n"
        )
        actions = parse_workflow_text(text)
        assert [a.repo for a in actions] == ["checkout", "setup-node"]

    def test_duplicate_uses_share_first_line(self):
        text = (
            "jobs:\n"
            "  a:\n"
            "    steps:\n"
            "      - uses: actions/checkout@v4\n"
            "  b:\n"
            "    steps:\n"
            "      - uses: actions/checkout@v4\n"
        )
        actions = parse_workflow_text(text)
        assert len(actions) == 2
        assert [a.line_number for a in actions] == [4, 4]

    def test_quoted_uses_value(self):
        text = 'jobs:\n  a:\n    steps:\n      - uses: "actions/checkout@v4"\n'
        actions = parse_workflow_text(text)
        assert actions[0].full_uses == "actions/checkout@v4"
        assert actions[0].line_number == 4

    def test_reusable_workflow_call_skipped(self):
        text = (
            "jobs:\n"
            "  call:\n"
            "    uses: octo/repo/.github/workflows/build.yml@v1\n"
        )
        assert parse_workflow_text(text) == []

    @pytest.mark.parametrize(
        "text",
        [
            "",
            "name: no jobs\n",
            "jobs: []\n",
            "jobs:\n  a: 1\n",
            "jobs:\n  a:\n    steps: nope\n",
            "jobs:\n  a:\n    steps:\n      - run: echo\n      - uses: 42\n",
            "- just\n- a list\n",
        ],
    )
    def test_unusual_structure_yields_nothing(self, text: str):
        assert parse_workflow_text(text) == []

    def test_invalid_yaml_raises(self):
        with pytest.raises(ParseError):
            parse_workflow_text("jobs:\n  a: [unclosed\n", "broken.yml")


class TestParseWorkflowFile:
    def test_reads_file(self, write_workflow):
        path = write_workflow()
        actions = parse_workflow_file(path)
        assert len(actions) == 3
        assert all(a.file_path == str(path) for a in actions)

    def test_non_utf8_file_raises(self, tmp_path: Path):
        path = tmp_path / "latin1.yml"
        path.write_bytes(b"# caf\xe9\n")
        with pytest.raises(ParseError, match="not valid UTF-8"):
            parse_workflow_file(path)

    def test_missing_file_raises(self, tmp_path: Path):
        with pytest.raises(NotFoundError):
            parse_workflow_file(tmp_path / "missing.yml")
