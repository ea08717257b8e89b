"""
Tests for Commit Checker

Tests conventional commit parsing and validation.
"""

import pytest

from commit_sentinel.services.commit_checker import (
    CommitChecker,
    check_commit_message,
    parse_commit_message,
    split_message,
)


class TestParseCommitMessage:
    """Tests for header parsing."""

    def test_parse_simple_header(self):
        parsed = parse_commit_message("feat: add login page")

        assert parsed is not None
        assert parsed.type == "feat"
        assert parsed.scope is None
        assert parsed.breaking is False
        assert parsed.description == "add login page"
        assert parsed.body is None

    def test_parse_scope_and_breaking_marker(self):
        parsed = parse_commit_message("fix(api)!: drop v1 endpoints")

        assert parsed.type == "fix"
        assert parsed.scope == "api"
        assert parsed.breaking is True
        assert parsed.description == "drop v1 endpoints"

    def test_parse_body_and_breaking_footer(self):
        message = "refactor(core): split config loader\n\nMoves parsing out.\n\nBREAKING CHANGE: env vars renamed"
        parsed = parse_commit_message(message)

        assert parsed.breaking is True
        assert parsed.body.startswith("Moves parsing out.")
        assert parsed.header == "refactor(core): split config loader"

    def test_parse_ignores_leading_blank_lines(self):
        parsed = parse_commit_message("\n\nchore: bump deps\n")
        assert parsed.type == "chore"

    @pytest.mark.parametrize("message", [
        "Update README",
        "feat add thing",
        "feat:missing space",
        "feat: ",
        "feature: unknown type",
        "Feat: wrong case",
        "feat(): empty scope",
        "",
    ])
    def test_parse_rejects_non_conventional(self, message):
        assert parse_commit_message(message) is None


class TestCheckCommitMessage:
    """Tests for the validity decision."""

    def test_valid_message(self):
        result = check_commit_message("docs: explain setup")

        assert result.valid is True
        assert result.skipped is False
        assert result.parsed.type == "docs"

    def test_empty_message_is_invalid(self):
        result = check_commit_message("   \n  ")

        assert result.valid is False
        assert result.reason == "empty message"

    def test_merge_commit_is_skipped(self):
        result = check_commit_message("Merge pull request #12 from octocat/patch-1")

        assert result.valid is True
        assert result.skipped is True

    def test_merge_commit_checked_when_not_ignored(self):
        result = check_commit_message(
            "Merge pull request #12 from octocat/patch-1",
            ignore_merge_commits=False
        )

        assert result.valid is False

    def test_unknown_type_reason(self):
        result = check_commit_message("feature: add thing")

        assert result.valid is False
        assert "feature" in result.reason

    def test_missing_prefix_reason(self):
        result = check_commit_message("Update README")

        assert result.valid is False
        assert "prefix" in result.reason

    def test_type_not_in_allowed_types(self):
        result = check_commit_message("chore: tidy", allowed_types=["feat", "fix"])

        assert result.valid is False
        assert result.parsed is not None
        assert "not allowed" in result.reason

    def test_header_length_limit(self):
        checker = CommitChecker(max_header_length=20)

        assert checker.check("fix: short").valid is True
        result = checker.check("fix: this header is definitely too long")
        assert result.valid is False
        assert "too long" in result.reason


def test_split_message():
    header, body = split_message("feat: x\n\nbody line\n")

    assert header == "feat: x"
    assert body == "body line"


def test_split_message_body_starts_after_blank_line():
    assert split_message("feat: x\nmore") == ("feat: x", None)
    assert split_message("feat: x\nmore\n\nreal body\n\nfooter") == ("feat: x", "real body\n\nfooter")
    assert split_message("feat: x\n\n\n") == ("feat: x", None)
    assert split_message("   ") == ("", None)
