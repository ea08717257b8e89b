"""
Tests for Data Models

Tests for the Pydantic models used in the application.
"""

import pytest
from pydantic import ValidationError

from commit_sentinel.models import (
    CommitType,
    CreatedIssue,
    GitHubUser,
    IssueRequest,
    PushContext,
    PushWebhookPayload,
)

from tests.conftest import HEAD_SHA


class TestPushWebhookPayload:
    """Tests for push payload parsing."""

    def test_parse_sample_payload(self, sample_push_payload: dict):
        payload = PushWebhookPayload.model_validate(sample_push_payload)

        assert payload.branch == "main"
        assert payload.repository.full_name == "owner/repo"
        assert payload.installation.id == 987654
        assert payload.head_commit.id == HEAD_SHA
        assert payload.head_commit.author.username == "octocat"
        assert payload.head_commit.short_sha == HEAD_SHA[:7]

    def test_tag_ref_has_no_branch(self, sample_push_payload: dict):
        sample_push_payload["ref"] = "refs/tags/v1.2.3"
        payload = PushWebhookPayload.model_validate(sample_push_payload)

        assert payload.branch is None

    def test_branch_with_slashes(self, sample_push_payload: dict):
        sample_push_payload["ref"] = "refs/heads/release/1.x"
        payload = PushWebhookPayload.model_validate(sample_push_payload)

        assert payload.branch == "release/1.x"

    def test_null_head_commit_allowed(self, sample_push_payload: dict):
        sample_push_payload["head_commit"] = None
        payload = PushWebhookPayload.model_validate(sample_push_payload)

        assert payload.head_commit is None

    def test_missing_repository_rejected(self, sample_push_payload: dict):
        del sample_push_payload["repository"]

        with pytest.raises(ValidationError):
            PushWebhookPayload.model_validate(sample_push_payload)

    def test_author_without_username(self, sample_push_payload: dict):
        del sample_push_payload["head_commit"]["author"]["username"]
        payload = PushWebhookPayload.model_validate(sample_push_payload)

        assert payload.head_commit.author.username is None
        assert payload.head_commit.author.name == "The Octocat"

    def test_unused_payload_fields_ignored(self, sample_push_payload: dict):
        sample_push_payload.update({"forced": True, "compare": "https://github.com/owner/repo/compare/a...b"})
        payload = PushWebhookPayload.model_validate(sample_push_payload)

        assert not hasattr(payload, "forced")
        assert payload.branch == "main"


class TestPushContext:
    """Tests for building the processing context."""

    def test_from_payload(self, sample_push_payload: dict):
        payload = PushWebhookPayload.model_validate(sample_push_payload)
        context = PushContext.from_payload(payload, delivery_id="abc")

        assert context.owner == "owner"
        assert context.repo == "repo"
        assert context.full_repo_name == "owner/repo"
        assert context.branch == "main"
        assert context.installation_id == 987654
        assert context.delivery_id == "abc"

    def test_from_payload_without_installation(self, sample_push_payload: dict):
        del sample_push_payload["installation"]
        payload = PushWebhookPayload.model_validate(sample_push_payload)

        assert PushContext.from_payload(payload).installation_id is None

    def test_from_payload_requires_head_commit(self, sample_push_payload: dict):
        sample_push_payload["head_commit"] = None
        payload = PushWebhookPayload.model_validate(sample_push_payload)

        with pytest.raises(ValueError):
            PushContext.from_payload(payload)


class TestMiscModels:
    """Tests for the smaller models."""

    def test_user_handle_prefers_login(self):
        assert GitHubUser(login="octocat", name="Octo").handle == "octocat"
        assert GitHubUser(name="Octo").handle == "Octo"

    def test_commit_type_descriptions(self):
        assert CommitType.FIX.description == "A bug fix"
        assert all(t.description for t in CommitType)

    def test_issue_request_requires_title(self):
        with pytest.raises(ValidationError):
            IssueRequest(title="", body="b")

    def test_issue_request_defaults(self):
        issue = IssueRequest(title="t", body="b")

        assert issue.labels == []
        assert issue.assignees == []

    def test_created_issue(self):
        issue = CreatedIssue(number=1, html_url="https://github.com/o/r/issues/1", title="t")

        assert issue.body is None
