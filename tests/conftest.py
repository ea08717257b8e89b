"""
Test Configuration

Pytest configuration and fixtures for the test suite.
"""

import hashlib
import hmac
import json
import os
from typing import Callable, Generator, List

# Settings are cached on first use, so the environment must be in place
# before anything from commit_sentinel is imported.
os.environ["GITHUB_WEBHOOK_SECRET"] = "test_secret"
os.environ["GITHUB_TOKEN"] = "test-token-value"
os.environ["LOG_JSON_FORMAT"] = "false"
os.environ.pop("GITHUB_APP_ID", None)
os.environ.pop("DRY_RUN", None)

import httpx
import pytest
from fastapi.testclient import TestClient

from commit_sentinel.config import Settings
from commit_sentinel.main import app
from commit_sentinel.models import CommitAuthor, HeadCommit, PushContext
from commit_sentinel.services.github_auth import StaticTokenAuth
from commit_sentinel.services.github_client import GitHubClient

WEBHOOK_SECRET = "test_secret"
HEAD_SHA = "6dcb09b5b57875f334f61aebed695e2e4193db5e"


@pytest.fixture
def client() -> Generator[TestClient, None, None]:
    """Create a test client for synchronous tests."""
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def settings() -> Settings:
    """Settings with fast retries and a static token."""
    return Settings(
        github_token="test-token-value",
        github_webhook_secret=WEBHOOK_SECRET,
        max_retries=3,
        retry_base_delay=0.1,
        retry_max_delay=1.0,
        dry_run=False
    )


@pytest.fixture
def sign() -> Callable[[bytes], str]:
    """Sign a body the way GitHub does."""
    def _sign(body: bytes) -> str:
        digest = hmac.new(WEBHOOK_SECRET.encode(), body, hashlib.sha256).hexdigest()
        return f"sha256={digest}"
    return _sign


@pytest.fixture
def sample_push_payload() -> dict:
    """Sample push webhook payload for a non-conventional commit on main."""
    return {
        "ref": "refs/heads/main",
        "before": "0000000000000000000000000000000000000000",
        "after": HEAD_SHA,
        "created": False,
        "deleted": False,
        "repository": {
            "id": 111,
            "name": "repo",
            "full_name": "owner/repo",
            "private": False,
            "owner": {
                "name": "owner",
                "login": "owner",
                "id": 1,
                "type": "Organization"
            },
            "html_url": "https://github.com/owner/repo",
            "default_branch": "main"
        },
        "pusher": {
            "name": "octocat",
            "email": "octocat@example.com"
        },
        "sender": {
            "login": "octocat",
            "id": 583231,
            "type": "User"
        },
        "installation": {
            "id": 987654
        },
        "head_commit": {
            "id": HEAD_SHA,
            "tree_id": "f9d2a07e9488b91af2641b26b9407fe22a451433",
            "message": "Update README",
            "timestamp": "2024-01-15T10:00:00Z",
            "url": f"https://github.com/owner/repo/commit/{HEAD_SHA}",
            "author": {
                "name": "The Octocat",
                "email": "octocat@example.com",
                "username": "octocat"
            },
            "committer": {
                "name": "GitHub",
                "email": "noreply@github.com",
                "username": "web-flow"
            },
            "added": [],
            "removed": [],
            "modified": ["README.md"]
        }
    }


@pytest.fixture
def head_commit(sample_push_payload: dict) -> HeadCommit:
    return HeadCommit.model_validate(sample_push_payload["head_commit"])


@pytest.fixture
def push_context(head_commit: HeadCommit) -> PushContext:
    return PushContext(
        owner="owner",
        repo="repo",
        branch="main",
        head_commit=head_commit,
        installation_id=987654
    )


class RecordingTransport:
    """
    Scripted stand-in for the GitHub API.

    Each request is answered by the next response in the script and
    recorded for later assertions.
    """

    def __init__(self, responses: List[httpx.Response]):
        self.responses = list(responses)
        self.requests: List[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if not self.responses:
            raise AssertionError(f"Unexpected request: {request.method} {request.url}")
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    def json_bodies(self) -> List[dict]:
        return [json.loads(r.content) for r in self.requests if r.content]


@pytest.fixture
def github_api(settings: Settings):
    """Build a GitHubClient wired to a scripted transport."""
    def _build(*responses) -> tuple:
        recorder = RecordingTransport(list(responses))
        github_client = GitHubClient(
            installation_id=987654,
            auth=StaticTokenAuth("test-token-value"),
            settings=settings,
            transport=httpx.MockTransport(recorder)
        )
        return github_client, recorder
    return _build


def make_commit(message: str, username: str = "octocat") -> HeadCommit:
    return HeadCommit(
        id=HEAD_SHA,
        message=message,
        author=CommitAuthor(name="The Octocat", email="octocat@example.com", username=username)
    )
