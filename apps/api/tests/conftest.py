"""Shared fixtures for API tests."""

from datetime import datetime, timedelta, timezone

import httpx
import pytest
from fastapi.testclient import TestClient

from teamup_core import (
    EventBus,
    GitHubConfig,
    GitHubEvidenceClient,
    InMemoryVerificationRecordRepository,
    VerificationRecordManager,
)
from teamup_api.auth.github import GitHubOAuth
from teamup_api.auth.jwt import create_access_token
from teamup_api.main import app
from teamup_api.services.verification_service import (
    OAuthStateStore,
    get_github_oauth,
    get_oauth_state_store,
    get_verification_manager,
)

NOW = datetime(2024, 6, 15, 12, 0, tzinfo=timezone.utc)


def iso(days_ago: float) -> str:
    return (NOW - timedelta(days=days_ago)).isoformat().replace("+00:00", "Z")


class FakeGitHub:
    """Simulates GitHub's OAuth and REST endpoints."""

    def __init__(self) -> None:
        self.login = "octocat"
        self.profile_status = 200
        self.repos = [
            {
                "name": "api",
                "full_name": "octocat/api",
                "language": "Python",
                "topics": [],
                "stargazers_count": 4,
                "size": 800,
                "created_at": iso(500),
                "pushed_at": iso(2),
            },
            {
                "name": "web",
                "full_name": "octocat/web",
                "language": "JavaScript",
                "topics": ["react"],
                "stargazers_count": 1,
                "size": 300,
                "created_at": iso(300),
                "pushed_at": iso(20),
            },
        ]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        if url.startswith(GitHubOAuth.TOKEN_URL):
            if b"code=bad" in request.content:
                return httpx.Response(200, json={"error": "bad_verification_code"})
            return httpx.Response(200, json={"access_token": "gho_token"})
        if url == GitHubOAuth.USER_URL:
            return httpx.Response(200, json={"login": self.login})

        path = request.url.path
        if path == f"/users/{self.login}":
            if self.profile_status != 200:
                return httpx.Response(self.profile_status)
            return httpx.Response(
                200,
                json={"login": self.login, "html_url": f"https://github.com/{self.login}"},
            )
        if path == f"/users/{self.login}/repos":
            return httpx.Response(200, json=self.repos)
        if path.endswith("/languages"):
            return httpx.Response(200, json={"Python": 900, "JavaScript": 100})
        return httpx.Response(404)


@pytest.fixture
def github() -> FakeGitHub:
    return FakeGitHub()


@pytest.fixture
def manager(github: FakeGitHub) -> VerificationRecordManager:
    transport = httpx.MockTransport(github)

    def factory(token):
        return GitHubEvidenceClient(GitHubConfig(), access_token=token, transport=transport)

    return VerificationRecordManager(
        InMemoryVerificationRecordRepository(event_bus=EventBus()),
        github_client_factory=factory,
        clock=lambda: NOW,
    )


@pytest.fixture
def client(manager: VerificationRecordManager, github: FakeGitHub) -> TestClient:
    """Test client with engine collaborators replaced by fakes."""
    states = OAuthStateStore()
    oauth = GitHubOAuth(client_id="cid", client_secret="secret", transport=httpx.MockTransport(github))

    app.dependency_overrides[get_verification_manager] = lambda: manager
    app.dependency_overrides[get_oauth_state_store] = lambda: states
    app.dependency_overrides[get_github_oauth] = lambda: oauth
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    """Factory for bearer headers of a TeamUp user."""

    def make(user_id: str = "user-1") -> dict[str, str]:
        return {"Authorization": f"Bearer {create_access_token(user_id, username='test')}"}

    return make
