"""End-to-end verification scenarios across the engine and the API."""

from datetime import datetime, timedelta, timezone

import httpx
import pytest
from fastapi.testclient import TestClient

from teamup_core import (
    CertificateEvidenceSource,
    CertificateUpload,
    EventBus,
    GitHubConfig,
    GitHubEvidenceClient,
    GitHubEvidenceSource,
    InMemoryVerificationRecordRepository,
    InvalidationReason,
    OAuthIdentity,
    VerificationRecordManager,
    VerificationStatus,
    calculate_metrics,
    EvidenceSnapshot,
    RepositoryEvidence,
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

REPOS = [
    {
        "name": "service",
        "full_name": "octocat/service",
        "language": "Python",
        "topics": ["fastapi"],
        "stargazers_count": 12,
        "size": 2400,
        "created_at": (NOW - timedelta(days=900)).isoformat(),
        "pushed_at": (NOW - timedelta(days=4)).isoformat(),
    },
    {
        "name": "dashboard",
        "full_name": "octocat/dashboard",
        "language": "JavaScript",
        "topics": ["react"],
        "stargazers_count": 3,
        "size": 650,
        "created_at": (NOW - timedelta(days=200)).isoformat(),
        "pushed_at": (NOW - timedelta(days=75)).isoformat(),
    },
]


def github_api(request: httpx.Request) -> httpx.Response:
    url = str(request.url)
    if url.startswith(GitHubOAuth.TOKEN_URL):
        return httpx.Response(200, json={"access_token": "gho_token"})
    if url == GitHubOAuth.USER_URL:
        return httpx.Response(200, json={"login": "OctoCat"})
    if request.url.path.lower() == "/users/octocat":
        return httpx.Response(200, json={"login": "octocat", "html_url": "https://github.com/octocat"})
    if request.url.path.lower() == "/users/octocat/repos":
        return httpx.Response(200, json=REPOS)
    return httpx.Response(404)


@pytest.fixture
def manager() -> VerificationRecordManager:
    transport = httpx.MockTransport(github_api)
    return VerificationRecordManager(
        InMemoryVerificationRecordRepository(event_bus=EventBus()),
        github_config=GitHubConfig(language_usage=False),
        github_client_factory=lambda token: GitHubEvidenceClient(
            GitHubConfig(language_usage=False), access_token=token, transport=transport
        ),
        clock=lambda: NOW,
    )


@pytest.fixture
def client(manager: VerificationRecordManager) -> TestClient:
    states = OAuthStateStore()
    oauth = GitHubOAuth(client_id="cid", client_secret="secret", transport=httpx.MockTransport(github_api))
    app.dependency_overrides[get_verification_manager] = lambda: manager
    app.dependency_overrides[get_oauth_state_store] = lambda: states
    app.dependency_overrides[get_github_oauth] = lambda: oauth
    yield TestClient(app)
    app.dependency_overrides.clear()


def expected_score() -> int:
    repos = [RepositoryEvidence.from_api(r) for r in REPOS]
    return calculate_metrics(EvidenceSnapshot.from_repositories(repos, NOW), NOW).overall


class TestGitHubScenario:
    """Declared Python/React/Docker against Python + JavaScript/react evidence."""

    @pytest.mark.asyncio
    async def test_engine(self, manager: VerificationRecordManager):
        source = GitHubEvidenceSource(
            claimed_profile_url="https://github.com/octocat",
            identity=OAuthIdentity(username="OctoCat", locked_user_id="user-1"),
        )

        record = await manager.verify("user-1", source, ["Python", "React", "Docker"])

        assert set(record.verified_skills) == {"Python", "React"}
        assert record.overall_score == expected_score()
        assert record.sources.github.oauth_verified is True

    def test_over_http(self, client: TestClient):
        headers = {"Authorization": f"Bearer {create_access_token('user-1')}"}
        base = "/api/v1/skill-verification"

        state = client.post(
            f"{base}/github/start",
            json={"profileUrl": "github.com/octocat"},
            headers=headers,
        ).json()["state"]
        response = client.post(
            f"{base}/github/complete",
            json={
                "code": "abc",
                "state": state,
                "declaredSkills": [{"name": "Python"}, {"name": "React"}, {"name": "Docker"}],
            },
            headers=headers,
        )

        assert response.status_code == 200, response.text
        record = response.json()
        assert set(record["verifiedSkills"]) == {"Python", "React"}
        assert record["overallScore"] == expected_score()


class TestCertificateScenario:
    """A certificate naming the user and one of two declared skills."""

    @pytest.mark.asyncio
    async def test_engine(self, manager: VerificationRecordManager):
        source = CertificateEvidenceSource(
            profile_name="John Smith",
            certificates=(
                CertificateUpload("cert.png", text="JOHN A SMITH — Course: React Fundamentals"),
            ),
        )

        record = await manager.verify("user-1", source, ["React", "Figma"])

        certificate = record.sources.certificates[0]
        assert certificate.name_match is True
        assert "React" in certificate.inferred_skills
        assert "Figma" not in certificate.inferred_skills
        assert record.verified_skills == ["React"]

    def test_over_http(self, client: TestClient):
        response = client.post(
            "/api/analyzeCertificate",
            json={
                "ocrText": "JOHN A SMITH — Course: React Fundamentals",
                "profileName": "John Smith",
                "profileSkills": ["React", "Figma"],
            },
        )
        data = response.json()
        assert data["nameMatch"] is True
        assert "React" in data["inferredSkills"]
        assert "Figma" not in data["inferredSkills"]


class TestProfileEditScenario:
    """Editing declared skills after verification invalidates the record."""

    @pytest.mark.asyncio
    async def test_engine(self, manager: VerificationRecordManager):
        source = GitHubEvidenceSource(
            claimed_profile_url="https://github.com/octocat",
            identity=OAuthIdentity(username="octocat", locked_user_id="user-1"),
        )
        declared = ["Python", "React", "Docker"]
        record = await manager.verify("user-1", source, declared)

        edited = ["Python", "React", "Docker", "Kubernetes"]
        assert manager.skills_drifted(edited, record)
        assert await manager.apply_profile_edit("user-1", edited) is True

        stored = await manager.repository.get(record.id)
        assert stored.status == VerificationStatus.INVALIDATED
        assert stored.invalidation_reason == InvalidationReason.PROFILE_EDITED
        assert await manager.get_active("user-1") is None

    @pytest.mark.asyncio
    async def test_repeated_verification_keeps_one_active(self, manager: VerificationRecordManager):
        source = GitHubEvidenceSource(
            claimed_profile_url="https://github.com/octocat",
            identity=OAuthIdentity(username="octocat", locked_user_id="user-1"),
        )
        for _ in range(3):
            await manager.verify("user-1", source, ["Python"])
        await manager.invalidate("user-1", InvalidationReason.MANUAL)
        await manager.verify("user-1", source, ["Python"])

        verified = await manager.repository.find("user-1", VerificationStatus.VERIFIED)
        assert len(verified) == 1
        assert await manager.verification_count("user-1") == 4
