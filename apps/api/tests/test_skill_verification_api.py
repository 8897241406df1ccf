"""Tests for the skill verification endpoints."""

from urllib.parse import parse_qs, urlparse

import pytest
from fastapi.testclient import TestClient

BASE = "/api/v1/skill-verification"
DECLARED = [
    {"name": "Python", "proficiency": "Pro"},
    {"name": "React", "proficiency": "Intermediate"},
    {"name": "Docker"},
]


def start(client: TestClient, headers: dict, profile_url: str = "https://github.com/octocat") -> str:
    response = client.post(f"{BASE}/github/start", json={"profileUrl": profile_url}, headers=headers)
    assert response.status_code == 200, response.text
    return response.json()["state"]


def complete(client: TestClient, headers: dict, state: str, code: str = "good"):
    return client.post(
        f"{BASE}/github/complete",
        json={"code": code, "state": state, "declaredSkills": DECLARED},
        headers=headers,
    )


class TestGitHubStart:
    """Tests for /github/start."""

    def test_returns_authorize_url(self, client: TestClient, auth_headers) -> None:
        response = client.post(
            f"{BASE}/github/start",
            json={"profileUrl": "https://github.com/octocat"},
            headers=auth_headers(),
        )
        assert response.status_code == 200
        data = response.json()

        query = parse_qs(urlparse(data["authorizeUrl"]).query)
        assert query["client_id"] == ["cid"]
        assert query["scope"] == ["read:user repo"]
        assert query["state"] == [data["state"]]

    def test_invalid_profile_url(self, client: TestClient, auth_headers) -> None:
        response = client.post(
            f"{BASE}/github/start",
            json={"profileUrl": "https://gitlab.com/octocat"},
            headers=auth_headers(),
        )
        assert response.status_code == 422
        error = response.json()["error"]
        assert error["code"] == "invalid_profile_url"
        assert "Invalid GitHub URL format" in error["message"]


class TestGitHubComplete:
    """Tests for /github/complete."""

    def test_records_verification(self, client: TestClient, auth_headers) -> None:
        headers = auth_headers()
        response = complete(client, headers, start(client, headers))

        assert response.status_code == 200, response.text
        record = response.json()
        assert record["status"] == "verified"
        assert record["userId"] == "user-1"
        assert record["verifiedSkills"] == ["Python", "React"]
        assert record["sources"]["github"]["oauthVerified"] is True
        assert record["sources"]["github"]["username"] == "octocat"
        assert 0 <= record["overallScore"] <= 100
        assert record["stats"]["languageUsage"][0]["language"] == "Python"

        active = client.get(f"{BASE}/active", headers=headers).json()
        assert active["id"] == record["id"]

    def test_state_is_single_use(self, client: TestClient, auth_headers) -> None:
        headers = auth_headers()
        state = start(client, headers)
        assert complete(client, headers, state).status_code == 200

        response = complete(client, headers, state)
        assert response.status_code == 400
        assert response.json()["detail"] == "Invalid or expired OAuth state"

    def test_unknown_state(self, client: TestClient, auth_headers) -> None:
        assert complete(client, auth_headers(), "made-up").status_code == 400

    def test_bad_code(self, client: TestClient, auth_headers) -> None:
        headers = auth_headers()
        response = complete(client, headers, start(client, headers), code="bad")
        assert response.status_code == 400
        assert response.json()["detail"] == "GitHub authorization failed"

    def test_identity_mismatch(self, client: TestClient, auth_headers) -> None:
        headers = auth_headers()
        state = start(client, headers, profile_url="https://github.com/someone-else")

        response = complete(client, headers, state)

        assert response.status_code == 403
        assert response.json()["error"]["code"] == "identity_mismatch"
        assert client.get(f"{BASE}/active", headers=headers).json() is None

    def test_different_user_completes(self, client: TestClient, auth_headers) -> None:
        state = start(client, auth_headers("user-1"))

        response = complete(client, auth_headers("user-2"), state)

        assert response.status_code == 401
        assert response.json()["error"]["code"] == "security_context_changed"
        assert client.get(f"{BASE}/active", headers=auth_headers("user-2")).json() is None

    def test_account_without_repositories(self, client: TestClient, auth_headers, github) -> None:
        github.repos = []
        headers = auth_headers()

        response = complete(client, headers, start(client, headers))

        assert response.status_code == 200
        assert response.json()["verifiedSkills"] == []
        assert response.json()["overallScore"] == 0

    def test_github_user_not_found(self, client: TestClient, auth_headers, github) -> None:
        github.profile_status = 404
        headers = auth_headers()

        response = complete(client, headers, start(client, headers))

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "user_not_found"

    def test_github_unavailable(self, client: TestClient, auth_headers, github) -> None:
        github.profile_status = 503
        headers = auth_headers()

        response = complete(client, headers, start(client, headers))

        assert response.status_code == 502
        assert response.json()["error"]["retryable"] is True


class TestCertificates:
    """Tests for /certificates."""

    def test_records_certificate_verification(self, client: TestClient, auth_headers) -> None:
        response = client.post(
            f"{BASE}/certificates",
            json={
                "profileName": "John Smith",
                "declaredSkills": [{"name": "React"}, {"name": "Figma"}],
                "certificates": [
                    {"fileName": "react.png", "ocrText": "JOHN A SMITH — Course: React Fundamentals"}
                ],
            },
            headers=auth_headers(),
        )

        assert response.status_code == 200, response.text
        record = response.json()
        assert record["verifiedSkills"] == ["React"]
        assert record["sources"]["github"] is None
        certificate = record["sources"]["certificates"][0]
        assert certificate["fileName"] == "react.png"
        assert certificate["nameMatch"] is True

    def test_certificate_without_content(self, client: TestClient, auth_headers) -> None:
        response = client.post(
            f"{BASE}/certificates",
            json={"profileName": "John Smith", "certificates": [{"fileName": "empty.png"}]},
            headers=auth_headers(),
        )
        assert response.status_code == 400

    @pytest.mark.parametrize("name", ["", "   ", "123", "-"])
    def test_profile_name_without_letters(self, client: TestClient, auth_headers, name) -> None:
        headers = auth_headers()
        response = client.post(
            f"{BASE}/certificates",
            json={
                "profileName": name,
                "declaredSkills": [{"name": "Kubernetes"}],
                "certificates": [
                    {"fileName": "c.png", "ocrText": "Awarded to JANE DOE - Kubernetes Administrator"}
                ],
            },
            headers=headers,
        )

        assert response.status_code == 422
        assert client.get(f"{BASE}/active", headers=headers).json() is None

    def test_requires_certificates(self, client: TestClient, auth_headers) -> None:
        response = client.post(
            f"{BASE}/certificates",
            json={"profileName": "John Smith", "certificates": []},
            headers=auth_headers(),
        )
        assert response.status_code == 422


class TestLifecycleEndpoints:
    """Tests for /active, /invalidate and /profile-skills."""

    @pytest.fixture
    def verified(self, client: TestClient, auth_headers) -> dict:
        headers = auth_headers()
        return complete(client, headers, start(client, headers)).json()

    def test_active_is_null_without_records(self, client: TestClient, auth_headers) -> None:
        response = client.get(f"{BASE}/active", headers=auth_headers())
        assert response.status_code == 200
        assert response.json() is None

    def test_invalidate(self, client: TestClient, auth_headers, verified) -> None:
        headers = auth_headers()
        response = client.post(f"{BASE}/invalidate", json={"reason": "manual"}, headers=headers)
        assert response.status_code == 204
        assert client.get(f"{BASE}/active", headers=headers).json() is None

        again = client.post(f"{BASE}/invalidate", json={}, headers=headers)
        assert again.status_code == 204

    def test_invalidate_unknown_reason(self, client: TestClient, auth_headers) -> None:
        response = client.post(
            f"{BASE}/invalidate", json={"reason": "bored"}, headers=auth_headers()
        )
        assert response.status_code == 422

    def test_profile_edit_without_drift(self, client: TestClient, auth_headers, verified) -> None:
        headers = auth_headers()
        response = client.post(
            f"{BASE}/profile-skills",
            json={"skills": [{"name": "docker"}, {"name": "Python"}, {"name": "React"}]},
            headers=headers,
        )
        assert response.json() == {"reverificationRequired": False}
        assert client.get(f"{BASE}/active", headers=headers).json()["id"] == verified["id"]

    def test_profile_edit_with_drift(self, client: TestClient, auth_headers, verified) -> None:
        headers = auth_headers()
        response = client.post(
            f"{BASE}/profile-skills",
            json={"skills": [{"name": "Python"}, {"name": "Go"}]},
            headers=headers,
        )
        assert response.json() == {"reverificationRequired": True}
        assert client.get(f"{BASE}/active", headers=headers).json() is None
