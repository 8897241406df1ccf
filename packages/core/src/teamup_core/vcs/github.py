"""GitHub evidence client.

Fetches a candidate's public profile and repository metadata from the
GitHub REST API.
"""

import asyncio
import re
from typing import Any

import httpx
import structlog

from teamup_core.config import GitHubConfig
from teamup_core.errors import FetchFailed, InvalidProfileUrl, UserNotFound
from teamup_core.evidence import GitHubEvidence, GitHubProfile, RepositoryEvidence
from teamup_core.models import LanguageUsage
from teamup_core.retry import RetryConfig, async_retry

logger = structlog.get_logger()

MAX_USERNAME_LENGTH = 39

_USERNAME = r"[a-zA-Z0-9](?:[a-zA-Z0-9-]*[a-zA-Z0-9])?"
_BARE_USERNAME_RE = re.compile(rf"^{_USERNAME}$")
_PROFILE_URL_RES = [
    re.compile(rf"^(?:https?://)?(?:www\.)?github\.com/({_USERNAME})/?$", re.IGNORECASE),
    re.compile(rf"^(?:https?://)?(?:www\.)?github\.com/({_USERNAME})/.*$", re.IGNORECASE),
]


def extract_github_username(value: str) -> str | None:
    """Extract a username from a bare username or a github.com URL."""
    trimmed = value.strip()

    if _BARE_USERNAME_RE.match(trimmed) and len(trimmed) <= MAX_USERNAME_LENGTH:
        return trimmed

    for pattern in _PROFILE_URL_RES:
        match = pattern.match(trimmed)
        if match and len(match.group(1)) <= MAX_USERNAME_LENGTH:
            return match.group(1)

    return None


def validate_github_url(url: str) -> str:
    """Return the username in ``url`` or raise :class:`InvalidProfileUrl`."""
    if not url or not url.strip():
        raise InvalidProfileUrl("Please enter a GitHub profile URL")

    username = extract_github_username(url)
    if username is None:
        raise InvalidProfileUrl(
            "Invalid GitHub URL format. Example: https://github.com/username"
        )
    return username


def _has_next_page(response: httpx.Response) -> bool:
    return 'rel="next"' in response.headers.get("Link", "")


def calculate_language_usage(language_bytes: dict[str, int]) -> list[LanguageUsage]:
    """Convert per-language byte totals to percentages, largest first."""
    total = sum(language_bytes.values())
    if total <= 0:
        return []

    usage = [
        LanguageUsage(
            language=language,
            bytes=count,
            percent=int(count * 100 / total + 0.5),
        )
        for language, count in language_bytes.items()
    ]
    usage.sort(key=lambda u: (-u.percent, -u.bytes, u.language))
    return usage


class GitHubEvidenceClient:
    """GitHub evidence client using the REST API.

    Works anonymously or with an OAuth access token (higher rate limits).
    Rate limiting mid-pagination ends the scan early with the repositories
    collected so far; a missing user is a hard failure.
    """

    def __init__(
        self,
        config: GitHubConfig | None = None,
        access_token: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize GitHub client.

        Args:
            config: Fetcher configuration (base URL, paging, timeouts, retry)
            access_token: Optional OAuth token sent as a bearer token
            transport: Optional httpx transport, used by tests
        """
        self.config = config or GitHubConfig()
        self._access_token = access_token
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

        retry_config = RetryConfig(
            max_attempts=self.config.retry_attempts,
            base_delay=self.config.retry_base_delay,
            max_delay=10.0,
            retryable_exceptions=(FetchFailed,),
            should_retry=lambda e: getattr(e, "retryable", False),
        )
        self._get = async_retry(config=retry_config)(self._send_get)

    async def __aenter__(self) -> "GitHubEvidenceClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.config.base_url,
                timeout=self.config.timeout_seconds,
                transport=self._transport,
            )
        return self._client

    def _get_headers(self) -> dict[str, str]:
        headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }
        if self._access_token:
            headers["Authorization"] = f"Bearer {self._access_token}"
        return headers

    async def _send_get(self, url: str, **kwargs: Any) -> httpx.Response:
        """GET without raising on 4xx; 5xx and transport errors raise FetchFailed."""
        try:
            response = await self._get_client().get(url, headers=self._get_headers(), **kwargs)
        except httpx.TimeoutException as e:
            raise FetchFailed(f"GitHub request timed out: {url}") from e
        except httpx.HTTPError as e:
            raise FetchFailed(f"GitHub request failed: {e}") from e

        if response.status_code >= 500:
            raise FetchFailed(
                f"GitHub service error ({response.status_code})",
                status_code=response.status_code,
            )
        return response

    async def get_user(self, username: str) -> GitHubProfile:
        """Fetch the user's profile."""
        response = await self._get(f"/users/{username}")

        if response.status_code == 404:
            raise UserNotFound(username)
        if response.status_code == 403:
            raise FetchFailed(
                "GitHub API rate limit exceeded. Please try again later.",
                status_code=403,
                retryable=True,
            )
        if not response.is_success:
            raise FetchFailed(
                f"Failed to fetch GitHub user: {response.reason_phrase}",
                status_code=response.status_code,
            )
        return GitHubProfile.from_api(response.json())

    async def list_repositories(self, username: str) -> list[RepositoryEvidence]:
        """Fetch repositories, most recently pushed first, up to ``max_pages``."""
        repos: list[RepositoryEvidence] = []

        for page in range(1, self.config.max_pages + 1):
            response = await self._get(
                f"/users/{username}/repos",
                params={"per_page": self.config.per_page, "page": page, "sort": "pushed"},
            )

            if response.status_code == 403:
                logger.warning(
                    "Rate limit hit during repo fetch, using collected repos",
                    username=username,
                    page=page,
                    collected=len(repos),
                )
                break
            if response.status_code == 404:
                raise UserNotFound(username)
            if not response.is_success:
                raise FetchFailed(
                    f"Failed to fetch repositories: {response.reason_phrase}",
                    status_code=response.status_code,
                )

            items = response.json()
            if not items:
                break

            for item in items:
                try:
                    repos.append(RepositoryEvidence.from_api(item))
                except ValueError as e:
                    logger.debug("Skipping malformed repository", error=str(e))

            if not _has_next_page(response):
                break

        logger.debug("Fetched repositories", username=username, count=len(repos))
        return repos

    async def get_language_bytes(self, repos: list[RepositoryEvidence]) -> dict[str, int]:
        """Sum language bytes across non-fork repositories.

        Repositories whose languages cannot be fetched are skipped.
        """
        totals: dict[str, int] = {}
        candidates = [r for r in repos if not r.fork and r.full_name]

        for repo in candidates[: self.config.language_usage_repo_limit]:
            try:
                response = await self._get(f"/repos/{repo.full_name}/languages")
            except FetchFailed as e:
                logger.debug("Skipping repo languages", repo=repo.full_name, error=e.reason)
                continue
            if not response.is_success:
                continue
            for language, count in response.json().items():
                totals[language] = totals.get(language, 0) + int(count)

        return totals

    async def fetch_evidence(self, username: str) -> GitHubEvidence:
        """Collect everything the verification engine needs for ``username``."""
        profile = await self.get_user(username)
        repos = await self.list_repositories(profile.login)

        language_bytes: dict[str, int] = {}
        if self.config.language_usage and repos:
            language_bytes = await self.get_language_bytes(repos)

        logger.info(
            "Collected GitHub evidence",
            username=profile.login,
            repo_count=len(repos),
            languages=len({r.language for r in repos if r.language}),
        )
        return GitHubEvidence(profile=profile, repositories=repos, language_bytes=language_bytes)

    async def fetch_evidence_with_timeout(self, username: str, timeout: float) -> GitHubEvidence:
        """:meth:`fetch_evidence` bounded by an overall operation timeout."""
        try:
            return await asyncio.wait_for(self.fetch_evidence(username), timeout=timeout)
        except asyncio.TimeoutError as e:
            raise FetchFailed(
                f"GitHub evidence collection timed out after {timeout:g}s"
            ) from e
