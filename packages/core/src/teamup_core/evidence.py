"""Evidence types consumed by the verification engine.

External payloads (GitHub JSON, certificate uploads) are validated and
normalized once, at the boundary, into the strict types defined here.
"""

import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Literal, Union

from teamup_core.models import parse_iso_datetime, utcnow

SECONDS_PER_DAY = 86400.0

_LETTER_RE = re.compile(r"[a-z]")

# Commit estimation constants. The evidence source does not cheaply expose
# full commit history, so total commits is a monotonic proxy, not a count.
COMMIT_SAMPLE_REPOS = 10
COMMIT_SIZE_DIVISOR = 100
COMMIT_MAX_AGE_MONTHS = 24
COMMIT_FLOOR_PER_REPO = 5
COMMITS_PER_UNSAMPLED_REPO = 10


def days_between(earlier: datetime, later: datetime) -> float:
    """Fractional days from ``earlier`` to ``later``."""
    return (later - earlier).total_seconds() / SECONDS_PER_DAY


def round_half_up(value: float) -> int:
    """Round .5 away from zero for non-negative scores."""
    return int(value + 0.5)


@dataclass(frozen=True)
class RepositoryEvidence:
    """Metadata for one public repository."""

    name: str
    full_name: str
    language: str | None
    topics: tuple[str, ...]
    stargazers_count: int
    size: int
    created_at: datetime
    pushed_at: datetime
    fork: bool = False

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "RepositoryEvidence":
        """Build from a GitHub ``/users/{u}/repos`` item."""
        created_at = parse_iso_datetime(data.get("created_at"))
        pushed_at = parse_iso_datetime(data.get("pushed_at"), default=created_at)
        if created_at is None or pushed_at is None:
            raise ValueError(f"repository {data.get('full_name')!r} has no timestamps")
        return cls(
            name=data.get("name") or "",
            full_name=data.get("full_name") or data.get("name") or "",
            language=data.get("language") or None,
            topics=tuple(t for t in (data.get("topics") or []) if t),
            stargazers_count=int(data.get("stargazers_count") or 0),
            size=int(data.get("size") or 0),
            created_at=created_at,
            pushed_at=pushed_at,
            fork=bool(data.get("fork", False)),
        )


@dataclass(frozen=True)
class GitHubProfile:
    """The evidence subject's account."""

    login: str
    html_url: str
    name: str | None = None
    public_repos: int = 0

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "GitHubProfile":
        login = data["login"]
        return cls(
            login=login,
            html_url=data.get("html_url") or f"https://github.com/{login}",
            name=data.get("name"),
            public_repos=int(data.get("public_repos") or 0),
        )


def estimate_total_commits(
    repos: list[RepositoryEvidence],
    now: datetime | None = None,
) -> int:
    """Approximate the user's commit count from repository metadata.

    For the most recently pushed repositories, size times age (capped at
    two years) times an activity factor stands in for commit history; each
    sampled repo contributes at least a floor value, and every unsampled
    repo a flat amount. This is a heuristic, not a ground-truth count.
    """
    now = now or utcnow()
    ordered = sorted(repos, key=lambda r: r.pushed_at, reverse=True)

    total = 0
    for repo in ordered[:COMMIT_SAMPLE_REPOS]:
        age_days = max(days_between(repo.created_at, now), 0.0)
        since_push = days_between(repo.pushed_at, now)
        if since_push < 30:
            activity_factor = 1.5
        elif since_push < 90:
            activity_factor = 1.2
        else:
            activity_factor = 1.0
        estimate = round_half_up(
            (repo.size / COMMIT_SIZE_DIVISOR)
            * min(age_days / 30, COMMIT_MAX_AGE_MONTHS)
            * activity_factor
        )
        total += max(estimate, COMMIT_FLOOR_PER_REPO)

    total += max(0, len(ordered) - COMMIT_SAMPLE_REPOS) * COMMITS_PER_UNSAMPLED_REPO
    return total


@dataclass(frozen=True)
class EvidenceSnapshot:
    """Per-attempt summary of activity evidence. Never cached or reused."""

    languages: frozenset[str] = frozenset()
    topics: frozenset[str] = frozenset()
    repo_count: int = 0
    total_commits_estimate: int = 0
    total_stars: int = 0
    push_timestamps: tuple[datetime, ...] = ()
    last_push_timestamp: datetime | None = None

    @property
    def is_empty(self) -> bool:
        return self.repo_count == 0

    @classmethod
    def from_repositories(
        cls,
        repos: list[RepositoryEvidence],
        now: datetime | None = None,
    ) -> "EvidenceSnapshot":
        pushes = tuple(sorted((r.pushed_at for r in repos), reverse=True))
        return cls(
            languages=frozenset(r.language for r in repos if r.language),
            topics=frozenset(t.lower() for r in repos for t in r.topics),
            repo_count=len(repos),
            total_commits_estimate=estimate_total_commits(repos, now),
            total_stars=sum(r.stargazers_count for r in repos),
            push_timestamps=pushes,
            last_push_timestamp=pushes[0] if pushes else None,
        )


# ============================================================================
# Collected evidence, one variant per source
# ============================================================================


@dataclass
class GitHubEvidence:
    """Everything fetched from GitHub for one verification attempt."""

    profile: GitHubProfile
    repositories: list[RepositoryEvidence] = field(default_factory=list)
    language_bytes: dict[str, int] = field(default_factory=dict)
    kind: Literal["github"] = "github"

    def snapshot(self, now: datetime | None = None) -> EvidenceSnapshot:
        return EvidenceSnapshot.from_repositories(self.repositories, now)


@dataclass
class CertificateEvidence:
    """Text extracted from one uploaded certificate."""

    file_name: str
    text: str
    kind: Literal["certificate"] = "certificate"


# ============================================================================
# Evidence source requests passed to the manager
# ============================================================================


@dataclass(frozen=True)
class OAuthIdentity:
    """Result of a completed GitHub OAuth handshake.

    ``locked_user_id`` is the TeamUp user that started the handshake.
    """

    username: str
    locked_user_id: str
    access_token: str | None = None


@dataclass(frozen=True)
class GitHubEvidenceSource:
    """Verify skills from the GitHub account behind ``claimed_profile_url``."""

    claimed_profile_url: str
    identity: OAuthIdentity
    kind: Literal["github"] = "github"


@dataclass(frozen=True)
class CertificateUpload:
    """One certificate as uploaded: pre-extracted text or a base64 image."""

    file_name: str
    text: str | None = None
    image_base64: str | None = None

    def __post_init__(self) -> None:
        if self.text is None and self.image_base64 is None:
            raise ValueError(f"certificate {self.file_name!r} has neither text nor image")


@dataclass(frozen=True)
class CertificateEvidenceSource:
    """Verify skills from certificates issued to ``profile_name``."""

    profile_name: str
    certificates: tuple[CertificateUpload, ...]
    kind: Literal["certificates"] = "certificates"

    def __post_init__(self) -> None:
        # Name checks compare alphabetic tokens only
        if not _LETTER_RE.search((self.profile_name or "").lower()):
            raise ValueError("profile name must contain at least one letter")


EvidenceSource = Union[GitHubEvidenceSource, CertificateEvidenceSource]
