"""Core data models for TeamUp skill verification."""

from datetime import datetime, timezone
from enum import Enum
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator


def utcnow() -> datetime:
    """Timezone-aware current UTC time."""
    return datetime.now(timezone.utc)


# ============================================================================
# Timestamp mixins for consistent datetime handling
# ============================================================================


class TimestampMixin(BaseModel):
    """Mixin providing created_at and updated_at timestamps for Pydantic models."""

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    def touch(self) -> None:
        """Update the updated_at timestamp to now."""
        self.updated_at = utcnow()


def parse_iso_datetime(value: str | None, default: datetime | None = None) -> datetime | None:
    """Parse ISO datetime string, handling Z suffix.

    Naive results are assumed to be UTC.

    Args:
        value: ISO datetime string (may end in Z)
        default: Default value if parsing fails or value is None

    Returns:
        Parsed datetime or default
    """
    if not value:
        return default
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except (ValueError, AttributeError):
        return default
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


# ============================================================================
# Enums
# ============================================================================


class Proficiency(str, Enum):
    """Self-reported proficiency for a declared skill."""

    BEGINNER = "Beginner"
    INTERMEDIATE = "Intermediate"
    PRO = "Pro"


class VerificationStatus(str, Enum):
    """Lifecycle status of a verification record."""

    PENDING = "pending"
    VERIFIED = "verified"
    INVALIDATED = "invalidated"


class InvalidationReason(str, Enum):
    """Why a verified record stopped being active."""

    PROFILE_EDITED = "profile_edited"
    MANUAL = "manual"
    EXPIRED = "expired"
    SUPERSEDED = "superseded"


class EvidenceKind(str, Enum):
    """Evidence path that produced a record."""

    GITHUB = "github"
    CERTIFICATES = "certificates"


# ============================================================================
# Profile input
# ============================================================================


class DeclaredSkill(BaseModel):
    """A skill the user self-reports on their profile."""

    name: str
    proficiency: Proficiency = Proficiency.BEGINNER

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("skill name must not be blank")
        return v


def skill_names(skills: "list[DeclaredSkill | str]") -> list[str]:
    """Flatten declared skills (or plain names) to their names."""
    return [s.name if isinstance(s, DeclaredSkill) else s for s in skills]


# ============================================================================
# Verification record
# ============================================================================


class SkillMetrics(BaseModel):
    """Four bounded sub-scores; each in [0, 25], summing to [0, 100]."""

    activity: int = Field(default=0, ge=0, le=25)
    consistency: int = Field(default=0, ge=0, le=25)
    recency: int = Field(default=0, ge=0, le=25)
    diversity: int = Field(default=0, ge=0, le=25)

    @property
    def overall(self) -> int:
        return self.activity + self.consistency + self.recency + self.diversity


class LanguageUsage(BaseModel):
    """Share of code bytes written in one language."""

    language: str
    bytes: int
    percent: int


class VerificationStats(BaseModel):
    """Supplementary statistics shown alongside a record."""

    language_usage: list[LanguageUsage] = Field(default_factory=list)


class GitHubSource(BaseModel):
    """GitHub evidence recorded with a verification."""

    model_config = ConfigDict(validate_assignment=True)

    username: str
    profile_url: str
    oauth_verified: bool = True
    inferred_skills: list[str] = Field(default_factory=list)
    analyzed_at: datetime = Field(default_factory=utcnow)
    repo_count: int = 0
    languages: list[str] = Field(default_factory=list)
    total_commits: int = 0
    last_commit_date: datetime | None = None

    @field_validator("oauth_verified")
    @classmethod
    def require_oauth(cls, v: bool) -> bool:
        # GitHub ownership claims are only trustworthy behind an OAuth handshake
        if v is not True:
            raise ValueError("github sources must be OAuth verified")
        return v


class CertificateSource(BaseModel):
    """One analysed certificate recorded with a verification."""

    file_name: str
    extracted_name: str
    name_match: bool
    course_topics: list[str] = Field(default_factory=list)
    inferred_skills: list[str] = Field(default_factory=list)
    verified_at: datetime = Field(default_factory=utcnow)


class VerificationSources(BaseModel):
    """Evidence paths that produced a record (at least one is set)."""

    github: GitHubSource | None = None
    certificates: list[CertificateSource] | None = None

    @property
    def kinds(self) -> list[EvidenceKind]:
        kinds = []
        if self.github is not None:
            kinds.append(EvidenceKind.GITHUB)
        if self.certificates:
            kinds.append(EvidenceKind.CERTIFICATES)
        return kinds


class VerificationRecord(TimestampMixin):
    """Persisted outcome of one verification attempt."""

    id: str = Field(default_factory=lambda: uuid4().hex)
    user_id: str
    status: VerificationStatus = VerificationStatus.PENDING
    verified_skills: list[str] = Field(default_factory=list)
    profile_skills_at_verification: list[str] = Field(default_factory=list)
    sources: VerificationSources = Field(default_factory=VerificationSources)
    metrics: SkillMetrics | None = None
    overall_score: int | None = Field(default=None, ge=0, le=100)
    stats: VerificationStats | None = None
    verified_at: datetime | None = None
    invalidated_at: datetime | None = None
    invalidation_reason: InvalidationReason | None = None

    @property
    def is_active(self) -> bool:
        return self.status == VerificationStatus.VERIFIED

    def mark_verified(self, at: datetime | None = None) -> None:
        """Move a pending record to verified."""
        if self.status != VerificationStatus.PENDING:
            raise ValueError(f"cannot verify a record in status {self.status.value}")
        self.status = VerificationStatus.VERIFIED
        self.verified_at = at or utcnow()
        self.touch()

    def invalidate(self, reason: InvalidationReason, at: datetime | None = None) -> None:
        """Move the record to invalidated. Records never return to verified."""
        if self.status == VerificationStatus.INVALIDATED:
            return
        self.status = VerificationStatus.INVALIDATED
        self.invalidated_at = at or utcnow()
        self.invalidation_reason = reason
        self.touch()

    def to_public_dict(self) -> dict[str, Any]:
        """Serialize for API responses (camelCase keys, ISO timestamps)."""
        data = self.model_dump(mode="json")
        return _camelize(data)


def _camel(key: str) -> str:
    head, *rest = key.split("_")
    return head + "".join(part.title() for part in rest)


def _camelize(value: Any) -> Any:
    if isinstance(value, dict):
        return {_camel(k): _camelize(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_camelize(v) for v in value]
    return value
