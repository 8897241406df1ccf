"""TeamUp Core - Skill verification engine."""

from teamup_core.errors import (
    FetchFailed,
    IdentityMismatch,
    InvalidProfileUrl,
    NoEvidence,
    SecurityContextChanged,
    UserNotFound,
    VerificationError,
)
from teamup_core.models import (
    CertificateSource,
    DeclaredSkill,
    EvidenceKind,
    GitHubSource,
    InvalidationReason,
    LanguageUsage,
    Proficiency,
    SkillMetrics,
    VerificationRecord,
    VerificationSources,
    VerificationStats,
    VerificationStatus,
    # Timestamp utilities
    TimestampMixin,
    parse_iso_datetime,
    utcnow,
)
from teamup_core.config import (
    GitHubConfig,
    TeamUpConfig,
    VerificationConfig,
    load_config,
    parse_config,
)
from teamup_core.evidence import (
    CertificateEvidence,
    CertificateEvidenceSource,
    CertificateUpload,
    EvidenceSnapshot,
    GitHubEvidence,
    GitHubEvidenceSource,
    GitHubProfile,
    OAuthIdentity,
    RepositoryEvidence,
    estimate_total_commits,
)
from teamup_core.metrics import calculate_metrics, score_label
from teamup_core.skills import (
    LANGUAGE_TO_SKILLS,
    TOPIC_TO_SKILLS,
    infer_skills,
    match_verified_skills,
    normalize_skill_name,
    skills_drifted,
)
from teamup_core.certificates import (
    CertificateAnalysis,
    CertificateAnalyzer,
    HttpOcrClient,
    NoopOcrClient,
    OcrClient,
    analyze_certificate_text,
    extract_matching_name,
    is_name_match,
)
from teamup_core.events import (
    Event,
    EventBus,
    EventPriority,
    ReverificationRequiredEvent,
    VerificationRecordChangedEvent,
    get_event_bus,
    reset_event_bus,
)
from teamup_core.repositories import (
    InMemoryVerificationRecordRepository,
    VerificationRecordRepository,
)
from teamup_core.retry import RetryConfig, async_retry
from teamup_core.vcs import GitHubEvidenceClient, validate_github_url
from teamup_core.manager import ActiveRecordSubscription, VerificationRecordManager

__version__ = "0.1.0"

__all__ = [
    # Errors
    "VerificationError",
    "UserNotFound",
    "FetchFailed",
    "NoEvidence",
    "IdentityMismatch",
    "SecurityContextChanged",
    "InvalidProfileUrl",
    # Models
    "CertificateSource",
    "DeclaredSkill",
    "EvidenceKind",
    "GitHubSource",
    "InvalidationReason",
    "LanguageUsage",
    "Proficiency",
    "SkillMetrics",
    "VerificationRecord",
    "VerificationSources",
    "VerificationStats",
    "VerificationStatus",
    "TimestampMixin",
    "parse_iso_datetime",
    "utcnow",
    # Config
    "GitHubConfig",
    "TeamUpConfig",
    "VerificationConfig",
    "load_config",
    "parse_config",
    # Evidence
    "CertificateEvidence",
    "CertificateEvidenceSource",
    "CertificateUpload",
    "EvidenceSnapshot",
    "GitHubEvidence",
    "GitHubEvidenceSource",
    "GitHubProfile",
    "OAuthIdentity",
    "RepositoryEvidence",
    "estimate_total_commits",
    # Scoring and skills
    "calculate_metrics",
    "score_label",
    "LANGUAGE_TO_SKILLS",
    "TOPIC_TO_SKILLS",
    "infer_skills",
    "match_verified_skills",
    "normalize_skill_name",
    "skills_drifted",
    # Certificates
    "CertificateAnalysis",
    "CertificateAnalyzer",
    "HttpOcrClient",
    "NoopOcrClient",
    "OcrClient",
    "analyze_certificate_text",
    "extract_matching_name",
    "is_name_match",
    # Events and storage
    "Event",
    "EventBus",
    "EventPriority",
    "ReverificationRequiredEvent",
    "VerificationRecordChangedEvent",
    "get_event_bus",
    "reset_event_bus",
    "InMemoryVerificationRecordRepository",
    "VerificationRecordRepository",
    # Utilities
    "RetryConfig",
    "async_retry",
    "GitHubEvidenceClient",
    "validate_github_url",
    # Manager
    "ActiveRecordSubscription",
    "VerificationRecordManager",
]
