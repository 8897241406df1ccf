"""Wiring between the HTTP layer and the skill verification engine."""

import secrets
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from functools import lru_cache

import structlog

from teamup_core import (
    CertificateAnalyzer,
    HttpOcrClient,
    InMemoryVerificationRecordRepository,
    NoopOcrClient,
    TeamUpConfig,
    VerificationRecordManager,
    load_config,
    utcnow,
)
from teamup_api.auth.github import GitHubOAuth
from teamup_api.config import settings

logger = structlog.get_logger()


@dataclass
class PendingGitHubVerification:
    """A GitHub OAuth handshake started by a TeamUp user."""

    user_id: str
    profile_url: str
    created_at: datetime = field(default_factory=utcnow)


class OAuthStateStore:
    """Pending OAuth handshakes keyed by their ``state`` parameter.

    Each state can be consumed once. In-process only; multi-instance
    deployments need a shared store.
    """

    def __init__(self, ttl_seconds: int = 600) -> None:
        self.ttl = timedelta(seconds=ttl_seconds)
        self._pending: dict[str, PendingGitHubVerification] = {}

    def issue(self, user_id: str, profile_url: str) -> str:
        self._evict_expired()
        state = secrets.token_urlsafe(32)
        self._pending[state] = PendingGitHubVerification(user_id=user_id, profile_url=profile_url)
        return state

    def consume(self, state: str) -> PendingGitHubVerification | None:
        pending = self._pending.pop(state, None)
        if pending is None or utcnow() - pending.created_at > self.ttl:
            return None
        return pending

    def _evict_expired(self) -> None:
        now = utcnow()
        expired = [s for s, p in self._pending.items() if now - p.created_at > self.ttl]
        for state in expired:
            del self._pending[state]

    def __len__(self) -> int:
        return len(self._pending)


@lru_cache
def get_engine_config() -> TeamUpConfig:
    return load_config(settings.TEAMUP_CONFIG_PATH)


@lru_cache
def get_certificate_analyzer() -> CertificateAnalyzer:
    """Certificate analyzer backed by the configured OCR service, if any."""
    config = get_engine_config()
    if settings.OCR_SERVICE_URL:
        ocr_client = HttpOcrClient(settings.OCR_SERVICE_URL, settings.OCR_TIMEOUT_SECONDS)
    else:
        logger.info("No OCR service configured, image certificates yield no text")
        ocr_client = NoopOcrClient()
    return CertificateAnalyzer(
        ocr_client=ocr_client,
        min_skill_length=config.verification.certificate_min_skill_length,
    )


@lru_cache
def get_verification_manager() -> VerificationRecordManager:
    """Process-wide verification manager."""
    config = get_engine_config()
    return VerificationRecordManager(
        InMemoryVerificationRecordRepository(),
        config=config.verification,
        github_config=config.github,
        certificate_analyzer=get_certificate_analyzer(),
    )


@lru_cache
def get_oauth_state_store() -> OAuthStateStore:
    return OAuthStateStore(ttl_seconds=settings.OAUTH_STATE_TTL_SECONDS)


def get_github_oauth() -> GitHubOAuth:
    return GitHubOAuth()
