"""Verification record manager.

Runs an evidence path, reconciles inferred skills against the user's
declared skills, and owns the record lifecycle (verified -> invalidated).

At most one record per user is ``verified`` at a time. This is enforced
here by invalidating prior records before inserting a new one, a
read-then-write sequence without a transaction: concurrent attempts for the
same user can transiently leave two verified records, so callers must not
run them in parallel.
"""

import asyncio
from datetime import datetime
from typing import Any, Callable, Sequence

import structlog

from teamup_core.certificates import CertificateAnalyzer
from teamup_core.config import GitHubConfig, VerificationConfig
from teamup_core.errors import IdentityMismatch, NoEvidence, SecurityContextChanged
from teamup_core.events import (
    EventBus,
    ReverificationRequiredEvent,
    VerificationRecordChangedEvent,
    get_event_bus,
)
from teamup_core.evidence import CertificateEvidenceSource, EvidenceSource, GitHubEvidenceSource
from teamup_core.metrics import calculate_metrics
from teamup_core.models import (
    CertificateSource,
    DeclaredSkill,
    GitHubSource,
    InvalidationReason,
    VerificationRecord,
    VerificationStats,
    VerificationStatus,
    skill_names,
    utcnow,
)
from teamup_core.repositories import VerificationRecordRepository
from teamup_core.skills import infer_skills, match_verified_skills, skills_drifted
from teamup_core.vcs.github import (
    GitHubEvidenceClient,
    calculate_language_usage,
    validate_github_url,
)

logger = structlog.get_logger()

SessionCheck = Callable[[], str | None]
GitHubClientFactory = Callable[[str | None], GitHubEvidenceClient]

_CLOSED = object()


class ActiveRecordSubscription:
    """Stream of a user's latest active record (or ``None``).

    The current value is delivered first, then a fresh value after every
    change to one of the user's records. Delivery is at-least-once: a
    consumer may see the same record more than once. Only the newest
    unread value is kept, so a slow reader skips stale ones.

    Usage:
        subscription = await manager.subscribe("user-1")
        async for record in subscription:
            render(record)
        ...
        subscription.cancel()
    """

    def __init__(
        self,
        repository: VerificationRecordRepository,
        event_bus: EventBus,
        user_id: str,
    ) -> None:
        self.user_id = user_id
        self._repository = repository
        self._queue: asyncio.Queue[Any] = asyncio.Queue(maxsize=1)
        self._closed = False
        self._unsubscribe = event_bus.subscribe(
            VerificationRecordChangedEvent,
            self._on_change,
            filter_fn=lambda e: e.user_id == user_id,
        )

    async def start(self) -> "ActiveRecordSubscription":
        await self._push_latest()
        return self

    def _offer(self, item: Any) -> None:
        if self._queue.full():
            self._queue.get_nowait()
        self._queue.put_nowait(item)

    async def _push_latest(self) -> None:
        if self._closed:
            return
        latest = await self._repository.latest(self.user_id)
        if not self._closed:
            self._offer(latest)

    async def _on_change(self, event: VerificationRecordChangedEvent) -> None:
        await self._push_latest()

    @property
    def closed(self) -> bool:
        return self._closed

    def cancel(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._unsubscribe()
        # Wake a waiting reader; a pending value is still delivered first
        if self._queue.empty():
            self._queue.put_nowait(_CLOSED)

    def __aiter__(self) -> "ActiveRecordSubscription":
        return self

    async def __anext__(self) -> VerificationRecord | None:
        if self._closed and self._queue.empty():
            raise StopAsyncIteration
        item = await self._queue.get()
        if item is _CLOSED:
            raise StopAsyncIteration
        return item


class VerificationRecordManager:
    """Creates, reads and invalidates skill verification records.

    Identity is always passed in explicitly; the manager never reads an
    ambient "current user".
    """

    def __init__(
        self,
        repository: VerificationRecordRepository,
        *,
        config: VerificationConfig | None = None,
        github_config: GitHubConfig | None = None,
        github_client_factory: GitHubClientFactory | None = None,
        certificate_analyzer: CertificateAnalyzer | None = None,
        event_bus: EventBus | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.repository = repository
        self.config = config or VerificationConfig()
        self.github_config = github_config or GitHubConfig()
        self._github_client_factory = github_client_factory or (
            lambda token: GitHubEvidenceClient(self.github_config, access_token=token)
        )
        self.certificate_analyzer = certificate_analyzer or CertificateAnalyzer(
            min_skill_length=self.config.certificate_min_skill_length
        )
        self.event_bus = event_bus or getattr(repository, "event_bus", None) or get_event_bus()
        self._clock = clock

    # ------------------------------------------------------------------
    # Verification
    # ------------------------------------------------------------------

    async def verify(
        self,
        user_id: str,
        evidence: EvidenceSource | Sequence[EvidenceSource],
        declared_skills: Sequence[DeclaredSkill | str],
        *,
        session_check: SessionCheck | None = None,
    ) -> VerificationRecord:
        """Run the evidence path(s) and persist a new verified record.

        Args:
            user_id: TeamUp user the record belongs to
            evidence: One evidence source, or several to combine
            declared_skills: The user's declared skills at this moment
            session_check: Returns the currently authenticated user id;
                consulted right before anything is written

        Raises:
            SecurityContextChanged: the session no longer belongs to user_id
            IdentityMismatch: OAuth account differs from the claimed profile
            UserNotFound / FetchFailed: evidence could not be collected
            NoEvidence: no usable signal and persisting empty records is off
        """
        sources = list(evidence) if isinstance(evidence, (list, tuple)) else [evidence]
        if not sources:
            raise ValueError("at least one evidence source is required")

        declared = skill_names(list(declared_skills))
        now = self._clock()
        record = VerificationRecord(user_id=user_id, profile_skills_at_verification=declared)

        inferred: list[str] = []
        has_signal = False
        for source in sources:
            if isinstance(source, GitHubEvidenceSource):
                source_inferred, source_signal = await self._apply_github(record, source, now)
            elif isinstance(source, CertificateEvidenceSource):
                source_inferred, source_signal = await self._apply_certificates(
                    record, source, declared, now
                )
            else:
                raise TypeError(f"unsupported evidence source: {type(source).__name__}")
            inferred.extend(source_inferred)
            has_signal = has_signal or source_signal

        record.verified_skills = match_verified_skills(declared, inferred)

        if not has_signal:
            if not self.config.persist_without_evidence:
                raise NoEvidence("No usable evidence was found for any declared skill")
            logger.warning(
                "Persisting verification without evidence",
                user_id=user_id,
                sources=[s.kind for s in sources],
            )

        self._check_session(user_id, session_check)

        await self.invalidate(user_id, InvalidationReason.SUPERSEDED)
        record.mark_verified(now)
        await self.repository.create(record)

        logger.info(
            "Skill verification recorded",
            user_id=user_id,
            record_id=record.id,
            sources=[k.value for k in record.sources.kinds],
            verified_skills=len(record.verified_skills),
            overall_score=record.overall_score,
        )
        return record

    async def _apply_github(
        self,
        record: VerificationRecord,
        source: GitHubEvidenceSource,
        now: datetime,
    ) -> tuple[list[str], bool]:
        identity = source.identity
        if identity.locked_user_id != record.user_id:
            logger.warning(
                "Verification user changed during OAuth",
                user_id=record.user_id,
                locked_user_id=identity.locked_user_id,
            )
            raise SecurityContextChanged()

        claimed = validate_github_url(source.claimed_profile_url)
        if identity.username.lower() != claimed.lower():
            logger.warning(
                "GitHub identity mismatch",
                user_id=record.user_id,
                claimed=claimed,
                authenticated=identity.username,
            )
            raise IdentityMismatch(claimed=claimed, authenticated=identity.username)

        async with self._github_client_factory(identity.access_token) as client:
            evidence = await client.fetch_evidence_with_timeout(
                identity.username, self.config.operation_timeout_seconds
            )

        snapshot = evidence.snapshot(now)
        metrics = calculate_metrics(snapshot, now)
        inferred = infer_skills(snapshot.languages, snapshot.topics)

        record.sources.github = GitHubSource(
            username=evidence.profile.login,
            profile_url=evidence.profile.html_url,
            oauth_verified=True,
            inferred_skills=inferred,
            analyzed_at=now,
            repo_count=snapshot.repo_count,
            languages=sorted(snapshot.languages),
            total_commits=snapshot.total_commits_estimate,
            last_commit_date=snapshot.last_push_timestamp,
        )
        record.metrics = metrics
        record.overall_score = metrics.overall
        if evidence.language_bytes:
            record.stats = VerificationStats(
                language_usage=calculate_language_usage(evidence.language_bytes)
            )

        return inferred, not snapshot.is_empty

    async def _apply_certificates(
        self,
        record: VerificationRecord,
        source: CertificateEvidenceSource,
        declared: list[str],
        now: datetime,
    ) -> tuple[list[str], bool]:
        entries: list[CertificateSource] = []
        inferred: list[str] = []
        has_signal = False

        for upload in source.certificates:
            evidence = await self.certificate_analyzer.read(upload)
            analysis = self.certificate_analyzer.analyze_evidence(
                evidence, source.profile_name, declared
            )
            entries.append(
                CertificateSource(
                    file_name=upload.file_name,
                    extracted_name=analysis.extracted_name,
                    name_match=analysis.name_match,
                    course_topics=analysis.course_topics,
                    inferred_skills=analysis.inferred_skills,
                    verified_at=now,
                )
            )
            # Certificates issued to someone else contribute nothing
            if analysis.name_match:
                has_signal = True
                inferred.extend(analysis.inferred_skills)

        record.sources.certificates = entries
        return inferred, has_signal

    @staticmethod
    def _check_session(user_id: str, session_check: SessionCheck | None) -> None:
        if session_check is None:
            return
        current = session_check()
        if current != user_id:
            logger.warning("Session changed before saving verification", user_id=user_id)
            raise SecurityContextChanged(
                "Security error: User session changed. Please try again."
            )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def invalidate(self, user_id: str, reason: InvalidationReason | str) -> None:
        """Invalidate every active record of the user. No-op if none."""
        reason = InvalidationReason(reason)
        active = await self.repository.find(user_id, VerificationStatus.VERIFIED)
        if not active:
            return

        now = self._clock()
        for record in active:
            record.invalidate(reason, now)
            await self.repository.update(record)

        logger.info(
            "Skill verification invalidated",
            user_id=user_id,
            reason=reason.value,
            count=len(active),
        )

    async def get_active(self, user_id: str) -> VerificationRecord | None:
        """The user's current verified record, if any."""
        return await self.repository.latest(user_id, VerificationStatus.VERIFIED)

    async def has_valid_verification(self, user_id: str) -> bool:
        return await self.get_active(user_id) is not None

    async def verification_count(self, user_id: str) -> int:
        return await self.repository.count(user_id)

    @staticmethod
    def skills_drifted(
        current_skills: Sequence[DeclaredSkill | str],
        record: VerificationRecord,
    ) -> bool:
        """Whether the declared skills differ from the record's snapshot."""
        return skills_drifted(
            skill_names(list(current_skills)), record.profile_skills_at_verification
        )

    async def apply_profile_edit(
        self,
        user_id: str,
        new_skills: Sequence[DeclaredSkill | str],
    ) -> bool:
        """Check a pending profile edit against the active verification.

        Must be called before the edit is persisted. If the declared skill
        set changes, the active record is invalidated and the user is told
        to re-verify.

        Returns:
            True if re-verification is now required
        """
        active = await self.get_active(user_id)
        if active is None or not self.skills_drifted(new_skills, active):
            return False

        await self.invalidate(user_id, InvalidationReason.PROFILE_EDITED)
        await self.event_bus.publish(
            ReverificationRequiredEvent(user_id=user_id, record_id=active.id)
        )
        return True

    async def subscribe(self, user_id: str) -> ActiveRecordSubscription:
        """Live stream of the user's active record."""
        subscription = ActiveRecordSubscription(self.repository, self.event_bus, user_id)
        return await subscription.start()
