"""Skill metric calculators.

Four independent sub-scores, each an integer in [0, 25], computed from an
:class:`EvidenceSnapshot`. Their sum is the overall score in [0, 100].
"""

from datetime import datetime

from teamup_core.evidence import EvidenceSnapshot, days_between, round_half_up
from teamup_core.models import SkillMetrics, utcnow

MAX_COMPONENT = 25

# Activity: (cap, weight) for each ratio
ACTIVITY_REPOS = (20, 8)
ACTIVITY_COMMITS = (500, 10)
ACTIVITY_STARS = (50, 7)

# Consistency
CONSISTENCY_WINDOW_DAYS = 365
CONSISTENCY_MONTH_CAP = 12
CONSISTENCY_MONTH_WEIGHT = 15
SUSTAINED_MONTHS = 6
SUSTAINED_BONUS = 5

# Recency: (max days since last push, score), checked in order
RECENCY_STEPS = (
    (7, 25),
    (30, 22),
    (90, 18),
    (180, 12),
    (365, 6),
)
RECENCY_FLOOR = 2

# Diversity: (cap, weight)
DIVERSITY_LANGUAGES = (5, 15)
DIVERSITY_TOPICS = (8, 10)

SCORE_LABELS = (
    (90, "Exceptional"),
    (80, "Excellent"),
    (70, "Very Good"),
    (60, "Good"),
    (50, "Moderate"),
    (40, "Fair"),
)


def _clamp(value: int) -> int:
    return max(0, min(MAX_COMPONENT, value))


def _ratio(value: float, cap_weight: tuple[int, int]) -> float:
    cap, weight = cap_weight
    return min(value / cap, 1.0) * weight


def calculate_activity(snapshot: EvidenceSnapshot) -> int:
    """Repository count, estimated commits and stars, rounded once."""
    score = (
        _ratio(snapshot.repo_count, ACTIVITY_REPOS)
        + _ratio(snapshot.total_commits_estimate, ACTIVITY_COMMITS)
        + _ratio(snapshot.total_stars, ACTIVITY_STARS)
    )
    return _clamp(round_half_up(score))


def calculate_consistency(snapshot: EvidenceSnapshot, now: datetime | None = None) -> int:
    """Distinct active months over the trailing year plus bonuses."""
    now = now or utcnow()
    recent = [
        ts for ts in snapshot.push_timestamps
        if days_between(ts, now) <= CONSISTENCY_WINDOW_DAYS
    ]
    if not recent:
        return 0

    months = {(ts.year, ts.month) for ts in recent}
    month_score = min(len(months) / CONSISTENCY_MONTH_CAP, 1.0) * CONSISTENCY_MONTH_WEIGHT
    sustained_bonus = SUSTAINED_BONUS if len(months) >= SUSTAINED_MONTHS else 0

    days_since_last = days_between(max(recent), now)
    if days_since_last <= 30:
        recency_bonus = 5
    elif days_since_last <= 90:
        recency_bonus = 2
    else:
        recency_bonus = 0

    return _clamp(round_half_up(month_score + sustained_bonus + recency_bonus))


def recency_for_days(days_since_last_push: float) -> int:
    """Step function over days since the last push."""
    for max_days, score in RECENCY_STEPS:
        if days_since_last_push <= max_days:
            return score
    return RECENCY_FLOOR


def calculate_recency(snapshot: EvidenceSnapshot, now: datetime | None = None) -> int:
    if snapshot.last_push_timestamp is None:
        return 0
    now = now or utcnow()
    return _clamp(recency_for_days(days_between(snapshot.last_push_timestamp, now)))


def calculate_diversity(snapshot: EvidenceSnapshot) -> int:
    score = _ratio(len(snapshot.languages), DIVERSITY_LANGUAGES) + _ratio(
        len({t.lower() for t in snapshot.topics}), DIVERSITY_TOPICS
    )
    return _clamp(round_half_up(score))


def calculate_metrics(snapshot: EvidenceSnapshot, now: datetime | None = None) -> SkillMetrics:
    """Compute all four sub-scores against a single reference time."""
    now = now or utcnow()
    return SkillMetrics(
        activity=calculate_activity(snapshot),
        consistency=calculate_consistency(snapshot, now),
        recency=calculate_recency(snapshot, now),
        diversity=calculate_diversity(snapshot),
    )


def score_label(score: int) -> str:
    """Human label for an overall score."""
    for threshold, label in SCORE_LABELS:
        if score >= threshold:
            return label
    return "Developing"
