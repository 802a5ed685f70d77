"""Score updates, weighted proficiency and time decay for skill progress."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING

from loguru import logger

from .models import (
    ProgressSnapshot,
    Score,
    Scored,
    SkillColor,
    SkillProgress,
    SkillTier,
    clamp_score,
)

if TYPE_CHECKING:
    from .skills import SkillGraph

NEUTRAL_SEED = 50.0     # base score for a first attempt
CORRECT_DELTA = 15.0
HINT_DELTA = 5.0        # correct, but a hint was used
WRONG_DELTA = -20.0
DECAY_PER_WEEK = -2.0

YELLOW_THRESHOLD = 40.0
GREEN_THRESHOLD = 70.0
INTERVIEW_PREP_THRESHOLD = 70.0

TIER_WEIGHTS: dict[SkillTier, float] = {
    "foundational": 1.0,
    "intermediate": 1.5,
    "advanced": 2.0,
    "interview": 2.5,
}

WEEK = timedelta(days=7)


def _normalize_datetime(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def score_delta(was_correct: bool, used_hint: bool) -> float:
    if not was_correct:
        return WRONG_DELTA
    return HINT_DELTA if used_hint else CORRECT_DELTA


def update_skill_score(current: Score, was_correct: bool, used_hint: bool) -> Scored:
    """New score after one answer: clamp(0, 100, base + delta).

    ``base`` is the current score, or NEUTRAL_SEED for a first attempt.
    """
    base = current.value if isinstance(current, Scored) else NEUTRAL_SEED
    return Scored(base + score_delta(was_correct, used_hint))


def apply_answer(
    progress: SkillProgress,
    was_correct: bool,
    used_hint: bool,
    now: datetime,
) -> float:
    """Mutate ``progress`` for one answer event and return the score delta."""
    old = progress.score.value if isinstance(progress.score, Scored) else NEUTRAL_SEED
    new_score = update_skill_score(progress.score, was_correct, used_hint)
    progress.score = new_score
    progress.attempts += 1
    progress.last_practiced_at = _normalize_datetime(now)
    progress.decay_weeks_applied = 0
    return new_score.value - old


def calculate_proficiency(graph: SkillGraph, snapshot: ProgressSnapshot) -> float:
    """Tier-weighted mean score over attempted skills; 0 when nothing is attempted."""
    weighted_sum = 0.0
    total_weight = 0.0
    for skill in graph:
        progress = snapshot.get(skill.id)
        if progress is None or not isinstance(progress.score, Scored):
            continue
        weight = TIER_WEIGHTS[skill.tier]
        weighted_sum += progress.score.value * weight
        total_weight += weight

    if total_weight == 0:
        return 0.0
    return weighted_sum / total_weight


def weeks_elapsed(last_practiced_at: datetime, now: datetime) -> int:
    elapsed = _normalize_datetime(now) - _normalize_datetime(last_practiced_at)
    if elapsed <= timedelta(0):
        return 0
    return elapsed // WEEK


def apply_decay(
    snapshot: ProgressSnapshot,
    now: datetime,
    *,
    decay_per_week: float = DECAY_PER_WEEK,
) -> dict[str, float]:
    """Charge unpractised weeks against scored skills, in place.

    Weeks are counted from the stored ``last_practiced_at``; weeks already
    charged are tracked in ``decay_weeks_applied`` so a repeated call with
    the same ``now`` changes nothing. Attempts and practice timestamps are
    left alone. Returns the score change per decayed skill.
    """
    changes: dict[str, float] = {}
    for skill_id, progress in snapshot.items():
        if not isinstance(progress.score, Scored) or progress.last_practiced_at is None:
            continue
        weeks = weeks_elapsed(progress.last_practiced_at, now)
        pending = weeks - progress.decay_weeks_applied
        if pending <= 0:
            continue
        old = progress.score.value
        progress.score = Scored(old + pending * decay_per_week)
        progress.decay_weeks_applied = weeks
        if progress.score.value != old:
            changes[skill_id] = progress.score.value - old

    if changes:
        logger.debug("Decay applied to {} skill(s): {}", len(changes), changes)
    return changes


def skill_color(score: Score) -> SkillColor:
    """Mastery band: gray (unattempted), red (<40), yellow (40-69), green (70+)."""
    if not isinstance(score, Scored):
        return "gray"
    if score.value < YELLOW_THRESHOLD:
        return "red"
    if score.value < GREEN_THRESHOLD:
        return "yellow"
    return "green"


def is_interview_prep_unlocked(proficiency: float) -> bool:
    return proficiency >= INTERVIEW_PREP_THRESHOLD


def skills_needing_attention(
    graph: SkillGraph,
    snapshot: ProgressSnapshot,
    limit: int = 5,
) -> list[str]:
    """Attempted skills below green, weakest first."""
    scored: list[tuple[float, int, str]] = []
    for index, skill in enumerate(graph):
        progress = snapshot.get(skill.id)
        if progress is None or not isinstance(progress.score, Scored):
            continue
        if progress.score.value < GREEN_THRESHOLD:
            scored.append((progress.score.value, index, skill.id))
    scored.sort()
    return [skill_id for _, _, skill_id in scored[:limit]]


def unlocked_unattempted_skills(graph: SkillGraph, snapshot: ProgressSnapshot) -> list[str]:
    """Unattempted skills whose prerequisites are all at yellow or better."""
    unlocked: list[str] = []
    for skill in graph:
        progress = snapshot.get(skill.id)
        if progress is not None and progress.is_attempted:
            continue
        if graph.prerequisites_met(skill.id, snapshot):
            unlocked.append(skill.id)
    return unlocked


__all__ = [
    "apply_answer",
    "apply_decay",
    "calculate_proficiency",
    "clamp_score",
    "CORRECT_DELTA",
    "DECAY_PER_WEEK",
    "GREEN_THRESHOLD",
    "HINT_DELTA",
    "INTERVIEW_PREP_THRESHOLD",
    "is_interview_prep_unlocked",
    "NEUTRAL_SEED",
    "score_delta",
    "skill_color",
    "skills_needing_attention",
    "TIER_WEIGHTS",
    "unlocked_unattempted_skills",
    "update_skill_score",
    "weeks_elapsed",
    "WRONG_DELTA",
    "YELLOW_THRESHOLD",
]
