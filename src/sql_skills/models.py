from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Literal, Union, cast

SkillTier = Literal["foundational", "intermediate", "advanced", "interview"]
SkillColor = Literal["gray", "red", "yellow", "green"]

SKILL_TIERS: tuple[SkillTier, ...] = ("foundational", "intermediate", "advanced", "interview")

SCORE_MIN = 0.0
SCORE_MAX = 100.0


def clamp_score(value: float) -> float:
    """Clamp a raw score into the 0-100 range."""

    return max(SCORE_MIN, min(SCORE_MAX, float(value)))


@dataclass(frozen=True, slots=True)
class Unattempted:
    """Score of a skill that has never been answered."""

    def __repr__(self) -> str:
        return "UNATTEMPTED"


UNATTEMPTED = Unattempted()


@dataclass(frozen=True, slots=True)
class Scored:
    value: float

    def __post_init__(self) -> None:
        object.__setattr__(self, "value", clamp_score(self.value))


Score = Union[Unattempted, Scored]


@dataclass(frozen=True, slots=True)
class Skill:
    id: str
    name: str
    tier: SkillTier
    prerequisites: frozenset[str] = field(default_factory=frozenset)
    description: str = ""


@dataclass(slots=True)
class SkillProgress:
    skill_id: str
    score: Score = UNATTEMPTED
    attempts: int = 0
    last_practiced_at: datetime | None = None
    # whole weeks since last_practiced_at already charged by decay
    decay_weeks_applied: int = 0

    @property
    def is_attempted(self) -> bool:
        return isinstance(self.score, Scored)

    @property
    def score_value(self) -> float | None:
        """Numeric score, or None when unattempted."""

        if isinstance(self.score, Scored):
            return self.score.value
        return None


ProgressSnapshot = dict[str, SkillProgress]


@dataclass(frozen=True, slots=True)
class Badge:
    id: str
    name: str
    description: str
    threshold: float


@dataclass(slots=True)
class SessionSummary:
    questions_attempted: int
    correct_count: int
    skills_improved: list[str] = field(default_factory=list)
    skills_declined: list[str] = field(default_factory=list)
    proficiency_delta: float = 0.0
    new_badges_earned: list[str] = field(default_factory=list)
    interview_prep_unlocked: bool = False
    suggested_next_focus: str = ""


@dataclass(slots=True)
class SessionStats:
    started_at: datetime
    questions_answered: int = 0
    correct_count: int = 0
    skill_deltas: dict[str, float] = field(default_factory=dict)


def ensure_tier(value: str) -> SkillTier:
    """Normalise and validate a skill tier string."""

    normalized = value.strip().lower()
    if normalized not in SKILL_TIERS:
        raise ValueError(f"Unsupported skill tier: {value}")
    return cast(SkillTier, normalized)


def initial_progress(skill_id: str) -> SkillProgress:
    return SkillProgress(skill_id=skill_id)


def copy_snapshot(snapshot: ProgressSnapshot) -> ProgressSnapshot:
    """Shallow-copy each entry so the copy can be mutated independently."""

    return {
        skill_id: SkillProgress(
            skill_id=progress.skill_id,
            score=progress.score,
            attempts=progress.attempts,
            last_practiced_at=progress.last_practiced_at,
            decay_weeks_applied=progress.decay_weeks_applied,
        )
        for skill_id, progress in snapshot.items()
    }


__all__ = [
    "Badge",
    "clamp_score",
    "copy_snapshot",
    "ensure_tier",
    "initial_progress",
    "ProgressSnapshot",
    "Score",
    "Scored",
    "SessionStats",
    "SessionSummary",
    "Skill",
    "SkillColor",
    "SkillProgress",
    "SkillTier",
    "SKILL_TIERS",
    "SCORE_MAX",
    "SCORE_MIN",
    "UNATTEMPTED",
    "Unattempted",
]
