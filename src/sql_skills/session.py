"""End-of-session summaries derived from before/after progress snapshots."""

from __future__ import annotations

from typing import Iterable, Sequence

from .badges import BADGES, check_new_badges
from .models import Badge, ProgressSnapshot, Scored, SessionSummary
from .scoring import NEUTRAL_SEED, calculate_proficiency, is_interview_prep_unlocked
from .skills import SkillGraph


def _comparable_score(snapshot: ProgressSnapshot, skill_id: str) -> float | None:
    progress = snapshot.get(skill_id)
    if progress is None or not isinstance(progress.score, Scored):
        return None
    return progress.score.value


def score_changes(
    graph: SkillGraph,
    before: ProgressSnapshot,
    after: ProgressSnapshot,
) -> dict[str, float]:
    """Per-skill score change between two snapshots, catalog order.

    A skill that went from unattempted to scored is measured against the
    neutral seed, the same baseline a first answer is scored from.
    """
    changes: dict[str, float] = {}
    for skill_id in graph.ids():
        new = _comparable_score(after, skill_id)
        if new is None:
            continue
        old = _comparable_score(before, skill_id)
        delta = new - (NEUTRAL_SEED if old is None else old)
        if delta:
            changes[skill_id] = delta
    return changes


def suggest_focus(
    graph: SkillGraph,
    skills_declined: Sequence[str],
    skills_improved: Sequence[str],
) -> str:
    if skills_declined:
        skill = graph.get(skills_declined[0])
        name = skill.name if skill else skills_declined[0]
        return f"Focus on {name} to strengthen your understanding"
    if skills_improved:
        skill = graph.get(skills_improved[0])
        name = skill.name if skill else skills_improved[0]
        return f"Great progress on {name}! Keep practicing"
    return "Keep practicing to improve your SQL skills"


def generate_session_summary(
    graph: SkillGraph,
    before: ProgressSnapshot,
    after: ProgressSnapshot,
    questions_attempted: int,
    correct_count: int,
    before_badges: Iterable[str] = (),
    *,
    badges: Sequence[Badge] = BADGES,
) -> SessionSummary:
    """Diff two snapshots into a SessionSummary. Holds no state of its own."""
    changes = score_changes(graph, before, after)
    skills_improved = [skill_id for skill_id, delta in changes.items() if delta > 0]
    skills_declined = [skill_id for skill_id, delta in changes.items() if delta < 0]

    before_proficiency = calculate_proficiency(graph, before)
    after_proficiency = calculate_proficiency(graph, after)

    return SessionSummary(
        questions_attempted=questions_attempted,
        correct_count=correct_count,
        skills_improved=skills_improved,
        skills_declined=skills_declined,
        proficiency_delta=after_proficiency - before_proficiency,
        new_badges_earned=check_new_badges(after_proficiency, before_badges, badges),
        interview_prep_unlocked=(
            not is_interview_prep_unlocked(before_proficiency)
            and is_interview_prep_unlocked(after_proficiency)
        ),
        suggested_next_focus=suggest_focus(graph, skills_declined, skills_improved),
    )


__all__ = [
    "generate_session_summary",
    "score_changes",
    "suggest_focus",
]
