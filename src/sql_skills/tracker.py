"""Skill progress tracker: the single owner of one learner's snapshot.

Order of operations is fixed: decay on load, then per-event score updates,
then proficiency and badges recomputed from the mutated snapshot. Every
mutation is followed by a full save; a failed save is logged and the
in-memory state is kept.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Callable, Iterable, Sequence

from loguru import logger

from .badges import BADGES, check_new_badges
from .models import Badge, ProgressSnapshot, SessionStats, SessionSummary, copy_snapshot
from .scoring import (
    DECAY_PER_WEEK,
    apply_answer,
    apply_decay,
    calculate_proficiency,
    is_interview_prep_unlocked,
    skills_needing_attention,
    unlocked_unattempted_skills,
)
from .session import generate_session_summary
from .skills import SkillGraph
from .storage import (
    ProgressStore,
    RecordError,
    StorageError,
    create_initial_snapshot,
    snapshot_from_record,
    snapshot_to_record,
)

Clock = Callable[[], datetime]
ChangeListener = Callable[["SkillTracker"], None]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SkillTracker:
    """Records answers against a SkillGraph and keeps progress, badges and sessions.

    ``store`` is optional; without one the tracker runs in memory only.
    ``on_change`` is called after every mutation, once the save was attempted.
    Call ``init()`` first; an answer or session start on a tracker that has
    not loaded yet runs ``init()`` itself so the stored record is not overwritten.
    """

    def __init__(
        self,
        graph: SkillGraph,
        store: ProgressStore | None = None,
        *,
        badges: Sequence[Badge] = BADGES,
        decay_per_week: float = DECAY_PER_WEEK,
        clock: Clock | None = None,
        on_change: ChangeListener | None = None,
    ) -> None:
        self.graph = graph
        self.store = store
        self.badge_catalog = tuple(badges)
        self.decay_per_week = decay_per_week
        self._clock = clock or _utcnow
        self._on_change = on_change

        self._progress: ProgressSnapshot = create_initial_snapshot(graph)
        self._badges: list[str] = []
        self._last_session_at: datetime | None = None

        self._session: SessionStats | None = None
        self._baseline: ProgressSnapshot | None = None
        self._baseline_badges: list[str] = []
        self._loaded = False

    # ── Lifecycle ────────────────────────────────────────────────────────

    def init(self) -> None:
        """Load the persisted record, apply decay once, and save the result.

        A missing, unreadable or malformed record leaves a fresh snapshot.
        """
        self._loaded = True
        record = self._load_record()
        if record is not None:
            try:
                progress, badges, last_session_at = snapshot_from_record(record, self.graph)
            except RecordError as exc:
                logger.warning("Ignoring malformed progress record: {}", exc)
            else:
                self._progress = progress
                self._badges = badges
                self._last_session_at = last_session_at

        apply_decay(self._progress, self._clock(), decay_per_week=self.decay_per_week)
        self._changed()

    def _ensure_loaded(self) -> None:
        if not self._loaded:
            self.init()

    def _load_record(self) -> dict[str, Any] | None:
        if self.store is None:
            return None
        try:
            return self.store.load()
        except StorageError as exc:
            logger.warning("Progress load failed, starting fresh: {}", exc)
            return None

    def _persist(self) -> None:
        if self.store is None:
            return
        record = snapshot_to_record(
            self._progress, self._badges, self._last_session_at, saved_at=self._clock()
        )
        try:
            self.store.save(record)
        except StorageError as exc:
            logger.warning("Progress save failed, keeping in-memory state: {}", exc)

    def _changed(self) -> None:
        self._persist()
        if self._on_change is not None:
            self._on_change(self)

    # ── Answers ──────────────────────────────────────────────────────────

    def record_answer(
        self,
        skill_ids: Iterable[str],
        was_correct: bool,
        used_hint: bool = False,
    ) -> dict[str, float]:
        """Apply one answer event to each named skill and return per-skill deltas.

        Unknown skill ids are skipped; the rest of the event still applies.
        Repeated ids in one event count once. An event naming no known skill
        changes nothing and is not counted towards the session.
        """
        self._ensure_loaded()
        now = self._clock()
        deltas: dict[str, float] = {}
        for skill_id in dict.fromkeys(skill_ids):
            progress = self._progress.get(skill_id)
            if progress is None:
                logger.warning("Ignoring answer for unknown skill '{}'", skill_id)
                continue
            deltas[skill_id] = apply_answer(progress, was_correct, used_hint, now)

        if not deltas:
            return deltas

        if self._session is not None:
            self._session.questions_answered += 1
            if was_correct:
                self._session.correct_count += 1
            for skill_id, delta in deltas.items():
                self._session.skill_deltas[skill_id] = (
                    self._session.skill_deltas.get(skill_id, 0.0) + delta
                )

        self._award_badges()
        self._changed()
        return deltas

    def _award_badges(self) -> list[str]:
        earned = check_new_badges(self.proficiency, self._badges, self.badge_catalog)
        if earned:
            self._badges.extend(earned)
            logger.info("Badges earned: {}", ", ".join(earned))
        return earned

    # ── Sessions ─────────────────────────────────────────────────────────

    @property
    def session_active(self) -> bool:
        return self._session is not None

    @property
    def session_stats(self) -> SessionStats | None:
        return self._session

    def start_session(self) -> bool:
        """Begin a session and capture the baseline snapshot.

        A session that is already active is kept as is and False is returned.
        """
        self._ensure_loaded()
        if self._session is not None:
            logger.warning(
                "Session already active since {}; start ignored",
                self._session.started_at.isoformat(),
            )
            return False
        self._session = SessionStats(started_at=self._clock())
        self._baseline = copy_snapshot(self._progress)
        self._baseline_badges = list(self._badges)
        return True

    def end_session(self) -> SessionSummary | None:
        """Close the active session and summarise it; None if no session is active."""
        if self._session is None or self._baseline is None:
            return None

        summary = generate_session_summary(
            self.graph,
            self._baseline,
            self._progress,
            self._session.questions_answered,
            self._session.correct_count,
            self._baseline_badges,
            badges=self.badge_catalog,
        )
        self._last_session_at = self._clock()
        self._session = None
        self._baseline = None
        self._baseline_badges = []
        self._changed()
        return summary

    # ── Reset ────────────────────────────────────────────────────────────

    def reset_progress(self) -> None:
        """Every skill back to unattempted, badges cleared, any session discarded."""
        self._loaded = True
        self._progress = create_initial_snapshot(self.graph)
        self._badges = []
        self._last_session_at = None
        self._session = None
        self._baseline = None
        self._baseline_badges = []
        logger.info("Skill progress reset")
        self._changed()

    # ── Reads ────────────────────────────────────────────────────────────

    def get_snapshot(self) -> ProgressSnapshot:
        """Independent copy of the current snapshot."""
        return copy_snapshot(self._progress)

    @property
    def proficiency(self) -> float:
        return calculate_proficiency(self.graph, self._progress)

    def get_proficiency(self) -> float:
        return self.proficiency

    @property
    def badges(self) -> list[str]:
        return list(self._badges)

    @property
    def last_session_at(self) -> datetime | None:
        return self._last_session_at

    @property
    def interview_prep_unlocked(self) -> bool:
        return is_interview_prep_unlocked(self.proficiency)

    def skills_needing_attention(self, limit: int = 5) -> list[str]:
        return skills_needing_attention(self.graph, self._progress, limit)

    def unlocked_skills(self) -> list[str]:
        return unlocked_unattempted_skills(self.graph, self._progress)

    def prerequisites_met(self, skill_id: str) -> bool:
        return self.graph.prerequisites_met(skill_id, self._progress)


__all__ = [
    "ChangeListener",
    "Clock",
    "SkillTracker",
]
