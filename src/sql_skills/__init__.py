"""SQL skill progress tracking: skill graph, scoring, decay, badges and sessions."""

from .badges import BADGES, check_new_badges
from .models import (
    UNATTEMPTED,
    Badge,
    ProgressSnapshot,
    Scored,
    SessionSummary,
    Skill,
    SkillProgress,
    Unattempted,
)
from .scoring import apply_decay, calculate_proficiency, update_skill_score
from .session import generate_session_summary
from .skills import SkillGraph, SkillGraphError, load_skill_graph
from .storage import JsonFileStore, MemoryStore, SqliteStore
from .tracker import SkillTracker

__all__ = [
    "apply_decay",
    "Badge",
    "BADGES",
    "calculate_proficiency",
    "check_new_badges",
    "generate_session_summary",
    "JsonFileStore",
    "load_skill_graph",
    "MemoryStore",
    "ProgressSnapshot",
    "Scored",
    "SessionSummary",
    "Skill",
    "SkillGraph",
    "SkillGraphError",
    "SkillProgress",
    "SkillTracker",
    "SqliteStore",
    "UNATTEMPTED",
    "Unattempted",
    "update_skill_score",
]
