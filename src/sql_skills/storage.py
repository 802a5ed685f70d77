"""Persistence for progress records: codec plus JSON file, SQLite and in-memory stores."""

from __future__ import annotations

import json
import math
import os
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable, Protocol

from .models import UNATTEMPTED, ProgressSnapshot, Scored, SkillProgress, initial_progress
from .skills import SkillGraph

PACKAGE_ROOT = Path(__file__).resolve().parent
PROJECT_ROOT = PACKAGE_ROOT.parent.parent
DATA_DIR = Path(os.environ.get("SQL_SKILLS_DATA_DIR", PROJECT_ROOT / "data"))
DEFAULT_STORE_PATH = DATA_DIR / "skill_progress.json"
STORE_PATH = Path(os.environ.get("SQL_SKILLS_STORE_PATH", DEFAULT_STORE_PATH))
DEFAULT_DB_PATH = DATA_DIR / "sql_skills.db"
DB_PATH = Path(os.environ.get("SQL_SKILLS_DB_PATH", DEFAULT_DB_PATH))

DEFAULT_LEARNER = "default"


class StorageError(RuntimeError):
    """A store could not read or write its backing medium."""


class RecordError(ValueError):
    """A persisted progress record is malformed."""


class ProgressStore(Protocol):
    def load(self) -> dict[str, Any] | None:
        """Return the stored record, or None when nothing has been saved."""
        ...

    def save(self, record: dict[str, Any]) -> None:
        ...


# ── Record codec ──────────────────────────────────────────────────────────────


def now_iso(value: datetime | None = None) -> str:
    """Return the current UTC timestamp (seconds precision) as ISO 8601."""

    moment = value or datetime.now(timezone.utc)
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    else:
        moment = moment.astimezone(timezone.utc)
    return moment.isoformat(timespec="seconds")


def parse_iso(value: Any) -> datetime | None:
    if value is None or value == "":
        return None
    if not isinstance(value, str):
        raise RecordError(f"Expected ISO timestamp string, got {value!r}")
    try:
        moment = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError as exc:
        raise RecordError(f"Invalid timestamp {value!r}") from exc
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment


def _progress_to_dict(progress: SkillProgress) -> dict[str, Any]:
    return {
        "skillId": progress.skill_id,
        "score": progress.score.value if isinstance(progress.score, Scored) else None,
        "attempts": progress.attempts,
        "lastPracticed": now_iso(progress.last_practiced_at) if progress.last_practiced_at else None,
        "decayWeeksApplied": progress.decay_weeks_applied,
    }


def _progress_from_dict(skill_id: str, raw: Any) -> SkillProgress:
    if not isinstance(raw, dict):
        raise RecordError(f"Progress entry for '{skill_id}' must be an object")

    score_raw = raw.get("score")
    if score_raw is None:
        score = UNATTEMPTED
    elif (
        isinstance(score_raw, (int, float))
        and not isinstance(score_raw, bool)
        and math.isfinite(score_raw)
    ):
        score = Scored(float(score_raw))
    else:
        raise RecordError(f"Invalid score for '{skill_id}': {score_raw!r}")

    attempts = raw.get("attempts", 0)
    if not isinstance(attempts, int) or isinstance(attempts, bool) or attempts < 0:
        raise RecordError(f"Invalid attempts for '{skill_id}': {attempts!r}")

    decay_weeks = raw.get("decayWeeksApplied", 0)
    if not isinstance(decay_weeks, int) or isinstance(decay_weeks, bool) or decay_weeks < 0:
        raise RecordError(f"Invalid decayWeeksApplied for '{skill_id}': {decay_weeks!r}")

    return SkillProgress(
        skill_id=skill_id,
        score=score,
        attempts=attempts,
        last_practiced_at=parse_iso(raw.get("lastPracticed")),
        decay_weeks_applied=decay_weeks,
    )


def create_initial_snapshot(graph: SkillGraph) -> ProgressSnapshot:
    """Every catalog skill, unattempted."""
    return {skill_id: initial_progress(skill_id) for skill_id in graph.ids()}


def snapshot_to_record(
    snapshot: ProgressSnapshot,
    badges: Iterable[str],
    last_session_at: datetime | None,
    saved_at: datetime | None = None,
) -> dict[str, Any]:
    return {
        "progress": {skill_id: _progress_to_dict(p) for skill_id, p in snapshot.items()},
        "badges": list(badges),
        "lastSessionAt": now_iso(last_session_at) if last_session_at else None,
        "savedAt": now_iso(saved_at),
    }


def snapshot_from_record(
    raw: Any,
    graph: SkillGraph,
) -> tuple[ProgressSnapshot, list[str], datetime | None]:
    """Decode a stored record into (snapshot, badges, last_session_at).

    Catalog skills missing from the record start unattempted; ids the catalog
    no longer knows are dropped. Raises RecordError on malformed data.
    """
    if not isinstance(raw, dict):
        raise RecordError("Progress record must be an object")

    progress_raw = raw.get("progress") or {}
    if not isinstance(progress_raw, dict):
        raise RecordError("'progress' must be an object")

    snapshot = create_initial_snapshot(graph)
    for skill_id, entry in progress_raw.items():
        if skill_id in snapshot:
            snapshot[skill_id] = _progress_from_dict(skill_id, entry)

    badges_raw = raw.get("badges") or []
    if not isinstance(badges_raw, list) or not all(isinstance(b, str) for b in badges_raw):
        raise RecordError("'badges' must be a list of strings")
    badges = list(dict.fromkeys(badges_raw))

    return snapshot, badges, parse_iso(raw.get("lastSessionAt"))


# ── Stores ────────────────────────────────────────────────────────────────────


class MemoryStore:
    """Keeps the last saved record in process memory."""

    def __init__(self, record: dict[str, Any] | None = None) -> None:
        self.record = record
        self.saves = 0

    def load(self) -> dict[str, Any] | None:
        return self.record

    def save(self, record: dict[str, Any]) -> None:
        self.record = record
        self.saves += 1


class JsonFileStore:
    """One JSON document on disk, replaced atomically on every save."""

    def __init__(self, path: Path | str | None = None) -> None:
        self.path = Path(path) if path is not None else STORE_PATH

    def load(self) -> dict[str, Any] | None:
        if not self.path.exists():
            return None
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError, RecursionError) as exc:
            raise StorageError(f"Failed to read {self.path}: {exc}") from exc
        return data

    def save(self, record: dict[str, Any]) -> None:
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(json.dumps(record, indent=2), encoding="utf-8")
            os.replace(tmp_path, self.path)
        except OSError as exc:
            raise StorageError(f"Failed to write {self.path}: {exc}") from exc


class SqliteStore:
    """Progress records in SQLite, one row per learner."""

    def __init__(self, db_path: Path | str | None = None, learner_id: str = DEFAULT_LEARNER) -> None:
        self.db_path = Path(db_path) if db_path is not None else DB_PATH
        self.learner_id = learner_id

    def _open_connection(self) -> sqlite3.Connection:
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        connection = sqlite3.connect(self.db_path)
        connection.row_factory = sqlite3.Row
        connection.execute(
            """
            CREATE TABLE IF NOT EXISTS skill_progress (
                learner_id TEXT PRIMARY KEY,
                payload TEXT NOT NULL,
                saved_at TEXT NOT NULL
            )
            """
        )
        return connection

    def load(self) -> dict[str, Any] | None:
        try:
            connection = self._open_connection()
            try:
                row = connection.execute(
                    "SELECT payload FROM skill_progress WHERE learner_id = ?",
                    (self.learner_id,),
                ).fetchone()
            finally:
                connection.close()
            if row is None:
                return None
            return json.loads(row["payload"])
        except (OSError, sqlite3.Error, ValueError, RecursionError) as exc:
            raise StorageError(f"Failed to load progress for '{self.learner_id}': {exc}") from exc

    def save(self, record: dict[str, Any]) -> None:
        try:
            connection = self._open_connection()
            try:
                connection.execute(
                    """
                    INSERT INTO skill_progress (learner_id, payload, saved_at)
                    VALUES (?, ?, ?)
                    ON CONFLICT(learner_id) DO UPDATE SET
                        payload = excluded.payload,
                        saved_at = excluded.saved_at
                    """,
                    (self.learner_id, json.dumps(record), record.get("savedAt") or now_iso()),
                )
                connection.commit()
            finally:
                connection.close()
        except (OSError, sqlite3.Error) as exc:
            raise StorageError(f"Failed to save progress for '{self.learner_id}': {exc}") from exc


__all__ = [
    "create_initial_snapshot",
    "DB_PATH",
    "JsonFileStore",
    "MemoryStore",
    "now_iso",
    "parse_iso",
    "ProgressStore",
    "RecordError",
    "snapshot_from_record",
    "snapshot_to_record",
    "SqliteStore",
    "StorageError",
    "STORE_PATH",
]
