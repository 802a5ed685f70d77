"""Skill graph: YAML loader, DAG validation, prerequisite checking."""

from __future__ import annotations

from pathlib import Path
from types import MappingProxyType
from typing import Any, Iterable, Iterator, Mapping

import yaml

from .models import SKILL_TIERS, ProgressSnapshot, Scored, Skill, SkillTier, ensure_tier

PACKAGE_ROOT = Path(__file__).resolve().parent
SKILLS_FILE = PACKAGE_ROOT / "data" / "skills.yaml"

_TIER_RANK: dict[str, int] = {tier: rank for rank, tier in enumerate(SKILL_TIERS)}


class SkillGraphError(ValueError):
    """The skill catalog is inconsistent and cannot be used."""


def validate_dag(skills: Mapping[str, Skill]) -> list[str]:
    """Topological sort the skill DAG. Returns ordered list of skill IDs.
    Raises SkillGraphError if there are cycles or missing prerequisites.
    """
    for skill in skills.values():
        for prereq in sorted(skill.prerequisites):
            if prereq not in skills:
                raise SkillGraphError(
                    f"Skill '{skill.id}' has unknown prerequisite '{prereq}'"
                )

    # Kahn's algorithm for topological sort
    in_degree: dict[str, int] = {sid: len(skill.prerequisites) for sid, skill in skills.items()}

    # Adjacency: prereq -> list of skills that depend on it
    adj: dict[str, list[str]] = {sid: [] for sid in skills}
    for skill in skills.values():
        for prereq in skill.prerequisites:
            adj[prereq].append(skill.id)

    def _rank(sid: str) -> tuple[int, str]:
        return (_TIER_RANK[skills[sid].tier], sid)

    queue: list[str] = sorted((sid for sid, deg in in_degree.items() if deg == 0), key=_rank)
    result: list[str] = []

    while queue:
        node = queue.pop(0)
        result.append(node)
        for neighbor in sorted(adj[node]):
            in_degree[neighbor] -= 1
            if in_degree[neighbor] == 0:
                queue.append(neighbor)
        queue.sort(key=_rank)

    if len(result) != len(skills):
        stuck = sorted(sid for sid, deg in in_degree.items() if deg > 0)
        raise SkillGraphError(
            f"Cycle detected in skill prerequisite graph involving: {', '.join(stuck)}"
        )

    return result


class SkillGraph:
    """Immutable, validated catalog of skills and their prerequisite edges.

    Construction fails with SkillGraphError on duplicate ids, dangling
    prerequisites or cycles, so every instance can be trusted downstream.
    """

    __slots__ = ("_skills", "_order", "_dependents")

    def __init__(self, skills: Iterable[Skill]) -> None:
        by_id: dict[str, Skill] = {}
        for skill in skills:
            if skill.id in by_id:
                raise SkillGraphError(f"Duplicate skill id '{skill.id}'")
            by_id[skill.id] = skill

        self._order = tuple(validate_dag(by_id))
        self._skills: Mapping[str, Skill] = MappingProxyType(by_id)

        dependents: dict[str, list[str]] = {sid: [] for sid in by_id}
        for skill in by_id.values():
            for prereq in skill.prerequisites:
                dependents[prereq].append(skill.id)
        self._dependents = MappingProxyType(
            {sid: tuple(ids) for sid, ids in dependents.items()}
        )

    def __len__(self) -> int:
        return len(self._skills)

    def __iter__(self) -> Iterator[Skill]:
        return iter(self._skills.values())

    def __contains__(self, skill_id: object) -> bool:
        return skill_id in self._skills

    def __getitem__(self, skill_id: str) -> Skill:
        return self._skills[skill_id]

    def __repr__(self) -> str:
        return f"SkillGraph({len(self)} skills)"

    def get(self, skill_id: str) -> Skill | None:
        return self._skills.get(skill_id)

    def ids(self) -> list[str]:
        """All skill ids in catalog order."""
        return list(self._skills)

    def by_tier(self, tier: SkillTier) -> list[Skill]:
        return [skill for skill in self._skills.values() if skill.tier == tier]

    def entry_skills(self) -> list[Skill]:
        """Skills without prerequisites (entry points of the tree)."""
        return [skill for skill in self._skills.values() if not skill.prerequisites]

    def dependents_of(self, skill_id: str) -> list[Skill]:
        """Skills that list ``skill_id`` as a direct prerequisite."""
        return [self._skills[sid] for sid in self._dependents.get(skill_id, ())]

    def topological_order(self) -> list[str]:
        """Teaching sequence: prerequisites always come before dependents."""
        return list(self._order)

    def prerequisites_met(self, skill_id: str, snapshot: ProgressSnapshot) -> bool:
        """True if every prerequisite has been scored at the yellow threshold or above."""
        skill = self._skills.get(skill_id)
        if skill is None:
            return False

        from .scoring import YELLOW_THRESHOLD

        for prereq_id in skill.prerequisites:
            progress = snapshot.get(prereq_id)
            if progress is None or not isinstance(progress.score, Scored):
                return False
            if progress.score.value < YELLOW_THRESHOLD:
                return False
        return True


def _skill_from_entry(entry: Any) -> Skill:
    if not isinstance(entry, dict):
        raise SkillGraphError(f"Skill entry must be a mapping, got {type(entry).__name__}")
    for key in ("id", "name", "tier"):
        if not entry.get(key):
            raise SkillGraphError(f"Skill entry is missing '{key}': {entry!r}")
    try:
        tier = ensure_tier(str(entry["tier"]))
    except ValueError as exc:
        raise SkillGraphError(f"Skill '{entry['id']}': {exc}") from exc
    prerequisites = entry.get("prerequisites") or []
    if isinstance(prerequisites, str) or not isinstance(prerequisites, list):
        raise SkillGraphError(f"Skill '{entry['id']}' prerequisites must be a list")
    return Skill(
        id=str(entry["id"]),
        name=str(entry["name"]),
        tier=tier,
        prerequisites=frozenset(str(p) for p in prerequisites),
        description=str(entry.get("description", "")),
    )


def load_skill_graph(path: Path | None = None) -> SkillGraph:
    """Parse a YAML skill catalog and return a validated SkillGraph."""
    file_path = path or SKILLS_FILE
    with open(file_path, encoding="utf-8") as f:
        try:
            raw = yaml.safe_load(f)
        except yaml.YAMLError as exc:
            raise SkillGraphError(f"Invalid skill catalog {file_path}: {exc}") from exc

    if not isinstance(raw, list):
        raise SkillGraphError(f"Skill catalog {file_path} must be a list of skills")
    return SkillGraph(_skill_from_entry(entry) for entry in raw)


__all__ = [
    "load_skill_graph",
    "SKILLS_FILE",
    "SkillGraph",
    "SkillGraphError",
    "validate_dag",
]
