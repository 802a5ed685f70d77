"""Tests for skills.py: YAML loading, DAG validation, prerequisites."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from sql_skills.models import UNATTEMPTED, Scored, Skill, SkillProgress
from sql_skills.skills import SKILLS_FILE, SkillGraph, SkillGraphError, load_skill_graph, validate_dag


def _skill(skill_id: str, tier: str = "foundational", prerequisites: tuple[str, ...] = ()) -> Skill:
    return Skill(
        id=skill_id,
        name=skill_id.replace("_", " ").title(),
        tier=tier,  # type: ignore[arg-type]
        prerequisites=frozenset(prerequisites),
    )


@pytest.fixture
def sample_graph() -> SkillGraph:
    return SkillGraph([
        _skill("select_basics"),
        _skill("where_filtering", prerequisites=("select_basics",)),
        _skill("aggregations", prerequisites=("select_basics",)),
        _skill("subqueries_scalar", "intermediate", ("where_filtering", "aggregations")),
    ])


class TestValidateDAG:
    def test_valid_dag(self, sample_graph):
        assert sample_graph.topological_order() == [
            "select_basics",
            "aggregations",
            "where_filtering",
            "subqueries_scalar",
        ]

    def test_cycle_detection(self):
        with pytest.raises(SkillGraphError, match="Cycle"):
            SkillGraph([
                _skill("a", prerequisites=("b",)),
                _skill("b", prerequisites=("a",)),
            ])

    def test_cycle_behind_entry_skill(self):
        with pytest.raises(SkillGraphError, match="Cycle"):
            SkillGraph([
                _skill("root"),
                _skill("x", prerequisites=("root", "z")),
                _skill("y", prerequisites=("x",)),
                _skill("z", prerequisites=("y",)),
            ])

    def test_self_reference_is_a_cycle(self):
        with pytest.raises(SkillGraphError, match="Cycle"):
            SkillGraph([_skill("a", prerequisites=("a",))])

    def test_missing_prerequisite(self):
        with pytest.raises(SkillGraphError, match="unknown prerequisite"):
            SkillGraph([_skill("a", prerequisites=("nonexistent",))])

    def test_duplicate_id(self):
        with pytest.raises(SkillGraphError, match="Duplicate"):
            SkillGraph([_skill("a"), _skill("a")])

    def test_graph_error_is_value_error(self):
        with pytest.raises(ValueError):
            validate_dag({"a": _skill("a", prerequisites=("b",))})


class TestQueries:
    def test_lookup(self, sample_graph):
        assert sample_graph.get("select_basics").name == "Select Basics"
        assert sample_graph.get("nope") is None
        assert "aggregations" in sample_graph
        assert len(sample_graph) == 4
        with pytest.raises(KeyError):
            sample_graph["nope"]

    def test_ids_keep_catalog_order(self, sample_graph):
        assert sample_graph.ids() == [
            "select_basics",
            "where_filtering",
            "aggregations",
            "subqueries_scalar",
        ]

    def test_by_tier(self, sample_graph):
        assert [s.id for s in sample_graph.by_tier("intermediate")] == ["subqueries_scalar"]
        assert sample_graph.by_tier("interview") == []

    def test_entry_skills(self, sample_graph):
        assert [s.id for s in sample_graph.entry_skills()] == ["select_basics"]

    def test_dependents_of(self, sample_graph):
        assert [s.id for s in sample_graph.dependents_of("select_basics")] == [
            "where_filtering",
            "aggregations",
        ]
        assert sample_graph.dependents_of("subqueries_scalar") == []
        assert sample_graph.dependents_of("unknown") == []


def _progress(skill_id: str, score: float | None) -> SkillProgress:
    return SkillProgress(
        skill_id=skill_id,
        score=UNATTEMPTED if score is None else Scored(score),
        attempts=0 if score is None else 1,
        last_practiced_at=None if score is None else datetime(2024, 1, 1, tzinfo=timezone.utc),
    )


class TestPrerequisitesMet:
    def test_no_prereqs_always_met(self, sample_graph):
        assert sample_graph.prerequisites_met("select_basics", {}) is True

    def test_unknown_skill(self, sample_graph):
        assert sample_graph.prerequisites_met("nope", {}) is False

    def test_unattempted_prereq_not_met(self, sample_graph):
        snapshot = {"select_basics": _progress("select_basics", None)}
        assert sample_graph.prerequisites_met("where_filtering", snapshot) is False

    def test_missing_entry_not_met(self, sample_graph):
        assert sample_graph.prerequisites_met("where_filtering", {}) is False

    def test_below_yellow_not_met(self, sample_graph):
        snapshot = {"select_basics": _progress("select_basics", 39)}
        assert sample_graph.prerequisites_met("where_filtering", snapshot) is False

    def test_exactly_yellow_met(self, sample_graph):
        snapshot = {"select_basics": _progress("select_basics", 40)}
        assert sample_graph.prerequisites_met("where_filtering", snapshot) is True

    def test_all_prereqs_required(self, sample_graph):
        snapshot = {
            "where_filtering": _progress("where_filtering", 80),
            "aggregations": _progress("aggregations", 20),
        }
        assert sample_graph.prerequisites_met("subqueries_scalar", snapshot) is False
        snapshot["aggregations"] = _progress("aggregations", 55)
        assert sample_graph.prerequisites_met("subqueries_scalar", snapshot) is True


class TestLoadSkillGraphYAML:
    def test_load_default_catalog(self):
        graph = load_skill_graph()
        assert len(graph) == 26
        assert [s.id for s in graph.entry_skills()] == ["select_basics"]
        for skill in graph:
            assert skill.id
            assert skill.name
            assert skill.description

    def test_default_catalog_tiers(self):
        graph = load_skill_graph()
        assert len(graph.by_tier("foundational")) == 6
        assert len(graph.by_tier("intermediate")) == 7
        assert len(graph.by_tier("advanced")) == 7
        assert len(graph.by_tier("interview")) == 6

    def test_default_catalog_order_respects_prerequisites(self):
        graph = load_skill_graph()
        order = graph.topological_order()
        position = {sid: i for i, sid in enumerate(order)}
        for skill in graph:
            for prereq in skill.prerequisites:
                assert position[prereq] < position[skill.id]

    def test_default_file_exists(self):
        assert SKILLS_FILE.exists()

    def test_custom_catalog(self, tmp_path):
        path = tmp_path / "skills.yaml"
        path.write_text(
            "- id: a\n  name: A\n  tier: foundational\n"
            "- id: b\n  name: B\n  tier: Advanced\n  prerequisites: [a]\n",
            encoding="utf-8",
        )
        graph = load_skill_graph(path)
        assert graph["b"].tier == "advanced"
        assert graph["b"].prerequisites == frozenset({"a"})
        assert graph["a"].description == ""

    def test_dangling_reference_in_yaml(self, tmp_path):
        path = tmp_path / "skills.yaml"
        path.write_text(
            "- id: a\n  name: A\n  tier: foundational\n  prerequisites: [ghost]\n",
            encoding="utf-8",
        )
        with pytest.raises(SkillGraphError, match="unknown prerequisite 'ghost'"):
            load_skill_graph(path)

    def test_unknown_tier(self, tmp_path):
        path = tmp_path / "skills.yaml"
        path.write_text("- id: a\n  name: A\n  tier: expert\n", encoding="utf-8")
        with pytest.raises(SkillGraphError, match="Unsupported skill tier"):
            load_skill_graph(path)

    def test_missing_field(self, tmp_path):
        path = tmp_path / "skills.yaml"
        path.write_text("- id: a\n  tier: foundational\n", encoding="utf-8")
        with pytest.raises(SkillGraphError, match="missing 'name'"):
            load_skill_graph(path)

    def test_not_a_list(self, tmp_path):
        path = tmp_path / "skills.yaml"
        path.write_text("skills: {}\n", encoding="utf-8")
        with pytest.raises(SkillGraphError, match="must be a list"):
            load_skill_graph(path)
