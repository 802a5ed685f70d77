"""Proficiency badges and threshold-crossing detection."""

from __future__ import annotations

from typing import Iterable, Sequence

from .models import Badge

BADGES: tuple[Badge, ...] = (
    Badge(
        id="sql_apprentice",
        name="SQL Apprentice",
        description="Reached 30% proficiency",
        threshold=30,
    ),
    Badge(
        id="query_builder",
        name="Query Builder",
        description="Reached 50% proficiency",
        threshold=50,
    ),
    Badge(
        id="interview_ready",
        name="Interview Ready",
        description="Reached 70% proficiency - Interview Prep Mode unlocked!",
        threshold=70,
    ),
    Badge(
        id="sql_expert",
        name="SQL Expert",
        description="Reached 85% proficiency",
        threshold=85,
    ),
    Badge(
        id="sql_master",
        name="SQL Master",
        description="Reached 95% proficiency",
        threshold=95,
    ),
)


def check_new_badges(
    proficiency: float,
    existing_badges: Iterable[str],
    catalog: Sequence[Badge] = BADGES,
) -> list[str]:
    """Ids of badges whose threshold is met and that are not yet earned, in catalog order."""
    earned = set(existing_badges)
    return [
        badge.id
        for badge in catalog
        if proficiency >= badge.threshold and badge.id not in earned
    ]


def get_badge(badge_id: str, catalog: Sequence[Badge] = BADGES) -> Badge | None:
    for badge in catalog:
        if badge.id == badge_id:
            return badge
    return None


__all__ = [
    "BADGES",
    "check_new_badges",
    "get_badge",
]
