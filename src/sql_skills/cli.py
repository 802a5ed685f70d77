from __future__ import annotations

import argparse
from pathlib import Path
from typing import Sequence

from .badges import get_badge
from .log import LOG_LEVELS, configure_logging
from .models import SKILL_TIERS
from .scoring import skill_color
from .skills import load_skill_graph
from .storage import JsonFileStore
from .tracker import SkillTracker


def _parse_args(argv: Sequence[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Track SQL skill progress")
    parser.add_argument(
        "--store",
        type=Path,
        default=None,
        help="Path to the JSON progress file",
    )
    parser.add_argument(
        "--skills",
        type=Path,
        default=None,
        help="Path to a YAML skill catalog",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        type=str.upper,
        choices=LOG_LEVELS,
        help="Loguru log level",
    )

    commands = parser.add_subparsers(dest="command", required=True)
    commands.add_parser("status", help="Show proficiency, badges and suggestions")
    commands.add_parser("tree", help="Show every skill grouped by tier")
    commands.add_parser("reset", help="Reset all progress")

    answer = commands.add_parser("answer", help="Record one answer event")
    answer.add_argument("skill_ids", nargs="+", metavar="SKILL_ID")
    answer.add_argument("--wrong", action="store_true", help="The answer was incorrect")
    answer.add_argument("--hint", action="store_true", help="A hint was used")
    return parser.parse_args(argv)


def _print_status(tracker: SkillTracker) -> None:
    print(f"Proficiency: {tracker.proficiency:.1f}%")
    if tracker.badges:
        names = []
        for badge_id in tracker.badges:
            badge = get_badge(badge_id, tracker.badge_catalog)
            names.append(badge.name if badge else badge_id)
        print(f"Badges: {', '.join(names)}")
    else:
        print("Badges: none yet")
    print(f"Interview prep: {'unlocked' if tracker.interview_prep_unlocked else 'locked'}")

    attention = tracker.skills_needing_attention()
    if attention:
        print(f"Needs attention: {', '.join(attention)}")
    unlocked = tracker.unlocked_skills()
    if unlocked:
        print(f"Ready to start: {', '.join(unlocked)}")


def _print_tree(tracker: SkillTracker) -> None:
    snapshot = tracker.get_snapshot()
    for tier in SKILL_TIERS:
        print(f"[{tier}]")
        for skill in tracker.graph.by_tier(tier):
            progress = snapshot[skill.id]
            value = progress.score_value
            score = "--" if value is None else f"{value:.0f}"
            print(f"  {skill.id:<24} {skill_color(progress.score):<6} {score:>3}  {skill.name}")


def main(argv: Sequence[str] | None = None) -> None:
    args = _parse_args(argv)
    configure_logging(args.log_level)

    graph = load_skill_graph(args.skills)
    tracker = SkillTracker(graph, JsonFileStore(args.store))
    tracker.init()

    if args.command == "status":
        _print_status(tracker)
    elif args.command == "tree":
        _print_tree(tracker)
    elif args.command == "reset":
        tracker.reset_progress()
        print("Progress reset")
    elif args.command == "answer":
        deltas = tracker.record_answer(args.skill_ids, not args.wrong, args.hint)
        for skill_id, delta in deltas.items():
            print(f"{skill_id}: {delta:+.0f}")
        print(f"Proficiency: {tracker.proficiency:.1f}%")


if __name__ == "__main__":  # pragma: no cover - CLI entry
    main()
