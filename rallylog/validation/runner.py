"""
Validation runner — simulates matches across rule variants and cross-checks
the engine against the independent score and statistics validators.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import numpy as np
import pandas as pd

from rallylog.engine.replay import rebuild, replay, undo_last_point
from rallylog.models.match import CourtType, FinalSetType, Match, MatchSettings, Side
from rallylog.validation.score_validator import ScoreValidator
from rallylog.validation.simulator import MatchSimulator
from rallylog.validation.stats_validator import StatisticsValidator

logger = logging.getLogger(__name__)

_PLAYERS = {"player1_id": "test-player-1", "player2_id": "test-player-2"}
_STB = FinalSetType.SUPER_TIE_BREAK

TEST_SCENARIOS: list[dict[str, Any]] = [
    {"name": "3 sets, ad scoring", "settings": {}},
    {"name": "3 sets, super tie-break final", "settings": {"final_set_type": _STB}},
    {"name": "3 sets, no-ad", "settings": {"ad_scoring": False}},
    {"name": "5 sets", "settings": {"number_of_sets": 5}},
    {"name": "3 games per set", "settings": {"games_per_set": 3}},
    {"name": "4 games per set", "settings": {"games_per_set": 4}},
    {"name": "5 games per set", "settings": {"games_per_set": 5}},
    {"name": "7 games per set", "settings": {"games_per_set": 7}},
    {"name": "8 games per set", "settings": {"games_per_set": 8}},
    {"name": "tie-break to 5", "settings": {"tie_break_target": 5}},
    {"name": "tie-break to 10", "settings": {"tie_break_target": 10}},
    {"name": "tie-break without win-by-2", "settings": {"tie_break_win_by_2": False}},
    {"name": "super tie-break to 5", "settings": {"final_set_type": _STB, "super_tie_break_target": 5}},
    {"name": "super tie-break to 7", "settings": {"final_set_type": _STB, "super_tie_break_target": 7}},
    {"name": "super tie-break to 12", "settings": {"final_set_type": _STB, "super_tie_break_target": 12}},
    {"name": "super tie-break without win-by-2",
     "settings": {"final_set_type": _STB, "super_tie_break_win_by_2": False}},
    {"name": "clay court", "settings": {"court_type": CourtType.CLAY}},
    {"name": "grass court, indoor", "settings": {"court_type": CourtType.GRASS, "indoor": True}},
    {"name": "player 2 serves first", "settings": {"first_server": Side.PLAYER2}},
    {"name": "quick match, 1 set of 3 games", "settings": {"number_of_sets": 1, "games_per_set": 3}},
    {"name": "single super tie-break", "settings": {"number_of_sets": 1, "final_set_type": _STB}},
    {"name": "long match, 5 sets of 8 games", "settings": {"number_of_sets": 5, "games_per_set": 8}},
]


def scenario_settings(scenario: dict[str, Any]) -> MatchSettings:
    return MatchSettings(**{**_PLAYERS, **scenario["settings"]})


def check_match(match: Match, rng: np.random.Generator) -> dict[str, Any]:
    """Cross-check one simulated match; returns a report row."""
    score_errors = ScoreValidator().validate(match)
    stats_errors = StatisticsValidator().validate(match)

    snapshot = match.model_dump()
    replay_ok = rebuild(match).model_dump() == snapshot

    undo_ok = True
    if match.log:
        k = int(rng.integers(1, len(match.log) + 1))
        after = replay(match.settings, match.log[:k], match_id=match.id, started_at=match.started_at,
                       created_at=match.created_at, updated_at=match.updated_at)
        before = replay(match.settings, match.log[:k - 1], match_id=match.id, started_at=match.started_at,
                        created_at=match.created_at, updated_at=match.updated_at)
        undo_ok = undo_last_point(after).model_dump() == before.model_dump()

    return {
        "points": len(match.log),
        "completed": match.is_completed,
        "score": match.score_display,
        "winner": match.winner.value if match.winner else None,
        "score_errors": len(score_errors),
        "stats_errors": len(stats_errors),
        "replay_ok": replay_ok,
        "undo_ok": undo_ok,
        "first_error": (score_errors + stats_errors or [None])[0],
    }


def run_validation(
    matches_per_scenario: int = 3,
    seed: int = 42,
    scenarios: Optional[list[dict[str, Any]]] = None,
    max_points: Optional[int] = None,
) -> pd.DataFrame:
    """Simulate and check every scenario; one DataFrame row per match."""
    rng = np.random.default_rng(seed)
    rows = []
    for scenario in scenarios or TEST_SCENARIOS:
        settings = scenario_settings(scenario)
        for i in range(matches_per_scenario):
            simulator = MatchSimulator(seed=int(rng.integers(0, 2**31 - 1)))
            match = simulator.simulate(settings, max_points=max_points, match_id=f"sim-{len(rows) + 1}")
            row = {"scenario": scenario["name"], "run": i + 1, **check_match(match, rng)}
            row["passed"] = (
                row["completed"] and row["score_errors"] == 0 and row["stats_errors"] == 0
                and row["replay_ok"] and row["undo_ok"]
            )
            if not row["passed"]:
                logger.error("%s run %d failed: %s", scenario["name"], i + 1, row["first_error"])
            rows.append(row)

    report = pd.DataFrame(rows)
    logger.info("Validated %d matches, %d failed", len(report), int((~report["passed"]).sum()) if rows else 0)
    return report


def summarize(report: pd.DataFrame) -> pd.DataFrame:
    """Per-scenario pass counts and average match length."""
    return report.groupby("scenario", sort=False).agg(
        matches=("run", "count"),
        passed=("passed", "sum"),
        avg_points=("points", "mean"),
    ).reset_index()
