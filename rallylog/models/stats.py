"""
Statistics models — per-player match, set and career aggregates.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field

from rallylog.models.match import ShotKind, Side


def empty_shot_histogram() -> dict[str, int]:
    return {kind.value: 0 for kind in ShotKind}


class PlayerStats(BaseModel):
    """Counters and percentages for one player, derived from the match log."""

    # ── Points ───────────────────────────────────────────
    points_won: int = 0
    points_lost: int = 0
    total_points: int = 0
    points_won_on_serve: int = 0
    points_won_on_return: int = 0
    points_won_in_row: int = 0

    # ── Serve ────────────────────────────────────────────
    total_serves: int = 0
    first_serves: int = 0
    first_serve_faults: int = 0
    first_serves_in: int = 0
    first_serve_points_won: int = 0
    second_serves: int = 0
    second_serve_faults: int = 0
    second_serves_in: int = 0
    second_serve_points_won: int = 0
    first_serve_pct: float = 0.0
    first_serve_points_won_pct: float = 0.0
    second_serve_in_pct: float = 0.0
    second_serve_points_won_pct: float = 0.0
    total_serve_points_won_pct: float = 0.0
    serve_success_pct: float = 0.0

    # ── Return ───────────────────────────────────────────
    return_points: int = 0
    return_first_serves_in: int = 0
    return_first_serve_points_won: int = 0
    return_second_serves_in: int = 0
    return_second_serve_points_won: int = 0
    return_first_serve_points_won_pct: float = 0.0
    return_second_serve_points_won_pct: float = 0.0
    total_return_points_won_pct: float = 0.0

    # ── Point types ──────────────────────────────────────
    aces: int = 0
    double_faults: int = 0
    winners: int = 0
    unforced_errors: int = 0
    forced_errors: int = 0
    return_errors: int = 0

    # ── Break points ─────────────────────────────────────
    break_point_opportunities: int = 0
    break_points_converted: int = 0
    break_points_converted_pct: float = 0.0

    shot_types: dict[str, int] = Field(default_factory=empty_shot_histogram)


class MatchStats(BaseModel):
    player1: PlayerStats = Field(default_factory=PlayerStats)
    player2: PlayerStats = Field(default_factory=PlayerStats)

    def for_side(self, side: Side) -> PlayerStats:
        return self.player1 if side is Side.PLAYER1 else self.player2


class MatchComparison(BaseModel):
    """Side-by-side statistics with the metrics where one player clearly led."""

    match_id: str
    player1_id: str
    player2_id: str
    score_display: str
    stats: MatchStats
    set_number: Optional[int] = None
    highlights: list[str] = Field(default_factory=list)


class RecordLine(BaseModel):
    matches: int = 0
    wins: int = 0
    losses: int = 0
    win_rate: float = 0.0


class CareerStats(BaseModel):
    """Aggregate over every completed match a player took part in."""

    player_id: str
    total_matches: int = 0
    wins: int = 0
    losses: int = 0
    win_rate: float = 0.0
    by_court_type: dict[str, RecordLine] = Field(default_factory=dict)
    by_opponent: dict[str, RecordLine] = Field(default_factory=dict)
    totals: PlayerStats = Field(default_factory=PlayerStats)
