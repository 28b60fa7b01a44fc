"""
Statistics Validator — independent multi-pass statistics over a log.

Each family of statistics is counted in its own pass with plain dicts,
then compared field by field with ``compute_stats``.
"""

from __future__ import annotations

from collections import Counter
from typing import Any

from rallylog.engine.stats_calculator import compute_stats
from rallylog.models.match import LogEntry, Match, OutcomeKind, Side

SIDES = (Side.PLAYER1, Side.PLAYER2)
ACTION_FIELDS = {
    "ace": "aces",
    "double_fault": "double_faults",
    "winner": "winners",
    "unforced_error": "unforced_errors",
    "forced_error": "forced_errors",
    "return_error": "return_errors",
}


def _ratio(a: int, b: int) -> float:
    return 0.0 if b == 0 else round(a / b * 100, 1)


class StatisticsValidator:
    """Recomputes player statistics without sharing code with the aggregator."""

    def expected(self, log: list[LogEntry]) -> dict[Side, dict[str, Any]]:
        out: dict[Side, dict[str, Any]] = {side: Counter() for side in SIDES}
        shots: dict[Side, Counter] = {side: Counter() for side in SIDES}
        resolved = [e for e in log if e.winner is not None]

        # Pass 1: actions and shots
        for e in log:
            field = ACTION_FIELDS.get(e.outcome.value)
            if field:
                out[e.acting_player][field] += 1
            if e.shot_kind is not None:
                shots[e.acting_player][e.shot_kind.value] += 1

        # Pass 2: points won/lost and serve/return split
        for e in resolved:
            out[e.winner]["points_won"] += 1
            out[e.winner.opponent]["points_lost"] += 1
            key = "points_won_on_serve" if e.winner == e.server else "points_won_on_return"
            out[e.winner][key] += 1

        # Pass 3: serving
        for e in log:
            s = out[e.server]
            if e.serve_attempt == 1:
                s["first_serves"] += 1
                if e.outcome is OutcomeKind.SERVE_FAULT:
                    s["first_serve_faults"] += 1
                    continue
                s["first_serves_in"] += 1
                s["first_serve_points_won"] += int(e.winner == e.server)
            else:
                s["second_serves"] += 1
                if e.outcome is OutcomeKind.DOUBLE_FAULT:
                    s["second_serve_faults"] += 1
                    continue
                s["second_serves_in"] += 1
                s["second_serve_points_won"] += int(e.winner == e.server)
        for side in SIDES:
            out[side]["total_serves"] = out[side]["first_serves_in"] + out[side]["second_serves"]

        # Pass 4: returning
        for side in SIDES:
            r = out[side]
            for e in log:
                if e.server == side or e.winner is None:
                    continue
                if e.serve_attempt == 1:
                    r["return_first_serves_in"] += 1
                    r["return_first_serve_points_won"] += int(e.winner == side)
                elif e.outcome is not OutcomeKind.DOUBLE_FAULT:
                    r["return_second_serves_in"] += 1
                    r["return_second_serve_points_won"] += int(e.winner == side)

        # Pass 5: break points
        for e in resolved:
            if e.is_break_point:
                receiver = e.server.opponent
                out[receiver]["break_point_opportunities"] += 1
                out[receiver]["break_points_converted"] += int(e.winner == receiver)

        # Pass 6: streaks
        for side in SIDES:
            run = best = 0
            for e in resolved:
                run = run + 1 if e.winner == side else 0
                best = max(best, run)
            out[side]["points_won_in_row"] = best

        for side in SIDES:
            o = out[side]
            opp = out[side.opponent]
            o["total_points"] = o["points_won"] + o["points_lost"]
            o["return_points"] = opp["total_serves"]
            o["first_serve_pct"] = _ratio(o["first_serves_in"], o["first_serves"])
            o["first_serve_points_won_pct"] = _ratio(o["first_serve_points_won"], o["first_serves_in"])
            o["second_serve_in_pct"] = _ratio(o["second_serves_in"], o["second_serves"])
            o["second_serve_points_won_pct"] = _ratio(o["second_serve_points_won"], o["second_serves_in"])
            o["total_serve_points_won_pct"] = _ratio(o["points_won_on_serve"], o["total_serves"])
            o["serve_success_pct"] = _ratio(
                o["first_serves_in"] + o["second_serves_in"], o["first_serves"] + o["second_serves"]
            )
            o["return_first_serve_points_won_pct"] = _ratio(
                o["return_first_serve_points_won"], o["return_first_serves_in"]
            )
            o["return_second_serve_points_won_pct"] = _ratio(
                o["return_second_serve_points_won"], o["return_second_serves_in"]
            )
            o["total_return_points_won_pct"] = _ratio(o["points_won_on_return"], o["return_points"])
            o["break_points_converted_pct"] = _ratio(o["break_points_converted"], o["break_point_opportunities"])
            o["shot_types"] = dict(shots[side])
        return out

    def validate(self, match: Match) -> list[str]:
        """Every statistic where the aggregator and this recount disagree."""
        actual = compute_stats(match.log)
        expected = self.expected(match.log)
        errors: list[str] = []
        for side in SIDES:
            got = actual.for_side(side).model_dump()
            want = expected[side]
            for field, value in got.items():
                if field == "shot_types":
                    nonzero = {k: v for k, v in value.items() if v}
                    if nonzero != want["shot_types"]:
                        errors.append(f"{side.value}.shot_types: {nonzero} != {want['shot_types']}")
                elif value != want.get(field, 0):
                    errors.append(f"{side.value}.{field}: aggregator {value}, recount {want.get(field, 0)}")
            self._check_invariants(errors, side, got)
        return errors

    @staticmethod
    def _check_invariants(errors: list[str], side: Side, s: dict[str, Any]) -> None:
        if s["points_won_on_serve"] + s["points_won_on_return"] != s["points_won"]:
            errors.append(f"{side.value}: serve + return points != points won")
        if sum(s["shot_types"].values()) > s["total_points"]:
            errors.append(f"{side.value}: more shots than points played")
