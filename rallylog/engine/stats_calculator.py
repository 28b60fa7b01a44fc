"""
Stats Calculator — match statistics computed from the point log.

Computes per-player:
- Point totals, serve/return split and the longest winning streak
- First and second serve counts, faults and points won
- Return points won against first and second serves
- Break point opportunities and conversions
- Point-type counters and the shot histogram

Only the log is read; game and set objects are never consulted.
"""

from __future__ import annotations

import logging
from typing import Iterable, Optional

from rallylog.models.match import LogEntry, Match, OutcomeKind, Side
from rallylog.models.stats import CareerStats, MatchComparison, MatchStats, PlayerStats, RecordLine

logger = logging.getLogger(__name__)

OUTCOME_COUNTERS = {
    OutcomeKind.ACE: "aces",
    OutcomeKind.DOUBLE_FAULT: "double_faults",
    OutcomeKind.WINNER: "winners",
    OutcomeKind.UNFORCED_ERROR: "unforced_errors",
    OutcomeKind.FORCED_ERROR: "forced_errors",
    OutcomeKind.RETURN_ERROR: "return_errors",
}

COUNTER_FIELDS = [
    name for name, field in PlayerStats.model_fields.items()
    if field.annotation is int and name != "points_won_in_row"
]


def pct(numerator: int, denominator: int) -> float:
    if denominator <= 0:
        return 0.0
    return round(numerator / denominator * 100, 1)


def compute_stats(log: Iterable[LogEntry]) -> MatchStats:
    """Aggregate a log into per-player statistics."""
    stats = MatchStats()
    streaks = {Side.PLAYER1: [0, 0], Side.PLAYER2: [0, 0]}  # [current, best]

    for entry in log:
        _process_entry(stats, entry)
        if entry.winner is not None:
            for side, streak in streaks.items():
                streak[0] = streak[0] + 1 if entry.winner is side else 0
                streak[1] = max(streak[1], streak[0])

    for side, (_, best) in streaks.items():
        stats.for_side(side).points_won_in_row = best
    stats.player1.return_points = stats.player2.total_serves
    stats.player2.return_points = stats.player1.total_serves
    finalize(stats.player1)
    finalize(stats.player2)
    return stats


def compute_set_stats(log: Iterable[LogEntry], set_number: int) -> MatchStats:
    return compute_stats(entry for entry in log if entry.set_number == set_number)


def _process_entry(stats: MatchStats, entry: LogEntry) -> None:
    actor = stats.for_side(entry.acting_player)
    counter = OUTCOME_COUNTERS.get(entry.outcome)
    if counter:
        setattr(actor, counter, getattr(actor, counter) + 1)
    if entry.shot_kind is not None:
        actor.shot_types[entry.shot_kind.value] += 1

    server = stats.for_side(entry.server)
    receiver = stats.for_side(entry.server.opponent)
    resolved = entry.winner is not None
    server_won = entry.winner is entry.server

    # Serve and return
    if entry.serve_attempt == 1:
        server.first_serves += 1
        if entry.outcome is OutcomeKind.SERVE_FAULT:
            server.first_serve_faults += 1
        else:
            server.total_serves += 1
            server.first_serves_in += 1
            receiver.return_first_serves_in += 1
            if server_won:
                server.first_serve_points_won += 1
            else:
                receiver.return_first_serve_points_won += 1
    else:
        server.total_serves += 1
        server.second_serves += 1
        if entry.outcome is OutcomeKind.DOUBLE_FAULT:
            server.second_serve_faults += 1
        else:
            server.second_serves_in += 1
            receiver.return_second_serves_in += 1
            if server_won:
                server.second_serve_points_won += 1
            else:
                receiver.return_second_serve_points_won += 1

    if not resolved:
        return

    # Points
    winner = stats.for_side(entry.winner)
    loser = stats.for_side(entry.winner.opponent)
    winner.points_won += 1
    loser.points_lost += 1
    winner.total_points += 1
    loser.total_points += 1
    if server_won:
        winner.points_won_on_serve += 1
    else:
        winner.points_won_on_return += 1

    # Break points
    if entry.is_break_point:
        receiver.break_point_opportunities += 1
        if not server_won:
            receiver.break_points_converted += 1


def finalize(s: PlayerStats) -> PlayerStats:
    """Derive every percentage from the counters."""
    s.first_serve_pct = pct(s.first_serves_in, s.first_serves)
    s.first_serve_points_won_pct = pct(s.first_serve_points_won, s.first_serves_in)
    s.second_serve_in_pct = pct(s.second_serves_in, s.second_serves)
    s.second_serve_points_won_pct = pct(s.second_serve_points_won, s.second_serves_in)
    s.total_serve_points_won_pct = pct(s.points_won_on_serve, s.total_serves)
    s.serve_success_pct = pct(s.first_serves_in + s.second_serves_in, s.first_serves + s.second_serves)
    s.return_first_serve_points_won_pct = pct(s.return_first_serve_points_won, s.return_first_serves_in)
    s.return_second_serve_points_won_pct = pct(s.return_second_serve_points_won, s.return_second_serves_in)
    s.total_return_points_won_pct = pct(s.points_won_on_return, s.return_points)
    s.break_points_converted_pct = pct(s.break_points_converted, s.break_point_opportunities)
    return s


class StatsCalculator:
    """Match, set, comparison and career statistics."""

    HIGHLIGHT_THRESHOLD_PCT = 20

    def compute_match_stats(self, match: Match) -> MatchStats:
        return compute_stats(match.log)

    def compute_set_stats(self, match: Match, set_number: int) -> MatchStats:
        return compute_set_stats(match.log, set_number)

    def compute_match_comparison(self, match: Match, set_number: Optional[int] = None) -> MatchComparison:
        stats = self.compute_match_stats(match) if set_number is None else self.compute_set_stats(match, set_number)
        return MatchComparison(
            match_id=match.id,
            player1_id=match.settings.player1_id,
            player2_id=match.settings.player2_id,
            score_display=match.score_display,
            stats=stats,
            set_number=set_number,
            highlights=self._find_highlight_stats(stats.player1, stats.player2),
        )

    def compute_career_stats(self, player_id: str, matches: Iterable[Match]) -> CareerStats:
        """Aggregate every completed match ``player_id`` played."""
        career = CareerStats(player_id=player_id)
        totals = career.totals
        for match in matches:
            side = match.settings.side_of(player_id)
            if side is None or not match.is_completed:
                continue
            won = match.winner is side
            career.total_matches += 1
            if won:
                career.wins += 1
            else:
                career.losses += 1
            court = match.settings.court_type.value
            opponent = match.settings.player_id(side.opponent)
            self._add_result(career.by_court_type.setdefault(court, RecordLine()), won)
            self._add_result(career.by_opponent.setdefault(opponent, RecordLine()), won)

            match_stats = compute_stats(match.log).for_side(side)
            for name in COUNTER_FIELDS:
                setattr(totals, name, getattr(totals, name) + getattr(match_stats, name))
            for shot, count in match_stats.shot_types.items():
                totals.shot_types[shot] += count
            totals.points_won_in_row = max(totals.points_won_in_row, match_stats.points_won_in_row)

        career.win_rate = pct(career.wins, career.total_matches)
        finalize(totals)
        logger.debug("Career stats for %s over %d matches", player_id, career.total_matches)
        return career

    @staticmethod
    def _add_result(line: RecordLine, won: bool) -> None:
        line.matches += 1
        if won:
            line.wins += 1
        else:
            line.losses += 1
        line.win_rate = pct(line.wins, line.matches)

    def _find_highlight_stats(self, s1: PlayerStats, s2: PlayerStats) -> list[str]:
        highlights = []
        comparisons = [
            ("aces", s1.aces, s2.aces),
            ("winners", s1.winners, s2.winners),
            ("first_serve_pct", s1.first_serve_pct, s2.first_serve_pct),
            ("unforced_errors", s1.unforced_errors, s2.unforced_errors),
            ("total_serve_points_won_pct", s1.total_serve_points_won_pct, s2.total_serve_points_won_pct),
            ("break_points_converted_pct", s1.break_points_converted_pct, s2.break_points_converted_pct),
        ]
        for name, v1, v2 in comparisons:
            if v1 != v2:
                diff = abs(v1 - v2) / max(v1, v2, 1) * 100
                if diff > self.HIGHLIGHT_THRESHOLD_PCT:
                    highlights.append(name)
        return highlights
