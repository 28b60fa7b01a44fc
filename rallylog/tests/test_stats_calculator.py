"""
Tests for the stats calculator.
"""

import pytest

from rallylog.engine.scoring import new_match, record_point
from rallylog.engine.stats_calculator import StatsCalculator, compute_set_stats, compute_stats, pct
from rallylog.models.match import CourtType, MatchSettings, OutcomeKind, ShotKind, Side
from rallylog.validation.simulator import MatchSimulator

P1, P2 = Side.PLAYER1, Side.PLAYER2


def _settings(**kwargs) -> MatchSettings:
    kwargs.setdefault("player1_id", "p1")
    kwargs.setdefault("player2_id", "p2")
    return MatchSettings(**kwargs)


def _service_game():
    """One game served by player 1 covering every outcome kind."""
    m = new_match(_settings())
    m = record_point(m, OutcomeKind.ACE)
    m = record_point(m, OutcomeKind.SERVE_FAULT)
    m = record_point(m, OutcomeKind.WINNER, P1, ShotKind.FOREHAND_GROUND_STROKE)
    m = record_point(m, OutcomeKind.SERVE_FAULT)
    m = record_point(m, OutcomeKind.SERVE_FAULT)
    m = record_point(m, OutcomeKind.RETURN_ERROR)
    m = record_point(m, OutcomeKind.UNFORCED_ERROR, P2, ShotKind.BACKHAND_GROUND_STROKE)
    m = record_point(m, OutcomeKind.FORCED_ERROR, P1, ShotKind.FOREHAND_VOLLEY)
    return m


def _quick_match(player1_id, player2_id, winner, court_type=CourtType.HARD):
    """One set of one game per player: eight straight winners decide it."""
    m = new_match(_settings(player1_id=player1_id, player2_id=player2_id, number_of_sets=1,
                            games_per_set=1, court_type=court_type))
    for _ in range(8):
        m = record_point(m, OutcomeKind.WINNER, winner)
    return m


class TestPct:

    def test_rounding(self):
        assert pct(2, 3) == 66.7
        assert pct(1, 8) == 12.5

    def test_zero_denominator(self):
        assert pct(5, 0) == 0.0


class TestServiceGame:

    @pytest.fixture
    def stats(self):
        return compute_stats(_service_game().log)

    def test_serving_player(self, stats):
        s = stats.player1
        assert s.aces == 1
        assert s.double_faults == 1
        assert s.winners == 1
        assert s.unforced_errors == 1
        assert s.points_won == 4
        assert s.points_lost == 2
        assert s.total_points == 6
        assert s.first_serves == 6
        assert s.first_serve_faults == 2
        assert s.first_serves_in == 4
        assert s.first_serve_points_won == 3
        assert s.second_serves == 2
        assert s.second_serve_faults == 1
        assert s.second_serves_in == 1
        assert s.second_serve_points_won == 1
        assert s.total_serves == 6
        assert s.points_won_on_serve == 4
        assert s.points_won_on_return == 0
        assert s.points_won_in_row == 2

    def test_serving_percentages(self, stats):
        s = stats.player1
        assert s.first_serve_pct == 66.7
        assert s.first_serve_points_won_pct == 75.0
        assert s.second_serve_in_pct == 50.0
        assert s.second_serve_points_won_pct == 100.0
        assert s.total_serve_points_won_pct == 66.7
        assert s.serve_success_pct == 62.5

    def test_returning_player(self, stats):
        r = stats.player2
        assert r.forced_errors == 1
        assert r.return_errors == 1
        assert r.points_won == 2
        assert r.points_won_on_return == 2
        assert r.return_first_serves_in == 4
        assert r.return_first_serve_points_won == 1
        assert r.return_second_serves_in == 1
        assert r.return_second_serve_points_won == 0
        assert r.return_points == 6
        assert r.return_first_serve_points_won_pct == 25.0
        assert r.total_return_points_won_pct == 33.3
        assert r.points_won_in_row == 1
        assert r.total_serves == 0
        assert r.first_serve_pct == 0.0

    def test_shot_histogram_credits_acting_player(self, stats):
        assert stats.player1.shot_types["forehand_ground_stroke"] == 1
        assert stats.player1.shot_types["backhand_ground_stroke"] == 1
        assert stats.player2.shot_types["forehand_volley"] == 1
        assert sum(stats.player2.shot_types.values()) == 1
        assert set(stats.player1.shot_types) == {kind.value for kind in ShotKind}

    def test_no_break_points(self, stats):
        assert stats.player2.break_point_opportunities == 0
        assert stats.player2.break_points_converted_pct == 0.0


class TestBreakPoints:

    def test_saved_and_converted(self):
        m = new_match(_settings())
        for winner in (P2, P2, P2, P1, P2):
            m = record_point(m, OutcomeKind.WINNER, winner)
        r = compute_stats(m.log).player2
        assert r.break_point_opportunities == 2
        assert r.break_points_converted == 1
        assert r.break_points_converted_pct == 50.0

    def test_fault_on_break_point_not_counted(self):
        m = new_match(_settings())
        for winner in (P2, P2, P2):
            m = record_point(m, OutcomeKind.WINNER, winner)
        m = record_point(m, OutcomeKind.SERVE_FAULT)
        assert m.log[-1].is_break_point
        assert compute_stats(m.log).player2.break_point_opportunities == 0


class TestEmptyLog:

    def test_all_zero(self):
        stats = compute_stats([])
        for side in (P1, P2):
            s = stats.for_side(side)
            assert s.total_points == 0
            assert s.first_serve_pct == 0.0
            assert s.serve_success_pct == 0.0
            assert s.total_return_points_won_pct == 0.0
            assert sum(s.shot_types.values()) == 0


class TestSimulatedMatch:

    @pytest.fixture(scope="class")
    def match(self):
        return MatchSimulator(seed=21).simulate(_settings())

    def test_points_are_conserved(self, match):
        stats = compute_stats(match.log)
        resolved = sum(1 for e in match.log if e.winner is not None)
        assert stats.player1.points_won + stats.player2.points_won == resolved
        assert stats.player1.points_won == stats.player2.points_lost
        assert stats.player2.points_won == stats.player1.points_lost
        for side in (P1, P2):
            s = stats.for_side(side)
            assert s.points_won_on_serve + s.points_won_on_return == s.points_won
            assert s.first_serves == s.first_serve_faults + s.first_serves_in
            assert s.second_serves == s.second_serve_faults + s.second_serves_in
            assert s.second_serves == s.first_serve_faults

    def test_set_stats_add_up(self, match):
        whole = compute_stats(match.log)
        parts = [compute_set_stats(match.log, s.number) for s in match.sets]
        for side in (P1, P2):
            assert sum(p.for_side(side).points_won for p in parts) == whole.for_side(side).points_won
            assert sum(p.for_side(side).aces for p in parts) == whole.for_side(side).aces

    def test_set_that_was_not_played(self, match):
        stats = compute_set_stats(match.log, 99)
        assert stats.player1.total_points == 0


class TestStatsCalculator:

    def setup_method(self):
        self.calc = StatsCalculator()

    def test_comparison_highlights(self):
        m = new_match(_settings())
        for _ in range(4):
            m = record_point(m, OutcomeKind.ACE)
        comparison = self.calc.compute_match_comparison(m)
        assert comparison.player1_id == "p1"
        assert comparison.score_display == "1-0"
        assert "aces" in comparison.highlights
        assert "winners" not in comparison.highlights
        assert comparison.set_number is None

    def test_comparison_for_one_set(self):
        m = _service_game()
        comparison = self.calc.compute_match_comparison(m, set_number=1)
        assert comparison.set_number == 1
        assert comparison.stats.player1.aces == 1

    def test_career_stats(self):
        matches = [
            _quick_match("alice", "bob", P1, CourtType.CLAY),
            _quick_match("carol", "alice", P1, CourtType.HARD),
            _quick_match("alice", "carol", P1, CourtType.HARD),
        ]
        unfinished = record_point(new_match(_settings(player1_id="alice", player2_id="bob")), OutcomeKind.ACE)
        unrelated = _quick_match("bob", "carol", P2)

        career = self.calc.compute_career_stats("alice", matches + [unfinished, unrelated])

        assert career.total_matches == 3
        assert career.wins == 2
        assert career.losses == 1
        assert career.win_rate == 66.7
        assert career.by_court_type["clay"].wins == 1
        assert career.by_court_type["hard"].matches == 2
        assert career.by_court_type["hard"].win_rate == 50.0
        assert career.by_opponent["carol"].wins == 1
        assert career.by_opponent["carol"].losses == 1
        assert career.by_opponent["bob"].matches == 1
        assert career.totals.winners == 16
        assert career.totals.points_won == 16
        assert career.totals.points_lost == 8
        assert career.totals.points_won_in_row == 8

    def test_career_without_matches(self):
        career = self.calc.compute_career_stats("nobody", [])
        assert career.total_matches == 0
        assert career.win_rate == 0.0
