"""
Tests for replay, undo and point amendment.
"""

import pytest

from rallylog.engine.replay import amend_point, rebuild, replay, undo_last_point
from rallylog.engine.scoring import new_match, record_point
from rallylog.exceptions import DataIntegrityError, PointValidationError
from rallylog.models.match import MatchSettings, OutcomeKind, ShotKind, Side
from rallylog.validation.simulator import MatchSimulator

P1, P2 = Side.PLAYER1, Side.PLAYER2


def _settings(**kwargs) -> MatchSettings:
    return MatchSettings(player1_id="p1", player2_id="p2", **kwargs)


def _short_match():
    m = new_match(_settings())
    m = record_point(m, OutcomeKind.ACE)
    m = record_point(m, OutcomeKind.SERVE_FAULT)
    m = record_point(m, OutcomeKind.WINNER, P2, ShotKind.LOB)
    m = record_point(m, OutcomeKind.SERVE_FAULT)
    m = record_point(m, OutcomeKind.SERVE_FAULT)
    m = record_point(m, OutcomeKind.RETURN_ERROR)
    m = record_point(m, OutcomeKind.FORCED_ERROR, P1, ShotKind.FOREHAND_VOLLEY)
    return m


class TestReplay:

    def test_replay_is_idempotent(self):
        match = MatchSimulator(seed=11).simulate(_settings())
        assert match.is_completed
        once = rebuild(match)
        twice = rebuild(once)
        assert once.model_dump() == match.model_dump()
        assert twice.model_dump() == once.model_dump()

    def test_replay_of_raw_points(self):
        match = _short_match()
        rebuilt = replay(match.settings, match.points, match_id=match.id, started_at=match.started_at,
                         created_at=match.created_at, updated_at=match.updated_at)
        assert rebuilt.model_dump() == match.model_dump()

    def test_tampered_server_detected(self):
        match = _short_match()
        log = list(match.log)
        log[2] = log[2].model_copy(update={"server": P2})
        with pytest.raises(DataIntegrityError) as info:
            rebuild(match.model_copy(update={"log": log}))
        assert info.value.sequence_number == 3

    def test_tampered_winner_detected(self):
        match = _short_match()
        log = list(match.log)
        log[0] = log[0].model_copy(update={"winner": P2})
        with pytest.raises(DataIntegrityError):
            rebuild(match.model_copy(update={"log": log}))

    def test_point_after_completion_detected(self):
        match = MatchSimulator(seed=5).simulate(_settings(number_of_sets=1, games_per_set=2))
        extra = match.log[-1].model_copy(update={"sequence_number": len(match.log) + 1})
        with pytest.raises(DataIntegrityError):
            rebuild(match.model_copy(update={"log": match.log + [extra]}))


class TestUndo:

    def test_undo_inverts_every_point(self):
        states = [new_match(_settings())]
        sim = MatchSimulator(seed=3)
        for _ in range(60):
            m = states[-1]
            if m.is_completed:
                break
            outcome, winner, shot = sim.next_point(m.current_server, m.current_serve_attempt)
            states.append(record_point(m, outcome, winner, shot))
        for before, after in zip(states, states[1:]):
            assert undo_last_point(after).model_dump() == before.model_dump()

    def test_undo_first_serve_fault(self):
        m = record_point(new_match(_settings()), OutcomeKind.ACE)
        faulted = record_point(m, OutcomeKind.SERVE_FAULT)
        assert faulted.current_serve_attempt == 2
        undone = undo_last_point(faulted)
        assert undone.current_serve_attempt == 1
        assert undone.model_dump() == m.model_dump()

    def test_undo_reopens_completed_match(self):
        m = new_match(_settings(number_of_sets=1, games_per_set=1))
        for _ in range(8):
            m = record_point(m, OutcomeKind.WINNER, P1)
        assert m.is_completed
        undone = undo_last_point(m)
        assert not undone.is_completed
        assert undone.winner is None
        assert undone.ended_at is None

    def test_undo_empty_match_is_noop(self):
        m = new_match(_settings())
        assert undo_last_point(m) is m


class TestAmend:

    def test_amend_changes_score(self):
        m = _short_match()
        assert m.log[2].winner == P2
        amended = amend_point(m, 3, OutcomeKind.WINNER, P1, ShotKind.FOREHAND_GROUND_STROKE)
        assert amended.log[2].winner == P1
        assert amended.log[2].shot_kind == ShotKind.FOREHAND_GROUND_STROKE
        assert len(amended.log) == len(m.log)
        assert amended.sets[0].games_player1 == 1

    def test_amend_fault_into_point_shifts_later_serves(self):
        m = _short_match()
        # Point 2 was a first-serve fault; make it an ace instead.
        amended = amend_point(m, 2, OutcomeKind.ACE)
        assert amended.log[1].winner == P1
        assert amended.log[2].serve_attempt == 1

    def test_amend_unknown_sequence(self):
        with pytest.raises(PointValidationError):
            amend_point(_short_match(), 99, OutcomeKind.ACE)

    def test_amend_invalid_point(self):
        with pytest.raises(PointValidationError):
            amend_point(_short_match(), 3, OutcomeKind.WINNER)

    def test_amend_second_serve_to_fault_logs_double_fault(self):
        m = _short_match()
        assert m.log[2].serve_attempt == 2
        amended = amend_point(m, 3, OutcomeKind.SERVE_FAULT, P1)
        assert amended.log[2].outcome == OutcomeKind.DOUBLE_FAULT
        assert amended.log[2].winner == P2
        assert amended.log[2].game_score == "15-15"
        assert len(amended.log) == len(m.log)

    def test_amend_first_serve_to_fault_turns_next_fault_double(self):
        m = _short_match()
        amended = amend_point(m, 1, OutcomeKind.SERVE_FAULT)
        assert amended.log[0].winner is None
        assert amended.log[1].outcome == OutcomeKind.DOUBLE_FAULT
        assert amended.log[1].winner == P2

    def test_amend_rejects_double_fault_input(self):
        with pytest.raises(PointValidationError):
            amend_point(_short_match(), 3, OutcomeKind.DOUBLE_FAULT, P2)
