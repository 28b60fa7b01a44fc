"""
Tennis Scoring Engine — state machine for point-by-point match recording.

Implements:
- Standard point scoring (0/15/30/40/Game) with deuce/advantage
- No-ad scoring (deciding point at 40-40)
- Game counting within sets and set completion
- Tie-breaks and super tie-breaks with configurable targets and win-by-2
- Server rotation, including the 1-2-2 tie-break serving pattern
- Break point detection from the pre-point game state
- A log entry per recorded point with the score after the point

``record_point`` is a pure transition: it returns a new ``Match`` snapshot and
never mutates its input. ``ScoringEngine`` wraps it for a single recording
session and persists every snapshot.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional, Union

from rallylog.exceptions import MatchCompletedError, PersistenceError, PointValidationError
from rallylog.models.match import (
    WINNER_ONLY_SHOTS,
    Game,
    GameScore,
    LogEntry,
    Match,
    MatchSettings,
    MatchStatus,
    OutcomeKind,
    Point,
    Scoreboard,
    SetState,
    ShotKind,
    Side,
    TieBreak,
    utcnow,
)

logger = logging.getLogger(__name__)


# ── Point score progression ──────────────────────────────────────────────────

POINT_PROGRESSION = {
    GameScore.ZERO: GameScore.FIFTEEN,
    GameScore.FIFTEEN: GameScore.THIRTY,
    GameScore.THIRTY: GameScore.FORTY,
}

BELOW_FORTY = (GameScore.ZERO, GameScore.FIFTEEN, GameScore.THIRTY)

# Outcomes that can only be won by the server.
SERVER_WON_OUTCOMES = frozenset({OutcomeKind.ACE, OutcomeKind.RETURN_ERROR})
# Outcomes where the caller must say who won the rally.
RALLY_OUTCOMES = frozenset({OutcomeKind.WINNER, OutcomeKind.UNFORCED_ERROR, OutcomeKind.FORCED_ERROR})
NO_SHOT_OUTCOMES = frozenset({
    OutcomeKind.ACE, OutcomeKind.SERVE_FAULT, OutcomeKind.DOUBLE_FAULT, OutcomeKind.RETURN_ERROR,
})


# ── Construction ─────────────────────────────────────────────────────────────

def new_match(
    settings: MatchSettings,
    match_id: Optional[str] = None,
    started_at: Optional[datetime] = None,
    created_at: Optional[datetime] = None,
    updated_at: Optional[datetime] = None,
) -> Match:
    """Build the initial snapshot: set 1 opened, first server to serve."""
    fields = {"settings": settings, "current_server": settings.first_server}
    if match_id:
        fields["id"] = match_id
    if started_at:
        fields["started_at"] = started_at
    if created_at:
        fields["created_at"] = created_at
    if updated_at:
        fields["updated_at"] = updated_at
    match = Match(**fields)
    _open_set(match)
    return match


def _open_set(match: Match) -> SetState:
    number = len(match.sets) + 1
    first_server = match.settings.set_first_server(number)
    new_set = SetState(number=number, first_server=first_server)
    if match.settings.is_super_tie_break_set(number):
        new_set.tie_break = TieBreak(is_super=True)
    else:
        new_set.games.append(Game(number=1, server=first_server))
    match.sets.append(new_set)
    match.current_server = first_server
    match.current_serve_attempt = 1
    return new_set


# ── Validation ───────────────────────────────────────────────────────────────

def _coerce(enum_cls, value, label: str):
    if value is None or isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError as exc:
        raise PointValidationError(f"Unsupported {label}: {value!r}") from exc


def validate_point(
    match: Match,
    outcome: Union[OutcomeKind, str],
    winner: Union[Side, str, None] = None,
    shot_kind: Union[ShotKind, str, None] = None,
) -> tuple[OutcomeKind, Optional[Side], Optional[ShotKind]]:
    """
    Check a point against the current match state without touching it.

    Returns the normalized (outcome, winner, shot_kind). The winner is
    inferred for aces and return errors and cleared for serve faults.
    """
    if match.is_completed:
        raise MatchCompletedError(f"Match {match.id} is already completed")

    outcome = _coerce(OutcomeKind, outcome, "outcome")
    winner = _coerce(Side, winner, "winner")
    shot_kind = _coerce(ShotKind, shot_kind, "shot kind")

    if outcome is None:
        raise PointValidationError("An outcome is required")
    if outcome is OutcomeKind.DOUBLE_FAULT:
        raise PointValidationError("Record a double fault as a serve fault on the second serve")

    if shot_kind is not None:
        if outcome in NO_SHOT_OUTCOMES:
            raise PointValidationError(f"A shot kind cannot be recorded with {outcome.value}")
        if shot_kind in WINNER_ONLY_SHOTS and outcome is not OutcomeKind.WINNER:
            raise PointValidationError(f"{shot_kind.value} is only valid for winners")

    server = match.current_server
    if outcome is OutcomeKind.SERVE_FAULT:
        winner = None
    elif outcome in SERVER_WON_OUTCOMES:
        if winner is not None and winner is not server:
            raise PointValidationError(f"{outcome.value} is always won by the server ({server.value})")
        winner = server
    elif winner is None:
        raise PointValidationError(f"{outcome.value} requires a winner")

    return outcome, winner, shot_kind


# ── Transition ───────────────────────────────────────────────────────────────

def record_point(
    match: Match,
    outcome: Union[OutcomeKind, str],
    winner: Union[Side, str, None] = None,
    shot_kind: Union[ShotKind, str, None] = None,
    timestamp: Optional[datetime] = None,
) -> Match:
    """Record one serve resolution and return the resulting snapshot."""
    outcome, winner, shot_kind = validate_point(match, outcome, winner, shot_kind)
    nxt = _fork(match)
    apply_point(nxt, outcome, winner, shot_kind, timestamp or utcnow())
    return nxt


def _fork(match: Match) -> Match:
    # Completed sets and log entries are never mutated again, so they are shared.
    nxt = match.model_copy()
    nxt.sets = [s if s.winner is not None else s.model_copy(deep=True) for s in match.sets]
    nxt.log = list(match.log)
    return nxt


def apply_point(
    match: Match,
    outcome: OutcomeKind,
    winner: Optional[Side],
    shot_kind: Optional[ShotKind],
    timestamp: datetime,
) -> LogEntry:
    """Apply a validated point to ``match`` in place and append its log entry."""
    current_set = match.sets[-1]
    server = match.current_server
    attempt = match.current_serve_attempt
    break_point = _is_break_point(match)

    if outcome is OutcomeKind.SERVE_FAULT and attempt == 1:
        point = Point(
            sequence_number=len(match.log) + 1,
            winner=None,
            outcome=outcome,
            server=server,
            serve_attempt=1,
            timestamp=timestamp,
        )
        _active_points(current_set).append(point)
        match.current_serve_attempt = 2
        return _append_log(match, current_set, point, server, break_point)

    if outcome is OutcomeKind.SERVE_FAULT:
        outcome = OutcomeKind.DOUBLE_FAULT
        winner = server.opponent

    point = Point(
        sequence_number=len(match.log) + 1,
        winner=winner,
        outcome=outcome,
        shot_kind=shot_kind,
        server=server,
        serve_attempt=attempt,
        timestamp=timestamp,
    )
    match.current_serve_attempt = 1
    if current_set.in_tie_break:
        _score_tiebreak_point(match, current_set, point)
    else:
        _score_regular_point(match, current_set, point)

    return _append_log(match, current_set, point, acting_player(outcome, winner, server), break_point)


def acting_player(outcome: OutcomeKind, winner: Optional[Side], server: Side) -> Side:
    """The player whose shot decided the point."""
    if outcome is OutcomeKind.SERVE_FAULT or winner is None:
        return server
    if outcome in (OutcomeKind.ACE, OutcomeKind.WINNER):
        return winner
    return winner.opponent


def _active_points(current_set: SetState) -> list[Point]:
    if current_set.in_tie_break:
        return current_set.tie_break.points
    return current_set.games[-1].points


def _score_regular_point(match: Match, current_set: SetState, point: Point) -> None:
    game = current_set.games[-1]
    game.points.append(point)
    w = point.winner
    w_score = game.score(w)
    l_score = game.score(w.opponent)

    if w_score is GameScore.ADVANTAGE:
        _win_game(match, current_set, game, w, point.timestamp)
    elif w_score is GameScore.FORTY:
        if not match.settings.ad_scoring or l_score in BELOW_FORTY:
            _win_game(match, current_set, game, w, point.timestamp)
        elif l_score is GameScore.FORTY:
            game.set_score(w, GameScore.ADVANTAGE)
        else:
            # Opponent loses the advantage: back to deuce.
            game.set_score(w.opponent, GameScore.FORTY)
    else:
        game.set_score(w, POINT_PROGRESSION[w_score])


def _score_tiebreak_point(match: Match, current_set: SetState, point: Point) -> None:
    tb = current_set.tie_break
    tb.points.append(point)
    w = point.winner
    tb.add_point(w)

    settings = match.settings
    if tb.is_super:
        target, win_by_2 = settings.super_tie_break_target, settings.super_tie_break_win_by_2
    else:
        target, win_by_2 = settings.tie_break_target, settings.tie_break_win_by_2

    won, lost = tb.count(w), tb.count(w.opponent)
    margin_ok = won - lost >= 2 if win_by_2 else won > lost
    if won >= target and margin_ok:
        tb.winner = w
        current_set.add_game(w)
        logger.debug("Tie-break in set %d won by %s (%s)", current_set.number, w.value, tb.display)
        _win_set(match, current_set, w, point.timestamp)
    elif tb.total_points % 2 == 1:
        match.current_server = match.current_server.opponent


def _win_game(match: Match, current_set: SetState, game: Game, winner: Side, timestamp: datetime) -> None:
    game.winner = winner
    current_set.add_game(winner)
    match.current_server = game.server.opponent
    match.current_serve_attempt = 1

    gps = match.settings.games_per_set
    won, lost = current_set.game_count(winner), current_set.game_count(winner.opponent)
    logger.debug("Game %d of set %d won by %s (%s)", game.number, current_set.number, winner.value,
                 current_set.games_display)

    if won >= gps and won - lost >= 2:
        _win_set(match, current_set, winner, timestamp)
    elif won == gps and lost == gps:
        # The receiver of the game just completed serves first in the tie-break.
        current_set.tie_break = TieBreak()
    else:
        current_set.games.append(Game(number=len(current_set.games) + 1, server=match.current_server))


def _win_set(match: Match, current_set: SetState, winner: Side, timestamp: datetime) -> None:
    current_set.winner = winner
    logger.info("Match %s: set %d won by %s (%s)", match.id, current_set.number, winner.value,
                current_set.score_display)
    match.current_serve_attempt = 1
    if match.sets_won(winner) >= match.settings.sets_to_win:
        match.status = MatchStatus.COMPLETED
        match.winner = winner
        match.ended_at = timestamp
        match.current_server = match.settings.set_first_server(current_set.number + 1)
        logger.info("Match %s won by %s: %s", match.id, winner.value, match.score_display)
    else:
        _open_set(match)


def _is_break_point(match: Match) -> bool:
    """True when the receiver is one point from winning the current regular game."""
    current_set = match.current_set
    if current_set is None or current_set.in_tie_break:
        return False
    game = current_set.current_game
    if game is None:
        return False
    receiver = game.server.opponent
    r_score, s_score = game.score(receiver), game.score(game.server)
    if r_score is GameScore.ADVANTAGE:
        return True
    if r_score is GameScore.FORTY:
        return not match.settings.ad_scoring or s_score in BELOW_FORTY
    return False


def _append_log(
    match: Match,
    played_set: SetState,
    point: Point,
    actor: Side,
    break_point: bool,
) -> LogEntry:
    live_set = match.current_set
    live_score, in_tie_break = "0-0", False
    if not match.is_completed:
        if live_set.in_tie_break:
            live_score, in_tie_break = live_set.tie_break.display, True
        elif live_set.current_game is not None:
            live_score = live_set.current_game.display

    entry = LogEntry(
        id=f"{match.id}:{point.sequence_number}",
        sequence_number=point.sequence_number,
        winner=point.winner,
        outcome=point.outcome,
        shot_kind=point.shot_kind,
        server=point.server,
        serve_attempt=point.serve_attempt,
        timestamp=point.timestamp,
        acting_player=actor,
        set_number=played_set.number,
        game_score=live_score,
        is_tie_break=in_tie_break,
        games_score=played_set.games_display,
        sets_score=match.sets_display,
        next_server=match.current_server,
        next_serve_attempt=match.current_serve_attempt,
        is_break_point=break_point,
    )
    match.log.append(entry)
    return entry


# ── Projections ──────────────────────────────────────────────────────────────

def scoreboard(match: Match) -> Scoreboard:
    """Current display state of a match."""
    current_set = match.current_set
    p1, p2, in_tb = "0", "0", False
    if current_set.in_tie_break:
        tb = current_set.tie_break
        p1, p2, in_tb = str(tb.points_player1), str(tb.points_player2), True
    elif current_set.current_game is not None:
        game = current_set.current_game
        p1, p2 = game.score_player1.value, game.score_player2.value

    return Scoreboard(
        match_id=match.id,
        status=match.status,
        set_number=current_set.number,
        game_number=current_set.games_player1 + current_set.games_player2 + (0 if current_set.winner else 1),
        in_tie_break=in_tb,
        player1_score=p1,
        player2_score=p2,
        games_player1=current_set.games_player1,
        games_player2=current_set.games_player2,
        sets_player1=match.sets_won(Side.PLAYER1),
        sets_player2=match.sets_won(Side.PLAYER2),
        server=match.current_server,
        serve_attempt=match.current_serve_attempt,
        winner=match.winner,
        score_display=match.score_display,
    )


# ── Session wrapper ──────────────────────────────────────────────────────────

class ScoringEngine:
    """
    Recording session for one match: the single writer of its snapshots.

    Usage:
        engine = ScoringEngine(settings, store=store)
        engine.start_match()
        engine.score_point(OutcomeKind.WINNER, Side.PLAYER1, ShotKind.FOREHAND_VOLLEY)
        print(engine.get_score_display())

    Every mutating call saves the new snapshot to ``store``. When saving
    fails the new snapshot is kept in memory and ``PersistenceError`` is
    raised with it attached.
    """

    def __init__(self, settings: Optional[MatchSettings] = None, store=None, match: Optional[Match] = None):
        if settings is None and match is None:
            raise ValueError("ScoringEngine needs settings or an existing match")
        self.settings = match.settings if match is not None else settings
        self.store = store
        self.match: Optional[Match] = match

    @classmethod
    def load(cls, store, match_id: str) -> "ScoringEngine":
        return cls(store=store, match=store.load_match(match_id))

    # ── Match lifecycle ──────────────────────────────────────────────────────

    def start_match(self, match_id: Optional[str] = None, started_at: Optional[datetime] = None) -> Match:
        match = new_match(self.settings, match_id=match_id, started_at=started_at)
        logger.info("Match %s started: %s vs %s", match.id, self.settings.player1_id, self.settings.player2_id)
        return self._commit(match)

    def score_point(
        self,
        outcome: Union[OutcomeKind, str],
        winner: Union[Side, str, None] = None,
        shot_kind: Union[ShotKind, str, None] = None,
        timestamp: Optional[datetime] = None,
    ) -> Match:
        return self._commit(record_point(self._current(), outcome, winner, shot_kind, timestamp))

    def undo_last_point(self) -> Match:
        from rallylog.engine.replay import undo_last_point

        current = self._current()
        if not current.log:
            logger.debug("Undo on match %s with no points ignored", current.id)
            return current
        return self._commit(undo_last_point(current))

    def amend_point(
        self,
        sequence_number: int,
        outcome: Union[OutcomeKind, str],
        winner: Union[Side, str, None] = None,
        shot_kind: Union[ShotKind, str, None] = None,
    ) -> Match:
        from rallylog.engine.replay import amend_point

        return self._commit(amend_point(self._current(), sequence_number, outcome, winner, shot_kind))

    # ── Queries ──────────────────────────────────────────────────────────────

    def get_match_state(self) -> Match:
        return self._current()

    def get_scoreboard(self) -> Scoreboard:
        return scoreboard(self._current())

    def get_score_display(self) -> str:
        return self._current().score_display

    def get_server(self) -> Side:
        return self._current().current_server

    def is_match_over(self) -> bool:
        return self._current().is_completed

    def get_winner(self) -> Optional[str]:
        return self._current().winner_id()

    # ── Internals ────────────────────────────────────────────────────────────

    def _current(self) -> Match:
        if self.match is None:
            raise RuntimeError("Match not started; call start_match() first")
        return self.match

    def _commit(self, match: Match) -> Match:
        self.match = match
        if self.store is None:
            return match
        try:
            self.match = self.store.save_match(match)
        except PersistenceError as exc:
            exc.match = match
            logger.error("Match %s kept in memory, save failed: %s", match.id, exc.detail)
            raise
        return self.match
