"""
Replay engine — rebuilds match state from the recorded points.

Undo and corrective edits never patch the score in place: the remaining
points are fed back through the scoring engine from a fresh match.
"""

from __future__ import annotations

import logging
from typing import Iterable, Optional, Union

from rallylog.engine.scoring import SERVER_WON_OUTCOMES, apply_point, new_match, validate_point
from rallylog.exceptions import DataIntegrityError, MatchCompletedError, PointValidationError
from rallylog.models.match import Match, MatchSettings, OutcomeKind, Point, ShotKind, Side

logger = logging.getLogger(__name__)


def replay(
    settings: MatchSettings,
    points: Iterable[Point],
    *,
    match_id: Optional[str] = None,
    started_at=None,
    created_at=None,
    updated_at=None,
    strict: bool = True,
) -> Match:
    """
    Fold ``points`` into a fresh match.

    In strict mode each stored point must agree with the recomputed server,
    serve attempt, outcome and winner; any disagreement raises
    ``DataIntegrityError``. Non-strict mode re-derives those fields, which is
    what a corrective edit needs for the points after the edited one.
    """
    match = new_match(settings, match_id=match_id, started_at=started_at,
                      created_at=created_at, updated_at=updated_at)
    for point in points:
        _replay_point(match, point, strict)
    return match


def _replay_point(match: Match, point: Point, strict: bool) -> None:
    seq = point.sequence_number
    outcome = OutcomeKind.SERVE_FAULT if point.outcome is OutcomeKind.DOUBLE_FAULT else point.outcome
    winner = point.winner
    if not strict and outcome in SERVER_WON_OUTCOMES:
        winner = match.current_server

    if strict and (point.server is not match.current_server
                   or point.serve_attempt != match.current_serve_attempt):
        _integrity_fault(
            match, seq,
            f"stored server {point.server.value}/attempt {point.serve_attempt}, "
            f"replay expects {match.current_server.value}/attempt {match.current_serve_attempt}",
        )

    try:
        outcome, winner, shot_kind = validate_point(match, outcome, winner, point.shot_kind)
    except MatchCompletedError as exc:
        if strict:
            _integrity_fault(match, seq, "point recorded after the match ended", exc)
        raise PointValidationError(f"Point {seq} would follow the end of the match") from exc
    except PointValidationError as exc:
        if strict:
            _integrity_fault(match, seq, exc.detail, exc)
        raise PointValidationError(f"Point {seq}: {exc.detail}") from exc

    entry = apply_point(match, outcome, winner, shot_kind, point.timestamp)

    if strict and (entry.outcome is not point.outcome or entry.winner is not point.winner):
        _integrity_fault(
            match, seq,
            f"stored {point.outcome.value} won by {_side(point.winner)}, "
            f"replay produced {entry.outcome.value} won by {_side(entry.winner)}",
        )


def _side(side: Optional[Side]) -> str:
    return side.value if side is not None else "nobody"


def _integrity_fault(match: Match, seq: int, reason: str, cause: Optional[Exception] = None) -> None:
    logger.error("Replay of match %s failed at point %d: %s", match.id, seq, reason)
    raise DataIntegrityError(f"Point {seq} cannot be replayed: {reason}", sequence_number=seq) from cause


def _replay_kwargs(match: Match) -> dict:
    return {
        "match_id": match.id,
        "started_at": match.started_at,
        "created_at": match.created_at,
        "updated_at": match.updated_at,
    }


def undo_last_point(match: Match) -> Match:
    """Drop the most recent log entry and rebuild from the points before it."""
    if not match.log:
        return match
    removed = match.log[-1]
    logger.debug("Match %s: undoing point %d (%s)", match.id, removed.sequence_number, removed.outcome.value)
    return replay(match.settings, match.log[:-1], **_replay_kwargs(match))


def rebuild(match: Match) -> Match:
    """Replay the full log; raises ``DataIntegrityError`` if it does not reproduce."""
    return replay(match.settings, match.log, **_replay_kwargs(match))


def amend_point(
    match: Match,
    sequence_number: int,
    outcome: Union[OutcomeKind, str],
    winner: Union[Side, str, None] = None,
    shot_kind: Union[ShotKind, str, None] = None,
) -> Match:
    """
    Replace one recorded point and rebuild the match.

    Later points keep their outcome, shot and rally winner; server, serve
    attempt and server-won winners are recomputed. A serve fault amended
    onto a second serve is stored as the double fault it becomes.
    """
    if not 1 <= sequence_number <= len(match.log):
        raise PointValidationError(f"No point with sequence number {sequence_number}")
    try:
        outcome = OutcomeKind(outcome)
        winner = Side(winner) if winner is not None else None
        shot_kind = ShotKind(shot_kind) if shot_kind is not None else None
    except ValueError as exc:
        raise PointValidationError(str(exc)) from exc
    if outcome is OutcomeKind.DOUBLE_FAULT:
        raise PointValidationError("Record a double fault as a serve fault on the second serve")

    original = match.log[sequence_number - 1]
    if outcome is OutcomeKind.SERVE_FAULT:
        winner = None
        if original.serve_attempt == 2:
            outcome, winner = OutcomeKind.DOUBLE_FAULT, original.server.opponent
    amended = Point(
        sequence_number=sequence_number,
        winner=winner,
        outcome=outcome,
        shot_kind=shot_kind,
        server=original.server,
        serve_attempt=original.serve_attempt,
        timestamp=original.timestamp,
    )
    points = list(match.log)
    points[sequence_number - 1] = amended
    logger.info("Match %s: amending point %d to %s", match.id, sequence_number, outcome.value)
    return replay(match.settings, points, strict=False, **_replay_kwargs(match))
