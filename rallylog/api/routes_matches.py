"""
Match routes — match creation, point recording, undo, scoreboard and log.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Response
from pydantic import BaseModel

from rallylog.config import settings
from rallylog.engine.scoring import ScoringEngine, scoreboard
from rallylog.exceptions import MatchCompletedError
from rallylog.models.match import (
    CourtType, FinalSetType, LogEntry, Match, MatchSettings, MatchStatus,
    OutcomeKind, Scoreboard, ShotKind, Side,
)
from rallylog.api.deps import get_store, match_lock
from rallylog.storage import MatchStore

logger = logging.getLogger(__name__)

router = APIRouter()


# ── Request / response schemas ───────────────────────────────────────────────

class MatchCreate(BaseModel):
    player1_id: str
    player2_id: str
    first_server: Side = Side.PLAYER1
    number_of_sets: int = settings.DEFAULT_NUMBER_OF_SETS
    games_per_set: int = settings.DEFAULT_GAMES_PER_SET
    ad_scoring: bool = settings.DEFAULT_AD_SCORING
    final_set_type: FinalSetType = FinalSetType.NORMAL
    tie_break_target: int = settings.DEFAULT_TIE_BREAK_TARGET
    tie_break_win_by_2: bool = True
    super_tie_break_target: int = settings.DEFAULT_SUPER_TIE_BREAK_TARGET
    super_tie_break_win_by_2: bool = True
    court_type: CourtType = CourtType.HARD
    indoor: bool = False


class PointIn(BaseModel):
    outcome: OutcomeKind
    winner: Optional[Side] = None
    shot_kind: Optional[ShotKind] = None


class PointRecorded(BaseModel):
    scoreboard: Scoreboard
    entry: Optional[LogEntry] = None


class MatchSummary(BaseModel):
    id: str
    player1_id: str
    player2_id: str
    status: MatchStatus
    score_display: str
    winner: Optional[Side] = None
    points_recorded: int
    updated_at: datetime

    @classmethod
    def of(cls, match: Match) -> "MatchSummary":
        return cls(
            id=match.id,
            player1_id=match.settings.player1_id,
            player2_id=match.settings.player2_id,
            status=match.status,
            score_display=match.score_display,
            winner=match.winner,
            points_recorded=len(match.log),
            updated_at=match.updated_at,
        )


# ── Routes ───────────────────────────────────────────────────────────────────

@router.post("/", response_model=Match, status_code=201)
def create_match(body: MatchCreate, store: MatchStore = Depends(get_store)):
    """Create and start a new match."""
    engine = ScoringEngine(MatchSettings(**body.model_dump()), store=store)
    return engine.start_match()


@router.get("/", response_model=list[MatchSummary])
def list_matches(player_id: Optional[str] = None, store: MatchStore = Depends(get_store)):
    return [MatchSummary.of(m) for m in store.list_matches(player_id)]


@router.get("/{match_id}", response_model=Match)
def get_match(match_id: str, store: MatchStore = Depends(get_store)):
    """Get full match state."""
    return store.load_match(match_id)


@router.delete("/{match_id}", status_code=204)
def delete_match(match_id: str, store: MatchStore = Depends(get_store)):
    with match_lock(match_id):
        store.delete_match(match_id)
    return Response(status_code=204)


@router.post("/{match_id}/points", response_model=PointRecorded)
def record_point(match_id: str, body: PointIn, store: MatchStore = Depends(get_store)):
    """Record one serve resolution."""
    with match_lock(match_id):
        engine = ScoringEngine.load(store, match_id)
        try:
            match = engine.score_point(body.outcome, body.winner, body.shot_kind)
        except MatchCompletedError:
            if settings.STRICT_PRECONDITIONS:
                raise
            logger.warning("Ignored point for completed match %s", match_id)
            return PointRecorded(scoreboard=engine.get_scoreboard())
    return PointRecorded(scoreboard=scoreboard(match), entry=match.log[-1])


@router.post("/{match_id}/undo", response_model=Scoreboard)
def undo_point(match_id: str, store: MatchStore = Depends(get_store)):
    """Undo the last recorded point. A match with no points is returned unchanged."""
    with match_lock(match_id):
        engine = ScoringEngine.load(store, match_id)
        engine.undo_last_point()
    return engine.get_scoreboard()


@router.patch("/{match_id}/points/{sequence_number}", response_model=Scoreboard)
def amend_point(
    match_id: str, sequence_number: int, body: PointIn, store: MatchStore = Depends(get_store),
):
    """Correct a recorded point and rebuild the score from it."""
    with match_lock(match_id):
        engine = ScoringEngine.load(store, match_id)
        engine.amend_point(sequence_number, body.outcome, body.winner, body.shot_kind)
    return engine.get_scoreboard()


@router.get("/{match_id}/scoreboard", response_model=Scoreboard)
def get_scoreboard(match_id: str, store: MatchStore = Depends(get_store)):
    return scoreboard(store.load_match(match_id))


@router.get("/{match_id}/log", response_model=list[LogEntry])
def get_log(match_id: str, store: MatchStore = Depends(get_store)):
    """Get the point log for a match."""
    return store.load_match(match_id).log
