"""
Match data models — point, game, set and match state for a recorded match.
The log of ``LogEntry`` records is the source of truth; everything else is
derived from it by the scoring engine.
"""

from __future__ import annotations

import math
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ── Enums ────────────────────────────────────────────────────────────────────

class Side(str, Enum):
    PLAYER1 = "player1"
    PLAYER2 = "player2"

    @property
    def opponent(self) -> "Side":
        return Side.PLAYER2 if self is Side.PLAYER1 else Side.PLAYER1


class OutcomeKind(str, Enum):
    ACE = "ace"
    WINNER = "winner"
    SERVE_FAULT = "serve_fault"
    DOUBLE_FAULT = "double_fault"
    RETURN_ERROR = "return_error"
    UNFORCED_ERROR = "unforced_error"
    FORCED_ERROR = "forced_error"


class ShotKind(str, Enum):
    FOREHAND_GROUND_STROKE = "forehand_ground_stroke"
    BACKHAND_GROUND_STROKE = "backhand_ground_stroke"
    FOREHAND_SLICE = "forehand_slice"
    BACKHAND_SLICE = "backhand_slice"
    FOREHAND_VOLLEY = "forehand_volley"
    BACKHAND_VOLLEY = "backhand_volley"
    LOB = "lob"
    OVERHEAD = "overhead"
    APPROACH_SHOT = "approach_shot"
    DROP_SHOT = "drop_shot"
    PASSING_SHOT = "passing_shot"
    RETURN = "return"


# Only a clean winner can be credited to these shots.
WINNER_ONLY_SHOTS = frozenset({ShotKind.PASSING_SHOT, ShotKind.RETURN})


class GameScore(str, Enum):
    ZERO = "0"
    FIFTEEN = "15"
    THIRTY = "30"
    FORTY = "40"
    ADVANTAGE = "AD"


class MatchStatus(str, Enum):
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class FinalSetType(str, Enum):
    NORMAL = "normal_final_set"
    SUPER_TIE_BREAK = "super_tie_break"


class CourtType(str, Enum):
    GRASS = "grass"
    CLAY = "clay"
    HARD = "hard"
    CARPET = "carpet"


# ── Settings ─────────────────────────────────────────────────────────────────

TIE_BREAK_TARGETS = (5, 7, 10)
SUPER_TIE_BREAK_TARGETS = (5, 7, 10, 12)


class MatchSettings(BaseModel):
    """Immutable rule set fixed when the match is created."""

    model_config = ConfigDict(frozen=True)

    player1_id: str
    player2_id: str
    first_server: Side = Side.PLAYER1
    number_of_sets: int = Field(default=3, ge=1, le=5)
    games_per_set: int = Field(default=6, ge=1, le=8)
    ad_scoring: bool = True
    final_set_type: FinalSetType = FinalSetType.NORMAL
    tie_break_target: int = 7
    tie_break_win_by_2: bool = True
    super_tie_break_target: int = 10
    super_tie_break_win_by_2: bool = True
    court_type: CourtType = CourtType.HARD
    indoor: bool = False

    @field_validator("number_of_sets")
    @classmethod
    def _odd_number_of_sets(cls, v: int) -> int:
        if v % 2 == 0:
            raise ValueError("number_of_sets must be odd")
        return v

    @field_validator("tie_break_target")
    @classmethod
    def _tie_break_target(cls, v: int) -> int:
        if v not in TIE_BREAK_TARGETS:
            raise ValueError(f"tie_break_target must be one of {TIE_BREAK_TARGETS}")
        return v

    @field_validator("super_tie_break_target")
    @classmethod
    def _super_tie_break_target(cls, v: int) -> int:
        if v not in SUPER_TIE_BREAK_TARGETS:
            raise ValueError(f"super_tie_break_target must be one of {SUPER_TIE_BREAK_TARGETS}")
        return v

    @model_validator(mode="after")
    def _distinct_players(self) -> "MatchSettings":
        if not self.player1_id or not self.player2_id:
            raise ValueError("both player ids are required")
        if self.player1_id == self.player2_id:
            raise ValueError("player1_id and player2_id must differ")
        return self

    @property
    def sets_to_win(self) -> int:
        return math.ceil(self.number_of_sets / 2)

    def player_id(self, side: Side) -> str:
        return self.player1_id if side is Side.PLAYER1 else self.player2_id

    def side_of(self, player_id: str) -> Optional[Side]:
        if player_id == self.player1_id:
            return Side.PLAYER1
        if player_id == self.player2_id:
            return Side.PLAYER2
        return None

    def set_first_server(self, set_number: int) -> Side:
        """Set 1 opens with ``first_server``; servers alternate by set after that."""
        return self.first_server if set_number % 2 == 1 else self.first_server.opponent

    def is_super_tie_break_set(self, set_number: int) -> bool:
        return (
            self.final_set_type is FinalSetType.SUPER_TIE_BREAK
            and set_number == self.number_of_sets
        )


# ── Points ───────────────────────────────────────────────────────────────────

class Point(BaseModel):
    """One serve resolution. A first-serve fault is a point with no winner."""

    model_config = ConfigDict(frozen=True)

    sequence_number: int
    winner: Optional[Side] = None
    outcome: OutcomeKind
    shot_kind: Optional[ShotKind] = None
    server: Side
    serve_attempt: int = Field(default=1, ge=1, le=2)
    timestamp: datetime = Field(default_factory=utcnow)

    @model_validator(mode="after")
    def _serve_fault_shape(self) -> "Point":
        if self.outcome is OutcomeKind.SERVE_FAULT:
            if self.winner is not None:
                raise ValueError("A serve fault has no winner")
            if self.serve_attempt != 1:
                raise ValueError("A fault on the second serve is a double fault")
        elif self.outcome is OutcomeKind.DOUBLE_FAULT:
            if self.serve_attempt != 2:
                raise ValueError("A double fault happens on the second serve")
            if self.winner is not self.server.opponent:
                raise ValueError("A double fault is won by the receiver")
        return self

    @property
    def is_resolved(self) -> bool:
        return self.winner is not None


class LogEntry(Point):
    """A point plus the scoreboard as it stood right after it."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    acting_player: Side
    set_number: int
    game_score: str
    is_tie_break: bool = False
    games_score: str
    sets_score: str
    next_server: Side
    next_serve_attempt: int = Field(default=1, ge=1, le=2)
    is_break_point: bool = False

    def to_point(self) -> Point:
        return Point(
            sequence_number=self.sequence_number,
            winner=self.winner,
            outcome=self.outcome,
            shot_kind=self.shot_kind,
            server=self.server,
            serve_attempt=self.serve_attempt,
            timestamp=self.timestamp,
        )


# ── Games, tie-breaks and sets ───────────────────────────────────────────────

class Game(BaseModel):
    number: int
    server: Side
    score_player1: GameScore = GameScore.ZERO
    score_player2: GameScore = GameScore.ZERO
    winner: Optional[Side] = None
    points: list[Point] = Field(default_factory=list)

    def score(self, side: Side) -> GameScore:
        return getattr(self, f"score_{side.value}")

    def set_score(self, side: Side, value: GameScore) -> None:
        setattr(self, f"score_{side.value}", value)

    @property
    def display(self) -> str:
        return f"{self.score_player1.value}-{self.score_player2.value}"


class TieBreak(BaseModel):
    is_super: bool = False
    points_player1: int = 0
    points_player2: int = 0
    winner: Optional[Side] = None
    points: list[Point] = Field(default_factory=list)

    def count(self, side: Side) -> int:
        return getattr(self, f"points_{side.value}")

    def add_point(self, side: Side) -> None:
        setattr(self, f"points_{side.value}", self.count(side) + 1)

    @property
    def total_points(self) -> int:
        return self.points_player1 + self.points_player2

    @property
    def display(self) -> str:
        return f"{self.points_player1}-{self.points_player2}"


class SetState(BaseModel):
    number: int
    first_server: Side
    games_player1: int = 0
    games_player2: int = 0
    winner: Optional[Side] = None
    games: list[Game] = Field(default_factory=list)
    tie_break: Optional[TieBreak] = None

    def game_count(self, side: Side) -> int:
        return getattr(self, f"games_{side.value}")

    def add_game(self, side: Side) -> None:
        setattr(self, f"games_{side.value}", self.game_count(side) + 1)

    @property
    def in_tie_break(self) -> bool:
        return self.tie_break is not None and self.tie_break.winner is None

    @property
    def current_game(self) -> Optional[Game]:
        if not self.games or self.games[-1].winner is not None:
            return None
        return self.games[-1]

    @property
    def games_display(self) -> str:
        return f"{self.games_player1}-{self.games_player2}"

    @property
    def score_display(self) -> str:
        tb = self.tie_break
        if tb is not None and tb.is_super:
            return f"[{tb.display}]"
        text = self.games_display
        if tb is not None and tb.winner is not None:
            text += f"({tb.display})"
        return text


# ── Match ────────────────────────────────────────────────────────────────────

class Match(BaseModel):
    """Complete recorded state of one match."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    settings: MatchSettings
    status: MatchStatus = MatchStatus.IN_PROGRESS
    sets: list[SetState] = Field(default_factory=list)
    current_server: Side = Side.PLAYER1
    current_serve_attempt: int = Field(default=1, ge=1, le=2)
    winner: Optional[Side] = None
    log: list[LogEntry] = Field(default_factory=list)
    started_at: datetime = Field(default_factory=utcnow)
    ended_at: Optional[datetime] = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @property
    def is_completed(self) -> bool:
        return self.status is MatchStatus.COMPLETED

    @property
    def current_set(self) -> Optional[SetState]:
        return self.sets[-1] if self.sets else None

    def sets_won(self, side: Side) -> int:
        return sum(1 for s in self.sets if s.winner is side)

    @property
    def sets_display(self) -> str:
        return f"{self.sets_won(Side.PLAYER1)}-{self.sets_won(Side.PLAYER2)}"

    @property
    def score_display(self) -> str:
        """Human-readable score, e.g. '6-4 3-6 7-6(7-5)'."""
        parts = [s.score_display for s in self.sets if s.winner is not None or s.games or s.tie_break]
        return " ".join(parts) if parts else "0-0"

    @property
    def points(self) -> list[Point]:
        return [entry.to_point() for entry in self.log]

    def winner_id(self) -> Optional[str]:
        return self.settings.player_id(self.winner) if self.winner else None


class Scoreboard(BaseModel):
    """Display projection of the current match state."""

    match_id: str
    status: MatchStatus
    set_number: int
    game_number: int
    in_tie_break: bool = False
    player1_score: str
    player2_score: str
    games_player1: int = 0
    games_player2: int = 0
    sets_player1: int = 0
    sets_player2: int = 0
    server: Side
    serve_attempt: int = 1
    winner: Optional[Side] = None
    score_display: str = "0-0"
