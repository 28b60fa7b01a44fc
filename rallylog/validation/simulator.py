"""
Match Simulator — random but legal point sequences for cross-validation.

Serve, rally and shot probabilities follow typical club-level match
figures; every generated point is accepted by the scoring engine.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

import numpy as np
from pydantic import BaseModel, Field

from rallylog.config import settings as app_settings
from rallylog.engine.scoring import new_match, record_point
from rallylog.models.match import Match, MatchSettings, OutcomeKind, ShotKind, Side

logger = logging.getLogger(__name__)

SIMULATION_EPOCH = datetime(2024, 1, 1, 10, 0, tzinfo=timezone.utc)

DEFAULT_SHOT_WEIGHTS = {
    ShotKind.FOREHAND_GROUND_STROKE: 0.30,
    ShotKind.BACKHAND_GROUND_STROKE: 0.25,
    ShotKind.FOREHAND_SLICE: 0.05,
    ShotKind.BACKHAND_SLICE: 0.05,
    ShotKind.FOREHAND_VOLLEY: 0.08,
    ShotKind.BACKHAND_VOLLEY: 0.07,
    ShotKind.LOB: 0.05,
    ShotKind.OVERHEAD: 0.05,
    ShotKind.APPROACH_SHOT: 0.05,
    ShotKind.DROP_SHOT: 0.05,
}

WINNER_SHOT_WEIGHTS = {
    **DEFAULT_SHOT_WEIGHTS,
    ShotKind.PASSING_SHOT: 0.04,
    ShotKind.RETURN: 0.03,
}


class SimulationProbabilities(BaseModel):
    first_serve_in: float = Field(default=0.65, ge=0, le=1)
    ace_on_first_serve: float = Field(default=0.05, ge=0, le=1)
    double_fault: float = Field(default=0.03, ge=0, le=1)
    # Rally outcomes once the serve is in; the remainder is a server winner.
    winner: float = Field(default=0.15, ge=0, le=1)
    unforced_error: float = Field(default=0.20, ge=0, le=1)
    forced_error: float = Field(default=0.10, ge=0, le=1)
    return_error: float = Field(default=0.10, ge=0, le=1)


SimulatedPoint = tuple[OutcomeKind, Optional[Side], Optional[ShotKind]]


class MatchSimulator:
    """
    Drives the scoring engine with random points.

    Usage:
        sim = MatchSimulator(seed=7)
        match = sim.simulate(MatchSettings(player1_id="a", player2_id="b"))
    """

    def __init__(self, probabilities: Optional[SimulationProbabilities] = None, seed: Optional[int] = None):
        self.probabilities = probabilities or SimulationProbabilities()
        self.rng = np.random.default_rng(seed)
        self._shots = self._weights(DEFAULT_SHOT_WEIGHTS)
        self._winner_shots = self._weights(WINNER_SHOT_WEIGHTS)

    @staticmethod
    def _weights(table: dict[ShotKind, float]) -> tuple[list[ShotKind], np.ndarray]:
        kinds = list(table)
        p = np.array([table[k] for k in kinds], dtype=float)
        return kinds, p / p.sum()

    def _pick_shot(self, winner_shot: bool) -> ShotKind:
        kinds, p = self._winner_shots if winner_shot else self._shots
        return kinds[int(self.rng.choice(len(kinds), p=p))]

    def _coin(self, server: Side) -> Side:
        return server if self.rng.random() < 0.5 else server.opponent

    def next_point(self, server: Side, serve_attempt: int) -> SimulatedPoint:
        """Draw the next point for the given serving situation."""
        prob = self.probabilities
        if serve_attempt == 1:
            if self.rng.random() > prob.first_serve_in:
                return OutcomeKind.SERVE_FAULT, None, None
            if self.rng.random() < prob.ace_on_first_serve:
                return OutcomeKind.ACE, server, None
        elif self.rng.random() < prob.double_fault:
            return OutcomeKind.SERVE_FAULT, None, None

        roll = self.rng.random()
        cumulative = prob.winner
        if roll < cumulative:
            return OutcomeKind.WINNER, self._coin(server), self._pick_shot(winner_shot=True)
        cumulative += prob.unforced_error
        if roll < cumulative:
            return OutcomeKind.UNFORCED_ERROR, self._coin(server).opponent, self._pick_shot(winner_shot=False)
        cumulative += prob.forced_error
        if roll < cumulative:
            return OutcomeKind.FORCED_ERROR, self._coin(server).opponent, self._pick_shot(winner_shot=False)
        cumulative += prob.return_error
        if roll < cumulative:
            return OutcomeKind.RETURN_ERROR, server, None
        return OutcomeKind.WINNER, server, self._pick_shot(winner_shot=True)

    def simulate(
        self,
        settings: MatchSettings,
        max_points: Optional[int] = None,
        match_id: Optional[str] = None,
    ) -> Match:
        """Play points until the match completes or ``max_points`` log entries exist."""
        limit = max_points or app_settings.SIMULATION_MAX_POINTS
        match = new_match(settings, match_id=match_id, started_at=SIMULATION_EPOCH,
                          created_at=SIMULATION_EPOCH, updated_at=SIMULATION_EPOCH)
        while not match.is_completed and len(match.log) < limit:
            outcome, winner, shot = self.next_point(match.current_server, match.current_serve_attempt)
            timestamp = SIMULATION_EPOCH + timedelta(seconds=30 * (len(match.log) + 1))
            match = record_point(match, outcome, winner, shot, timestamp=timestamp)
        if not match.is_completed:
            logger.warning("Simulation of %s stopped after %d points without a result", match.id, limit)
        return match
