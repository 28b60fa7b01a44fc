"""
Stats routes — match, set, comparison and career statistics.
"""

from __future__ import annotations
from fastapi import APIRouter, Depends, HTTPException

from rallylog.engine.stats_calculator import StatsCalculator
from rallylog.models.stats import CareerStats, MatchComparison, MatchStats
from rallylog.api.deps import get_store
from rallylog.storage import MatchStore

router = APIRouter()

_stats_calc = StatsCalculator()


@router.get("/matches/{match_id}", response_model=MatchStats)
def get_match_stats(match_id: str, store: MatchStore = Depends(get_store)):
    """Per-player statistics for a match."""
    return _stats_calc.compute_match_stats(store.load_match(match_id))


@router.get("/matches/{match_id}/sets/{set_number}", response_model=MatchStats)
def get_set_stats(match_id: str, set_number: int, store: MatchStore = Depends(get_store)):
    match = store.load_match(match_id)
    if not 1 <= set_number <= len(match.sets):
        raise HTTPException(status_code=404, detail=f"Set {set_number} has not been played")
    return _stats_calc.compute_set_stats(match, set_number)


@router.get("/matches/{match_id}/comparison", response_model=MatchComparison)
def get_match_comparison(match_id: str, store: MatchStore = Depends(get_store)):
    return _stats_calc.compute_match_comparison(store.load_match(match_id))


@router.get("/players/{player_id}", response_model=CareerStats)
def get_career_stats(player_id: str, store: MatchStore = Depends(get_store)):
    """Career statistics over completed matches."""
    return _stats_calc.compute_career_stats(player_id, store.list_matches(player_id))
