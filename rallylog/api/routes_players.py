"""
Player routes — player profile CRUD.
"""

from __future__ import annotations
from typing import Optional

from fastapi import APIRouter, Depends, Response
from pydantic import BaseModel

from rallylog.models.player import Backhand, Handedness, Player
from rallylog.api.deps import get_store
from rallylog.storage import MatchStore

router = APIRouter()


class PlayerIn(BaseModel):
    name: str
    handedness: Handedness = Handedness.RIGHT
    backhand: Backhand = Backhand.DOUBLE_HAND
    utr_rating: Optional[float] = None


@router.post("/", response_model=Player, status_code=201)
def create_player(body: PlayerIn, store: MatchStore = Depends(get_store)):
    return store.save_player(Player(**body.model_dump()))


@router.get("/", response_model=list[Player])
def list_players(store: MatchStore = Depends(get_store)):
    return store.list_players()


@router.get("/{player_id}", response_model=Player)
def get_player(player_id: str, store: MatchStore = Depends(get_store)):
    return store.load_player(player_id)


@router.put("/{player_id}", response_model=Player)
def update_player(player_id: str, body: PlayerIn, store: MatchStore = Depends(get_store)):
    existing = store.load_player(player_id)
    updated = Player(id=existing.id, created_at=existing.created_at, **body.model_dump())
    return store.save_player(updated)


@router.delete("/{player_id}", status_code=204)
def delete_player(player_id: str, store: MatchStore = Depends(get_store)):
    store.delete_player(player_id)
    return Response(status_code=204)
