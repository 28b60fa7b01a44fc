"""
In-process store. Keeps serialized copies so callers never share state with it.
"""

from __future__ import annotations

from typing import Optional

from rallylog.exceptions import MatchNotFoundError, PlayerNotFoundError
from rallylog.models.match import Match
from rallylog.models.player import Player
from rallylog.storage.base import MatchStore


class InMemoryMatchStore(MatchStore):

    def __init__(self):
        self._matches: dict[str, str] = {}
        self._players: dict[str, str] = {}

    def _put_match(self, match: Match) -> None:
        self._matches[match.id] = match.model_dump_json()

    def load_match(self, match_id: str) -> Match:
        raw = self._matches.get(match_id)
        if raw is None:
            raise MatchNotFoundError(f"Match {match_id} not found")
        return Match.model_validate_json(raw)

    def list_matches(self, player_id: Optional[str] = None) -> list[Match]:
        matches = [Match.model_validate_json(raw) for raw in self._matches.values()]
        if player_id:
            matches = [m for m in matches if m.settings.side_of(player_id) is not None]
        return sorted(matches, key=lambda m: m.created_at)

    def delete_match(self, match_id: str) -> None:
        if self._matches.pop(match_id, None) is None:
            raise MatchNotFoundError(f"Match {match_id} not found")

    def _put_player(self, player: Player) -> None:
        self._players[player.id] = player.model_dump_json()

    def load_player(self, player_id: str) -> Player:
        raw = self._players.get(player_id)
        if raw is None:
            raise PlayerNotFoundError(f"Player {player_id} not found")
        return Player.model_validate_json(raw)

    def list_players(self) -> list[Player]:
        return sorted((Player.model_validate_json(raw) for raw in self._players.values()),
                      key=lambda p: p.name)

    def delete_player(self, player_id: str) -> None:
        if self._players.pop(player_id, None) is None:
            raise PlayerNotFoundError(f"Player {player_id} not found")
