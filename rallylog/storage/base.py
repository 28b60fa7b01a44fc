"""
Store contract — save/load of match snapshots and player profiles.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional

from rallylog.models.match import Match, utcnow
from rallylog.models.player import Player


class MatchStore(ABC):
    """
    Persistence boundary for the engine.

    ``save_*`` stamps ``updated_at`` and returns the stored copy unless
    ``touch`` is False, which import uses to keep the incoming timestamp.
    Failures are raised as ``PersistenceError``.
    """

    # ── Matches ──────────────────────────────────────────────────────────────

    def save_match(self, match: Match, touch: bool = True) -> Match:
        if touch:
            match = match.model_copy(update={"updated_at": utcnow()})
        self._put_match(match)
        return match

    @abstractmethod
    def _put_match(self, match: Match) -> None: ...

    @abstractmethod
    def load_match(self, match_id: str) -> Match:
        """Raises ``MatchNotFoundError`` for an unknown id."""

    @abstractmethod
    def list_matches(self, player_id: Optional[str] = None) -> list[Match]: ...

    @abstractmethod
    def delete_match(self, match_id: str) -> None: ...

    # ── Players ──────────────────────────────────────────────────────────────

    def save_player(self, player: Player, touch: bool = True) -> Player:
        if touch:
            player = player.model_copy(update={"updated_at": utcnow()})
        self._put_player(player)
        return player

    @abstractmethod
    def _put_player(self, player: Player) -> None: ...

    @abstractmethod
    def load_player(self, player_id: str) -> Player:
        """Raises ``PlayerNotFoundError`` for an unknown id."""

    @abstractmethod
    def list_players(self) -> list[Player]: ...

    @abstractmethod
    def delete_player(self, player_id: str) -> None: ...
