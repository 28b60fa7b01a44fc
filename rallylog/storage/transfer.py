"""
Export/import — full backups of players and matches, merged by recency.
"""

from __future__ import annotations

import json
import logging
from contextlib import nullcontext
from datetime import datetime, timezone
from typing import Any, Callable, ContextManager, Optional

from pydantic import BaseModel, Field, ValidationError

from rallylog.engine.replay import rebuild
from rallylog.exceptions import DataIntegrityError, MatchNotFoundError, PlayerNotFoundError
from rallylog.models.match import Match, utcnow
from rallylog.models.player import Player
from rallylog.storage.base import MatchStore

logger = logging.getLogger(__name__)

EXPORT_VERSION = "1.0"


class ImportReport(BaseModel):
    players_added: int = 0
    players_updated: int = 0
    players_skipped: int = 0
    matches_added: int = 0
    matches_updated: int = 0
    matches_skipped: int = 0
    errors: list[str] = Field(default_factory=list)


def export_data(store: MatchStore) -> dict[str, Any]:
    """Every player and match, full logs included, as JSON-ready data."""
    players = store.list_players()
    matches = store.list_matches()
    logger.info("Exporting %d players and %d matches", len(players), len(matches))
    return {
        "version": EXPORT_VERSION,
        "exported_at": utcnow().isoformat(),
        "players": [p.model_dump(mode="json") for p in players],
        "matches": [m.model_dump(mode="json") for m in matches],
    }


def _aware(ts: datetime) -> datetime:
    return ts if ts.tzinfo is not None else ts.replace(tzinfo=timezone.utc)


def _record_id(raw: Any) -> str:
    return str(raw.get("id", "?")) if isinstance(raw, dict) else "?"


def _first_difference(stored: Any, derived: Any, path: str = "") -> Optional[str]:
    """Path and values of the first field where two dumped models differ."""
    if isinstance(stored, dict) and isinstance(derived, dict):
        for key in list(stored) + [k for k in derived if k not in stored]:
            found = _first_difference(stored.get(key), derived.get(key), f"{path}.{key}" if path else key)
            if found:
                return found
        return None
    if isinstance(stored, list) and isinstance(derived, list):
        for i, (a, b) in enumerate(zip(stored, derived)):
            found = _first_difference(a, b, f"{path}[{i}]")
            if found:
                return found
        if len(stored) != len(derived):
            return f"{path}: {len(stored)} stored items, {len(derived)} from the log"
        return None
    if stored != derived:
        return f"{path}: stored {stored!r}, log gives {derived!r}"
    return None


def verified_match(match: Match) -> Match:
    """
    Rebuild ``match`` from its log and require the stored snapshot to agree.

    Raises ``DataIntegrityError`` naming the first field that differs.
    """
    rebuilt = rebuild(match)
    difference = _first_difference(match.model_dump(mode="json"), rebuilt.model_dump(mode="json"))
    if difference:
        logger.error("Match %s does not agree with its log: %s", match.id, difference)
        raise DataIntegrityError(f"Snapshot does not match its log at {difference}")
    return rebuilt


def import_data(
    store: MatchStore,
    data: dict[str, Any],
    verify: bool = True,
    lock_for: Optional[Callable[[str], ContextManager]] = None,
) -> ImportReport:
    """
    Merge exported data into ``store``.

    For an id present on both sides the incoming copy wins only if its
    ``updated_at`` is strictly newer. With ``verify`` set every match is
    rebuilt from its log; scores, sets, status and per-point fields must
    equal the rebuilt ones. Records that fail validation or verification
    are listed in ``report.errors`` and not stored. ``lock_for`` maps a
    match id to the lock held while that match is compared and written.
    """
    report = ImportReport()

    for raw in data.get("players", []):
        try:
            player = Player.model_validate(raw)
        except ValidationError as exc:
            report.errors.append(f"player {_record_id(raw)}: {exc.error_count()} validation error(s)")
            continue
        try:
            existing = store.load_player(player.id)
        except PlayerNotFoundError:
            existing = None
        if existing is None:
            store.save_player(player, touch=False)
            report.players_added += 1
        elif _aware(player.updated_at) > _aware(existing.updated_at):
            store.save_player(player, touch=False)
            report.players_updated += 1
        else:
            report.players_skipped += 1

    for raw in data.get("matches", []):
        try:
            match = Match.model_validate(raw)
            if verify:
                match = verified_match(match)
        except ValidationError as exc:
            report.errors.append(f"match {_record_id(raw)}: {exc.error_count()} validation error(s)")
            continue
        except DataIntegrityError as exc:
            report.errors.append(f"match {_record_id(raw)}: {exc.detail}")
            continue
        with lock_for(match.id) if lock_for else nullcontext():
            try:
                existing = store.load_match(match.id)
            except MatchNotFoundError:
                existing = None
            if existing is None:
                store.save_match(match, touch=False)
                report.matches_added += 1
            elif _aware(match.updated_at) > _aware(existing.updated_at):
                store.save_match(match, touch=False)
                report.matches_updated += 1
            else:
                report.matches_skipped += 1

    if report.errors:
        logger.warning("Import finished with %d rejected record(s)", len(report.errors))
    logger.info(
        "Imported players +%d ~%d, matches +%d ~%d",
        report.players_added, report.players_updated, report.matches_added, report.matches_updated,
    )
    return report


def dumps(data: dict[str, Any]) -> str:
    return json.dumps(data, indent=2)


def loads(text: str) -> dict[str, Any]:
    return json.loads(text)
