"""
Tests for the match stores and export/import.
"""

from datetime import timedelta

import pytest

from rallylog.engine.scoring import new_match, record_point
from rallylog.engine.stats_calculator import compute_stats
from rallylog.exceptions import MatchNotFoundError, PersistenceError, PlayerNotFoundError
from rallylog.models.match import MatchSettings, OutcomeKind, Side
from rallylog.models.player import Handedness, Player
from rallylog.storage import InMemoryMatchStore, SqlMatchStore, create_store
from rallylog.storage.transfer import dumps, export_data, import_data, loads
from rallylog.validation.simulator import MatchSimulator


def _settings(player1_id="p1", player2_id="p2") -> MatchSettings:
    return MatchSettings(player1_id=player1_id, player2_id=player2_id)


@pytest.fixture(params=["memory", "sqlite"])
def store(request, tmp_path):
    if request.param == "memory":
        return InMemoryMatchStore()
    return SqlMatchStore(f"sqlite:///{tmp_path / 'rallylog.db'}")


class TestMatchStore:

    def test_save_and_load(self, store):
        match = record_point(new_match(_settings()), OutcomeKind.ACE)
        saved = store.save_match(match)
        loaded = store.load_match(match.id)
        assert loaded.model_dump() == saved.model_dump()
        assert loaded.log[0].outcome == OutcomeKind.ACE

    def test_save_stamps_updated_at(self, store):
        match = new_match(_settings())
        saved = store.save_match(match)
        assert saved.updated_at >= match.updated_at
        kept = store.save_match(match, touch=False)
        assert kept.updated_at == match.updated_at

    def test_save_overwrites(self, store):
        match = store.save_match(new_match(_settings()))
        store.save_match(record_point(match, OutcomeKind.ACE))
        assert len(store.load_match(match.id).log) == 1
        assert len(store.list_matches()) == 1

    def test_missing_match(self, store):
        with pytest.raises(MatchNotFoundError):
            store.load_match("nope")
        with pytest.raises(MatchNotFoundError):
            store.delete_match("nope")

    def test_delete(self, store):
        match = store.save_match(new_match(_settings()))
        store.delete_match(match.id)
        assert store.list_matches() == []

    def test_list_filters_by_player(self, store):
        store.save_match(new_match(_settings("alice", "bob")))
        store.save_match(new_match(_settings("carol", "alice")))
        store.save_match(new_match(_settings("bob", "carol")))
        assert len(store.list_matches()) == 3
        assert len(store.list_matches(player_id="alice")) == 2
        assert store.list_matches(player_id="dave") == []


class TestPlayerStore:

    def test_crud(self, store):
        player = store.save_player(Player(name="Ana Ivanovic", handedness=Handedness.RIGHT, utr_rating=12.5))
        assert store.load_player(player.id).name == "Ana Ivanovic"

        store.save_player(player.model_copy(update={"utr_rating": 13.0}))
        assert store.load_player(player.id).utr_rating == 13.0

        store.save_player(Player(name="Bjorn Borg"))
        assert [p.name for p in store.list_players()] == ["Ana Ivanovic", "Bjorn Borg"]

        store.delete_player(player.id)
        with pytest.raises(PlayerNotFoundError):
            store.load_player(player.id)
        with pytest.raises(PlayerNotFoundError):
            store.delete_player(player.id)


class TestSqlStore:

    def test_database_failure_raises_persistence_error(self, tmp_path):
        store = SqlMatchStore(f"sqlite:///{tmp_path / 'broken.db'}")
        with store.engine.begin() as conn:
            conn.exec_driver_sql("DROP TABLE matches")
        with pytest.raises(PersistenceError):
            store.save_match(new_match(_settings()))

    def test_create_store(self, tmp_path):
        assert isinstance(create_store("memory://"), InMemoryMatchStore)
        assert isinstance(create_store(f"sqlite:///{tmp_path / 'x.db'}"), SqlMatchStore)


class TestTransfer:

    @pytest.fixture
    def source(self):
        store = InMemoryMatchStore()
        store.save_player(Player(id="p1", name="Rafael Nadal", handedness=Handedness.LEFT))
        store.save_player(Player(id="p2", name="Roger Federer"))
        store.save_match(MatchSimulator(seed=8).simulate(_settings(), match_id="m1"))
        store.save_match(record_point(new_match(_settings(), match_id="m2"), OutcomeKind.ACE))
        return store

    def test_export_import_round_trip(self, source):
        text = dumps(export_data(source))
        target = InMemoryMatchStore()
        report = import_data(target, loads(text))

        assert report.players_added == 2
        assert report.matches_added == 2
        assert report.errors == []
        original = source.load_match("m1")
        imported = target.load_match("m1")
        assert imported.updated_at == original.updated_at
        assert compute_stats(imported.log) == compute_stats(original.log)
        assert imported.score_display == original.score_display

    def test_newer_copy_wins(self, source):
        data = export_data(source)
        target = InMemoryMatchStore()
        stale = new_match(_settings(), match_id="m2")
        stale = stale.model_copy(update={"updated_at": source.load_match("m2").updated_at - timedelta(hours=1)})
        target.save_match(stale, touch=False)

        report = import_data(target, data)
        assert report.matches_updated == 1
        assert len(target.load_match("m2").log) == 1

    def test_equal_or_older_copy_skipped(self, source):
        data = export_data(source)
        target = InMemoryMatchStore()
        import_data(target, data)
        local = record_point(target.load_match("m2"), OutcomeKind.ACE)
        target.save_match(local)

        report = import_data(target, data)
        assert report.players_skipped == 2
        assert report.matches_skipped == 2
        assert len(target.load_match("m2").log) == 2

    def test_invalid_records_reported(self, source):
        data = export_data(source)
        data["players"][0]["name"] = "R2-D2!"
        entry = data["matches"][0]["log"][0]
        entry["server"] = Side.PLAYER2.value if entry["server"] == Side.PLAYER1.value else Side.PLAYER1.value

        target = InMemoryMatchStore()
        report = import_data(target, data)
        assert len(report.errors) == 2
        assert report.players_added == 1
        assert report.matches_added == 1
        with pytest.raises(MatchNotFoundError):
            target.load_match(data["matches"][0]["id"])

    def test_tampered_break_points_rejected(self, source):
        data = export_data(source)
        raw = next(m for m in data["matches"] if m["id"] == "m1")
        for entry in raw["log"]:
            entry["is_break_point"] = True

        target = InMemoryMatchStore()
        report = import_data(target, data)
        assert report.matches_added == 1
        assert len(report.errors) == 1
        assert "is_break_point" in report.errors[0]
        with pytest.raises(MatchNotFoundError):
            target.load_match("m1")

    def test_truncated_log_under_completed_status_rejected(self, source):
        data = export_data(source)
        raw = next(m for m in data["matches"] if m["id"] == "m1")
        assert raw["status"] == "completed"
        raw["log"] = raw["log"][:5]

        target = InMemoryMatchStore()
        report = import_data(target, data)
        assert len(report.errors) == 1
        assert "status" in report.errors[0]
        with pytest.raises(MatchNotFoundError):
            target.load_match("m1")

    def test_unverified_import_keeps_snapshot(self, source):
        data = export_data(source)
        raw = next(m for m in data["matches"] if m["id"] == "m2")
        raw["log"][0]["game_score"] = "40-0"
        target = InMemoryMatchStore()
        report = import_data(target, data, verify=False)
        assert report.errors == []
        assert target.load_match("m2").log[0].game_score == "40-0"

    def test_non_object_records_reported(self):
        target = InMemoryMatchStore()
        report = import_data(target, {"players": ["junk"], "matches": [42, None]})
        assert len(report.errors) == 3
        assert all(e.split(":")[0].endswith("?") for e in report.errors)
        assert target.list_matches() == []
