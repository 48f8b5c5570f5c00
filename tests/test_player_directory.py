"""Tests for the gateway storage contract and the player directory."""

import json

import pytest

from core.exceptions import (
    DecodeError,
    DuplicateError,
    PersistenceError,
    PlayerNotFound,
    WriteConflict,
)
from core.gateway import PLAYERS_LIST_KEY, SqlGateway, player_key
from core.player_directory import PlayerDirectory
from models import KeyValueEntry
from schemas import Player
from services import codec


def _record(role=1, room=1, name="p", address="0x1", is_host=False) -> bytes:
    return json.dumps({
        "role": codec.encode(role),
        "room": codec.encode(room),
        "isHost": is_host,
        "address": address,
        "name": name,
    }).encode("utf-8")


def _store_roster(gateway, records: dict) -> None:
    gateway.set_data(PLAYERS_LIST_KEY, json.dumps(list(records)).encode("utf-8"))
    for pid, blob in records.items():
        gateway.set_data(player_key(pid), blob)


class TestSqlGateway:
    def test_missing_key_is_empty(self, gateway):
        assert gateway.get_data("nothing") == b""
        assert gateway.get_versioned("nothing") == (b"", 0)

    def test_set_and_replace(self, gateway):
        gateway.set_data("k", b"one")
        gateway.set_data("k", b"two")
        assert gateway.get_versioned("k") == (b"two", 2)

    def test_versioned_write(self, gateway):
        assert gateway.set_versioned("k", b"a", 0) == 1
        assert gateway.set_versioned("k", b"b", 1) == 2
        assert gateway.get_data("k") == b"b"

    def test_stale_version_conflicts(self, gateway):
        gateway.set_versioned("k", b"a", 0)
        gateway.set_versioned("k", b"b", 1)
        with pytest.raises(WriteConflict) as exc:
            gateway.set_versioned("k", b"stale", 1)
        assert exc.value.actual_version == 2
        assert gateway.get_data("k") == b"b"

    def test_create_race_conflicts(self, gateway):
        gateway.set_versioned("k", b"first", 0)
        with pytest.raises(WriteConflict):
            gateway.set_versioned("k", b"second", 0)
        assert gateway.get_data("k") == b"first"

    def test_namespaces_are_isolated(self, db, gateway):
        other = SqlGateway(db, namespace="other")
        gateway.set_data("k", b"mine")
        assert other.get_data("k") == b""

    def test_writes_stamp_updated_at(self, db, gateway):
        def stamp(key):
            return db.query(KeyValueEntry.updated_at).filter(
                KeyValueEntry.namespace == "test", KeyValueEntry.key == key
            ).scalar()

        gateway.set_data("plain", b"one")
        gateway.set_data("plain", b"two")
        gateway.set_versioned("cas", b"a", 0)
        gateway.set_versioned("cas", b"b", 1)
        assert stamp("plain") is not None
        assert stamp("cas") is not None

    def test_available(self, gateway):
        assert gateway.is_available()


class TestPlayerDirectory:
    def test_empty(self, gateway):
        assert PlayerDirectory(gateway).list_ids() == []

    def test_add_id_keeps_order(self, gateway):
        directory = PlayerDirectory(gateway)
        directory.add_id("a")
        directory.add_id("b")
        directory.add_id("c")
        assert directory.list_ids() == ["a", "b", "c"]

    def test_add_duplicate_rejected(self, gateway):
        directory = PlayerDirectory(gateway)
        directory.add_id("a")
        with pytest.raises(DuplicateError):
            directory.add_id("a")
        assert directory.list_ids() == ["a"]

    def test_add_with_stale_version_conflicts(self, gateway):
        directory = PlayerDirectory(gateway)
        _, version = directory.list_ids_versioned()
        directory.add_id("a")
        with pytest.raises(WriteConflict):
            directory.add_id("b", expected_version=version)
        assert directory.list_ids() == ["a"]

    def test_corrupt_list_reads_as_empty(self, gateway):
        gateway.set_data(PLAYERS_LIST_KEY, b"{not json")
        assert PlayerDirectory(gateway).list_ids() == []

    @pytest.mark.parametrize("blob", [b"{not json", b'{"a": 1}', b'["a", 2]'])
    def test_corrupt_list_is_never_overwritten(self, gateway, blob):
        gateway.set_data(PLAYERS_LIST_KEY, blob)
        directory = PlayerDirectory(gateway)
        with pytest.raises(PersistenceError):
            directory.list_ids_versioned(strict=True)
        with pytest.raises(PersistenceError):
            directory.add_id("newcomer")
        assert gateway.get_data(PLAYERS_LIST_KEY) == blob

    def test_save_and_load(self, gateway):
        directory = PlayerDirectory(gateway)
        player = Player(
            id="x", encrypted_role=codec.encode(2), encrypted_room=codec.encode(1),
            is_host=True, address="0xabc", name="Xavier",
        )
        directory.save(player)
        loaded = directory.load("x")
        assert loaded == player
        stored = json.loads(gateway.get_data(player_key("x")))
        assert set(stored) == {"role", "room", "isHost", "address", "name"}

    def test_load_missing(self, gateway):
        with pytest.raises(PlayerNotFound):
            PlayerDirectory(gateway).load("ghost")

    @pytest.mark.parametrize("blob", [
        b"not json",
        b'{"role": "FHE-MQ=="}',
        _record(role=9),
        json.dumps({"role": "???", "room": "1", "isHost": False,
                    "address": "0x1", "name": "bad"}).encode(),
    ])
    def test_load_malformed(self, gateway, blob):
        gateway.set_data(player_key("bad"), blob)
        with pytest.raises(DecodeError):
            PlayerDirectory(gateway).load("bad")

    def test_corrupt_record_skipped(self, gateway):
        _store_roster(gateway, {
            "p1": _record(role=1, room=1, name="one", is_host=True),
            "p2": _record(role=2, room=2, name="two"),
            "broken": b'{"role": "FHE-%%%", "room": "FHE-MQ=="',
            "p3": _record(role=3, room=1, name="three"),
        })
        players = PlayerDirectory(gateway).load_all()
        assert [p.id for p in players] == ["p1", "p2", "p3"]

    def test_listed_without_record_skipped(self, gateway):
        _store_roster(gateway, {"p1": _record()})
        gateway.set_data(PLAYERS_LIST_KEY, json.dumps(["p1", "ghost"]).encode())
        assert [p.id for p in PlayerDirectory(gateway).load_all()] == ["p1"]

    def test_legacy_plain_tokens_load(self, gateway):
        blob = json.dumps({"role": "2", "room": "1", "isHost": False,
                           "address": "0x1", "name": "old"}).encode()
        _store_roster(gateway, {"old": blob})
        (player,) = PlayerDirectory(gateway).load_all()
        assert player.role.value == 2
        assert player.room.value == 1

    def test_membership_needs_list_entry_and_record(self, gateway):
        _store_roster(gateway, {"p1": _record()})
        gateway.set_data(player_key("orphan"), _record(name="orphan"))
        gateway.set_data(PLAYERS_LIST_KEY, json.dumps(["p1", "ghost"]).encode())
        directory = PlayerDirectory(gateway)
        assert directory.is_member("p1")
        assert not directory.is_member("orphan")
        assert not directory.is_member("ghost")
