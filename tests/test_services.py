"""Tests for the pure service layer: codec, role policy, win evaluation, roster views."""

import random

import pytest

from core.exceptions import DecodeError
from models import Role, RoomColor, Team
from schemas import Player
from services import codec
from services.role_service import assign_role, assign_room, generate_player_id
from services.roster_service import (
    find_host,
    is_current_viewer,
    players_in_room,
    room_statistics,
    search_players,
)
from services.win_service import evaluate

from conftest import ScriptedRandom


def _player(pid, role, room, name=None, address=None, is_host=False) -> Player:
    return Player(
        id=pid,
        encrypted_role=codec.encode(int(role)),
        encrypted_room=codec.encode(int(room)),
        is_host=is_host,
        address=address or f"0x{pid}",
        name=name or pid,
    )


# ── codec ─────────────────────────────────────────────────────────────────────


class TestCodec:
    @pytest.mark.parametrize("value", [1, 2, 3])
    def test_round_trip(self, value):
        assert codec.decode(codec.encode(value)) == value

    def test_token_shape(self):
        assert codec.encode(1) == "FHE-MQ=="

    def test_token_is_opaque_string(self):
        token = codec.encode(2)
        assert token.startswith(codec.TOKEN_PREFIX)
        assert "2" not in token[len(codec.TOKEN_PREFIX):]
        token.encode("utf-8")

    def test_plain_number_fallback(self):
        assert codec.decode("2") == 2

    def test_integral_float_accepted(self):
        assert codec.decode("3.0") == 3

    @pytest.mark.parametrize("token", ["", "abc", "2.5", "FHE-!!!", "FHE-YWJj", "FHE-"])
    def test_garbage_raises(self, token):
        with pytest.raises(DecodeError):
            codec.decode(token)

    def test_non_string_raises(self):
        with pytest.raises(DecodeError):
            codec.decode(None)

    def test_negative_rejected(self):
        with pytest.raises(ValueError):
            codec.encode(-1)


# ── role / room assignment ────────────────────────────────────────────────────


class TestRolePolicy:
    def test_first_is_president_without_randomness(self):
        assert assign_role(0, ScriptedRandom([])) == Role.PRESIDENT

    def test_second_is_bomber_without_randomness(self):
        assert assign_role(1, ScriptedRandom([])) == Role.BOMBER

    def test_elevated_president(self):
        assert assign_role(2, ScriptedRandom([0.71, 0.51])) == Role.PRESIDENT

    def test_elevated_bomber(self):
        assert assign_role(5, ScriptedRandom([0.99, 0.5])) == Role.BOMBER

    @pytest.mark.parametrize("draw", [0.0, 0.3, 0.7])
    def test_civilian(self, draw):
        assert assign_role(3, ScriptedRandom([draw])) == Role.CIVILIAN

    def test_distribution_is_thirty_seventy(self):
        rng = random.Random(1234)
        draws = [assign_role(4, rng) for _ in range(10000)]
        civilians = draws.count(Role.CIVILIAN) / len(draws)
        presidents = draws.count(Role.PRESIDENT)
        bombers = draws.count(Role.BOMBER)
        assert 0.67 < civilians < 0.73
        assert 0.4 < presidents / (presidents + bombers) < 0.6

    def test_room_draw(self):
        assert assign_room(ScriptedRandom([0.51])) == RoomColor.BLUE
        assert assign_room(ScriptedRandom([0.5])) == RoomColor.RED

    def test_player_id_format(self):
        millis, suffix = generate_player_id().split("-")
        assert millis.isdigit()
        assert len(suffix) == 4


# ── win evaluation ────────────────────────────────────────────────────────────


class TestWinEvaluator:
    def test_same_room_red_wins(self):
        players = [
            _player("p", Role.PRESIDENT, RoomColor.BLUE),
            _player("b", Role.BOMBER, RoomColor.BLUE),
        ]
        assert evaluate(players) == Team.RED

    def test_different_rooms_blue_wins(self):
        players = [
            _player("p", Role.PRESIDENT, RoomColor.BLUE),
            _player("b", Role.BOMBER, RoomColor.RED),
        ]
        assert evaluate(players) == Team.BLUE

    def test_missing_bomber_defaults_blue(self):
        players = [
            _player("p", Role.PRESIDENT, RoomColor.RED),
            _player("c", Role.CIVILIAN, RoomColor.RED),
        ]
        assert evaluate(players) == Team.BLUE

    def test_empty_roster_defaults_blue(self):
        assert evaluate([]) == Team.BLUE

    def test_first_president_and_bomber_decide(self):
        players = [
            _player("p1", Role.PRESIDENT, RoomColor.RED),
            _player("b1", Role.BOMBER, RoomColor.RED),
            _player("p2", Role.PRESIDENT, RoomColor.BLUE),
            _player("b2", Role.BOMBER, RoomColor.BLUE),
        ]
        assert evaluate(players) == Team.RED

    def test_deterministic(self):
        players = [
            _player("p", Role.PRESIDENT, RoomColor.BLUE),
            _player("b", Role.BOMBER, RoomColor.RED),
        ]
        assert {evaluate(players) for _ in range(5)} == {Team.BLUE}


# ── roster views ──────────────────────────────────────────────────────────────


class TestRosterViews:
    def _roster(self):
        return [
            _player("1", Role.PRESIDENT, RoomColor.BLUE, name="Alice", address="0xAAA1", is_host=True),
            _player("2", Role.BOMBER, RoomColor.RED, name="Bob", address="0xBBB2"),
            _player("3", Role.CIVILIAN, RoomColor.RED, name="Carol", address="0xCCC3"),
        ]

    def test_players_in_room(self):
        roster = self._roster()
        assert [p.id for p in players_in_room(roster, RoomColor.BLUE)] == ["1"]
        assert [p.id for p in players_in_room(roster, RoomColor.RED)] == ["2", "3"]

    def test_corrupt_room_left_out(self):
        roster = self._roster()
        roster.append(Player(
            id="4", encrypted_role="3", encrypted_room="nope",
            is_host=False, address="0xDDD4", name="Dan",
        ))
        assert len(players_in_room(roster, RoomColor.BLUE)) == 1
        assert len(players_in_room(roster, RoomColor.RED)) == 2

    def test_current_viewer(self):
        alice = self._roster()[0]
        assert is_current_viewer(alice, "0xaaa1")
        assert not is_current_viewer(alice, "0xBBB2")
        assert not is_current_viewer(alice, None)

    def test_search_by_name_or_address(self):
        roster = self._roster()
        assert [p.name for p in search_players(roster, "car")] == ["Carol"]
        assert [p.name for p in search_players(roster, "bbb")] == ["Bob"]
        assert len(search_players(roster, "")) == 3

    def test_statistics(self):
        assert room_statistics(self._roster()) == {"total": 3, "blue": 1, "red": 2}

    def test_find_host(self):
        assert find_host(self._roster()).name == "Alice"
