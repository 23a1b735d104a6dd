from concurrent.futures import ThreadPoolExecutor

import pytest

from app.services.rooms import RoomRegistry, normalize_code
from game import Rejection, RoomError, RoomStatus
from helpers import NAMES, EventLog, ManualScheduler, c, set_hands
from models import TableConfig


def test_normalize_code_is_case_insensitive():
    assert normalize_code("fam") == "FAM"
    assert normalize_code("  Fam ") == "FAM"


def test_normalize_code_rejects_blank():
    with pytest.raises(RoomError) as exc:
        normalize_code("   ")
    assert exc.value.reason == Rejection.MALFORMED


def test_get_or_create_returns_same_room_for_any_case():
    registry = RoomRegistry()
    room = registry.get_or_create("fam")
    assert registry.get_or_create("FAM") is room
    assert registry.get(" Fam") is room
    assert room.code == "FAM"
    assert len(registry) == 1
    assert "fam" in registry


def test_rooms_share_registry_config_and_sink():
    events = EventLog()
    registry = RoomRegistry(config=TableConfig(game_over_score=50), sink=events)
    room, seat_index = registry.join("abc", "id-0", "Mom")
    assert seat_index == 0
    assert room.config.game_over_score == 50
    assert events.of_type("roster_changed")[-1].room == "ABC"


def test_failed_join_does_not_leave_empty_room_behind():
    registry = RoomRegistry()
    with pytest.raises(RoomError):
        registry.join("fresh", "id-0", "  ")
    assert registry.get("fresh") is None


def test_leave_last_player_removes_room():
    registry = RoomRegistry()
    registry.join("fam", "id-0", "Mom")
    registry.join("fam", "id-1", "Dad")
    assert not registry.leave("fam", "id-0")
    assert registry.get("fam") is not None
    assert registry.leave("FAM", "id-1")
    assert registry.get("fam") is None
    assert not registry.leave("fam", "id-1")


def test_room_survives_until_last_connected_seat_leaves_mid_game():
    registry = RoomRegistry()
    for idx, name in enumerate(["Mom", "Dad", "Ana", "Leo"]):
        registry.join("fam", f"id-{idx}", name)
    room = registry.get("fam")
    room.start_round()
    for idx in range(3):
        assert not registry.leave("fam", f"id-{idx}")
    assert room.status == RoomStatus.PLAYING
    assert registry.leave("fam", "id-3")
    assert registry.get("fam") is None


def test_remove_room():
    registry = RoomRegistry()
    room = registry.get_or_create("fam")
    assert registry.remove("fam") is room
    assert registry.remove("fam") is None


def test_concurrent_joins_fill_exactly_four_seats():
    registry = RoomRegistry()

    def attempt(idx):
        try:
            registry.join("busy" if idx % 2 else "BUSY", f"id-{idx}", f"player-{idx}")
        except RoomError as exc:
            return exc.reason
        return "seated"

    with ThreadPoolExecutor(max_workers=8) as pool:
        results = list(pool.map(attempt, range(20)))

    assert results.count("seated") == 4
    assert results.count(Rejection.ROOM_FULL) == 16
    assert len(registry) == 1
    assert len(registry.get("busy").seats) == 4


def test_concurrent_reconnects_bind_one_identity():
    registry = RoomRegistry()
    registry.join("fam", "first", "Mom")

    with ThreadPoolExecutor(max_workers=8) as pool:
        list(pool.map(lambda idx: registry.join("fam", f"tab-{idx}", "Mom"), range(16)))

    room = registry.get("fam")
    assert len(room.seats) == 1
    assert room.seats[0].identity.startswith("tab-")


def test_summaries():
    registry = RoomRegistry()
    registry.join("one", "id-0", "Mom")
    registry.join("two", "id-1", "Dad")
    codes = sorted(s.code for s in registry.summaries())
    assert codes == ["ONE", "TWO"]


def test_pending_trick_of_torn_down_room_does_not_reach_new_room():
    events = EventLog()
    scheduler = ManualScheduler()
    registry = RoomRegistry(scheduler=scheduler, sink=events)
    for idx, name in enumerate(NAMES):
        registry.join("fam", f"id-{idx}", name)
    old = registry.get("fam")
    old.start_round()
    set_hands(old, [[c("S", 5), c("C", 3)], [c("S", 9), c("C", 4)], [c("S", 2), c("C", 5)], [c("S", 3), c("C", 6)]])
    for card in [c("S", 5), c("S", 9), c("S", 2), c("S", 3)]:
        old.play_card(old.turn_index, card)
    assert scheduler.pending

    for idx in range(4):
        registry.leave("fam", f"id-{idx}")
    assert old.closed
    fresh, _ = registry.join("FAM", "fresh", "Zed")
    assert fresh is not old

    events.clear()
    scheduler.run_pending()
    assert events.items == []
    assert fresh.status == RoomStatus.WAITING
