from __future__ import annotations

import random
from collections import Counter
from typing import Callable, List, Optional, Tuple

from game import Room
from models import Card, Outbound, TableConfig

NAMES = ["Mom", "Dad", "Ana", "Leo"]


def c(suit: str, rank: int) -> Card:
    return Card(suit=suit, rank=rank)


class ManualScheduler:
    """Collects deferred callbacks so tests decide when the trick delay elapses."""

    def __init__(self):
        self.pending: List[Tuple[float, Callable[[], None]]] = []

    def call_later(self, delay: float, callback: Callable[[], None]) -> None:
        self.pending.append((delay, callback))

    def run_pending(self) -> int:
        ran = 0
        while self.pending:
            _, callback = self.pending.pop(0)
            callback()
            ran += 1
        return ran


class EventLog:
    def __init__(self):
        self.items: List[Outbound] = []

    def __call__(self, outbound: Outbound) -> None:
        self.items.append(outbound)

    def types(self) -> List[str]:
        return [o.event.type for o in self.items]

    def of_type(self, event_type: str) -> List[Outbound]:
        return [o for o in self.items if o.event.type == event_type]

    def clear(self):
        self.items.clear()


def seated_room(
    events: Optional[EventLog] = None,
    scheduler: Optional[ManualScheduler] = None,
    config: Optional[TableConfig] = None,
    seed: int = 7,
) -> Room:
    room = Room("TEST", config=config, scheduler=scheduler, sink=events, rng=random.Random(seed))
    for idx, name in enumerate(NAMES):
        room.join(f"id-{idx}", name)
    return room


def started_room(**kwargs) -> Room:
    room = seated_room(**kwargs)
    room.start_round()
    return room


def set_hands(room: Room, hands, turn_index: int = 0, trick_count: int = 3, hearts_broken: bool = False):
    # simplify deterministic state
    for seat, hand in zip(room.seats, hands):
        seat.hand = list(hand)
        seat.taken = []
        seat.round_points = 0
    room.board = []
    room.turn_index = turn_index
    room.trick_count = trick_count
    room.hearts_broken = hearts_broken
    room.resolving_trick = False


def cards_in_play(room: Room) -> Counter:
    cards = [card for seat in room.seats for card in seat.hand]
    cards += [entry.card for entry in room.board]
    cards += [card for seat in room.seats for card in seat.taken]
    return Counter(cards)
