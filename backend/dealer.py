from __future__ import annotations

import logging
import random
from typing import TYPE_CHECKING, List, Optional, Sequence

from deck import TWO_OF_CLUBS, new_deck, shuffle, sort_hand
from models import Card

if TYPE_CHECKING:
    from game import Room

logger = logging.getLogger(__name__)

SEAT_COUNT = 4
CARDS_PER_SEAT = 13


def deal_hands(rng: Optional[random.Random] = None) -> List[List[Card]]:
    deck = shuffle(new_deck(), rng)
    # seat i gets positions i, i+4, i+8, ...
    return [sort_hand(deck[seat::SEAT_COUNT]) for seat in range(SEAT_COUNT)]


def opening_seat(hands: Sequence[Sequence[Card]]) -> int:
    for idx, hand in enumerate(hands):
        if TWO_OF_CLUBS in hand:
            return idx
    raise ValueError("Nobody holds the 2 of Clubs")


def deal(room: "Room", rng: Optional[random.Random] = None) -> List[List[Card]]:
    """Deal a fresh round into ``room`` and return the hands in seat order.

    Resets the per-round counters and hands the opening lead to whoever
    holds the 2 of Clubs. The caller holds the room lock.
    """
    if len(room.seats) != SEAT_COUNT:
        raise ValueError("Need exactly four seats to deal")
    hands = deal_hands(rng)
    for seat, hand in zip(room.seats, hands):
        seat.hand = list(hand)
        seat.round_points = 0
        seat.taken = []
    room.board = []
    room.hearts_broken = False
    room.trick_count = 0
    room.resolving_trick = False
    room.round_number += 1
    room.turn_index = opening_seat(hands)
    logger.info(
        "Room %s: dealt round %s, %s leads",
        room.code,
        room.round_number,
        room.seats[room.turn_index].name,
    )
    return hands
