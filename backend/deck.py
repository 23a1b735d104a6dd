from __future__ import annotations

import random
from typing import Iterable, List, Optional

from models import Card

SUITS = ["H", "D", "C", "S"]
RANKS = [2, 3, 4, 5, 6, 7, 8, 9, 10, 11, 12, 13, 14]  # 11=J, 12=Q, 13=K, 14=A
SUIT_SORT_ORDER = {"C": 0, "D": 1, "H": 2, "S": 3}

HEART_POINTS = 1
QUEEN_OF_SPADES_POINTS = 13
JACK_OF_DIAMONDS_POINTS = -10
MAX_ROUND_POINTS = 26

TWO_OF_CLUBS = Card(suit="C", rank=2)
QUEEN_OF_SPADES = Card(suit="S", rank=12)
JACK_OF_DIAMONDS = Card(suit="D", rank=11)


def new_deck() -> List[Card]:
    return [Card(suit=suit, rank=rank) for suit in SUITS for rank in RANKS]


def shuffle(cards: List[Card], rng: Optional[random.Random] = None) -> List[Card]:
    """Shuffle ``cards`` in place and return the same list.

    ``random.Random.shuffle`` walks from the last index down, swapping each
    position with a uniformly chosen one at or below it (Fisher-Yates).
    """
    (rng or random).shuffle(cards)
    return cards


def sort_hand(cards: Iterable[Card]) -> List[Card]:
    return sorted(cards, key=lambda c: (SUIT_SORT_ORDER[c.suit], c.rank))


def is_point_card(card: Card) -> bool:
    return card.suit == "H" or card == QUEEN_OF_SPADES


def penalty_points(card: Card) -> int:
    if card.suit == "H":
        return HEART_POINTS
    if card == QUEEN_OF_SPADES:
        return QUEEN_OF_SPADES_POINTS
    return 0


def card_points(card: Card, jack_of_diamonds: bool = False) -> int:
    if jack_of_diamonds and card == JACK_OF_DIAMONDS:
        return JACK_OF_DIAMONDS_POINTS
    return penalty_points(card)
