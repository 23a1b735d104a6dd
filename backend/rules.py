"""Hearts play legality and trick evaluation.

Everything here is a pure function of its arguments so the room can call it
without holding any extra state, and tests can exercise it directly.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Sequence

from deck import TWO_OF_CLUBS, card_points, is_point_card
from models import BoardEntry, Card


class Violation(str, Enum):
    NOT_IN_HAND = "not_in_hand"
    MUST_LEAD_TWO_OF_CLUBS = "must_lead_two_of_clubs"
    MUST_FOLLOW_SUIT = "must_follow_suit"
    HEARTS_NOT_BROKEN = "hearts_not_broken"
    NO_POINTS_ON_FIRST_TRICK = "no_points_on_first_trick"


VIOLATION_MESSAGES = {
    Violation.NOT_IN_HAND: "That card is not in your hand",
    Violation.MUST_LEAD_TWO_OF_CLUBS: "You must start with the 2 of Clubs!",
    Violation.MUST_FOLLOW_SUIT: "You must follow suit!",
    Violation.HEARTS_NOT_BROKEN: "Hearts are not broken yet!",
    Violation.NO_POINTS_ON_FIRST_TRICK: "Cannot play points on the first trick!",
}


@dataclass(frozen=True)
class TrickResult:
    winner: int
    points: int


def check_play(
    hand: Sequence[Card],
    card: Card,
    lead_suit: Optional[str],
    hearts_broken: bool,
    first_trick: bool,
) -> Optional[Violation]:
    """Return the first rule ``card`` breaks, or None when the play is legal."""
    if card not in hand:
        return Violation.NOT_IN_HAND

    leading = lead_suit is None
    if leading and first_trick and card != TWO_OF_CLUBS:
        return Violation.MUST_LEAD_TWO_OF_CLUBS

    if not leading and card.suit != lead_suit:
        if any(c.suit == lead_suit for c in hand):
            return Violation.MUST_FOLLOW_SUIT

    if leading and card.suit == "H" and not hearts_broken:
        if any(c.suit != "H" for c in hand):
            return Violation.HEARTS_NOT_BROKEN

    discarding = not leading and card.suit != lead_suit
    if first_trick and discarding and is_point_card(card):
        if not all(is_point_card(c) for c in hand):
            return Violation.NO_POINTS_ON_FIRST_TRICK

    return None


def is_legal_play(
    hand: Sequence[Card],
    card: Card,
    lead_suit: Optional[str],
    hearts_broken: bool,
    first_trick: bool,
) -> bool:
    return check_play(hand, card, lead_suit, hearts_broken, first_trick) is None


def legal_plays(
    hand: Sequence[Card],
    lead_suit: Optional[str],
    hearts_broken: bool,
    first_trick: bool,
) -> List[Card]:
    return [c for c in hand if check_play(hand, c, lead_suit, hearts_broken, first_trick) is None]


def lead_suit_of(board: Sequence[BoardEntry]) -> Optional[str]:
    return board[0].card.suit if board else None


def resolve_trick(board: Sequence[BoardEntry], jack_of_diamonds: bool = False) -> TrickResult:
    if not board:
        raise ValueError("Cannot resolve an empty trick")
    lead_suit = board[0].card.suit
    winning = max((entry for entry in board if entry.card.suit == lead_suit), key=lambda e: e.card.rank)
    points = sum(card_points(entry.card, jack_of_diamonds) for entry in board)
    return TrickResult(winner=winning.seat_index, points=points)
