from __future__ import annotations
from typing import Annotated, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

Suit = Literal["H", "D", "C", "S"]

RANK_IMAGE_CODES: Dict[int, str] = {
    2: "2",
    3: "3",
    4: "4",
    5: "5",
    6: "6",
    7: "7",
    8: "8",
    9: "9",
    10: "0",
    11: "J",
    12: "Q",
    13: "K",
    14: "A",
}


def _image_url(suit: str, rank: int) -> Optional[str]:
    rank_code = RANK_IMAGE_CODES.get(rank)
    if not rank_code:
        return None
    return f"https://deckofcardsapi.com/static/img/{rank_code}{suit}.png"


class Card(BaseModel):
    suit: Suit
    rank: int = Field(ge=2, le=14)  # 11=J,12=Q,13=K,14=A
    id: Optional[str] = None
    image_url: Optional[str] = Field(default=None, alias="imageUrl")

    model_config = ConfigDict(populate_by_name=True, frozen=True, extra="ignore")

    @model_validator(mode="before")
    @classmethod
    def fill_defaults(cls, value):
        # display fields are derived, never trusted from the client
        if isinstance(value, dict):
            value = {k: v for k, v in value.items() if k not in ("id", "imageUrl", "image_url")}
            suit = value.get("suit")
            rank = value.get("rank")
            if isinstance(suit, str) and isinstance(rank, int) and rank in RANK_IMAGE_CODES:
                value["id"] = f"{RANK_IMAGE_CODES[rank]}{suit}"
                value["imageUrl"] = _image_url(suit, rank)
        return value

    def __str__(self) -> str:
        return f"{RANK_IMAGE_CODES.get(self.rank, self.rank)}{self.suit}"


class TableConfig(BaseModel):
    trick_delay_seconds: float = Field(2.0, ge=0, alias="trickDelaySeconds")
    game_over_score: int = Field(100, gt=0, alias="gameOverScore")
    jack_of_diamonds: bool = Field(False, alias="jackOfDiamonds")
    auto_start: bool = Field(False, alias="autoStart")

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class BoardEntry(BaseModel):
    seat_index: int = Field(alias="seatIndex")
    card: Card

    model_config = ConfigDict(populate_by_name=True)


class ScoreEntry(BaseModel):
    name: str
    score: int


class RosterSeat(BaseModel):
    seat_index: int = Field(alias="seatIndex")
    name: str
    score: int
    connected: bool

    model_config = ConfigDict(populate_by_name=True)


# ---------- outbound events ----------
class _Event(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    def to_message(self) -> dict:
        payload = self.model_dump(by_alias=True, exclude={"type"})
        return {"type": self.type, "payload": payload}


class Joined(_Event):
    type: Literal["joined"] = "joined"
    room: str
    seat_index: int = Field(alias="seatIndex")
    identity: str


class RosterChanged(_Event):
    type: Literal["roster_changed"] = "roster_changed"
    status: str
    seats: List[RosterSeat] = Field(default_factory=list)


class RoundStarted(_Event):
    type: Literal["round_started"] = "round_started"
    seat_index: int = Field(alias="seatIndex")
    round_number: int = Field(alias="roundNumber")
    hand: List[Card]
    turn_index: Optional[int] = Field(alias="turnIndex")
    scores: List[ScoreEntry]


class BoardUpdated(_Event):
    type: Literal["board_updated"] = "board_updated"
    board: List[BoardEntry]
    turn_index: Optional[int] = Field(alias="turnIndex")


class HandUpdated(_Event):
    type: Literal["hand_updated"] = "hand_updated"
    hand: List[Card]


class TrickResolved(_Event):
    type: Literal["trick_resolved"] = "trick_resolved"
    board: List[BoardEntry]
    winner_seat_index: int = Field(alias="winnerSeatIndex")
    points: int
    scores: List[ScoreEntry]


class TrickFinished(_Event):
    type: Literal["trick_finished"] = "trick_finished"
    scores: List[ScoreEntry]


class BoardCleared(_Event):
    type: Literal["board_cleared"] = "board_cleared"
    board: List[BoardEntry] = Field(default_factory=list)
    turn_index: Optional[int] = Field(alias="turnIndex")


class RoundSettled(_Event):
    type: Literal["round_settled"] = "round_settled"
    round_points: List[ScoreEntry] = Field(alias="roundPoints")
    scores: List[ScoreEntry]
    moon_shooter: Optional[int] = Field(default=None, alias="moonShooter")


class GameOver(_Event):
    type: Literal["game_over"] = "game_over"
    scores: List[ScoreEntry]
    winners: List[str] = Field(default_factory=list)


class Rejected(_Event):
    type: Literal["rejected"] = "rejected"
    reason: str
    message: str = ""


class ChatMessage(_Event):
    type: Literal["chat_message"] = "chat_message"
    author: str
    message: str
    time: str


class PeerJoined(_Event):
    type: Literal["peer_joined"] = "peer_joined"
    peer_id: str = Field(alias="peerId")
    name: str


Event = Annotated[
    Union[
        Joined,
        RosterChanged,
        RoundStarted,
        BoardUpdated,
        HandUpdated,
        TrickResolved,
        TrickFinished,
        BoardCleared,
        RoundSettled,
        GameOver,
        Rejected,
        ChatMessage,
        PeerJoined,
    ],
    Field(discriminator="type"),
]


class Outbound(BaseModel):
    """An event addressed to one identity, or to the whole room when ``to`` is None."""

    room: str
    to: Optional[str] = None
    event: Event


# ---------- inbound commands ----------
class _Command(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class JoinCommand(_Command):
    type: Literal["join"]
    room: str = Field(min_length=1, max_length=32)
    display_name: str = Field(alias="displayName", min_length=1, max_length=32)


class StartCommand(_Command):
    type: Literal["start"]
    room: Optional[str] = None


class PlayCommand(_Command):
    type: Literal["play"]
    room: Optional[str] = None
    seat_index: Optional[int] = Field(default=None, alias="seatIndex")
    card: Card


class LeaveCommand(_Command):
    type: Literal["leave"]


class ChatCommand(_Command):
    type: Literal["chat"]
    message: str = Field(min_length=1, max_length=500)


class RegisterPeerCommand(_Command):
    type: Literal["register_peer"]
    peer_id: str = Field(alias="peerId", min_length=1)


Command = Annotated[
    Union[JoinCommand, StartCommand, PlayCommand, LeaveCommand, ChatCommand, RegisterPeerCommand],
    Field(discriminator="type"),
]
