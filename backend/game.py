from __future__ import annotations

import logging
import random
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional, Union

import dealer
from app.schemas import RoomSummary
from app.services.scheduler import Scheduler
from deck import JACK_OF_DIAMONDS, JACK_OF_DIAMONDS_POINTS, MAX_ROUND_POINTS
from models import (
    BoardCleared,
    BoardEntry,
    BoardUpdated,
    Card,
    GameOver,
    HandUpdated,
    Outbound,
    RosterChanged,
    RosterSeat,
    RoundSettled,
    RoundStarted,
    ScoreEntry,
    TableConfig,
    TrickFinished,
    TrickResolved,
)
from rules import VIOLATION_MESSAGES, TrickResult, Violation, check_play, lead_suit_of, resolve_trick

logger = logging.getLogger(__name__)

MAX_SEATS = dealer.SEAT_COUNT
TRICKS_PER_ROUND = dealer.CARDS_PER_SEAT


class RoomStatus(str, Enum):
    WAITING = "WAITING"
    PLAYING = "PLAYING"
    FINISHED = "FINISHED"


class Rejection(str, Enum):
    ROOM_FULL = "room_full"
    NAME_TAKEN = "name_taken"
    NOT_YOUR_TURN = "not_your_turn"
    NOT_SEATED = "not_seated"
    NOT_PLAYING = "not_playing"
    NOT_ENOUGH_PLAYERS = "not_enough_players"
    GAME_IN_PROGRESS = "game_in_progress"
    MALFORMED = "malformed"


REJECTION_MESSAGES = {
    Rejection.ROOM_FULL: "Room full",
    Rejection.NAME_TAKEN: "You already hold another seat in this room",
    Rejection.NOT_YOUR_TURN: "Not your turn",
    Rejection.NOT_SEATED: "Join a room first",
    Rejection.NOT_PLAYING: "Round not active",
    Rejection.NOT_ENOUGH_PLAYERS: "Need four players to start",
    Rejection.GAME_IN_PROGRESS: "Game already started",
    Rejection.MALFORMED: "Malformed message",
}


class RoomError(ValueError):
    def __init__(self, reason: Union[Rejection, Violation], message: Optional[str] = None):
        self.reason = reason
        if message is None:
            message = REJECTION_MESSAGES.get(reason) or VIOLATION_MESSAGES.get(reason) or reason.value
        super().__init__(message)


Sink = Callable[[Outbound], None]


@dataclass
class Seat:
    name: str
    identity: Optional[str] = None
    hand: List[Card] = field(default_factory=list)
    total_score: int = 0
    round_points: int = 0
    taken: List[Card] = field(default_factory=list)

    @property
    def connected(self) -> bool:
        return self.identity is not None


class Room:
    def __init__(
        self,
        code: str,
        config: Optional[TableConfig] = None,
        scheduler: Optional[Scheduler] = None,
        sink: Optional[Sink] = None,
        rng: Optional[random.Random] = None,
    ):
        self.code = code
        self.config = config or TableConfig()
        self.scheduler = scheduler
        self.rng = rng
        self._sink = sink
        self._lock = threading.RLock()

        self.seats: List[Seat] = []
        self.status = RoomStatus.WAITING

        self.board: List[BoardEntry] = []
        self.turn_index: Optional[int] = None
        self.hearts_broken = False
        self.trick_count = 0
        self.round_number = 0
        self.resolving_trick = False
        self.last_trick: Optional[TrickResult] = None
        self.closed = False

    # ------------------------------------------------------------------
    # Lobby management
    # ------------------------------------------------------------------
    def join(self, identity: str, name: str) -> int:
        name = name.strip()
        if not name:
            raise RoomError(Rejection.MALFORMED, "Display name is required")
        with self._lock:
            current = self.seat_index_of(identity)
            existing = self._seat_index_by_name(name)
            if existing is not None:
                if current is not None and current != existing:
                    raise RoomError(Rejection.NAME_TAKEN)
                self._rebind(existing, identity)
                return existing
            if current is not None:
                raise RoomError(Rejection.NAME_TAKEN)
            if len(self.seats) >= MAX_SEATS:
                raise RoomError(Rejection.ROOM_FULL)
            if self.status != RoomStatus.WAITING:
                raise RoomError(Rejection.GAME_IN_PROGRESS)
            self.seats.append(Seat(name=name, identity=identity))
            seat_index = len(self.seats) - 1
            logger.info("Room %s: %s took seat %s", self.code, name, seat_index)
            self._emit_roster()
            if self.config.auto_start and len(self.seats) == MAX_SEATS:
                self.start_round()
            return seat_index

    def _rebind(self, seat_index: int, identity: str):
        seat = self.seats[seat_index]
        if seat.identity != identity:
            logger.info("Room %s: %s reconnected to seat %s", self.code, seat.name, seat_index)
        seat.identity = identity
        self._emit_roster()
        if self.status == RoomStatus.PLAYING:
            self._emit_to(seat_index, self._round_started(seat_index))
            self._emit_to(seat_index, BoardUpdated(board=list(self.board), turn_index=self.turn_index))
        elif self.status == RoomStatus.FINISHED:
            self._emit_to(seat_index, self._game_over())

    def leave(self, identity: str) -> bool:
        with self._lock:
            seat_index = self.seat_index_of(identity)
            if seat_index is None:
                return False
            seat = self.seats[seat_index]
            if self.status == RoomStatus.WAITING:
                self.seats.pop(seat_index)
                logger.info("Room %s: %s left", self.code, seat.name)
            else:
                # keep hand and scores so the same name can reclaim the seat
                seat.identity = None
                logger.info("Room %s: %s disconnected from seat %s", self.code, seat.name, seat_index)
            self._emit_roster()
            return True

    @property
    def is_empty(self) -> bool:
        with self._lock:
            return not any(seat.connected for seat in self.seats)

    def close(self):
        """Called by the registry on teardown; pending trick continuations become no-ops."""
        with self._lock:
            self.closed = True
            self.resolving_trick = False
            self.turn_index = None

    # ------------------------------------------------------------------
    # Match lifecycle
    # ------------------------------------------------------------------
    def start_round(self):
        with self._lock:
            if self.status != RoomStatus.WAITING:
                raise RoomError(Rejection.GAME_IN_PROGRESS)
            if len(self.seats) != MAX_SEATS:
                raise RoomError(Rejection.NOT_ENOUGH_PLAYERS)
            dealer.deal(self, self.rng)
            self.status = RoomStatus.PLAYING
            self._announce_round()

    def _announce_round(self):
        for seat_index in range(len(self.seats)):
            self._emit_to(seat_index, self._round_started(seat_index))
        self._emit(BoardCleared(turn_index=self.turn_index))

    def play_card(self, seat_index: int, card: Card):
        with self._lock:
            if self.status != RoomStatus.PLAYING:
                raise RoomError(Rejection.NOT_PLAYING)
            if self.turn_index is None or seat_index != self.turn_index:
                raise RoomError(Rejection.NOT_YOUR_TURN)
            seat = self.seats[seat_index]
            violation = check_play(
                seat.hand,
                card,
                lead_suit_of(self.board),
                self.hearts_broken,
                self.trick_count == 0,
            )
            if violation is not None:
                raise RoomError(violation)

            seat.hand.remove(card)
            self.board.append(BoardEntry(seat_index=seat_index, card=card))
            if card.suit == "H":
                self.hearts_broken = True

            trick_complete = len(self.board) == MAX_SEATS
            self.turn_index = None if trick_complete else (seat_index + 1) % MAX_SEATS
            self._emit(BoardUpdated(board=list(self.board), turn_index=self.turn_index))
            self._emit_to(seat_index, HandUpdated(hand=list(seat.hand)))
            if trick_complete:
                self._resolve_trick()

    def _resolve_trick(self):
        result = resolve_trick(self.board, self.config.jack_of_diamonds)
        self.seats[result.winner].round_points += result.points
        self.resolving_trick = True
        self.last_trick = result
        logger.debug(
            "Room %s: trick %s to %s for %s points",
            self.code,
            self.trick_count + 1,
            self.seats[result.winner].name,
            result.points,
        )
        self._emit(
            TrickResolved(
                board=list(self.board),
                winner_seat_index=result.winner,
                points=result.points,
                scores=self.running_scores(),
            )
        )
        if self.scheduler is None:
            self.finish_trick()
        else:
            self.scheduler.call_later(self.config.trick_delay_seconds, self.finish_trick)

    def finish_trick(self):
        with self._lock:
            if self.closed or not self.resolving_trick or self.last_trick is None:
                return
            winner = self.last_trick.winner
            self.seats[winner].taken.extend(entry.card for entry in self.board)
            self.board = []
            self.resolving_trick = False
            self.turn_index = winner
            self.trick_count += 1
            if self.trick_count == TRICKS_PER_ROUND:
                self.settle_round()
                return
            self._emit(TrickFinished(scores=self.running_scores()))
            self._emit(BoardCleared(turn_index=self.turn_index))

    def _jack_bonus(self, seat: Seat) -> int:
        if self.config.jack_of_diamonds and JACK_OF_DIAMONDS in seat.taken:
            return JACK_OF_DIAMONDS_POINTS
        return 0

    def settle_round(self):
        """Fold round points into totals.

        A moon shooter's total stays unchanged and every other seat takes 26;
        the Jack of Diamonds bonus only counts toward detecting the shot.
        """
        with self._lock:
            if self.status != RoomStatus.PLAYING:
                raise RoomError(Rejection.NOT_PLAYING)
            round_points = [ScoreEntry(name=s.name, score=s.round_points) for s in self.seats]
            shooter = next(
                (
                    idx
                    for idx, seat in enumerate(self.seats)
                    if seat.round_points - self._jack_bonus(seat) == MAX_ROUND_POINTS
                ),
                None,
            )
            if shooter is not None:
                logger.info("Room %s: %s shot the moon", self.code, self.seats[shooter].name)
                for idx, seat in enumerate(self.seats):
                    if idx != shooter:
                        seat.total_score += MAX_ROUND_POINTS
            else:
                for seat in self.seats:
                    seat.total_score += seat.round_points
            for seat in self.seats:
                seat.round_points = 0

            logger.info(
                "Room %s: round %s settled, totals %s",
                self.code,
                self.round_number,
                {s.name: s.total_score for s in self.seats},
            )
            self._emit(RoundSettled(round_points=round_points, scores=self.scores(), moon_shooter=shooter))

            if any(seat.total_score >= self.config.game_over_score for seat in self.seats):
                self.status = RoomStatus.FINISHED
                self.turn_index = None
                logger.info("Room %s: game over", self.code)
                self._emit(self._game_over())
                return
            dealer.deal(self, self.rng)
            self._announce_round()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def seat_index_of(self, identity: Optional[str]) -> Optional[int]:
        if identity is None:
            return None
        for idx, seat in enumerate(self.seats):
            if seat.identity == identity:
                return idx
        return None

    def _seat_index_by_name(self, name: str) -> Optional[int]:
        key = name.casefold()
        for idx, seat in enumerate(self.seats):
            if seat.name.casefold() == key:
                return idx
        return None

    def scores(self) -> List[ScoreEntry]:
        return [ScoreEntry(name=s.name, score=s.total_score) for s in self.seats]

    def running_scores(self) -> List[ScoreEntry]:
        return [ScoreEntry(name=s.name, score=s.total_score + s.round_points) for s in self.seats]

    def roster(self) -> List[RosterSeat]:
        return [
            RosterSeat(seat_index=idx, name=s.name, score=s.total_score, connected=s.connected)
            for idx, s in enumerate(self.seats)
        ]

    def summary(self) -> RoomSummary:
        with self._lock:
            return RoomSummary(
                code=self.code,
                status=self.status.value,
                players=len(self.seats),
                players_max=MAX_SEATS,
                round_number=self.round_number,
                seats=self.roster(),
            )

    def _round_started(self, seat_index: int) -> RoundStarted:
        return RoundStarted(
            seat_index=seat_index,
            round_number=self.round_number,
            hand=list(self.seats[seat_index].hand),
            turn_index=self.turn_index,
            scores=self.scores(),
        )

    def _game_over(self) -> GameOver:
        ranked = sorted(self.scores(), key=lambda entry: entry.score)
        best = ranked[0].score if ranked else 0
        return GameOver(scores=ranked, winners=[e.name for e in ranked if e.score == best])

    def _emit_roster(self):
        self._emit(RosterChanged(status=self.status.value, seats=self.roster()))

    def _emit(self, event, to: Optional[str] = None):
        if self._sink is None or self.closed:
            return
        self._sink(Outbound(room=self.code, to=to, event=event))

    def _emit_to(self, seat_index: int, event):
        identity = self.seats[seat_index].identity
        if identity is None:
            return
        self._emit(event, to=identity)
