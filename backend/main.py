from __future__ import annotations

import asyncio
import json
import logging
import uuid
from datetime import datetime
from typing import Dict, List, Optional

from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from pydantic import TypeAdapter, ValidationError

from app.api.rooms import router as rooms_router
from app.services.rooms import RoomRegistry, normalize_code
from app.services.scheduler import AsyncioScheduler
from app.settings import get_settings
from game import Rejection, Room, RoomError
from models import (
    ChatCommand,
    ChatMessage,
    Command,
    JoinCommand,
    Joined,
    LeaveCommand,
    Outbound,
    PeerJoined,
    PlayCommand,
    RegisterPeerCommand,
    Rejected,
    StartCommand,
)

settings = get_settings()
logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

# ---------- CORS with multiple origins ----------
ALLOWED_ORIGINS = settings.allowed_origins()

app = FastAPI(title="Family Hearts")
app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
    allow_credentials=True,
)

logger.info("CORS allow_origins: %s", ALLOWED_ORIGINS)

app.include_router(rooms_router)

COMMANDS = TypeAdapter(Command)


# ---------- WebSockets hub ----------
class Connection:
    def __init__(self, ws: WebSocket):
        self.ws = ws
        self.identity = uuid.uuid4().hex
        self.room_code: Optional[str] = None
        self.queue: asyncio.Queue = asyncio.Queue()


class Hub:
    def __init__(self):
        self.rooms: Dict[str, List[Connection]] = {}
        self.connections: Dict[str, Connection] = {}

    async def connect(self, ws: WebSocket) -> Connection:
        await ws.accept()
        conn = Connection(ws)
        self.connections[conn.identity] = conn
        logger.info("Socket connected: %s", conn.identity)
        return conn

    def disconnect(self, conn: Connection):
        self.unbind(conn)
        self.connections.pop(conn.identity, None)
        logger.info("Socket disconnected: %s", conn.identity)

    def bind(self, conn: Connection, code: str):
        self.unbind(conn)
        self.rooms.setdefault(code, []).append(conn)
        conn.room_code = code

    def unbind(self, conn: Connection):
        code = conn.room_code
        conn.room_code = None
        if code is None:
            return
        members = self.rooms.get(code, [])
        if conn in members:
            members.remove(conn)
        if not members:
            self.rooms.pop(code, None)

    def dispatch(self, outbound: Outbound):
        """Room sink: queue the event on its target sockets, never blocking the room."""
        message = outbound.event.to_message()
        if outbound.to is not None:
            conn = self.connections.get(outbound.to)
            if conn is not None:
                conn.queue.put_nowait(message)
            return
        for conn in list(self.rooms.get(outbound.room, [])):
            conn.queue.put_nowait(message)

    def send(self, conn: Connection, event):
        conn.queue.put_nowait(event.to_message())

    def send_others(self, conn: Connection, event):
        message = event.to_message()
        for other in list(self.rooms.get(conn.room_code or "", [])):
            if other is not conn:
                other.queue.put_nowait(message)

    async def pump(self, conn: Connection):
        while True:
            message = await conn.queue.get()
            try:
                await conn.ws.send_json(message)
            except (RuntimeError, WebSocketDisconnect):
                # socket already closed, the receive loop will clean up
                return


hub = Hub()
registry = RoomRegistry(
    config=settings.table_config(),
    scheduler=AsyncioScheduler(),
    sink=hub.dispatch,
)
app.state.registry = registry


# ---------- command handlers ----------
def _current_room(conn: Connection, code: Optional[str] = None) -> Room:
    if conn.room_code is None:
        raise RoomError(Rejection.NOT_SEATED)
    if code is not None and normalize_code(code) != conn.room_code:
        raise RoomError(Rejection.NOT_SEATED)
    room = registry.get(conn.room_code)
    if room is None:
        raise RoomError(Rejection.NOT_SEATED)
    return room


def _seat_name(conn: Connection) -> str:
    room = _current_room(conn)
    seat_index = room.seat_index_of(conn.identity)
    if seat_index is None:
        raise RoomError(Rejection.NOT_SEATED)
    return room.seats[seat_index].name


def _leave_room(conn: Connection):
    code = conn.room_code
    if code is None:
        return
    hub.unbind(conn)
    registry.leave(code, conn.identity)


def handle_join(conn: Connection, command: JoinCommand):
    code = normalize_code(command.room)
    already_bound = conn.room_code == code
    if not already_bound:
        _leave_room(conn)
        hub.bind(conn, code)
    try:
        room, seat_index = registry.join(code, conn.identity, command.display_name)
    except RoomError:
        if not already_bound:
            hub.unbind(conn)
        raise
    hub.send(conn, Joined(room=room.code, seat_index=seat_index, identity=conn.identity))


def handle_play(conn: Connection, command: PlayCommand):
    room = _current_room(conn, command.room)
    seat_index = room.seat_index_of(conn.identity)
    if seat_index is None:
        raise RoomError(Rejection.NOT_SEATED)
    if command.seat_index is not None and command.seat_index != seat_index:
        raise RoomError(Rejection.NOT_YOUR_TURN)
    room.play_card(seat_index, command.card)


def handle_command(conn: Connection, data) -> None:
    try:
        command = COMMANDS.validate_python(data)
    except ValidationError as exc:
        logger.info("Malformed message from %s: %s", conn.identity, exc.error_count())
        hub.send(conn, Rejected(reason=Rejection.MALFORMED.value, message="Malformed message"))
        return

    try:
        if isinstance(command, JoinCommand):
            handle_join(conn, command)
        elif isinstance(command, StartCommand):
            _current_room(conn, command.room).start_round()
        elif isinstance(command, PlayCommand):
            handle_play(conn, command)
        elif isinstance(command, LeaveCommand):
            _leave_room(conn)
        elif isinstance(command, ChatCommand):
            author = _seat_name(conn)
            hub.send_others(
                conn,
                ChatMessage(author=author, message=command.message, time=datetime.now().strftime("%H:%M")),
            )
        elif isinstance(command, RegisterPeerCommand):
            hub.send_others(conn, PeerJoined(peer_id=command.peer_id, name=_seat_name(conn)))
    except RoomError as exc:
        logger.info("Rejected %s from %s: %s", command.type, conn.identity, exc.reason.value)
        hub.send(conn, Rejected(reason=exc.reason.value, message=str(exc)))


# ---------- WS endpoint ----------
@app.websocket("/ws")
async def ws_game(ws: WebSocket):
    conn = await hub.connect(ws)
    sender = asyncio.create_task(hub.pump(conn))
    try:
        while True:
            raw = await ws.receive_text()
            try:
                data = json.loads(raw)
            except ValueError:
                data = None
            handle_command(conn, data)
    except WebSocketDisconnect:
        pass
    finally:
        _leave_room(conn)
        hub.disconnect(conn)
        sender.cancel()
