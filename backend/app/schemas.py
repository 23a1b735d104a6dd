from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from models import RosterSeat


class RoomSummary(BaseModel):
    code: str
    status: str
    players: int
    players_max: int = Field(alias="playersMax")
    round_number: int = Field(0, alias="roundNumber")
    seats: list[RosterSeat] = Field(default_factory=list)

    model_config = ConfigDict(populate_by_name=True)
