import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status

from app.schemas import RoomSummary
from app.services.rooms import RoomRegistry

router = APIRouter()
logger = logging.getLogger(__name__)


def get_registry(request: Request) -> RoomRegistry:
    return request.app.state.registry


@router.get("/api/rooms", response_model=list[RoomSummary], response_model_by_alias=True)
async def list_rooms(registry: RoomRegistry = Depends(get_registry)) -> list[RoomSummary]:
    return registry.summaries()


@router.get("/api/rooms/{code}", response_model=RoomSummary, response_model_by_alias=True)
async def room_detail(code: str, registry: RoomRegistry = Depends(get_registry)) -> RoomSummary:
    room = registry.get(code)
    if room is None:
        logger.info("Room lookup failed for code=%s", code)
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="room_not_found")
    return room.summary()
