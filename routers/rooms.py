from fastapi import APIRouter, HTTPException
from typing import List
from schemas.rooms import RoomDetailsResponse, RoomSummary
from backend import signaling_backend
from logging_config import get_logger

logger = get_logger(__name__)

rooms_router = APIRouter(prefix="/rooms", tags=["rooms"])


@rooms_router.get("", response_model=List[RoomSummary])
async def list_rooms():
    """List every room that currently has members."""
    rooms = signaling_backend.directory.rooms()
    logger.debug(f"Room list requested: {len(rooms)} rooms")
    return [RoomSummary(name=name, member_count=count) for name, count in sorted(rooms.items())]


@rooms_router.get("/{room_name}", response_model=RoomDetailsResponse)
async def get_room_details(room_name: str):
    """
    Get the current membership of a room.

    Rooms only exist while they have members, so an empty or unknown
    room is a 404.
    """
    members = signaling_backend.directory.members_of(room_name)
    if not members:
        logger.debug(f"Room details failed: Room '{room_name}' not found")
        raise HTTPException(status_code=404, detail="Room not found")

    return RoomDetailsResponse(
        name=room_name.strip(),
        member_count=len(members),
        members=sorted(members),
    )
