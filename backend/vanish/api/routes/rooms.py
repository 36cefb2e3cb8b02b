# backend/vanish/api/routes/rooms.py
from __future__ import annotations

from fastapi import APIRouter, Depends, status

from vanish.api.deps import get_gate
from vanish.schemas.common import StatusResponse
from vanish.schemas.room import (
    InviteRequest,
    InviteResponse,
    JoinRoomRequest,
    JoinRoomResponse,
    RoomCreateRequest,
    RoomCreateResponse,
    RoomGetResponse,
    RoomInfo,
)
from vanish.services.gate import AccessGate

router = APIRouter(prefix="/api/rooms", tags=["rooms"])


@router.post("", response_model=RoomCreateResponse, status_code=status.HTTP_201_CREATED)
def create_room(
    req: RoomCreateRequest | None = None,
    gate: AccessGate = Depends(get_gate),
) -> RoomCreateResponse:
    req = req or RoomCreateRequest()
    room = gate.create_room(ttl=req.ttl, pin=req.pin, max_members=req.max_members)
    ttl = int(round((room.expires_at - room.created_at).total_seconds()))
    return RoomCreateResponse(
        room_id=room.id,
        ttl=ttl,
        expires_at=room.expires_at,
        max_members=room.max_members,
        has_pin=room.has_pin,
    )


@router.get("/{room_id}", response_model=RoomGetResponse)
def get_room(room_id: str, gate: AccessGate = Depends(get_gate)) -> RoomGetResponse:
    room = gate.get_room(room_id)
    return RoomGetResponse(
        room=RoomInfo(
            id=room.id,
            created_at=room.created_at,
            expires_at=room.expires_at,
            has_pin=room.has_pin,
            max_members=room.max_members,
        )
    )


@router.post("/{room_id}/join", response_model=JoinRoomResponse)
def join_room(
    room_id: str,
    req: JoinRoomRequest | None = None,
    gate: AccessGate = Depends(get_gate),
) -> JoinRoomResponse:
    req = req or JoinRoomRequest()
    count = gate.join_room(room_id, pin=req.pin, client_id=req.client_id, invite=req.invite)
    return JoinRoomResponse(member_count=count)


@router.post("/{room_id}/invite", response_model=InviteResponse)
def create_invite(
    room_id: str,
    req: InviteRequest | None = None,
    gate: AccessGate = Depends(get_gate),
) -> InviteResponse:
    req = req or InviteRequest()
    token = gate.create_invite(room_id, ttl_seconds=req.ttl_seconds)
    return InviteResponse(token=token)


@router.delete("/{room_id}", response_model=StatusResponse)
def delete_room(room_id: str, gate: AccessGate = Depends(get_gate)) -> StatusResponse:
    gate.delete_room(room_id)
    return StatusResponse(message="Room deleted successfully")
