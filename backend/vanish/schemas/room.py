from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import Field, field_validator

from vanish.schemas.common import CamelModel
from vanish.security.sanitizer import InputSanitizer


class RoomCreateRequest(CamelModel):
    ttl: int = Field(default=3600, ge=60, le=86400, description='Room lifetime in seconds')
    pin: Optional[str] = Field(default=None, min_length=4, max_length=20)
    max_members: Optional[int] = Field(default=None, ge=2, le=100)


class RoomCreateResponse(CamelModel):
    success: bool = True
    room_id: str
    ttl: int
    expires_at: datetime
    max_members: Optional[int] = None
    has_pin: bool


class RoomInfo(CamelModel):
    id: str
    created_at: datetime
    expires_at: datetime
    has_pin: bool
    max_members: Optional[int] = None


class RoomGetResponse(CamelModel):
    success: bool = True
    room: RoomInfo


class JoinRoomRequest(CamelModel):
    pin: Optional[str] = Field(default=None, max_length=20)
    client_id: Optional[str] = None
    invite: Optional[str] = Field(default=None, max_length=2048)

    @field_validator('client_id')
    @classmethod
    def validate_client_id(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        return InputSanitizer.sanitize_identifier(v)


class JoinRoomResponse(CamelModel):
    success: bool = True
    member_count: int


class InviteRequest(CamelModel):
    ttl_seconds: int = Field(default=1800, ge=60, le=86400)


class InviteResponse(CamelModel):
    success: bool = True
    token: str
