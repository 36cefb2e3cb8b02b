from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import Field, field_validator

from vanish.schemas.common import CamelModel
from vanish.security.sanitizer import InputSanitizer

MAX_CIPHERTEXT_CHARS = 1024 * 1024


class MessageSendRequest(CamelModel):
    """
    Encrypted message as produced by the client.
    The server never sees plaintext; fields are stored as given.
    """
    ciphertext: str = Field(..., min_length=1, max_length=MAX_CIPHERTEXT_CHARS)
    iv: str = Field(..., min_length=1, max_length=256, description='AEAD nonce')
    salt: Optional[str] = Field(default=None, max_length=256)
    auth_tag: Optional[str] = Field(default=None, max_length=256)
    sender_id: Optional[str] = None
    ttl: int = Field(default=300, ge=30, le=86400)

    @field_validator('ciphertext', 'iv', 'salt', 'auth_tag')
    @classmethod
    def validate_opaque(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        return InputSanitizer.check_opaque(v, MAX_CIPHERTEXT_CHARS)

    @field_validator('sender_id')
    @classmethod
    def validate_sender(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        return InputSanitizer.sanitize_identifier(v)


class MessageMeta(CamelModel):
    id: str
    room_id: str
    timestamp: datetime
    expires_at: datetime
    ttl: int


class MessageSendResponse(CamelModel):
    success: bool = True
    message: MessageMeta


class MessageOut(CamelModel):
    """Ciphertext fields only."""
    id: str
    room_id: str
    ciphertext: str
    iv: str
    salt: Optional[str] = None
    auth_tag: Optional[str] = None
    sender_id: Optional[str] = None
    timestamp: datetime
    expires_at: datetime
    ttl: int


class MessageListResponse(CamelModel):
    success: bool = True
    messages: List[MessageOut]
    count: int
