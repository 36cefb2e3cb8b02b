# backend/vanish/api/routes/messages.py
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, status

from vanish.api.deps import get_gate
from vanish.schemas.common import StatusResponse
from vanish.schemas.message import (
    MessageListResponse,
    MessageMeta,
    MessageOut,
    MessageSendRequest,
    MessageSendResponse,
)
from vanish.services.gate import AccessGate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/rooms", tags=["messages"])


@router.post(
    "/{room_id}/messages",
    response_model=MessageSendResponse,
    status_code=status.HTTP_201_CREATED,
)
def send_message(
    room_id: str,
    req: MessageSendRequest,
    gate: AccessGate = Depends(get_gate),
) -> MessageSendResponse:
    msg = gate.send_message(
        room_id,
        ciphertext=req.ciphertext,
        iv=req.iv,
        salt=req.salt,
        auth_tag=req.auth_tag,
        sender_id=req.sender_id,
        ttl=req.ttl,
    )
    # metadata only, the ciphertext is not echoed back
    return MessageSendResponse(
        message=MessageMeta(
            id=msg.id,
            room_id=msg.room_id,
            timestamp=msg.timestamp,
            expires_at=msg.expires_at,
            ttl=msg.ttl,
        )
    )


@router.get(
    "/{room_id}/messages",
    response_model=MessageListResponse,
    response_model_exclude_none=True,
)
def list_messages(room_id: str, gate: AccessGate = Depends(get_gate)) -> MessageListResponse:
    messages = gate.list_messages(room_id)
    items = [
        MessageOut(
            id=m.id,
            room_id=m.room_id,
            ciphertext=m.ciphertext,
            iv=m.iv,
            salt=m.salt,
            auth_tag=m.auth_tag,
            sender_id=m.sender_id,
            timestamp=m.timestamp,
            expires_at=m.expires_at,
            ttl=m.ttl,
        )
        for m in messages
    ]
    logger.debug("Retrieved %d message(s) from room %s", len(items), room_id)
    return MessageListResponse(messages=items, count=len(items))


@router.delete("/{room_id}/messages/{message_id}", response_model=StatusResponse)
def delete_message(
    room_id: str,
    message_id: str,
    gate: AccessGate = Depends(get_gate),
) -> StatusResponse:
    gate.delete_message(room_id, message_id)
    return StatusResponse(message="Message deleted successfully")
