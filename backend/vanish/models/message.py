# backend/vanish/models/message.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any

from vanish.models.room import parse_iso


@dataclass
class MessageEnvelope:
    """Opaque ciphertext plus the metadata the server needs to expire it."""
    id: str
    room_id: str
    ciphertext: str
    iv: str  # AEAD nonce, as sent by the client
    ttl: int
    timestamp: datetime
    expires_at: datetime
    salt: str | None = None
    auth_tag: str | None = None
    sender_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "roomId": self.room_id,
            "ciphertext": self.ciphertext,
            "iv": self.iv,
            "ttl": self.ttl,
            "timestamp": self.timestamp.isoformat(),
            "expiresAt": self.expires_at.isoformat(),
        }
        # optional fields only when present
        if self.salt:
            data["salt"] = self.salt
        if self.auth_tag:
            data["authTag"] = self.auth_tag
        if self.sender_id:
            data["senderId"] = self.sender_id
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "MessageEnvelope":
        return cls(
            id=data["id"],
            room_id=data["roomId"],
            ciphertext=data["ciphertext"],
            iv=data["iv"],
            ttl=int(data["ttl"]),
            timestamp=parse_iso(data["timestamp"]),
            expires_at=parse_iso(data["expiresAt"]),
            salt=data.get("salt"),
            auth_tag=data.get("authTag"),
            sender_id=data.get("senderId"),
        )
