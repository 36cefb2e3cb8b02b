# backend/vanish/models/blob.py
from __future__ import annotations

from dataclasses import dataclass

CATEGORY_CHAT = "chat"
CATEGORY_VAULT = "vault"


@dataclass
class BlobEntry:
    id: str
    room_id: str
    mime_type: str
    ttl_ms: int
    expires_at: float  # epoch seconds
    view_once: bool = False
    category: str = CATEGORY_CHAT
    size: int = 0
    payload: bytes | None = None  # None until the first put

    @property
    def is_filled(self) -> bool:
        return self.payload is not None

    def is_expired(self, now: float) -> bool:
        return self.expires_at <= now
