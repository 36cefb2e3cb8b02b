# backend/vanish/models/room.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any


def utc_from_timestamp(ts: float) -> datetime:
    return datetime.fromtimestamp(ts, tz=timezone.utc)


def parse_iso(value: str) -> datetime:
    dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


@dataclass
class Room:
    id: str
    created_at: datetime
    expires_at: datetime
    pin_hash: str | None = None
    max_members: int | None = None

    @property
    def has_pin(self) -> bool:
        return bool(self.pin_hash)

    def remaining_seconds(self, now: float) -> int:
        """Whole seconds left, never below 1 so it is usable as a cache TTL."""
        return max(1, int(self.expires_at.timestamp() - now))

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "createdAt": self.created_at.isoformat(),
            "expiresAt": self.expires_at.isoformat(),
        }
        if self.pin_hash:
            data["pinHash"] = self.pin_hash
        if self.max_members:
            data["maxMembers"] = self.max_members
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Room":
        max_members = data.get("maxMembers")
        return cls(
            id=data["id"],
            created_at=parse_iso(data["createdAt"]),
            expires_at=parse_iso(data["expiresAt"]),
            pin_hash=data.get("pinHash"),
            max_members=int(max_members) if max_members else None,
        )
