"""
Room, membership and message storage on top of Redis.

Redis gives native per-key expiry; on top of that every read re-checks the
stored deadline so an entry is never served past its lifetime even if Redis
has not reclaimed it yet.

Key layout:
    room:{roomId}             JSON room record, expires with the room
    room:{roomId}:members     set of member ids, TTL refreshed to the room's remaining lifetime
    room:{roomId}:messages    list of message ids, newest first
    message:{messageId}       JSON envelope, expires with the message

The writes in add_message are separate round trips. A crash between them leaves
either an id without an envelope (skipped on read, pruned by
cleanup_expired_messages) or an envelope nobody lists (expires on its own).
"""
from __future__ import annotations

import functools
import json
import logging
import secrets
import string
import time
from datetime import timedelta
from typing import Any, Callable, List, Optional

import redis

from vanish.core.errors import Unavailable
from vanish.models.message import MessageEnvelope
from vanish.models.room import Room, utc_from_timestamp

logger = logging.getLogger(__name__)

_ID_ALPHABET = string.ascii_lowercase + string.digits


def room_key(room_id: str) -> str:
    return f"room:{room_id}"


def members_key(room_id: str) -> str:
    return f"room:{room_id}:members"


def messages_key(room_id: str) -> str:
    return f"room:{room_id}:messages"


def message_key(message_id: str) -> str:
    return f"message:{message_id}"


def _redis_guard(func):
    """Map connectivity failures to Unavailable; everything else propagates."""
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except (redis.exceptions.ConnectionError, redis.exceptions.TimeoutError) as e:
            logger.error("Redis unavailable during %s: %s", func.__name__, e)
            raise Unavailable() from e
    return wrapper


class SessionStore:
    def __init__(self, client: redis.Redis, clock: Callable[[], float] = time.time):
        self.client = client
        self._clock = clock

    # -- rooms ---------------------------------------------------------

    @_redis_guard
    def create_room(
        self,
        room_id: str,
        ttl_seconds: int,
        pin_hash: str | None = None,
        max_members: int | None = None,
    ) -> Room:
        now = self._clock()
        room = Room(
            id=room_id,
            created_at=utc_from_timestamp(now),
            expires_at=utc_from_timestamp(now + ttl_seconds),
            pin_hash=pin_hash,
            max_members=max_members,
        )
        self.client.setex(room_key(room_id), ttl_seconds, json.dumps(room.to_dict()))
        return room

    @_redis_guard
    def get_room(self, room_id: str) -> Optional[Room]:
        raw = self.client.get(room_key(room_id))
        if not raw:
            return None
        room = Room.from_dict(json.loads(raw))
        if room.expires_at.timestamp() <= self._clock():
            return None
        return room

    def room_exists(self, room_id: str) -> bool:
        return self.get_room(room_id) is not None

    @_redis_guard
    def delete_room(self, room_id: str) -> bool:
        message_ids = self.client.lrange(messages_key(room_id), 0, -1)
        keys = [room_key(room_id), members_key(room_id), messages_key(room_id)]
        keys.extend(message_key(mid) for mid in message_ids)
        return bool(self.client.delete(*keys))

    # -- membership ----------------------------------------------------

    @_redis_guard
    def add_member(self, room_id: str, member_id: str, remaining_ttl_seconds: int) -> int:
        key = members_key(room_id)
        self.client.sadd(key, member_id)
        if remaining_ttl_seconds:
            self.client.expire(key, max(1, int(remaining_ttl_seconds)))
        return int(self.client.scard(key))

    @_redis_guard
    def get_member_count(self, room_id: str) -> int:
        return int(self.client.scard(members_key(room_id)))

    # -- messages ------------------------------------------------------

    def _new_message_id(self, room_id: str, now: float) -> str:
        suffix = "".join(secrets.choice(_ID_ALPHABET) for _ in range(9))
        return f"msg:{room_id}:{int(now * 1000)}:{suffix}"

    @_redis_guard
    def add_message(self, room_id: str, fields: dict[str, Any], ttl_seconds: int) -> MessageEnvelope:
        now = self._clock()
        created = utc_from_timestamp(now)
        envelope = MessageEnvelope(
            id=self._new_message_id(room_id, now),
            room_id=room_id,
            ciphertext=fields["ciphertext"],
            iv=fields["iv"],
            salt=fields.get("salt"),
            auth_tag=fields.get("auth_tag"),
            sender_id=fields.get("sender_id"),
            ttl=ttl_seconds,
            timestamp=created,
            expires_at=created + timedelta(seconds=ttl_seconds),
        )
        self.client.setex(message_key(envelope.id), ttl_seconds, json.dumps(envelope.to_dict()))

        # The list takes the TTL of the newest message, which may be shorter
        # than that of older messages still alive.
        list_key = messages_key(room_id)
        self.client.lpush(list_key, envelope.id)
        self.client.expire(list_key, ttl_seconds)
        return envelope

    @_redis_guard
    def get_messages(self, room_id: str) -> List[MessageEnvelope]:
        """Live envelopes of a room, oldest first."""
        message_ids = self.client.lrange(messages_key(room_id), 0, -1)
        now = self._clock()
        messages = []
        # oldest first before the stable sort, so equal timestamps keep send order
        for message_id in reversed(message_ids):
            raw = self.client.get(message_key(message_id))
            if not raw:
                continue
            envelope = MessageEnvelope.from_dict(json.loads(raw))
            if envelope.expires_at.timestamp() <= now:
                continue
            messages.append(envelope)
        messages.sort(key=lambda m: m.timestamp)
        return messages

    @_redis_guard
    def get_message(self, message_id: str) -> Optional[MessageEnvelope]:
        raw = self.client.get(message_key(message_id))
        if not raw:
            return None
        envelope = MessageEnvelope.from_dict(json.loads(raw))
        if envelope.expires_at.timestamp() <= self._clock():
            return None
        return envelope

    @_redis_guard
    def delete_message(self, message_id: str, room_id: str | None = None) -> bool:
        deleted = bool(self.client.delete(message_key(message_id)))
        if room_id is not None:
            self.client.lrem(messages_key(room_id), 0, message_id)
        return deleted

    @_redis_guard
    def cleanup_expired_messages(self, room_id: str) -> int:
        """Drop list ids whose envelope key is gone. Returns how many were pruned."""
        list_key = messages_key(room_id)
        pruned = 0
        for message_id in self.client.lrange(list_key, 0, -1):
            if not self.client.exists(message_key(message_id)):
                pruned += int(self.client.lrem(list_key, 1, message_id))
        return pruned
