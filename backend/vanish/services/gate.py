"""
Access-control gate.

Every externally triggered operation goes through here, in this order:
resolve the target (room / blob), check the capability token if the operation
needs one, apply join rules (PIN, member cap), then act on the stores.

A token of the right shape but for the wrong scope, room or subject is
rejected exactly like a forged one.
"""
from __future__ import annotations

import logging
import secrets
import time
import uuid
from typing import Callable, List, Optional

from vanish.core.config import Settings
from vanish.core.errors import Forbidden, NotFound
from vanish.core.security import hash_pin, verify_pin
from vanish.core.tokens import (
    SCOPE_DOWNLOAD,
    SCOPE_JOIN,
    SCOPE_UPLOAD,
    TokenPayload,
    mint_token,
    verify_token,
)
from vanish.models import BlobEntry, CATEGORY_CHAT, CATEGORY_VAULT, MessageEnvelope, Room
from vanish.storage.blob_store import BlobStore
from vanish.storage.session_store import SessionStore

logger = logging.getLogger(__name__)


def _clamp(value: Optional[int], default: int, low: int, high: int) -> int:
    if value is None:
        return default
    return max(low, min(int(value), high))


class AccessGate:
    def __init__(
        self,
        settings: Settings,
        sessions: SessionStore,
        blobs: BlobStore,
        clock: Callable[[], float] = time.time,
    ):
        self.settings = settings
        self.sessions = sessions
        self.blobs = blobs
        self._clock = clock

    # -- capabilities --------------------------------------------------

    def _mint(self, subject: str, room_id: str, scope: str, ttl: int, max_ttl: int | None = None) -> str:
        return mint_token(
            subject,
            room_id,
            scope,
            ttl,
            self.settings.secret_for(scope),
            max_ttl=max_ttl,
            clock=self._clock,
        )

    def _check(self, token: str | None, scope: str, room_id: str, subject: str) -> Optional[TokenPayload]:
        if not token:
            return None
        payload = verify_token(token, self.settings.secret_for(scope), clock=self._clock)
        if (
            payload is None
            or payload.scope != scope
            or payload.room_id != room_id
            or payload.subject != subject
        ):
            return None
        return payload

    def _require(self, token: str | None, scope: str, room_id: str, subject: str) -> TokenPayload:
        payload = self._check(token, scope, room_id, subject)
        if payload is None:
            logger.warning("Rejected %s token for %s in room %s", scope, subject, room_id)
            raise Forbidden("Invalid token")
        return payload

    # -- rooms ---------------------------------------------------------

    def create_room(
        self,
        ttl: int | None = None,
        pin: str | None = None,
        max_members: int | None = None,
    ) -> Room:
        s = self.settings
        ttl = _clamp(ttl, s.room_default_ttl, s.room_min_ttl, s.room_max_ttl)
        room_id = str(uuid.uuid4())
        room = self.sessions.create_room(
            room_id,
            ttl,
            pin_hash=hash_pin(pin) if pin else None,
            max_members=int(max_members) if max_members else None,
        )
        logger.info("Room created: %s (ttl=%ss)", room_id, ttl)
        return room

    def get_room(self, room_id: str) -> Room:
        room = self.sessions.get_room(room_id)
        if room is None:
            raise NotFound("Room not found")
        return room

    def join_room(
        self,
        room_id: str,
        pin: str | None = None,
        client_id: str | None = None,
        invite: str | None = None,
    ) -> int:
        """Admit a member and return the room's member count."""
        room = self.get_room(room_id)

        if invite:
            self._require(invite, SCOPE_JOIN, room_id, room_id)

        if room.pin_hash and not verify_pin(pin, room.pin_hash):
            logger.warning("Invalid PIN for room %s", room_id)
            raise Forbidden("Invalid PIN")

        current = self.sessions.get_member_count(room_id)
        if room.max_members and current >= room.max_members:
            raise Forbidden("Room member limit reached")

        now = self._clock()
        member_id = client_id or f"guest:{int(now * 1000)}:{secrets.token_hex(4)}"
        count = self.sessions.add_member(room_id, member_id, room.remaining_seconds(now))
        logger.info("Member joined room %s (%d member(s))", room_id, count)
        return count

    def create_invite(self, room_id: str, ttl_seconds: int | None = None) -> str:
        self.get_room(room_id)
        s = self.settings
        ttl = s.invite_default_ttl if ttl_seconds is None else int(ttl_seconds)
        return self._mint(room_id, room_id, SCOPE_JOIN, ttl, max_ttl=s.invite_max_ttl)

    def delete_room(self, room_id: str) -> None:
        self.sessions.delete_room(room_id)
        logger.info("Room deleted: %s", room_id)

    # -- messages ------------------------------------------------------

    def send_message(
        self,
        room_id: str,
        ciphertext: str,
        iv: str,
        salt: str | None = None,
        auth_tag: str | None = None,
        sender_id: str | None = None,
        ttl: int | None = None,
    ) -> MessageEnvelope:
        if not self.sessions.room_exists(room_id):
            raise NotFound("Room not found")
        s = self.settings
        ttl = _clamp(ttl, s.message_default_ttl, s.message_min_ttl, s.message_max_ttl)
        fields = {
            "ciphertext": ciphertext,
            "iv": iv,
            "salt": salt,
            "auth_tag": auth_tag,
            "sender_id": sender_id,
        }
        message = self.sessions.add_message(room_id, fields, ttl)
        logger.info("Message added to room %s: %s", room_id, message.id)
        return message

    def list_messages(self, room_id: str) -> List[MessageEnvelope]:
        if not self.sessions.room_exists(room_id):
            raise NotFound("Room not found")
        messages = self.sessions.get_messages(room_id)
        self.sessions.cleanup_expired_messages(room_id)
        return messages

    def delete_message(self, room_id: str, message_id: str) -> None:
        if not self.sessions.room_exists(room_id):
            raise NotFound("Room not found")
        if not message_id.startswith(f"msg:{room_id}:"):
            raise NotFound("Message not found")
        self.sessions.delete_message(message_id, room_id=room_id)
        logger.info("Message deleted: %s from room %s", message_id, room_id)

    # -- blobs ---------------------------------------------------------

    def _resolve_blob(
        self,
        room_id: str,
        blob_id: str,
        category: str,
        include_reserved: bool = False,
    ) -> BlobEntry:
        entry = self.blobs.get(blob_id, include_reserved=include_reserved)
        if entry is None or entry.room_id != room_id or entry.category != category:
            raise NotFound("Not found")
        return entry

    def init_blob(
        self,
        room_id: str,
        mime_type: str,
        ttl_ms: int | None = None,
        view_once: bool = False,
        category: str = CATEGORY_CHAT,
    ) -> tuple[BlobEntry, str]:
        """Reserve a blob id and hand back an upload token for it."""
        if not self.sessions.room_exists(room_id):
            raise NotFound("Room not found")
        if category == CATEGORY_VAULT:
            view_once = False
        entry = self.blobs.init(
            room_id, mime_type, ttl_ms=ttl_ms, view_once=view_once, category=category
        )
        token = self._mint(entry.id, room_id, SCOPE_UPLOAD, self.settings.upload_token_ttl)
        logger.info("Blob reserved: %s (%s) in room %s", entry.id, category, room_id)
        return entry, token

    def authorize_upload(
        self,
        room_id: str,
        blob_id: str,
        token: str | None,
        category: str = CATEGORY_CHAT,
    ) -> BlobEntry:
        """Resolve the reserved blob and check the upload token, without writing."""
        entry = self._resolve_blob(room_id, blob_id, category, include_reserved=True)
        self._require(token, SCOPE_UPLOAD, room_id, blob_id)
        return entry

    def upload_blob(
        self,
        room_id: str,
        blob_id: str,
        token: str | None,
        payload: bytes,
        category: str = CATEGORY_CHAT,
    ) -> BlobEntry:
        self.authorize_upload(room_id, blob_id, token, category=category)
        entry = self.blobs.put(blob_id, payload)
        if entry is None:
            raise NotFound("Not found")
        return entry

    def mint_download_token(
        self,
        room_id: str,
        blob_id: str,
        ttl_seconds: int | None = None,
        category: str = CATEGORY_CHAT,
    ) -> str:
        self._resolve_blob(room_id, blob_id, category)
        s = self.settings
        ttl = s.download_token_default_ttl if ttl_seconds is None else int(ttl_seconds)
        return self._mint(blob_id, room_id, SCOPE_DOWNLOAD, ttl, max_ttl=s.download_token_max_ttl)

    def fetch_blob(
        self,
        room_id: str,
        blob_id: str,
        token: str | None,
        category: str = CATEGORY_CHAT,
    ) -> BlobEntry:
        """
        Return the filled entry. A view-once blob is deleted before this
        returns; if another fetch deleted it first, this one gets NotFound.
        """
        entry = self._resolve_blob(room_id, blob_id, category)
        self._require(token, SCOPE_DOWNLOAD, room_id, blob_id)
        if entry.view_once:
            if not self.blobs.delete(blob_id):
                raise NotFound("Not found")
            logger.info("View-once blob consumed: %s", blob_id)
        return entry

    def delete_blob(
        self,
        room_id: str,
        blob_id: str,
        token: str | None = None,
        category: str = CATEGORY_CHAT,
    ) -> None:
        self._resolve_blob(room_id, blob_id, category, include_reserved=True)
        if token is not None:
            if (
                self._check(token, SCOPE_UPLOAD, room_id, blob_id) is None
                and self._check(token, SCOPE_DOWNLOAD, room_id, blob_id) is None
            ):
                raise Forbidden("Invalid token")
        self.blobs.delete(blob_id)
        logger.info("Blob deleted: %s from room %s", blob_id, room_id)
