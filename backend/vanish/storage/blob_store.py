"""
Ephemeral in-process blob store.

Holds opaque ciphertext blobs (chat attachments and vault items) keyed by a
random id. Each entry moves RESERVED (init, no payload) -> FILLED (put) ->
GONE (sweep, delete, or a view-once read). Nothing survives a restart.

Expiry is enforced twice: every read checks the deadline and evicts a stale
entry, and a background sweeper thread evicts entries nobody reads again.
"""
from __future__ import annotations

import logging
import threading
import time
import uuid
from typing import Callable, Dict, Optional

from vanish.core.errors import PayloadTooLarge
from vanish.models.blob import BlobEntry, CATEGORY_CHAT

logger = logging.getLogger(__name__)

DEFAULT_MAX_BYTES = 10 * 1024 * 1024
DEFAULT_TTL_MS = 5 * 60 * 1000
DEFAULT_SWEEP_INTERVAL = 30.0


class BlobStore:
    def __init__(
        self,
        max_size_bytes: int = DEFAULT_MAX_BYTES,
        default_ttl_ms: int = DEFAULT_TTL_MS,
        sweep_interval: float = DEFAULT_SWEEP_INTERVAL,
        clock: Callable[[], float] = time.time,
        start_sweeper: bool = True,
    ):
        self.max_size_bytes = max_size_bytes
        self.default_ttl_ms = default_ttl_ms
        self.sweep_interval = sweep_interval
        self._clock = clock
        self._entries: Dict[str, BlobEntry] = {}
        self._lock = threading.RLock()
        self._stop = threading.Event()
        self._sweeper: Optional[threading.Thread] = None
        if start_sweeper:
            self.start_sweeper()

    # -- lifecycle -----------------------------------------------------

    def start_sweeper(self) -> None:
        if self._sweeper and self._sweeper.is_alive():
            return
        self._stop.clear()
        self._sweeper = threading.Thread(
            target=self._sweep_loop, name="blob-sweeper", daemon=True
        )
        self._sweeper.start()

    def close(self) -> None:
        """Stop the sweeper and drop every entry."""
        self._stop.set()
        if self._sweeper:
            self._sweeper.join(timeout=self.sweep_interval + 1)
            self._sweeper = None
        with self._lock:
            self._entries.clear()

    def _sweep_loop(self) -> None:
        while not self._stop.wait(self.sweep_interval):
            try:
                self.sweep()
            except Exception:
                logger.exception("Blob sweep failed")

    # -- operations ----------------------------------------------------

    def _ttl_or_default(self, ttl_ms) -> int:
        if isinstance(ttl_ms, bool) or not isinstance(ttl_ms, (int, float)) or ttl_ms <= 0:
            return self.default_ttl_ms
        return int(ttl_ms)

    def init(
        self,
        room_id: str,
        mime_type: str,
        ttl_ms: int | None = None,
        view_once: bool = False,
        category: str = CATEGORY_CHAT,
    ) -> BlobEntry:
        ttl = self._ttl_or_default(ttl_ms)
        entry = BlobEntry(
            id=str(uuid.uuid4()),
            room_id=room_id,
            mime_type=mime_type,
            ttl_ms=ttl,
            expires_at=self._clock() + ttl / 1000.0,
            view_once=bool(view_once),
            category=category,
        )
        with self._lock:
            self._entries[entry.id] = entry
        return entry

    def put(self, blob_id: str, payload: bytes) -> Optional[BlobEntry]:
        """
        Store the payload of a reserved blob.

        Returns None if the id is unknown or already expired. Raises
        PayloadTooLarge above the configured ceiling. The deadline restarts
        from the requested TTL so upload time does not eat into the lifetime.
        """
        if not isinstance(payload, (bytes, bytearray)):
            raise TypeError("payload must be bytes")
        if len(payload) > self.max_size_bytes:
            raise PayloadTooLarge()

        with self._lock:
            entry = self._live(blob_id)
            if entry is None:
                return None
            entry.payload = bytes(payload)
            entry.size = len(payload)
            entry.expires_at = self._clock() + entry.ttl_ms / 1000.0
            return entry

    def get(self, blob_id: str, *, include_reserved: bool = False) -> Optional[BlobEntry]:
        """
        Return a live entry. Reserved (not yet uploaded) entries are treated
        as missing unless include_reserved is set.
        """
        with self._lock:
            entry = self._live(blob_id)
        if entry is None:
            return None
        if not include_reserved and not entry.is_filled:
            return None
        return entry

    def delete(self, blob_id: str) -> bool:
        with self._lock:
            return self._entries.pop(blob_id, None) is not None

    def _live(self, blob_id: str) -> Optional[BlobEntry]:
        # caller holds the lock
        entry = self._entries.get(blob_id)
        if entry is None:
            return None
        if entry.is_expired(self._clock()):
            del self._entries[blob_id]
            return None
        return entry

    def sweep(self) -> int:
        """Evict every expired entry. Returns how many were removed."""
        now = self._clock()
        with self._lock:
            snapshot = list(self._entries.items())

        removed = 0
        for blob_id, entry in snapshot:
            if not entry.is_expired(now):
                continue
            with self._lock:
                # a put may have refreshed the deadline since the snapshot
                current = self._entries.get(blob_id)
                if current is entry and entry.is_expired(now):
                    del self._entries[blob_id]
                    removed += 1
        if removed:
            logger.info("Swept %d expired blob(s)", removed)
        return removed

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
