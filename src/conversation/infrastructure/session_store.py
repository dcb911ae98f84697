"""
Session Store
=============

Thread-safe in-memory map of session id to identity.

Entries expire after ``ttl_seconds`` without a read or write; the least
recently used entry is evicted once ``max_entries`` is reached. Sessions do
not survive a restart.
"""

import threading
import time
from collections import OrderedDict
from typing import Callable, Optional, Tuple

from src.conversation.application import ISessionStore
from src.conversation.domain import SessionIdentity
from src.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)


class InMemorySessionStore(ISessionStore):
    """TTL and max-size bounded session identity map."""

    def __init__(
        self,
        ttl_seconds: float = 3600,
        max_entries: int = 10000,
        clock: Callable[[], float] = time.monotonic
    ):
        self._ttl = ttl_seconds
        self._max_entries = max(1, max_entries)
        self._clock = clock
        self._lock = threading.Lock()
        self._entries: "OrderedDict[str, Tuple[SessionIdentity, float]]" = OrderedDict()

    def get(self, session_id: str) -> Optional[SessionIdentity]:
        now = self._clock()
        with self._lock:
            item = self._entries.get(session_id)
            if item is None:
                return None
            identity, last_seen = item
            if now - last_seen > self._ttl:
                del self._entries[session_id]
                return None
            self._entries[session_id] = (identity, now)
            self._entries.move_to_end(session_id)
            return identity

    def put(self, session_id: str, identity: SessionIdentity) -> None:
        now = self._clock()
        with self._lock:
            self._entries[session_id] = (identity, now)
            self._entries.move_to_end(session_id)
            self._evict(now)

    def _evict(self, now: float) -> None:
        expired = [sid for sid, (_, seen) in self._entries.items() if now - seen > self._ttl]
        for sid in expired:
            del self._entries[sid]

        while len(self._entries) > self._max_entries:
            sid, _ = self._entries.popitem(last=False)
            logger.debug("Evicted session identity", extra={"session_id": sid})

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
