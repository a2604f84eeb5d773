# backoffice/variants/session_store.py
from __future__ import annotations

import logging
import threading
import time
import uuid
from typing import Dict, List, Optional, Tuple

from backoffice.variants.models import EditorState

logger = logging.getLogger("uvicorn.error")


class SessionNotFound(KeyError):
    pass


class SessionStore:
    """
    In-memory editing sessions, one EditorState per session id.
    States are replaced wholesale (put), never mutated in place.
    """

    def __init__(self):
        self._sessions: Dict[str, Tuple[EditorState, float]] = {}
        self._lock = threading.Lock()

    def create(self, product_id: str) -> str:
        sid = uuid.uuid4().hex
        with self._lock:
            self._sessions[sid] = (EditorState(product_id=str(product_id)), time.time())
        logger.info("[SESSIONS] created %s for product=%s", sid, product_id)
        return sid

    def get(self, sid: str) -> EditorState:
        with self._lock:
            rec = self._sessions.get(sid)
            if rec is None:
                raise SessionNotFound(sid)
            self._sessions[sid] = (rec[0], time.time())
            return rec[0]

    def put(self, sid: str, state: EditorState) -> EditorState:
        with self._lock:
            if sid not in self._sessions:
                raise SessionNotFound(sid)
            self._sessions[sid] = (state, time.time())
        return state

    def delete(self, sid: str) -> bool:
        with self._lock:
            return self._sessions.pop(sid, None) is not None

    def ids(self) -> List[str]:
        with self._lock:
            return list(self._sessions)

    def purge_expired(self, ttl_seconds: float, now: Optional[float] = None) -> int:
        """Drop sessions idle longer than ttl_seconds; returns how many were removed."""
        cutoff = (now if now is not None else time.time()) - ttl_seconds
        with self._lock:
            stale = [sid for sid, (_, touched) in self._sessions.items() if touched < cutoff]
            for sid in stale:
                self._sessions.pop(sid, None)
        if stale:
            logger.info("[SESSIONS] purged %d idle session(s)", len(stale))
        return len(stale)


# process-wide store used by the API router and the reaper
sessions = SessionStore()
