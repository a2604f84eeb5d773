# backoffice/workers/session_reaper.py
# Background loop that drops editing sessions nobody has touched for SESSION_TTL_SECONDS.
import asyncio
import logging

from backoffice.config import settings
from backoffice.variants.session_store import SessionStore, sessions

logger = logging.getLogger("uvicorn.error")


async def reaper_loop(stop_event: asyncio.Event, store: SessionStore = sessions) -> None:
    logger.info("[REAPER] started (ttl=%ss, every %ss)",
                settings.SESSION_TTL_SECONDS, settings.SESSION_REAP_INTERVAL)
    interval = max(float(settings.SESSION_REAP_INTERVAL), 0.1)
    while not stop_event.is_set():
        try:
            await asyncio.wait_for(stop_event.wait(), timeout=interval)
        except asyncio.TimeoutError:
            pass
        if stop_event.is_set():
            break
        try:
            store.purge_expired(settings.SESSION_TTL_SECONDS)
        except Exception:
            logger.exception("[REAPER] purge failed")

    logger.info("[REAPER] stopped")
