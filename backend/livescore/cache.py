from __future__ import annotations

from asyncio import Lock
import logging
import time
from typing import Any

from .config import LIVE_MATCH_TTL_SECONDS, SCORE_SAVE_DEBOUNCE_SECONDS, UNDO_HISTORY_LIMIT
from .services.live import LiveMatch
from .services.persistence import ScoreStore

logger = logging.getLogger(__name__)


class LiveMatchRegistry:
    """Live matches kept in memory, dropped after ``ttl_seconds`` without use.

    Expiry only forgets the session; the next access rebuilds it from the
    stored snapshot with an empty undo history.
    """

    def __init__(
        self,
        ttl_seconds: float = 3600.0,
        *,
        debounce_seconds: float = 0.5,
        history_limit: int = 10,
    ) -> None:
        self._ttl = ttl_seconds
        self.debounce_seconds = debounce_seconds
        self.history_limit = history_limit
        self._lock = Lock()
        self._store: dict[str, tuple[LiveMatch, float]] = {}

    def __contains__(self, match_id: str) -> bool:
        return match_id in self._store

    def __len__(self) -> int:
        return len(self._store)

    async def get(self, match_id: str, store: ScoreStore) -> LiveMatch | None:
        """Return the live match, loading it from ``store`` if not in memory."""

        now = time.monotonic()
        async with self._lock:
            # expired matches flush before any snapshot is read back
            await self._evict_expired(now)
            entry = self._store.get(match_id)
            if entry:
                live = entry[0]
                self._store[match_id] = (live, now + self._ttl)
                return live

            state = await store.load_score_snapshot(match_id)
            if state is None:
                return None
            live = self._new(match_id, state, store)
            self._store[match_id] = (live, now + self._ttl)
            logger.debug("resumed match %s from snapshot", match_id)
            return live

    async def start(self, match_id: str, state: dict[str, Any], store: ScoreStore) -> LiveMatch:
        """Register a freshly resolved match, saving its first snapshot now."""

        live = self._new(match_id, state, store)
        await live.flush()
        async with self._lock:
            now = time.monotonic()
            await self._evict_expired(now)
            previous = self._store.get(match_id)
            self._store[match_id] = (live, now + self._ttl)
        if previous:
            await previous[0].close()
        return live

    async def _evict_expired(self, now: float) -> None:
        expired = [mid for mid, (_, expires) in self._store.items() if expires <= now]
        for mid in expired:
            live, _ = self._store.pop(mid)
            await live.close()
        if expired:
            logger.debug("evicted %d idle live match(es)", len(expired))

    async def invalidate(self, match_id: str) -> None:
        async with self._lock:
            entry = self._store.pop(match_id, None)
        if entry:
            await entry[0].close()

    async def flush_all(self) -> None:
        async with self._lock:
            entries = list(self._store.values())
        for live, _ in entries:
            await live.close()

    async def clear(self) -> None:
        await self.flush_all()
        async with self._lock:
            self._store.clear()

    def _new(self, match_id: str, state: dict[str, Any], store: ScoreStore) -> LiveMatch:
        return LiveMatch(
            match_id,
            state,
            store,
            debounce_seconds=self.debounce_seconds,
            history_limit=self.history_limit,
        )


live_matches = LiveMatchRegistry(
    ttl_seconds=LIVE_MATCH_TTL_SECONDS,
    debounce_seconds=SCORE_SAVE_DEBOUNCE_SECONDS,
    history_limit=UNDO_HISTORY_LIMIT,
)
