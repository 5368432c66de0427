"""In-memory live match sessions.

A ``LiveMatch`` applies scoring events to its state immediately and saves
the snapshot in the background, debounced. A hard crash inside the debounce
window loses the latest transitions; reloading rebuilds the match purely from
the last saved snapshot. Undo history lives only in memory and is never
written back.
"""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from contextlib import suppress
from typing import Any, Deque, Dict, Optional

from ..exceptions import IllegalTransition, PersistenceError
from ..scoring import apply_event
from .completion import notify_completion
from .persistence import ScoreStore

logger = logging.getLogger(__name__)


class LiveMatch:
    def __init__(
        self,
        match_id: str,
        state: Dict[str, Any],
        store: ScoreStore,
        *,
        debounce_seconds: float = 0.5,
        history_limit: int = 10,
    ) -> None:
        self.match_id = match_id
        self.state = state
        self.store = store
        self.debounce_seconds = debounce_seconds
        self.history: Deque[Dict[str, Any]] = deque(maxlen=history_limit)
        self._save_task: Optional[asyncio.Task] = None

    @property
    def save_pending(self) -> bool:
        return self._save_task is not None and not self._save_task.done()

    async def apply(self, event: Dict[str, Any]) -> Dict[str, Any]:
        """Apply ``event`` and return the new state.

        ``IllegalTransition`` propagates with the state untouched. Storage
        failures are logged and scoring carries on from memory.
        """

        new_state = apply_event(self.state, event)
        if self.history.maxlen:
            self.history.append(self.state)
        self.state = new_state

        await self._record(event, new_state)

        if new_state.get("completed"):
            await self.flush()
            await notify_completion(self.store, self.match_id, new_state)
        else:
            await self._schedule_save()
        return new_state

    def undo(self) -> Dict[str, Any]:
        """Restore the previous local state. Nothing is written to storage."""

        if self.state.get("completed"):
            raise IllegalTransition("a completed match cannot be undone")
        if not self.history:
            raise IllegalTransition("nothing to undo")
        self.state = self.history.pop()
        return self.state

    async def flush(self) -> bool:
        """Save the current snapshot now, replacing any pending save."""

        await self._cancel_pending()
        return await self._save()

    async def close(self) -> None:
        if self.save_pending:
            await self.flush()

    async def _record(self, event: Dict[str, Any], state: Dict[str, Any]) -> None:
        event_log = {
            "type": event.get("type"),
            "event": event,
            "periodIndex": state.get("currentPeriodIndex"),
        }
        if state.get("lastDelivery") is not None and event.get("type") in (
            "RUNS",
            "EXTRA",
            "WICKET",
        ):
            event_log["delivery"] = state["lastDelivery"]
        try:
            await self.store.record_event(self.match_id, event_log)
        except PersistenceError as exc:
            logger.warning("audit event dropped for match %s: %s", self.match_id, exc.detail)

    async def _schedule_save(self) -> None:
        if self.debounce_seconds <= 0:
            await self._save()
            return
        await self._cancel_pending()
        self._save_task = asyncio.create_task(self._delayed_save())

    async def _delayed_save(self) -> None:
        await asyncio.sleep(self.debounce_seconds)
        await self._save()

    async def _cancel_pending(self) -> None:
        task, self._save_task = self._save_task, None
        if task is None or task.done() or task is asyncio.current_task():
            return
        task.cancel()
        with suppress(asyncio.CancelledError):
            await task

    async def _save(self) -> bool:
        try:
            await self.store.save_score_snapshot(self.match_id, self.state)
        except PersistenceError as exc:
            logger.warning("score snapshot not saved for match %s: %s", self.match_id, exc.detail)
            return False
        return True
