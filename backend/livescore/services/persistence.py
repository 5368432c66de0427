"""Durable storage for match configuration, score snapshots and the audit trail.

``save_score_snapshot`` is last-write-wins with no version check. Two
scorers working the same match can overwrite each other; the scoring layer
assumes a single writer per match and does not lock.
"""

from __future__ import annotations

import abc
import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..exceptions import PersistenceError
from ..models import Match, MatchConfig, MatchScore, ScoreEvent
from ..scoring import summary as score_summary

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    # Columns are timezone-naive and hold UTC.
    return datetime.now(timezone.utc).replace(tzinfo=None)


class ScoreStore(abc.ABC):
    """Operations the live scoring layer needs from storage."""

    @abc.abstractmethod
    async def load_config(self, match_id: str, sport: str) -> Optional[Dict[str, Any]]:
        ...

    @abc.abstractmethod
    async def save_config(self, match_id: str, sport: str, config: Dict[str, Any]) -> None:
        ...

    @abc.abstractmethod
    async def load_score_snapshot(self, match_id: str) -> Optional[Dict[str, Any]]:
        ...

    @abc.abstractmethod
    async def save_score_snapshot(self, match_id: str, state: Dict[str, Any]) -> None:
        ...

    @abc.abstractmethod
    async def record_event(self, match_id: str, event_log: Dict[str, Any]) -> None:
        ...

    @abc.abstractmethod
    async def complete_match(
        self, match_id: str, final_state: Dict[str, Any], winner_side: Optional[str]
    ) -> None:
        ...

    @abc.abstractmethod
    async def set_match_status(self, match_id: str, status: str) -> None:
        ...


class SqlScoreStore(ScoreStore):
    """``ScoreStore`` backed by the SQLAlchemy models.

    Each operation opens its own session from ``session_factory`` so that
    background saves never share a session with a request.
    """

    def __init__(self, session_factory: Callable[[], AsyncSession]) -> None:
        self._session_factory = session_factory

    async def load_config(self, match_id: str, sport: str) -> Optional[Dict[str, Any]]:
        try:
            async with self._session_factory() as session:
                row = (
                    await session.execute(
                        select(MatchConfig).where(
                            MatchConfig.match_id == match_id,
                            MatchConfig.sport_id == sport,
                        )
                    )
                ).scalar_one_or_none()
        except SQLAlchemyError as exc:
            raise PersistenceError(f"could not load config for match {match_id}") from exc
        return dict(row.config) if row else None

    async def save_config(self, match_id: str, sport: str, config: Dict[str, Any]) -> None:
        try:
            async with self._session_factory() as session:
                await session.merge(
                    MatchConfig(
                        match_id=match_id,
                        sport_id=sport,
                        config=config,
                        config_completed=bool(config.get("toss")),
                        updated_at=_utcnow(),
                    )
                )
                await session.commit()
        except SQLAlchemyError as exc:
            raise PersistenceError(f"could not save config for match {match_id}") from exc

    async def load_score_snapshot(self, match_id: str) -> Optional[Dict[str, Any]]:
        try:
            async with self._session_factory() as session:
                row = await session.get(MatchScore, match_id)
        except SQLAlchemyError as exc:
            raise PersistenceError(f"could not load score for match {match_id}") from exc
        return row.state if row else None

    async def save_score_snapshot(self, match_id: str, state: Dict[str, Any]) -> None:
        try:
            async with self._session_factory() as session:
                await session.merge(
                    MatchScore(match_id=match_id, state=state, updated_at=_utcnow())
                )
                await session.commit()
        except SQLAlchemyError as exc:
            raise PersistenceError(f"could not save score for match {match_id}") from exc
        logger.debug("saved score snapshot for match %s", match_id)

    async def record_event(self, match_id: str, event_log: Dict[str, Any]) -> None:
        try:
            async with self._session_factory() as session:
                session.add(
                    ScoreEvent(
                        id=uuid.uuid4().hex,
                        match_id=match_id,
                        type=str(event_log.get("type") or "EVENT"),
                        payload=event_log,
                        created_at=_utcnow(),
                    )
                )
                await session.commit()
        except SQLAlchemyError as exc:
            raise PersistenceError(f"could not record event for match {match_id}") from exc

    async def list_events(self, match_id: str) -> List[ScoreEvent]:
        try:
            async with self._session_factory() as session:
                rows = (
                    await session.execute(
                        select(ScoreEvent)
                        .where(ScoreEvent.match_id == match_id)
                        .order_by(ScoreEvent.created_at)
                    )
                ).scalars().all()
        except SQLAlchemyError as exc:
            raise PersistenceError(f"could not list events for match {match_id}") from exc
        return list(rows)

    async def complete_match(
        self, match_id: str, final_state: Dict[str, Any], winner_side: Optional[str]
    ) -> None:
        try:
            async with self._session_factory() as session:
                match = await session.get(Match, match_id)
                if match is None:
                    raise PersistenceError(f"match {match_id} not found")
                match.winner_side = winner_side
                match.result = score_summary(final_state)
                match.completed_at = _utcnow()
                await session.commit()
        except SQLAlchemyError as exc:
            raise PersistenceError(f"could not complete match {match_id}") from exc

    async def set_match_status(self, match_id: str, status: str) -> None:
        try:
            async with self._session_factory() as session:
                match = await session.get(Match, match_id)
                if match is None:
                    raise PersistenceError(f"match {match_id} not found")
                match.status = status
                await session.commit()
        except SQLAlchemyError as exc:
            raise PersistenceError(
                f"could not set status for match {match_id}"
            ) from exc
