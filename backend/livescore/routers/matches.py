# backend/livescore/routers/matches.py
import logging
import uuid
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from .. import db
from ..cache import LiveMatchRegistry, live_matches
from ..db import get_session
from ..exceptions import MatchNotFound, PersistenceError, ScoringError, http_problem
from ..models import Match, Sport
from ..schemas import (
    EventIn,
    ManOfMatchOut,
    MatchConfigIn,
    MatchConfigOut,
    MatchCreate,
    MatchIdOut,
    MatchOut,
    MatchStatusIn,
    MatchStatusOut,
    ScoreEventOut,
    ScoreOut,
    TossIn,
)
from ..scoring import ENGINES, cricket, scoring_gates, summary as score_summary
from ..services.config_resolver import config_gate, resolve, resolve_config
from ..services.persistence import ScoreStore, SqlScoreStore
from .limits import limiter
from .sports import DEFAULT_SPORT_NAME_LOOKUP
from .streams import broadcast

logger = logging.getLogger(__name__)

# Resource-only prefix; versioning is added in main.py
router = APIRouter(prefix="/matches", tags=["matches"])


def get_store() -> ScoreStore:
    """Provide the score store for FastAPI dependencies."""

    if db.AsyncSessionLocal is None:
        db.get_engine()
    assert db.AsyncSessionLocal is not None  # for type checkers
    return SqlScoreStore(db.AsyncSessionLocal)


def get_live_registry() -> LiveMatchRegistry:
    return live_matches


def _problem(exc: ScoringError):
    return http_problem(
        status_code=exc.status_code,
        detail=exc.detail or exc.title,
        code=exc.code,
    )


async def _get_match(session: AsyncSession, mid: str) -> Match:
    match = await session.get(Match, mid)
    if match is None:
        raise MatchNotFound(mid)
    return match


def _match_out(match: Match) -> MatchOut:
    return MatchOut(
        id=match.id,
        sport=match.sport_id,
        status=match.status,
        homeName=match.home_name,
        awayName=match.away_name,
        winnerSide=match.winner_side,
        result=match.result,
        createdAt=match.created_at,
        completedAt=match.completed_at,
    )


def _score_out(mid: str, state: Optional[Dict[str, Any]]) -> ScoreOut:
    return ScoreOut(
        matchId=mid,
        state=state,
        summary=score_summary(state) if state else None,
        gates=scoring_gates(state),
    )


# POST /api/v0/matches
@router.post("", response_model=MatchIdOut)
@limiter.limit("30/minute")
async def create_match(
    request: Request,
    body: MatchCreate,
    session: AsyncSession = Depends(get_session),
):
    if body.sport not in ENGINES:
        raise http_problem(
            status_code=400,
            detail="unknown sport",
            code="match_unknown_sport",
        )

    if await session.get(Sport, body.sport) is None:
        session.add(Sport(id=body.sport, name=DEFAULT_SPORT_NAME_LOOKUP[body.sport]))

    mid = body.id or uuid.uuid4().hex
    if await session.get(Match, mid) is not None:
        raise http_problem(
            status_code=409,
            detail="match already exists",
            code="match_exists",
        )

    session.add(
        Match(
            id=mid,
            sport_id=body.sport,
            status="scheduled",
            home_name=body.homeName,
            away_name=body.awayName,
        )
    )
    await session.commit()
    logger.info("created %s match %s", body.sport, mid)
    return MatchIdOut(id=mid)


# GET /api/v0/matches/{mid}
@router.get("/{mid}", response_model=MatchOut)
async def get_match(mid: str, session: AsyncSession = Depends(get_session)):
    return _match_out(await _get_match(session, mid))


# GET /api/v0/matches/{mid}/config
@router.get("/{mid}/config", response_model=MatchConfigOut)
async def get_match_config(
    mid: str,
    session: AsyncSession = Depends(get_session),
    store: ScoreStore = Depends(get_store),
):
    match = await _get_match(session, mid)
    try:
        record = await store.load_config(mid, match.sport_id)
    except ScoringError as exc:
        raise _problem(exc)
    return MatchConfigOut(config=record, configPending=config_gate(match.sport_id, record))


# PUT /api/v0/matches/{mid}/config
@router.put("/{mid}/config", response_model=MatchConfigOut)
async def put_match_config(
    mid: str,
    body: MatchConfigIn,
    session: AsyncSession = Depends(get_session),
    store: ScoreStore = Depends(get_store),
):
    match = await _get_match(session, mid)
    try:
        if await store.load_score_snapshot(mid) is not None:
            raise http_problem(
                status_code=409,
                detail="configuration is locked once scoring has started",
                code="config_locked",
            )
        resolve_config(match.sport_id, body.config)
        await store.save_config(mid, match.sport_id, body.config)
    except ScoringError as exc:
        raise _problem(exc)
    return MatchConfigOut(config=body.config, configPending=True)


# POST /api/v0/matches/{mid}/toss
@router.post("/{mid}/toss", response_model=ScoreOut)
async def record_toss(
    mid: str,
    body: TossIn,
    session: AsyncSession = Depends(get_session),
    store: ScoreStore = Depends(get_store),
    registry: LiveMatchRegistry = Depends(get_live_registry),
):
    match = await _get_match(session, mid)
    toss = body.model_dump()
    try:
        if await store.load_score_snapshot(mid) is not None:
            raise http_problem(
                status_code=409,
                detail="toss already recorded",
                code="toss_already_recorded",
            )
        record = await store.load_config(mid, match.sport_id) or {}
        state = resolve(match.sport_id, record, toss)
        await store.save_config(mid, match.sport_id, {**record, "toss": toss})
        live = await registry.start(mid, state, store)
    except ScoringError as exc:
        raise _problem(exc)

    # scoring has started; a failed status write is logged and left for PUT /status
    try:
        await store.set_match_status(mid, "live")
    except PersistenceError as exc:
        logger.warning("status not updated to live for match %s: %s", mid, exc)

    out = _score_out(mid, live.state)
    await broadcast(mid, {"summary": out.summary, "gates": out.gates})
    return out


# GET /api/v0/matches/{mid}/score
@router.get("/{mid}/score", response_model=ScoreOut)
async def get_score(
    mid: str,
    session: AsyncSession = Depends(get_session),
    store: ScoreStore = Depends(get_store),
    registry: LiveMatchRegistry = Depends(get_live_registry),
):
    await _get_match(session, mid)
    try:
        live = await registry.get(mid, store)
    except ScoringError as exc:
        raise _problem(exc)
    return _score_out(mid, live.state if live else None)


# POST /api/v0/matches/{mid}/events
async def append_event(
    mid: str,
    ev: EventIn,
    session: AsyncSession,
    store: ScoreStore,
    registry: LiveMatchRegistry,
) -> ScoreOut:
    await _get_match(session, mid)
    payload = ev.model_dump(exclude_none=True)
    try:
        live = await registry.get(mid, store)
        if live is None:
            raise http_problem(
                status_code=422,
                detail="toss and configuration must be completed before scoring",
                code="config_error",
            )
        state = await live.apply(payload)
    except ScoringError as exc:
        raise _problem(exc)

    out = _score_out(mid, state)
    await broadcast(mid, {"event": payload, "summary": out.summary, "gates": out.gates})
    return out


@router.post("/{mid}/events", response_model=ScoreOut)
@limiter.limit("120/minute")
async def append_event_route(
    request: Request,
    mid: str,
    ev: EventIn,
    session: AsyncSession = Depends(get_session),
    store: ScoreStore = Depends(get_store),
    registry: LiveMatchRegistry = Depends(get_live_registry),
):
    return await append_event(mid, ev, session, store, registry)


# GET /api/v0/matches/{mid}/events
@router.get("/{mid}/events", response_model=list[ScoreEventOut])
async def list_events(
    mid: str,
    session: AsyncSession = Depends(get_session),
    store: ScoreStore = Depends(get_store),
):
    await _get_match(session, mid)
    try:
        rows = await store.list_events(mid)
    except ScoringError as exc:
        raise _problem(exc)
    return [
        ScoreEventOut(id=e.id, type=e.type, payload=e.payload, createdAt=e.created_at)
        for e in rows
    ]


# POST /api/v0/matches/{mid}/undo
@router.post("/{mid}/undo", response_model=ScoreOut)
async def undo_event(
    mid: str,
    session: AsyncSession = Depends(get_session),
    store: ScoreStore = Depends(get_store),
    registry: LiveMatchRegistry = Depends(get_live_registry),
):
    """Revert the last scoring event locally. The stored snapshot is not rewritten."""
    await _get_match(session, mid)
    try:
        live = await registry.get(mid, store)
        if live is None:
            raise http_problem(
                status_code=409,
                detail="nothing to undo",
                code="illegal_transition",
            )
        state = live.undo()
    except ScoringError as exc:
        raise _problem(exc)

    out = _score_out(mid, state)
    await broadcast(mid, {"undo": True, "summary": out.summary, "gates": out.gates})
    return out


# PUT /api/v0/matches/{mid}/status
@router.put("/{mid}/status", response_model=MatchStatusOut)
async def set_status(
    mid: str,
    body: MatchStatusIn,
    session: AsyncSession = Depends(get_session),
    store: ScoreStore = Depends(get_store),
):
    match = await _get_match(session, mid)
    try:
        if body.status != "completed":
            snapshot = await store.load_score_snapshot(mid)
            if match.status == "completed" or (snapshot and snapshot.get("completed")):
                raise http_problem(
                    status_code=409,
                    detail="a completed match cannot change status",
                    code="illegal_transition",
                )
        await store.set_match_status(mid, body.status)
    except ScoringError as exc:
        raise _problem(exc)
    return MatchStatusOut(id=mid, status=body.status)


# GET /api/v0/matches/{mid}/man-of-match
@router.get("/{mid}/man-of-match", response_model=ManOfMatchOut)
async def get_man_of_match(
    mid: str,
    session: AsyncSession = Depends(get_session),
    store: ScoreStore = Depends(get_store),
    registry: LiveMatchRegistry = Depends(get_live_registry),
):
    match = await _get_match(session, mid)
    if match.sport_id != cricket.SPORT:
        raise http_problem(
            status_code=400,
            detail="man of the match is only suggested for cricket",
            code="match_unsupported_sport",
        )
    try:
        live = await registry.get(mid, store)
    except ScoringError as exc:
        raise _problem(exc)
    suggestion = cricket.suggest_man_of_match(live.state) if live else None
    return ManOfMatchOut(matchId=mid, suggestion=suggestion)
