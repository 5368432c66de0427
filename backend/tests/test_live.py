import asyncio
import copy
import logging

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from livescore.cache import LiveMatchRegistry
from livescore.db import Base
from livescore.exceptions import IllegalTransition, PersistenceError
from livescore.models import Match, Sport
from livescore.services.config_resolver import resolve
from livescore.services.live import LiveMatch
from livescore.services.persistence import ScoreStore, SqlScoreStore


class RecordingStore(ScoreStore):
    """In-memory store that remembers every call in order."""

    def __init__(self, fail=()):
        self.calls = []
        self.snapshots = {}
        self.events = []
        self.fail = set(fail)

    async def _call(self, name, *args):
        self.calls.append(name)
        if name in self.fail:
            raise PersistenceError(f"{name} unavailable")

    async def load_config(self, match_id, sport):
        return None

    async def save_config(self, match_id, sport, config):
        await self._call("save_config")

    async def load_score_snapshot(self, match_id):
        return copy.deepcopy(self.snapshots.get(match_id))

    async def save_score_snapshot(self, match_id, state):
        await self._call("save_score_snapshot")
        self.snapshots[match_id] = copy.deepcopy(state)

    async def record_event(self, match_id, event_log):
        await self._call("record_event")
        self.events.append(event_log)

    async def complete_match(self, match_id, final_state, winner_side):
        await self._call("complete_match")

    async def set_match_status(self, match_id, status):
        await self._call("set_match_status")


@pytest.fixture
def anyio_backend():
    return "asyncio"


def _badminton():
    return resolve(
        "badminton",
        {"gameTypes": ["singles"] * 3},
        {"winner": "home", "decision": "serve"},
    )


def _point(side):
    return {"type": "POINT", "by": side}


@pytest.mark.anyio
async def test_rapid_events_coalesce_into_one_save():
    store = RecordingStore()
    live = LiveMatch("m1", _badminton(), store, debounce_seconds=0.05)

    for side in ("home", "away", "home"):
        await live.apply(_point(side))

    assert store.calls.count("save_score_snapshot") == 0
    assert live.save_pending
    await asyncio.sleep(0.15)

    assert store.calls.count("save_score_snapshot") == 1
    saved = store.snapshots["m1"]["periods"][0]
    assert (saved["home"], saved["away"]) == (2, 1)
    assert store.calls.count("record_event") == 3


@pytest.mark.anyio
async def test_flush_saves_immediately_and_cancels_pending_save():
    store = RecordingStore()
    live = LiveMatch("m1", _badminton(), store, debounce_seconds=5)

    await live.apply(_point("home"))
    assert live.save_pending
    await live.flush()

    assert not live.save_pending
    assert store.calls.count("save_score_snapshot") == 1
    assert store.snapshots["m1"]["periods"][0]["home"] == 1


@pytest.mark.anyio
async def test_illegal_event_leaves_state_and_storage_untouched():
    store = RecordingStore()
    live = LiveMatch("m1", _badminton(), store, debounce_seconds=0)
    before = copy.deepcopy(live.state)

    with pytest.raises(IllegalTransition):
        await live.apply({"type": "POINT", "by": "nobody"})

    assert live.state == before
    assert store.calls == []
    assert not live.history


@pytest.mark.anyio
async def test_undo_restores_previous_states_without_persisting():
    store = RecordingStore()
    live = LiveMatch("m1", _badminton(), store, debounce_seconds=0, history_limit=3)

    for side in ("home", "home", "away", "away"):
        await live.apply(_point(side))
    calls = list(store.calls)

    state = live.undo()
    assert (state["periods"][0]["home"], state["periods"][0]["away"]) == (2, 1)
    live.undo()
    state = live.undo()
    assert (state["periods"][0]["home"], state["periods"][0]["away"]) == (1, 0)

    with pytest.raises(IllegalTransition):
        live.undo()
    assert store.calls == calls


@pytest.mark.anyio
async def test_completed_match_cannot_be_undone():
    store = RecordingStore()
    live = LiveMatch("m1", _badminton(), store, debounce_seconds=0)
    for _ in range(42):
        await live.apply(_point("away"))

    assert live.state["completed"] is True
    with pytest.raises(IllegalTransition):
        live.undo()


@pytest.mark.anyio
async def test_completion_saves_then_notifies_in_order():
    store = RecordingStore()
    live = LiveMatch("m1", _badminton(), store, debounce_seconds=5)
    for _ in range(42):
        await live.apply(_point("home"))

    assert store.calls[-3:] == ["save_score_snapshot", "complete_match", "set_match_status"]
    assert store.snapshots["m1"]["completed"] is True
    assert not live.save_pending


@pytest.mark.anyio
async def test_completion_failure_is_logged_and_status_still_updated(caplog):
    store = RecordingStore(fail={"complete_match"})
    live = LiveMatch("m1", _badminton(), store, debounce_seconds=0)

    with caplog.at_level(logging.ERROR):
        for _ in range(42):
            state = await live.apply(_point("home"))

    assert state["completed"] is True
    assert state["winnerSide"] == "home"
    assert "set_match_status" in store.calls
    assert "complete_match failed for match m1" in caplog.text


@pytest.mark.anyio
async def test_storage_failure_does_not_block_scoring(caplog):
    store = RecordingStore(fail={"save_score_snapshot", "record_event"})
    live = LiveMatch("m1", _badminton(), store, debounce_seconds=0)

    with caplog.at_level(logging.WARNING):
        state = await live.apply(_point("away"))

    assert state["periods"][0]["away"] == 1
    assert "score snapshot not saved for match m1" in caplog.text
    assert "audit event dropped" in caplog.text


@pytest.mark.anyio
async def test_cricket_deliveries_are_audited():
    store = RecordingStore()
    state = resolve(
        "cricket",
        {
            "totalOvers": 5,
            "maxOversPerBowler": 1,
            "rosters": {"home": ["h1", "h2"], "away": ["a1", "a2"]},
        },
        {"winner": "home", "decision": "bat"},
    )
    live = LiveMatch("m1", state, store, debounce_seconds=0)
    for event in (
        {"type": "SELECT_STRIKER", "playerId": "h1"},
        {"type": "SELECT_NON_STRIKER", "playerId": "h2"},
        {"type": "SELECT_BOWLER", "playerId": "a1"},
        {"type": "RUNS", "runs": 4},
    ):
        await live.apply(event)

    assert "delivery" not in store.events[0]
    delivery = store.events[-1]["delivery"]
    assert delivery["runsScored"] == 4
    assert delivery["bowlerId"] == "a1"
    assert delivery["ballNumber"] == 1


@pytest.mark.anyio
async def test_registry_resumes_from_stored_snapshot():
    store = RecordingStore()
    registry = LiveMatchRegistry(ttl_seconds=60, debounce_seconds=0)

    live = await registry.start("m1", _badminton(), store)
    await live.apply(_point("home"))
    await live.apply(_point("away"))

    await registry.invalidate("m1")
    resumed = await registry.get("m1", store)

    assert resumed is not live
    assert resumed.state == live.state
    assert not resumed.history
    assert await registry.get("missing", store) is None


@pytest.mark.anyio
async def test_registry_expires_idle_matches():
    store = RecordingStore()
    registry = LiveMatchRegistry(ttl_seconds=0, debounce_seconds=0)

    live = await registry.start("m1", _badminton(), store)
    await live.apply(_point("home"))

    resumed = await registry.get("m1", store)
    assert resumed is not live
    assert resumed.state["periods"][0]["home"] == 1


@pytest.mark.anyio
async def test_idle_matches_are_evicted_when_other_matches_are_used():
    store = RecordingStore()
    registry = LiveMatchRegistry(ttl_seconds=0, debounce_seconds=5)

    first = await registry.start("m1", _badminton(), store)
    await first.apply(_point("home"))
    assert first.save_pending

    await registry.start("m2", _badminton(), store)
    assert "m1" not in registry
    assert "m2" in registry
    assert len(registry) == 1
    assert not first.save_pending
    assert store.snapshots["m1"]["periods"][0]["home"] == 1

    assert await registry.get("missing", store) is None
    assert len(registry) == 0


@pytest.mark.anyio
async def test_snapshot_round_trips_through_the_database():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    session_maker = sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)
    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        async with session_maker() as session:
            session.add(Sport(id="cricket", name="Cricket"))
            session.add(Match(id="m1", sport_id="cricket", status="live"))
            await session.commit()

        store = SqlScoreStore(session_maker)
        state = resolve(
            "cricket",
            {
                "totalOvers": 2,
                "maxOversPerBowler": 1,
                "rosters": {"home": ["h1", "h2", "h3"], "away": ["a1", "a2", "a3"]},
            },
            {"winner": "away", "decision": "bat"},
        )
        registry = LiveMatchRegistry(ttl_seconds=60, debounce_seconds=0)
        live = await registry.start("m1", state, store)
        for event in (
            {"type": "SELECT_STRIKER", "playerId": "a1"},
            {"type": "SELECT_NON_STRIKER", "playerId": "a2"},
            {"type": "SELECT_BOWLER", "playerId": "h1"},
            {"type": "RUNS", "runs": 1},
            {"type": "EXTRA", "kind": "wide", "runs": 1},
        ):
            await live.apply(event)

        await registry.clear()
        resumed = await registry.get("m1", store)

        assert resumed.state == live.state
        assert resumed.state["striker"] == "a2"
        assert len(await store.list_events("m1")) == 5

        await resumed.apply({"type": "RUNS", "runs": 2})
        assert resumed.state["periods"][0]["runs"] == 4
    finally:
        await engine.dispose()


@pytest.mark.anyio
async def test_sql_store_wraps_database_errors():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    session_maker = sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)
    try:
        store = SqlScoreStore(session_maker)
        with pytest.raises(PersistenceError):
            await store.save_score_snapshot("m1", {"sport": "chess"})
    finally:
        await engine.dispose()
