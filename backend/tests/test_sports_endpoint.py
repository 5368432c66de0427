import asyncio
from collections.abc import Iterable

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from livescore.db import Base, get_session
from livescore.models import Sport
from livescore.routers import sports


@pytest.fixture()
def sports_client():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async_session_maker = sessionmaker(
        engine, expire_on_commit=False, class_=AsyncSession
    )

    async def init_schema() -> None:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all, tables=[Sport.__table__])

    asyncio.run(init_schema())

    async def override_get_session() -> Iterable[AsyncSession]:
        async with async_session_maker() as session:
            yield session

    app = FastAPI()
    app.include_router(sports.router, prefix="/api/v0")
    app.dependency_overrides[get_session] = override_get_session

    with TestClient(app) as client:
        yield client, async_session_maker

    app.dependency_overrides.clear()
    asyncio.run(engine.dispose())


def test_list_sports_includes_every_scoring_engine(sports_client):
    client, _ = sports_client

    response = client.get("/api/v0/sports")
    assert response.status_code == 200

    catalog = {entry["id"]: entry["name"] for entry in response.json()}
    assert catalog == {
        "badminton": "Badminton",
        "chess": "Chess",
        "cricket": "Cricket",
        "futsal": "Futsal",
        "table_tennis": "Table Tennis",
        "volleyball": "Volleyball",
    }


def test_list_sports_prefers_stored_names_and_hides_unscored_sports(sports_client):
    client, session_maker = sports_client

    async def seed() -> None:
        async with session_maker() as session:
            session.add_all(
                [
                    Sport(id="futsal", name="Five-a-side"),
                    Sport(id="curling", name="Curling"),
                ]
            )
            await session.commit()

    asyncio.run(seed())

    response = client.get("/api/v0/sports")
    assert response.status_code == 200
    payload = response.json()
    catalog = {entry["id"]: entry["name"] for entry in payload}

    assert catalog["futsal"] == "Five-a-side"
    assert "curling" not in catalog
    assert [entry["name"] for entry in payload][0] == "Badminton"
