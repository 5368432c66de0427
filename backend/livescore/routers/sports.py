from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..db import get_session
from ..models import Sport
from ..schemas import SportOut
from ..scoring import ENGINES

router = APIRouter(prefix="/sports", tags=["sports"])


DEFAULT_SPORT_CATALOG: tuple[tuple[str, str], ...] = (
    ("cricket", "Cricket"),
    ("volleyball", "Volleyball"),
    ("badminton", "Badminton"),
    ("table_tennis", "Table Tennis"),
    ("futsal", "Futsal"),
    ("chess", "Chess"),
)

DEFAULT_SPORT_NAME_LOOKUP = {sport_id: name for sport_id, name in DEFAULT_SPORT_CATALOG}


def _fallback_sport_name(sport_id: str, provided_name: str | None) -> str:
    if provided_name:
        normalized = provided_name.strip()
        if normalized:
            return normalized

    fallback = DEFAULT_SPORT_NAME_LOOKUP.get(sport_id)
    if fallback:
        return fallback

    return sport_id.replace("_", " ").replace("-", " ").strip().title() or sport_id


# GET /api/v0/sports
@router.get("", response_model=list[SportOut])
async def list_sports(session: AsyncSession = Depends(get_session)) -> list[SportOut]:
    """Sports with a live scoring engine, stored names taking precedence."""
    rows = (await session.execute(select(Sport))).scalars().all()

    catalog: dict[str, str] = dict(DEFAULT_SPORT_CATALOG)
    for sport in rows:
        if sport.id in ENGINES:
            catalog[sport.id] = _fallback_sport_name(sport.id, sport.name)

    # Deterministic ordering for consumers
    sorted_catalog = sorted(
        catalog.items(), key=lambda item: (item[1].lower(), item[0])
    )

    return [SportOut(id=sport_id, name=name) for sport_id, name in sorted_catalog]
