import asyncio

from sqlalchemy import select

from livescore import db
from livescore.models import Sport
from livescore.routers.sports import DEFAULT_SPORT_CATALOG


async def main():
    db.get_engine()
    async with db.AsyncSessionLocal() as s:
        have = {x.id for x in (await s.execute(select(Sport))).scalars().all()}
        for sid, name in DEFAULT_SPORT_CATALOG:
            if sid not in have:
                s.add(Sport(id=sid, name=name))
        await s.commit()
    await db.engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
