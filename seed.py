"""Seed script — creates the schema and loads the built-in roles and privileges."""

import asyncio
import logging

from authcore.config import Settings
from authcore.database.engine import create_engine, create_session_factory, init_db
from authcore.database.seed import DEFAULT_PRIVILEGES, DEFAULT_ROLES, seed_catalog


async def seed() -> None:
    settings = Settings()
    engine = create_engine(settings.database_url)
    try:
        await init_db(engine)
        await seed_catalog(create_session_factory(engine))
    finally:
        await engine.dispose()
    print(f"Seeded {len(DEFAULT_PRIVILEGES)} privileges and {len(DEFAULT_ROLES)} roles.")


if __name__ == "__main__":
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
    )
    asyncio.run(seed())
