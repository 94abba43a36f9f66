"""
Drops and recreates every table of the CRM schema.

Usage:
    python scripts/reset_db.py
"""

import asyncio
import logging

from autocrm.core.database import engine
from autocrm.models import Base

logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
logger = logging.getLogger("reset_db")


async def reset() -> None:
    logger.info("Connecting to the database, dropping tables...")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        logger.info("Tables dropped, creating schema...")
        await conn.run_sync(Base.metadata.create_all)
    await engine.dispose()
    logger.info("Database reset completed (%s tables)", len(Base.metadata.tables))


if __name__ == "__main__":
    asyncio.run(reset())
