"""
database/init_db.py

Initializes the database by creating all tables defined in the SQLAlchemy models.
Used for setting up the initial schema in the connected database.
"""

import asyncio
import logging

from sqlalchemy.ext.asyncio import AsyncEngine

from easyserve.database.models import Base
from easyserve.database.session import engine

logger = logging.getLogger(__name__)


async def init_db(bind: AsyncEngine = engine) -> None:
    """
    Creates all database tables based on SQLAlchemy models.
    """
    async with bind.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info(f"Database tables ensured: {sorted(Base.metadata.tables)}")


if __name__ == "__main__":
    asyncio.run(init_db())
