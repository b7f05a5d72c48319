'''
Schema helpers used by the bootstrap script and the test suite.
'''
from sqlalchemy.ext.asyncio import AsyncEngine
from ..common.logger import log
from .models import Base

async def create_all_tables(engine: AsyncEngine) -> None:
    """
    Creates every table declared on the ORM metadata (no-op for existing tables).
    """
    log.info("Creating database schema from ORM metadata...")
    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        log.info(f"Schema ready ({len(Base.metadata.tables)} tables).")
    except Exception as e:
        log.error(f"Failed to create database schema: {e}", exc_info=True)
        raise

async def drop_all_tables(engine: AsyncEngine) -> None:
    """Drops every table declared on the ORM metadata."""
    log.warning("Dropping all tables declared on the ORM metadata...")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
