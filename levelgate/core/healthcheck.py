from __future__ import annotations

import logging

from sqlalchemy import text

from levelgate.db.engine import get_engine

logger = logging.getLogger(__name__)


async def db_unreachable() -> bool:
    """Return True when a `SELECT 1` against the database fails."""
    failed = False
    try:
        engine = get_engine()
        async with engine.begin() as conn:
            await conn.execute(text("SELECT 1"))
        logger.info("Database connectivity: OK")
    except Exception as e:
        logger.error("Database connectivity failed: %s", e)
        failed = True

    return failed
