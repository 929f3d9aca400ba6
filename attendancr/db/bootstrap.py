import logging
from pathlib import Path

import asyncpg

logger = logging.getLogger(__name__)

SCHEMA_PATH = Path(__file__).with_name("schema.sql")


async def apply_schema(pool: asyncpg.Pool, schema_path: Path = SCHEMA_PATH) -> None:
    """Creates the directory-store tables if they do not exist yet."""
    sql = schema_path.read_text(encoding="utf-8")
    async with pool.acquire() as connection:
        # asyncpg runs a multi-statement script when no arguments are passed.
        await connection.execute(sql)
    logger.info(f"Database schema applied from {schema_path.name}.")
