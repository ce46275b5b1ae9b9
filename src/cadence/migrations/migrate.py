"""
Database Migration Runner

Applies the SQL files next to this module in filename order.
Each file is idempotent (CREATE ... IF NOT EXISTS), so re-running is safe.

Usage:
    python -m cadence.migrations.migrate
"""
import asyncio
import logging
import sys
from pathlib import Path

import asyncpg

from ..config import Config

logger = logging.getLogger("cadence.migrations")

MIGRATIONS_DIR = Path(__file__).parent


async def run_migrations(dsn: str) -> int:
    """Run every *.sql migration; returns the number of files applied"""
    conn = await asyncpg.connect(dsn)
    applied = 0
    try:
        for sql_file in sorted(MIGRATIONS_DIR.glob("*.sql")):
            logger.info(f"Applying migration {sql_file.name}")
            async with conn.transaction():
                await conn.execute(sql_file.read_text())
            applied += 1
    finally:
        await conn.close()
    return applied


def main():
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )
    try:
        applied = asyncio.run(run_migrations(Config.get_postgres_dsn()))
    except (OSError, asyncpg.PostgresError) as e:
        logger.error(f"Migration failed: {e}")
        sys.exit(1)
    logger.info(f"Migrations complete ({applied} files)")


if __name__ == "__main__":
    main()
