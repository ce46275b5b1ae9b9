"""
Base Storage

Shared asyncpg connection pool handling for Cadence storages.
"""
import asyncio
import json
import logging
import os
import time
from typing import Any, Optional

import asyncpg

logger = logging.getLogger("cadence.storage")


def dump_json(value: Any) -> Optional[str]:
    """Serialize a value for a JSONB parameter (None stays NULL)"""
    if value is None:
        return None
    return json.dumps(value, default=str)


def load_json(value: Any, default: Any = None) -> Any:
    """Decode a JSONB column that asyncpg returned as text"""
    if value is None:
        return default
    if isinstance(value, str):
        return json.loads(value)
    return value


class BaseStorage:
    """Base storage class with a lazily created PostgreSQL pool"""

    def __init__(self, postgres_dsn: str, connect_retries: int = 3, retry_delay: float = 1.0):
        self.pg_dsn = postgres_dsn
        self.pg_pool: Optional[asyncpg.Pool] = None
        self.connect_retries = connect_retries
        self.retry_delay = retry_delay
        self.process_id = os.getpid()
        self._initialized = False

    async def init(self):
        """Connect to PostgreSQL (no-op when already connected in this process)"""
        if self._initialized and self.process_id == os.getpid():
            return

        if self.process_id != os.getpid():
            logger.info(f"Fork detected (pid {self.process_id} -> {os.getpid()}), dropping inherited pool")
            self.pg_pool = None
            self.process_id = os.getpid()

        started = time.monotonic()
        last_error: Optional[Exception] = None

        for attempt in range(1, self.connect_retries + 1):
            try:
                self.pg_pool = await asyncpg.create_pool(
                    self.pg_dsn,
                    min_size=1,
                    max_size=10,
                    command_timeout=60,
                )
                async with self.pg_pool.acquire() as conn:
                    await conn.fetchval("SELECT 1")
                break
            except (OSError, asyncpg.PostgresError) as e:
                last_error = e
                logger.error(f"PostgreSQL connection failed (attempt {attempt}/{self.connect_retries}): {e}")
                if attempt < self.connect_retries:
                    await asyncio.sleep(self.retry_delay)
        else:
            raise ConnectionError(f"Could not connect to PostgreSQL: {last_error}")

        self._initialized = True
        elapsed_ms = round((time.monotonic() - started) * 1000, 2)
        logger.info(f"{type(self).__name__} connected in {elapsed_ms}ms")

    async def close(self):
        if self.pg_pool:
            await self.pg_pool.close()
            self.pg_pool = None
            self._initialized = False
            logger.info(f"{type(self).__name__} closed")

    async def execute(self, query: str, *args) -> str:
        async with self.pg_pool.acquire() as conn:
            return await conn.execute(query, *args)

    async def fetch(self, query: str, *args) -> list:
        async with self.pg_pool.acquire() as conn:
            return await conn.fetch(query, *args)

    async def fetchrow(self, query: str, *args) -> Optional[asyncpg.Record]:
        async with self.pg_pool.acquire() as conn:
            return await conn.fetchrow(query, *args)

    async def fetchval(self, query: str, *args) -> Any:
        async with self.pg_pool.acquire() as conn:
            return await conn.fetchval(query, *args)
