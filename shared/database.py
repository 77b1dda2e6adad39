import logging
import os
import ssl
from typing import Any, Optional

import asyncpg

logger = logging.getLogger(__name__)

PROFILES_SCHEMA = """
CREATE TABLE IF NOT EXISTS profiles (
    user_id UUID PRIMARY KEY,
    credits INTEGER NOT NULL DEFAULT 10 CHECK (credits >= 0),
    last_credit_reset TIMESTAMP WITH TIME ZONE NOT NULL DEFAULT CURRENT_TIMESTAMP,
    created_at TIMESTAMP WITH TIME ZONE DEFAULT CURRENT_TIMESTAMP,
    updated_at TIMESTAMP WITH TIME ZONE DEFAULT CURRENT_TIMESTAMP
);
"""

_pool: Optional[asyncpg.Pool] = None


def database_url() -> str:
    """DSN from DATABASE_URL, or assembled from the DB_* variables"""
    url = os.getenv("DATABASE_URL")
    if url:
        # asyncpg rejects the short scheme some hosts hand out
        if url.startswith("postgres://"):
            url = "postgresql://" + url[len("postgres://") :]
        return url

    return "postgresql://{user}:{password}@{host}:{port}/{name}".format(
        user=os.getenv("DB_USER", "postgres"),
        password=os.getenv("DB_PASSWORD", ""),
        host=os.getenv("DB_HOST", "localhost"),
        port=os.getenv("DB_PORT", "5432"),
        name=os.getenv("DB_NAME", "cuisine"),
    )


def _ssl_context() -> Optional[ssl.SSLContext]:
    # Hosted Postgres requires TLS but presents a self-signed chain
    if os.getenv("ENVIRONMENT", "development") not in ("production", "staging"):
        return None
    context = ssl.create_default_context()
    context.check_hostname = False
    context.verify_mode = ssl.CERT_NONE
    return context


class Database:
    """Thin query helper over an asyncpg pool"""

    def __init__(self, pool: asyncpg.Pool):
        self.pool = pool

    async def fetch_one(self, query: str, *args) -> Optional[dict[str, Any]]:
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(query, *args)
        return dict(row) if row else None

    async def execute(self, query: str, *args, timeout: Optional[float] = None) -> str:
        """Run a statement and return its status tag, e.g. "UPDATE 1" """
        async with self.pool.acquire() as conn:
            return await conn.execute(query, *args, timeout=timeout)


async def init_db():
    global _pool

    min_size = int(os.getenv("DB_POOL_MIN_SIZE", 2))
    max_size = int(os.getenv("DB_POOL_MAX_SIZE", 8))
    logger.info(f"🗄️ DB: Opening connection pool (min={min_size}, max={max_size})")

    try:
        _pool = await asyncpg.create_pool(
            database_url(),
            ssl=_ssl_context(),
            min_size=min_size,
            max_size=max_size,
            command_timeout=30,
            max_inactive_connection_lifetime=300,
        )

        if os.getenv("SKIP_SCHEMA_INIT", "false").lower() == "true":
            logger.info("🗄️ DB: SKIP_SCHEMA_INIT=true, leaving schema untouched")
        else:
            await create_tables()
    except Exception as e:
        logger.error(f"❌ DB: Initialization failed: {e}")
        await close_db()
        raise

    logger.info("🗄️ DB: Ready")


async def close_db():
    global _pool
    if _pool is not None:
        await _pool.close()
        _pool = None


async def get_db() -> Database:
    """FastAPI dependency yielding the pooled database"""
    if _pool is None:
        await init_db()
    return Database(_pool)


async def create_tables():
    """Ensure the profiles table exists.

    Rows are created by the identity provider's signup hook; this service
    only reads and updates the credit columns.
    """
    db = Database(_pool)
    await db.execute(PROFILES_SCHEMA, timeout=300)
    logger.info("🗄️ DB: profiles table ensured")
