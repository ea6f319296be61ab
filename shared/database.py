# shared/database.py
import logging
import os
import ssl
from typing import Any, Optional

import asyncpg

logger = logging.getLogger(__name__)


def database_url_from_env() -> str:
    """Resolve the Postgres URL from DATABASE_URL or its individual components"""
    database_url = os.getenv("DATABASE_URL")

    if not database_url:
        # Build from individual components if DATABASE_URL not provided
        db_host = os.getenv("DB_HOST", "localhost")
        db_port = os.getenv("DB_PORT", "5432")
        db_name = os.getenv("DB_NAME", "postgres")
        db_user = os.getenv("DB_USER", "postgres")
        db_password = os.getenv("DB_PASSWORD", "")

        return f"postgresql://{db_user}:{db_password}@{db_host}:{db_port}/{db_name}"

    # Supabase style postgres:// URLs need the postgresql:// scheme for asyncpg
    if database_url.startswith("postgres://"):
        database_url = database_url.replace("postgres://", "postgresql://", 1)
    return database_url


class Database:
    """Database wrapper for asyncpg with connection pooling"""

    def __init__(self, pool: asyncpg.Pool):
        self.pool = pool

    async def fetch_one(self, query: str, *args) -> Optional[dict[str, Any]]:
        """Fetch a single row"""
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(query, *args)
            return dict(row) if row else None

    async def fetch_all(self, query: str, *args) -> list[dict[str, Any]]:
        """Fetch multiple rows"""
        async with self.pool.acquire() as conn:
            rows = await conn.fetch(query, *args)
            return [dict(row) for row in rows]

    async def execute(self, query: str, *args) -> str:
        """Execute a query without returning results"""
        async with self.pool.acquire() as conn:
            return await conn.execute(query, *args)

    async def execute_schema(self, query: str, *args) -> str:
        """Execute a schema/DDL query with extended timeout"""
        async with self.pool.acquire() as conn:
            return await conn.execute(query, *args, timeout=300)

    async def close(self) -> None:
        await self.pool.close()


async def create_database(
    database_url: Optional[str] = None, environment: Optional[str] = None
) -> Database:
    """Create the connection pool and, unless skipped, the schema"""
    logger.info("Starting database initialization...")

    environment = environment or os.getenv("ENVIRONMENT", "development")

    ssl_context = None
    if environment in ["production", "staging"]:
        # Supabase poolers present certificates the default store can't always verify
        ssl_context = ssl.create_default_context()
        ssl_context.check_hostname = False
        ssl_context.verify_mode = ssl.CERT_NONE

    min_size = int(os.getenv("DB_POOL_MIN_SIZE", 2))
    max_size = int(os.getenv("DB_POOL_MAX_SIZE", 8))

    logger.info(f"Creating database connection pool (min: {min_size}, max: {max_size})...")
    pool = await asyncpg.create_pool(
        database_url or database_url_from_env(),
        ssl=ssl_context,
        min_size=min_size,
        max_size=max_size,
        command_timeout=30,
        max_inactive_connection_lifetime=300,
        # Supabase's transaction pooler does not support prepared statement caching
        statement_cache_size=0,
    )
    db = Database(pool)
    logger.info("Database connection pool created successfully")

    try:
        if os.getenv("SKIP_SCHEMA_INIT", "false").lower() == "true":
            logger.info("Skipping schema initialization (SKIP_SCHEMA_INIT=true)")
        else:
            await create_tables(db)
    except Exception as e:
        logger.error(f"Database initialization failed: {e}")
        await db.close()
        raise

    return db


async def create_tables(db: Database) -> None:
    """Create database tables if they don't exist"""
    logger.info("Starting database schema creation/update...")

    await db.execute("SELECT 1")

    await db.execute_schema(
        """
        CREATE TABLE IF NOT EXISTS favorites (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            user_id UUID NOT NULL,
            recipe_id TEXT NOT NULL,
            recipe_data JSONB NOT NULL DEFAULT '{}'::jsonb,
            created_at TIMESTAMP WITH TIME ZONE DEFAULT CURRENT_TIMESTAMP,
            CONSTRAINT favorites_user_recipe_unique UNIQUE (user_id, recipe_id)
        );

        CREATE INDEX IF NOT EXISTS idx_favorites_user_created
            ON favorites(user_id, created_at DESC);
        """
    )

    await db.execute_schema(
        """
        CREATE TABLE IF NOT EXISTS recipe_feedback (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            user_id UUID,
            email VARCHAR(255),
            message TEXT NOT NULL,
            created_at TIMESTAMP WITH TIME ZONE DEFAULT CURRENT_TIMESTAMP
        );
        """
    )

    logger.info("Schema creation/update completed")
