"""Infrastructure resources: database engine and write rate limiter.

This module is part of the infra layer and must not import from application features.
"""
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import structlog
from limits import parse
from limits.storage import MemoryStorage
from limits.strategies import MovingWindowRateLimiter
from sqlalchemy import event, text
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

logger = structlog.get_logger("agrichat.infra")


def _configure_sqlite_connection(dbapi_connection, _connection_record) -> None:
    # SQLite ignores ON DELETE CASCADE unless foreign keys are switched on per connection
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()
    # Hand transaction control to SQLAlchemy so SAVEPOINTs behave
    dbapi_connection.isolation_level = None


def _begin_sqlite_transaction(conn) -> None:
    conn.exec_driver_sql("BEGIN")


class DatabaseResource:
    """Database resource for dependency injection."""

    def __init__(
        self,
        database_url: str,
        pool_size: int = 10,
        max_overflow: int = 0,
        pool_timeout: float = 60.0,
    ):
        self.database_url = database_url
        self.pool_size = pool_size
        self.max_overflow = max_overflow
        self.pool_timeout = pool_timeout
        self.engine = None
        self.session_factory = None

    @property
    def is_sqlite(self) -> bool:
        return make_url(self.database_url).get_backend_name() == "sqlite"

    async def init(self):
        """Initialize database connection pool."""
        if self.engine is not None:
            return self

        engine_kwargs: Dict[str, Any] = {"echo": False, "pool_pre_ping": True}
        if not self.is_sqlite:
            engine_kwargs.update(
                pool_size=self.pool_size,
                max_overflow=self.max_overflow,
                pool_timeout=self.pool_timeout,
                pool_recycle=3600,
            )

        self.engine = create_async_engine(self.database_url, **engine_kwargs)
        if self.is_sqlite:
            event.listen(self.engine.sync_engine, "connect", _configure_sqlite_connection)
            event.listen(self.engine.sync_engine, "begin", _begin_sqlite_transaction)

        self.session_factory = async_sessionmaker(
            bind=self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )
        logger.info(
            "database.pool.initialized",
            backend=make_url(self.database_url).get_backend_name(),
            pool_size=None if self.is_sqlite else self.pool_size,
        )
        return self

    def get_session(self) -> AsyncSession:
        """Get database session (synchronous accessor)."""
        if self.session_factory is None:
            raise RuntimeError("Database not initialized. Call init() first.")
        return self.session_factory()

    async def create_tables(self, metadata) -> None:
        """Create all tables known to the given metadata."""
        if self.engine is None:
            raise RuntimeError("Database not initialized. Call init() first.")
        async with self.engine.begin() as conn:
            await conn.run_sync(metadata.create_all)

    async def health_check(self) -> Dict[str, Any]:
        """Run a trivial query and report the outcome."""
        checked_at = datetime.now(timezone.utc)
        if self.engine is None:
            return {
                "status": "unhealthy",
                "error": "Database not initialized",
                "timestamp": checked_at,
            }
        try:
            async with self.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            return {"status": "healthy", "timestamp": checked_at}
        except Exception as e:
            logger.warning("database.health_check.failed", error=str(e))
            return {"status": "unhealthy", "error": str(e), "timestamp": checked_at}

    async def shutdown(self):
        """Dispose the pool; checked-out connections are closed as they are returned."""
        if self.engine:
            await self.engine.dispose()
            logger.info("database.pool.closed")
        self.engine = None
        self.session_factory = None


class RateLimiterResource:
    """In-memory moving-window limiter keyed by client address."""

    def __init__(self, limit: str, enabled: bool = True, key_prefix: str = "agrichat"):
        self.limit = parse(limit)
        self.enabled = enabled
        self.key_prefix = key_prefix
        self.storage = MemoryStorage()
        self.limiter = MovingWindowRateLimiter(self.storage)

    def hit(self, client_key: str) -> bool:
        """Consume one slot for the client; False when the window is exhausted."""
        if not self.enabled:
            return True
        return self.limiter.hit(self.limit, self.key_prefix, client_key)

    def retry_after(self, client_key: str) -> Optional[int]:
        """Seconds until the client's window frees a slot."""
        reset_at, _remaining = self.limiter.get_window_stats(
            self.limit, self.key_prefix, client_key
        )
        seconds = int(reset_at - datetime.now(timezone.utc).timestamp())
        return max(seconds, 0)
