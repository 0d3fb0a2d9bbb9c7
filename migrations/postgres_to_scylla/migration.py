"""Run-scoped state: connections, settings, progress and statistics for one migration run."""

import logging
from contextlib import asynccontextmanager

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlmodel.ext.asyncio.session import AsyncSession

from db.config import Settings
from db.exceptions import ConnectionSetupError
from db.scylla import ScyllaSink
from migrations.postgres_to_scylla.stats import MigrationStats, ProgressTracker

logger = logging.getLogger(__name__)


class DatabaseMigration:
    """Owns everything a single run needs; passed explicitly to the migrators."""

    def __init__(
        self,
        settings: Settings,
        sample_size: int | None = None,
        show_progress: bool = True,
    ):
        self.settings = settings
        self.batch_size = settings.batch_size
        self.sample_size = sample_size
        self.stats = MigrationStats()
        self.progress = ProgressTracker(show_progress=show_progress)
        self.pg_engine: AsyncEngine | None = None
        self.sink: ScyllaSink | None = None

    @asynccontextmanager
    async def get_session(self):
        """Provide managed session context"""
        async with AsyncSession(self.pg_engine, expire_on_commit=False) as session:
            try:
                yield session
            except Exception as e:
                await session.rollback()
                raise e

    async def init_connections(self, connect_scylla: bool = True):
        """
        Reach both stores before any row is read; failing here aborts the run.

        Failures are raised as ConnectionSetupError and logged by the caller.
        """
        try:
            self.pg_engine = create_async_engine(
                self.settings.postgres_uri,
                echo=False,
                pool_size=self.settings.postgres_pool_size,
                max_overflow=self.settings.postgres_max_overflow,
                pool_pre_ping=True,
                pool_recycle=300,
            )
            async with self.pg_engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
        except Exception as e:
            raise ConnectionSetupError("PostgreSQL", str(e)) from e

        if connect_scylla:
            try:
                self.sink = ScyllaSink(self.settings)
                await self.sink.connect()
            except Exception as e:
                raise ConnectionSetupError("ScyllaDB", str(e)) from e

    async def close_connections(self):
        """Close database connections"""
        self.progress.close()

        try:
            if self.sink:
                await self.sink.close()
        except Exception as e:
            logger.exception(f"Error closing ScyllaDB connection: {str(e)}")

        try:
            if self.pg_engine:
                await self.pg_engine.dispose()
        except Exception as e:
            logger.exception(f"Error closing PostgreSQL connection: {str(e)}")
