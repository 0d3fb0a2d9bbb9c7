"""Top-level run: every selected target as an independent, concurrent unit of work."""

import asyncio
import logging

from migrations.postgres_to_scylla.note_migrator import NoteMigrator
from migrations.postgres_to_scylla.reaction_migrator import (
    NotificationMigrator,
    PollVoteMigrator,
    ReactionMigrator,
)
from migrations.postgres_to_scylla.source import PostgresSource
from utils.concurrency import first_error

logger = logging.getLogger(__name__)

# Migration targets for --only and --skip flags
MIGRATION_TARGETS = ["notes", "reactions", "poll_votes", "notifications"]


async def run_migration(migration, targets: list[str] | None = None, source=None, sink=None):
    """
    Migrate the selected targets concurrently.

    All-or-nothing: the first error in any target cancels the others and is
    re-raised. ``source`` and ``sink`` default to the run's PostgreSQL source and
    ScyllaDB sink.
    """
    source = source or PostgresSource(migration)
    sink = sink or migration.sink
    targets = targets or MIGRATION_TARGETS

    units = {
        "notes": NoteMigrator(migration, source, sink).migrate_notes,
        "reactions": ReactionMigrator(migration, source, sink).migrate,
        "poll_votes": PollVoteMigrator(migration, source, sink).migrate,
        "notifications": NotificationMigrator(migration, source, sink).migrate,
    }

    try:
        async with asyncio.TaskGroup() as tg:
            for target in targets:
                logger.info(f"🚀 Starting {target} migration")
                tg.create_task(units[target]())
    except BaseExceptionGroup as eg:
        raise first_error(eg) from None
