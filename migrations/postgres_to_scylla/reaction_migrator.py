"""
Migrators for rows that map one-to-one onto a Scylla record.

Reactions, poll votes and notifications have no fan-out: each source row
becomes exactly one record. They run independently of the note migrator and
of each other.
"""

import logging

from sqlmodel import SQLModel

from db.models import NoteReaction, Notification, PollVote
from db.schemas.scylla import ScyllaRecord
from migrations.postgres_to_scylla.denormalizer import (
    build_notification_record,
    build_poll_vote_record,
    build_reaction_record,
)
from utils.concurrency import run_bounded

logger = logging.getLogger(__name__)


class FlatRecordMigrator:
    name: str
    model: type[SQLModel]

    def __init__(self, migration, source, sink):
        self.migration = migration
        self.source = source
        self.sink = sink
        self.stats = migration.stats
        self.progress = migration.progress
        self.max_concurrent_rows = migration.settings.max_concurrent_rows

    async def transform(self, row: SQLModel) -> ScyllaRecord:
        raise NotImplementedError

    async def migrate(self):
        total = await self.source.count(self.model)
        self.progress.start(self.name, total)
        if total == 0:
            logger.info(f"No {self.name} to migrate")
            return

        logger.info(f"Migrating {total:,} {self.name}")
        await run_bounded(self.source.stream(self.model), self.migrate_row, self.max_concurrent_rows)
        logger.info(f"✅ Migrated {self.progress.done(self.name):,} {self.name}")

    async def migrate_row(self, row: SQLModel):
        record = await self.transform(row)
        await self.sink.write(record)
        self.stats.add_written(record.cql_table)
        self.progress.advance(self.name)


class ReactionMigrator(FlatRecordMigrator):
    name = "reactions"
    model = NoteReaction

    async def transform(self, row: NoteReaction) -> ScyllaRecord:
        return build_reaction_record(row)


class PollVoteMigrator(FlatRecordMigrator):
    name = "poll_votes"
    model = PollVote

    async def transform(self, row: PollVote) -> ScyllaRecord:
        return build_poll_vote_record(row, await self.source.find_user_host(row.user_id))


class NotificationMigrator(FlatRecordMigrator):
    name = "notifications"
    model = Notification

    async def transform(self, row: Notification) -> ScyllaRecord:
        return build_notification_record(row, await self.source.find_user_host(row.notifier_id))
