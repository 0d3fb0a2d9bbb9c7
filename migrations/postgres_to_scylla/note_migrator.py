"""
Note migrator: denormalize each note and fan it out to follower timelines.

Per note (one unit of work):
- reply/renote targets, attachments, poll and edit history are fetched concurrently;
  one failing lookup cancels the rest
- the canonical record is built from those results
- the canonical record is written to `note`
- local followers are resolved and one copy per follower is written to `home_timeline`

Notes are processed by a bounded pool; a failing note aborts the run.
"""

import asyncio
import logging

from db.models import Note
from db.schemas.scylla import FileRef, PostRecord, TimelineEntry
from migrations.postgres_to_scylla.denormalizer import build_post_record
from utils.concurrency import first_error, run_bounded

logger = logging.getLogger(__name__)


class NoteMigrator:
    name = "notes"

    def __init__(self, migration, source, sink):
        self.migration = migration
        self.source = source
        self.sink = sink
        self.stats = migration.stats
        self.progress = migration.progress
        self.max_concurrent_notes = migration.settings.max_concurrent_notes
        self.fanout_concurrency = migration.settings.fanout_concurrency

    async def migrate_notes(self):
        total = await self.source.count(Note)
        self.progress.start(self.name, total)
        if total == 0:
            logger.info("No notes to migrate")
            return

        logger.info(f"Migrating {total:,} notes")
        await run_bounded(self.source.stream(Note), self.migrate_note, self.max_concurrent_notes)
        logger.info(f"✅ Migrated {self.progress.done(self.name):,} notes")

    async def _resolve_target(self, note_id: str | None) -> tuple[Note | None, list[FileRef]]:
        target = await self.source.find_note(note_id)
        if target is None:
            if note_id is not None:
                self.stats.add_error("unresolved_target", note_id)
            return None, []
        return target, await self.source.find_files(target.file_ids or [])

    async def build_record(self, note: Note) -> PostRecord:
        try:
            async with asyncio.TaskGroup() as tg:
                reply_task = tg.create_task(self._resolve_target(note.reply_id))
                renote_task = tg.create_task(self._resolve_target(note.renote_id))
                files_task = tg.create_task(self.source.find_files(note.file_ids or []))
                poll_task = tg.create_task(self.source.find_poll(note.id))
                edits_task = tg.create_task(self.source.find_edit_history(note.id))
        except BaseExceptionGroup as eg:
            raise first_error(eg) from None

        reply, reply_files = reply_task.result()
        renote, renote_files = renote_task.result()
        files, poll, edits = files_task.result(), poll_task.result(), edits_task.result()
        return build_post_record(
            note,
            files=files,
            reply=reply,
            reply_files=reply_files,
            renote=renote,
            renote_files=renote_files,
            poll=poll,
            edits=edits,
            reactions=self.source.reaction_tally(note),
        )

    async def migrate_note(self, note: Note):
        record = await self.build_record(note)

        await self.sink.write(record)
        self.stats.add_written(PostRecord.cql_table)
        self.progress.advance(self.name)

        follower_ids = await self.source.find_local_follower_ids(note.user_id)
        if follower_ids:
            await self.fan_out(record, follower_ids)

    async def fan_out(self, record: PostRecord, follower_ids: set[str]) -> int:
        """Write one timeline copy per follower; waits for all, fails if any fails."""

        async def write_copy(follower_id: str):
            await self.sink.write(TimelineEntry.from_record(record, follower_id))

        written = await run_bounded(sorted(follower_ids), write_copy, self.fanout_concurrency)
        self.stats.add_written(TimelineEntry.cql_table, written)
        return written
