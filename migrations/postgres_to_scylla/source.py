"""
Read side of the migration: ordered scans, point lookups and the follow graph.

Public methods carry the lookup policies (ordering, skipping missing rows,
dropping failed edit entries); the `_query_*` methods are the only places
that talk to PostgreSQL. Every query opens its own pooled session, so lookups
for one note can run concurrently with each other and with other notes.
Queries are gated by a semaphore sized to the connection pool.
"""

import asyncio
import logging
from collections.abc import AsyncIterator, Sequence
from contextlib import asynccontextmanager

from sqlalchemy import func
from sqlmodel import SQLModel, select

from db.models import DriveFile, Following, Note, NoteEdit, Poll, User
from db.schemas.scylla import EditHistoryEntry, FileRef, PollSnapshot
from migrations.postgres_to_scylla.denormalizer import (
    build_edit_entry,
    build_file_ref,
    build_poll_snapshot,
    build_reaction_tally,
)

logger = logging.getLogger(__name__)


class PostgresSource:
    def __init__(self, migration):
        self.migration = migration
        self.stats = migration.stats
        self.batch_size = migration.batch_size
        self.sample_size = migration.sample_size
        self._lookup_slots = asyncio.Semaphore(migration.settings.postgres_pool_size)
        self._host_cache: dict[str, str | None] = {}

    @asynccontextmanager
    async def _session(self):
        async with self._lookup_slots:
            async with self.migration.get_session() as session:
                yield session

    # =========================================================================
    # Record streams
    # =========================================================================

    async def count(self, model: type[SQLModel]) -> int:
        total = await self._query_count(model)
        if self.sample_size is not None:
            return min(total, self.sample_size)
        return total

    async def stream(self, model: type[SQLModel]) -> AsyncIterator[SQLModel]:
        """
        Yield every row of ``model`` in ascending primary-key order.

        Pages by keyset (id > last seen id) so no cursor is held open between
        batches. The iterator is forward-only; a new call starts from scratch.
        """
        yielded = 0
        last_id = None

        while True:
            rows = await self._query_page(model, last_id)
            if not rows:
                return

            for row in rows:
                if self.sample_size is not None and yielded >= self.sample_size:
                    return
                yield row
                yielded += 1

            last_id = rows[-1].id

    # =========================================================================
    # Related lookups
    # =========================================================================

    async def find_note(self, note_id: str | None) -> Note | None:
        """A missing reply/renote target is valid state for federated content."""
        if note_id is None:
            return None
        return await self._query_note(note_id)

    async def find_files(self, file_ids: list[str]) -> list[FileRef]:
        """Attachments in the order given; ids with no drive file are skipped."""
        if not file_ids:
            return []

        by_id = {drive_file.id: drive_file for drive_file in await self._query_files(file_ids)}
        return [build_file_ref(by_id[file_id]) for file_id in file_ids if file_id in by_id]

    async def find_poll(self, note_id: str) -> PollSnapshot | None:
        poll = await self._query_poll(note_id)
        return build_poll_snapshot(poll) if poll else None

    async def find_edit_history(self, note_id: str) -> list[EditHistoryEntry]:
        """
        Edit history ordered by edit time.

        Each entry's attachment lookup is resolved separately; an entry whose
        lookup fails is dropped with a warning instead of failing the note.
        """
        edits = await self._query_edits(note_id)
        if not edits:
            return []

        results = await asyncio.gather(
            *(self.find_files(edit.file_ids or []) for edit in edits),
            return_exceptions=True,
        )

        entries = []
        for edit, files in zip(edits, results):
            if isinstance(files, asyncio.CancelledError):
                raise files
            if isinstance(files, Exception):
                logger.warning(f"Dropping edit {edit.id} of note {note_id}: {files}")
                self.stats.add_error("note_edit", f"{edit.id}: {files}")
                continue
            entries.append(build_edit_entry(edit.text, edit.cw, files, edit.updated_at))
        return entries

    def reaction_tally(self, note: Note) -> dict[str, int]:
        """Parsed from the note's own stored reactions; reactors are not cross-checked."""
        return build_reaction_tally(note.reactions)

    async def find_user_host(self, user_id: str | None) -> str | None:
        if user_id is None:
            return None
        if user_id not in self._host_cache:
            self._host_cache[user_id] = await self._query_user_host(user_id)
        return self._host_cache[user_id]

    # =========================================================================
    # Follow graph
    # =========================================================================

    async def find_local_follower_ids(self, user_id: str) -> set[str]:
        """Followers hosted locally (no follower host). Remote followers get no timeline copy."""
        return set(await self._query_local_follower_ids(user_id))

    # =========================================================================
    # Queries
    # =========================================================================

    async def _query_count(self, model: type[SQLModel]) -> int:
        async with self._session() as session:
            return await session.scalar(select(func.count()).select_from(model)) or 0

    async def _query_page(self, model: type[SQLModel], last_id: str | None) -> Sequence[SQLModel]:
        stmt = select(model).order_by(model.id).limit(self.batch_size)
        if last_id is not None:
            stmt = stmt.where(model.id > last_id)
        async with self._session() as session:
            return (await session.exec(stmt)).all()

    async def _query_note(self, note_id: str) -> Note | None:
        async with self._session() as session:
            return await session.get(Note, note_id)

    async def _query_files(self, file_ids: list[str]) -> Sequence[DriveFile]:
        async with self._session() as session:
            return (await session.exec(select(DriveFile).where(DriveFile.id.in_(file_ids)))).all()

    async def _query_poll(self, note_id: str) -> Poll | None:
        async with self._session() as session:
            return await session.get(Poll, note_id)

    async def _query_edits(self, note_id: str) -> Sequence[NoteEdit]:
        stmt = select(NoteEdit).where(NoteEdit.note_id == note_id).order_by(NoteEdit.updated_at)
        async with self._session() as session:
            return (await session.exec(stmt)).all()

    async def _query_user_host(self, user_id: str) -> str | None:
        async with self._session() as session:
            return (await session.exec(select(User.host).where(User.id == user_id))).first()

    async def _query_local_follower_ids(self, user_id: str) -> Sequence[str]:
        stmt = select(Following.follower_id).where(
            Following.followee_id == user_id,
            Following.follower_host.is_(None),
        )
        async with self._session() as session:
            return (await session.exec(stmt)).all()
