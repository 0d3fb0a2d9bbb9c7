"""
Pytest configuration and shared fixtures for the migration tests.

The source is the real PostgresSource with its `_query_*` methods answered
from in-memory rows, so every lookup policy runs unchanged. The sink keeps an
upsert map per table keyed by the same primary keys as the Scylla schema.
"""

from datetime import datetime

import pytest
import pytz

from db.config import Settings
from db.exceptions import WriteError
from db.models import DriveFile, Following, Note, NoteEdit, NoteReaction, Notification, Poll, PollVote, User
from migrations.postgres_to_scylla.migration import DatabaseMigration
from migrations.postgres_to_scylla.source import PostgresSource

PRIMARY_KEYS = {
    "note": ("createdAtDate", "createdAt", "id"),
    "home_timeline": ("feedUserId", "createdAtDate", "createdAt", "id"),
    "reaction": ("noteId", "userId", "id"),
    "poll_vote": ("noteId", "userId", "choice"),
    "notification": ("targetId", "createdAtDate", "createdAt", "id"),
}


class InMemorySource(PostgresSource):
    def __init__(self, migration, **rows):
        super().__init__(migration)
        self.tables = {
            Note: sorted(rows.get("notes", []), key=lambda row: row.id),
            NoteReaction: sorted(rows.get("reactions", []), key=lambda row: row.id),
            PollVote: sorted(rows.get("poll_votes", []), key=lambda row: row.id),
            Notification: sorted(rows.get("notifications", []), key=lambda row: row.id),
        }
        self.drive_files = {row.id: row for row in rows.get("drive_files", [])}
        self.polls = {row.note_id: row for row in rows.get("polls", [])}
        self.edits = list(rows.get("edits", []))
        self.followings = list(rows.get("followings", []))
        self.users = {row.id: row for row in rows.get("users", [])}
        self.file_queries: list[list[str]] = []
        self.failing_file_ids: set[str] = set()

    async def _query_count(self, model):
        return len(self.tables[model])

    async def _query_page(self, model, last_id):
        rows = [row for row in self.tables[model] if last_id is None or row.id > last_id]
        return rows[: self.batch_size]

    async def _query_note(self, note_id):
        return next((row for row in self.tables[Note] if row.id == note_id), None)

    async def _query_files(self, file_ids):
        self.file_queries.append(list(file_ids))
        failing = self.failing_file_ids.intersection(file_ids)
        if failing:
            raise ConnectionError(f"lookup failed for {sorted(failing)}")
        # Unordered, like an IN query
        return [self.drive_files[file_id] for file_id in sorted(set(file_ids)) if file_id in self.drive_files]

    async def _query_poll(self, note_id):
        return self.polls.get(note_id)

    async def _query_edits(self, note_id):
        return sorted((edit for edit in self.edits if edit.note_id == note_id), key=lambda edit: edit.updated_at)

    async def _query_user_host(self, user_id):
        user = self.users.get(user_id)
        return user.host if user else None

    async def _query_local_follower_ids(self, user_id):
        return [
            edge.follower_id
            for edge in self.followings
            if edge.followee_id == user_id and edge.follower_host is None
        ]


class RecordingSink:
    """Upsert semantics: a second write with the same primary key overwrites."""

    def __init__(self):
        self.writes: list = []
        self.tables: dict[str, dict[tuple, tuple]] = {}
        self.fail_tables: set[str] = set()
        self.fail_feed_users: set[str] = set()

    async def write(self, record):
        table = record.cql_table
        if table in self.fail_tables:
            raise WriteError(table, "simulated write timeout")
        if getattr(record, "feed_user_id", None) in self.fail_feed_users:
            raise WriteError(table, "simulated write timeout")

        params = record.to_params()
        columns = list(record.cql_columns)
        key = tuple(params[columns.index(column)] for column in PRIMARY_KEYS[table])
        self.writes.append(record)
        self.tables.setdefault(table, {})[key] = params

    def written(self, table: str) -> list:
        return [record for record in self.writes if record.cql_table == table]


def at(day: int, hour: int = 12, minute: int = 0) -> datetime:
    return datetime(2023, 7, day, hour, minute, tzinfo=pytz.UTC)


def make_note(note_id: str, user_id: str = "u1", **overrides) -> Note:
    values = {
        "id": note_id,
        "created_at": at(1),
        "user_id": user_id,
        "text": f"text of {note_id}",
        "visibility": "public",
        "reactions": {},
        "file_ids": [],
    }
    values.update(overrides)
    return Note(**values)


def make_drive_file(file_id: str, **overrides) -> DriveFile:
    values = {
        "id": file_id,
        "created_at": at(1, 8),
        "md5": "d41d8cd98f00b204e9800998ecf8427e",
        "name": f"{file_id}.png",
        "type": "image/png",
        "size": 2048,
        "url": f"https://files.example.com/{file_id}.png",
        "properties": {"width": 640, "height": 480},
    }
    values.update(overrides)
    return DriveFile(**values)


def make_following(follower_id: str, followee_id: str, follower_host: str | None = None) -> Following:
    return Following(
        id=f"f-{follower_id}-{followee_id}",
        created_at=at(1, 1),
        follower_id=follower_id,
        followee_id=followee_id,
        follower_host=follower_host,
    )


def make_edit(edit_id: str, note_id: str, updated_at: datetime, **overrides) -> NoteEdit:
    values = {"id": edit_id, "note_id": note_id, "text": f"revision {edit_id}", "updated_at": updated_at}
    values.update(overrides)
    return NoteEdit(**values)


def make_poll(note_id: str, choices: list[str], **overrides) -> Poll:
    values = {"note_id": note_id, "choices": choices, "votes": [0] * len(choices), "user_id": "u1"}
    values.update(overrides)
    return Poll(**values)


def make_user(user_id: str, host: str | None = None) -> User:
    return User(id=user_id, created_at=at(1, 0), username=user_id, host=host)


@pytest.fixture
def settings():
    """Settings with small batches so keyset paging crosses page boundaries."""
    return Settings(batch_size=2, max_concurrent_notes=4, max_concurrent_rows=4, fanout_concurrency=2)


@pytest.fixture
def migration(settings):
    return DatabaseMigration(settings, show_progress=False)


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def make_source(migration):
    """Build an in-memory source: make_source(notes=[...], followings=[...], ...)."""

    def _make(**rows) -> InMemorySource:
        return InMemorySource(migration, **rows)

    return _make
