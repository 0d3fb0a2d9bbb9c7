"""ScyllaDB connection, schema bootstrap and the prepared-statement write sink."""

import asyncio
import logging
from typing import Any

from cassandra.cluster import Cluster, ResponseFuture, Session
from cassandra.policies import DCAwareRoundRobinPolicy, TokenAwarePolicy
from cassandra.query import PreparedStatement

from db.config import Settings
from db.exceptions import WriteError
from db.schemas.scylla import (
    NotificationRecord,
    PollVoteRecord,
    PostRecord,
    ReactionRecord,
    ScyllaRecord,
    TimelineEntry,
)

logger = logging.getLogger(__name__)

RECORD_TYPES: tuple[type[ScyllaRecord], ...] = (
    PostRecord,
    TimelineEntry,
    ReactionRecord,
    PollVoteRecord,
    NotificationRecord,
)

_NOTE_BODY = """
    "createdAt" timestamp,
    "id" ascii,
    "visibility" ascii,
    "content" text,
    "name" text,
    "cw" text,
    "localOnly" boolean,
    "renoteCount" int,
    "repliesCount" int,
    "uri" text,
    "url" text,
    "score" int,
    "files" list<frozen<drive_file>>,
    "visibleUserIds" set<ascii>,
    "mentions" set<ascii>,
    "mentionedRemoteUsers" text,
    "emojis" set<text>,
    "tags" set<text>,
    "hasPoll" boolean,
    "poll" frozen<poll>,
    "threadId" ascii,
    "channelId" ascii,
    "userId" ascii,
    "userHost" text,
    "replyId" ascii,
    "replyUserId" ascii,
    "replyUserHost" text,
    "replyContent" text,
    "replyCw" text,
    "replyFiles" list<frozen<drive_file>>,
    "renoteId" ascii,
    "renoteUserId" ascii,
    "renoteUserHost" text,
    "renoteContent" text,
    "renoteCw" text,
    "renoteFiles" list<frozen<drive_file>>,
    "reactions" map<text, int>,
    "noteEdit" list<frozen<note_edit_history>>,
    "updatedAt" timestamp,
"""

SCHEMA_STATEMENTS = [
    """CREATE TYPE IF NOT EXISTS drive_file (
        "id" ascii,
        "type" ascii,
        "createdAt" timestamp,
        "name" text,
        "comment" text,
        "blurhash" text,
        "url" text,
        "thumbnailUrl" text,
        "isSensitive" boolean,
        "isLink" boolean,
        "md5" ascii,
        "size" int,
        "width" int,
        "height" int
    )""",
    """CREATE TYPE IF NOT EXISTS poll (
        "expiresAt" timestamp,
        "multiple" boolean,
        "choices" map<int, text>
    )""",
    """CREATE TYPE IF NOT EXISTS note_edit_history (
        "content" text,
        "cw" text,
        "files" list<frozen<drive_file>>,
        "updatedAt" timestamp
    )""",
    f"""CREATE TABLE IF NOT EXISTS note (
        "createdAtDate" date,{_NOTE_BODY}
        PRIMARY KEY ("createdAtDate", "createdAt", "id")
    ) WITH CLUSTERING ORDER BY ("createdAt" DESC, "id" DESC)""",
    f"""CREATE TABLE IF NOT EXISTS home_timeline (
        "feedUserId" ascii,
        "createdAtDate" date,{_NOTE_BODY}
        PRIMARY KEY (("feedUserId", "createdAtDate"), "createdAt", "id")
    ) WITH CLUSTERING ORDER BY ("createdAt" DESC, "id" DESC)""",
    """CREATE TABLE IF NOT EXISTS reaction (
        "id" ascii,
        "noteId" ascii,
        "userId" ascii,
        "reaction" text,
        "createdAt" timestamp,
        PRIMARY KEY ("noteId", "userId", "id")
    )""",
    """CREATE TABLE IF NOT EXISTS poll_vote (
        "noteId" ascii,
        "userId" ascii,
        "userHost" text,
        "choice" int,
        "createdAt" timestamp,
        PRIMARY KEY ("noteId", "userId", "choice")
    )""",
    """CREATE TABLE IF NOT EXISTS notification (
        "targetId" ascii,
        "createdAtDate" date,
        "createdAt" timestamp,
        "id" ascii,
        "notifierId" ascii,
        "notifierHost" text,
        "type" ascii,
        "entityId" ascii,
        "reaction" text,
        "choice" int,
        "customBody" text,
        "customHeader" text,
        "customIcon" text,
        PRIMARY KEY (("targetId", "createdAtDate"), "createdAt", "id")
    ) WITH CLUSTERING ORDER BY ("createdAt" DESC, "id" DESC)""",
]


def _wrap_future(response_future: ResponseFuture) -> asyncio.Future:
    """Bridge a driver ResponseFuture (resolved on a driver thread) to an asyncio future."""
    loop = asyncio.get_running_loop()
    future = loop.create_future()

    def _resolve(result=None, error: BaseException | None = None):
        if future.cancelled():
            return
        if error is not None:
            future.set_exception(error)
        else:
            future.set_result(result)

    response_future.add_callbacks(
        callback=lambda result: loop.call_soon_threadsafe(_resolve, result),
        errback=lambda error: loop.call_soon_threadsafe(_resolve, None, error),
    )
    return future


class ScyllaSink:
    """Write sink: one prepared, idempotent INSERT per record.

    Scylla INSERTs are upserts, so writing the same primary key twice overwrites
    rather than duplicates. Writes are never retried here; any driver error is
    raised as WriteError and aborts the caller's unit of work.
    """

    def __init__(self, settings: Settings):
        self.settings = settings
        self.cluster: Cluster | None = None
        self.session: Session | None = None
        self._prepared: dict[type[ScyllaRecord], PreparedStatement] = {}
        self._write_slots = asyncio.Semaphore(settings.max_concurrent_writes)

    async def connect(self):
        self.cluster = Cluster(
            contact_points=self.settings.scylla_nodes,
            port=self.settings.scylla_port,
            load_balancing_policy=TokenAwarePolicy(
                DCAwareRoundRobinPolicy(local_dc=self.settings.scylla_local_datacenter)
            ),
            protocol_version=4,
        )
        self.session = await asyncio.to_thread(self.cluster.connect)
        await self.ensure_schema()
        for record_type in RECORD_TYPES:
            self._prepared[record_type] = await asyncio.to_thread(
                self.session.prepare, record_type.insert_statement()
            )
        logger.info(f"Connected to ScyllaDB keyspace '{self.settings.scylla_keyspace}'")

    async def ensure_schema(self):
        keyspace = self.settings.scylla_keyspace
        await self._execute_ddl(
            f"CREATE KEYSPACE IF NOT EXISTS {keyspace} WITH replication = "
            f"{{'class': 'NetworkTopologyStrategy', "
            f"'{self.settings.scylla_local_datacenter}': {self.settings.scylla_replication_factor}}}"
        )
        await asyncio.to_thread(self.session.set_keyspace, keyspace)
        for statement in SCHEMA_STATEMENTS:
            await self._execute_ddl(statement)

    async def _execute_ddl(self, statement: str):
        await _wrap_future(self.session.execute_async(statement))

    async def write(self, record: ScyllaRecord):
        prepared = self._prepared[type(record)]
        params = record.to_params()
        async with self._write_slots:
            try:
                await _wrap_future(self.session.execute_async(prepared, params))
            except Exception as e:
                raise WriteError(record.cql_table, str(e)) from e

    async def close(self):
        if self.cluster:
            await asyncio.to_thread(self.cluster.shutdown)
            self.cluster = None
            self.session = None

    async def __aenter__(self):
        await self.connect()
        return self

    async def __aexit__(self, *exc: Any):
        await self.close()
