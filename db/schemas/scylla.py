"""Denormalized record shapes written to ScyllaDB.

Every record knows its destination table and the CQL column order of that
table, so the sink can bind it positionally to a prepared INSERT. Nested
values (drive files, polls, edit history) are user-defined types and are
bound as tuples in UDT field order.

Records are frozen: they are built once, fully resolved, and never mutated.
"""

from datetime import date, datetime
from typing import Any, ClassVar

from pydantic import BaseModel, ConfigDict, Field


def to_cql_value(value: Any) -> Any:
    """Convert a record field into a value the driver can serialize."""
    if isinstance(value, ScyllaUDT):
        return value.to_udt()
    if isinstance(value, list):
        return [to_cql_value(item) for item in value]
    if isinstance(value, dict):
        return {key: to_cql_value(item) for key, item in value.items()}
    return value


class ScyllaUDT(BaseModel):
    model_config = ConfigDict(frozen=True)

    # UDT field name -> attribute name, in UDT declaration order
    udt_fields: ClassVar[dict[str, str]] = {}

    def to_udt(self) -> tuple:
        return tuple(to_cql_value(getattr(self, attr)) for attr in self.udt_fields.values())


class ScyllaRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    cql_table: ClassVar[str]
    # CQL column name -> attribute name, in INSERT order
    cql_columns: ClassVar[dict[str, str]] = {}

    def to_params(self) -> tuple:
        return tuple(to_cql_value(getattr(self, attr)) for attr in self.cql_columns.values())

    @classmethod
    def insert_statement(cls) -> str:
        columns = ", ".join(f'"{name}"' for name in cls.cql_columns)
        placeholders = ", ".join("?" for _ in cls.cql_columns)
        return f"INSERT INTO {cls.cql_table} ({columns}) VALUES ({placeholders})"


# ============================================
# User-defined types
# ============================================


class FileRef(ScyllaUDT):
    """Attachment metadata copied from a drive file."""

    udt_fields: ClassVar[dict[str, str]] = {
        "id": "id",
        "type": "type",
        "createdAt": "created_at",
        "name": "name",
        "comment": "comment",
        "blurhash": "blurhash",
        "url": "url",
        "thumbnailUrl": "thumbnail_url",
        "isSensitive": "is_sensitive",
        "isLink": "is_link",
        "md5": "md5",
        "size": "size",
        "width": "width",
        "height": "height",
    }

    id: str
    type: str
    created_at: datetime
    name: str
    comment: str | None = None
    blurhash: str | None = None
    url: str
    thumbnail_url: str | None = None
    is_sensitive: bool = False
    is_link: bool = False
    md5: str
    size: int
    width: int | None = None
    height: int | None = None


class PollSnapshot(ScyllaUDT):
    udt_fields: ClassVar[dict[str, str]] = {
        "expiresAt": "expires_at",
        "multiple": "multiple",
        "choices": "choices",
    }

    expires_at: datetime | None = None
    multiple: bool = False
    # 1-based choice index -> label
    choices: dict[int, str] = Field(default_factory=dict)


class EditHistoryEntry(ScyllaUDT):
    udt_fields: ClassVar[dict[str, str]] = {
        "content": "content",
        "cw": "cw",
        "files": "files",
        "updatedAt": "updated_at",
    }

    content: str | None = None
    cw: str | None = None
    files: list[FileRef] = Field(default_factory=list)
    updated_at: datetime


# ============================================
# Tables
# ============================================

NOTE_COLUMNS = {
    "createdAtDate": "created_at_date",
    "createdAt": "created_at",
    "id": "id",
    "visibility": "visibility",
    "content": "content",
    "name": "name",
    "cw": "cw",
    "localOnly": "local_only",
    "renoteCount": "renote_count",
    "repliesCount": "replies_count",
    "uri": "uri",
    "url": "url",
    "score": "score",
    "files": "files",
    "visibleUserIds": "visible_user_ids",
    "mentions": "mentions",
    "mentionedRemoteUsers": "mentioned_remote_users",
    "emojis": "emojis",
    "tags": "tags",
    "hasPoll": "has_poll",
    "poll": "poll",
    "threadId": "thread_id",
    "channelId": "channel_id",
    "userId": "user_id",
    "userHost": "user_host",
    "replyId": "reply_id",
    "replyUserId": "reply_user_id",
    "replyUserHost": "reply_user_host",
    "replyContent": "reply_content",
    "replyCw": "reply_cw",
    "replyFiles": "reply_files",
    "renoteId": "renote_id",
    "renoteUserId": "renote_user_id",
    "renoteUserHost": "renote_user_host",
    "renoteContent": "renote_content",
    "renoteCw": "renote_cw",
    "renoteFiles": "renote_files",
    "reactions": "reactions",
    "noteEdit": "note_edit",
    "updatedAt": "updated_at",
}


class PostRecord(ScyllaRecord):
    """The canonical, self-contained note record."""

    cql_table: ClassVar[str] = "note"
    cql_columns: ClassVar[dict[str, str]] = NOTE_COLUMNS

    # Partition key, the UTC calendar day of created_at
    created_at_date: date
    created_at: datetime
    id: str
    visibility: str
    content: str | None = None
    name: str | None = None
    cw: str | None = None
    local_only: bool = False
    renote_count: int = 0
    replies_count: int = 0
    uri: str | None = None
    url: str | None = None
    score: int = 0
    files: list[FileRef] = Field(default_factory=list)
    visible_user_ids: list[str] = Field(default_factory=list)
    mentions: list[str] = Field(default_factory=list)
    mentioned_remote_users: str = "[]"
    emojis: list[str] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)
    has_poll: bool = False
    poll: PollSnapshot | None = None
    thread_id: str | None = None
    channel_id: str | None = None
    user_id: str
    user_host: str | None = None

    reply_id: str | None = None
    reply_user_id: str | None = None
    reply_user_host: str | None = None
    reply_content: str | None = None
    reply_cw: str | None = None
    reply_files: list[FileRef] = Field(default_factory=list)

    renote_id: str | None = None
    renote_user_id: str | None = None
    renote_user_host: str | None = None
    renote_content: str | None = None
    renote_cw: str | None = None
    renote_files: list[FileRef] = Field(default_factory=list)

    reactions: dict[str, int] = Field(default_factory=dict)
    note_edit: list[EditHistoryEntry] = Field(default_factory=list)
    updated_at: datetime | None = None


class TimelineEntry(PostRecord):
    """A follower's copy of a canonical note, partitioned by the feed owner."""

    cql_table: ClassVar[str] = "home_timeline"
    cql_columns: ClassVar[dict[str, str]] = {"feedUserId": "feed_user_id", **NOTE_COLUMNS}

    feed_user_id: str

    @classmethod
    def from_record(cls, record: PostRecord, feed_user_id: str) -> "TimelineEntry":
        """Copy the canonical record verbatim; nothing is revalidated or recomputed."""
        return cls.model_construct(feed_user_id=feed_user_id, **dict(record))


class ReactionRecord(ScyllaRecord):
    cql_table: ClassVar[str] = "reaction"
    cql_columns: ClassVar[dict[str, str]] = {
        "id": "id",
        "noteId": "note_id",
        "userId": "user_id",
        "reaction": "reaction",
        "createdAt": "created_at",
    }

    id: str
    note_id: str
    user_id: str
    reaction: str
    created_at: datetime


class PollVoteRecord(ScyllaRecord):
    cql_table: ClassVar[str] = "poll_vote"
    cql_columns: ClassVar[dict[str, str]] = {
        "noteId": "note_id",
        "userId": "user_id",
        "userHost": "user_host",
        "choice": "choice",
        "createdAt": "created_at",
    }

    note_id: str
    user_id: str
    user_host: str | None = None
    choice: int
    created_at: datetime


class NotificationRecord(ScyllaRecord):
    cql_table: ClassVar[str] = "notification"
    cql_columns: ClassVar[dict[str, str]] = {
        "targetId": "target_id",
        "createdAtDate": "created_at_date",
        "createdAt": "created_at",
        "id": "id",
        "notifierId": "notifier_id",
        "notifierHost": "notifier_host",
        "type": "type",
        "entityId": "entity_id",
        "reaction": "reaction",
        "choice": "choice",
        "customBody": "custom_body",
        "customHeader": "custom_header",
        "customIcon": "custom_icon",
    }

    target_id: str
    created_at_date: date
    created_at: datetime
    id: str
    notifier_id: str | None = None
    notifier_host: str | None = None
    type: str
    entity_id: str | None = None
    reaction: str | None = None
    choice: int | None = None
    custom_body: str | None = None
    custom_header: str | None = None
    custom_icon: str | None = None
