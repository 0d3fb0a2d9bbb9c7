"""Note tables of the relational source.

Column names follow the existing PostgreSQL schema (quoted camelCase), the
Python attributes are snake_case. These models are only ever read from.
"""

from datetime import datetime

from sqlalchemy import DateTime, Integer, SmallInteger, String, Text
from sqlalchemy.dialects.postgresql import ARRAY, JSONB
from sqlmodel import Field, SQLModel


class Note(SQLModel, table=True):
    """A post, including replies and renotes (reposts)."""

    __tablename__ = "note"

    id: str = Field(primary_key=True, max_length=32)
    created_at: datetime = Field(sa_type=DateTime(timezone=True), sa_column_kwargs={"name": "createdAt"})
    reply_id: str | None = Field(default=None, sa_column_kwargs={"name": "replyId"})
    renote_id: str | None = Field(default=None, sa_column_kwargs={"name": "renoteId"})
    text: str | None = Field(default=None, sa_type=Text)
    name: str | None = Field(default=None)
    cw: str | None = Field(default=None)
    user_id: str = Field(sa_column_kwargs={"name": "userId"})
    user_host: str | None = Field(default=None, sa_column_kwargs={"name": "userHost"})
    local_only: bool = Field(default=False, sa_column_kwargs={"name": "localOnly"})
    renote_count: int = Field(default=0, sa_type=SmallInteger, sa_column_kwargs={"name": "renoteCount"})
    replies_count: int = Field(default=0, sa_type=SmallInteger, sa_column_kwargs={"name": "repliesCount"})
    # reaction key -> count, stored inline on the note
    reactions: dict = Field(default_factory=dict, sa_type=JSONB)
    visibility: str = Field(default="public")
    uri: str | None = Field(default=None)
    url: str | None = Field(default=None)
    score: int = Field(default=0, sa_type=Integer)
    file_ids: list[str] = Field(
        default_factory=list, sa_type=ARRAY(String(32)), sa_column_kwargs={"name": "fileIds"}
    )
    attached_file_types: list[str] = Field(
        default_factory=list, sa_type=ARRAY(String(256)), sa_column_kwargs={"name": "attachedFileTypes"}
    )
    visible_user_ids: list[str] = Field(
        default_factory=list, sa_type=ARRAY(String(32)), sa_column_kwargs={"name": "visibleUserIds"}
    )
    mentions: list[str] = Field(default_factory=list, sa_type=ARRAY(String(32)))
    mentioned_remote_users: str = Field(
        default="[]", sa_type=Text, sa_column_kwargs={"name": "mentionedRemoteUsers"}
    )
    emojis: list[str] = Field(default_factory=list, sa_type=ARRAY(String(128)))
    tags: list[str] = Field(default_factory=list, sa_type=ARRAY(String(128)))
    has_poll: bool = Field(default=False, sa_column_kwargs={"name": "hasPoll"})
    reply_user_id: str | None = Field(default=None, sa_column_kwargs={"name": "replyUserId"})
    reply_user_host: str | None = Field(default=None, sa_column_kwargs={"name": "replyUserHost"})
    renote_user_id: str | None = Field(default=None, sa_column_kwargs={"name": "renoteUserId"})
    renote_user_host: str | None = Field(default=None, sa_column_kwargs={"name": "renoteUserHost"})
    channel_id: str | None = Field(default=None, sa_column_kwargs={"name": "channelId"})
    thread_id: str | None = Field(default=None, sa_column_kwargs={"name": "threadId"})
    updated_at: datetime | None = Field(
        default=None, sa_type=DateTime(timezone=True), sa_column_kwargs={"name": "updatedAt"}
    )


class NoteEdit(SQLModel, table=True):
    """One prior revision of a note."""

    __tablename__ = "note_edit"

    id: str = Field(primary_key=True, max_length=32)
    note_id: str = Field(index=True, sa_column_kwargs={"name": "noteId"})
    text: str | None = Field(default=None, sa_type=Text)
    cw: str | None = Field(default=None)
    file_ids: list[str] = Field(
        default_factory=list, sa_type=ARRAY(String(32)), sa_column_kwargs={"name": "fileIds"}
    )
    updated_at: datetime = Field(sa_type=DateTime(timezone=True), sa_column_kwargs={"name": "updatedAt"})


class Poll(SQLModel, table=True):
    """Poll attached to a note, keyed by the note id."""

    __tablename__ = "poll"

    note_id: str = Field(primary_key=True, sa_column_kwargs={"name": "noteId"})
    expires_at: datetime | None = Field(
        default=None, sa_type=DateTime(timezone=True), sa_column_kwargs={"name": "expiresAt"}
    )
    multiple: bool = Field(default=False)
    choices: list[str] = Field(default_factory=list, sa_type=ARRAY(String(256)))
    votes: list[int] = Field(default_factory=list, sa_type=ARRAY(Integer))
    note_visibility: str = Field(default="public", sa_column_kwargs={"name": "noteVisibility"})
    user_id: str = Field(sa_column_kwargs={"name": "userId"})
    user_host: str | None = Field(default=None, sa_column_kwargs={"name": "userHost"})


class PollVote(SQLModel, table=True):
    """A single choice cast on a poll. Multiple-choice polls get one row per choice."""

    __tablename__ = "poll_vote"

    id: str = Field(primary_key=True, max_length=32)
    created_at: datetime = Field(sa_type=DateTime(timezone=True), sa_column_kwargs={"name": "createdAt"})
    user_id: str = Field(sa_column_kwargs={"name": "userId"})
    note_id: str = Field(sa_column_kwargs={"name": "noteId"})
    choice: int = Field(default=0)


class NoteReaction(SQLModel, table=True):
    __tablename__ = "note_reaction"

    id: str = Field(primary_key=True, max_length=32)
    created_at: datetime = Field(sa_type=DateTime(timezone=True), sa_column_kwargs={"name": "createdAt"})
    user_id: str = Field(sa_column_kwargs={"name": "userId"})
    note_id: str = Field(sa_column_kwargs={"name": "noteId"})
    reaction: str = Field(max_length=260)
