"""User and follow-graph tables of the relational source."""

from datetime import datetime

from sqlalchemy import DateTime
from sqlmodel import Field, SQLModel


class User(SQLModel, table=True):
    """Only the columns the migration needs to denormalize the acting user's host."""

    __tablename__ = "user"

    id: str = Field(primary_key=True, max_length=32)
    created_at: datetime = Field(sa_type=DateTime(timezone=True), sa_column_kwargs={"name": "createdAt"})
    username: str = Field(max_length=128)
    # NULL for local accounts
    host: str | None = Field(default=None, max_length=512)


class Following(SQLModel, table=True):
    """Follow edge: follower -> followee. Unique per (follower, followee) on the source side."""

    __tablename__ = "following"

    id: str = Field(primary_key=True, max_length=32)
    created_at: datetime = Field(sa_type=DateTime(timezone=True), sa_column_kwargs={"name": "createdAt"})
    followee_id: str = Field(index=True, sa_column_kwargs={"name": "followeeId"})
    follower_id: str = Field(index=True, sa_column_kwargs={"name": "followerId"})
    follower_host: str | None = Field(default=None, sa_column_kwargs={"name": "followerHost"})
    followee_host: str | None = Field(default=None, sa_column_kwargs={"name": "followeeHost"})
