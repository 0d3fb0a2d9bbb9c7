"""Notification table of the relational source."""

from datetime import datetime

from sqlalchemy import DateTime
from sqlmodel import Field, SQLModel


class Notification(SQLModel, table=True):
    __tablename__ = "notification"

    id: str = Field(primary_key=True, max_length=32)
    created_at: datetime = Field(sa_type=DateTime(timezone=True), sa_column_kwargs={"name": "createdAt"})
    notifiee_id: str = Field(index=True, sa_column_kwargs={"name": "notifieeId"})
    notifier_id: str | None = Field(default=None, sa_column_kwargs={"name": "notifierId"})
    is_read: bool = Field(default=False, sa_column_kwargs={"name": "isRead"})
    type: str = Field(max_length=64)
    note_id: str | None = Field(default=None, sa_column_kwargs={"name": "noteId"})
    follow_request_id: str | None = Field(default=None, sa_column_kwargs={"name": "followRequestId"})
    user_group_invitation_id: str | None = Field(
        default=None, sa_column_kwargs={"name": "userGroupInvitationId"}
    )
    reaction: str | None = Field(default=None)
    choice: int | None = Field(default=None)
    custom_body: str | None = Field(default=None, sa_column_kwargs={"name": "customBody"})
    custom_header: str | None = Field(default=None, sa_column_kwargs={"name": "customHeader"})
    custom_icon: str | None = Field(default=None, sa_column_kwargs={"name": "customIcon"})
