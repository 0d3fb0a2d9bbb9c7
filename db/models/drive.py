"""Drive file (attachment) table of the relational source."""

from datetime import datetime

from sqlalchemy import DateTime, Integer
from sqlalchemy.dialects.postgresql import JSONB
from sqlmodel import Field, SQLModel


class DriveFile(SQLModel, table=True):
    __tablename__ = "drive_file"

    id: str = Field(primary_key=True, max_length=32)
    created_at: datetime = Field(sa_type=DateTime(timezone=True), sa_column_kwargs={"name": "createdAt"})
    user_id: str | None = Field(default=None, sa_column_kwargs={"name": "userId"})
    user_host: str | None = Field(default=None, sa_column_kwargs={"name": "userHost"})
    md5: str = Field(max_length=32)
    name: str = Field(max_length=256)
    type: str = Field(max_length=128)
    size: int = Field(sa_type=Integer)
    comment: str | None = Field(default=None)
    blurhash: str | None = Field(default=None)
    # Opaque bag of media properties, e.g. {"width": 1280, "height": 720}
    properties: dict = Field(default_factory=dict, sa_type=JSONB)
    url: str = Field(default="")
    thumbnail_url: str | None = Field(default=None, sa_column_kwargs={"name": "thumbnailUrl"})
    webpublic_url: str | None = Field(default=None, sa_column_kwargs={"name": "webpublicUrl"})
    uri: str | None = Field(default=None)
    is_sensitive: bool = Field(default=False, sa_column_kwargs={"name": "isSensitive"})
    is_link: bool = Field(default=False, sa_column_kwargs={"name": "isLink"})
