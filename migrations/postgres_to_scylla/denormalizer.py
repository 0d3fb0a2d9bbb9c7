"""
Denormalization of relational rows into self-contained Scylla records.

Everything here is a pure function of already-fetched rows: no I/O, no
shared state. Missing related rows, non-numeric stored values and empty
lists are valid input and resolve to None / 0 / [] rather than errors.
"""

import math
from datetime import date, datetime
from typing import Any

import pytz

from db.models import DriveFile, Note, NoteReaction, Notification, Poll, PollVote
from db.schemas.scylla import (
    EditHistoryEntry,
    FileRef,
    NotificationRecord,
    PollSnapshot,
    PollVoteRecord,
    PostRecord,
    ReactionRecord,
)


def created_at_date(created_at: datetime) -> date:
    """Partition key: the UTC calendar day of an instant. Naive instants are taken as UTC."""
    if created_at.tzinfo is None:
        created_at = pytz.UTC.localize(created_at)
    return created_at.astimezone(pytz.UTC).date()


# CQL int columns are 32-bit signed
INT32_MIN = -(2**31)
INT32_MAX = 2**31 - 1


def _parse_number(value: Any) -> int | float | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    try:
        number = float(value)
    except (TypeError, ValueError, OverflowError):
        return None
    if not math.isfinite(number):
        return None
    return number


def _optional_int(value: Any) -> int | None:
    """Whole part of a stored number, or None when it is missing, non-numeric or does not fit an int column."""
    number = _parse_number(value)
    if number is None or not INT32_MIN <= number <= INT32_MAX:
        return None
    return int(number)


def _count(value: Any) -> int:
    """A tally value clamped into the int column range. Non-numeric counts become 0."""
    number = _parse_number(value)
    if number is None:
        return 0
    return int(min(max(number, INT32_MIN), INT32_MAX))


def build_file_ref(drive_file: DriveFile) -> FileRef:
    properties = drive_file.properties if isinstance(drive_file.properties, dict) else {}
    return FileRef(
        id=drive_file.id,
        type=drive_file.type,
        created_at=drive_file.created_at,
        name=drive_file.name,
        comment=drive_file.comment,
        blurhash=drive_file.blurhash,
        url=drive_file.url,
        thumbnail_url=drive_file.thumbnail_url,
        is_sensitive=drive_file.is_sensitive,
        is_link=drive_file.is_link,
        md5=drive_file.md5,
        size=drive_file.size,
        width=_optional_int(properties.get("width")),
        height=_optional_int(properties.get("height")),
    )


def build_poll_snapshot(poll: Poll) -> PollSnapshot:
    return PollSnapshot(
        expires_at=poll.expires_at,
        multiple=poll.multiple,
        choices={index: label for index, label in enumerate(poll.choices or [], start=1)},
    )


def build_edit_entry(text: str | None, cw: str | None, files: list[FileRef], updated_at: datetime) -> EditHistoryEntry:
    return EditHistoryEntry(content=text, cw=cw, files=files, updated_at=updated_at)


def build_reaction_tally(reactions: Any) -> dict[str, int]:
    """Reaction key -> count, taken as stored. Non-numeric counts become 0."""
    if not isinstance(reactions, dict):
        return {}
    return {str(key): _count(value) for key, value in reactions.items()}


def _target_context(prefix: str, target: Note | None, files: list[FileRef]) -> dict[str, Any]:
    """Reply/renote snapshot fields. All empty together when the target did not resolve."""
    if target is None:
        return {
            f"{prefix}_id": None,
            f"{prefix}_user_id": None,
            f"{prefix}_user_host": None,
            f"{prefix}_content": None,
            f"{prefix}_cw": None,
            f"{prefix}_files": [],
        }
    return {
        f"{prefix}_id": target.id,
        f"{prefix}_user_id": target.user_id,
        f"{prefix}_user_host": target.user_host,
        f"{prefix}_content": target.text,
        f"{prefix}_cw": target.cw,
        f"{prefix}_files": files,
    }


def build_post_record(
    note: Note,
    *,
    files: list[FileRef],
    reply: Note | None = None,
    reply_files: list[FileRef] | None = None,
    renote: Note | None = None,
    renote_files: list[FileRef] | None = None,
    poll: PollSnapshot | None = None,
    edits: list[EditHistoryEntry] | None = None,
    reactions: dict[str, int] | None = None,
) -> PostRecord:
    return PostRecord(
        created_at_date=created_at_date(note.created_at),
        created_at=note.created_at,
        id=note.id,
        visibility=note.visibility,
        content=note.text,
        name=note.name,
        cw=note.cw,
        local_only=note.local_only,
        renote_count=note.renote_count,
        replies_count=note.replies_count,
        uri=note.uri,
        url=note.url,
        score=note.score,
        files=files,
        visible_user_ids=note.visible_user_ids or [],
        mentions=note.mentions or [],
        mentioned_remote_users=note.mentioned_remote_users or "[]",
        emojis=note.emojis or [],
        tags=note.tags or [],
        has_poll=poll is not None,
        poll=poll,
        thread_id=note.thread_id,
        channel_id=note.channel_id,
        user_id=note.user_id,
        user_host=note.user_host,
        **_target_context("reply", reply, reply_files or []),
        **_target_context("renote", renote, renote_files or []),
        reactions=reactions if reactions is not None else build_reaction_tally(note.reactions),
        note_edit=edits or [],
        updated_at=note.updated_at,
    )


def build_reaction_record(reaction: NoteReaction) -> ReactionRecord:
    return ReactionRecord(
        id=reaction.id,
        note_id=reaction.note_id,
        user_id=reaction.user_id,
        reaction=reaction.reaction,
        created_at=reaction.created_at,
    )


def build_poll_vote_record(vote: PollVote, user_host: str | None) -> PollVoteRecord:
    return PollVoteRecord(
        note_id=vote.note_id,
        user_id=vote.user_id,
        user_host=user_host,
        # stored 0-based, the poll snapshot is keyed 1-based
        choice=vote.choice + 1,
        created_at=vote.created_at,
    )


def build_notification_record(notification: Notification, notifier_host: str | None) -> NotificationRecord:
    # The entity a notification points at depends on its type; only one is ever set.
    entity_id = notification.note_id or notification.follow_request_id or notification.user_group_invitation_id
    return NotificationRecord(
        target_id=notification.notifiee_id,
        created_at_date=created_at_date(notification.created_at),
        created_at=notification.created_at,
        id=notification.id,
        notifier_id=notification.notifier_id,
        notifier_host=notifier_host,
        type=notification.type,
        entity_id=entity_id,
        reaction=notification.reaction,
        choice=notification.choice + 1 if notification.choice is not None else None,
        custom_body=notification.custom_body,
        custom_header=notification.custom_header,
        custom_icon=notification.custom_icon,
    )
