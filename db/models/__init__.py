"""
Relational source models.

This module re-exports all models for easy importing:
    from db.models import Note, DriveFile, Following, ...

The tables belong to the existing PostgreSQL schema. Nothing here creates or
alters them; the migration only selects from them (and drops some of them
during cleanup).
"""

from db.models.drive import DriveFile
from db.models.notes import Note, NoteEdit, NoteReaction, Poll, PollVote
from db.models.notifications import Notification
from db.models.users import Following, User

__all__ = [
    "DriveFile",
    "Following",
    "Note",
    "NoteEdit",
    "NoteReaction",
    "Notification",
    "Poll",
    "PollVote",
    "User",
]
