"""
Database schemas package.

This module re-exports the ScyllaDB record schemas for easy importing:
    from db.schemas import PostRecord, TimelineEntry, FileRef, ...
"""

# Nested user-defined types
# Table records
from db.schemas.scylla import (
    EditHistoryEntry,
    FileRef,
    NotificationRecord,
    PollSnapshot,
    PollVoteRecord,
    PostRecord,
    ReactionRecord,
    ScyllaRecord,
    ScyllaUDT,
    TimelineEntry,
)

__all__ = [
    # Base classes
    "ScyllaRecord",
    "ScyllaUDT",
    # User-defined types
    "EditHistoryEntry",
    "FileRef",
    "PollSnapshot",
    # Tables
    "NotificationRecord",
    "PollVoteRecord",
    "PostRecord",
    "ReactionRecord",
    "TimelineEntry",
]
