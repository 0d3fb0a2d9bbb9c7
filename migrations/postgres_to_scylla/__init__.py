"""
PostgreSQL to ScyllaDB migration for notes and their activity.

Notes are denormalized into self-contained wide records (reply/renote
context, attachments, poll, edit history and reaction counts inlined) and
copied into the home timeline of every local follower of their author.
Reactions, poll votes and notifications are copied one row per record.

CLI Usage:
    python -m migrations.postgres_to_scylla migrate [--only notes,reactions] [--sample 100] [--cleanup]
    python -m migrations.postgres_to_scylla status
    python -m migrations.postgres_to_scylla cleanup
"""

from migrations.postgres_to_scylla.cli import app
from migrations.postgres_to_scylla.cleanup import SchemaCleaner
from migrations.postgres_to_scylla.migration import DatabaseMigration
from migrations.postgres_to_scylla.note_migrator import NoteMigrator
from migrations.postgres_to_scylla.reaction_migrator import (
    NotificationMigrator,
    PollVoteMigrator,
    ReactionMigrator,
)
from migrations.postgres_to_scylla.runner import MIGRATION_TARGETS, run_migration
from migrations.postgres_to_scylla.source import PostgresSource
from migrations.postgres_to_scylla.stats import MigrationStats, ProgressTracker

__all__ = [
    "app",
    "DatabaseMigration",
    "MIGRATION_TARGETS",
    "MigrationStats",
    "NoteMigrator",
    "NotificationMigrator",
    "PollVoteMigrator",
    "PostgresSource",
    "ProgressTracker",
    "ReactionMigrator",
    "SchemaCleaner",
    "run_migration",
]
