"""
Post-migration teardown of the relational schema.

Foreign keys that point at the note table from tables that stay in
PostgreSQL are dropped first, then the tables whose data now lives in
ScyllaDB. Only run after a migration has completed without errors.
"""

import logging
from collections.abc import Iterator

from sqlalchemy import text

logger = logging.getLogger(__name__)

FOREIGN_KEYS = [
    ("channel_note_pining", "FK_10b19ef67d297ea9de325cd4502"),
    ("clip_note", "FK_a012eaf5c87c65da1deb5fdbfa3"),
    ("muted_note", "FK_70ab9786313d78e4201d81cdb89"),
    ("note_favorite", "FK_0e00498f180193423c992bc4370"),
    ("note_unread", "FK_e637cba4dc4410218c4251260e4"),
    ("note_watching", "FK_03e7028ab8388a3f5e3ce2a8619"),
    ("promo_note", "FK_e263909ca4fe5d57f8d4230dd5c"),
    ("promo_read", "FK_a46a1a603ecee695d7db26da5f4"),
    ("user_note_pining", "FK_68881008f7c3588ad7ecae471cf"),
]

TABLES = [
    "note_reaction",
    "note_edit",
    "poll",
    "poll_vote",
    "notification",
    "note",
]


def teardown_statements() -> Iterator[str]:
    for table, constraint in FOREIGN_KEYS:
        yield f'ALTER TABLE {table} DROP CONSTRAINT "{constraint}"'
    for table in TABLES:
        yield f"DROP TABLE {table}"


class SchemaCleaner:
    def __init__(self, migration):
        self.migration = migration

    async def cleanup(self):
        logger.info("🧹 Dropping migrated tables from PostgreSQL...")
        async with self.migration.pg_engine.begin() as conn:
            for statement in teardown_statements():
                logger.info(f"  {statement}")
                await conn.execute(text(statement))
        logger.info("✅ Relational schema cleaned up")
