import asyncio
import logging

import typer

from db.config import Settings
from db.models import Note, NoteReaction, Notification, PollVote
from migrations.postgres_to_scylla.cleanup import SchemaCleaner
from migrations.postgres_to_scylla.migration import DatabaseMigration
from migrations.postgres_to_scylla.runner import MIGRATION_TARGETS, run_migration
from migrations.postgres_to_scylla.source import PostgresSource

# Set up logging with more detailed format
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(levelname)s - [%(name)s:%(lineno)d] - %(message)s",
)
logger = logging.getLogger(__name__)

app = typer.Typer()


def _load_settings(**overrides) -> Settings:
    settings = Settings()
    settings = settings.model_copy(update={key: value for key, value in overrides.items() if value is not None})
    logging.getLogger().setLevel(settings.logging_level)
    # The driver is chatty at INFO (every node discovery is logged)
    logging.getLogger("cassandra").setLevel(max(logging.WARNING, logging.getLogger().level))
    return settings


def _parse_targets(only: str | None, skip: str | None) -> list[str]:
    only_targets = set(only.split(",")) if only else set()
    skip_targets = set(skip.split(",")) if skip else set()

    for target in only_targets | skip_targets:
        if target and target not in MIGRATION_TARGETS:
            logger.error(f"Invalid migration target: '{target}'. Valid targets: {', '.join(MIGRATION_TARGETS)}")
            raise typer.Exit(code=1)

    return [
        target
        for target in MIGRATION_TARGETS
        if target not in skip_targets and (not only_targets or target in only_targets)
    ]


@app.command()
def migrate(
    batch_size: int | None = typer.Option(None, help="Rows fetched from PostgreSQL per page"),
    max_concurrent_notes: int | None = typer.Option(None, help="Notes migrated concurrently"),
    max_concurrent_writes: int | None = typer.Option(None, help="ScyllaDB writes in flight"),
    sample: int | None = typer.Option(
        None,
        "--sample",
        "-s",
        min=1,
        help="Limit migration to N rows per target for testing (e.g., --sample 100)",
    ),
    only: str | None = typer.Option(
        None,
        "--only",
        help=f"Migrate only specific targets. Options: {', '.join(MIGRATION_TARGETS)}. Comma-separated for multiple",
    ),
    skip: str | None = typer.Option(
        None,
        "--skip",
        help=f"Skip specific migration targets. Options: {', '.join(MIGRATION_TARGETS)}. Comma-separated for multiple",
    ),
    cleanup: bool = typer.Option(
        False,
        "--cleanup",
        help="Drop the migrated PostgreSQL tables after a fully successful run",
    ),
):
    """Copy notes (with home timelines), reactions, poll votes and notifications into ScyllaDB.

    The run is all-or-nothing: the first error aborts it. Every write is an
    idempotent upsert, so a failed run is recovered by running it again.

    Examples:
      # Try it on a handful of rows
      python -m migrations.postgres_to_scylla migrate --only notes --sample 100

      # Full run, then drop the relational tables
      python -m migrations.postgres_to_scylla migrate --cleanup
    """
    settings = _load_settings(
        batch_size=batch_size,
        max_concurrent_notes=max_concurrent_notes,
        max_concurrent_writes=max_concurrent_writes,
    )
    targets = _parse_targets(only, skip)
    if cleanup and targets != MIGRATION_TARGETS:
        logger.error("--cleanup drops every migrated table and requires migrating all targets")
        raise typer.Exit(code=1)

    async def run():
        migration = DatabaseMigration(settings, sample_size=sample)

        if sample is not None:
            logger.info(f"🧪 SAMPLE MODE: Limiting migration to {sample} rows per target")
        logger.info(f"📋 Targets: {', '.join(targets)}")

        try:
            await migration.init_connections()
            await run_migration(migration, targets)

            migration.progress.close()
            migration.progress.log_status()
            migration.stats.log_summary()
            logger.info("✅ Migration completed successfully!")

            if cleanup:
                if sample is not None:
                    logger.warning("⏭️  Skipping cleanup in sample mode")
                else:
                    await SchemaCleaner(migration).cleanup()

        except Exception as e:
            logger.exception(f"Migration failed: {str(e)}")
            raise typer.Exit(code=1)

        finally:
            await migration.close_connections()

    typer.echo("Starting migration...")
    asyncio.run(run())


@app.command()
def status():
    """Show how many rows each target would migrate"""
    settings = _load_settings()

    async def run_status():
        migration = DatabaseMigration(settings, show_progress=False)
        try:
            await migration.init_connections(connect_scylla=False)
            source = PostgresSource(migration)
            for name, model in (
                ("notes", Note),
                ("reactions", NoteReaction),
                ("poll_votes", PollVote),
                ("notifications", Notification),
            ):
                typer.echo(f"{name:<20} {await source.count(model):,}")

        except Exception as e:
            logger.exception(f"Status check failed: {str(e)}")
            raise typer.Exit(code=1)

        finally:
            await migration.close_connections()

    asyncio.run(run_status())


@app.command("cleanup")
def cleanup_command(
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation"),
):
    """Drop the migrated PostgreSQL tables. Irreversible; run only after a successful migration."""
    if not yes:
        typer.confirm("This drops note, note_reaction, note_edit, poll, poll_vote and notification. Continue?", abort=True)
    settings = _load_settings()

    async def run_cleanup():
        migration = DatabaseMigration(settings, show_progress=False)
        try:
            await migration.init_connections(connect_scylla=False)
            await SchemaCleaner(migration).cleanup()

        except Exception as e:
            logger.exception(f"Cleanup failed: {str(e)}")
            raise typer.Exit(code=1)

        finally:
            await migration.close_connections()

    asyncio.run(run_cleanup())


if __name__ == "__main__":
    app()
