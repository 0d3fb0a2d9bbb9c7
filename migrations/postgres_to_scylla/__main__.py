from migrations.postgres_to_scylla.cli import app

app()
