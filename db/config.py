from pydantic import Field, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy import URL


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # PostgreSQL (source)
    db_host: str = "localhost"
    db_port: int = 5432
    db_user: str = "postgres"
    db_pass: str = ""
    db_name: str = "misskey"
    postgres_pool_size: int = 20
    postgres_max_overflow: int = 30

    # ScyllaDB (destination)
    scylla_nodes: list[str] = Field(default_factory=lambda: ["127.0.0.1"])
    scylla_port: int = 9042
    scylla_keyspace: str = "misskey"
    scylla_local_datacenter: str = "datacenter1"
    scylla_replication_factor: int = 3

    # Migration tuning
    batch_size: int = 1000
    max_concurrent_notes: int = 64
    max_concurrent_rows: int = 256
    fanout_concurrency: int = 32
    max_concurrent_writes: int = 512

    logging_level: str = "INFO"

    @computed_field
    @property
    def postgres_uri(self) -> str:
        # URL.create escapes the password when rendered
        return URL.create(
            "postgresql+asyncpg",
            username=self.db_user,
            password=self.db_pass or None,
            host=self.db_host,
            port=self.db_port,
            database=self.db_name,
        ).render_as_string(hide_password=False)
