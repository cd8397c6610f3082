"""Application settings using Pydantic Settings."""

from enum import Enum
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy.engine import URL


class CommitPolicy(str, Enum):
    """When the consumer group offset advances past a message."""

    AFTER_READ = "after_read"
    AFTER_WRITE = "after_write"


class Settings(BaseSettings):
    """Global settings loaded from environment variables / .env file."""

    # Kafka
    kafka_brokers: str = "localhost:9092"
    kafka_group_id: str = "pixiv-group"
    kafka_topic: str = "crawler-pixiv"
    kafka_max_fetch_bytes: int = 10_000_000
    commit_policy: CommitPolicy = CommitPolicy.AFTER_READ
    read_backoff_seconds: float = 3.0

    # Database (either a full URL or its components)
    db_url: str = ""
    db_user: str = ""
    db_pass: str = ""
    db_name: str = ""
    db_host: str = "127.0.0.1"
    db_port: int = 5432

    # OpenSearch
    opensearch_url: str = "http://localhost:9200"
    search_index: str = "es_article"

    # Health endpoint
    health_host: str = "0.0.0.0"
    health_port: int = 3000

    # Redis (worker heartbeat, disabled when empty)
    redis_url: str = ""

    worker_name: str = "pixiv-consumer"
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @property
    def broker_list(self) -> list[str]:
        """Kafka bootstrap servers, split from the comma-separated setting."""
        return [b.strip() for b in self.kafka_brokers.split(",") if b.strip()]

    @property
    def database_url(self) -> str:
        """SQLAlchemy async URL: ``db_url`` if set, else built from the parts."""
        if self.db_url:
            return self.db_url.replace("postgresql://", "postgresql+asyncpg://", 1)
        url = URL.create(
            "postgresql+asyncpg",
            username=self.db_user or None,
            password=self.db_pass or None,
            host=self.db_host,
            port=self.db_port,
            database=self.db_name or None,
        )
        return url.render_as_string(hide_password=False)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
