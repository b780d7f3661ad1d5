"""Application configuration loaded from environment variables."""

import os

from pydantic import BaseModel, computed_field


class MinioConfig(BaseModel, frozen=True):
    """MinIO connection configuration."""

    endpoint: str
    user: str
    password: str
    bucket_name: str = "conversations"
    secure: bool = False


class PostgresConfig(BaseModel, frozen=True):
    """PostgreSQL connection configuration."""

    host: str
    user: str
    password: str
    port: int
    database: str

    @computed_field
    @property
    def url(self) -> str:
        """Returns the full PostgreSQL connection URL."""
        return (
            f"postgresql+psycopg://{self.user}:{self.password}"
            f"@{self.host}:{self.port}/{self.database}"
        )


class RedisConfig(BaseModel, frozen=True):
    """Redis connection configuration for shared cost counters."""

    host: str
    port: int = 6379
    key_prefix: str = "conversation-costs"


class QueueConfig(BaseModel, frozen=True):
    """RabbitMQ queue configuration."""

    name: str
    queue_type: str = "quorum"
    max_delivery_count: int = 3
    expected_routing_key: str
    success_routing_key: str
    dlq_name: str
    dlq_exchange_name: str = "dead_letter_exchange"
    dlq_routing_key: str


class RabbitMQConfig(BaseModel, frozen=True):
    """RabbitMQ connection configuration."""

    host: str
    user: str
    password: str
    exchange_name: str = "events"
    queue_config: QueueConfig = QueueConfig(
        name="conversation_processing_queue",
        expected_routing_key="conversation.uploaded",
        success_routing_key="conversation.processing.completed",
        dlq_name="dlq_conversation_processing",
        dlq_routing_key="conversation.processing.failed",
    )


class SpeechConfig(BaseModel, frozen=True):
    """Google Speech-to-Text configuration."""

    gcs_bucket: str | None = None
    operation_timeout_seconds: float = 3600.0
    default_language: str = "en-US"


class CostConfig(BaseModel, frozen=True):
    """Recognition spend policy."""

    default_tier: str = "balanced"
    monthly_cost_limit: float = 100.0
    alert_threshold: float = 0.8
    max_cost_per_request: float = 5.0
    enforce_monthly_limit: bool = True
    processing_factor: float = 1.5


class RunnerConfig(BaseModel, frozen=True):
    """Background processing pool configuration."""

    max_workers: int = 4


class AppConfig(BaseModel, frozen=True):
    """Root application configuration."""

    minio: MinioConfig
    postgres: PostgresConfig
    redis: RedisConfig
    rabbitmq: RabbitMQConfig
    speech: SpeechConfig
    cost: CostConfig
    runner: RunnerConfig


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "on"}


def load_config() -> AppConfig:
    """Loads configuration from environment variables."""
    return AppConfig(
        minio=MinioConfig(
            endpoint=os.getenv("MINIO_ENDPOINT", "minio:9000"),
            user=os.getenv("MINIO_USER", ""),
            password=os.getenv("MINIO_PASSWORD", ""),
            bucket_name=os.getenv("MINIO_BUCKET", "conversations"),
            secure=_env_flag("MINIO_SECURE", "false"),
        ),
        postgres=PostgresConfig(
            host=os.getenv("POSTGRES_HOST", "postgres"),
            user=os.getenv("POSTGRES_USER", ""),
            password=os.getenv("POSTGRES_PASSWORD", ""),
            port=int(os.getenv("POSTGRES_PORT", "5432")),
            database=os.getenv("POSTGRES_DB", "conversations"),
        ),
        redis=RedisConfig(
            host=os.getenv("REDIS_HOST", "redis"),
            port=int(os.getenv("REDIS_PORT", "6379")),
        ),
        rabbitmq=RabbitMQConfig(
            host=os.getenv("RABBITMQ_HOST", "rabbitmq"),
            user=os.getenv("RABBITMQ_USER", ""),
            password=os.getenv("RABBITMQ_PASSWORD", ""),
        ),
        speech=SpeechConfig(
            gcs_bucket=os.getenv("SPEECH_GCS_BUCKET") or None,
            operation_timeout_seconds=float(
                os.getenv("SPEECH_OPERATION_TIMEOUT_SECONDS", "3600")
            ),
            default_language=os.getenv("SPEECH_DEFAULT_LANGUAGE", "en-US"),
        ),
        cost=CostConfig(
            default_tier=os.getenv("COST_DEFAULT_TIER", "balanced"),
            monthly_cost_limit=float(os.getenv("COST_MONTHLY_LIMIT", "100")),
            alert_threshold=float(os.getenv("COST_ALERT_THRESHOLD", "0.8")),
            max_cost_per_request=float(os.getenv("COST_MAX_PER_REQUEST", "5")),
            enforce_monthly_limit=_env_flag("COST_ENFORCE_MONTHLY_LIMIT", "true"),
        ),
        runner=RunnerConfig(
            max_workers=int(os.getenv("PROCESSING_MAX_WORKERS", "4")),
        ),
    )
