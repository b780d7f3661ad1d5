"""Dependency injection configuration for the conversation pipeline."""

from contextlib import contextmanager
from functools import lru_cache

import pika
import redis
from google.cloud import speech
from minio import Minio
from sqlmodel import Session, SQLModel, create_engine

from conversation_pipeline.config import AppConfig, load_config
from conversation_pipeline.domain.cost_monitor import CostLimits, CostMonitor
from conversation_pipeline.handlers import ConversationPipeline, ProcessingRunner
from conversation_pipeline.infrastructure import (
    GoogleSpeechGateway,
    MinioStorageClient,
    RabbitMQBroker,
    RedisUsageCounter,
)
from conversation_pipeline.logging import setup_logging
from conversation_pipeline.repositories import ConversationRepository
from conversation_pipeline.worker import Worker

logger = setup_logging()


@lru_cache
def get_config() -> AppConfig:
    """Returns the application configuration."""
    return load_config()


@lru_cache
def get_repository() -> ConversationRepository:
    """Returns the conversation repository bound to the PostgreSQL engine."""
    config = get_config()
    engine = create_engine(config.postgres.url)
    SQLModel.metadata.create_all(engine)
    logger.info("Database initialized", extra={"host": config.postgres.host})

    @contextmanager
    def session_factory():
        with Session(engine) as session:
            yield session

    return ConversationRepository(session_factory)


@lru_cache
def get_storage() -> MinioStorageClient:
    """Returns the configured storage client."""
    config = get_config()
    client = Minio(
        endpoint=config.minio.endpoint,
        access_key=config.minio.user,
        secret_key=config.minio.password,
        secure=config.minio.secure,
    )
    storage = MinioStorageClient(client, config.minio.bucket_name)
    storage.ensure_bucket_exists(config.minio.bucket_name)
    return storage


@lru_cache
def get_cost_monitor() -> CostMonitor:
    """Returns the cost monitor backed by shared Redis counters."""
    config = get_config()
    client = redis.Redis(
        host=config.redis.host,
        port=config.redis.port,
        decode_responses=True,
    )
    if not client.ping():
        logger.error("Redis connection failed", extra={"host": config.redis.host})
        raise ConnectionError("Redis connection failed")

    limits = CostLimits(
        monthly_cost_limit=config.cost.monthly_cost_limit,
        alert_threshold=config.cost.alert_threshold,
        max_cost_per_request=config.cost.max_cost_per_request,
    )
    return CostMonitor(RedisUsageCounter(client, config.redis.key_prefix), limits)


@lru_cache
def get_pipeline() -> ConversationPipeline:
    """Returns the pipeline orchestrator."""
    config = get_config()
    storage = get_storage()
    gateway = GoogleSpeechGateway(speech.SpeechClient(), storage, config.speech)
    return ConversationPipeline(
        store=get_repository(),
        storage=storage,
        gateway=gateway,
        cost_monitor=get_cost_monitor(),
        cost_config=config.cost,
    )


@lru_cache
def get_runner() -> ProcessingRunner:
    """Returns the background processing runner."""
    return ProcessingRunner(get_pipeline(), get_config().runner.max_workers)


def get_worker() -> Worker:
    """Returns a worker wired to a fresh RabbitMQ channel."""
    config = get_config()
    credentials = pika.PlainCredentials(config.rabbitmq.user, config.rabbitmq.password)
    parameters = pika.ConnectionParameters(
        host=config.rabbitmq.host,
        credentials=credentials,
        heartbeat=0,
    )
    connection = pika.BlockingConnection(parameters)
    broker = RabbitMQBroker(connection.channel(), config.rabbitmq)
    broker.setup()
    return Worker(broker, get_pipeline(), config.rabbitmq)
