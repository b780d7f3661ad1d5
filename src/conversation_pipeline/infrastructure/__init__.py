"""Infrastructure layer exports."""

from .google_speech import GoogleSpeechGateway
from .memory_counter import InMemoryUsageCounter
from .minio_storage import MinioStorageClient
from .rabbitmq_broker import RabbitMQBroker
from .redis_counter import RedisUsageCounter

__all__ = [
    "GoogleSpeechGateway",
    "InMemoryUsageCounter",
    "MinioStorageClient",
    "RabbitMQBroker",
    "RedisUsageCounter",
]
