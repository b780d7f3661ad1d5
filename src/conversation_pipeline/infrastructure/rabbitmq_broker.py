"""RabbitMQ transport for conversation processing events."""

import json
from collections.abc import Callable
from typing import Any

import pika
from pika.channel import Channel

from conversation_pipeline.config import QueueConfig, RabbitMQConfig
from conversation_pipeline.exceptions import EventPublishError
from conversation_pipeline.infrastructure.interfaces import MessageBroker
from conversation_pipeline.logging import setup_logging

logger = setup_logging()

JSON_CONTENT_TYPE = "application/json"


class RabbitMQBroker(MessageBroker):
    """
    Consumes upload events from a quorum work queue and publishes results.

    The work queue dead-letters a message once it is rejected without
    requeue or redelivered more than ``max_delivery_count`` times.
    """

    def __init__(self, channel: Channel, config: RabbitMQConfig):
        self._channel = channel
        self._config = config

    @property
    def queue_config(self) -> QueueConfig:
        return self._config.queue_config

    def publish(self, routing_key: str, payload: dict) -> None:
        properties = pika.BasicProperties(
            content_type=JSON_CONTENT_TYPE,
            delivery_mode=pika.DeliveryMode.Persistent,
        )
        try:
            self._channel.basic_publish(
                exchange=self._config.exchange_name,
                routing_key=routing_key,
                body=json.dumps(payload),
                properties=properties,
            )
        except Exception as e:
            logger.exception(
                "Failed to publish conversation event",
                extra={"routing_key": routing_key},
            )
            raise EventPublishError(routing_key, cause=e) from e

        logger.info(
            "Conversation event published",
            extra={
                "exchange": self._config.exchange_name,
                "routing_key": routing_key,
                "conversation_id": payload.get("conversation_id"),
            },
        )

    def acknowledge(self, delivery_tag: int) -> None:
        self._channel.basic_ack(delivery_tag=delivery_tag)

    def reject(self, delivery_tag: int, requeue: bool = True) -> None:
        self._channel.basic_nack(delivery_tag=delivery_tag, requeue=requeue)
        if not requeue:
            logger.warning(
                "Message dead-lettered",
                extra={
                    "delivery_tag": delivery_tag,
                    "dlq": self.queue_config.dlq_name,
                },
            )

    def consume(
        self, callback: Callable[[bytes, int, dict[str, Any] | None], None]
    ) -> None:
        def on_message(ch, method, properties, body):
            headers = properties.headers if properties else None
            callback(body, method.delivery_tag, headers)

        # One unacknowledged run per worker; recognition can take minutes.
        self._channel.basic_qos(prefetch_count=1)
        self._channel.basic_consume(
            queue=self.queue_config.name,
            on_message_callback=on_message,
        )
        logger.info("Started consuming", extra={"queue": self.queue_config.name})
        self._channel.start_consuming()

    def setup(self) -> None:
        """Declares the dead-letter route, the events exchange and the work queue."""
        self._declare_dead_letter_route()
        self._channel.exchange_declare(
            exchange=self._config.exchange_name,
            exchange_type="topic",
            durable=True,
        )
        self._declare_work_queue()
        logger.info(
            "Queue infrastructure ready",
            extra={
                "queue": self.queue_config.name,
                "exchange": self._config.exchange_name,
            },
        )

    def _declare_dead_letter_route(self) -> None:
        queue_config = self.queue_config
        self._channel.exchange_declare(
            exchange=queue_config.dlq_exchange_name,
            exchange_type="direct",
            durable=True,
        )
        self._channel.queue_declare(queue=queue_config.dlq_name, durable=True)
        self._channel.queue_bind(
            queue=queue_config.dlq_name,
            exchange=queue_config.dlq_exchange_name,
            routing_key=queue_config.dlq_routing_key,
        )

    def _declare_work_queue(self) -> None:
        queue_config = self.queue_config
        self._channel.queue_declare(
            queue=queue_config.name,
            durable=True,
            arguments={
                "x-queue-type": queue_config.queue_type,
                "x-delivery-limit": queue_config.max_delivery_count,
                "x-dead-letter-exchange": queue_config.dlq_exchange_name,
                "x-dead-letter-routing-key": queue_config.dlq_routing_key,
            },
        )
        self._channel.queue_bind(
            queue=queue_config.name,
            exchange=self._config.exchange_name,
            routing_key=queue_config.expected_routing_key,
        )
