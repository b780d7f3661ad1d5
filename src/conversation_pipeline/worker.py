"""Worker that consumes conversation.uploaded events and runs the pipeline."""

import json
from typing import Any

from ddtrace import patch_all
from pydantic import ValidationError

from conversation_pipeline.config import RabbitMQConfig
from conversation_pipeline.domain.models import ProcessingRequest
from conversation_pipeline.exceptions import ConversationPersistenceError
from conversation_pipeline.handlers import ConversationPipeline
from conversation_pipeline.infrastructure.interfaces import MessageBroker
from conversation_pipeline.logging import setup_logging

logger = setup_logging()


class Worker:
    """Consumes messages from the queue and orchestrates processing."""

    def __init__(
        self,
        broker: MessageBroker,
        pipeline: ConversationPipeline,
        config: RabbitMQConfig,
    ):
        self._broker = broker
        self._pipeline = pipeline
        self._config = config

    def start(self) -> None:
        """Starts consuming messages from the queue."""
        logger.info("Worker initialized, starting message consumption")
        self._broker.consume(self._on_message)

    def _on_message(
        self, body: bytes, delivery_tag: int, headers: dict[str, Any] | None
    ) -> None:
        """Callback for each received message."""
        delivery_count = headers.get("x-delivery-count", 1) if headers else 1

        logger.info(
            "Message received",
            extra={
                "attempt": delivery_count,
                "max_attempts": self._config.queue_config.max_delivery_count,
            },
        )

        try:
            request = ProcessingRequest.model_validate(json.loads(body))
        except (ValidationError, ValueError) as e:
            logger.exception("Invalid message format", extra={"error": str(e)})
            self._broker.reject(delivery_tag, requeue=False)
            return

        try:
            result = self._pipeline.process(request.conversation_id, request.tier)
        except ConversationPersistenceError:
            # Store outages are transient; the delivery limit bounds redelivery.
            logger.exception(
                "Message processing failed, requeueing",
                extra={"conversation_id": request.conversation_id},
            )
            self._broker.reject(delivery_tag, requeue=True)
            return
        except Exception:
            # The run is already recorded as failed, so redelivery would be a no-op.
            logger.exception(
                "Message processing failed",
                extra={"conversation_id": request.conversation_id},
            )
            self._broker.reject(delivery_tag, requeue=False)
            return

        self._broker.acknowledge(delivery_tag)

        if result is None:
            logger.info(
                "Message skipped, conversation not claimable",
                extra={"conversation_id": request.conversation_id},
            )
            return

        self._broker.publish(
            routing_key=self._config.queue_config.success_routing_key,
            payload=result.model_dump(mode="json"),
        )

        logger.info(
            "Message processed successfully",
            extra={
                "conversation_id": request.conversation_id,
                "speaker_count": result.speaker_count,
                "message_count": result.message_count,
                "cost": result.cost,
            },
        )


def main():
    """Starts the worker."""
    patch_all()

    from conversation_pipeline.dependencies import get_worker

    worker = get_worker()
    worker.start()


if __name__ == "__main__":
    main()
