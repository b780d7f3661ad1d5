"""Queue transport used by the conversation worker."""

from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import Any


class MessageBroker(ABC):
    """Delivers processing requests and publishes processing results."""

    @abstractmethod
    def publish(self, routing_key: str, payload: dict) -> None:
        """
        Publishes a JSON event.

        Args:
            routing_key: Topic the event is routed by, e.g. the
                processing-completed key.
            payload: JSON-serializable event body.

        Raises:
            EventPublishError: If the broker refuses or drops the publish.
        """

    @abstractmethod
    def acknowledge(self, delivery_tag: int) -> None:
        """Marks a delivery as handled."""

    @abstractmethod
    def reject(self, delivery_tag: int, requeue: bool = True) -> None:
        """Returns a delivery to the queue, or dead-letters it when requeue is False."""

    @abstractmethod
    def consume(
        self, callback: Callable[[bytes, int, dict[str, Any] | None], None]
    ) -> None:
        """
        Blocks, handing each delivery to ``callback(body, delivery_tag, headers)``.
        """

    @abstractmethod
    def setup(self) -> None:
        """Declares the exchanges, queues and bindings the worker relies on."""
