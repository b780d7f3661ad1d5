"""Infrastructure interface exports."""

from conversation_pipeline.infrastructure.interfaces.conversation_store import (
    ConversationStore,
)
from conversation_pipeline.infrastructure.interfaces.message_broker import (
    MessageBroker,
)
from conversation_pipeline.infrastructure.interfaces.recognition_gateway import (
    RecognitionGateway,
)
from conversation_pipeline.infrastructure.interfaces.storage_client import (
    StorageClient,
)
from conversation_pipeline.infrastructure.interfaces.usage_counter import UsageCounter

__all__ = [
    "ConversationStore",
    "MessageBroker",
    "RecognitionGateway",
    "StorageClient",
    "UsageCounter",
]
