from .conversation_pipeline import ConversationPipeline
from .processing_runner import ProcessingRunner

__all__ = ["ConversationPipeline", "ProcessingRunner"]
