from .insights import InsightGenerator
from .models import (
    ConversationInsights,
    ConversationMetadata,
    ConversationRecord,
    Message,
    ProcessingLogEntry,
    ProcessingProgress,
    ProcessingRequest,
    ProcessingResult,
    Speaker,
)
from .segmenter import DiarizationSegmenter
from .structurer import ConversationStructurer, classify_message

__all__ = [
    "ConversationInsights",
    "ConversationMetadata",
    "ConversationRecord",
    "ConversationStructurer",
    "DiarizationSegmenter",
    "InsightGenerator",
    "Message",
    "ProcessingLogEntry",
    "ProcessingProgress",
    "ProcessingRequest",
    "ProcessingResult",
    "Speaker",
    "classify_message",
]
