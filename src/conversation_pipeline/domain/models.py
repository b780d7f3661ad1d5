"""Domain models for conversation processing."""

from datetime import datetime, timezone
from typing import Literal

from pydantic import BaseModel, Field, model_validator

ConversationStatus = Literal["uploaded", "processing", "completed", "failed"]

ProcessingStage = Literal[
    "upload",
    "validation",
    "diarization",
    "transcription",
    "parsing",
    "insights",
    "completion",
    "error",
]

# Ordered progress stages; "error" is only used for failure entries.
STAGE_SEQUENCE: tuple[str, ...] = (
    "upload",
    "validation",
    "diarization",
    "transcription",
    "parsing",
    "insights",
    "completion",
)

MessageType = Literal["question", "response", "statement", "interruption", "unknown"]

ConversationFlow = Literal[
    "question_answer_pattern",
    "interview",
    "meeting",
    "monologue",
    "discussion",
    "unknown",
]

AudioFormat = Literal["wav", "mp3", "m4a", "webm", "ogg", "mpeg", "flac"]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class CostInfo(BaseModel):
    """Realized recognition cost recorded on a completed conversation."""

    billed_minutes: float
    estimated_cost: float
    currency: str = "USD"
    tier: str
    optimizations_applied: list[str] = Field(default_factory=list)
    premium_features: list[str] = Field(default_factory=list)
    processing_date: datetime


class ConversationMetadata(BaseModel):
    """Descriptive and processing metadata for a conversation."""

    title: str
    description: str | None = None
    duration: float = Field(default=0.0, ge=0.0)
    language: str = "en-US"
    original_file_name: str = ""
    audio_format: AudioFormat = "mp3"
    mime_type: str | None = None
    sample_rate: int | None = None
    file_size: int = 0
    recording_date: datetime = Field(default_factory=utc_now)
    processing_date: datetime | None = None
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    cost_info: CostInfo | None = None


class SpeakerCharacteristics(BaseModel):
    """Aggregates derived from a speaker's segments."""

    confidence_score: float
    average_segment_length: float


class Speaker(BaseModel):
    """A distinct voice identified by diarization."""

    id: str
    label: str
    identified_name: str | None = None
    total_speaking_time: float
    message_count: int = 0
    characteristics: SpeakerCharacteristics | None = None


class Message(BaseModel, frozen=True):
    """A single speaker turn in the conversation."""

    message_id: str
    speaker_id: str
    content: str
    start_time: float
    end_time: float
    confidence: float = Field(ge=0.0, le=1.0)
    message_type: MessageType
    order: int = Field(ge=1)
    word_count: int

    @model_validator(mode="after")
    def _check_time_range(self) -> "Message":
        if self.end_time < self.start_time:
            raise ValueError("end_time must not precede start_time")
        return self


class LongestMessage(BaseModel):
    message_id: str = ""
    length: int = 0


class SpeakingTimeShare(BaseModel):
    speaker_id: str
    percentage: float
    total_time: float


class ConversationInsights(BaseModel):
    """Conversation-level aggregates derived from speakers and messages."""

    total_messages: int = 0
    question_count: int = 0
    response_count: int = 0
    statement_count: int = 0
    interruption_count: int = 0
    average_message_length: float = 0.0
    longest_message: LongestMessage = Field(default_factory=LongestMessage)
    conversation_flow: ConversationFlow = "unknown"
    speaking_time_distribution: list[SpeakingTimeShare] = Field(default_factory=list)


class ProcessingLogEntry(BaseModel, frozen=True):
    """One audit-trail entry describing a pipeline stage transition."""

    timestamp: datetime = Field(default_factory=utc_now)
    stage: ProcessingStage
    message: str
    duration: float | None = None
    cost: float | None = None
    error: str | None = None


class ConversationRecord(BaseModel):
    """The persisted conversation document."""

    conversation_id: str
    recording_id: str | None = None
    status: ConversationStatus = "uploaded"
    metadata: ConversationMetadata
    speakers: list[Speaker] = Field(default_factory=list)
    messages: list[Message] = Field(default_factory=list)
    insights: ConversationInsights | None = None
    processing_log: list[ProcessingLogEntry] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)


class ProcessingProgress(BaseModel):
    """Progress snapshot reconstructed from the processing log."""

    conversation_id: str
    status: ConversationStatus
    stage: ProcessingStage
    percentage: int
    message: str
    estimated_time_remaining: int | None = None
    estimated_cost: float | None = None


class ProcessingRequest(BaseModel, frozen=True):
    """Incoming queue message asking for a conversation to be processed."""

    conversation_id: str
    tier: str | None = None


class ProcessingResult(BaseModel, frozen=True):
    """Summary of a completed pipeline run."""

    conversation_id: str
    status: ConversationStatus
    speaker_count: int
    message_count: int
    billed_minutes: float
    cost: float
