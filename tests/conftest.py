import threading
from datetime import datetime, timezone

import pytest

from conversation_pipeline.config import CostConfig
from conversation_pipeline.domain.cost_monitor import CostLimits, CostMonitor
from conversation_pipeline.domain.cost_policy import RecognitionConfig, calculate_cost
from conversation_pipeline.domain.models import (
    ConversationMetadata,
    ConversationRecord,
    ProcessingLogEntry,
)
from conversation_pipeline.domain.recognition import (
    AudioLocation,
    RecognitionAlternative,
    RecognitionResult,
    RecognitionSegment,
    RecognizedWord,
)
from conversation_pipeline.exceptions import ConversationNotFoundError
from conversation_pipeline.handlers import ConversationPipeline
from conversation_pipeline.infrastructure.interfaces import (
    ConversationStore,
    RecognitionGateway,
    StorageClient,
)
from conversation_pipeline.infrastructure.memory_counter import InMemoryUsageCounter


def words_for(text: str, start: float, end: float, tag: int, confidence: float = 0.9):
    """Spreads the words of ``text`` evenly over [start, end] with one speaker tag."""
    tokens = text.split()
    step = (end - start) / len(tokens)
    return [
        RecognizedWord(
            word=token,
            start_time=round(start + i * step, 3),
            end_time=round(start + (i + 1) * step, 3),
            confidence=confidence,
            speaker_tag=tag,
        )
        for i, token in enumerate(tokens)
    ]


def recognition_result(
    *word_groups: list[RecognizedWord],
    billed_seconds: float = 60.0,
    config: RecognitionConfig | str = "balanced",
) -> RecognitionResult:
    """Builds a result with one recognition segment per word group."""
    segments = [
        RecognitionSegment(
            alternatives=[
                RecognitionAlternative(
                    transcript=" ".join(w.word for w in words),
                    confidence=0.9,
                    words=words,
                )
            ]
        )
        for words in word_groups
    ]
    return RecognitionResult(
        segments=segments,
        billed_seconds=billed_seconds,
        cost_estimate=calculate_cost(billed_seconds / 60, config),
    )


def two_speaker_result() -> RecognitionResult:
    """A 60 second call: a question, a yes/no answer and a statement."""
    words = (
        words_for("What time does the meeting start?", 0.0, 10.0, tag=1)
        + words_for("Yes, that works.", 12.0, 25.0, tag=2)
        + words_for("The meeting starts at noon in the main room.", 30.0, 60.0, tag=1)
    )
    return recognition_result(words)


def make_record(conversation_id: str = "conv-1", **metadata) -> ConversationRecord:
    defaults = {
        "title": "Weekly sync",
        "duration": 60.0,
        "original_file_name": "call.mp3",
        "audio_format": "mp3",
        "mime_type": "audio/mpeg",
        "sample_rate": 44100,
    }
    defaults.update(metadata)
    return ConversationRecord(
        conversation_id=conversation_id,
        metadata=ConversationMetadata(**defaults),
        processing_log=[ProcessingLogEntry(stage="upload", message="Uploaded")],
    )


class InMemoryConversationStore(ConversationStore):
    def __init__(self, *records: ConversationRecord):
        self._lock = threading.Lock()
        self.records = {r.conversation_id: r for r in records}

    def get(self, conversation_id):
        with self._lock:
            record = self.records.get(conversation_id)
            return record.model_copy(deep=True) if record else None

    def create(self, record):
        with self._lock:
            self.records[record.conversation_id] = record

    def claim_for_processing(self, conversation_id, entry):
        with self._lock:
            record = self.records.get(conversation_id)
            if record is None or record.status != "uploaded":
                return False
            record.status = "processing"
            record.processing_log.append(entry)
            return True

    def append_log_entry(self, conversation_id, entry):
        with self._lock:
            self._require(conversation_id).processing_log.append(entry)

    def complete(self, conversation_id, speakers, messages, insights, metadata, entry):
        with self._lock:
            record = self._require(conversation_id)
            record.speakers = speakers
            record.messages = messages
            record.insights = insights
            record.metadata = metadata
            record.status = "completed"
            record.processing_log.append(entry)

    def mark_failed(self, conversation_id, entry):
        with self._lock:
            record = self._require(conversation_id)
            record.status = "failed"
            record.processing_log.append(entry)

    def _require(self, conversation_id):
        record = self.records.get(conversation_id)
        if record is None:
            raise ConversationNotFoundError(conversation_id)
        return record


class FakeStorage(StorageClient):
    def __init__(self, *conversation_ids: str, bucket_name: str = "conversations"):
        self.bucket_name = bucket_name
        self.conversation_ids = set(conversation_ids)
        self.downloads: list[tuple[str, str]] = []

    def get_audio_location(self, conversation_id, audio_format):
        if conversation_id not in self.conversation_ids:
            return None
        return AudioLocation(
            bucket_name=self.bucket_name,
            object_name=f"conversations/{conversation_id}/audio/original.{audio_format}",
        )

    def download(self, bucket_name, object_name):
        self.downloads.append((bucket_name, object_name))
        return b"audio-bytes"

    def ensure_bucket_exists(self, bucket_name):
        pass


class FakeGateway(RecognitionGateway):
    def __init__(self, result: RecognitionResult | None = None, error: Exception | None = None):
        self.result = result
        self.error = error
        self.calls = []

    def recognize(self, location, audio, config, monthly_usage_minutes=0.0):
        self.calls.append((location, audio, config, monthly_usage_minutes))
        if self.error is not None:
            raise self.error
        return self.result


class MutableClock:
    def __init__(self, moment: datetime):
        self.moment = moment

    def __call__(self) -> datetime:
        return self.moment


@pytest.fixture
def clock():
    return MutableClock(datetime(2024, 3, 15, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def cost_monitor(clock):
    return CostMonitor(InMemoryUsageCounter(), CostLimits(), clock=clock)


@pytest.fixture
def store():
    return InMemoryConversationStore(make_record("conv-1"))


@pytest.fixture
def storage():
    return FakeStorage("conv-1")


@pytest.fixture
def gateway():
    return FakeGateway(two_speaker_result())


@pytest.fixture
def pipeline(store, storage, gateway, cost_monitor):
    return ConversationPipeline(
        store=store,
        storage=storage,
        gateway=gateway,
        cost_monitor=cost_monitor,
        cost_config=CostConfig(),
    )
