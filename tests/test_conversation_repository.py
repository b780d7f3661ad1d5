from contextlib import contextmanager

import pytest
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from conftest import make_record
from conversation_pipeline.domain.models import (
    ConversationInsights,
    Message,
    ProcessingLogEntry,
    Speaker,
)
from conversation_pipeline.exceptions import ConversationNotFoundError
from conversation_pipeline.repositories import ConversationRepository


@pytest.fixture
def repository():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)

    @contextmanager
    def session_factory():
        with Session(engine) as session:
            yield session

    return ConversationRepository(session_factory)


def _entry(stage="diarization"):
    return ProcessingLogEntry(stage=stage, message=f"{stage} entry")


def test_create_and_get(repository):
    repository.create(make_record("conv-1"))

    record = repository.get("conv-1")

    assert record.conversation_id == "conv-1"
    assert record.status == "uploaded"
    assert record.metadata.title == "Weekly sync"
    assert record.metadata.duration == 60.0
    assert [e.stage for e in record.processing_log] == ["upload"]


def test_get_missing_returns_none(repository):
    assert repository.get("missing") is None


def test_claim_is_compare_and_swap(repository):
    repository.create(make_record("conv-1"))

    assert repository.claim_for_processing("conv-1", _entry()) is True
    assert repository.claim_for_processing("conv-1", _entry()) is False

    record = repository.get("conv-1")
    assert record.status == "processing"
    assert [e.stage for e in record.processing_log] == ["upload", "diarization"]


def test_claim_missing_conversation(repository):
    assert repository.claim_for_processing("missing", _entry()) is False


def test_append_log_entry(repository):
    repository.create(make_record("conv-1"))

    repository.append_log_entry("conv-1", _entry("transcription"))
    repository.append_log_entry("conv-1", _entry("parsing"))

    stages = [e.stage for e in repository.get("conv-1").processing_log]
    assert stages == ["upload", "transcription", "parsing"]


def test_append_to_missing_conversation(repository):
    with pytest.raises(ConversationNotFoundError):
        repository.append_log_entry("missing", _entry())


def test_complete_persists_outputs(repository):
    record = make_record("conv-1")
    repository.create(record)
    repository.claim_for_processing("conv-1", _entry())
    speakers = [Speaker(id="speaker_1", label="Speaker 1", total_speaking_time=4.0, message_count=1)]
    messages = [
        Message(
            message_id="msg_001",
            speaker_id="speaker_1",
            content="What is the plan?",
            start_time=0.0,
            end_time=4.0,
            confidence=0.92,
            message_type="question",
            order=1,
            word_count=4,
        )
    ]
    insights = ConversationInsights(total_messages=1, question_count=1)
    metadata = record.metadata.model_copy(update={"confidence": 0.92})

    repository.complete("conv-1", speakers, messages, insights, metadata, _entry("completion"))

    stored = repository.get("conv-1")
    assert stored.status == "completed"
    assert stored.speakers == speakers
    assert stored.messages == messages
    assert stored.insights.question_count == 1
    assert stored.metadata.confidence == 0.92
    assert stored.processing_log[-1].stage == "completion"


def test_mark_failed(repository):
    repository.create(make_record("conv-1"))
    repository.claim_for_processing("conv-1", _entry())

    repository.mark_failed(
        "conv-1",
        ProcessingLogEntry(stage="error", message="Processing failed: boom", error="trace"),
    )

    stored = repository.get("conv-1")
    assert stored.status == "failed"
    assert stored.processing_log[-1].error == "trace"
