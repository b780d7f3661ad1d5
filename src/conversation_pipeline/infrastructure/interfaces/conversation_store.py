"""Abstract interface for conversation record persistence."""

from abc import ABC, abstractmethod

from conversation_pipeline.domain.models import (
    ConversationInsights,
    ConversationMetadata,
    ConversationRecord,
    Message,
    ProcessingLogEntry,
    Speaker,
)


class ConversationStore(ABC):
    """Document store for conversation records."""

    @abstractmethod
    def get(self, conversation_id: str) -> ConversationRecord | None:
        """Returns the record, or None if it does not exist."""

    @abstractmethod
    def create(self, record: ConversationRecord) -> None:
        """Inserts a new record."""

    @abstractmethod
    def claim_for_processing(
        self, conversation_id: str, entry: ProcessingLogEntry
    ) -> bool:
        """
        Atomically moves a record from 'uploaded' to 'processing'.

        Args:
            conversation_id: The conversation to claim.
            entry: Log entry appended when the claim succeeds.

        Returns:
            True if this caller won the claim, False otherwise.
        """

    @abstractmethod
    def append_log_entry(self, conversation_id: str, entry: ProcessingLogEntry) -> None:
        """Appends an entry to the processing log."""

    @abstractmethod
    def complete(
        self,
        conversation_id: str,
        speakers: list[Speaker],
        messages: list[Message],
        insights: ConversationInsights,
        metadata: ConversationMetadata,
        entry: ProcessingLogEntry,
    ) -> None:
        """Persists all stage outputs and marks the record completed."""

    @abstractmethod
    def mark_failed(self, conversation_id: str, entry: ProcessingLogEntry) -> None:
        """Marks the record failed and appends the error entry."""
