"""Repository for conversation record persistence."""

from sqlalchemy import update
from sqlmodel import Session

from conversation_pipeline.db_models import ConversationRow
from conversation_pipeline.domain.models import (
    ConversationInsights,
    ConversationMetadata,
    ConversationRecord,
    Message,
    ProcessingLogEntry,
    Speaker,
    utc_now,
)
from conversation_pipeline.exceptions import (
    ConversationNotFoundError,
    ConversationPersistenceError,
)
from conversation_pipeline.infrastructure.interfaces import ConversationStore
from conversation_pipeline.logging import setup_logging

logger = setup_logging()


class ConversationRepository(ConversationStore):
    """
    Handles database operations for conversation records.

    Records are stored as one row per conversation with the nested documents
    (metadata, speakers, messages, insights, processing log) in JSON columns.
    """

    def __init__(self, session_factory):
        """
        Initializes the repository.

        Args:
            session_factory: Callable that returns a SQLModel Session context manager.
        """
        self._session_factory = session_factory

    def get(self, conversation_id: str) -> ConversationRecord | None:
        try:
            with self._session_factory() as db_session:
                row = db_session.get(ConversationRow, conversation_id)
                return self._to_record(row) if row else None
        except Exception as e:
            logger.exception(
                "Failed to load conversation",
                extra={"conversation_id": conversation_id},
            )
            raise ConversationPersistenceError(conversation_id, cause=e) from e

    def create(self, record: ConversationRecord) -> None:
        try:
            with self._session_factory() as db_session:
                db_session.add(self._to_row(record))
                db_session.commit()
            logger.info(
                "Conversation created",
                extra={"conversation_id": record.conversation_id},
            )
        except Exception as e:
            logger.exception(
                "Failed to create conversation",
                extra={"conversation_id": record.conversation_id},
            )
            raise ConversationPersistenceError(record.conversation_id, cause=e) from e

    def claim_for_processing(
        self, conversation_id: str, entry: ProcessingLogEntry
    ) -> bool:
        """
        Moves an uploaded conversation to processing with a compare-and-swap.

        Only the caller whose UPDATE matched the 'uploaded' row wins; everyone
        else sees a rowcount of zero and backs off.
        """
        try:
            with self._session_factory() as db_session:
                statement = (
                    update(ConversationRow)
                    .where(
                        ConversationRow.id == conversation_id,
                        ConversationRow.status == "uploaded",
                    )
                    .values(status="processing", updated_at=utc_now())
                )
                claimed = db_session.execute(statement).rowcount == 1
                if claimed:
                    row = db_session.get(ConversationRow, conversation_id)
                    row.processing_log = [
                        *row.processing_log,
                        entry.model_dump(mode="json"),
                    ]
                    db_session.add(row)
                db_session.commit()
        except Exception as e:
            logger.exception(
                "Failed to claim conversation",
                extra={"conversation_id": conversation_id},
            )
            raise ConversationPersistenceError(conversation_id, cause=e) from e

        logger.info(
            "Conversation claim attempted",
            extra={"conversation_id": conversation_id, "claimed": claimed},
        )
        return claimed

    def append_log_entry(self, conversation_id: str, entry: ProcessingLogEntry) -> None:
        self._update(conversation_id, entry)

    def complete(
        self,
        conversation_id: str,
        speakers: list[Speaker],
        messages: list[Message],
        insights: ConversationInsights,
        metadata: ConversationMetadata,
        entry: ProcessingLogEntry,
    ) -> None:
        self._update(
            conversation_id,
            entry,
            status="completed",
            speakers=[s.model_dump(mode="json") for s in speakers],
            messages=[m.model_dump(mode="json") for m in messages],
            insights=insights.model_dump(mode="json"),
            conversation_metadata=metadata.model_dump(mode="json"),
        )
        logger.info(
            "Conversation completed",
            extra={
                "conversation_id": conversation_id,
                "speaker_count": len(speakers),
                "message_count": len(messages),
            },
        )

    def mark_failed(self, conversation_id: str, entry: ProcessingLogEntry) -> None:
        self._update(conversation_id, entry, status="failed")

    def _update(self, conversation_id: str, entry: ProcessingLogEntry, **fields) -> None:
        """Applies field changes and appends a log entry in one transaction."""
        try:
            with self._session_factory() as db_session:
                row = db_session.get(ConversationRow, conversation_id)
                if row is None:
                    raise ConversationNotFoundError(conversation_id)

                for name, value in fields.items():
                    setattr(row, name, value)
                row.processing_log = [*row.processing_log, entry.model_dump(mode="json")]
                row.updated_at = utc_now()

                db_session.add(row)
                db_session.commit()
        except ConversationNotFoundError:
            raise
        except Exception as e:
            logger.exception(
                "Failed to update conversation",
                extra={"conversation_id": conversation_id, "stage": entry.stage},
            )
            raise ConversationPersistenceError(conversation_id, cause=e) from e

    def _to_row(self, record: ConversationRecord) -> ConversationRow:
        return ConversationRow(
            id=record.conversation_id,
            recording_id=record.recording_id,
            status=record.status,
            conversation_metadata=record.metadata.model_dump(mode="json"),
            speakers=[s.model_dump(mode="json") for s in record.speakers],
            messages=[m.model_dump(mode="json") for m in record.messages],
            insights=record.insights.model_dump(mode="json") if record.insights else None,
            processing_log=[e.model_dump(mode="json") for e in record.processing_log],
            created_at=record.created_at,
            updated_at=record.updated_at,
        )

    def _to_record(self, row: ConversationRow) -> ConversationRecord:
        return ConversationRecord(
            conversation_id=row.id,
            recording_id=row.recording_id,
            status=row.status,
            metadata=row.conversation_metadata,
            speakers=row.speakers,
            messages=row.messages,
            insights=row.insights,
            processing_log=row.processing_log,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )
