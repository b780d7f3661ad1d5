"""Orchestrates the conversation processing stages."""

import math
import time
import traceback

from conversation_pipeline.config import CostConfig
from conversation_pipeline.domain.cost_monitor import CostMonitor
from conversation_pipeline.domain.cost_policy import (
    CostEstimate,
    CostOverrides,
    RecognitionConfig,
    calculate_cost,
    optimizations_applied,
    premium_features_used,
    resolve_config,
)
from conversation_pipeline.domain.insights import InsightGenerator
from conversation_pipeline.domain.models import (
    STAGE_SEQUENCE,
    ConversationMetadata,
    ConversationRecord,
    CostInfo,
    Message,
    ProcessingLogEntry,
    ProcessingProgress,
    ProcessingResult,
    utc_now,
)
from conversation_pipeline.domain.recognition import (
    AudioProperties,
    RecognitionResult,
    estimate_sample_rate,
    infer_encoding,
)
from conversation_pipeline.domain.segmenter import DiarizationSegmenter
from conversation_pipeline.domain.structurer import ConversationStructurer
from conversation_pipeline.exceptions import (
    AudioNotFoundError,
    ConversationNotFoundError,
    ConversationPersistenceError,
    CostLimitExceededError,
)
from conversation_pipeline.infrastructure.interfaces import (
    ConversationStore,
    RecognitionGateway,
    StorageClient,
)
from conversation_pipeline.logging import setup_logging

logger = setup_logging()

MARK_FAILED_ATTEMPTS = 3

STAGE_MESSAGES = {
    "upload": "Audio file uploaded successfully",
    "validation": "Validating audio format and quality",
    "diarization": "Identifying speakers",
    "transcription": "Converting speech to text",
    "parsing": "Analyzing conversation structure",
    "insights": "Generating insights and statistics",
    "completion": "Processing completed successfully",
}


class ConversationPipeline:
    """
    Drives a conversation from 'uploaded' through recognition to 'completed'.

    Every log entry written during a run names the stage about to start;
    'completion' and 'error' are the terminal entries. Any failure after the
    claim is recorded as an 'error' entry, the record is marked failed and the
    exception is re-raised to the caller. Marking the record failed is retried
    a few times; if the store stays unavailable the record is left in
    'processing' and that is logged as an error.
    """

    def __init__(
        self,
        store: ConversationStore,
        storage: StorageClient,
        gateway: RecognitionGateway,
        cost_monitor: CostMonitor,
        cost_config: CostConfig,
        segmenter: DiarizationSegmenter | None = None,
        structurer: ConversationStructurer | None = None,
        insight_generator: InsightGenerator | None = None,
        failure_retry_delay: float = 0.5,
    ):
        self._store = store
        self._storage = storage
        self._gateway = gateway
        self._cost_monitor = cost_monitor
        self._cost_config = cost_config
        self._segmenter = segmenter or DiarizationSegmenter()
        self._structurer = structurer or ConversationStructurer()
        self._insight_generator = insight_generator or InsightGenerator()
        self._failure_retry_delay = failure_retry_delay

    def require(self, conversation_id: str) -> ConversationRecord:
        """Returns the record or raises ConversationNotFoundError."""
        record = self._store.get(conversation_id)
        if record is None:
            raise ConversationNotFoundError(conversation_id)
        return record

    def process(
        self,
        conversation_id: str,
        selection: str | CostOverrides | None = None,
    ) -> ProcessingResult | None:
        """
        Runs the full pipeline for one conversation.

        Args:
            conversation_id: The conversation to process.
            selection: Tier name or overrides; defaults to the configured tier.

        Returns:
            ProcessingResult on success, or None when the conversation was not
            in 'uploaded' status or another caller claimed it first.

        Raises:
            ConversationNotFoundError: If the record does not exist.
            AudioNotFoundError: If no stored audio can be resolved.
            CostLimitExceededError: If the monthly cap is breached and enforced.
            RecognitionUnavailableError: If the provider fails or times out.
            NoSpeechDetectedError: If recognition yields no words.
            NoSpeakerSegmentsError: If diarization yields no segments.
        """
        record = self.require(conversation_id)
        if record.status != "uploaded":
            logger.warning(
                "Conversation not in uploaded status, skipping",
                extra={"conversation_id": conversation_id, "status": record.status},
            )
            return None

        claimed = self._store.claim_for_processing(
            conversation_id,
            ProcessingLogEntry(
                stage="diarization",
                message="Starting speech-to-text processing with speaker diarization",
            ),
        )
        if not claimed:
            logger.warning(
                "Conversation already claimed, skipping",
                extra={"conversation_id": conversation_id},
            )
            return None

        logger.info(
            "Conversation processing started",
            extra={"conversation_id": conversation_id},
        )

        try:
            return self._run(record, selection or self._cost_config.default_tier)
        except Exception as e:
            logger.exception(
                "Conversation processing failed",
                extra={"conversation_id": conversation_id},
            )
            self._mark_failed(
                conversation_id,
                ProcessingLogEntry(
                    stage="error",
                    message=f"Processing failed: {e}",
                    error=traceback.format_exc(),
                ),
            )
            raise

    def get_progress(self, conversation_id: str) -> ProcessingProgress:
        """
        Reconstructs progress from the furthest stage recorded in the log.

        Raises:
            ConversationNotFoundError: If the record does not exist.
        """
        record = self.require(conversation_id)

        seen = [
            STAGE_SEQUENCE.index(entry.stage)
            for entry in record.processing_log
            if entry.stage in STAGE_SEQUENCE
        ]
        index = max(seen, default=0)
        percentage = round(index / (len(STAGE_SEQUENCE) - 1) * 100)
        stage = STAGE_SEQUENCE[index]
        message = STAGE_MESSAGES[stage]

        if record.status == "failed":
            stage = "error"
            message = (
                record.processing_log[-1].message
                if record.processing_log
                else "Processing failed"
            )

        estimated_time_remaining = None
        estimated_cost = None
        duration = record.metadata.duration
        if record.status == "processing" and duration > 0:
            total_time = duration * self._cost_config.processing_factor
            estimated_time_remaining = math.ceil(total_time * (1 - percentage / 100))
            estimated_cost = round(self._estimated_cost(record), 2)

        return ProcessingProgress(
            conversation_id=conversation_id,
            status=record.status,
            stage=stage,
            percentage=percentage,
            message=message,
            estimated_time_remaining=estimated_time_remaining,
            estimated_cost=estimated_cost,
        )

    def _estimated_cost(self, record: ConversationRecord) -> float:
        # The transcription entry carries the estimate for the tier in use.
        for entry in reversed(record.processing_log):
            if entry.stage == "transcription" and entry.cost is not None:
                return entry.cost
        return calculate_cost(
            record.metadata.duration / 60, self._cost_config.default_tier
        ).total_cost

    def _mark_failed(self, conversation_id: str, entry: ProcessingLogEntry) -> None:
        for attempt in range(1, MARK_FAILED_ATTEMPTS + 1):
            try:
                self._store.mark_failed(conversation_id, entry)
                return
            except ConversationPersistenceError:
                logger.warning(
                    "Could not mark conversation failed",
                    extra={"conversation_id": conversation_id, "attempt": attempt},
                )
                if attempt < MARK_FAILED_ATTEMPTS:
                    time.sleep(self._failure_retry_delay * attempt)

        logger.error(
            "Conversation left in processing status",
            extra={
                "conversation_id": conversation_id,
                "attempts": MARK_FAILED_ATTEMPTS,
            },
        )

    def _run(
        self, record: ConversationRecord, selection: str | CostOverrides
    ) -> ProcessingResult:
        conversation_id = record.conversation_id
        metadata = record.metadata
        started = time.monotonic()

        location = self._storage.get_audio_location(
            conversation_id, metadata.audio_format
        )
        if location is None:
            raise AudioNotFoundError(conversation_id)

        self._check_monthly_limit(conversation_id)

        monthly_usage = self._cost_monitor.monthly_usage
        config, estimate = resolve_config(
            selection, monthly_usage, metadata.duration / 60
        )
        self._check_request_cost(conversation_id, estimate)

        audio = AudioProperties(
            encoding=infer_encoding(
                metadata.original_file_name or metadata.audio_format,
                metadata.mime_type,
            ),
            sample_rate_hertz=estimate_sample_rate(metadata.sample_rate),
            language_code=metadata.language,
        )

        self._store.append_log_entry(
            conversation_id,
            ProcessingLogEntry(
                stage="transcription",
                message=f"Converting speech to text (est. cost: ${estimate.total_cost:.4f})",
                cost=estimate.total_cost,
            ),
        )
        recognition = self._gateway.recognize(location, audio, config, monthly_usage)
        realized = recognition.cost_estimate
        self._cost_monitor.track_usage(recognition.billed_minutes, realized.total_cost)

        self._store.append_log_entry(
            conversation_id,
            ProcessingLogEntry(
                stage="parsing",
                message="Parsing conversation structure and identifying speakers",
            ),
        )
        diarization = self._segmenter.segment(recognition)
        speakers, messages = self._structurer.structure(diarization)

        self._store.append_log_entry(
            conversation_id,
            ProcessingLogEntry(
                stage="insights",
                message="Analyzing conversation patterns and generating insights",
            ),
        )
        insights = self._insight_generator.generate(
            speakers, messages, diarization.total_duration
        )

        updated_metadata = self._completed_metadata(
            metadata, messages, config, recognition
        )
        elapsed_ms = round((time.monotonic() - started) * 1000, 2)
        self._store.complete(
            conversation_id,
            speakers,
            messages,
            insights,
            updated_metadata,
            ProcessingLogEntry(
                stage="completion",
                message=(
                    f"Processing completed successfully. {len(speakers)} speakers, "
                    f"{len(messages)} messages identified. "
                    f"Cost: ${realized.total_cost:.4f}"
                ),
                duration=elapsed_ms,
                cost=realized.total_cost,
            ),
        )

        logger.info(
            "Conversation processing completed",
            extra={
                "conversation_id": conversation_id,
                "speaker_count": len(speakers),
                "message_count": len(messages),
                "total_duration": diarization.total_duration,
                "billed_seconds": recognition.billed_seconds,
                "cost": realized.total_cost,
            },
        )

        return ProcessingResult(
            conversation_id=conversation_id,
            status="completed",
            speaker_count=len(speakers),
            message_count=len(messages),
            billed_minutes=round(recognition.billed_minutes, 4),
            cost=realized.total_cost,
        )

    def _check_monthly_limit(self, conversation_id: str) -> None:
        status = self._cost_monitor.check_limits()
        for warning in status.warnings:
            logger.warning(
                warning,
                extra={
                    "conversation_id": conversation_id,
                    "monthly_cost": status.monthly_cost,
                },
            )
        if not status.within_limits and self._cost_config.enforce_monthly_limit:
            raise CostLimitExceededError(
                status.monthly_cost, self._cost_monitor.limits.monthly_cost_limit
            )

    def _check_request_cost(self, conversation_id: str, estimate: CostEstimate) -> None:
        ceiling = self._cost_monitor.limits.max_cost_per_request
        if estimate.total_cost > ceiling:
            logger.warning(
                "Estimated request cost exceeds per-request ceiling",
                extra={
                    "conversation_id": conversation_id,
                    "estimated_cost": estimate.total_cost,
                    "max_cost_per_request": ceiling,
                },
            )
        logger.info(
            "Estimated processing cost",
            extra={
                "conversation_id": conversation_id,
                "estimated_cost": estimate.total_cost,
                "duration_minutes": estimate.duration_minutes,
            },
        )

    def _completed_metadata(
        self,
        metadata: ConversationMetadata,
        messages: list[Message],
        config: RecognitionConfig,
        recognition: RecognitionResult,
    ) -> ConversationMetadata:
        now = utc_now()
        confidence = (
            round(sum(m.confidence for m in messages) / len(messages), 2)
            if messages
            else 0.0
        )
        cost_info = CostInfo(
            billed_minutes=round(recognition.billed_minutes, 4),
            estimated_cost=recognition.cost_estimate.total_cost,
            currency=recognition.cost_estimate.currency,
            tier=config.tier,
            optimizations_applied=optimizations_applied(config),
            premium_features=premium_features_used(config),
            processing_date=now,
        )
        return metadata.model_copy(
            update={
                "confidence": confidence,
                "processing_date": now,
                "cost_info": cost_info,
            }
        )
