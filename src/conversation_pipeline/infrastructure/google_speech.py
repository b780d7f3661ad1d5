"""Google Cloud Speech-to-Text implementation of the RecognitionGateway interface."""

from google.api_core.exceptions import GoogleAPICallError, RetryError
from google.cloud import speech

from conversation_pipeline.config import SpeechConfig
from conversation_pipeline.domain.cost_policy import RecognitionConfig, calculate_cost
from conversation_pipeline.domain.recognition import (
    AudioLocation,
    AudioProperties,
    RecognitionAlternative,
    RecognitionRequest,
    RecognitionResult,
    RecognitionSegment,
    RecognizedWord,
)
from conversation_pipeline.exceptions import (
    NoSpeechDetectedError,
    RecognitionUnavailableError,
)
from conversation_pipeline.infrastructure.interfaces import (
    RecognitionGateway,
    StorageClient,
)
from conversation_pipeline.logging import setup_logging

logger = setup_logging()


def _seconds(offset) -> float:
    """Converts a proto duration (timedelta or None) to seconds."""
    if offset is None:
        return 0.0
    return offset.total_seconds()


class GoogleSpeechGateway(RecognitionGateway):
    """Runs diarized long-running recognition with Google Speech-to-Text."""

    def __init__(
        self,
        client: speech.SpeechClient,
        storage: StorageClient,
        config: SpeechConfig,
    ):
        self._client = client
        self._storage = storage
        self._config = config

    def recognize(
        self,
        location: AudioLocation,
        audio: AudioProperties,
        config: RecognitionConfig,
        monthly_usage_minutes: float = 0.0,
    ) -> RecognitionResult:
        """
        Transcribes the audio and normalizes the provider response.

        Audio already in Cloud Storage (or mirrored to the configured GCS
        bucket) is referenced by URI; anything else is downloaded from object
        storage and sent inline.
        """
        request = RecognitionRequest.build(self._gcs_location(location), audio, config)

        logger.info(
            "Starting speech recognition",
            extra={
                "audio_uri": request.audio_uri,
                "tier": config.tier,
                "encoding": request.encoding,
                "sample_rate_hertz": request.sample_rate_hertz,
                "max_speakers": request.max_speaker_count,
                "model": request.model,
                "use_enhanced": request.use_enhanced,
                "data_logging": request.enable_data_logging,
            },
        )

        try:
            operation = self._client.long_running_recognize(
                config=self._provider_config(request),
                audio=self._provider_audio(location, request),
            )
            response = operation.result(timeout=self._config.operation_timeout_seconds)
        except (GoogleAPICallError, RetryError, TimeoutError) as e:
            logger.exception(
                "Speech recognition failed", extra={"audio_uri": request.audio_uri}
            )
            raise RecognitionUnavailableError(request.audio_uri, cause=e) from e

        segments = [self._segment(result) for result in response.results]
        if not any(s.best and s.best.words for s in segments):
            raise NoSpeechDetectedError(request.audio_uri)

        billed_seconds = _seconds(response.total_billed_time)
        if billed_seconds <= 0:
            billed_seconds = max(
                (w.end_time for s in segments if s.best for w in s.best.words),
                default=0.0,
            )

        cost_estimate = calculate_cost(
            billed_seconds / 60, config, monthly_usage_minutes
        )
        result = RecognitionResult(
            segments=segments,
            billed_seconds=billed_seconds,
            cost_estimate=cost_estimate,
        )

        logger.info(
            "Speech recognition complete",
            extra={
                "audio_uri": request.audio_uri,
                "result_count": len(segments),
                "word_count": result.word_count,
                "billed_seconds": billed_seconds,
                "cost": cost_estimate.total_cost,
            },
        )
        return result

    def _gcs_location(self, location: AudioLocation) -> AudioLocation:
        if location.scheme != "gs" and self._config.gcs_bucket:
            return AudioLocation(
                bucket_name=self._config.gcs_bucket,
                object_name=location.object_name,
                scheme="gs",
            )
        return location

    def _provider_audio(
        self, location: AudioLocation, request: RecognitionRequest
    ) -> speech.RecognitionAudio:
        if request.audio_uri.startswith("gs://"):
            return speech.RecognitionAudio(uri=request.audio_uri)
        content = self._storage.download(location.bucket_name, location.object_name)
        return speech.RecognitionAudio(content=content)

    def _provider_config(self, request: RecognitionRequest) -> speech.RecognitionConfig:
        diarization_config = speech.SpeakerDiarizationConfig(
            enable_speaker_diarization=request.enable_speaker_diarization,
            min_speaker_count=request.min_speaker_count,
            max_speaker_count=request.max_speaker_count,
        )
        return speech.RecognitionConfig(
            encoding=speech.RecognitionConfig.AudioEncoding[request.encoding],
            sample_rate_hertz=request.sample_rate_hertz,
            language_code=request.language_code,
            alternative_language_codes=request.alternative_language_codes,
            max_alternatives=request.max_alternatives,
            enable_automatic_punctuation=request.enable_automatic_punctuation,
            enable_word_time_offsets=request.enable_word_time_offsets,
            enable_word_confidence=True,
            diarization_config=diarization_config,
            model=request.model,
            use_enhanced=request.use_enhanced,
        )

    def _segment(self, result) -> RecognitionSegment:
        return RecognitionSegment(
            alternatives=[
                RecognitionAlternative(
                    transcript=alternative.transcript,
                    confidence=alternative.confidence,
                    words=[
                        RecognizedWord(
                            word=word.word,
                            start_time=_seconds(word.start_time),
                            end_time=_seconds(word.end_time),
                            confidence=word.confidence,
                            speaker_tag=word.speaker_tag,
                        )
                        for word in alternative.words
                    ],
                )
                for alternative in result.alternatives
            ]
        )
