"""Abstract interface for speech recognition providers."""

from abc import ABC, abstractmethod

from conversation_pipeline.domain.cost_policy import RecognitionConfig
from conversation_pipeline.domain.recognition import (
    AudioLocation,
    AudioProperties,
    RecognitionResult,
)


class RecognitionGateway(ABC):
    """Runs one long-running recognition and normalizes its response."""

    @abstractmethod
    def recognize(
        self,
        location: AudioLocation,
        audio: AudioProperties,
        config: RecognitionConfig,
        monthly_usage_minutes: float = 0.0,
    ) -> RecognitionResult:
        """
        Transcribes stored audio with speaker diarization.

        Args:
            location: Where the audio is stored.
            audio: Encoding, sample rate and language.
            config: Feature set resolved by the cost policy.
            monthly_usage_minutes: Minutes already billed this month, used
                to price the realized cost.

        Returns:
            RecognitionResult with word-level speaker tags and realized cost.

        Raises:
            RecognitionUnavailableError: If the provider fails or times out.
            NoSpeechDetectedError: If no words were recognized.
        """
