"""Provider-agnostic recognition request and result models."""

import logging
import os

from pydantic import BaseModel, Field

from conversation_pipeline.domain.cost_policy import CostEstimate, RecognitionConfig

logger = logging.getLogger(__name__)

MAX_SAMPLE_RATE = 16000
DEFAULT_ENCODING = "MP3"

_ENCODING_BY_MIME = {
    "audio/wav": "LINEAR16",
    "audio/wave": "LINEAR16",
    "audio/x-wav": "LINEAR16",
    "audio/mp3": "MP3",
    "audio/mpeg": "MP3",
    "audio/m4a": "MP3",
    "audio/flac": "FLAC",
    "audio/webm": "WEBM_OPUS",
    "audio/ogg": "OGG_OPUS",
}

_ENCODING_BY_EXTENSION = {
    "wav": "LINEAR16",
    "flac": "FLAC",
    "mp3": "MP3",
    "m4a": "MP3",
    "mpeg": "MP3",
    "webm": "WEBM_OPUS",
    "ogg": "OGG_OPUS",
}


class AudioLocation(BaseModel, frozen=True):
    """Where the conversation's audio lives in object storage."""

    bucket_name: str
    object_name: str
    scheme: str = "s3"

    @property
    def uri(self) -> str:
        return f"{self.scheme}://{self.bucket_name}/{self.object_name}"


class AudioProperties(BaseModel, frozen=True):
    """Audio facts the recognizer needs alongside the feature config."""

    encoding: str
    sample_rate_hertz: int
    language_code: str = "en-US"


class RecognitionRequest(BaseModel, frozen=True):
    """Everything sent to the provider for one long-running recognition."""

    audio_uri: str
    encoding: str
    sample_rate_hertz: int
    language_code: str
    alternative_language_codes: list[str] = Field(default_factory=list)
    min_speaker_count: int
    max_speaker_count: int
    enable_speaker_diarization: bool
    model: str
    use_enhanced: bool
    enable_word_time_offsets: bool
    enable_automatic_punctuation: bool
    enable_data_logging: bool
    max_alternatives: int = 1

    @classmethod
    def build(
        cls, location: AudioLocation, audio: AudioProperties, config: RecognitionConfig
    ) -> "RecognitionRequest":
        return cls(
            audio_uri=location.uri,
            encoding=audio.encoding,
            sample_rate_hertz=audio.sample_rate_hertz,
            language_code=audio.language_code,
            alternative_language_codes=config.alternative_language_codes[:1],
            min_speaker_count=config.min_speakers,
            max_speaker_count=config.max_speakers,
            enable_speaker_diarization=config.enable_speaker_diarization,
            model=config.model,
            use_enhanced=config.use_enhanced,
            enable_word_time_offsets=config.enable_word_time_offsets,
            enable_automatic_punctuation=config.enable_automatic_punctuation,
            enable_data_logging=config.enable_data_logging,
        )


class RecognizedWord(BaseModel, frozen=True):
    word: str
    start_time: float
    end_time: float
    confidence: float = 0.0
    speaker_tag: int = 0


class RecognitionAlternative(BaseModel, frozen=True):
    transcript: str = ""
    confidence: float = 0.0
    words: list[RecognizedWord] = Field(default_factory=list)


class RecognitionSegment(BaseModel, frozen=True):
    """One provider result block; alternatives are ordered best first."""

    alternatives: list[RecognitionAlternative] = Field(default_factory=list)

    @property
    def best(self) -> RecognitionAlternative | None:
        return self.alternatives[0] if self.alternatives else None


class RecognitionResult(BaseModel, frozen=True):
    """Normalized recognition output with the realized cost."""

    segments: list[RecognitionSegment]
    billed_seconds: float
    cost_estimate: CostEstimate

    @property
    def billed_minutes(self) -> float:
        return self.billed_seconds / 60

    @property
    def word_count(self) -> int:
        return sum(len(s.best.words) for s in self.segments if s.best)


class SpeakerSegment(BaseModel):
    """A maximal run of consecutive words attributed to one speaker tag."""

    speaker_tag: int
    start_time: float
    end_time: float
    confidence: float
    transcript: str
    word_count: int = 1


class DiarizationResult(BaseModel):
    segments: list[SpeakerSegment]
    speaker_count: int
    total_duration: float


def infer_encoding(file_name: str = "", mime_type: str | None = None) -> str:
    """
    Infers the provider encoding from a mime type, then the file extension.

    Unknown formats fall back to MP3.
    """
    if mime_type:
        encoding = _ENCODING_BY_MIME.get(mime_type.strip().lower())
        if encoding:
            return encoding

    extension = os.path.splitext(file_name)[1].lstrip(".").lower() or file_name.lower()
    encoding = _ENCODING_BY_EXTENSION.get(extension)
    if encoding is None:
        logger.warning(
            "Unknown audio format, defaulting encoding",
            extra={
                "file_name": file_name,
                "mime_type": mime_type,
                "encoding": DEFAULT_ENCODING,
            },
        )
        return DEFAULT_ENCODING
    return encoding


def estimate_sample_rate(sample_rate: int | None = None) -> int:
    """Returns the sample rate to request, capped at 16 kHz."""
    estimated = sample_rate or MAX_SAMPLE_RATE
    if estimated > MAX_SAMPLE_RATE:
        logger.info(
            "Sample rate capped",
            extra={"requested": estimated, "capped": MAX_SAMPLE_RATE},
        )
    return min(estimated, MAX_SAMPLE_RATE)
