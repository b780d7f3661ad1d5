"""Custom exceptions for the conversation processing pipeline."""


class ConversationNotFoundError(Exception):
    """Raised when a conversation record does not exist."""

    def __init__(self, conversation_id: str):
        self.conversation_id = conversation_id
        super().__init__(f"Conversation not found: {conversation_id}")


class AudioNotFoundError(Exception):
    """Raised when no stored audio can be resolved for a conversation."""

    def __init__(self, conversation_id: str):
        self.conversation_id = conversation_id
        super().__init__(f"Audio file not found for conversation: {conversation_id}")


class RecognitionUnavailableError(Exception):
    """Raised when the recognition provider is unreachable, errors or times out."""

    retryable = True

    def __init__(self, audio_uri: str, cause: Exception | None = None):
        self.audio_uri = audio_uri
        self.cause = cause
        detail = f": {cause}" if cause else ""
        super().__init__(f"Speech recognition unavailable for '{audio_uri}'{detail}")


class NoSpeechDetectedError(Exception):
    """Raised when recognition returns no words for the audio."""

    retryable = False

    def __init__(self, audio_uri: str):
        self.audio_uri = audio_uri
        super().__init__(f"No speech content detected in '{audio_uri}'")


class NoSpeakerSegmentsError(Exception):
    """Raised when diarization cannot attribute any words to a speaker."""

    retryable = False

    def __init__(self, result_count: int):
        self.result_count = result_count
        super().__init__(
            f"No speaker segments detected across {result_count} recognition results"
        )


class NoTierAvailableError(Exception):
    """Raised when no cost tier satisfies the requested constraints."""

    def __init__(self, min_speakers: int, privacy_required: bool):
        self.min_speakers = min_speakers
        self.privacy_required = privacy_required
        super().__init__(
            "No tier matches the specified requirements "
            f"(min_speakers={min_speakers}, privacy_required={privacy_required})"
        )


class CostLimitExceededError(Exception):
    """Raised when the monthly recognition budget is already exhausted."""

    def __init__(self, monthly_cost: float, monthly_limit: float):
        self.monthly_cost = monthly_cost
        self.monthly_limit = monthly_limit
        super().__init__(
            f"Monthly cost limit exceeded: {monthly_cost:.2f}/{monthly_limit:.2f}"
        )


class StorageDownloadError(Exception):
    """Raised when downloading a file from storage fails."""

    def __init__(self, object_name: str, cause: Exception | None = None):
        self.object_name = object_name
        self.cause = cause
        super().__init__(f"Failed to download '{object_name}' from storage")


class ConversationPersistenceError(Exception):
    """Raised when reading or writing a conversation record fails."""

    def __init__(self, conversation_id: str, cause: Exception | None = None):
        self.conversation_id = conversation_id
        self.cause = cause
        super().__init__(f"Failed to persist conversation '{conversation_id}'")


class EventPublishError(Exception):
    """Raised when publishing an event to the message broker fails."""

    def __init__(self, routing_key: str, cause: Exception | None = None):
        self.routing_key = routing_key
        self.cause = cause
        super().__init__(f"Failed to publish event with routing key '{routing_key}'")


class UsageCounterError(Exception):
    """Raised when the shared usage counter cannot be read or updated."""

    def __init__(self, key: str, operation: str, cause: Exception | None = None):
        self.key = key
        self.operation = operation
        self.cause = cause
        super().__init__(f"Usage counter {operation} failed for key '{key}'")
