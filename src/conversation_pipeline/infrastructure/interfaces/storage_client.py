"""Abstract interface for audio object storage."""

from abc import ABC, abstractmethod

from conversation_pipeline.domain.recognition import AudioLocation


class StorageClient(ABC):
    """Abstract base class for file storage backends."""

    @abstractmethod
    def get_audio_location(
        self, conversation_id: str, audio_format: str
    ) -> AudioLocation | None:
        """
        Resolves where a conversation's original audio is stored.

        Args:
            conversation_id: The conversation identifier.
            audio_format: File extension the audio was stored with.

        Returns:
            The audio location, or None when no object exists.
        """

    @abstractmethod
    def download(self, bucket_name: str, object_name: str) -> bytes:
        """
        Downloads a file from storage.

        Args:
            bucket_name: The storage bucket name.
            object_name: The object path/name in storage.

        Returns:
            The file contents as bytes.

        Raises:
            StorageDownloadError: If the download fails.
        """

    @abstractmethod
    def ensure_bucket_exists(self, bucket_name: str) -> None:
        """
        Ensures a bucket exists, creating it if necessary.

        Args:
            bucket_name: The bucket name to ensure exists.
        """
