"""MinIO implementation of the StorageClient interface."""

from minio import Minio
from minio.error import S3Error

from conversation_pipeline.domain.recognition import AudioLocation
from conversation_pipeline.exceptions import StorageDownloadError
from conversation_pipeline.infrastructure.interfaces import StorageClient
from conversation_pipeline.logging import setup_logging

logger = setup_logging()

AUDIO_OBJECT_TEMPLATE = "conversations/{conversation_id}/audio/original.{audio_format}"


def audio_object_name(conversation_id: str, audio_format: str) -> str:
    return AUDIO_OBJECT_TEMPLATE.format(
        conversation_id=conversation_id, audio_format=audio_format
    )


class MinioStorageClient(StorageClient):
    """Handles file storage operations using MinIO."""

    def __init__(self, client: Minio, bucket_name: str):
        self._client = client
        self._bucket_name = bucket_name

    def get_audio_location(
        self, conversation_id: str, audio_format: str
    ) -> AudioLocation | None:
        object_name = audio_object_name(conversation_id, audio_format)
        try:
            self._client.stat_object(self._bucket_name, object_name)
        except S3Error as e:
            if e.code in ("NoSuchKey", "NoSuchObject", "NoSuchBucket"):
                logger.warning(
                    "Audio object not found",
                    extra={
                        "conversation_id": conversation_id,
                        "bucket_name": self._bucket_name,
                        "object_name": object_name,
                    },
                )
                return None
            logger.exception(
                "MinIO stat failed",
                extra={"bucket_name": self._bucket_name, "object_name": object_name},
            )
            raise StorageDownloadError(object_name, e) from e

        return AudioLocation(bucket_name=self._bucket_name, object_name=object_name)

    def download(self, bucket_name: str, object_name: str) -> bytes:
        try:
            response = self._client.get_object(bucket_name, object_name)
            data = response.data
            response.close()
            response.release_conn()
            logger.info(
                "File downloaded from MinIO",
                extra={"bucket_name": bucket_name, "object_name": object_name},
            )
            return data
        except Exception as e:
            logger.exception(
                "MinIO download failed",
                extra={"bucket_name": bucket_name, "object_name": object_name},
            )
            raise StorageDownloadError(object_name, e) from e

    def ensure_bucket_exists(self, bucket_name: str) -> None:
        if not self._client.bucket_exists(bucket_name):
            self._client.make_bucket(bucket_name)
            logger.info("Bucket created", extra={"bucket_name": bucket_name})
        else:
            logger.info("Bucket already exists", extra={"bucket_name": bucket_name})
