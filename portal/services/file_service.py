"""File service — avatar and document storage in MinIO."""

import io
import json
import logging
import os
import uuid
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional, Tuple

from minio import Minio
from minio.error import S3Error
from PIL import Image, ImageOps, UnidentifiedImageError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from urllib3.exceptions import HTTPError

from portal.core.clock import Clock, utc_now
from portal.core.config import settings
from portal.core.exceptions import StorageError, StoredFileNotFoundError, UserNotFoundError, ValidationError
from portal.models.user import User

logger = logging.getLogger(__name__)

MISSING_OBJECT_CODES = {"NoSuchKey", "NoSuchObject", "NoSuchBucket", "ResourceNotFound"}


@lru_cache
def get_minio_client() -> Minio:
    """Process-wide MinIO client; the client itself is thread-safe."""
    return Minio(
        settings.MINIO_ENDPOINT,
        access_key=settings.MINIO_ACCESS_KEY,
        secret_key=settings.MINIO_SECRET_KEY,
        secure=settings.MINIO_SECURE,
    )


def public_read_policy(bucket: str) -> str:
    return json.dumps({
        "Version": "2012-10-17",
        "Statement": [
            {
                "Effect": "Allow",
                "Principal": {"AWS": ["*"]},
                "Action": ["s3:GetObject"],
                "Resource": [f"arn:aws:s3:::{bucket}/*"],
            }
        ],
    })


@dataclass
class StoredDocument:
    filename: str
    url: str


class FileService:
    """Stores uploads in MinIO and records avatar URLs on the user.

    Uploads are buffered in memory; the size limit is enforced before any
    image processing or storage call.
    """

    def __init__(self, db: Session, client: Optional[Minio] = None, clock: Clock = utc_now):
        self.db = db
        self.client = client or get_minio_client()
        self.clock = clock
        self.avatar_bucket = settings.AVATAR_BUCKET
        self.document_bucket = settings.DOCUMENT_BUCKET

    def ensure_buckets(self) -> None:
        """Create the avatar and document buckets if they don't exist.

        Avatars are world-readable; documents stay private.
        """
        for bucket in (self.avatar_bucket, self.document_bucket):
            if not self.client.bucket_exists(bucket):
                self.client.make_bucket(bucket)
                if bucket == self.avatar_bucket:
                    self.client.set_bucket_policy(bucket, public_read_policy(bucket))
                logger.info("Created bucket %s", bucket)

    def upload_avatar(self, user_id: int, content: bytes, content_type: Optional[str]) -> str:
        """Resize, store and attach a new avatar. Returns its URL.

        Raises:
            ValidationError: Wrong content type, oversized or undecodable image.
        """
        if content_type not in settings.ALLOWED_FILE_TYPES:
            raise ValidationError("Only image files are allowed")
        self._check_size(content)

        user = self.db.query(User).filter(User.id == user_id).first()
        if not user:
            raise UserNotFoundError()

        processed = self._resize_avatar(content)
        timestamp_ms = int(self.clock().timestamp() * 1000)
        object_name = f"{user_id}-{timestamp_ms}.jpg"
        self._put(self.avatar_bucket, object_name, processed, "image/jpeg")

        avatar_url = f"/api/files/avatars/{object_name}"
        user.avatar_url = avatar_url
        try:
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise
        logger.info("Avatar %s stored for user %s", object_name, user_id)
        return avatar_url

    def upload_document(
        self,
        user_id: int,
        filename: Optional[str],
        content: bytes,
        content_type: Optional[str],
    ) -> StoredDocument:
        """Store a document under a name prefixed with the owner's id."""
        if content_type not in settings.ALLOWED_DOCUMENT_TYPES:
            raise ValidationError("File type not allowed")
        self._check_size(content)

        ext = os.path.splitext(filename or "")[1].lower()
        object_name = f"{user_id}-{uuid.uuid4().hex}{ext}"
        self._put(self.document_bucket, object_name, content, content_type)
        logger.info("Document %s stored for user %s", object_name, user_id)
        return StoredDocument(filename=object_name, url=f"/api/files/documents/{object_name}")

    def get_avatar(self, filename: str) -> Tuple[bytes, str]:
        return self.get_file(self.avatar_bucket, filename, default_type="image/jpeg")

    def get_document(self, user_id: int, filename: str) -> Tuple[bytes, str]:
        """Fetch a document owned by ``user_id``; anything else is a 404."""
        self._check_owner(user_id, filename)
        return self.get_file(self.document_bucket, filename)

    def delete_document(self, user_id: int, filename: str) -> None:
        self._check_owner(user_id, filename)
        try:
            self.client.stat_object(self.document_bucket, filename)
            self.client.remove_object(self.document_bucket, filename)
        except S3Error as e:
            raise self._translate(e, "delete") from e
        except HTTPError as e:
            raise StorageError(f"MinIO unreachable: {e}") from e
        logger.info("Document %s deleted by user %s", filename, user_id)

    def get_file(
        self, bucket: str, filename: str, default_type: str = "application/octet-stream"
    ) -> Tuple[bytes, str]:
        """Read a whole object into memory. Returns ``(content, content_type)``."""
        try:
            stat = self.client.stat_object(bucket, filename)
            response = self.client.get_object(bucket, filename)
        except S3Error as e:
            raise self._translate(e, "read") from e
        except HTTPError as e:
            raise StorageError(f"MinIO unreachable: {e}") from e
        try:
            data = response.read()
        except HTTPError as e:
            raise StorageError(f"Failed to read MinIO object: {e}") from e
        finally:
            response.close()
            response.release_conn()
        return data, stat.content_type or default_type

    def _resize_avatar(self, content: bytes) -> bytes:
        size = (settings.AVATAR_SIZE, settings.AVATAR_SIZE)
        try:
            with Image.open(io.BytesIO(content)) as image:
                fitted = ImageOps.fit(image.convert("RGB"), size, Image.Resampling.LANCZOS)
        except (UnidentifiedImageError, OSError) as e:
            raise ValidationError("Invalid image file") from e

        output = io.BytesIO()
        fitted.save(output, format="JPEG", quality=settings.AVATAR_JPEG_QUALITY)
        return output.getvalue()

    def _put(self, bucket: str, object_name: str, content: bytes, content_type: str) -> None:
        try:
            self.client.put_object(
                bucket,
                object_name,
                io.BytesIO(content),
                len(content),
                content_type=content_type,
            )
        except S3Error as e:
            raise StorageError(f"Failed to upload to MinIO: {e}") from e
        except HTTPError as e:
            raise StorageError(f"MinIO unreachable: {e}") from e

    @staticmethod
    def _check_size(content: bytes) -> None:
        if len(content) > settings.MAX_FILE_SIZE:
            raise ValidationError("File size too large")

    @staticmethod
    def _check_owner(user_id: int, filename: str) -> None:
        if not filename.startswith(f"{user_id}-"):
            raise StoredFileNotFoundError()

    @staticmethod
    def _translate(error: S3Error, action: str) -> Exception:
        if error.code in MISSING_OBJECT_CODES:
            return StoredFileNotFoundError()
        return StorageError(f"Failed to {action} MinIO object: {error}")
