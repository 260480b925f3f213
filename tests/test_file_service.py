"""Tests for FileService with a mocked MinIO client."""
import io
from unittest.mock import MagicMock

import pytest
from minio.error import S3Error
from PIL import Image
from urllib3.exceptions import MaxRetryError

from portal.core.config import settings
from portal.core.exceptions import StorageError, StoredFileNotFoundError, ValidationError
from portal.services.file_service import FileService, public_read_policy


class FakeS3Error(S3Error):
    """S3Error carrying only a code; skips the HTTP response plumbing."""

    def __init__(self, code):
        Exception.__init__(self, code)
        self._fake_code = code

    @property
    def code(self):
        return self._fake_code

    def __str__(self):
        return self._fake_code


def png_bytes(width=500, height=400):
    buffer = io.BytesIO()
    Image.new("RGB", (width, height), color=(200, 30, 30)).save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture
def service(db, minio_client, clock):
    return FileService(db, client=minio_client, clock=clock)


@pytest.fixture
def user(make_user):
    return make_user()


class TestBuckets:
    def test_creates_missing_buckets(self, service, minio_client):
        minio_client.bucket_exists.return_value = False

        service.ensure_buckets()

        made = [call.args[0] for call in minio_client.make_bucket.call_args_list]
        assert made == [settings.AVATAR_BUCKET, settings.DOCUMENT_BUCKET]
        minio_client.set_bucket_policy.assert_called_once_with(
            settings.AVATAR_BUCKET, public_read_policy(settings.AVATAR_BUCKET)
        )

    def test_existing_buckets_untouched(self, service, minio_client):
        minio_client.bucket_exists.return_value = True

        service.ensure_buckets()

        minio_client.make_bucket.assert_not_called()
        minio_client.set_bucket_policy.assert_not_called()

    def test_public_policy_grants_read_only(self):
        policy = public_read_policy("avatars")
        assert '"s3:GetObject"' in policy
        assert "arn:aws:s3:::avatars/*" in policy
        assert "PutObject" not in policy


class TestAvatar:
    def test_upload_avatar_resizes_to_jpeg(self, service, minio_client, user, clock, db):
        url = service.upload_avatar(user.id, png_bytes(), "image/png")

        expected_name = f"{user.id}-{int(clock().timestamp() * 1000)}.jpg"
        assert url == f"/api/files/avatars/{expected_name}"

        args, kwargs = minio_client.put_object.call_args
        assert args[0] == settings.AVATAR_BUCKET
        assert args[1] == expected_name
        assert kwargs["content_type"] == "image/jpeg"
        stored = Image.open(args[2])
        assert stored.format == "JPEG"
        assert stored.size == (300, 300)

        db.refresh(user)
        assert user.avatar_url == url

    def test_upload_avatar_rejects_non_image(self, service, minio_client, user):
        with pytest.raises(ValidationError) as exc_info:
            service.upload_avatar(user.id, b"%PDF-1.4", "application/pdf")
        assert exc_info.value.message == "Only image files are allowed"
        minio_client.put_object.assert_not_called()

    def test_upload_avatar_rejects_oversized(self, service, minio_client, user):
        content = b"\x00" * (settings.MAX_FILE_SIZE + 1)
        with pytest.raises(ValidationError) as exc_info:
            service.upload_avatar(user.id, content, "image/png")
        assert exc_info.value.message == "File size too large"
        minio_client.put_object.assert_not_called()

    def test_upload_avatar_rejects_undecodable_image(self, service, minio_client, user, db):
        with pytest.raises(ValidationError) as exc_info:
            service.upload_avatar(user.id, b"not really a png", "image/png")
        assert exc_info.value.message == "Invalid image file"
        db.refresh(user)
        assert user.avatar_url is None

    def test_upload_failure_keeps_previous_avatar(self, service, minio_client, make_user, db):
        user = make_user(avatar_url="/api/files/avatars/old.jpg")
        minio_client.put_object.side_effect = FakeS3Error("InternalError")

        with pytest.raises(StorageError):
            service.upload_avatar(user.id, png_bytes(), "image/png")

        db.refresh(user)
        assert user.avatar_url == "/api/files/avatars/old.jpg"

    def test_get_avatar(self, service, minio_client):
        minio_client.stat_object.return_value = MagicMock(content_type="image/jpeg")
        response = MagicMock()
        response.read.return_value = b"jpeg-bytes"
        minio_client.get_object.return_value = response

        content, content_type = service.get_avatar("1-123.jpg")

        assert content == b"jpeg-bytes"
        assert content_type == "image/jpeg"
        response.close.assert_called_once()
        response.release_conn.assert_called_once()

    def test_get_missing_avatar(self, service, minio_client):
        minio_client.stat_object.side_effect = FakeS3Error("NoSuchKey")
        with pytest.raises(StoredFileNotFoundError):
            service.get_avatar("nope.jpg")


class TestDocuments:
    def test_upload_document_prefixes_owner(self, service, minio_client, user):
        stored = service.upload_document(user.id, "Contract.PDF", b"%PDF-1.4", "application/pdf")

        assert stored.filename.startswith(f"{user.id}-")
        assert stored.filename.endswith(".pdf")
        assert stored.url == f"/api/files/documents/{stored.filename}"
        args, kwargs = minio_client.put_object.call_args
        assert args[0] == settings.DOCUMENT_BUCKET
        assert kwargs["content_type"] == "application/pdf"

    def test_upload_document_names_are_unique(self, service, user):
        first = service.upload_document(user.id, "a.txt", b"a", "text/plain")
        second = service.upload_document(user.id, "a.txt", b"a", "text/plain")
        assert first.filename != second.filename

    def test_upload_document_at_size_limit(self, service, user):
        content = b"a" * settings.MAX_FILE_SIZE
        assert service.upload_document(user.id, "big.txt", content, "text/plain")

    def test_upload_document_rejects_type(self, service, minio_client, user):
        with pytest.raises(ValidationError) as exc_info:
            service.upload_document(user.id, "run.exe", b"MZ", "application/x-msdownload")
        assert exc_info.value.message == "File type not allowed"
        minio_client.put_object.assert_not_called()

    def test_get_document_of_other_user(self, service, minio_client):
        """User 1 must not reach user 12's files through a shared digit prefix."""
        with pytest.raises(StoredFileNotFoundError):
            service.get_document(1, "12-abc.pdf")
        minio_client.stat_object.assert_not_called()

    def test_get_document_defaults_content_type(self, service, minio_client):
        minio_client.stat_object.return_value = MagicMock(content_type=None)
        minio_client.get_object.return_value = MagicMock(read=MagicMock(return_value=b"x"))

        _, content_type = service.get_document(1, "1-abc.bin")

        assert content_type == "application/octet-stream"

    def test_delete_document(self, service, minio_client):
        service.delete_document(3, "3-abc.pdf")
        minio_client.remove_object.assert_called_once_with(settings.DOCUMENT_BUCKET, "3-abc.pdf")

    def test_delete_missing_document(self, service, minio_client):
        minio_client.stat_object.side_effect = FakeS3Error("NoSuchKey")
        with pytest.raises(StoredFileNotFoundError):
            service.delete_document(3, "3-gone.pdf")
        minio_client.remove_object.assert_not_called()

    def test_storage_failure_is_storage_error(self, service, minio_client):
        minio_client.stat_object.side_effect = FakeS3Error("AccessDenied")
        with pytest.raises(StorageError):
            service.get_document(3, "3-abc.pdf")


class TestUnreachableStorage:
    """Transport failures below S3 surface as StorageError, not raw urllib3 errors."""

    def test_upload_document(self, service, minio_client, user):
        minio_client.put_object.side_effect = MaxRetryError(None, "/", "down")
        with pytest.raises(StorageError):
            service.upload_document(user.id, "a.pdf", b"%PDF", "application/pdf")

    def test_get_document(self, service, minio_client):
        minio_client.stat_object.side_effect = MaxRetryError(None, "/", "down")
        with pytest.raises(StorageError):
            service.get_document(3, "3-abc.pdf")

    def test_read_interrupted(self, service, minio_client):
        response = MagicMock()
        response.read.side_effect = MaxRetryError(None, "/", "down")
        minio_client.get_object.return_value = response

        with pytest.raises(StorageError):
            service.get_avatar("1-1.jpg")
        response.release_conn.assert_called_once()

    def test_delete_document(self, service, minio_client):
        minio_client.remove_object.side_effect = MaxRetryError(None, "/", "down")
        with pytest.raises(StorageError):
            service.delete_document(3, "3-abc.pdf")
