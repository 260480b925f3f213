"""Files API router — avatar upload/serve and owner-scoped documents."""

from fastapi import APIRouter, Depends, File, UploadFile, status
from fastapi.responses import Response

from portal.api.dependencies import get_current_user, get_file_service
from portal.core.exceptions import ValidationError
from portal.models.user import User
from portal.schemas.schemas import AvatarUploadResponse, DocumentUploadResponse, SuccessResponse
from portal.services.file_service import FileService

router = APIRouter(prefix="/files", tags=["files"])


async def read_upload(upload: UploadFile) -> bytes:
    content = await upload.read()
    if not content:
        raise ValidationError("No file uploaded")
    return content


@router.get("/avatars/{filename}")
async def get_avatar(filename: str, files: FileService = Depends(get_file_service)):
    """Serve an avatar image. Public."""
    content, content_type = files.get_avatar(filename)
    return Response(content=content, media_type=content_type)


@router.post("/avatar", response_model=AvatarUploadResponse)
async def upload_avatar(
    file: UploadFile = File(...),
    current_user: User = Depends(get_current_user),
    files: FileService = Depends(get_file_service),
):
    """Upload and attach a new avatar for the caller."""
    content = await read_upload(file)
    avatar_url = files.upload_avatar(current_user.id, content, file.content_type)
    return AvatarUploadResponse(message="Avatar uploaded successfully", avatar_url=avatar_url)


@router.post("/documents", response_model=DocumentUploadResponse, status_code=status.HTTP_201_CREATED)
async def upload_document(
    file: UploadFile = File(...),
    current_user: User = Depends(get_current_user),
    files: FileService = Depends(get_file_service),
):
    """Store a private document for the caller."""
    content = await read_upload(file)
    stored = files.upload_document(current_user.id, file.filename, content, file.content_type)
    return DocumentUploadResponse(
        message="Document uploaded successfully",
        filename=stored.filename,
        document_url=stored.url,
    )


@router.get("/documents/{filename}")
async def get_document(
    filename: str,
    current_user: User = Depends(get_current_user),
    files: FileService = Depends(get_file_service),
):
    """Download one of the caller's documents."""
    content, content_type = files.get_document(current_user.id, filename)
    return Response(content=content, media_type=content_type)


@router.delete("/documents/{filename}", response_model=SuccessResponse)
async def delete_document(
    filename: str,
    current_user: User = Depends(get_current_user),
    files: FileService = Depends(get_file_service),
):
    files.delete_document(current_user.id, filename)
    return SuccessResponse(success=True)
