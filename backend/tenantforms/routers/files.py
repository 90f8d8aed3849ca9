"""File upload and download router."""

from datetime import datetime

from fastapi import APIRouter, Depends, UploadFile, File
from fastapi.responses import FileResponse
from pydantic import BaseModel
from sqlalchemy.orm import Session

from tenantforms.constants import DOCUMENTS_BUCKET, IMAGES_BUCKET
from tenantforms.database import get_db
from tenantforms.models.user import User
from tenantforms.services.auth import get_current_active_user
from tenantforms.services.files import FileService

router = APIRouter()


class StoredFileResponse(BaseModel):
    id: int
    bucket: str
    original_name: str
    content_type: str
    size: int
    created_at: datetime

    class Config:
        from_attributes = True


@router.post("/documents", response_model=StoredFileResponse)
async def upload_document(
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    """Upload a PDF, image or Word document."""
    return await FileService.upload(db, current_user, DOCUMENTS_BUCKET, file)


@router.post("/images", response_model=StoredFileResponse)
async def upload_image(
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    """Upload a PNG, JPEG, GIF or WebP image."""
    return await FileService.upload(db, current_user, IMAGES_BUCKET, file)


@router.get("/{file_id}", response_model=StoredFileResponse)
async def get_file_info(
    file_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    return FileService.get_for_download(db, file_id, current_user)


@router.get("/{file_id}/download")
async def download_file(
    file_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    stored = FileService.get_for_download(db, file_id, current_user)
    return FileResponse(
        stored.stored_path,
        media_type=stored.content_type,
        filename=stored.original_name
    )


@router.delete("/{file_id}")
async def delete_file(
    file_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    FileService.delete(db, file_id, current_user)
    return {"message": "File deleted successfully"}
