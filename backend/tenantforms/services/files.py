"""File storage service for uploaded documents and images."""

import os
import re
import logging
from datetime import datetime

from sqlalchemy.orm import Session
from fastapi import UploadFile, HTTPException, status

from tenantforms.config import get_settings
from tenantforms.constants import ALLOWED_CONTENT_TYPES
from tenantforms.errors import ServiceError
from tenantforms.models.file import StoredFile
from tenantforms.models.user import User

logger = logging.getLogger(__name__)

CHUNK_SIZE = 1024 * 1024


def bucket_dir(bucket: str) -> str:
    return os.path.join(get_settings().upload_dir, bucket)


async def read_upload(file: UploadFile, max_size: int) -> bytes:
    """Read an upload in chunks, refusing it as soon as it passes ``max_size`` bytes."""
    chunks = []
    size = 0
    while True:
        chunk = await file.read(CHUNK_SIZE)
        if not chunk:
            break
        size += len(chunk)
        if size > max_size:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"File is too large. Maximum size is {max_size // (1024 * 1024)}MB"
            )
        chunks.append(chunk)
    return b"".join(chunks)


class FileService:
    """Service for stored file operations."""

    @staticmethod
    async def upload(db: Session, user: User, bucket: str, file: UploadFile) -> StoredFile:
        """Validate and save an upload under ``upload_dir/<bucket>/``."""
        settings = get_settings()

        if bucket not in ALLOWED_CONTENT_TYPES:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Unknown bucket: {bucket}"
            )
        if file.content_type not in ALLOWED_CONTENT_TYPES[bucket]:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"File type {file.content_type} is not allowed"
            )

        content = await read_upload(file, settings.max_upload_size)
        if not content:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="File is empty"
            )

        # Generate unique filename
        timestamp = datetime.utcnow().strftime("%Y%m%d_%H%M%S_%f")
        safe_filename = re.sub(r'[^a-zA-Z0-9._-]', '_', file.filename or "upload")
        stored_filename = f"{user.id}_{timestamp}_{safe_filename}"
        directory = bucket_dir(bucket)
        file_path = os.path.join(directory, stored_filename)

        try:
            os.makedirs(directory, exist_ok=True)
            with open(file_path, "wb") as buffer:
                buffer.write(content)
        except OSError as exc:
            logger.error("Could not write %s: %s", file_path, exc)
            raise ServiceError("Could not store the uploaded file", "STORAGE_ERROR", 503) from exc

        stored = StoredFile(
            owner_id=user.id,
            company_id=user.company_id,
            bucket=bucket,
            original_name=file.filename or stored_filename,
            stored_path=file_path,
            content_type=file.content_type,
            size=len(content),
        )
        db.add(stored)
        db.commit()
        db.refresh(stored)
        logger.info("Stored %s (%s bytes) in %s for user %s", stored.id, stored.size, bucket, user.id)
        return stored

    @staticmethod
    def get_file(db: Session, file_id: int) -> StoredFile:
        stored = db.get(StoredFile, file_id)
        if not stored:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="File not found"
            )
        return stored

    @staticmethod
    def can_read(user: User, stored: StoredFile) -> bool:
        if user.is_superadmin or stored.owner_id == user.id:
            return True
        return stored.company_id is not None and stored.company_id == user.company_id

    @staticmethod
    def get_for_download(db: Session, file_id: int, user: User) -> StoredFile:
        """Owner, same-company members and super admins may download."""
        stored = FileService.get_file(db, file_id)
        if not FileService.can_read(user, stored):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Not authorized to access this file"
            )
        if not os.path.exists(stored.stored_path):
            logger.error("File %s is missing on disk at %s", stored.id, stored.stored_path)
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="File not found"
            )
        return stored

    @staticmethod
    def delete(db: Session, file_id: int, user: User) -> None:
        stored = FileService.get_file(db, file_id)
        if stored.owner_id != user.id and not user.is_superadmin:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Not authorized to delete this file"
            )
        if os.path.exists(stored.stored_path):
            os.remove(stored.stored_path)
        db.delete(stored)
        db.commit()

