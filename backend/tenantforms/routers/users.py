"""User profile router."""

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from tenantforms.constants import JOB_TITLES, is_valid_job_title
from tenantforms.database import get_db
from tenantforms.models.file import StoredFile
from tenantforms.models.user import User
from tenantforms.schemas.user import UserResponse, ProfileUpdate
from tenantforms.services.auth import get_current_active_user

router = APIRouter()


@router.get("/job-titles")
async def list_job_titles():
    return JOB_TITLES


@router.get("/profile", response_model=UserResponse)
async def get_profile(
    current_user: User = Depends(get_current_active_user)
):
    return current_user


@router.put("/profile", response_model=UserResponse)
async def update_profile(
    data: ProfileUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    """Update the current user's own profile."""
    changes = data.model_dump(exclude_unset=True)

    if changes.get("job_title") and not is_valid_job_title(changes["job_title"]):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid job title"
        )
    if changes.get("avatar_file_id") is not None:
        avatar = db.get(StoredFile, changes["avatar_file_id"])
        if avatar is None or avatar.owner_id != current_user.id:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"File {changes['avatar_file_id']} not found"
            )

    for key, value in changes.items():
        setattr(current_user, key, value)
    db.commit()
    db.refresh(current_user)
    return current_user


@router.get("/{user_id}/profile", response_model=UserResponse)
async def get_member_profile(
    user_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    """View another user's profile. Limited to the same company unless super admin."""
    user = db.get(User, user_id)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found"
        )
    same_company = current_user.company_id is not None and user.company_id == current_user.company_id
    if user.id != current_user.id and not same_company and not current_user.is_superadmin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not authorized to view this profile"
        )
    return user
