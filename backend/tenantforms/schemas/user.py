"""User, authentication and profile Pydantic schemas."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, EmailStr, Field

from tenantforms.models.user import MemberRole


class UserCreate(BaseModel):
    """Schema for sign-up (onboarding step 1)."""
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=100)
    full_name: str = Field(..., min_length=2, max_length=255)


class UserLogin(BaseModel):
    """Schema for user login."""
    email: EmailStr
    password: str = Field(..., min_length=1, max_length=100)


class UserResponse(BaseModel):
    """Schema for user responses."""
    id: int
    email: str
    full_name: str
    phone: Optional[str] = None
    bio: Optional[str] = None
    job_title: Optional[str] = None
    avatar_file_id: Optional[int] = None
    company_id: Optional[int] = None
    role: Optional[MemberRole] = None
    is_superadmin: bool
    is_active: bool
    suspended: bool
    created_at: datetime

    class Config:
        from_attributes = True


class Token(BaseModel):
    """Schema for JWT token response."""
    access_token: str
    token_type: str = "bearer"
    user: UserResponse


class TokenData(BaseModel):
    """Schema for decoded token data."""
    user_id: Optional[int] = None


class PasswordChange(BaseModel):
    """Schema for changing the current user's password."""
    current_password: str
    new_password: str = Field(..., min_length=8, max_length=100)


class ForgotPasswordRequest(BaseModel):
    """Schema for requesting a password reset link."""
    email: EmailStr


class PasswordReset(BaseModel):
    """Schema for choosing a new password with a reset token."""
    token: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=8, max_length=100)


class ProfileUpdate(BaseModel):
    """Schema for updating the current user's profile."""
    full_name: Optional[str] = Field(None, min_length=2, max_length=255)
    job_title: Optional[str] = None
    phone: Optional[str] = Field(None, max_length=50)
    bio: Optional[str] = Field(None, max_length=500)
    avatar_file_id: Optional[int] = None
