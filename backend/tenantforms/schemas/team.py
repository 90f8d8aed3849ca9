"""Team membership and invitation Pydantic schemas."""

from datetime import datetime
from typing import Optional, List, Dict

from pydantic import BaseModel, EmailStr, Field

from tenantforms.models.user import MemberRole
from tenantforms.models.invitation import InvitationStatus


class InvitationCreate(BaseModel):
    """Schema for inviting a team member."""
    email: EmailStr
    name: str = Field(..., min_length=2, max_length=255)
    role: MemberRole = MemberRole.VIEWER


class InvitationAccept(BaseModel):
    """Schema for accepting an invitation and creating the account."""
    token: str = Field(..., min_length=1)
    name: str = Field(..., min_length=2, max_length=255)
    password: str = Field(..., min_length=8, max_length=100)


class RoleUpdate(BaseModel):
    """Schema for changing a member's role."""
    role: MemberRole


class MemberSuspend(BaseModel):
    """Schema for suspending a member."""
    reason: Optional[str] = None


class InvitationResponse(BaseModel):
    """Schema for invitation responses."""
    id: int
    email: str
    name: str
    role: MemberRole
    company_id: int
    invited_by_id: int
    inviter_name: str
    expires_at: datetime
    status: InvitationStatus
    created_at: datetime

    class Config:
        from_attributes = True


class InvitationPreview(BaseModel):
    """What an invitee sees before accepting."""
    email: str
    name: str
    role: MemberRole
    company_name: Optional[str]
    inviter_name: str
    expires_at: datetime
    status: InvitationStatus
    is_expired: bool


class TeamMember(BaseModel):
    """A confirmed member of a company."""
    id: int
    email: str
    full_name: str
    role: Optional[MemberRole]
    job_title: Optional[str] = None
    avatar_file_id: Optional[int] = None
    suspended: bool
    suspended_at: Optional[datetime] = None
    created_at: datetime

    class Config:
        from_attributes = True


class TeamListResponse(BaseModel):
    """Members, pending invitations and per-role counts."""
    active_members: List[TeamMember]
    pending_members: List[InvitationResponse]
    total: int
    stats: Dict[str, int]
