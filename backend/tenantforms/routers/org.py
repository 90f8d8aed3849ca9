"""Company workspace router: overview, team management and audit log."""

from typing import List, Optional
from datetime import datetime

from fastapi import APIRouter, BackgroundTasks, Depends, Query
from sqlalchemy.orm import Session

from tenantforms.constants import ROLE_DESCRIPTIONS
from tenantforms.database import get_db
from tenantforms.models.invitation import InvitationStatus
from tenantforms.schemas.audit import AuditLogResponse
from tenantforms.schemas.company import CompanyResponse
from tenantforms.schemas.team import (
    InvitationCreate,
    InvitationResponse,
    MemberSuspend,
    RoleUpdate,
    TeamListResponse,
    TeamMember,
)
from tenantforms.services.access import UserContext, member_guard, owner_guard, Can
from tenantforms.services.analytics import AnalyticsService
from tenantforms.services.audit import AuditService
from tenantforms.services.team import TeamService

router = APIRouter()


@router.get("")
async def get_workspace(
    org_id: int,
    db: Session = Depends(get_db),
    ctx: UserContext = Depends(member_guard)
):
    """Company details, headline numbers and what the caller may do."""
    company = TeamService.get_company(db, org_id)
    return {
        "company": CompanyResponse.model_validate(company),
        "analytics": AnalyticsService.get_company_analytics(db, org_id),
        "permissions": {
            "role": ctx.role,
            "can_manage_team": Can.admin_company(ctx),
            "can_edit_content": Can.edit_content(ctx),
        },
    }


@router.get("/analytics")
async def get_company_analytics(
    org_id: int,
    db: Session = Depends(get_db),
    ctx: UserContext = Depends(member_guard)
):
    return AnalyticsService.get_company_analytics(db, org_id)


@router.get("/roles")
async def list_roles(
    org_id: int,
    ctx: UserContext = Depends(member_guard)
):
    return ROLE_DESCRIPTIONS


@router.get("/team", response_model=TeamListResponse)
async def list_team(
    org_id: int,
    db: Session = Depends(get_db),
    ctx: UserContext = Depends(member_guard)
):
    """Members, pending invitations and per-role counts."""
    return TeamService.list_team(db, org_id)


@router.get("/team/members/{user_id}", response_model=TeamMember)
async def get_member(
    org_id: int,
    user_id: int,
    db: Session = Depends(get_db),
    ctx: UserContext = Depends(member_guard)
):
    return TeamService.get_member_profile(db, org_id, user_id)


@router.patch("/team/members/{user_id}/role", response_model=TeamMember)
async def update_member_role(
    org_id: int,
    user_id: int,
    data: RoleUpdate,
    db: Session = Depends(get_db),
    ctx: UserContext = Depends(owner_guard)
):
    return TeamService.update_role(db, org_id, user_id, data.role, ctx.user)


@router.delete("/team/members/{user_id}")
async def remove_member(
    org_id: int,
    user_id: int,
    db: Session = Depends(get_db),
    ctx: UserContext = Depends(owner_guard)
):
    TeamService.remove_member(db, org_id, user_id, ctx.user)
    return {"message": "Member removed successfully"}


@router.post("/team/members/{user_id}/suspend", response_model=TeamMember)
async def suspend_member(
    org_id: int,
    user_id: int,
    data: MemberSuspend,
    db: Session = Depends(get_db),
    ctx: UserContext = Depends(owner_guard)
):
    return TeamService.suspend_member(db, org_id, user_id, ctx.user, data.reason)


@router.post("/team/members/{user_id}/unsuspend", response_model=TeamMember)
async def unsuspend_member(
    org_id: int,
    user_id: int,
    db: Session = Depends(get_db),
    ctx: UserContext = Depends(owner_guard)
):
    return TeamService.unsuspend_member(db, org_id, user_id, ctx.user)


@router.get("/team/invitations", response_model=List[InvitationResponse])
async def list_invitations(
    org_id: int,
    status_filter: Optional[InvitationStatus] = Query(None, alias="status"),
    db: Session = Depends(get_db),
    ctx: UserContext = Depends(owner_guard)
):
    return TeamService.list_invitations(db, org_id, status_filter)


@router.post("/team/invitations", response_model=InvitationResponse)
async def invite_member(
    org_id: int,
    data: InvitationCreate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    ctx: UserContext = Depends(owner_guard)
):
    """Invite someone to the company by e-mail."""
    return TeamService.invite(db, org_id, ctx.user, data, background_tasks)


@router.post("/team/invitations/{invitation_id}/resend", response_model=InvitationResponse)
async def resend_invitation(
    org_id: int,
    invitation_id: int,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    ctx: UserContext = Depends(owner_guard)
):
    return TeamService.resend_invitation(db, org_id, invitation_id, ctx.user, background_tasks)


@router.post("/team/invitations/{invitation_id}/cancel", response_model=InvitationResponse)
async def cancel_invitation(
    org_id: int,
    invitation_id: int,
    db: Session = Depends(get_db),
    ctx: UserContext = Depends(owner_guard)
):
    return TeamService.cancel_invitation(db, org_id, invitation_id, ctx.user)


@router.get("/audit", response_model=AuditLogResponse)
async def get_audit_log(
    org_id: int,
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=100),
    action: Optional[str] = None,
    user_id: Optional[int] = None,
    from_date: Optional[datetime] = None,
    to_date: Optional[datetime] = None,
    db: Session = Depends(get_db),
    ctx: UserContext = Depends(owner_guard)
):
    """Audit events for this company with optional filters."""
    return AuditService.get_audit_log(
        db, org_id, page, page_size, action, user_id, from_date, to_date
    )


@router.get("/audit/summary")
async def get_activity_summary(
    org_id: int,
    db: Session = Depends(get_db),
    ctx: UserContext = Depends(owner_guard)
):
    return AuditService.get_activity_summary(db, org_id)
