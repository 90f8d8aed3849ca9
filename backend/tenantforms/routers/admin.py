"""Super admin router: company applications and platform audit log."""

from typing import List, Optional
from datetime import datetime

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, status, Query
from sqlalchemy.orm import Session

from tenantforms.database import get_db
from tenantforms.models.company import CompanyStatus
from tenantforms.schemas.audit import AuditLogResponse
from tenantforms.schemas.company import (
    BulkActionResponse,
    BulkCompanyAction,
    CompanyListResponse,
    CompanyResponse,
    CompanyUpdate,
    RejectCompany,
    SuspendCompany,
)
from tenantforms.schemas.team import TeamMember
from tenantforms.services.access import UserContext, admin_guard
from tenantforms.services.audit import AuditService
from tenantforms.services.company import CompanyService

router = APIRouter()


@router.get("/stats")
async def get_dashboard_stats(
    db: Session = Depends(get_db),
    ctx: UserContext = Depends(admin_guard)
):
    stats = CompanyService.get_dashboard_stats(db)
    stats["recent_applications"] = [
        CompanyResponse.model_validate(c) for c in stats["recent_applications"]
    ]
    return stats


@router.get("/companies", response_model=CompanyListResponse)
async def list_companies(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    status_filter: Optional[CompanyStatus] = Query(None, alias="status"),
    industry: Optional[str] = None,
    search: Optional[str] = None,
    db: Session = Depends(get_db),
    ctx: UserContext = Depends(admin_guard)
):
    """List companies with filters."""
    return CompanyService.list_companies(db, page, limit, status_filter, industry, search)


@router.post("/companies/bulk/approve", response_model=BulkActionResponse)
async def bulk_approve(
    data: BulkCompanyAction,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    ctx: UserContext = Depends(admin_guard)
):
    return CompanyService.bulk_approve(db, data.company_ids, ctx.user, background_tasks)


@router.post("/companies/bulk/reject", response_model=BulkActionResponse)
async def bulk_reject(
    data: BulkCompanyAction,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    ctx: UserContext = Depends(admin_guard)
):
    if not data.reason or not data.reason.strip():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="A rejection reason is required"
        )
    return CompanyService.bulk_reject(db, data.company_ids, ctx.user, data.reason, background_tasks)


@router.get("/companies/{company_id}", response_model=CompanyResponse)
async def get_company(
    company_id: int,
    db: Session = Depends(get_db),
    ctx: UserContext = Depends(admin_guard)
):
    return CompanyService.get_company(db, company_id)


@router.get("/companies/{company_id}/members", response_model=List[TeamMember])
async def get_company_members(
    company_id: int,
    db: Session = Depends(get_db),
    ctx: UserContext = Depends(admin_guard)
):
    CompanyService.get_company(db, company_id)
    return CompanyService.get_members(db, company_id)


@router.patch("/companies/{company_id}", response_model=CompanyResponse)
async def update_company(
    company_id: int,
    data: CompanyUpdate,
    db: Session = Depends(get_db),
    ctx: UserContext = Depends(admin_guard)
):
    return CompanyService.update_company(db, company_id, ctx.user, data)


@router.post("/companies/{company_id}/approve", response_model=CompanyResponse)
async def approve_company(
    company_id: int,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    ctx: UserContext = Depends(admin_guard)
):
    return CompanyService.approve(db, company_id, ctx.user, background_tasks)


@router.post("/companies/{company_id}/reject", response_model=CompanyResponse)
async def reject_company(
    company_id: int,
    data: RejectCompany,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    ctx: UserContext = Depends(admin_guard)
):
    return CompanyService.reject(db, company_id, ctx.user, data.reason, background_tasks)


@router.post("/companies/{company_id}/suspend", response_model=CompanyResponse)
async def suspend_company(
    company_id: int,
    data: SuspendCompany,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    ctx: UserContext = Depends(admin_guard)
):
    return CompanyService.suspend(db, company_id, ctx.user, data.reason, background_tasks)


@router.post("/companies/{company_id}/activate", response_model=CompanyResponse)
async def activate_company(
    company_id: int,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    ctx: UserContext = Depends(admin_guard)
):
    return CompanyService.activate(db, company_id, ctx.user, background_tasks)


@router.post("/companies/{company_id}/notifications/{notification_type}")
async def resend_notification(
    company_id: int,
    notification_type: str,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    ctx: UserContext = Depends(admin_guard)
):
    """Send the status e-mail for ``notification_type`` again."""
    CompanyService.resend_notification(db, company_id, notification_type, background_tasks)
    return {"message": "Notification sent"}


@router.delete("/companies/{company_id}")
async def delete_company(
    company_id: int,
    db: Session = Depends(get_db),
    ctx: UserContext = Depends(admin_guard)
):
    CompanyService.delete_company(db, company_id, ctx.user)
    return {"message": "Company deleted successfully"}


@router.get("/audit", response_model=AuditLogResponse)
async def get_platform_audit_log(
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=100),
    company_id: Optional[int] = None,
    action: Optional[str] = None,
    user_id: Optional[int] = None,
    from_date: Optional[datetime] = None,
    to_date: Optional[datetime] = None,
    db: Session = Depends(get_db),
    ctx: UserContext = Depends(admin_guard)
):
    """Audit events across all companies."""
    return AuditService.get_audit_log(
        db, company_id, page, page_size, action, user_id, from_date, to_date
    )
