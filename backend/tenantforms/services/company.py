"""Company administration service for super admins."""

import logging
from datetime import datetime
from typing import Optional, List, Dict, Any

from sqlalchemy import func
from sqlalchemy.orm import Session
from fastapi import BackgroundTasks, HTTPException, status

from tenantforms.models.company import Company, CompanyStatus
from tenantforms.models.file import StoredFile
from tenantforms.models.user import User, MemberRole
from tenantforms.schemas.company import CompanyUpdate
from tenantforms.services.audit import AuditService
from tenantforms.services.email import email_service

logger = logging.getLogger(__name__)

NOTIFICATION_TYPES = ["approved", "rejected", "suspended", "activated"]


class CompanyService:
    """Service for super admin company operations."""

    # Valid status transitions
    TRANSITIONS = {
        CompanyStatus.DRAFT: [],
        CompanyStatus.PENDING: [CompanyStatus.ACTIVE, CompanyStatus.REJECTED],
        CompanyStatus.ACTIVE: [CompanyStatus.SUSPENDED],
        CompanyStatus.SUSPENDED: [CompanyStatus.ACTIVE],
        CompanyStatus.REJECTED: [],
    }

    @staticmethod
    def can_transition(current: CompanyStatus, target: CompanyStatus) -> bool:
        return target in CompanyService.TRANSITIONS.get(current, [])

    @staticmethod
    def get_company(db: Session, company_id: int) -> Company:
        company = db.get(Company, company_id)
        if not company:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Company not found"
            )
        return company

    @staticmethod
    def get_dashboard_stats(db: Session) -> Dict[str, Any]:
        counts = dict(
            db.query(Company.status, func.count(Company.id)).group_by(Company.status).all()
        )
        recent = db.query(Company).filter(
            Company.status == CompanyStatus.PENDING
        ).order_by(Company.submitted_at.desc(), Company.id.desc()).limit(5).all()

        return {
            "total_companies": sum(counts.values()),
            "active_companies": counts.get(CompanyStatus.ACTIVE, 0),
            "pending_applications": counts.get(CompanyStatus.PENDING, 0),
            "suspended_companies": counts.get(CompanyStatus.SUSPENDED, 0),
            "rejected_companies": counts.get(CompanyStatus.REJECTED, 0),
            "draft_companies": counts.get(CompanyStatus.DRAFT, 0),
            "total_users": db.query(func.count(User.id)).scalar(),
            "recent_applications": recent,
        }

    @staticmethod
    def list_companies(
        db: Session,
        page: int = 1,
        limit: int = 10,
        status_filter: Optional[CompanyStatus] = None,
        industry: Optional[str] = None,
        search: Optional[str] = None
    ) -> Dict[str, Any]:
        """List companies with filters and page metadata."""
        query = db.query(Company)
        if status_filter:
            query = query.filter(Company.status == status_filter)
        if industry:
            query = query.filter(Company.industry == industry)
        if search:
            query = query.filter(Company.company_name.ilike(f"%{search}%"))

        total = query.count()
        items = query.order_by(
            Company.created_at.desc(), Company.id.desc()
        ).offset((page - 1) * limit).limit(limit).all()

        total_pages = (total + limit - 1) // limit
        return {
            "items": items,
            "page": page,
            "limit": limit,
            "total": total,
            "total_pages": total_pages,
            "has_next": page * limit < total,
            "has_prev": page > 1,
        }

    @staticmethod
    def get_members(db: Session, company_id: int) -> List[User]:
        return db.query(User).filter(User.company_id == company_id).order_by(User.created_at.desc()).all()

    @staticmethod
    def update_company(db: Session, company_id: int, admin: User, data: CompanyUpdate) -> Company:
        company = CompanyService.get_company(db, company_id)
        changes = data.model_dump(exclude_unset=True)
        for key, value in changes.items():
            setattr(company, key, value)

        AuditService.record(
            db,
            action="company_updated",
            resource_type="company",
            resource_id=company.id,
            user_id=admin.id,
            company_id=company.id,
            details={"fields": sorted(changes.keys())},
        )
        db.commit()
        db.refresh(company)
        return company

    @staticmethod
    def _transition(
        db: Session,
        company: Company,
        source: CompanyStatus,
        target: CompanyStatus,
        admin: User,
        error: str,
        details: Optional[Dict[str, Any]] = None
    ) -> None:
        if company.status != source or not CompanyService.can_transition(source, target):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=error
            )
        previous = company.status
        company.status = target
        AuditService.record(
            db,
            action=f"company_{target.value}",
            resource_type="company",
            resource_id=company.id,
            user_id=admin.id,
            company_id=company.id,
            details={"from": previous.value, "to": target.value, **(details or {})},
        )
        logger.info("Company %s moved from %s to %s by %s", company.id, previous.value, target.value, admin.id)

    @staticmethod
    def _notify(
        background_tasks: Optional[BackgroundTasks],
        company: Company,
        notification_type: str
    ) -> None:
        """Schedule the status e-mail to the company creator."""
        creator = company.created_by
        if creator is None:
            return
        name = company.company_name or "your company"
        if notification_type == "approved":
            task = (email_service.send_company_approved, creator.email, creator.full_name, name, company.id)
        elif notification_type == "rejected":
            task = (email_service.send_company_rejected, creator.email, creator.full_name, name,
                    company.rejection_reason or "")
        elif notification_type == "suspended":
            task = (email_service.send_company_suspended, creator.email, creator.full_name, name,
                    company.suspension_reason)
        else:
            task = (email_service.send_company_activated, creator.email, creator.full_name, name, company.id)

        if background_tasks is not None:
            background_tasks.add_task(*task)
        else:
            task[0](*task[1:])

    @staticmethod
    def approve(
        db: Session,
        company_id: int,
        admin: User,
        background_tasks: Optional[BackgroundTasks] = None
    ) -> Company:
        """Approve a pending application and make its creator the owner."""
        company = CompanyService.get_company(db, company_id)
        CompanyService._transition(
            db, company, CompanyStatus.PENDING, CompanyStatus.ACTIVE, admin,
            "Company is not pending approval",
        )

        company.approved_by_id = admin.id
        company.approved_at = datetime.utcnow()

        creator = company.created_by
        if creator is not None:
            creator.company_id = company.id
            creator.role = MemberRole.OWNER

        db.commit()
        db.refresh(company)
        CompanyService._notify(background_tasks, company, "approved")
        return company

    @staticmethod
    def reject(
        db: Session,
        company_id: int,
        admin: User,
        reason: str,
        background_tasks: Optional[BackgroundTasks] = None
    ) -> Company:
        """Reject a pending application and send the applicant back to step 2."""
        company = CompanyService.get_company(db, company_id)
        CompanyService._transition(
            db, company, CompanyStatus.PENDING, CompanyStatus.REJECTED, admin,
            "Company is not pending approval",
            details={"reason": reason},
        )

        company.rejected_by_id = admin.id
        company.rejected_at = datetime.utcnow()
        company.rejection_reason = reason
        company.current_step = 2

        db.commit()
        db.refresh(company)
        CompanyService._notify(background_tasks, company, "rejected")
        return company

    @staticmethod
    def suspend(
        db: Session,
        company_id: int,
        admin: User,
        reason: Optional[str] = None,
        background_tasks: Optional[BackgroundTasks] = None
    ) -> Company:
        company = CompanyService.get_company(db, company_id)
        CompanyService._transition(
            db, company, CompanyStatus.ACTIVE, CompanyStatus.SUSPENDED, admin,
            "Only active companies can be suspended",
            details={"reason": reason} if reason else None,
        )
        company.suspended_at = datetime.utcnow()
        company.suspension_reason = reason

        db.commit()
        db.refresh(company)
        CompanyService._notify(background_tasks, company, "suspended")
        return company

    @staticmethod
    def activate(
        db: Session,
        company_id: int,
        admin: User,
        background_tasks: Optional[BackgroundTasks] = None
    ) -> Company:
        company = CompanyService.get_company(db, company_id)
        CompanyService._transition(
            db, company, CompanyStatus.SUSPENDED, CompanyStatus.ACTIVE, admin,
            "Only suspended companies can be activated",
        )
        company.suspended_at = None
        company.suspension_reason = None

        db.commit()
        db.refresh(company)
        CompanyService._notify(background_tasks, company, "activated")
        return company

    @staticmethod
    def bulk_approve(
        db: Session,
        company_ids: List[int],
        admin: User,
        background_tasks: Optional[BackgroundTasks] = None
    ) -> Dict[str, Any]:
        results = []
        for company_id in company_ids:
            try:
                CompanyService.approve(db, company_id, admin, background_tasks)
                results.append({"company_id": company_id, "success": True})
            except HTTPException as e:
                db.rollback()
                results.append({"company_id": company_id, "success": False, "error": e.detail})
        return CompanyService._bulk_summary(results)

    @staticmethod
    def bulk_reject(
        db: Session,
        company_ids: List[int],
        admin: User,
        reason: str,
        background_tasks: Optional[BackgroundTasks] = None
    ) -> Dict[str, Any]:
        results = []
        for company_id in company_ids:
            try:
                CompanyService.reject(db, company_id, admin, reason, background_tasks)
                results.append({"company_id": company_id, "success": True})
            except HTTPException as e:
                db.rollback()
                results.append({"company_id": company_id, "success": False, "error": e.detail})
        return CompanyService._bulk_summary(results)

    @staticmethod
    def _bulk_summary(results: List[Dict[str, Any]]) -> Dict[str, Any]:
        succeeded = sum(1 for r in results if r["success"])
        return {
            "results": results,
            "succeeded": succeeded,
            "failed": len(results) - succeeded,
        }

    @staticmethod
    def resend_notification(
        db: Session,
        company_id: int,
        notification_type: str,
        background_tasks: Optional[BackgroundTasks] = None
    ) -> None:
        if notification_type not in NOTIFICATION_TYPES:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Unknown notification type: {notification_type}"
            )
        company = CompanyService.get_company(db, company_id)
        CompanyService._notify(background_tasks, company, notification_type)

    @staticmethod
    def delete_company(db: Session, company_id: int, admin: User) -> None:
        """Delete a company with its forms, submissions and invitations."""
        company = CompanyService.get_company(db, company_id)
        if company.status == CompanyStatus.ACTIVE:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Cannot delete active companies. Please suspend them first for safety."
            )

        # Detach members
        for member in CompanyService.get_members(db, company_id):
            member.company_id = None
            member.role = None
        db.query(StoredFile).filter(StoredFile.company_id == company_id).update(
            {StoredFile.company_id: None}, synchronize_session=False
        )

        AuditService.record(
            db,
            action="company_deleted",
            resource_type="company",
            resource_id=company.id,
            user_id=admin.id,
            details={"company_name": company.company_name},
        )
        db.delete(company)
        db.commit()
        logger.info("Company %s deleted by %s", company_id, admin.id)
