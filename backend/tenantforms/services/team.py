"""Team management service: members, roles and invitations."""

import logging
import secrets
from datetime import datetime, timedelta
from typing import Optional, List, Dict, Any

from sqlalchemy.orm import Session
from fastapi import BackgroundTasks, HTTPException, status

from tenantforms.config import get_settings
from tenantforms.constants import RBAC_ROLES
from tenantforms.models.company import Company
from tenantforms.models.invitation import Invitation, InvitationStatus
from tenantforms.models.user import User, MemberRole
from tenantforms.schemas.team import InvitationCreate, InvitationAccept
from tenantforms.schemas.user import UserCreate
from tenantforms.services.audit import AuditService
from tenantforms.services.auth import AuthService
from tenantforms.services.email import email_service

logger = logging.getLogger(__name__)


def generate_token() -> str:
    return secrets.token_urlsafe(32)


def get_expiration_date(days: Optional[int] = None) -> datetime:
    if days is None:
        days = get_settings().invitation_expiry_days
    return datetime.utcnow() + timedelta(days=days)


def _bad_request(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


class TeamService:
    """Service for team member and invitation operations."""

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
    def get_member(db: Session, company_id: int, user_id: int) -> User:
        member = db.query(User).filter(
            User.id == user_id,
            User.company_id == company_id
        ).first()
        if not member:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Member not found"
            )
        return member

    @staticmethod
    def count_owners(db: Session, company_id: int) -> int:
        return db.query(User).filter(
            User.company_id == company_id,
            User.role == MemberRole.OWNER
        ).count()

    @staticmethod
    def list_team(db: Session, company_id: int) -> Dict[str, Any]:
        """Confirmed members, pending invitations and per-role counts."""
        active = db.query(User).filter(
            User.company_id == company_id
        ).order_by(User.created_at.asc(), User.id.asc()).all()
        pending = db.query(Invitation).filter(
            Invitation.company_id == company_id,
            Invitation.status == InvitationStatus.PENDING
        ).order_by(Invitation.created_at.desc()).all()

        roles = [m.role for m in active] + [i.role for i in pending]
        stats = {f"{role}s": sum(1 for r in roles if r == role) for role in RBAC_ROLES}

        return {
            "active_members": active,
            "pending_members": pending,
            "total": len(active) + len(pending),
            "stats": stats,
        }

    @staticmethod
    def _send_invitation(
        background_tasks: Optional[BackgroundTasks],
        invitation: Invitation,
        company_name: str
    ) -> None:
        invite_url = f"{get_settings().app_url}/invite/accept?token={invitation.token}"
        args = (
            invitation.email,
            invitation.name,
            invitation.inviter_name,
            company_name,
            invitation.role.value,
            invite_url,
        )
        if background_tasks is not None:
            background_tasks.add_task(email_service.send_team_invitation, *args)
        else:
            email_service.send_team_invitation(*args)

    @staticmethod
    def invite(
        db: Session,
        company_id: int,
        inviter: User,
        data: InvitationCreate,
        background_tasks: Optional[BackgroundTasks] = None
    ) -> Invitation:
        """Invite someone by e-mail. The invitation expires after the configured number of days."""
        company = TeamService.get_company(db, company_id)
        email = data.email.lower()

        if db.query(User).filter(User.email == email, User.company_id == company_id).first():
            raise _bad_request("This user is already a member of this company")

        existing = db.query(Invitation).filter(
            Invitation.email == email,
            Invitation.company_id == company_id,
            Invitation.status == InvitationStatus.PENDING
        ).first()
        if existing:
            raise _bad_request("This user already has a pending invitation")

        invitation = Invitation(
            email=email,
            name=data.name,
            role=data.role,
            company_id=company_id,
            invited_by_id=inviter.id,
            inviter_name=inviter.full_name or "Team Admin",
            token=generate_token(),
            expires_at=get_expiration_date(),
            status=InvitationStatus.PENDING,
        )
        db.add(invitation)
        db.flush()

        AuditService.record(
            db,
            action="member_invited",
            resource_type="invitation",
            resource_id=invitation.id,
            user_id=inviter.id,
            company_id=company_id,
            details={"email": email, "role": data.role.value},
        )
        db.commit()
        db.refresh(invitation)

        TeamService._send_invitation(background_tasks, invitation, company.company_name or "")
        logger.info("Invitation %s sent to %s for company %s", invitation.id, email, company_id)
        return invitation

    @staticmethod
    def _get_invitation(db: Session, company_id: int, invitation_id: int) -> Invitation:
        invitation = db.get(Invitation, invitation_id)
        if not invitation:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Invitation not found"
            )
        if invitation.company_id != company_id:
            raise _bad_request("Invitation does not belong to this company")
        return invitation

    @staticmethod
    def resend_invitation(
        db: Session,
        company_id: int,
        invitation_id: int,
        inviter: User,
        background_tasks: Optional[BackgroundTasks] = None
    ) -> Invitation:
        """Replace an invitation with a fresh token and expiry."""
        old = db.get(Invitation, invitation_id)
        if not old:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Invitation not found"
            )
        if old.status == InvitationStatus.ACCEPTED:
            raise _bad_request("This invitation has already been accepted")
        if old.company_id != company_id:
            raise _bad_request("Invitation does not belong to this company")

        company = TeamService.get_company(db, company_id)
        invitation = Invitation(
            email=old.email,
            name=old.name,
            role=old.role,
            company_id=company_id,
            invited_by_id=inviter.id,
            inviter_name=inviter.full_name or "Team Admin",
            token=generate_token(),
            expires_at=get_expiration_date(),
            status=InvitationStatus.PENDING,
        )
        db.delete(old)
        db.add(invitation)
        db.commit()
        db.refresh(invitation)

        TeamService._send_invitation(background_tasks, invitation, company.company_name or "")
        logger.info("Invitation for %s resent as %s", invitation.email, invitation.id)
        return invitation

    @staticmethod
    def cancel_invitation(db: Session, company_id: int, invitation_id: int, user: User) -> Invitation:
        invitation = TeamService._get_invitation(db, company_id, invitation_id)
        if invitation.status != InvitationStatus.PENDING:
            raise _bad_request("Only pending invitations can be cancelled")

        invitation.status = InvitationStatus.CANCELLED
        AuditService.record(
            db,
            action="invitation_cancelled",
            resource_type="invitation",
            resource_id=invitation.id,
            user_id=user.id,
            company_id=company_id,
            details={"email": invitation.email},
        )
        db.commit()
        db.refresh(invitation)
        return invitation

    @staticmethod
    def update_role(db: Session, company_id: int, user_id: int, role: MemberRole, actor: User) -> User:
        member = TeamService.get_member(db, company_id, user_id)

        if member.role == MemberRole.OWNER and role != MemberRole.OWNER:
            if TeamService.count_owners(db, company_id) <= 1:
                raise _bad_request("Cannot change role. There must be at least one owner in the team.")

        previous = member.role
        member.role = role
        AuditService.record(
            db,
            action="member_role_changed",
            resource_type="user",
            resource_id=member.id,
            user_id=actor.id,
            company_id=company_id,
            details={"from": previous.value if previous else None, "to": role.value},
        )
        db.commit()
        db.refresh(member)
        return member

    @staticmethod
    def remove_member(db: Session, company_id: int, user_id: int, actor: User) -> None:
        if user_id == actor.id:
            raise _bad_request("You cannot remove yourself from the team")

        member = TeamService.get_member(db, company_id, user_id)
        if member.role == MemberRole.OWNER and TeamService.count_owners(db, company_id) <= 1:
            raise _bad_request("Cannot remove the last owner. Please assign another owner first.")

        member.company_id = None
        member.role = None
        AuditService.record(
            db,
            action="member_removed",
            resource_type="user",
            resource_id=member.id,
            user_id=actor.id,
            company_id=company_id,
            details={"email": member.email},
        )
        db.commit()

    @staticmethod
    def suspend_member(
        db: Session,
        company_id: int,
        user_id: int,
        actor: User,
        reason: Optional[str] = None
    ) -> User:
        if user_id == actor.id:
            raise _bad_request("You cannot suspend yourself")

        member = TeamService.get_member(db, company_id, user_id)
        if member.role == MemberRole.OWNER and TeamService.count_owners(db, company_id) <= 1:
            raise _bad_request("Cannot suspend the last owner. Please assign another owner first.")

        member.suspended = True
        member.suspended_at = datetime.utcnow()
        member.suspended_by_id = actor.id
        member.suspended_reason = reason
        AuditService.record(
            db,
            action="member_suspended",
            resource_type="user",
            resource_id=member.id,
            user_id=actor.id,
            company_id=company_id,
            details={"reason": reason} if reason else None,
        )
        db.commit()
        db.refresh(member)
        return member

    @staticmethod
    def unsuspend_member(db: Session, company_id: int, user_id: int, actor: User) -> User:
        member = TeamService.get_member(db, company_id, user_id)
        member.suspended = False
        member.suspended_at = None
        member.suspended_by_id = None
        member.suspended_reason = None
        AuditService.record(
            db,
            action="member_unsuspended",
            resource_type="user",
            resource_id=member.id,
            user_id=actor.id,
            company_id=company_id,
        )
        db.commit()
        db.refresh(member)
        return member

    @staticmethod
    def get_invitation_by_token(db: Session, token: str) -> Invitation:
        invitation = db.query(Invitation).filter(Invitation.token == token).first()
        if not invitation:
            raise _bad_request("Invalid invitation token")
        return invitation

    @staticmethod
    def preview_invitation(db: Session, token: str) -> Dict[str, Any]:
        invitation = TeamService.get_invitation_by_token(db, token)
        return {
            "email": invitation.email,
            "name": invitation.name,
            "role": invitation.role,
            "company_name": invitation.company.company_name,
            "inviter_name": invitation.inviter_name,
            "expires_at": invitation.expires_at,
            "status": invitation.status,
            "is_expired": invitation.is_expired,
        }

    @staticmethod
    def accept_invitation(db: Session, data: InvitationAccept) -> User:
        """Create the invitee's account and join it to the company."""
        invitation = TeamService.get_invitation_by_token(db, data.token)

        if invitation.is_expired:
            if invitation.status == InvitationStatus.PENDING:
                invitation.status = InvitationStatus.EXPIRED
                db.commit()
            raise _bad_request("This invitation has expired")

        if invitation.status != InvitationStatus.PENDING:
            raise _bad_request("This invitation has already been used")

        user = AuthService.create_user(
            db,
            UserCreate(email=invitation.email, password=data.password, full_name=data.name),
            commit=False,
        )
        user.company_id = invitation.company_id
        user.role = invitation.role

        invitation.status = InvitationStatus.ACCEPTED
        invitation.accepted_at = datetime.utcnow()

        AuditService.record(
            db,
            action="invitation_accepted",
            resource_type="invitation",
            resource_id=invitation.id,
            user_id=user.id,
            company_id=invitation.company_id,
            details={"email": invitation.email, "role": invitation.role.value},
        )
        db.commit()
        db.refresh(user)
        logger.info("User %s joined company %s as %s", user.id, invitation.company_id, invitation.role.value)
        return user

    @staticmethod
    def get_member_profile(db: Session, company_id: int, user_id: int) -> User:
        return TeamService.get_member(db, company_id, user_id)

    @staticmethod
    def list_invitations(
        db: Session,
        company_id: int,
        status_filter: Optional[InvitationStatus] = None
    ) -> List[Invitation]:
        query = db.query(Invitation).filter(Invitation.company_id == company_id)
        if status_filter:
            query = query.filter(Invitation.status == status_filter)
        return query.order_by(Invitation.created_at.desc()).all()
