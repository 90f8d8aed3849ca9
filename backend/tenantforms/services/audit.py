"""Audit service for recording and listing tenant activity."""

import logging
from typing import Optional, Dict, Any
from datetime import datetime

from sqlalchemy.orm import Session, joinedload
from sqlalchemy import func

from tenantforms.models.audit import AuditEvent

logger = logging.getLogger(__name__)


class AuditService:
    """Service for audit trail operations."""

    @staticmethod
    def record(
        db: Session,
        action: str,
        resource_type: str,
        resource_id: Optional[Any] = None,
        user_id: Optional[int] = None,
        company_id: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> AuditEvent:
        """
        Append an audit event to the session.

        The caller owns the transaction; the event is committed together with
        the change it describes.
        """
        event = AuditEvent(
            company_id=company_id,
            user_id=user_id,
            action=action,
            resource_type=resource_type,
            resource_id=str(resource_id) if resource_id is not None else None,
            details=details,
            ip_address=ip_address,
            user_agent=user_agent,
        )
        db.add(event)
        logger.debug("Audit %s on %s:%s by user %s", action, resource_type, resource_id, user_id)
        return event

    @staticmethod
    def get_audit_log(
        db: Session,
        company_id: Optional[int] = None,
        page: int = 1,
        page_size: int = 50,
        action: Optional[str] = None,
        user_id: Optional[int] = None,
        from_date: Optional[datetime] = None,
        to_date: Optional[datetime] = None
    ) -> Dict[str, Any]:
        """Get a paginated audit log, for one company or across the platform."""
        query = db.query(AuditEvent)

        # Apply filters
        if company_id is not None:
            query = query.filter(AuditEvent.company_id == company_id)
        if action:
            query = query.filter(AuditEvent.action == action)
        if user_id:
            query = query.filter(AuditEvent.user_id == user_id)
        if from_date:
            query = query.filter(AuditEvent.timestamp >= from_date)
        if to_date:
            query = query.filter(AuditEvent.timestamp <= to_date)

        total = query.count()

        events = query.options(
            joinedload(AuditEvent.user)
        ).order_by(
            AuditEvent.timestamp.desc(),
            AuditEvent.id.desc()
        ).offset((page - 1) * page_size).limit(page_size).all()

        return {
            "items": [event.to_dict() for event in events],
            "total": total,
            "page": page,
            "page_size": page_size,
            "total_pages": (total + page_size - 1) // page_size,
        }

    @staticmethod
    def get_activity_summary(db: Session, company_id: int) -> Dict[str, Any]:
        """Count events per action and per user for a company."""
        action_counts = db.query(
            AuditEvent.action,
            func.count(AuditEvent.id).label('count')
        ).filter(
            AuditEvent.company_id == company_id
        ).group_by(AuditEvent.action).order_by(
            func.count(AuditEvent.id).desc()
        ).all()

        user_counts = db.query(
            AuditEvent.user_id,
            func.count(AuditEvent.id).label('count')
        ).filter(
            AuditEvent.company_id == company_id
        ).group_by(AuditEvent.user_id).all()

        last_event = db.query(AuditEvent).filter(
            AuditEvent.company_id == company_id
        ).order_by(AuditEvent.timestamp.desc()).first()

        return {
            "total_events": sum(c[1] for c in action_counts),
            "events_by_action": [{"action": c[0], "count": c[1]} for c in action_counts],
            "events_by_user": [{"user_id": c[0], "count": c[1]} for c in user_counts],
            "last_activity": last_event.timestamp.isoformat() if last_event else None,
        }
