"""Audit trail Pydantic schemas."""

from datetime import datetime
from typing import Optional, Any, Dict, List

from pydantic import BaseModel


class AuditEventResponse(BaseModel):
    """Schema for audit event responses."""
    id: int
    company_id: Optional[int]
    user_id: Optional[int]
    user_name: Optional[str] = None
    action: str
    resource_type: str
    resource_id: Optional[str]
    details: Optional[Dict[str, Any]]
    timestamp: datetime
    ip_address: Optional[str] = None

    class Config:
        from_attributes = True


class AuditLogResponse(BaseModel):
    """Schema for paginated audit log responses."""
    items: List[AuditEventResponse]
    total: int
    page: int
    page_size: int
    total_pages: int
