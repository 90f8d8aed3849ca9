"""Company model: tenant record that also carries onboarding progress."""

from datetime import datetime
from typing import Optional, List
from enum import Enum as PyEnum

from sqlalchemy import String, Text, DateTime, ForeignKey, JSON, Enum, Integer
from sqlalchemy.orm import Mapped, mapped_column, relationship

from tenantforms.database import Base


class CompanyStatus(str, PyEnum):
    """Company lifecycle states."""
    DRAFT = "draft"
    PENDING = "pending"
    ACTIVE = "active"
    REJECTED = "rejected"
    SUSPENDED = "suspended"

    def __str__(self) -> str:
        return self.value


class Company(Base):
    """
    Company represents a tenant.

    While the owner walks through the onboarding wizard the company stays in
    ``draft`` and ``current_step``/``completed_steps`` track the wizard.
    Submitting moves it to ``pending`` until a super admin reviews it.
    """

    __tablename__ = "companies"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)

    # Basic info (step 2)
    company_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True, index=True)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    phone: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    website: Mapped[Optional[str]] = mapped_column(String(512), nullable=True)
    industry: Mapped[Optional[str]] = mapped_column(String(100), nullable=True, index=True)
    size: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Address (step 3)
    street: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    city: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    state: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    country: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    zip_code: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)

    # Branding (step 4)
    tax_id: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    logo_file_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    # Documents (step 5)
    business_registration_file_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    tax_document_file_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    proof_of_address_file_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    certification_file_ids: Mapped[List[int]] = mapped_column(JSON, nullable=False, default=list)

    # Lifecycle
    status: Mapped[CompanyStatus] = mapped_column(
        Enum(CompanyStatus, values_callable=lambda x: [e.value for e in x]),
        default=CompanyStatus.DRAFT,
        nullable=False,
        index=True
    )
    current_step: Mapped[int] = mapped_column(Integer, default=2, nullable=False)
    completed_steps: Mapped[List[int]] = mapped_column(JSON, nullable=False, default=list)

    created_by_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", use_alter=True),
        nullable=False,
        index=True
    )
    approved_by_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    approved_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    rejected_by_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    rejected_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    rejection_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    submitted_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    suspended_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    suspension_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime,
        onupdate=datetime.utcnow,
        nullable=True
    )

    # Relationships
    created_by: Mapped["User"] = relationship("User", foreign_keys=[created_by_id])
    members: Mapped[List["User"]] = relationship(
        "User",
        back_populates="company",
        foreign_keys="User.company_id"
    )
    forms: Mapped[List["Form"]] = relationship(
        "Form",
        back_populates="company",
        cascade="all, delete-orphan"
    )
    invitations: Mapped[List["Invitation"]] = relationship(
        "Invitation",
        back_populates="company",
        cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<Company(id={self.id}, name='{self.company_name}', status='{self.status}')>"
