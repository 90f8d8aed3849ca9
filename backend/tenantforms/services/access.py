"""Access control gates: authentication, company scoping and RBAC.

Every gate either returns the caller's ``UserContext`` or raises
``AccessRedirect`` naming the page the UI should send the user to.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional, List, Tuple

from fastapi import Depends, HTTPException, status
from sqlalchemy.orm import Session

from tenantforms.constants import MANAGER_ROLES, EDITOR_ROLES, ALL_ROLES
from tenantforms.database import get_db
from tenantforms.models.user import User
from tenantforms.models.company import Company, CompanyStatus
from tenantforms.services.auth import get_optional_user

logger = logging.getLogger(__name__)

SIGN_IN_PATH = "/auth/sign-in"
ONBOARDING_PATH = "/onboarding"
SUSPENDED_PATH = "/suspended"


def org_path(company_id) -> str:
    return f"/org/{company_id}"


@dataclass
class UserContext:
    """Who is calling and where they belong."""
    user_id: int
    email: str
    name: str
    is_superadmin: bool
    is_authenticated: bool = True
    company_id: Optional[int] = None
    role: Optional[str] = None
    labels: List[str] = field(default_factory=list)
    user: Optional[User] = None

    @classmethod
    def from_user(cls, user: User) -> "UserContext":
        return cls(
            user_id=user.id,
            email=user.email,
            name=user.full_name,
            is_superadmin=bool(user.is_superadmin),
            company_id=user.company_id,
            role=user.role.value if user.role else None,
            labels=user.labels,
            user=user,
        )


@dataclass
class CompanyAccessResult:
    has_access: bool
    reason: Optional[str] = None  # suspended | not-found | no-company
    company_name: Optional[str] = None
    company_status: Optional[str] = None


class AccessRedirect(HTTPException):
    """
    Denied access, with the path the client should navigate to.

    Unauthenticated callers get 401, everyone else 403.
    """

    def __init__(self, redirect_to: str, message: str, authenticated: bool = True):
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN if authenticated else status.HTTP_401_UNAUTHORIZED,
            detail={"message": message, "redirect_to": redirect_to},
            headers={"X-Redirect-To": redirect_to},
        )
        self.redirect_to = redirect_to
        self.message = message


def _deny(ctx: Optional[UserContext], redirect_to: str, message: str) -> AccessRedirect:
    logger.info(
        "Access denied for user %s: %s (redirect to %s)",
        ctx.user_id if ctx else None,
        message,
        redirect_to,
    )
    return AccessRedirect(redirect_to, message, authenticated=ctx is not None)


# Company status lookups

def get_company_status(db: Session, company_id: Optional[int]) -> Tuple[Optional[CompanyStatus], Optional[Company]]:
    """Return ``(status, company)``, or ``(None, None)`` when there is no such company."""
    if company_id is None:
        return None, None
    company = db.get(Company, company_id)
    if company is None:
        return None, None
    return company.status, company


def check_company_suspension(db: Session, ctx: UserContext) -> Tuple[bool, Optional[Company]]:
    if ctx.is_superadmin:
        return False, None
    company_status, company = get_company_status(db, ctx.company_id)
    return company_status == CompanyStatus.SUSPENDED, company


def check_company_access(db: Session, ctx: UserContext) -> CompanyAccessResult:
    if ctx.is_superadmin:
        return CompanyAccessResult(has_access=True)
    if ctx.company_id is None:
        return CompanyAccessResult(has_access=False, reason="no-company")

    is_suspended, company = check_company_suspension(db, ctx)
    if company is None:
        return CompanyAccessResult(has_access=False, reason="not-found")
    if is_suspended:
        return CompanyAccessResult(
            has_access=False,
            reason="suspended",
            company_name=company.company_name,
            company_status=company.status.value,
        )
    return CompanyAccessResult(
        has_access=True,
        company_name=company.company_name,
        company_status=company.status.value,
    )


# Gates

def require_auth(ctx: Optional[UserContext]) -> UserContext:
    if ctx is None or not ctx.is_authenticated:
        raise _deny(None, SIGN_IN_PATH, "Authentication required")
    return ctx


def require_superadmin(ctx: Optional[UserContext]) -> UserContext:
    ctx = require_auth(ctx)
    if not ctx.is_superadmin:
        if ctx.company_id:
            raise _deny(ctx, org_path(ctx.company_id), "Super admin access required")
        raise _deny(ctx, ONBOARDING_PATH, "Super admin access required")
    return ctx


def _check_member_standing(db: Session, ctx: UserContext) -> None:
    """Redirect members of suspended companies, and suspended members."""
    result = check_company_access(db, ctx)
    if not result.has_access:
        if result.reason == "suspended":
            raise _deny(ctx, SUSPENDED_PATH, "Your company has been suspended")
        raise _deny(ctx, ONBOARDING_PATH, "Company not found")
    if ctx.user is not None and ctx.user.suspended:
        raise _deny(ctx, SUSPENDED_PATH, "Your account has been suspended")


def require_company(db: Session, ctx: Optional[UserContext]) -> UserContext:
    ctx = require_auth(ctx)
    if not ctx.company_id:
        raise _deny(ctx, ONBOARDING_PATH, "You are not a member of any company")
    if not ctx.is_superadmin:
        _check_member_standing(db, ctx)
    return ctx


def require_company_access(db: Session, ctx: Optional[UserContext], org_id: int) -> UserContext:
    ctx = require_auth(ctx)
    if ctx.is_superadmin:
        return ctx
    if not ctx.company_id:
        raise _deny(ctx, ONBOARDING_PATH, "You are not a member of any company")
    if ctx.company_id != org_id:
        raise _deny(ctx, org_path(ctx.company_id), "You do not have access to this company")
    _check_member_standing(db, ctx)
    return ctx


def require_role(
    db: Session,
    ctx: Optional[UserContext],
    allowed_roles: List[str],
    org_id: Optional[int] = None
) -> UserContext:
    if org_id is not None:
        ctx = require_company_access(db, ctx, org_id)
    else:
        ctx = require_company(db, ctx)

    if ctx.is_superadmin:
        return ctx
    if not ctx.role or ctx.role not in allowed_roles:
        raise _deny(ctx, org_path(ctx.company_id), "You do not have permission to perform this action")
    return ctx


class Can:
    """Boolean predicates for conditional UI and service checks."""

    @staticmethod
    def be_superadmin(ctx: Optional[UserContext]) -> bool:
        return bool(ctx and ctx.is_superadmin)

    @staticmethod
    def access_company(ctx: Optional[UserContext], company_id: int) -> bool:
        if ctx is None:
            return False
        if ctx.is_superadmin:
            return True
        return ctx.company_id == company_id

    @staticmethod
    def have_role(ctx: Optional[UserContext], roles: List[str]) -> bool:
        if ctx is None:
            return False
        if ctx.is_superadmin:
            return True
        return bool(ctx.role) and ctx.role in roles

    @staticmethod
    def admin_company(ctx: Optional[UserContext]) -> bool:
        return Can.have_role(ctx, MANAGER_ROLES)

    @staticmethod
    def edit_content(ctx: Optional[UserContext]) -> bool:
        return Can.have_role(ctx, EDITOR_ROLES)


def validate_data_scope(
    ctx: Optional[UserContext],
    resource_company_id: int,
    operation: str = "read"
) -> bool:
    """Check a read, write or delete against a company-owned resource."""
    if ctx is None:
        return False
    if ctx.is_superadmin:
        return True
    if ctx.company_id != resource_company_id:
        return False

    if operation == "read":
        return True
    if operation == "write":
        return ctx.role in EDITOR_ROLES
    if operation == "delete":
        return ctx.role in MANAGER_ROLES
    return False


def ensure_data_scope(ctx: Optional[UserContext], resource_company_id: int, operation: str = "read") -> None:
    """Raise 403 unless ``validate_data_scope`` allows the operation."""
    if not validate_data_scope(ctx, resource_company_id, operation):
        logger.info(
            "Data scope check failed: user=%s company=%s operation=%s",
            ctx.user_id if ctx else None,
            resource_company_id,
            operation,
        )
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"You do not have permission to {operation} this resource"
        )


# FastAPI dependencies

async def get_current_user_context(
    user: Optional[User] = Depends(get_optional_user)
) -> Optional[UserContext]:
    """Resolve the session to a context; None for guests and inactive users."""
    if user is None or not user.is_active:
        return None
    return UserContext.from_user(user)


async def dashboard_guard(
    ctx: Optional[UserContext] = Depends(get_current_user_context)
) -> UserContext:
    return require_auth(ctx)


async def admin_guard(
    ctx: Optional[UserContext] = Depends(get_current_user_context)
) -> UserContext:
    return require_superadmin(ctx)


async def company_guard(
    db: Session = Depends(get_db),
    ctx: Optional[UserContext] = Depends(get_current_user_context)
) -> UserContext:
    return require_company(db, ctx)


def role_guard(allowed_roles: List[str]):
    """Build a dependency that checks ``allowed_roles`` for the ``org_id`` path parameter."""

    async def guard(
        org_id: int,
        db: Session = Depends(get_db),
        ctx: Optional[UserContext] = Depends(get_current_user_context)
    ) -> UserContext:
        return require_role(db, ctx, allowed_roles, org_id)

    return guard


member_guard = role_guard(ALL_ROLES)
owner_guard = role_guard(MANAGER_ROLES)
editor_guard = role_guard(EDITOR_ROLES)
