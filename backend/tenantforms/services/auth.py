"""Authentication service: password hashing, JWT tokens and user dependencies."""

import logging
import secrets
from datetime import datetime, timedelta
from typing import Optional

from fastapi import BackgroundTasks, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy.orm import Session

from tenantforms.config import get_settings
from tenantforms.database import get_db
from tenantforms.models.user import PasswordResetToken, User
from tenantforms.schemas.user import UserCreate, TokenData
from tenantforms.services.audit import AuditService
from tenantforms.services.email import email_service

logger = logging.getLogger(__name__)

settings = get_settings()

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")

# auto_error=False so pages that work for guests can still resolve the caller
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login", auto_error=False)


class AuthService:
    """Service for authentication operations."""

    @staticmethod
    def get_password_hash(password: str) -> str:
        return pwd_context.hash(password)

    @staticmethod
    def verify_password(plain_password: str, hashed_password: str) -> bool:
        return pwd_context.verify(plain_password, hashed_password)

    @staticmethod
    def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
        """Create a signed JWT carrying ``data`` and an expiry."""
        to_encode = data.copy()
        expire = datetime.utcnow() + (
            expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
        )
        to_encode.update({"exp": expire})
        return jwt.encode(to_encode, settings.secret_key, algorithm=settings.algorithm)

    @staticmethod
    def decode_access_token(token: str) -> Optional[TokenData]:
        """Decode a JWT, returning None when it is invalid or expired."""
        try:
            payload = jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
        except JWTError:
            return None
        sub = payload.get("sub")
        if sub is None:
            return None
        try:
            return TokenData(user_id=int(sub))
        except ValueError:
            return None

    @staticmethod
    def get_user_by_email(db: Session, email: str) -> Optional[User]:
        return db.query(User).filter(User.email == email.lower()).first()

    @staticmethod
    def authenticate_user(db: Session, email: str, password: str) -> Optional[User]:
        """Return the user when the credentials match."""
        user = AuthService.get_user_by_email(db, email)
        if not user:
            return None
        if not AuthService.verify_password(password, user.hashed_password):
            return None
        return user

    @staticmethod
    def create_user(db: Session, user_data: UserCreate, commit: bool = True) -> User:
        """Create a user account. Raises 400 when the email is taken."""
        if AuthService.get_user_by_email(db, user_data.email):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Email already registered"
            )

        user = User(
            email=user_data.email.lower(),
            hashed_password=AuthService.get_password_hash(user_data.password),
            full_name=user_data.full_name,
        )
        db.add(user)
        if commit:
            db.commit()
            db.refresh(user)
        else:
            db.flush()
        logger.info("Created user %s", user.email)
        return user

    @staticmethod
    def change_password(db: Session, user: User, current_password: str, new_password: str) -> None:
        if not AuthService.verify_password(current_password, user.hashed_password):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Current password is incorrect"
            )
        user.hashed_password = AuthService.get_password_hash(new_password)
        db.commit()

    @staticmethod
    def request_password_reset(
        db: Session,
        email: str,
        background_tasks: Optional[BackgroundTasks] = None
    ) -> Optional[PasswordResetToken]:
        """Mail a single-use reset link. Unknown addresses are ignored silently."""
        user = AuthService.get_user_by_email(db, email)
        if not user or not user.is_active:
            logger.info("Password reset requested for unknown or inactive address")
            return None

        now = datetime.utcnow()
        # Older links stop working once a new one is issued
        db.query(PasswordResetToken).filter(
            PasswordResetToken.user_id == user.id,
            PasswordResetToken.used_at.is_(None)
        ).update({PasswordResetToken.used_at: now}, synchronize_session=False)

        reset = PasswordResetToken(
            user_id=user.id,
            token=secrets.token_urlsafe(32),
            expires_at=now + timedelta(minutes=settings.password_reset_expiry_minutes),
        )
        db.add(reset)
        db.commit()
        db.refresh(reset)

        reset_url = f"{settings.app_url}/auth/reset-password?token={reset.token}"
        args = (user.email, user.full_name, reset_url)
        if background_tasks is not None:
            background_tasks.add_task(email_service.send_password_reset, *args)
        else:
            email_service.send_password_reset(*args)
        logger.info("Password reset link issued for user %s", user.id)
        return reset

    @staticmethod
    def reset_password(
        db: Session,
        token: str,
        new_password: str,
        background_tasks: Optional[BackgroundTasks] = None
    ) -> User:
        reset = db.query(PasswordResetToken).filter(PasswordResetToken.token == token).first()
        if not reset or not reset.is_usable:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Invalid or expired reset link. Please request a new one."
            )

        user = reset.user
        user.hashed_password = AuthService.get_password_hash(new_password)
        reset.used_at = datetime.utcnow()
        AuditService.record(
            db,
            action="password_reset",
            resource_type="user",
            resource_id=user.id,
            user_id=user.id,
            company_id=user.company_id,
        )
        db.commit()

        if background_tasks is not None:
            background_tasks.add_task(email_service.send_password_changed, user.email, user.full_name)
        else:
            email_service.send_password_changed(user.email, user.full_name)
        logger.info("Password reset completed for user %s", user.id)
        return user


async def get_optional_user(
    token: Optional[str] = Depends(oauth2_scheme),
    db: Session = Depends(get_db)
) -> Optional[User]:
    """Resolve the bearer token to a user, or None for guests."""
    if not token:
        return None
    token_data = AuthService.decode_access_token(token)
    if token_data is None:
        return None
    return db.query(User).filter(User.id == token_data.user_id).first()


async def get_current_user(
    user: Optional[User] = Depends(get_optional_user)
) -> User:
    """Require an authenticated user."""
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


async def get_current_active_user(
    current_user: User = Depends(get_current_user)
) -> User:
    """Require an active, non-suspended user."""
    if not current_user.is_active:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Inactive user"
        )
    if current_user.suspended:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Your account has been suspended"
        )
    return current_user
