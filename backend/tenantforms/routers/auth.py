"""Authentication router."""

from datetime import timedelta

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.orm import Session

from tenantforms.database import get_db
from tenantforms.config import get_settings
from tenantforms.models.user import User
from tenantforms.schemas.user import (
    ForgotPasswordRequest,
    PasswordChange,
    PasswordReset,
    Token,
    UserCreate,
    UserLogin,
    UserResponse,
)
from tenantforms.services.auth import AuthService, get_current_active_user
from tenantforms.services.onboarding import OnboardingService

settings = get_settings()
router = APIRouter()


def issue_token(user: User) -> Token:
    access_token = AuthService.create_access_token(
        data={"sub": str(user.id)},
        expires_delta=timedelta(minutes=settings.access_token_expire_minutes)
    )
    return Token(
        access_token=access_token,
        token_type="bearer",
        user=UserResponse.model_validate(user)
    )


def _login(db: Session, email: str, password: str) -> Token:
    user = AuthService.authenticate_user(db, email, password)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )
    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Inactive user"
        )
    if user.suspended:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Your account has been suspended"
        )
    return issue_token(user)


@router.post("/register", response_model=Token)
async def register(
    user_data: UserCreate,
    db: Session = Depends(get_db)
):
    """Sign up and start a company application (onboarding step 1)."""
    user = AuthService.create_user(db, user_data, commit=False)
    OnboardingService.create_progress(db, user, commit=False)
    db.commit()
    db.refresh(user)
    return issue_token(user)


@router.post("/login", response_model=Token)
async def login(
    form_data: OAuth2PasswordRequestForm = Depends(),
    db: Session = Depends(get_db)
):
    """Login and get access token."""
    return _login(db, form_data.username, form_data.password)


@router.post("/login/json", response_model=Token)
async def login_json(
    credentials: UserLogin,
    db: Session = Depends(get_db)
):
    """Login with JSON body."""
    return _login(db, credentials.email, credentials.password)


@router.get("/me", response_model=UserResponse)
async def get_current_user_info(
    current_user: User = Depends(get_current_active_user)
):
    """Get current user information."""
    return current_user


@router.post("/change-password")
async def change_password(
    data: PasswordChange,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    AuthService.change_password(db, current_user, data.current_password, data.new_password)
    return {"message": "Password updated successfully"}


@router.post("/forgot-password")
async def forgot_password(
    data: ForgotPasswordRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db)
):
    """Email a reset link. The answer is the same whether or not the account exists."""
    AuthService.request_password_reset(db, data.email, background_tasks)
    return {"message": "If an account with that email exists, we've sent a password reset link."}


@router.post("/reset-password")
async def reset_password(
    data: PasswordReset,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db)
):
    AuthService.reset_password(db, data.token, data.new_password, background_tasks)
    return {"message": "Your password has been reset. You can now sign in."}
