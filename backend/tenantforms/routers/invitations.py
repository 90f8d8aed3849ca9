"""Public invitation router: preview and accept by token."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from tenantforms.database import get_db
from tenantforms.routers.auth import issue_token
from tenantforms.schemas.team import InvitationAccept, InvitationPreview
from tenantforms.schemas.user import Token
from tenantforms.services.team import TeamService

router = APIRouter()


@router.get("/{token}", response_model=InvitationPreview)
async def preview_invitation(
    token: str,
    db: Session = Depends(get_db)
):
    """Show who invited whom to which company."""
    return TeamService.preview_invitation(db, token)


@router.post("/accept", response_model=Token)
async def accept_invitation(
    data: InvitationAccept,
    db: Session = Depends(get_db)
):
    """Create the invitee's account, join the company and sign in."""
    user = TeamService.accept_invitation(db, data)
    return issue_token(user)
