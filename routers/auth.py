"""
Authentication router.
JWT access token is returned on login/register and sent as a Bearer token;
registration is admin-only (the first admin is seeded at startup).
"""

import logging

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

from auth.dependencies import Identity, get_current_identity, get_token_service, require_admin
from auth.security import TokenService
from database import schemas
from database.database import get_db
from database.models import Lecturer
from services import accounts
from services.projections import lecturer_view, student_view, user_public

log = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


def _profile_view(db: Session, profile):
    if profile is None:
        return None
    if isinstance(profile, Lecturer):
        return lecturer_view(db, profile)
    return student_view(db, profile)


@router.post("/register", status_code=status.HTTP_201_CREATED)
def register(
    body: schemas.RegisterRequest,
    request: Request,
    db: Session = Depends(get_db),
    tokens: TokenService = Depends(get_token_service),
    _: Identity = Depends(require_admin),
):
    """Admin creates an account; students must name a course."""
    user, profile = accounts.register(db, body, request.app.state.settings.bcrypt_rounds)
    log.info("Registered %s %s", user.role, user.email)
    return {
        "user": user_public(user),
        "profile": _profile_view(db, profile),
        "access_token": tokens.issue(user.id),
        "token_type": "bearer",
    }


@router.post("/login")
def login(
    body: schemas.LoginRequest,
    db: Session = Depends(get_db),
    tokens: TokenService = Depends(get_token_service),
):
    user = accounts.login(db, body.email, body.password)
    return {
        "access_token": tokens.issue(user.id),
        "token_type": "bearer",
        "user": user_public(user),
    }


@router.get("/me")
def me(identity: Identity = Depends(get_current_identity)):
    return identity.to_dict()
