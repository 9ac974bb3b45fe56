"""
Access gate.
Stage one (get_current_identity) verifies the bearer token and loads the
identity's public projection; stage two (authorize / require_roles) checks
role membership. authorize only accepts an Identity, so it cannot run on an
unauthenticated request.
"""

from dataclasses import dataclass
from typing import AbstractSet, Callable, Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from auth.security import TokenService
from database import crud
from database.database import get_db
from database.models import Role, User
from services.errors import Forbidden, Unauthorized

_bearer = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class Identity:
    """Public projection of an authenticated user."""
    id: int
    name: str
    email: str
    role: Role

    @classmethod
    def from_user(cls, user: User) -> "Identity":
        return cls(id=user.id, name=user.name, email=user.email, role=Role(user.role))

    @property
    def is_admin(self) -> bool:
        return self.role is Role.ADMIN

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name, "email": self.email, "role": self.role.value}


def get_token_service(request: Request) -> TokenService:
    return request.app.state.token_service


def authenticate(
    credentials: Optional[HTTPAuthorizationCredentials],
    db: Session,
    tokens: TokenService,
) -> Identity:
    if credentials is None:
        raise Unauthorized("Not authorized, no token")

    user_id = tokens.verify(credentials.credentials)

    # A still-valid signature is not enough: the account must still exist
    user = crud.get_user(db, user_id)
    if not user:
        raise Unauthorized("Not authorized, user not found")
    return Identity.from_user(user)


def authorize(identity: Identity, allowed_roles: AbstractSet[Role]) -> None:
    if not isinstance(identity, Identity):
        raise Unauthorized()
    if identity.role not in allowed_roles:
        raise Forbidden()


# ─── FastAPI dependencies ─────────────────────────────────────────────────────

def get_current_identity(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer),
    db: Session = Depends(get_db),
    tokens: TokenService = Depends(get_token_service),
) -> Identity:
    return authenticate(credentials, db, tokens)


def require_roles(*roles: Role) -> Callable[..., Identity]:
    """Dependency factory: authenticated identity whose role is one of `roles`."""
    allowed = frozenset(roles)

    def _dependency(identity: Identity = Depends(get_current_identity)) -> Identity:
        authorize(identity, allowed)
        return identity

    return _dependency


require_admin = require_roles(Role.ADMIN)
require_lecturer = require_roles(Role.LECTURER)
require_student = require_roles(Role.STUDENT)
