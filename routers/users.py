"""
User (identity) endpoints, admin only apart from /users/me.
POST creates a bare identity; profiles come from /auth/register,
/lecturers or /students.
"""

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

from auth.dependencies import Identity, get_current_identity, require_admin
from database import schemas
from database.database import get_db
from database.models import User
from services import accounts
from services.projections import user_public

router = APIRouter(prefix="/users", tags=["users"])


@router.post("", status_code=status.HTTP_201_CREATED)
def create_user(
    body: schemas.UserCreate,
    request: Request,
    db: Session = Depends(get_db),
    _: Identity = Depends(require_admin),
):
    user = accounts.create_user(
        db, body.name, body.email, body.password, body.role,
        request.app.state.settings.bcrypt_rounds,
    )
    return user_public(user)


@router.get("")
def list_users(db: Session = Depends(get_db), _: Identity = Depends(require_admin)):
    return [user_public(u) for u in db.query(User).order_by(User.id).all()]


@router.get("/me")
def get_me(identity: Identity = Depends(get_current_identity)):
    return identity.to_dict()


@router.delete("/{user_id}")
def delete_user(user_id: int, db: Session = Depends(get_db), _: Identity = Depends(require_admin)):
    """Deletes the identity and whichever profile it owns."""
    accounts.delete_user(db, user_id)
    return {"message": "User deleted successfully"}
