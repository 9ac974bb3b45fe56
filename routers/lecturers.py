"""
Lecturer endpoints.
Admins manage profiles and class assignments; a lecturer manages their own
profile and reads the students of the classes assigned to them.
"""

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

from auth.dependencies import Identity, require_admin, require_lecturer
from database import crud, schemas
from database.database import get_db
from database.models import Lecturer
from services import accounts, relationships
from services.errors import Forbidden
from services.projections import classroom_view, lecturer_view, lecturer_views, student_views

router = APIRouter(prefix="/lecturers", tags=["lecturers"])


@router.get("")
def list_lecturers(db: Session = Depends(get_db), _: Identity = Depends(require_admin)):
    return lecturer_views(db, db.query(Lecturer).order_by(Lecturer.id).all())


@router.post("", status_code=status.HTTP_201_CREATED)
def create_lecturer(
    body: schemas.LecturerCreate,
    request: Request,
    db: Session = Depends(get_db),
    _: Identity = Depends(require_admin),
):
    lecturer = accounts.create_lecturer(db, body, request.app.state.settings.bcrypt_rounds)
    return lecturer_view(db, lecturer)


# ─── Self service ─────────────────────────────────────────────────────────────

@router.get("/me")
def get_me(db: Session = Depends(get_db), identity: Identity = Depends(require_lecturer)):
    return lecturer_view(db, crud.require_lecturer_profile(db, identity.id))


@router.put("/me")
def update_me(
    body: schemas.LecturerUpdate,
    db: Session = Depends(get_db),
    identity: Identity = Depends(require_lecturer),
):
    lecturer = crud.require_lecturer_profile(db, identity.id)
    lecturer = accounts.update_lecturer(db, lecturer, body)
    return {"message": "Profile updated", "lecturer": lecturer_view(db, lecturer)}


@router.put("/me/password")
def change_my_password(
    body: schemas.PasswordChange,
    request: Request,
    db: Session = Depends(get_db),
    identity: Identity = Depends(require_lecturer),
):
    user = crud.require_user(db, identity.id)
    accounts.change_password(db, user, body, request.app.state.settings.bcrypt_rounds)
    return {"message": "Password updated successfully"}


# ─── Admin by id ──────────────────────────────────────────────────────────────

@router.get("/{lecturer_id}")
def get_lecturer(lecturer_id: int, db: Session = Depends(get_db), _: Identity = Depends(require_admin)):
    return lecturer_view(db, crud.require_lecturer(db, lecturer_id))


@router.put("/{lecturer_id}")
def update_lecturer(
    lecturer_id: int,
    body: schemas.LecturerUpdate,
    db: Session = Depends(get_db),
    _: Identity = Depends(require_admin),
):
    lecturer = accounts.update_lecturer(db, crud.require_lecturer(db, lecturer_id), body)
    return {"message": "Lecturer updated successfully", "lecturer": lecturer_view(db, lecturer)}


@router.delete("/{lecturer_id}")
def delete_lecturer(lecturer_id: int, db: Session = Depends(get_db), _: Identity = Depends(require_admin)):
    accounts.delete_lecturer(db, lecturer_id)
    return {"message": "Lecturer and linked user deleted successfully"}


@router.patch("/{lecturer_id}/assign-class")
def assign_class(
    lecturer_id: int,
    body: schemas.ClassLink,
    db: Session = Depends(get_db),
    _: Identity = Depends(require_admin),
):
    lecturer, classroom = relationships.assign_lecturer_to_classroom(db, lecturer_id, body.class_id)
    return {
        "message": "Class assigned to lecturer successfully",
        "lecturer": lecturer_view(db, lecturer),
        "classroom": classroom_view(db, classroom),
    }


@router.patch("/{lecturer_id}/remove-class")
def remove_class(
    lecturer_id: int,
    body: schemas.ClassLink,
    db: Session = Depends(get_db),
    _: Identity = Depends(require_admin),
):
    lecturer, classroom = relationships.remove_class_from_lecturer(db, lecturer_id, body.class_id)
    return {
        "message": "Class removed from lecturer",
        "lecturer": lecturer_view(db, lecturer),
        "classroom": classroom_view(db, classroom) if classroom else None,
    }


@router.get("/{lecturer_id}/class/{class_id}/students")
def list_class_students(
    lecturer_id: int,
    class_id: int,
    db: Session = Depends(get_db),
    identity: Identity = Depends(require_lecturer),
):
    """Roster of a class; the lecturer must be the caller and assigned to it."""
    lecturer = crud.require_lecturer(db, lecturer_id)
    if lecturer.user_id != identity.id or class_id not in (lecturer.assigned_class_ids or []):
        raise Forbidden("Forbidden: not assigned to this class")

    classroom = crud.require_classroom(db, class_id)
    return student_views(db, crud.get_students_by_ids(db, classroom.student_ids or []))
