"""
Student profile endpoints.
Creating or re-coursing a student goes through course resolution, which
picks the classroom and assigned lecturer and updates the classroom roster.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from auth.dependencies import (
    Identity, get_current_identity, require_admin, require_lecturer,
)
from database import crud, schemas
from database.database import get_db
from database.models import Student
from services import accounts
from services.errors import NotFound
from services.projections import student_view, student_views

router = APIRouter(prefix="/students", tags=["students"])


@router.post("", status_code=status.HTTP_201_CREATED)
def create_student(
    body: schemas.StudentCreate,
    db: Session = Depends(get_db),
    _: Identity = Depends(require_admin),
):
    student = accounts.create_student_profile(db, body)
    return student_view(db, student)


@router.get("")
def list_students(db: Session = Depends(get_db), _: Identity = Depends(require_admin)):
    return student_views(db, db.query(Student).order_by(Student.id).all())


# ─── Self views (declared before /{student_id}) ───────────────────────────────

@router.get("/me")
def get_my_profile(db: Session = Depends(get_db), identity: Identity = Depends(get_current_identity)):
    student = crud.get_student_by_user(db, identity.id)
    if student is None:
        raise NotFound("Student not found")
    return student_view(db, student)


@router.get("/my-students")
def get_my_students(db: Session = Depends(get_db), identity: Identity = Depends(require_lecturer)):
    """Students whose assigned lecturer is the caller."""
    lecturer = crud.get_lecturer_by_user(db, identity.id)
    if lecturer is None:
        raise NotFound("Lecturer not found")

    students = (
        db.query(Student)
        .filter(Student.assigned_lecturer_id == lecturer.id)
        .order_by(Student.id)
        .all()
    )
    if not students:
        raise NotFound("No students found for this lecturer.")
    return student_views(db, students)


# ─── Admin by id ──────────────────────────────────────────────────────────────

@router.get("/{student_id}")
def get_student(student_id: int, db: Session = Depends(get_db), _: Identity = Depends(require_admin)):
    return student_view(db, crud.require_student(db, student_id))


@router.put("/{student_id}")
def update_student(
    student_id: int,
    body: schemas.StudentUpdate,
    db: Session = Depends(get_db),
    _: Identity = Depends(require_admin),
):
    student = accounts.update_student(db, student_id, body)
    return student_view(db, student)


@router.delete("/{student_id}")
def delete_student(student_id: int, db: Session = Depends(get_db), _: Identity = Depends(require_admin)):
    accounts.delete_student(db, student_id)
    return {"message": "Student deleted successfully"}
