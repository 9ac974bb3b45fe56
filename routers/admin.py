"""
Admin dashboard and maintenance endpoints.
"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from auth.dependencies import Identity, require_admin
from database.database import get_db
from database.models import Classroom, Course, Lecturer, Student, Submission, Task
from database import schemas
from services import integrity, relationships
from services.projections import (
    classroom_view, lecturer_view, student_view, student_views, task_views,
)

log = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/reports")
def get_reports(db: Session = Depends(get_db), _: Identity = Depends(require_admin)):
    """Entity counts plus the five newest students and tasks."""
    stats = {
        "students": db.query(Student).count(),
        "lecturers": db.query(Lecturer).count(),
        "courses": db.query(Course).count(),
        "classes": db.query(Classroom).count(),
        "tasks": db.query(Task).count(),
        "submissions": db.query(Submission).count(),
    }
    latest_students = db.query(Student).order_by(Student.id.desc()).limit(5).all()
    latest_tasks = db.query(Task).order_by(Task.id.desc()).limit(5).all()

    return {
        "stats": stats,
        "latest_students": student_views(db, latest_students),
        "latest_tasks": task_views(db, latest_tasks),
    }


@router.patch("/classrooms/{classroom_id}/assign-lecturer")
def assign_lecturer(
    classroom_id: int,
    body: schemas.LecturerLink,
    db: Session = Depends(get_db),
    _: Identity = Depends(require_admin),
):
    lecturer, classroom = relationships.assign_lecturer_to_classroom(db, body.lecturer_id, classroom_id)
    return {"classroom": classroom_view(db, classroom), "lecturer": lecturer_view(db, lecturer)}


@router.patch("/classrooms/{classroom_id}/add-student")
def add_student(
    classroom_id: int,
    body: schemas.StudentLink,
    db: Session = Depends(get_db),
    _: Identity = Depends(require_admin),
):
    student, classroom = relationships.add_student_to_classroom(db, classroom_id, body.student_id)
    return {
        "message": "Student added",
        "classroom": classroom_view(db, classroom),
        "student": student_view(db, student),
    }


# ─── Integrity ────────────────────────────────────────────────────────────────

@router.get("/integrity")
def audit_integrity(db: Session = Depends(get_db), _: Identity = Depends(require_admin)):
    issues = integrity.audit(db)
    return {"ok": not issues, "issues": [i.to_dict() for i in issues]}


@router.post("/integrity/repair")
def repair_integrity(db: Session = Depends(get_db), identity: Identity = Depends(require_admin)):
    fixed = integrity.repair(db)
    log.info("Integrity repair requested by user %s", identity.id)
    remaining = integrity.audit(db)
    return {
        "repaired": len(fixed),
        "fixed": [i.to_dict() for i in fixed],
        "remaining": [i.to_dict() for i in remaining],
    }
