"""
Classroom API endpoints (admin only).
Member lists are never written directly: creation and updates go through
the relationship service so lecturer and student back-references follow.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from auth.dependencies import Identity, require_admin
from database import crud, schemas
from database.database import get_db
from database.models import Classroom
from services import relationships
from services.projections import classroom_view, classroom_views

log = logging.getLogger(__name__)

router = APIRouter(prefix="/classrooms", tags=["classrooms"])


@router.post("", status_code=status.HTTP_201_CREATED)
def create_classroom(
    body: schemas.ClassroomCreate,
    db: Session = Depends(get_db),
    _: Identity = Depends(require_admin),
):
    crud.require_course(db, body.course_id)

    classroom = Classroom(class_name=body.class_name, course_id=body.course_id,
                          student_ids=[], lecturer_ids=[])
    db.add(classroom)
    db.commit()
    db.refresh(classroom)
    log.info("Created classroom %s for course %s", classroom.id, classroom.course_id)

    if body.lecturer_ids or body.student_ids:
        classroom = relationships.set_classroom_members(
            db, classroom, lecturer_ids=body.lecturer_ids, student_ids=body.student_ids
        )
    return classroom_view(db, classroom)


@router.get("")
def list_classrooms(
    course: Optional[int] = Query(None, description="Only classrooms of this course"),
    db: Session = Depends(get_db),
    _: Identity = Depends(require_admin),
):
    query = db.query(Classroom)
    if course is not None:
        query = query.filter(Classroom.course_id == course)
    return classroom_views(db, query.order_by(Classroom.id).all())


@router.get("/{classroom_id}")
def get_classroom(classroom_id: int, db: Session = Depends(get_db), _: Identity = Depends(require_admin)):
    return classroom_view(db, crud.require_classroom(db, classroom_id))


@router.put("/{classroom_id}")
def update_classroom(
    classroom_id: int,
    body: schemas.ClassroomUpdate,
    db: Session = Depends(get_db),
    _: Identity = Depends(require_admin),
):
    classroom = crud.require_classroom(db, classroom_id)
    data = body.model_dump(exclude_unset=True)

    if data.get("course_id"):
        crud.require_course(db, data["course_id"])
        classroom.course_id = data["course_id"]
    if data.get("class_name"):
        classroom.class_name = data["class_name"]
    db.commit()

    classroom = relationships.set_classroom_members(
        db, classroom,
        lecturer_ids=data.get("lecturer_ids"),
        student_ids=data.get("student_ids"),
    )
    return classroom_view(db, classroom)


@router.delete("/{classroom_id}")
def delete_classroom(classroom_id: int, db: Session = Depends(get_db), _: Identity = Depends(require_admin)):
    classroom = crud.require_classroom(db, classroom_id)
    relationships.detach_classroom(db, classroom)
    db.delete(classroom)
    db.commit()
    log.info("Deleted classroom %s", classroom_id)
    return {"message": "Classroom deleted"}
