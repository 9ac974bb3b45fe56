"""
Course API endpoints
Any authenticated user can read; only admins write.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from auth.dependencies import Identity, get_current_identity, require_admin
from database import crud, schemas
from database.database import get_db
from database.models import Classroom, Course, Student
from services.errors import ConflictError
from services.projections import course_view

router = APIRouter(prefix="/courses", tags=["courses"])


def _commit_course(db: Session, course: Course) -> Course:
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictError("Course already exists")
    db.refresh(course)
    return course


@router.post("", status_code=status.HTTP_201_CREATED)
def create_course(body: schemas.CourseCreate, db: Session = Depends(get_db), _: Identity = Depends(require_admin)):
    """Course titles must be unique"""
    if crud.get_course_by_title(db, body.title):
        raise ConflictError("Course already exists")

    course = Course(**body.model_dump())
    db.add(course)
    return course_view(_commit_course(db, course))


@router.get("")
def list_courses(db: Session = Depends(get_db), _: Identity = Depends(get_current_identity)):
    return [course_view(c) for c in db.query(Course).order_by(Course.id).all()]


@router.get("/{course_id}")
def get_course(course_id: int, db: Session = Depends(get_db), _: Identity = Depends(get_current_identity)):
    return course_view(crud.require_course(db, course_id))


@router.put("/{course_id}")
def update_course(
    course_id: int,
    body: schemas.CourseUpdate,
    db: Session = Depends(get_db),
    _: Identity = Depends(require_admin),
):
    course = crud.require_course(db, course_id)
    data = body.model_dump(exclude_unset=True)

    if data.get("title") and data["title"] != course.title:
        other = crud.get_course_by_title(db, data["title"])
        if other is not None and other.id != course.id:
            raise ConflictError("Course already exists")
    if data.get("class_id"):
        crud.require_classroom(db, data["class_id"])

    for field, value in data.items():
        if value is None and field in ("title", "credits", "description"):
            continue
        setattr(course, field, value)
    return course_view(_commit_course(db, course))


@router.delete("/{course_id}")
def delete_course(course_id: int, db: Session = Depends(get_db), _: Identity = Depends(require_admin)):
    """Refused while classrooms or students still reference the course."""
    course = crud.require_course(db, course_id)

    in_use = (
        db.query(Classroom).filter(Classroom.course_id == course.id).count()
        + db.query(Student).filter(Student.course_id == course.id).count()
    )
    if in_use:
        raise ConflictError("Course is still referenced by classrooms or students")

    db.delete(course)
    db.commit()
    return {"message": "Course deleted"}
