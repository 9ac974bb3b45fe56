"""
Task API endpoints
Lecturers publish tasks to classrooms; students see the tasks of their own
classroom. Only the owning lecturer may change or delete a task.
"""

import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from auth.dependencies import Identity, get_current_identity, require_lecturer
from database import crud, schemas
from database.database import get_db
from database.models import Role, Task
from services.clock import as_utc
from services.errors import Forbidden
from services.projections import task_view, task_views
from services.submissions import task_submissions

log = logging.getLogger(__name__)

router = APIRouter(prefix="/tasks", tags=["tasks"])


def _by_deadline(query):
    # Tasks without a deadline sort last
    return query.order_by(Task.deadline.is_(None), Task.deadline, Task.id)


def _require_owned_task(db: Session, task_id: int, identity: Identity) -> Task:
    task = crud.require_task(db, task_id)
    lecturer = crud.get_lecturer_by_user(db, identity.id)
    if lecturer is None or task.lecturer_id != lecturer.id:
        raise Forbidden("Not authorized")
    return task


@router.get("")
def list_tasks(db: Session = Depends(get_db), identity: Identity = Depends(get_current_identity)):
    query = db.query(Task)
    if identity.role is Role.STUDENT:
        student = crud.get_student_by_user(db, identity.id)
        if student is None or student.class_id is None:
            return []
        query = query.filter(Task.class_id == student.class_id)
    return task_views(db, _by_deadline(query).all())


@router.get("/my")
def list_my_tasks(db: Session = Depends(get_db), identity: Identity = Depends(require_lecturer)):
    lecturer = crud.require_lecturer_profile(db, identity.id)
    tasks = (
        db.query(Task)
        .filter(Task.lecturer_id == lecturer.id)
        .order_by(Task.created_at.desc(), Task.id.desc())
        .all()
    )
    return task_views(db, tasks)


@router.post("", status_code=status.HTTP_201_CREATED)
def create_task(
    body: schemas.TaskCreate,
    db: Session = Depends(get_db),
    identity: Identity = Depends(require_lecturer),
):
    lecturer = crud.require_lecturer_profile(db, identity.id)
    crud.require_classroom(db, body.class_id)

    data = body.model_dump()
    data["deadline"] = as_utc(data["deadline"])
    task = Task(lecturer_id=lecturer.id, **data)
    db.add(task)
    db.commit()
    db.refresh(task)
    log.info("Lecturer %s created task %s for classroom %s", lecturer.id, task.id, task.class_id)
    return {"message": "Task created successfully", "task": task_view(db, task)}


@router.get("/{task_id}")
def get_task(task_id: int, db: Session = Depends(get_db), _: Identity = Depends(get_current_identity)):
    return task_view(db, crud.require_task(db, task_id))


@router.put("/{task_id}")
def update_task(
    task_id: int,
    body: schemas.TaskUpdate,
    db: Session = Depends(get_db),
    identity: Identity = Depends(require_lecturer),
):
    task = _require_owned_task(db, task_id, identity)
    data = body.model_dump(exclude_unset=True)
    if "deadline" in data:
        data["deadline"] = as_utc(data["deadline"])

    if data.get("class_id"):
        crud.require_classroom(db, data["class_id"])
    for field, value in data.items():
        # deadline and the free-text fields may be cleared, the rest may not
        if value is None and field not in ("deadline", "description", "instructions"):
            continue
        setattr(task, field, value)

    db.commit()
    db.refresh(task)
    return {"message": "Task updated successfully", "task": task_view(db, task)}


@router.delete("/{task_id}")
def delete_task(task_id: int, db: Session = Depends(get_db), identity: Identity = Depends(require_lecturer)):
    task = _require_owned_task(db, task_id, identity)

    removed = task_submissions.delete_for_work(db, task.id)
    db.delete(task)
    db.commit()
    log.info("Deleted task %s and %d submission(s)", task_id, removed)
    return {"message": "Task deleted successfully"}
