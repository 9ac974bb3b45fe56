"""
Assignment API endpoints
Assignments are lighter tasks; their submissions follow the same lifecycle
(one row per student, deadline enforced, owner or admin grades).
"""

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from auth.dependencies import (
    Identity, get_current_identity, require_lecturer, require_roles, require_student,
)
from database import crud, schemas
from database.database import get_db
from database.models import Assignment, Role
from services.clock import as_utc
from services.projections import assignment_view, assignment_views, submission_view, submission_views
from services.submissions import assignment_submissions

router = APIRouter(prefix="/assignments", tags=["assignments"])

require_grader = require_roles(Role.LECTURER, Role.ADMIN)


@router.post("", status_code=status.HTTP_201_CREATED)
def create_assignment(
    body: schemas.AssignmentCreate,
    db: Session = Depends(get_db),
    identity: Identity = Depends(require_lecturer),
):
    lecturer = crud.require_lecturer_profile(db, identity.id)
    crud.require_classroom(db, body.class_id)

    data = body.model_dump()
    data["deadline"] = as_utc(data["deadline"])
    assignment = Assignment(lecturer_id=lecturer.id, **data)
    db.add(assignment)
    db.commit()
    db.refresh(assignment)
    return assignment_view(db, assignment)


@router.get("/class/{class_id}")
def list_class_assignments(class_id: int, db: Session = Depends(get_db),
                           _: Identity = Depends(get_current_identity)):
    assignments = (
        db.query(Assignment)
        .filter(Assignment.class_id == class_id)
        .order_by(Assignment.deadline.is_(None), Assignment.deadline, Assignment.id)
        .all()
    )
    return assignment_views(db, assignments)


@router.get("/my")
def list_my_assignments(db: Session = Depends(get_db), identity: Identity = Depends(require_lecturer)):
    lecturer = crud.require_lecturer_profile(db, identity.id)
    assignments = (
        db.query(Assignment)
        .filter(Assignment.lecturer_id == lecturer.id)
        .order_by(Assignment.id.desc())
        .all()
    )
    return assignment_views(db, assignments)


@router.post("/{assignment_id}/submit")
def submit_assignment(
    assignment_id: int,
    body: schemas.AnswerSubmit,
    response: Response,
    db: Session = Depends(get_db),
    identity: Identity = Depends(require_student),
):
    submission, created = assignment_submissions.submit(db, assignment_id, identity.id, body.answer)
    response.status_code = status.HTTP_201_CREATED if created else status.HTTP_200_OK
    return submission_view(db, submission, assignment_submissions)


@router.get("/{assignment_id}/submissions")
def list_assignment_submissions(
    assignment_id: int,
    db: Session = Depends(get_db),
    identity: Identity = Depends(require_grader),
):
    subs = assignment_submissions.list_for_work(db, assignment_id, identity)
    return submission_views(db, subs, assignment_submissions)


@router.patch("/submissions/{submission_id}/grade")
def grade_assignment_submission(
    submission_id: int,
    body: schemas.GradeRequest,
    db: Session = Depends(get_db),
    identity: Identity = Depends(require_grader),
):
    submission = assignment_submissions.grade(db, submission_id, body.grade, body.feedback, identity)
    return submission_view(db, submission, assignment_submissions)
