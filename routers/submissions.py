"""
Task submission endpoints
"""

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from auth.dependencies import Identity, get_current_identity, require_roles
from database import schemas
from database.database import get_db
from database.models import Role
from services.projections import submission_view, submission_views
from services.submissions import task_submissions

router = APIRouter(prefix="/submissions", tags=["submissions"])

require_grader = require_roles(Role.LECTURER, Role.ADMIN)


@router.post("/{task_id}")
def submit_task(
    task_id: int,
    body: schemas.AnswerSubmit,
    response: Response,
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
):
    """First answer creates the submission (201); later answers overwrite it (200)."""
    submission, created = task_submissions.submit(db, task_id, identity.id, body.answer)
    response.status_code = status.HTTP_201_CREATED if created else status.HTTP_200_OK
    return {
        "message": "Submission created" if created else "Submission updated",
        "submission": submission_view(db, submission, task_submissions),
    }


@router.get("/my")
def list_my_submissions(db: Session = Depends(get_db), identity: Identity = Depends(get_current_identity)):
    subs = task_submissions.list_mine(db, identity)
    return submission_views(db, subs, task_submissions)


@router.get("/task/{task_id}")
def list_task_submissions(task_id: int, db: Session = Depends(get_db),
                          identity: Identity = Depends(get_current_identity)):
    subs = task_submissions.list_for_work(db, task_id, identity)
    return submission_views(db, subs, task_submissions)


@router.get("/{submission_id}")
def get_submission(submission_id: int, db: Session = Depends(get_db),
                   identity: Identity = Depends(get_current_identity)):
    submission = task_submissions.get_one(db, submission_id, identity)
    return submission_view(db, submission, task_submissions)


@router.put("/{submission_id}/grade")
def grade_submission(
    submission_id: int,
    body: schemas.GradeRequest,
    db: Session = Depends(get_db),
    identity: Identity = Depends(require_grader),
):
    submission = task_submissions.grade(db, submission_id, body.grade, body.feedback, identity)
    return {"message": "Submission graded", "submission": submission_view(db, submission, task_submissions)}
