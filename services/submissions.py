"""
Submission lifecycle: Unsubmitted -> Submitted -> (Resubmitted)* -> Graded.

One row per (work, student). Submitting again overwrites answer and
submitted_at in place; grading can be repeated and a later resubmission
keeps the previous grade. The same rules serve Tasks (Submission rows) and
Assignments (AssignmentSubmission rows).
"""

import logging
from datetime import datetime
from typing import List, Optional, Tuple, Type

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from auth.dependencies import Identity
from database import crud
from database.models import (
    Assignment, AssignmentSubmission, Role, Submission, Task,
)
from services.clock import as_utc, now_utc
from services.errors import (
    ConflictError, DeadlineExceeded, Forbidden, NotFound, ValidationError,
)

log = logging.getLogger(__name__)

MIN_GRADE = 0
MAX_GRADE = 100


class SubmissionLifecycle:
    """Submission rules for one kind of work item (task or assignment)."""

    def __init__(self, work_model: Type, submission_model: Type, work_key: str, label: str):
        self.work_model = work_model
        self.submission_model = submission_model
        self.work_key = work_key
        self.label = label

    # ─── lookups ──────────────────────────────────────────────────────────────

    def get_work(self, db: Session, work_id: int):
        return db.query(self.work_model).filter(self.work_model.id == work_id).first()

    def require_work(self, db: Session, work_id: int):
        work = self.get_work(db, work_id)
        if work is None:
            raise NotFound(f"{self.label} not found")
        return work

    def work_id_of(self, submission) -> int:
        return getattr(submission, self.work_key)

    def _find(self, db: Session, work_id: int, student_id: int):
        column = getattr(self.submission_model, self.work_key)
        return (
            db.query(self.submission_model)
            .filter(column == work_id, self.submission_model.student_id == student_id)
            .first()
        )

    def require_submission(self, db: Session, submission_id: int):
        submission = (
            db.query(self.submission_model)
            .filter(self.submission_model.id == submission_id)
            .first()
        )
        if submission is None:
            raise NotFound("Submission not found")
        return submission

    def owner_user_id(self, db: Session, work) -> Optional[int]:
        """User id of the lecturer who owns the work item."""
        if work is None:
            return None
        lecturer = crud.get_lecturer(db, work.lecturer_id)
        return lecturer.user_id if lecturer else None

    def can_manage(self, db: Session, work, identity: Identity) -> bool:
        return identity.is_admin or self.owner_user_id(db, work) == identity.id

    # ─── operations ───────────────────────────────────────────────────────────

    def submit(self, db: Session, work_id: int, student_id: int, answer: Optional[str],
               now: Optional[datetime] = None) -> Tuple[object, bool]:
        """Create or overwrite the (work, student) submission. Returns (row, created)."""
        if answer is None or not answer.strip():
            raise ValidationError("Answer is required")

        work = self.require_work(db, work_id)
        now = now or now_utc()
        if work.deadline is not None and now > as_utc(work.deadline):
            raise DeadlineExceeded()

        answer = answer.strip()
        existing = self._find(db, work_id, student_id)
        if existing is not None:
            return self._overwrite(db, existing, answer, now), False

        submission = self.submission_model(
            student_id=student_id, answer=answer, submitted_at=now, **{self.work_key: work_id}
        )
        db.add(submission)
        try:
            db.commit()
        except IntegrityError:
            # Lost a race with a concurrent first submission: update that row instead
            db.rollback()
            log.warning("Concurrent first submission for %s %s by %s; updating existing row",
                        self.label, work_id, student_id)
            existing = self._find(db, work_id, student_id)
            if existing is None:
                raise ConflictError("Submission already exists, please retry")
            return self._overwrite(db, existing, answer, now), False

        db.refresh(submission)
        log.info("%s %s: submission %s created by user %s", self.label, work_id, submission.id, student_id)
        return submission, True

    def _overwrite(self, db: Session, submission, answer: str, now: datetime):
        submission.answer = answer
        submission.submitted_at = now
        db.commit()
        db.refresh(submission)
        log.info("Submission %s resubmitted", submission.id)
        return submission

    def grade(self, db: Session, submission_id: int, grade: Optional[int],
              feedback: Optional[str], grader: Identity):
        submission = self.require_submission(db, submission_id)
        work = self.get_work(db, self.work_id_of(submission))

        if not self.can_manage(db, work, grader):
            raise Forbidden("Not authorized to grade this submission")

        if grade is not None and not (MIN_GRADE <= grade <= MAX_GRADE):
            raise ValidationError(
                f"Grade must be between {MIN_GRADE} and {MAX_GRADE}",
                context={"grade": grade},
            )

        if grade is not None:
            submission.grade = grade
        if feedback is not None:
            submission.feedback = feedback
        submission.graded_at = now_utc()
        submission.graded_by = grader.id
        db.commit()
        db.refresh(submission)

        log.info("Submission %s graded by user %s (grade=%s)", submission.id, grader.id, submission.grade)
        return submission

    def list_for_work(self, db: Session, work_id: int, requester: Identity) -> List:
        work = self.require_work(db, work_id)
        if requester.role is Role.STUDENT or not self.can_manage(db, work, requester):
            raise Forbidden("Not authorized to view submissions")

        column = getattr(self.submission_model, self.work_key)
        return (
            db.query(self.submission_model)
            .filter(column == work_id)
            .order_by(self.submission_model.submitted_at.desc())
            .all()
        )

    def get_one(self, db: Session, submission_id: int, requester: Identity):
        submission = self.require_submission(db, submission_id)

        if submission.student_id == requester.id or requester.is_admin:
            return submission
        work = self.get_work(db, self.work_id_of(submission))
        if self.owner_user_id(db, work) == requester.id:
            return submission
        raise Forbidden("Not authorized to view this submission")

    def list_mine(self, db: Session, requester: Identity) -> List:
        return (
            db.query(self.submission_model)
            .filter(self.submission_model.student_id == requester.id)
            .order_by(self.submission_model.submitted_at.desc())
            .all()
        )

    def delete_for_work(self, db: Session, work_id: int) -> int:
        """Remove every submission of a work item (used when the item itself is deleted)."""
        column = getattr(self.submission_model, self.work_key)
        return db.query(self.submission_model).filter(column == work_id).delete(synchronize_session=False)


def is_late(submission, work) -> bool:
    if work is None or work.deadline is None:
        return False
    return as_utc(submission.submitted_at) > as_utc(work.deadline)


task_submissions = SubmissionLifecycle(Task, Submission, "task_id", "Task")
assignment_submissions = SubmissionLifecycle(Assignment, AssignmentSubmission, "assignment_id", "Assignment")
