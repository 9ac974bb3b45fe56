"""
Integrity audit for the reference pairs kept by services/relationships.py.

audit() lists every broken pair; repair() fixes the ones that have an
unambiguous answer by re-applying idempotent adds/removes. A stale
assigned lecturer (still existing, no longer teaching the classroom) is
reported but never rewritten.
"""

import logging
from dataclasses import asdict, dataclass
from typing import List

from sqlalchemy.orm import Session

from database.models import Classroom, Lecturer, Student, User
from services.relationships import with_id, without_id

log = logging.getLogger(__name__)

REPAIRABLE = {
    "classroom_lecturer_missing",
    "lecturer_backref_missing",
    "lecturer_classroom_missing",
    "classroom_backref_missing",
    "classroom_student_missing",
    "student_class_mismatch",
    "student_classroom_missing",
    "student_backref_missing",
    "assigned_lecturer_missing",
}


@dataclass
class Issue:
    kind: str
    entity: str
    entity_id: int
    ref_id: int

    @property
    def repairable(self) -> bool:
        return self.kind in REPAIRABLE

    def to_dict(self) -> dict:
        data = asdict(self)
        data["repairable"] = self.repairable
        return data


def audit(db: Session) -> List[Issue]:
    classrooms = {c.id: c for c in db.query(Classroom).all()}
    lecturers = {l.id: l for l in db.query(Lecturer).all()}
    students = {s.id: s for s in db.query(Student).all()}
    user_ids = {u_id for (u_id,) in db.query(User.id).all()}

    issues: List[Issue] = []

    for c in classrooms.values():
        for lid in c.lecturer_ids or []:
            lecturer = lecturers.get(lid)
            if lecturer is None:
                issues.append(Issue("classroom_lecturer_missing", "classroom", c.id, lid))
            elif c.id not in (lecturer.assigned_class_ids or []):
                issues.append(Issue("lecturer_backref_missing", "lecturer", lid, c.id))
        for sid in c.student_ids or []:
            student = students.get(sid)
            if student is None:
                issues.append(Issue("classroom_student_missing", "classroom", c.id, sid))
            elif student.class_id != c.id:
                issues.append(Issue("student_class_mismatch", "classroom", c.id, sid))

    for l in lecturers.values():
        if l.user_id not in user_ids:
            issues.append(Issue("lecturer_user_missing", "lecturer", l.id, l.user_id))
        for cid in l.assigned_class_ids or []:
            classroom = classrooms.get(cid)
            if classroom is None:
                issues.append(Issue("lecturer_classroom_missing", "lecturer", l.id, cid))
            elif l.id not in (classroom.lecturer_ids or []):
                issues.append(Issue("classroom_backref_missing", "classroom", cid, l.id))

    for s in students.values():
        if s.user_id is not None and s.user_id not in user_ids:
            issues.append(Issue("student_user_missing", "student", s.id, s.user_id))
        if s.class_id is not None:
            classroom = classrooms.get(s.class_id)
            if classroom is None:
                issues.append(Issue("student_classroom_missing", "student", s.id, s.class_id))
            elif s.id not in (classroom.student_ids or []):
                issues.append(Issue("student_backref_missing", "classroom", s.class_id, s.id))
        if s.assigned_lecturer_id is not None:
            if s.assigned_lecturer_id not in lecturers:
                issues.append(Issue("assigned_lecturer_missing", "student", s.id, s.assigned_lecturer_id))
            else:
                classroom = classrooms.get(s.class_id)
                if classroom is None or s.assigned_lecturer_id not in (classroom.lecturer_ids or []):
                    issues.append(Issue("assigned_lecturer_stale", "student", s.id, s.assigned_lecturer_id))

    return issues


def repair(db: Session) -> List[Issue]:
    """Fix every repairable issue; returns the issues that were fixed."""
    fixed = []
    for issue in audit(db):
        if not issue.repairable:
            continue

        if issue.kind in ("classroom_lecturer_missing",):
            c = db.get(Classroom, issue.entity_id)
            c.lecturer_ids = without_id(c.lecturer_ids, issue.ref_id)
        elif issue.kind == "lecturer_backref_missing":
            l = db.get(Lecturer, issue.entity_id)
            l.assigned_class_ids = with_id(l.assigned_class_ids, issue.ref_id)
        elif issue.kind == "lecturer_classroom_missing":
            l = db.get(Lecturer, issue.entity_id)
            l.assigned_class_ids = without_id(l.assigned_class_ids, issue.ref_id)
        elif issue.kind == "classroom_backref_missing":
            c = db.get(Classroom, issue.entity_id)
            c.lecturer_ids = with_id(c.lecturer_ids, issue.ref_id)
        elif issue.kind in ("classroom_student_missing", "student_class_mismatch"):
            # student.class_id is authoritative for placement
            c = db.get(Classroom, issue.entity_id)
            c.student_ids = without_id(c.student_ids, issue.ref_id)
        elif issue.kind == "student_classroom_missing":
            s = db.get(Student, issue.entity_id)
            s.class_id = None
        elif issue.kind == "student_backref_missing":
            c = db.get(Classroom, issue.entity_id)
            c.student_ids = with_id(c.student_ids, issue.ref_id)
        elif issue.kind == "assigned_lecturer_missing":
            s = db.get(Student, issue.entity_id)
            s.assigned_lecturer_id = None

        # flush so the next in-memory list update builds on this one
        db.flush()
        fixed.append(issue)

    db.commit()
    if fixed:
        log.warning("Integrity repair fixed %d issue(s)", len(fixed))
    return fixed
