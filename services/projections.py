"""
Read-side joins.
Each view is assembled from a fixed set of batched lookups (no open-ended
traversal): load the rows, collect the referenced ids, fetch them with one
IN-query per entity type, then build plain dicts for the JSON response.
"""

import math
from typing import Dict, Iterable, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from database import crud
from database.models import (
    Classroom, Course, Lecturer, Student, Submission, Task, User,
)
from services.clock import as_utc, now_utc
from services.submissions import SubmissionLifecycle, is_late


def _by_id(rows: Iterable) -> Dict[int, object]:
    return {row.id: row for row in rows}


# ─── Users ────────────────────────────────────────────────────────────────────

def user_public(user: Optional[User]) -> Optional[dict]:
    if user is None:
        return None
    return {"id": user.id, "name": user.name, "email": user.email, "role": user.role}


def _user_brief(user: Optional[User]) -> Optional[dict]:
    if user is None:
        return None
    return {"id": user.id, "name": user.name, "email": user.email}


# ─── Courses ──────────────────────────────────────────────────────────────────

def course_view(course: Course) -> dict:
    return {
        "id": course.id,
        "title": course.title,
        "code": course.code,
        "description": course.description,
        "credits": course.credits,
        "class_id": course.class_id,
        "display_name": course.display_name,
        "created_at": course.created_at,
    }


def course_brief(course: Optional[Course]) -> Optional[dict]:
    if course is None:
        return None
    return {"id": course.id, "title": course.title, "code": course.code}


def _classroom_brief(classroom: Optional[Classroom]) -> Optional[dict]:
    if classroom is None:
        return None
    return {"id": classroom.id, "class_name": classroom.class_name}


# ─── Lecturers ────────────────────────────────────────────────────────────────

def _lecturer_brief(lecturer: Optional[Lecturer], users: Dict[int, User]) -> Optional[dict]:
    if lecturer is None:
        return None
    return {
        "id": lecturer.id,
        "department": lecturer.department,
        "user": _user_brief(users.get(lecturer.user_id)),
    }


def lecturer_views(db: Session, lecturers: List[Lecturer]) -> List[dict]:
    users = _by_id(crud.get_users_by_ids(db, [l.user_id for l in lecturers]))
    class_ids = [cid for l in lecturers for cid in (l.assigned_class_ids or [])]
    classrooms = _by_id(crud.get_classrooms_by_ids(db, class_ids))

    views = []
    for lecturer in lecturers:
        view = _lecturer_brief(lecturer, users)
        view["assigned_classes"] = [
            _classroom_brief(classrooms[cid])
            for cid in (lecturer.assigned_class_ids or [])
            if cid in classrooms
        ]
        views.append(view)
    return views


def lecturer_view(db: Session, lecturer: Lecturer) -> dict:
    return lecturer_views(db, [lecturer])[0]


# ─── Students ─────────────────────────────────────────────────────────────────

def student_views(db: Session, students: List[Student]) -> List[dict]:
    courses = _by_id(crud.get_courses_by_ids(db, [s.course_id for s in students]))
    classrooms = _by_id(crud.get_classrooms_by_ids(db, [s.class_id for s in students if s.class_id]))
    lecturers = _by_id(crud.get_lecturers_by_ids(
        db, [s.assigned_lecturer_id for s in students if s.assigned_lecturer_id]
    ))
    users = _by_id(crud.get_users_by_ids(db, [l.user_id for l in lecturers.values()]))

    return [
        {
            "id": s.id,
            "user_id": s.user_id,
            "name": s.name,
            "email": s.email,
            "age": s.age,
            "enrolled_at": s.enrolled_at,
            "course": course_brief(courses.get(s.course_id)),
            "class": _classroom_brief(classrooms.get(s.class_id)),
            "assigned_lecturer": _lecturer_brief(lecturers.get(s.assigned_lecturer_id), users),
        }
        for s in students
    ]


def student_view(db: Session, student: Student) -> dict:
    return student_views(db, [student])[0]


# ─── Classrooms ───────────────────────────────────────────────────────────────

def classroom_views(db: Session, classrooms: List[Classroom]) -> List[dict]:
    courses = _by_id(crud.get_courses_by_ids(db, [c.course_id for c in classrooms]))
    lecturers = _by_id(crud.get_lecturers_by_ids(
        db, [lid for c in classrooms for lid in (c.lecturer_ids or [])]
    ))
    users = _by_id(crud.get_users_by_ids(db, [l.user_id for l in lecturers.values()]))
    students = _by_id(crud.get_students_by_ids(
        db, [sid for c in classrooms for sid in (c.student_ids or [])]
    ))

    return [
        {
            "id": c.id,
            "class_name": c.class_name,
            "course": course_brief(courses.get(c.course_id)),
            "lecturers": [
                _lecturer_brief(lecturers[lid], users)
                for lid in (c.lecturer_ids or []) if lid in lecturers
            ],
            "students": [
                {"id": students[sid].id, "name": students[sid].name, "email": students[sid].email}
                for sid in (c.student_ids or []) if sid in students
            ],
            "created_at": c.created_at,
        }
        for c in classrooms
    ]


def classroom_view(db: Session, classroom: Classroom) -> dict:
    return classroom_views(db, [classroom])[0]


# ─── Tasks and assignments ────────────────────────────────────────────────────

def _days_until(deadline) -> Optional[int]:
    if deadline is None:
        return None
    seconds = (as_utc(deadline) - now_utc()).total_seconds()
    return math.ceil(seconds / 86400)


def _work_context(db: Session, items: List) -> tuple:
    classrooms = _by_id(crud.get_classrooms_by_ids(db, [i.class_id for i in items]))
    courses = _by_id(crud.get_courses_by_ids(db, [c.course_id for c in classrooms.values()]))
    lecturers = _by_id(crud.get_lecturers_by_ids(db, [i.lecturer_id for i in items]))
    users = _by_id(crud.get_users_by_ids(db, [l.user_id for l in lecturers.values()]))
    return classrooms, courses, lecturers, users


def _class_with_course(classroom: Optional[Classroom], courses: Dict[int, Course]) -> Optional[dict]:
    if classroom is None:
        return None
    course = courses.get(classroom.course_id)
    return {
        "id": classroom.id,
        "class_name": classroom.class_name,
        "course": {"id": course.id, "title": course.title} if course else None,
    }


def task_views(db: Session, tasks: List[Task]) -> List[dict]:
    classrooms, courses, lecturers, users = _work_context(db, tasks)
    counts = {}
    if tasks:
        counts = dict(
            db.query(Submission.task_id, func.count(Submission.id))
            .filter(Submission.task_id.in_([t.id for t in tasks]))
            .group_by(Submission.task_id)
            .all()
        )

    now = now_utc()
    return [
        {
            "id": t.id,
            "title": t.title,
            "description": t.description,
            "instructions": t.instructions,
            "deadline": t.deadline,
            "max_grade": t.max_grade,
            "is_active": t.is_active,
            "class": _class_with_course(classrooms.get(t.class_id), courses),
            "lecturer": _lecturer_brief(lecturers.get(t.lecturer_id), users),
            "is_overdue": t.deadline is not None and now > as_utc(t.deadline),
            "days_until_deadline": _days_until(t.deadline),
            "submission_count": counts.get(t.id, 0),
            "created_at": t.created_at,
            "updated_at": t.updated_at,
        }
        for t in tasks
    ]


def task_view(db: Session, task: Task) -> dict:
    return task_views(db, [task])[0]


def assignment_views(db: Session, assignments: List) -> List[dict]:
    classrooms, courses, lecturers, users = _work_context(db, assignments)
    return [
        {
            "id": a.id,
            "title": a.title,
            "description": a.description,
            "deadline": a.deadline,
            "class": _class_with_course(classrooms.get(a.class_id), courses),
            "lecturer": _lecturer_brief(lecturers.get(a.lecturer_id), users),
            "created_at": a.created_at,
        }
        for a in assignments
    ]


def assignment_view(db: Session, assignment) -> dict:
    return assignment_views(db, [assignment])[0]


# ─── Submissions ──────────────────────────────────────────────────────────────

def submission_views(db: Session, submissions: List, lifecycle: SubmissionLifecycle) -> List[dict]:
    work_ids = {lifecycle.work_id_of(s) for s in submissions}
    works = _by_id(
        db.query(lifecycle.work_model).filter(lifecycle.work_model.id.in_(work_ids)).all()
    ) if work_ids else {}
    users = _by_id(crud.get_users_by_ids(db, [s.student_id for s in submissions]))

    key = lifecycle.label.lower()
    views = []
    for s in submissions:
        work = works.get(lifecycle.work_id_of(s))
        views.append({
            "id": s.id,
            key: {
                "id": work.id,
                "title": work.title,
                "description": work.description,
                "deadline": work.deadline,
                "class_id": work.class_id,
            } if work else None,
            "student": _user_brief(users.get(s.student_id)),
            "answer": s.answer,
            "submitted_at": s.submitted_at,
            "grade": s.grade,
            "feedback": s.feedback,
            "graded_at": s.graded_at,
            "graded_by": s.graded_by,
            "is_graded": s.is_graded,
            "is_late": is_late(s, work),
            "created_at": s.created_at,
            "updated_at": s.updated_at,
        })
    return views


def submission_view(db: Session, submission, lifecycle: SubmissionLifecycle) -> dict:
    return submission_views(db, [submission], lifecycle)[0]
