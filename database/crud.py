"""
Lookup helpers for the store.
get_* return None when absent; require_* raise NotFound with the message
the API reports.
"""

from typing import Iterable, List, Optional

from sqlalchemy.orm import Session

from database import models
from services.errors import NotFound


# ==========================================
# USERS
# ==========================================

def get_user(db: Session, user_id: int) -> Optional[models.User]:
    return db.query(models.User).filter(models.User.id == user_id).first()


def get_user_by_email(db: Session, email: str) -> Optional[models.User]:
    return db.query(models.User).filter(models.User.email == email).first()


def get_users_by_ids(db: Session, user_ids: Iterable[int]) -> List[models.User]:
    ids = list(set(user_ids))
    if not ids:
        return []
    return db.query(models.User).filter(models.User.id.in_(ids)).all()


def require_user(db: Session, user_id: int) -> models.User:
    user = get_user(db, user_id)
    if not user:
        raise NotFound("User not found")
    return user


# ==========================================
# LECTURERS
# ==========================================

def get_lecturer(db: Session, lecturer_id: int) -> Optional[models.Lecturer]:
    return db.query(models.Lecturer).filter(models.Lecturer.id == lecturer_id).first()


def get_lecturer_by_user(db: Session, user_id: int) -> Optional[models.Lecturer]:
    return db.query(models.Lecturer).filter(models.Lecturer.user_id == user_id).first()


def get_lecturers_by_ids(db: Session, lecturer_ids: Iterable[int]) -> List[models.Lecturer]:
    ids = list(set(lecturer_ids))
    if not ids:
        return []
    return db.query(models.Lecturer).filter(models.Lecturer.id.in_(ids)).all()


def require_lecturer(db: Session, lecturer_id: int) -> models.Lecturer:
    lecturer = get_lecturer(db, lecturer_id)
    if not lecturer:
        raise NotFound("Lecturer not found")
    return lecturer


def require_lecturer_profile(db: Session, user_id: int) -> models.Lecturer:
    lecturer = get_lecturer_by_user(db, user_id)
    if not lecturer:
        raise NotFound("Lecturer profile not found")
    return lecturer


# ==========================================
# STUDENTS
# ==========================================

def get_student(db: Session, student_id: int) -> Optional[models.Student]:
    return db.query(models.Student).filter(models.Student.id == student_id).first()


def get_student_by_user(db: Session, user_id: int) -> Optional[models.Student]:
    return db.query(models.Student).filter(models.Student.user_id == user_id).first()


def get_student_by_email(db: Session, email: str) -> Optional[models.Student]:
    return db.query(models.Student).filter(models.Student.email == email).first()


def get_students_by_ids(db: Session, student_ids: Iterable[int]) -> List[models.Student]:
    ids = list(set(student_ids))
    if not ids:
        return []
    return db.query(models.Student).filter(models.Student.id.in_(ids)).all()


def require_student(db: Session, student_id: int) -> models.Student:
    student = get_student(db, student_id)
    if not student:
        raise NotFound("Student not found")
    return student


# ==========================================
# COURSES, CLASSROOMS
# ==========================================

def get_course(db: Session, course_id: int) -> Optional[models.Course]:
    return db.query(models.Course).filter(models.Course.id == course_id).first()


def get_course_by_title(db: Session, title: str) -> Optional[models.Course]:
    return db.query(models.Course).filter(models.Course.title == title).first()


def get_courses_by_ids(db: Session, course_ids: Iterable[int]) -> List[models.Course]:
    ids = list(set(course_ids))
    if not ids:
        return []
    return db.query(models.Course).filter(models.Course.id.in_(ids)).all()


def require_course(db: Session, course_id: int) -> models.Course:
    course = get_course(db, course_id)
    if not course:
        raise NotFound("Course not found")
    return course


def get_classroom(db: Session, classroom_id: int) -> Optional[models.Classroom]:
    return db.query(models.Classroom).filter(models.Classroom.id == classroom_id).first()


def get_classrooms_by_ids(db: Session, classroom_ids: Iterable[int]) -> List[models.Classroom]:
    ids = list(set(classroom_ids))
    if not ids:
        return []
    return db.query(models.Classroom).filter(models.Classroom.id.in_(ids)).all()


def first_classroom_for_course(db: Session, course_id: int) -> Optional[models.Classroom]:
    return (
        db.query(models.Classroom)
        .filter(models.Classroom.course_id == course_id)
        .order_by(models.Classroom.id)
        .first()
    )


def require_classroom(db: Session, classroom_id: int) -> models.Classroom:
    classroom = get_classroom(db, classroom_id)
    if not classroom:
        raise NotFound("Classroom not found")
    return classroom


# ==========================================
# TASKS, ASSIGNMENTS
# ==========================================

def get_task(db: Session, task_id: int) -> Optional[models.Task]:
    return db.query(models.Task).filter(models.Task.id == task_id).first()


def get_tasks_by_ids(db: Session, task_ids: Iterable[int]) -> List[models.Task]:
    ids = list(set(task_ids))
    if not ids:
        return []
    return db.query(models.Task).filter(models.Task.id.in_(ids)).all()


def require_task(db: Session, task_id: int) -> models.Task:
    task = get_task(db, task_id)
    if not task:
        raise NotFound("Task not found")
    return task


def require_assignment(db: Session, assignment_id: int) -> models.Assignment:
    assignment = db.query(models.Assignment).filter(models.Assignment.id == assignment_id).first()
    if not assignment:
        raise NotFound("Assignment not found")
    return assignment
