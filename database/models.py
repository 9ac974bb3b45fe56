"""
SQLAlchemy models for the school administration store.

Cross-entity references are plain indexed id columns and JSON id lists, not
relational foreign keys: the relationship service keeps both sides of every
link in step (see services/relationships.py). Read-side joins are explicit
lookups in services/projections.py.
"""

import enum

from sqlalchemy import (
    JSON, Boolean, Column, DateTime, Integer, String, Text, UniqueConstraint,
)
from sqlalchemy.sql import func

from database.database import Base


class Role(str, enum.Enum):
    """Account roles"""
    ADMIN = "admin"
    LECTURER = "lecturer"
    STUDENT = "student"


# ==========================================
# AUTH: USERS (identities)
# ==========================================

class User(Base):
    """
    Authenticated account. email + hashed_password for login.
    The role is fixed at creation; lecturer/student data lives in the profiles.
    """
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, nullable=False, index=True)
    hashed_password = Column(String(255), nullable=False)
    role = Column(String(20), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<User(id={self.id}, email='{self.email}', role='{self.role}')>"


# ==========================================
# PROFILES: LECTURER, STUDENT
# ==========================================

class Lecturer(Base):
    """Lecturer profile, 1:1 with a User of role lecturer."""
    __tablename__ = "lecturers"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, unique=True, nullable=False, index=True)
    department = Column(String(255), nullable=False, default="")
    assigned_class_ids = Column(JSON, nullable=False, default=list)

    def __repr__(self):
        return f"<Lecturer(id={self.id}, user_id={self.user_id})>"


class Student(Base):
    """
    Student profile. user_id is optional: admins can create a bare profile
    without a login. assigned_lecturer_id points at a Lecturer, not a User.
    """
    __tablename__ = "students"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, unique=True, nullable=True, index=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, nullable=False, index=True)
    age = Column(Integer, nullable=True)
    course_id = Column(Integer, nullable=False, index=True)
    class_id = Column(Integer, nullable=True, index=True)
    assigned_lecturer_id = Column(Integer, nullable=True, index=True)
    enrolled_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<Student(id={self.id}, email='{self.email}')>"


# ==========================================
# STRUCTURE: COURSE, CLASSROOM
# ==========================================

class Course(Base):
    """Course. class_id optionally names its primary classroom."""
    __tablename__ = "courses"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(255), unique=True, nullable=False, index=True)
    code = Column(String(50), nullable=True)
    description = Column(Text, nullable=False, default="")
    credits = Column(Integer, nullable=False, default=3)
    class_id = Column(Integer, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    @property
    def display_name(self) -> str:
        return f"{self.code} - {self.title}" if self.code else self.title

    def __repr__(self):
        return f"<Course(id={self.id}, title='{self.title}')>"


class Classroom(Base):
    """A course offering grouping students and lecturers."""
    __tablename__ = "classrooms"

    id = Column(Integer, primary_key=True, index=True)
    class_name = Column(String(255), nullable=False)
    course_id = Column(Integer, nullable=False, index=True)
    student_ids = Column(JSON, nullable=False, default=list)
    lecturer_ids = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<Classroom(id={self.id}, class_name='{self.class_name}')>"


# ==========================================
# WORK: TASK, ASSIGNMENT
# ==========================================

class Task(Base):
    """Unit of work a lecturer publishes to a classroom."""
    __tablename__ = "tasks"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    instructions = Column(Text, nullable=True)
    deadline = Column(DateTime(timezone=True), nullable=True, index=True)
    class_id = Column(Integer, nullable=False, index=True)
    lecturer_id = Column(Integer, nullable=False, index=True)
    max_grade = Column(Integer, nullable=False, default=100)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now(), nullable=True)

    def __repr__(self):
        return f"<Task(id={self.id}, title='{self.title}')>"


class Assignment(Base):
    """Lighter-weight task: no grade ceiling, instructions or active flag."""
    __tablename__ = "assignments"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    deadline = Column(DateTime(timezone=True), nullable=True)
    class_id = Column(Integer, nullable=False, index=True)
    lecturer_id = Column(Integer, nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<Assignment(id={self.id}, title='{self.title}')>"


# ==========================================
# SUBMISSIONS
# ==========================================

class Submission(Base):
    """
    A student's answer to a Task. At most one row per (task, student):
    resubmission overwrites answer and submitted_at in place.
    student_id and graded_by are User ids.
    """
    __tablename__ = "submissions"
    __table_args__ = (
        UniqueConstraint("task_id", "student_id", name="uq_submission_task_student"),
    )

    id = Column(Integer, primary_key=True, index=True)
    task_id = Column(Integer, nullable=False, index=True)
    student_id = Column(Integer, nullable=False, index=True)
    answer = Column(Text, nullable=False)
    submitted_at = Column(DateTime(timezone=True), nullable=False)
    grade = Column(Integer, nullable=True)
    feedback = Column(Text, nullable=True)
    graded_at = Column(DateTime(timezone=True), nullable=True)
    graded_by = Column(Integer, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now(), nullable=True)

    @property
    def is_graded(self) -> bool:
        return self.grade is not None

    def __repr__(self):
        return f"<Submission(id={self.id}, task_id={self.task_id}, student_id={self.student_id})>"


class AssignmentSubmission(Base):
    """Same lifecycle as Submission, keyed by (assignment, student)."""
    __tablename__ = "assignment_submissions"
    __table_args__ = (
        UniqueConstraint("assignment_id", "student_id", name="uq_assignment_submission_student"),
    )

    id = Column(Integer, primary_key=True, index=True)
    assignment_id = Column(Integer, nullable=False, index=True)
    student_id = Column(Integer, nullable=False, index=True)
    answer = Column(Text, nullable=False)
    submitted_at = Column(DateTime(timezone=True), nullable=False)
    grade = Column(Integer, nullable=True)
    feedback = Column(Text, nullable=True)
    graded_at = Column(DateTime(timezone=True), nullable=True)
    graded_by = Column(Integer, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now(), nullable=True)

    @property
    def is_graded(self) -> bool:
        return self.grade is not None

    def __repr__(self):
        return f"<AssignmentSubmission(id={self.id}, assignment_id={self.assignment_id})>"
