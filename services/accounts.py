"""
Identity and profile lifecycle.
An identity and its profile are created by one request as two writes.
Deletes cascade both ways explicitly: removing a user removes its profile,
removing a profile removes its user, and the profile is first detached from
every classroom it appears in.
"""

import logging
from typing import Optional, Tuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from auth.security import hash_password, verify_password
from config import Settings
from database import crud, schemas
from database.models import Lecturer, Role, Student, User
from services import relationships
from services.errors import ConflictError, Unauthorized, ValidationError

log = logging.getLogger(__name__)


def _ensure_email_free(db: Session, email: str, *, check_students: bool = False) -> None:
    if crud.get_user_by_email(db, email):
        raise ConflictError("Email already in use")
    if check_students and crud.get_student_by_email(db, email):
        raise ConflictError("Email already in use")


def _commit_or_conflict(db: Session, message: str = "Email already in use") -> None:
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictError(message)


# ─── Creation ─────────────────────────────────────────────────────────────────

def create_user(db: Session, name: str, email: str, password: str, role: Role,
                rounds: int = 12) -> User:
    _ensure_email_free(db, email)
    user = User(
        name=name,
        email=email,
        hashed_password=hash_password(password, rounds),
        role=role.value,
    )
    db.add(user)
    _commit_or_conflict(db)
    db.refresh(user)
    log.info("Created %s user %s", role.value, user.id)
    return user


def register(db: Session, payload: schemas.RegisterRequest, rounds: int = 12) -> Tuple[User, Optional[object]]:
    """Create an identity and the profile its role needs."""
    if payload.role is Role.STUDENT:
        if not payload.course_id:
            raise ValidationError("course_id is required for students")
        crud.require_course(db, payload.course_id)
        if payload.class_id:
            classroom = crud.require_classroom(db, payload.class_id)
            if classroom.course_id != payload.course_id:
                raise ValidationError("Classroom does not belong to the given course")
        _ensure_email_free(db, payload.email, check_students=True)

    user = create_user(db, payload.name, payload.email, payload.password, payload.role, rounds)

    profile = None
    if payload.role is Role.STUDENT:
        student = Student(user_id=user.id, name=user.name, email=user.email, age=payload.age,
                          course_id=payload.course_id)
        if payload.class_id:
            db.add(student)
            _commit_or_conflict(db)
            profile, _ = relationships.add_student_to_classroom(db, payload.class_id, student.id)
        else:
            profile, _ = relationships.enroll_student(db, student, payload.course_id)
    elif payload.role is Role.LECTURER:
        profile = Lecturer(user_id=user.id, department=payload.department or "", assigned_class_ids=[])
        db.add(profile)
        db.commit()
        db.refresh(profile)

    return user, profile


def create_lecturer(db: Session, payload: schemas.LecturerCreate, rounds: int = 12) -> Lecturer:
    user = create_user(db, payload.name, payload.email, payload.password, Role.LECTURER, rounds)
    lecturer = Lecturer(user_id=user.id, department=payload.department, assigned_class_ids=[])
    db.add(lecturer)
    db.commit()
    db.refresh(lecturer)
    return lecturer


def create_student_profile(db: Session, payload: schemas.StudentCreate) -> Student:
    """Student without a login; placed through course resolution."""
    if crud.get_student_by_email(db, payload.email):
        raise ConflictError("Email already exists")
    course = crud.require_course(db, payload.course_id)

    student = Student(name=payload.name, email=payload.email, age=payload.age, course_id=course.id)
    try:
        student, _ = relationships.place_student(db, student, course)
    except IntegrityError:
        db.rollback()
        raise ConflictError("Email already exists")
    return student


def ensure_admin(db: Session, settings: Settings) -> Optional[User]:
    """Seed the first admin from settings when no admin exists yet."""
    if not settings.admin_email or not settings.admin_password:
        return None
    if db.query(User).filter(User.role == Role.ADMIN.value).count() > 0:
        return None
    if crud.get_user_by_email(db, settings.admin_email):
        log.warning("ADMIN_EMAIL %s belongs to a non-admin account; not seeding", settings.admin_email)
        return None

    admin = create_user(db, settings.admin_name, settings.admin_email, settings.admin_password,
                        Role.ADMIN, settings.bcrypt_rounds)
    log.info("Default admin created: %s", admin.email)
    return admin


# ─── Updates ──────────────────────────────────────────────────────────────────

def update_student(db: Session, student_id: int, payload: schemas.StudentUpdate) -> Student:
    student = crud.require_student(db, student_id)
    data = payload.model_dump(exclude_unset=True)

    email = data.get("email")
    if email and email != student.email:
        other = crud.get_student_by_email(db, email)
        if other is not None and other.id != student.id:
            raise ConflictError("Email already exists")

    for field in ("name", "email", "age"):
        if field in data and (data[field] is not None or field == "age"):
            setattr(student, field, data[field])
    _commit_or_conflict(db, "Email already exists")

    if data.get("course_id"):
        student, _ = relationships.reassign_student_course(db, student.id, data["course_id"])

    db.refresh(student)
    return student


def update_lecturer(db: Session, lecturer: Lecturer, payload: schemas.LecturerUpdate) -> Lecturer:
    data = payload.model_dump(exclude_unset=True)

    if data.get("department") is not None:
        lecturer.department = data["department"]
        db.commit()

    user = crud.get_user(db, lecturer.user_id)
    if user is not None:
        if data.get("email") and data["email"] != user.email:
            _ensure_email_free(db, data["email"])
            user.email = data["email"]
        if data.get("name"):
            user.name = data["name"]
        _commit_or_conflict(db)

    db.refresh(lecturer)
    return lecturer


def change_password(db: Session, user: User, payload: schemas.PasswordChange, rounds: int = 12) -> None:
    if not verify_password(payload.old_password, user.hashed_password):
        raise ValidationError("Old password incorrect")
    user.hashed_password = hash_password(payload.new_password, rounds)
    db.commit()


# ─── Deletion ─────────────────────────────────────────────────────────────────

def delete_lecturer(db: Session, lecturer_id: int) -> None:
    lecturer = crud.require_lecturer(db, lecturer_id)
    user_id = lecturer.user_id
    relationships.detach_lecturer(db, lecturer)

    user = crud.get_user(db, user_id)
    if user is not None:
        db.delete(user)
    db.delete(lecturer)
    db.commit()
    log.info("Deleted lecturer %s and user %s", lecturer_id, user_id)


def delete_student(db: Session, student_id: int) -> None:
    student = crud.require_student(db, student_id)
    relationships.detach_student(db, student)

    if student.user_id is not None:
        user = crud.get_user(db, student.user_id)
        if user is not None:
            db.delete(user)
    db.delete(student)
    db.commit()
    log.info("Deleted student %s", student_id)


def delete_user(db: Session, user_id: int) -> None:
    user = crud.require_user(db, user_id)

    lecturer = crud.get_lecturer_by_user(db, user.id)
    if lecturer is not None:
        relationships.detach_lecturer(db, lecturer)
        db.delete(lecturer)

    student = crud.get_student_by_user(db, user.id)
    if student is not None:
        relationships.detach_student(db, student)
        db.delete(student)

    db.delete(user)
    db.commit()
    log.info("Deleted user %s", user_id)


def login(db: Session, email: str, password: str) -> User:
    user = crud.get_user_by_email(db, email)
    if not user or not verify_password(password, user.hashed_password):
        raise Unauthorized("Invalid credentials")
    return user
