"""
Relationship consistency between classrooms, lecturers and students.

Every link is stored on both rows (classroom.lecturer_ids / lecturer.assigned_class_ids,
classroom.student_ids / student.class_id) and there is no foreign key keeping
them in step. The functions here update both sides, one row at a time, with
set semantics: adding an id that is already present is a no-op.

Writes are not wrapped in one transaction. When the second half of a pair
fails, the first half stays committed and the mismatch is left for the
integrity audit (services/integrity.py) to report and repair.
"""

import logging
from typing import Iterable, List, Optional, Sequence, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from database import crud
from database.models import Classroom, Course, Lecturer, Student
from services.errors import NotFound

log = logging.getLogger(__name__)


# ─── Set helpers ──────────────────────────────────────────────────────────────

def with_id(ids: Optional[Sequence[int]], value: int) -> List[int]:
    result = list(ids or [])
    if value not in result:
        result.append(value)
    return result


def without_id(ids: Optional[Sequence[int]], value: int) -> List[int]:
    return [i for i in (ids or []) if i != value]


def _commit_second_half(db: Session, what: str) -> bool:
    """Commit the back-reference half of a pair; on failure leave it for the audit."""
    try:
        db.commit()
        return True
    except SQLAlchemyError:
        db.rollback()
        log.warning("Partial relationship write (%s); run the integrity audit", what, exc_info=True)
        return False


# ─── Lecturer ↔ classroom ─────────────────────────────────────────────────────

def assign_lecturer_to_classroom(db: Session, lecturer_id: int, classroom_id: int) -> Tuple[Lecturer, Classroom]:
    """Link lecturer and classroom. Classroom is written first, then the lecturer."""
    lecturer = crud.require_lecturer(db, lecturer_id)
    classroom = crud.require_classroom(db, classroom_id)

    if lecturer.id not in (classroom.lecturer_ids or []):
        classroom.lecturer_ids = with_id(classroom.lecturer_ids, lecturer.id)
        db.commit()

    if classroom.id not in (lecturer.assigned_class_ids or []):
        lecturer.assigned_class_ids = with_id(lecturer.assigned_class_ids, classroom.id)
        _commit_second_half(db, f"lecturer {lecturer.id} -> classroom {classroom.id}")

    log.info("Assigned lecturer %s to classroom %s", lecturer.id, classroom.id)
    return lecturer, classroom


def remove_class_from_lecturer(db: Session, lecturer_id: int, classroom_id: int) -> Tuple[Lecturer, Optional[Classroom]]:
    """Unlink both sides. A classroom that no longer exists only loses the lecturer side."""
    lecturer = crud.require_lecturer(db, lecturer_id)

    lecturer.assigned_class_ids = without_id(lecturer.assigned_class_ids, classroom_id)
    db.commit()

    classroom = crud.get_classroom(db, classroom_id)
    if classroom is not None and lecturer.id in (classroom.lecturer_ids or []):
        classroom.lecturer_ids = without_id(classroom.lecturer_ids, lecturer.id)
        _commit_second_half(db, f"classroom {classroom_id} -x lecturer {lecturer.id}")

    log.info("Removed classroom %s from lecturer %s", classroom_id, lecturer.id)
    return lecturer, classroom


# ─── Student ↔ classroom ──────────────────────────────────────────────────────

def find_classroom_for_course(db: Session, course_id: int) -> Optional[Classroom]:
    """The course's primary classroom if set, else the first classroom pointing at the course."""
    course = crud.get_course(db, course_id)
    if course is None:
        return None

    if course.class_id:
        classroom = crud.get_classroom(db, course.class_id)
        if classroom is not None:
            return classroom

    return crud.first_classroom_for_course(db, course_id)


def first_lecturer_of(classroom: Optional[Classroom]) -> Optional[int]:
    if classroom is None or not classroom.lecturer_ids:
        return None
    return classroom.lecturer_ids[0]


def _pull_student(db: Session, classroom_id: int, student_id: int) -> None:
    old = crud.get_classroom(db, classroom_id)
    if old is None:
        log.info("Previous classroom %s of student %s no longer exists", classroom_id, student_id)
        return
    old.student_ids = without_id(old.student_ids, student_id)


def place_student(db: Session, student: Student, course: Course) -> Tuple[Student, Optional[Classroom]]:
    """
    Enroll (or re-enroll) a student in a course: resolve the classroom, derive
    the assigned lecturer, then move the student between classroom rosters.
    A course without any classroom leaves the student unplaced.
    """
    previous_class_id = student.class_id
    classroom = find_classroom_for_course(db, course.id)

    student.course_id = course.id
    student.class_id = classroom.id if classroom else None
    student.assigned_lecturer_id = first_lecturer_of(classroom)
    db.add(student)
    db.commit()

    if previous_class_id and previous_class_id != student.class_id:
        _pull_student(db, previous_class_id, student.id)
    if classroom is not None:
        classroom.student_ids = with_id(classroom.student_ids, student.id)
    _commit_second_half(db, f"roster update for student {student.id}")

    log.info("Student %s enrolled in course %s (classroom %s, lecturer %s)",
             student.id, course.id, student.class_id, student.assigned_lecturer_id)
    return student, classroom


def enroll_student(db: Session, student: Student, course_id: int) -> Tuple[Student, Optional[Classroom]]:
    course = crud.require_course(db, course_id)
    return place_student(db, student, course)


def reassign_student_course(db: Session, student_id: int, new_course_id: int) -> Tuple[Student, Optional[Classroom]]:
    student = crud.require_student(db, student_id)
    course = crud.require_course(db, new_course_id)
    return place_student(db, student, course)


def add_student_to_classroom(db: Session, classroom_id: int, student_id: int) -> Tuple[Student, Classroom]:
    """Place a student directly in a classroom (admin override of course resolution)."""
    classroom = crud.require_classroom(db, classroom_id)
    student = crud.require_student(db, student_id)

    previous_class_id = student.class_id
    student.class_id = classroom.id
    student.course_id = classroom.course_id
    student.assigned_lecturer_id = first_lecturer_of(classroom)
    db.commit()

    if previous_class_id and previous_class_id != classroom.id:
        _pull_student(db, previous_class_id, student.id)
    classroom.student_ids = with_id(classroom.student_ids, student.id)
    _commit_second_half(db, f"classroom {classroom.id} roster += student {student.id}")

    log.info("Added student %s to classroom %s", student.id, classroom.id)
    return student, classroom


def remove_student_from_classroom(db: Session, classroom_id: int, student_id: int) -> None:
    classroom = crud.require_classroom(db, classroom_id)
    student = crud.get_student(db, student_id)

    classroom.student_ids = without_id(classroom.student_ids, student_id)
    db.commit()

    if student is not None and student.class_id == classroom.id:
        student.class_id = None
        student.assigned_lecturer_id = None
        _commit_second_half(db, f"student {student_id} -x classroom {classroom_id}")


def set_classroom_members(
    db: Session,
    classroom: Classroom,
    lecturer_ids: Optional[Iterable[int]] = None,
    student_ids: Optional[Iterable[int]] = None,
) -> Classroom:
    """
    Replace a classroom's member lists. Applied as a diff of single
    assign/remove operations so every back-reference follows.
    None leaves that list untouched.
    """
    if lecturer_ids is not None:
        wanted = list(dict.fromkeys(lecturer_ids))
        missing = set(wanted) - {l.id for l in crud.get_lecturers_by_ids(db, wanted)}
        if missing:
            raise NotFound(f"Lecturer not found: {sorted(missing)}")
        current = list(classroom.lecturer_ids or [])
        for lecturer_id in current:
            if lecturer_id not in wanted:
                if crud.get_lecturer(db, lecturer_id) is None:
                    classroom.lecturer_ids = without_id(classroom.lecturer_ids, lecturer_id)
                    db.commit()
                else:
                    remove_class_from_lecturer(db, lecturer_id, classroom.id)
        for lecturer_id in wanted:
            assign_lecturer_to_classroom(db, lecturer_id, classroom.id)

    if student_ids is not None:
        wanted = list(dict.fromkeys(student_ids))
        missing = set(wanted) - {s.id for s in crud.get_students_by_ids(db, wanted)}
        if missing:
            raise NotFound(f"Student not found: {sorted(missing)}")
        for student_id in list(classroom.student_ids or []):
            if student_id not in wanted:
                remove_student_from_classroom(db, classroom.id, student_id)
        for student_id in wanted:
            add_student_to_classroom(db, classroom.id, student_id)

    db.refresh(classroom)
    return classroom


# ─── Cascades before delete ───────────────────────────────────────────────────
# Reference lists are JSON, so containment is checked in Python over all rows.

def detach_lecturer(db: Session, lecturer: Lecturer) -> None:
    """Pull a lecturer out of every classroom and clear students pointing at it."""
    for classroom in db.query(Classroom).all():
        if lecturer.id in (classroom.lecturer_ids or []):
            classroom.lecturer_ids = without_id(classroom.lecturer_ids, lecturer.id)

    db.query(Student).filter(Student.assigned_lecturer_id == lecturer.id).update(
        {Student.assigned_lecturer_id: None}, synchronize_session=False
    )
    lecturer.assigned_class_ids = []


def detach_student(db: Session, student: Student) -> None:
    for classroom in db.query(Classroom).all():
        if student.id in (classroom.student_ids or []):
            classroom.student_ids = without_id(classroom.student_ids, student.id)
    student.class_id = None


def detach_classroom(db: Session, classroom: Classroom) -> None:
    """Pull a classroom from lecturers, unplace its students, clear course.class_id."""
    for lecturer in db.query(Lecturer).all():
        if classroom.id in (lecturer.assigned_class_ids or []):
            lecturer.assigned_class_ids = without_id(lecturer.assigned_class_ids, classroom.id)

    db.query(Student).filter(Student.class_id == classroom.id).update(
        {Student.class_id: None, Student.assigned_lecturer_id: None}, synchronize_session=False
    )
    db.query(Course).filter(Course.class_id == classroom.id).update(
        {Course.class_id: None}, synchronize_session=False
    )
    classroom.student_ids = []
    classroom.lecturer_ids = []
