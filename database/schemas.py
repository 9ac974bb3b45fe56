"""
Pydantic schemas for request validation
Responses are assembled in services/projections.py
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, EmailStr, Field

from database.models import Role


# ==========================================
# AUTH / USER SCHEMAS
# ==========================================

class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class UserCreate(BaseModel):
    """Identity only, no profile"""
    name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    password: str = Field(..., min_length=6, max_length=72)
    role: Role


class RegisterRequest(UserCreate):
    """Identity plus the profile for its role"""
    department: Optional[str] = Field(None, max_length=255)
    course_id: Optional[int] = Field(None, gt=0, description="Required for students")
    class_id: Optional[int] = Field(None, gt=0)
    age: Optional[int] = Field(None, ge=0, le=150)


class PasswordChange(BaseModel):
    old_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=6, max_length=72)


# ==========================================
# STUDENT SCHEMAS
# ==========================================

class StudentCreate(BaseModel):
    """Bare student profile (no login)"""
    name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    age: Optional[int] = Field(None, ge=0, le=150)
    course_id: int = Field(..., gt=0)


class StudentUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    email: Optional[EmailStr] = None
    age: Optional[int] = Field(None, ge=0, le=150)
    course_id: Optional[int] = Field(None, gt=0)


# ==========================================
# LECTURER SCHEMAS
# ==========================================

class LecturerCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    password: str = Field(..., min_length=6, max_length=72)
    department: str = Field("", max_length=255)


class LecturerUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    email: Optional[EmailStr] = None
    department: Optional[str] = Field(None, max_length=255)


class ClassLink(BaseModel):
    class_id: int = Field(..., gt=0)


# ==========================================
# COURSE / CLASSROOM SCHEMAS
# ==========================================

class CourseCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    code: Optional[str] = Field(None, max_length=50)
    description: str = ""
    credits: int = Field(3, ge=0)


class CourseUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    code: Optional[str] = Field(None, max_length=50)
    description: Optional[str] = None
    credits: Optional[int] = Field(None, ge=0)
    class_id: Optional[int] = Field(None, gt=0, description="Primary classroom")


class ClassroomCreate(BaseModel):
    class_name: str = Field(..., min_length=1, max_length=255)
    course_id: int = Field(..., gt=0)
    lecturer_ids: List[int] = Field(default_factory=list)
    student_ids: List[int] = Field(default_factory=list)


class ClassroomUpdate(BaseModel):
    class_name: Optional[str] = Field(None, min_length=1, max_length=255)
    course_id: Optional[int] = Field(None, gt=0)
    lecturer_ids: Optional[List[int]] = None
    student_ids: Optional[List[int]] = None


class LecturerLink(BaseModel):
    lecturer_id: int = Field(..., gt=0)


class StudentLink(BaseModel):
    student_id: int = Field(..., gt=0)


# ==========================================
# TASK / ASSIGNMENT SCHEMAS
# ==========================================

class TaskCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    instructions: Optional[str] = None
    deadline: Optional[datetime] = None
    class_id: int = Field(..., gt=0)
    max_grade: int = Field(100, ge=1, le=100)


class TaskUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    instructions: Optional[str] = None
    deadline: Optional[datetime] = None
    class_id: Optional[int] = Field(None, gt=0)
    max_grade: Optional[int] = Field(None, ge=1, le=100)
    is_active: Optional[bool] = None


class AssignmentCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    deadline: Optional[datetime] = None
    class_id: int = Field(..., gt=0)


# ==========================================
# SUBMISSION SCHEMAS
# ==========================================

class AnswerSubmit(BaseModel):
    # Blank answers are rejected by the lifecycle with its own message
    answer: Optional[str] = None


class GradeRequest(BaseModel):
    # Range is enforced by the lifecycle so the prior grade stays untouched
    grade: Optional[int] = None
    feedback: Optional[str] = None
