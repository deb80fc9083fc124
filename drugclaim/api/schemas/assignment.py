"""
Assignment schemas (Pydantic).

ClaimantPayload mirrors the group submission form: one leader, a team
number within a course group, and the list of students.
"""
import re
from pydantic import BaseModel, UUID4, Field, field_validator
from datetime import datetime
from typing import List

from drugclaim.api.schemas.lease import normalize_resource_key

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

MAX_STUDENTS = 25


class Student(BaseModel):
    student_id: str = ""
    student_name: str = ""

    @field_validator("student_id", "student_name", mode="before")
    @classmethod
    def strip(cls, value) -> str:
        return str(value if value is not None else "").strip()


class ClaimantPayload(BaseModel):
    course_group: int = Field(default=1, ge=1, le=4)
    team_number: int = Field(ge=1, le=20)
    leader_name: str
    leader_email: str
    leader_phone: str
    students: List[Student]

    @field_validator("leader_name", "leader_phone")
    @classmethod
    def required_text(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be empty")
        return value

    @field_validator("leader_email")
    @classmethod
    def valid_email(cls, value: str) -> str:
        value = value.strip().lower()
        if not EMAIL_PATTERN.match(value):
            raise ValueError("a valid leader email is required")
        return value

    @field_validator("students")
    @classmethod
    def complete_students(cls, value: List[Student]) -> List[Student]:
        # Half-filled rows are dropped, not rejected.
        students = [s for s in value if s.student_id and s.student_name]
        if not students:
            raise ValueError("add at least one student (ID + name)")
        if len(students) > MAX_STUDENTS:
            raise ValueError(f"maximum {MAX_STUDENTS} students per team")
        return students


class AssignmentCommit(BaseModel):
    resource_key: str = Field(min_length=1, max_length=64)
    holder_token: str = Field(min_length=1, max_length=128)
    claimant_payload: ClaimantPayload

    @field_validator("resource_key")
    @classmethod
    def clean_resource_key(cls, value: str) -> str:
        value = normalize_resource_key(value)
        if not value:
            raise ValueError("resource_key is required")
        return value

    @field_validator("holder_token")
    @classmethod
    def clean_holder_token(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("holder_token is required")
        return value


class AssignmentResponse(BaseModel):
    id: UUID4
    resource_key: str
    resource_name: str
    course_group: int
    team_number: int
    leader_name: str
    leader_email: str
    leader_phone: str
    students: List[Student]
    created_at: datetime

    class Config:
        from_attributes = True


class AssignmentCommitResponse(BaseModel):
    message: str = "Group submission saved successfully."
    assignment: AssignmentResponse
