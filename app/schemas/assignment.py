from enum import Enum
from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Optional
from datetime import datetime, timezone


class AssignmentStatus(str, Enum):
    DRAFT = "draft"
    PUBLISHED = "published"
    COMPLETED = "completed"


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    # date senza fuso orario: le consideriamo UTC
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class AssignmentCreate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    title: str = Field(..., min_length=1, max_length=100)
    description: str = Field(..., min_length=1, max_length=1000)
    dueDate: datetime

    @field_validator("dueDate")
    @classmethod
    def ensure_utc(cls, v):
        return _as_utc(v)


class AssignmentUpdate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")

    title: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, min_length=1, max_length=1000)
    dueDate: Optional[datetime] = None

    @field_validator("dueDate")
    @classmethod
    def ensure_utc(cls, v):
        return _as_utc(v)


class Assignment(BaseModel):
    assignmentId: str
    title: str
    description: str
    dueDate: datetime
    status: AssignmentStatus = AssignmentStatus.DRAFT
    teacherId: str
    createdAt: datetime
    updatedAt: datetime

    @field_validator("dueDate", "createdAt", "updatedAt")
    @classmethod
    def ensure_utc(cls, v):
        return _as_utc(v)
