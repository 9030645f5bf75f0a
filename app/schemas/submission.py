from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Optional
from datetime import datetime

from app.schemas.assignment import AssignmentStatus, _as_utc


class SubmissionCreate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    assignmentId: str = Field(..., min_length=1)
    answer: str = Field(..., min_length=1, max_length=2000)


class Submission(BaseModel):
    submissionId: str
    assignmentId: str
    studentId: str
    answer: str
    submittedAt: datetime
    isReviewed: bool = False
    reviewedAt: Optional[datetime] = None

    @field_validator("submittedAt", "reviewedAt")
    @classmethod
    def ensure_utc(cls, v):
        return _as_utc(v)


class AssignmentSummary(BaseModel):
    assignmentId: str
    title: str
    description: str
    dueDate: datetime
    status: AssignmentStatus


class SubmissionDetail(Submission):
    assignment: Optional[AssignmentSummary] = None
