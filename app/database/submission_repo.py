from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional, Sequence
from app.schemas.submission import Submission

class SubmissionRepo(ABC):
    @abstractmethod
    async def create(self, submission: Submission) -> str:
        """Inserisce una submission. Solleva Conflict se la coppia
        (assignmentId, studentId) esiste già; il vincolo è atomico."""
        raise NotImplementedError

    @abstractmethod
    async def find_one(self, submission_id: str) -> Optional[Submission]:
        raise NotImplementedError

    @abstractmethod
    async def find_by_pair(self, assignment_id: str, student_id: str) -> Optional[Submission]:
        raise NotImplementedError

    @abstractmethod
    async def find_for_student(self, student_id: str) -> Sequence[Submission]:
        """Submission di uno studente, dalla più recente."""
        raise NotImplementedError

    @abstractmethod
    async def find_for_assignment(self, assignment_id: str) -> Sequence[Submission]:
        """Submission di un assignment, dalla più recente."""
        raise NotImplementedError

    @abstractmethod
    async def mark_reviewed(self, submission_id: str, ts: datetime) -> Optional[Submission]:
        """Segna come revisionata solo se non lo era già.
        Ritorna il documento aggiornato, oppure None se nulla è cambiato."""
        raise NotImplementedError
