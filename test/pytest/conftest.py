import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from app.core import clock as clock_module
from app.core.errors import Conflict
from app.schemas.assignment import Assignment, AssignmentCreate, AssignmentStatus
from app.schemas.context import UserContext
from app.schemas.submission import Submission

# ------------------------- Fake repositories -------------------------
class FakeAssignmentRepo:
    def __init__(self):
        self.items: dict[str, Assignment] = {}

    async def create(self, assignment: Assignment) -> str:
        # NON genera ID: si aspetta assignment.assignmentId già valorizzato
        if not getattr(assignment, "assignmentId", None):
            raise ValueError("assignmentId must be set by the service")
        self.items[assignment.assignmentId] = assignment.model_copy()
        return assignment.assignmentId

    async def find_one(self, assignment_id: str):
        a = self.items.get(assignment_id)
        return a.model_copy() if a else None

    async def find_many(self, assignment_ids):
        return [self.items[i].model_copy() for i in set(assignment_ids) if i in self.items]

    async def find_for_teacher(self, teacher_id: str):
        items = [a for a in self.items.values() if a.teacherId == teacher_id]
        return sorted(items, key=lambda a: a.createdAt, reverse=True)

    async def find_published(self):
        items = [a for a in self.items.values() if a.status == AssignmentStatus.PUBLISHED]
        return sorted(items, key=lambda a: a.createdAt, reverse=True)

    async def update_draft(self, assignment_id, fields, ts):
        a = self.items.get(assignment_id)
        if a is None or a.status != AssignmentStatus.DRAFT:
            return None
        self.items[assignment_id] = a.model_copy(update={**fields, "updatedAt": ts})
        return self.items[assignment_id].model_copy()

    async def transition(self, assignment_id, current, target, ts):
        a = self.items.get(assignment_id)
        if a is None or a.status != current:
            return None
        self.items[assignment_id] = a.model_copy(update={"status": target, "updatedAt": ts})
        return self.items[assignment_id].model_copy()

    async def delete_draft(self, assignment_id: str):
        a = self.items.get(assignment_id)
        if a is None or a.status != AssignmentStatus.DRAFT:
            return False
        del self.items[assignment_id]
        return True


class FakeSubmissionRepo:
    def __init__(self):
        self.items: dict[str, Submission] = {}

    async def create(self, submission: Submission) -> str:
        # come l'indice unico di Mongo: il controllo e l'inserimento sono atomici
        for s in self.items.values():
            if (s.assignmentId, s.studentId) == (submission.assignmentId, submission.studentId):
                raise Conflict("already submitted")
        self.items[submission.submissionId] = submission.model_copy()
        return submission.submissionId

    async def find_one(self, submission_id: str):
        s = self.items.get(submission_id)
        return s.model_copy() if s else None

    async def find_by_pair(self, assignment_id, student_id):
        # cede il loop, così due invii concorrenti superano entrambi il controllo
        await asyncio.sleep(0)
        for s in self.items.values():
            if s.assignmentId == assignment_id and s.studentId == student_id:
                return s.model_copy()
        return None

    async def find_for_student(self, student_id):
        items = [s for s in self.items.values() if s.studentId == student_id]
        return sorted(items, key=lambda s: s.submittedAt, reverse=True)

    async def find_for_assignment(self, assignment_id):
        items = [s for s in self.items.values() if s.assignmentId == assignment_id]
        return sorted(items, key=lambda s: s.submittedAt, reverse=True)

    async def mark_reviewed(self, submission_id, ts):
        s = self.items.get(submission_id)
        if s is None or s.isReviewed:
            return None
        self.items[submission_id] = s.model_copy(update={"isReviewed": True, "reviewedAt": ts})
        return self.items[submission_id].model_copy()


class FakeClock:
    """Ogni lettura avanza di un secondo, così gli ordinamenti sono deterministici."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        current = self.now
        self.now = self.now + timedelta(seconds=1)
        return current

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)


# ------------------------------- Fixtures -------------------------------------
@pytest.fixture
def clock(monkeypatch):
    fake = FakeClock(datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc))
    monkeypatch.setattr(clock_module, "utcnow", fake)
    return fake

@pytest.fixture
def repo():
    return FakeAssignmentRepo()

@pytest.fixture
def submissions():
    return FakeSubmissionRepo()

@pytest.fixture
def teacher():
    return UserContext(user_id="t1", role="teacher")

@pytest.fixture
def other_teacher():
    return UserContext(user_id="t2", role="teacher")

@pytest.fixture
def student():
    return UserContext(user_id="s1", role="student")

@pytest.fixture
def student2():
    return UserContext(user_id="s2", role="student")


@pytest.fixture
def make_create(clock):
    def _make_create(**overrides):
        base = dict(
            title="Compito",
            description="Desc",
            dueDate=clock.now + timedelta(days=7),
        )
        base.update(overrides)
        return AssignmentCreate(**base)
    return _make_create
