import logging
import uuid
from typing import NoReturn, Sequence
from app.core import clock
from app.core.errors import NotFound, PreconditionFailed
from app.schemas.assignment import Assignment, AssignmentCreate, AssignmentStatus, AssignmentUpdate
from app.schemas.context import UserContext
from app.database.assignment_repo import AssignmentRepo
from app.services.policy import Operation, REJECTIONS, authorize, is_student, is_teacher, next_status

logger = logging.getLogger("classroom.assignments")

DUE_DATE_IN_PAST = "due date must be in the future"


def create_assignment_id() -> str:
    return f"as-{uuid.uuid4().hex}"


async def _stale(assignment_id: str, operation: Operation, repo: AssignmentRepo) -> NoReturn:
    """Il compare-and-swap non ha scritto nulla: rilegge per capire perché."""
    current = await repo.find_one(assignment_id)
    if current is None:
        raise NotFound("Assignment not found")
    raise PreconditionFailed(REJECTIONS[operation])


class AssignmentService:

    @staticmethod
    async def create_assignment(
        data: AssignmentCreate,
        user: UserContext,
        repo: AssignmentRepo
    ) -> Assignment:
        authorize(user, None, Operation.CREATE)

        now = clock.utcnow()
        if data.dueDate <= now:
            raise PreconditionFailed(DUE_DATE_IN_PAST)

        assignment = Assignment(
            assignmentId=create_assignment_id(),
            teacherId=str(user.user_id),
            status=AssignmentStatus.DRAFT,
            createdAt=now,
            updatedAt=now,
            **data.model_dump(),
        )

        inserted_id = await repo.create(assignment)
        if not inserted_id:
            raise RuntimeError("Creazione assignment fallita")

        logger.info("Assignment %s creato da %s", inserted_id, user.user_id)
        return assignment

    @staticmethod
    async def list_assignments(user: UserContext, repo: AssignmentRepo) -> Sequence[Assignment]:
        if is_teacher(user):
            return await repo.find_for_teacher(user.user_id)
        if is_student(user):
            return await repo.find_published()
        return []

    @staticmethod
    async def get_assignment(assignment_id: str, user: UserContext, repo: AssignmentRepo) -> Assignment:
        doc = await repo.find_one(assignment_id)
        authorize(user, doc, Operation.READ)
        return doc

    @staticmethod
    async def update_assignment(
        assignment_id: str,
        data: AssignmentUpdate,
        user: UserContext,
        repo: AssignmentRepo
    ) -> Assignment:
        doc = await repo.find_one(assignment_id)
        authorize(user, doc, Operation.UPDATE)

        fields = data.model_dump(exclude_unset=True, exclude_none=True)
        now = clock.utcnow()
        if "dueDate" in fields and fields["dueDate"] <= now:
            raise PreconditionFailed(DUE_DATE_IN_PAST)

        updated = await repo.update_draft(assignment_id, fields, now)
        if updated is None:
            await _stale(assignment_id, Operation.UPDATE, repo)
        logger.info("Assignment %s aggiornato (%s)", assignment_id, ", ".join(sorted(fields)) or "-")
        return updated

    @staticmethod
    async def delete_assignment(assignment_id: str, user: UserContext, repo: AssignmentRepo) -> Assignment:
        doc = await repo.find_one(assignment_id)
        authorize(user, doc, Operation.DELETE)

        if not await repo.delete_draft(assignment_id):
            await _stale(assignment_id, Operation.DELETE, repo)
        logger.info("Assignment %s cancellato", assignment_id)
        return doc

    @staticmethod
    async def publish_assignment(assignment_id: str, user: UserContext, repo: AssignmentRepo) -> Assignment:
        return await AssignmentService._transition(assignment_id, user, repo, Operation.PUBLISH)

    @staticmethod
    async def complete_assignment(assignment_id: str, user: UserContext, repo: AssignmentRepo) -> Assignment:
        return await AssignmentService._transition(assignment_id, user, repo, Operation.COMPLETE)

    @staticmethod
    async def _transition(
        assignment_id: str,
        user: UserContext,
        repo: AssignmentRepo,
        operation: Operation,
    ) -> Assignment:
        doc = await repo.find_one(assignment_id)
        authorize(user, doc, operation)
        target = next_status(doc.status, operation)

        updated = await repo.transition(assignment_id, doc.status, target, clock.utcnow())
        if updated is None:
            await _stale(assignment_id, operation, repo)
        logger.info("Assignment %s: %s -> %s", assignment_id, doc.status.value, target.value)
        return updated
