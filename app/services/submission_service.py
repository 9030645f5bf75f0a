import logging
import uuid
from typing import List, Sequence
from app.core import clock
from app.core.errors import Conflict, NotFound, PreconditionFailed
from app.database.assignment_repo import AssignmentRepo
from app.database.submission_repo import SubmissionRepo
from app.schemas.assignment import Assignment
from app.schemas.context import UserContext
from app.schemas.submission import AssignmentSummary, Submission, SubmissionCreate, SubmissionDetail
from app.services.policy import Operation, authorize, authorize_submission, is_student

logger = logging.getLogger("classroom.submissions")

DEADLINE_PASSED = "deadline passed"
ALREADY_SUBMITTED = "already submitted"


def create_submission_id() -> str:
    return f"sub-{uuid.uuid4().hex}"


def _detail(submission: Submission, assignment: Assignment | None) -> SubmissionDetail:
    summary = None
    if assignment is not None:
        summary = AssignmentSummary(**assignment.model_dump(include=set(AssignmentSummary.model_fields)))
    return SubmissionDetail(**submission.model_dump(), assignment=summary)


class SubmissionService:

    @staticmethod
    async def submit(
        data: SubmissionCreate,
        user: UserContext,
        assignments: AssignmentRepo,
        submissions: SubmissionRepo,
    ) -> SubmissionDetail:
        """Ammette una risposta: esistenza, disponibilità, scadenza, doppione.

        Il controllo sul doppione viene ripetuto dal vincolo unico in fase di
        inserimento, quindi due invii concorrenti producono un solo successo.
        """
        assignment = await assignments.find_one(data.assignmentId)
        authorize(user, assignment, Operation.SUBMIT)

        now = clock.utcnow()
        if now > assignment.dueDate:
            raise PreconditionFailed(DEADLINE_PASSED)

        if await submissions.find_by_pair(assignment.assignmentId, user.user_id) is not None:
            raise Conflict(ALREADY_SUBMITTED)

        submission = Submission(
            submissionId=create_submission_id(),
            assignmentId=assignment.assignmentId,
            studentId=str(user.user_id),
            answer=data.answer,
            submittedAt=now,
            isReviewed=False,
        )
        await submissions.create(submission)
        logger.info("Submission %s di %s per %s", submission.submissionId, user.user_id, assignment.assignmentId)
        return _detail(submission, assignment)

    @staticmethod
    async def list_own(
        user: UserContext,
        assignments: AssignmentRepo,
        submissions: SubmissionRepo,
    ) -> List[SubmissionDetail]:
        if not is_student(user):
            return []
        items = await submissions.find_for_student(user.user_id)
        by_id = {a.assignmentId: a for a in await assignments.find_many(s.assignmentId for s in items)}
        return [_detail(s, by_id.get(s.assignmentId)) for s in items]

    @staticmethod
    async def list_for_assignment(
        assignment_id: str,
        user: UserContext,
        assignments: AssignmentRepo,
        submissions: SubmissionRepo,
    ) -> Sequence[Submission]:
        assignment = await assignments.find_one(assignment_id)
        authorize(user, assignment, Operation.LIST_SUBMISSIONS)
        return await submissions.find_for_assignment(assignment_id)

    @staticmethod
    async def get_submission(
        submission_id: str,
        user: UserContext,
        assignments: AssignmentRepo,
        submissions: SubmissionRepo,
    ) -> SubmissionDetail:
        submission = await submissions.find_one(submission_id)
        assignment = await assignments.find_one(submission.assignmentId) if submission else None
        authorize_submission(user, submission, assignment, Operation.READ_SUBMISSION)
        return _detail(submission, assignment)

    @staticmethod
    async def review(
        submission_id: str,
        user: UserContext,
        assignments: AssignmentRepo,
        submissions: SubmissionRepo,
    ) -> SubmissionDetail:
        """Segna una submission come revisionata.

        La revisione è un flag che sale e non scende: una seconda chiamata
        riesce ma lascia invariato reviewedAt.
        """
        submission = await submissions.find_one(submission_id)
        assignment = await assignments.find_one(submission.assignmentId) if submission else None
        authorize_submission(user, submission, assignment, Operation.REVIEW)

        if submission.isReviewed:
            return _detail(submission, assignment)

        updated = await submissions.mark_reviewed(submission_id, clock.utcnow())
        if updated is None:
            # revisionata in parallelo da un'altra richiesta
            updated = await submissions.find_one(submission_id)
            if updated is None:
                raise NotFound("Submission not found")
            return _detail(updated, assignment)
        logger.info("Submission %s revisionata da %s", submission_id, user.user_id)
        return _detail(updated, assignment)
