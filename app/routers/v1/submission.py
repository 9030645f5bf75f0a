from typing import Annotated, List
from fastapi import APIRouter, Depends, Response, status

from app.schemas.context import UserContext
from app.schemas.submission import SubmissionCreate, SubmissionDetail
from app.database.assignment_repo import AssignmentRepo
from app.database.submission_repo import SubmissionRepo
from app.core.deps import get_assignment_repository, get_publisher, get_submission_repository

from app.services.auth_service import AuthService
from app.services.submission_service import SubmissionService
from app.services.publisher_service import AssignmentPublisher, safe_publish


router = APIRouter()

AssignmentRepoDep = Annotated[AssignmentRepo, Depends(get_assignment_repository)]
RepoDep = Annotated[SubmissionRepo, Depends(get_submission_repository)]
UserDep = Annotated[UserContext, Depends(AuthService.get_current_user)]
PublisherDep = Annotated[AssignmentPublisher, Depends(get_publisher)]


@router.post("/submissions", response_model=SubmissionDetail, status_code=status.HTTP_201_CREATED)
async def submit_answer_endpoint(
    payload: SubmissionCreate,
    user: UserDep,
    assignments: AssignmentRepoDep,
    repo: RepoDep,
    publisher: PublisherDep,
    response: Response,
):
    created = await SubmissionService.submit(payload, user, assignments, repo)
    await safe_publish(
        publisher.publish_submission(
            submissionId=created.submissionId,
            assignmentId=created.assignmentId,
            studentId=created.studentId,
            createdAt=created.submittedAt,
        )
    )
    response.headers["Location"] = f"/api/v1/submissions/{created.submissionId}"
    return created


@router.get("/submissions", response_model=List[SubmissionDetail])
async def list_own_submissions_endpoint(
    user: UserDep,
    assignments: AssignmentRepoDep,
    repo: RepoDep,
):
    return await SubmissionService.list_own(user, assignments, repo)

@router.get("/submissions/{submission_id}", response_model=SubmissionDetail)
async def get_submission_endpoint(
    submission_id: str,
    user: UserDep,
    assignments: AssignmentRepoDep,
    repo: RepoDep,
):
    return await SubmissionService.get_submission(submission_id, user, assignments, repo)

@router.put("/submissions/{submission_id}/review", response_model=SubmissionDetail)
async def review_submission_endpoint(
    submission_id: str,
    user: UserDep,
    assignments: AssignmentRepoDep,
    repo: RepoDep,
    publisher: PublisherDep,
):
    reviewed = await SubmissionService.review(submission_id, user, assignments, repo)
    # reviewedAt non cambia sulle chiamate ripetute, quindi l'evento resta lo stesso
    await safe_publish(
        publisher.publish_review(
            submissionId=reviewed.submissionId,
            assignmentId=reviewed.assignmentId,
            reviewedAt=reviewed.reviewedAt,
        )
    )
    return reviewed
