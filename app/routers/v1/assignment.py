from typing import Annotated, List
from fastapi import APIRouter, Depends, Response, status

from app.schemas.assignment import Assignment, AssignmentCreate, AssignmentUpdate
from app.schemas.context import UserContext
from app.schemas.submission import Submission
from app.database.assignment_repo import AssignmentRepo
from app.database.submission_repo import SubmissionRepo
from app.core import clock
from app.core.deps import get_assignment_repository, get_publisher, get_submission_repository

from app.services.auth_service import AuthService
from app.services.assignment_service import AssignmentService
from app.services.submission_service import SubmissionService
from app.services.publisher_service import AssignmentPublisher, safe_publish


router = APIRouter()

RepoDep = Annotated[AssignmentRepo, Depends(get_assignment_repository)]
SubmissionRepoDep = Annotated[SubmissionRepo, Depends(get_submission_repository)]
UserDep = Annotated[UserContext, Depends(AuthService.get_current_user)]
PublisherDep = Annotated[AssignmentPublisher, Depends(get_publisher)]


async def _publish_status(publisher: AssignmentPublisher, a: Assignment, status_value: str, timestamp=None):
    await safe_publish(
        publisher.publish_assignment_status(
            assignmentId=a.assignmentId,
            teacherId=a.teacherId,
            status=status_value,
            timestamp=timestamp or a.updatedAt,
        )
    )


@router.post("/assignments", response_model=Assignment, status_code=status.HTTP_201_CREATED)
async def create_assignment_endpoint(
    assignment: AssignmentCreate,
    user: UserDep,
    repo: RepoDep,
    publisher: PublisherDep,
    response: Response,
):
    created = await AssignmentService.create_assignment(assignment, user, repo)
    await _publish_status(publisher, created, created.status.value)
    response.headers["Location"] = f"/api/v1/assignments/{created.assignmentId}"
    return created


@router.get("/assignments", response_model=List[Assignment])
async def list_assignments_endpoint(
    user: UserDep,
    repo: RepoDep,
):
    return await AssignmentService.list_assignments(user, repo)

@router.get("/assignments/{assignment_id}", response_model=Assignment)
async def get_assignment_endpoint(
    assignment_id: str,
    user: UserDep,
    repo: RepoDep,
):
    return await AssignmentService.get_assignment(assignment_id, user, repo)

@router.put("/assignments/{assignment_id}", response_model=Assignment)
async def update_assignment_endpoint(
    assignment_id: str,
    changes: AssignmentUpdate,
    user: UserDep,
    repo: RepoDep,
):
    return await AssignmentService.update_assignment(assignment_id, changes, user, repo)

@router.delete("/assignments/{assignment_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_assignment_endpoint(
    assignment_id: str,
    user: UserDep,
    repo: RepoDep,
    publisher: PublisherDep,
):
    deleted = await AssignmentService.delete_assignment(assignment_id, user, repo)
    # l'evento porta l'istante della cancellazione, non l'ultima modifica
    await _publish_status(publisher, deleted, "deleted", timestamp=clock.utcnow())
    return Response(status_code=status.HTTP_204_NO_CONTENT)

@router.put("/assignments/{assignment_id}/publish", response_model=Assignment)
async def publish_assignment_endpoint(
    assignment_id: str,
    user: UserDep,
    repo: RepoDep,
    publisher: PublisherDep,
):
    published = await AssignmentService.publish_assignment(assignment_id, user, repo)
    await _publish_status(publisher, published, published.status.value)
    return published

@router.put("/assignments/{assignment_id}/complete", response_model=Assignment)
async def complete_assignment_endpoint(
    assignment_id: str,
    user: UserDep,
    repo: RepoDep,
    publisher: PublisherDep,
):
    completed = await AssignmentService.complete_assignment(assignment_id, user, repo)
    await _publish_status(publisher, completed, completed.status.value)
    return completed

@router.get("/assignments/{assignment_id}/submissions", response_model=List[Submission])
async def list_assignment_submissions_endpoint(
    assignment_id: str,
    user: UserDep,
    repo: RepoDep,
    submissions: SubmissionRepoDep,
):
    return await SubmissionService.list_for_assignment(assignment_id, user, repo, submissions)
