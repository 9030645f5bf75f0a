from fastapi import Request
from app.database.assignment_repo import AssignmentRepo
from app.database.submission_repo import SubmissionRepo
from app.services.publisher_service import AssignmentPublisher

def get_assignment_repository(request: Request) -> AssignmentRepo:
    repo = getattr(request.app.state, "assignment_repo", None)
    if repo is None:
        raise RuntimeError("Repository assignment non inizializzato")
    return repo

def get_submission_repository(request: Request) -> SubmissionRepo:
    repo = getattr(request.app.state, "submission_repo", None)
    if repo is None:
        raise RuntimeError("Repository submission non inizializzato")
    return repo

def get_publisher(request: Request) -> AssignmentPublisher:
    publisher = getattr(request.app.state, "assignment_publisher", None)
    if publisher is None:
        raise RuntimeError("Publisher non inizializzato")
    return publisher
