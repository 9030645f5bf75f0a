"""Regole di autorizzazione e transizioni di stato degli assignment.

Ogni operazione passa da qui prima di toccare il database. L'ordine dei
controlli è fisso, perché ogni rifiuto ha un segnale diverso verso il client:

1. esistenza dell'entità      -> NotFound
2. ruolo del chiamante        -> Forbidden
3. proprietà dell'entità      -> Forbidden
4. stato dell'entità          -> PreconditionFailed
"""
from enum import Enum
from typing import Dict, Optional, Tuple

from app.core.errors import Forbidden, NotFound, PreconditionFailed
from app.schemas.assignment import Assignment, AssignmentStatus
from app.schemas.context import UserContext
from app.schemas.submission import Submission

TEACHER = "teacher"
STUDENT = "student"


class Operation(str, Enum):
    CREATE = "create"
    READ = "read"
    UPDATE = "update"
    DELETE = "delete"
    PUBLISH = "publish"
    COMPLETE = "complete"
    LIST_SUBMISSIONS = "list_submissions"
    SUBMIT = "submit"
    READ_SUBMISSION = "read_submission"
    REVIEW = "review"


# (stato corrente, operazione) -> stato risultante; None = documento rimosso
TRANSITIONS: Dict[Tuple[AssignmentStatus, Operation], Optional[AssignmentStatus]] = {
    (AssignmentStatus.DRAFT, Operation.UPDATE): AssignmentStatus.DRAFT,
    (AssignmentStatus.DRAFT, Operation.DELETE): None,
    (AssignmentStatus.DRAFT, Operation.PUBLISH): AssignmentStatus.PUBLISHED,
    (AssignmentStatus.PUBLISHED, Operation.COMPLETE): AssignmentStatus.COMPLETED,
}

REJECTIONS: Dict[Operation, str] = {
    Operation.UPDATE: "only draft assignments can be updated",
    Operation.DELETE: "only draft assignments can be deleted",
    Operation.PUBLISH: "only draft assignments can be published",
    Operation.COMPLETE: "only published assignments can be completed",
    Operation.SUBMIT: "assignment not available for submission",
}

REQUIRED_ROLE: Dict[Operation, str] = {
    Operation.CREATE: TEACHER,
    Operation.UPDATE: TEACHER,
    Operation.DELETE: TEACHER,
    Operation.PUBLISH: TEACHER,
    Operation.COMPLETE: TEACHER,
    Operation.LIST_SUBMISSIONS: TEACHER,
    Operation.SUBMIT: STUDENT,
    Operation.REVIEW: TEACHER,
}

# operazioni riservate al docente proprietario dell'assignment
OWNER_ONLY = {
    Operation.UPDATE,
    Operation.DELETE,
    Operation.PUBLISH,
    Operation.COMPLETE,
    Operation.LIST_SUBMISSIONS,
}


def has_role(user: UserContext, role: str) -> bool:
    r = user.role
    return r == role or (isinstance(r, (list, tuple, set)) and role in r)


def is_teacher(user: UserContext) -> bool:
    return has_role(user, TEACHER)


def is_student(user: UserContext) -> bool:
    return has_role(user, STUDENT)


def next_status(current: AssignmentStatus, operation: Operation) -> Optional[AssignmentStatus]:
    """Applica la tabella delle transizioni, oppure solleva PreconditionFailed."""
    key = (current, operation)
    if key not in TRANSITIONS:
        raise PreconditionFailed(REJECTIONS[operation])
    return TRANSITIONS[key]


def _ensure_role(user: UserContext, operation: Operation) -> None:
    role = REQUIRED_ROLE.get(operation)
    if role is not None and not has_role(user, role):
        raise Forbidden(f"Only {role}s can {operation.value.replace('_', ' ')}")


def authorize(user: UserContext, assignment: Optional[Assignment], operation: Operation) -> None:
    """Controlla un'operazione su un assignment (già caricato, o None se non esiste)."""
    if operation is Operation.CREATE:
        _ensure_role(user, operation)
        return

    if assignment is None:
        raise NotFound("Assignment not found")

    _ensure_role(user, operation)

    owner = assignment.teacherId == user.user_id
    if operation is Operation.READ:
        if assignment.status is not AssignmentStatus.PUBLISHED and not owner:
            raise Forbidden("Access denied")
        return
    if operation in OWNER_ONLY and not owner:
        raise Forbidden("Access denied")

    if operation is Operation.SUBMIT:
        if assignment.status is not AssignmentStatus.PUBLISHED:
            raise PreconditionFailed(REJECTIONS[operation])
    elif (assignment.status, operation) not in TRANSITIONS and operation in REJECTIONS:
        raise PreconditionFailed(REJECTIONS[operation])


def authorize_submission(
    user: UserContext,
    submission: Optional[Submission],
    assignment: Optional[Assignment],
    operation: Operation,
) -> None:
    """Controlla lettura/revisione di una submission.

    `assignment` è l'assignment referenziato, letto a parte dal chiamante.
    """
    if submission is None:
        raise NotFound("Submission not found")

    _ensure_role(user, operation)

    owns_assignment = assignment is not None and assignment.teacherId == user.user_id
    if operation is Operation.REVIEW:
        if not owns_assignment:
            raise Forbidden("Access denied")
        return

    if is_student(user) and submission.studentId == user.user_id:
        return
    if is_teacher(user) and owns_assignment:
        return
    raise Forbidden("Access denied")
