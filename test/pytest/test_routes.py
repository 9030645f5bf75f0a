from datetime import timedelta
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from app.core.deps import get_assignment_repository, get_publisher, get_submission_repository
from app.core.errors import StorageError
import app.main as main_module
from app.main import create_app

TEACHER = {"X-User-Id": "t1", "X-User-Role": "teacher"}
OTHER_TEACHER = {"X-User-Id": "t2", "X-User-Role": "teacher"}
STUDENT = {"X-User-Id": "s1", "X-User-Role": "student"}


class RecordingPublisher:
    def __init__(self):
        self.events = []

    async def publish_assignment_status(self, **payload):
        self.events.append(("assignments.status", payload))

    async def publish_submission(self, **payload):
        self.events.append(("submissions.created", payload))

    async def publish_review(self, **payload):
        self.events.append(("submissions.reviewed", payload))


@pytest.fixture
def publisher():
    return RecordingPublisher()

@pytest.fixture
def client(repo, submissions, publisher, clock):
    app = create_app()
    app.dependency_overrides[get_assignment_repository] = lambda: repo
    app.dependency_overrides[get_submission_repository] = lambda: submissions
    app.dependency_overrides[get_publisher] = lambda: publisher
    # senza "with": la lifespan (Mongo, RabbitMQ) non parte
    return TestClient(app)


def _create(client, clock, **overrides):
    body = {
        "title": "Algebra",
        "description": "Equazioni di primo grado",
        "dueDate": (clock.now + timedelta(days=7)).isoformat(),
    }
    body.update(overrides)
    return client.post("/api/v1/assignments", json=body, headers=TEACHER)


def test_health(client):
    r = client.get("/api/v1/health")
    assert r.status_code == 200
    assert r.json() == {"status": "ok"}

def test_missing_identity_is_401(client):
    r = client.get("/api/v1/assignments")
    assert r.status_code == 401

def test_create_assignment(client, clock, publisher):
    r = _create(client, clock)
    assert r.status_code == 201
    body = r.json()
    assert body["status"] == "draft"
    assert body["teacherId"] == "t1"
    assert r.headers["Location"] == f"/api/v1/assignments/{body['assignmentId']}"
    assert publisher.events[0][0] == "assignments.status"
    assert publisher.events[0][1]["status"] == "draft"

def test_create_assignment_by_student_is_403(client, clock):
    body = {"title": "X", "description": "Y", "dueDate": (clock.now + timedelta(days=1)).isoformat()}
    r = client.post("/api/v1/assignments", json=body, headers=STUDENT)
    assert r.status_code == 403

def test_create_assignment_field_validation(client, clock):
    assert _create(client, clock, title="").status_code == 422
    assert _create(client, clock, title="x" * 101).status_code == 422
    assert _create(client, clock, description="x" * 1001).status_code == 422

def test_create_assignment_past_due_date(client, clock):
    r = _create(client, clock, dueDate=(clock.now - timedelta(seconds=1)).isoformat())
    assert r.status_code == 400
    assert r.json()["detail"] == "due date must be in the future"

def test_update_cannot_change_status(client, clock):
    aid = _create(client, clock).json()["assignmentId"]
    r = client.put(f"/api/v1/assignments/{aid}", json={"status": "completed"}, headers=TEACHER)
    assert r.status_code == 422

def test_error_mapping(client, clock):
    aid = _create(client, clock).json()["assignmentId"]
    assert client.get("/api/v1/assignments/as-missing", headers=TEACHER).status_code == 404
    assert client.get(f"/api/v1/assignments/{aid}", headers=STUDENT).status_code == 403
    assert client.put(f"/api/v1/assignments/{aid}/complete", headers=TEACHER).status_code == 400
    assert client.put(f"/api/v1/assignments/{aid}/publish", headers=OTHER_TEACHER).status_code == 403

def test_storage_failure_is_503(client, repo, monkeypatch):
    async def broken(*args, **kwargs):
        raise StorageError("Storage failure during find assignments")
    monkeypatch.setattr(repo, "find_for_teacher", broken)
    r = client.get("/api/v1/assignments", headers=TEACHER)
    assert r.status_code == 503

def test_lifecycle_over_http(client, clock, publisher):
    aid = _create(client, clock).json()["assignmentId"]

    r = client.put(f"/api/v1/assignments/{aid}/publish", headers=TEACHER)
    assert r.status_code == 200 and r.json()["status"] == "published"

    listed = client.get("/api/v1/assignments", headers=STUDENT).json()
    assert [a["assignmentId"] for a in listed] == [aid]

    r = client.post("/api/v1/submissions", json={"assignmentId": aid, "answer": "42"}, headers=STUDENT)
    assert r.status_code == 201
    sid = r.json()["submissionId"]
    assert r.json()["assignment"]["title"] == "Algebra"
    assert r.headers["Location"] == f"/api/v1/submissions/{sid}"

    r = client.post("/api/v1/submissions", json={"assignmentId": aid, "answer": "42"}, headers=STUDENT)
    assert r.status_code == 409
    assert r.json()["detail"] == "already submitted"

    subs = client.get(f"/api/v1/assignments/{aid}/submissions", headers=TEACHER).json()
    assert [s["submissionId"] for s in subs] == [sid]

    own = client.get("/api/v1/submissions", headers=STUDENT).json()
    assert own[0]["assignment"]["title"] == "Algebra"

    r = client.put(f"/api/v1/submissions/{sid}/review", headers=OTHER_TEACHER)
    assert r.status_code == 403
    r = client.put(f"/api/v1/submissions/{sid}/review", headers=TEACHER)
    assert r.status_code == 200 and r.json()["isReviewed"] is True
    assert r.json()["assignment"]["assignmentId"] == aid

    detail = client.get(f"/api/v1/submissions/{sid}", headers=TEACHER).json()
    assert detail["isReviewed"] is True
    assert detail["assignment"]["assignmentId"] == aid

    r = client.put(f"/api/v1/assignments/{aid}/complete", headers=TEACHER)
    assert r.json()["status"] == "completed"

    r = client.post(
        "/api/v1/submissions",
        json={"assignmentId": aid, "answer": "7"},
        headers={"X-User-Id": "s2", "X-User-Role": "student"},
    )
    assert r.status_code == 400
    assert r.json()["detail"] == "assignment not available for submission"

    kinds = [k for k, _ in publisher.events]
    assert kinds == [
        "assignments.status",
        "assignments.status",
        "submissions.created",
        "submissions.reviewed",
        "assignments.status",
    ]

def test_delete_draft(client, clock, repo, publisher):
    aid = _create(client, clock).json()["assignmentId"]
    r = client.delete(f"/api/v1/assignments/{aid}", headers=TEACHER)
    assert r.status_code == 204
    assert aid not in repo.items
    created_at = publisher.events[0][1]["timestamp"]
    assert publisher.events[-1][1]["status"] == "deleted"
    assert publisher.events[-1][1]["timestamp"] > created_at
    assert client.delete(f"/api/v1/assignments/{aid}", headers=TEACHER).status_code == 404

def test_publish_failure_does_not_fail_request(client, clock, publisher, monkeypatch):
    async def broken(**payload):
        raise ConnectionError("broker down")
    monkeypatch.setattr(publisher, "publish_assignment_status", broken)
    r = _create(client, clock)
    assert r.status_code == 201

@pytest.mark.asyncio
async def test_startup_failure_closes_mongo_client(monkeypatch):
    mongo_client = MagicMock()
    monkeypatch.setattr(main_module, "AsyncIOMotorClient", MagicMock(return_value=mongo_client))
    monkeypatch.setattr(
        main_module.MongoAssignmentRepository,
        "ensure_indexes",
        AsyncMock(side_effect=StorageError("Storage failure during ensure indexes")),
    )
    app = create_app()
    with pytest.raises(StorageError):
        async with app.router.lifespan_context(app):
            pass
    mongo_client.close.assert_called_once()
