# app/database/mongo_submission.py
from datetime import datetime
from typing import List, Optional, Sequence
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING, ReturnDocument
from pymongo.errors import DuplicateKeyError

from app.core.errors import Conflict
from app.database.mongo_utils import storage_errors
from app.database.submission_repo import SubmissionRepo
from app.schemas.submission import Submission


class MongoSubmissionRepository(SubmissionRepo):
    def __init__(self, db: AsyncIOMotorDatabase):
        self.col = db["submissions"]

    def _from_doc(self, d: dict) -> Submission:
        base = {k: v for k, v in d.items() if k not in {"_id"}}
        return Submission(**base)

    async def _find_sorted(self, filt: dict) -> Sequence[Submission]:
        with storage_errors("find submissions"):
            cursor = self.col.find(filt).sort("submittedAt", DESCENDING)
            docs: List[dict] = [d async for d in cursor]
        return [self._from_doc(d) for d in docs]

    async def create(self, submission: Submission) -> str:
        doc = submission.model_dump()
        with storage_errors("insert submission"):
            try:
                await self.col.insert_one(doc)
            except DuplicateKeyError:
                # l'indice unico (assignmentId, studentId) ha respinto il doppione
                raise Conflict("already submitted")
        return submission.submissionId

    async def find_one(self, submission_id: str) -> Optional[Submission]:
        with storage_errors("find submission"):
            d = await self.col.find_one({"submissionId": str(submission_id)})
        return self._from_doc(d) if d else None

    async def find_by_pair(self, assignment_id: str, student_id: str) -> Optional[Submission]:
        with storage_errors("find submission"):
            d = await self.col.find_one(
                {"assignmentId": str(assignment_id), "studentId": str(student_id)}
            )
        return self._from_doc(d) if d else None

    async def find_for_student(self, student_id: str) -> Sequence[Submission]:
        return await self._find_sorted({"studentId": str(student_id)})

    async def find_for_assignment(self, assignment_id: str) -> Sequence[Submission]:
        return await self._find_sorted({"assignmentId": str(assignment_id)})

    async def mark_reviewed(self, submission_id: str, ts: datetime) -> Optional[Submission]:
        with storage_errors("review submission"):
            d = await self.col.find_one_and_update(
                {"submissionId": str(submission_id), "isReviewed": False},
                {"$set": {"isReviewed": True, "reviewedAt": ts}},
                return_document=ReturnDocument.AFTER,
            )
        return self._from_doc(d) if d else None

    async def ensure_indexes(self):
        await self.col.create_index("submissionId", unique=True)
        await self.col.create_index(
            [("assignmentId", ASCENDING), ("studentId", ASCENDING)],
            unique=True,
            name="uq_submission_assignment_student",
        )
        await self.col.create_index([("studentId", ASCENDING), ("submittedAt", DESCENDING)])
        await self.col.create_index([("assignmentId", ASCENDING), ("submittedAt", DESCENDING)])
