# app/database/mongo_assignment.py
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Sequence
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING, ReturnDocument

from app.database.assignment_repo import AssignmentRepo
from app.database.mongo_utils import storage_errors
from app.schemas.assignment import Assignment, AssignmentStatus


class MongoAssignmentRepository(AssignmentRepo):
    def __init__(self, db: AsyncIOMotorDatabase):
        self.col = db["assignments"]

    def _from_doc(self, d: dict) -> Assignment:
        base = {k: v for k, v in d.items() if k not in {"_id"}}
        return Assignment(**base)

    def _to_doc_from_model(self, a: Assignment) -> dict:
        doc = a.model_dump()
        doc["status"] = a.status.value
        return doc

    async def _find_sorted(self, filt: dict) -> Sequence[Assignment]:
        with storage_errors("find assignments"):
            cursor = self.col.find(filt).sort("createdAt", DESCENDING)
            docs: List[dict] = [d async for d in cursor]
        return [self._from_doc(d) for d in docs]

    async def create(self, assignment: Assignment) -> str:
        doc = self._to_doc_from_model(assignment)
        with storage_errors("insert assignment"):
            await self.col.insert_one(doc)
        return assignment.assignmentId

    async def find_one(self, assignment_id: str) -> Optional[Assignment]:
        with storage_errors("find assignment"):
            d = await self.col.find_one({"assignmentId": str(assignment_id)})
        return self._from_doc(d) if d else None

    async def find_many(self, assignment_ids: Iterable[str]) -> Sequence[Assignment]:
        ids = list({str(i) for i in assignment_ids})
        if not ids:
            return []
        with storage_errors("find assignments"):
            docs = await self.col.find({"assignmentId": {"$in": ids}}).to_list(length=None)
        return [self._from_doc(d) for d in docs]

    async def find_for_teacher(self, teacher_id: str) -> Sequence[Assignment]:
        return await self._find_sorted({"teacherId": str(teacher_id)})

    async def find_published(self) -> Sequence[Assignment]:
        return await self._find_sorted({"status": AssignmentStatus.PUBLISHED.value})

    async def update_draft(
        self, assignment_id: str, fields: Dict[str, Any], ts: datetime
    ) -> Optional[Assignment]:
        changes = {**fields, "updatedAt": ts}
        with storage_errors("update assignment"):
            d = await self.col.find_one_and_update(
                {"assignmentId": str(assignment_id), "status": AssignmentStatus.DRAFT.value},
                {"$set": changes},
                return_document=ReturnDocument.AFTER,
            )
        return self._from_doc(d) if d else None

    async def transition(
        self,
        assignment_id: str,
        current: AssignmentStatus,
        target: AssignmentStatus,
        ts: datetime,
    ) -> Optional[Assignment]:
        # compare-and-swap: se lo stato è cambiato nel frattempo non scrive nulla
        with storage_errors("update assignment status"):
            d = await self.col.find_one_and_update(
                {"assignmentId": str(assignment_id), "status": current.value},
                {"$set": {"status": target.value, "updatedAt": ts}},
                return_document=ReturnDocument.AFTER,
            )
        return self._from_doc(d) if d else None

    async def delete_draft(self, assignment_id: str) -> bool:
        with storage_errors("delete assignment"):
            res = await self.col.delete_one(
                {"assignmentId": str(assignment_id), "status": AssignmentStatus.DRAFT.value}
            )
        return res.deleted_count > 0

    async def ensure_indexes(self):
        await self.col.create_index("assignmentId", unique=True)
        await self.col.create_index([("teacherId", ASCENDING), ("createdAt", DESCENDING)])
        await self.col.create_index([("status", ASCENDING), ("createdAt", DESCENDING)])
