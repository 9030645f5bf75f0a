from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, Iterable, Optional, Sequence
from app.schemas.assignment import Assignment, AssignmentStatus

class AssignmentRepo(ABC):
    @abstractmethod
    async def create(self, assignment: Assignment) -> str:
        """Inserisce un assignment (id già generato nel service) e ritorna l'ID."""
        raise NotImplementedError

    @abstractmethod
    async def find_one(self, assignment_id: str) -> Optional[Assignment]:
        """Ritorna un assignment per ID, oppure None se non esiste."""
        raise NotImplementedError

    @abstractmethod
    async def find_many(self, assignment_ids: Iterable[str]) -> Sequence[Assignment]:
        """Ritorna gli assignment esistenti tra quelli richiesti, in ordine qualsiasi."""
        raise NotImplementedError

    @abstractmethod
    async def find_for_teacher(self, teacher_id: str) -> Sequence[Assignment]:
        """Ritorna gli assignment di un teacher, dal più recente."""
        raise NotImplementedError

    @abstractmethod
    async def find_published(self) -> Sequence[Assignment]:
        """Ritorna gli assignment pubblicati, dal più recente."""
        raise NotImplementedError

    @abstractmethod
    async def update_draft(
        self, assignment_id: str, fields: Dict[str, Any], ts: datetime
    ) -> Optional[Assignment]:
        """Aggiorna i campi solo se l'assignment è ancora in bozza.
        Ritorna il documento aggiornato, oppure None se la condizione non regge."""
        raise NotImplementedError

    @abstractmethod
    async def transition(
        self,
        assignment_id: str,
        current: AssignmentStatus,
        target: AssignmentStatus,
        ts: datetime,
    ) -> Optional[Assignment]:
        """Compare-and-swap sullo stato: scrive `target` solo se lo stato salvato
        è ancora `current`. Ritorna il documento aggiornato oppure None."""
        raise NotImplementedError

    @abstractmethod
    async def delete_draft(self, assignment_id: str) -> bool:
        """Cancella un assignment in bozza. Ritorna True se qualcosa è stato cancellato."""
        raise NotImplementedError
