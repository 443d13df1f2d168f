from __future__ import annotations

from typing import Protocol
from uuid import UUID

from learnhub.models.purchase import PurchaseRecord
from learnhub.services.errors import DuplicatePurchaseError


class PurchaseRepo(Protocol):
    """The purchase ledger.  Append-only, unique on (user_id, course_id)."""

    async def get(self, user_id: UUID, course_id: str) -> PurchaseRecord | None: ...
    async def add(self, record: PurchaseRecord) -> None:
        """Insert a record.  Raises DuplicatePurchaseError on a uniqueness clash."""
        ...

    async def list_for_user(self, user_id: UUID) -> list[PurchaseRecord]: ...


class InMemoryPurchaseRepo:
    def __init__(self) -> None:
        self._store: dict[tuple[UUID, str], PurchaseRecord] = {}

    async def get(self, user_id: UUID, course_id: str) -> PurchaseRecord | None:
        return self._store.get((user_id, course_id))

    async def add(self, record: PurchaseRecord) -> None:
        key = (record.user_id, record.course_id)
        if key in self._store:
            raise DuplicatePurchaseError(f"{record.user_id}:{record.course_id}")
        self._store[key] = record

    async def list_for_user(self, user_id: UUID) -> list[PurchaseRecord]:
        return [r for (uid, _), r in self._store.items() if uid == user_id]
