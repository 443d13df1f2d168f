from __future__ import annotations

from dataclasses import replace
from typing import Protocol
from uuid import UUID

from learnhub.models.enrollment import Enrollment
from learnhub.models.user import User


class UserRepo(Protocol):
    async def get_by_id(self, user_id: UUID) -> User | None: ...
    async def get_for_update(self, user_id: UUID) -> User | None: ...
    async def get_by_email(self, email: str) -> User | None: ...
    async def list_all(self) -> list[User]: ...
    async def add(self, user: User) -> None: ...
    async def set_roles(self, user_id: UUID, roles: tuple[str, ...]) -> None: ...
    async def set_enrollments(
        self, user_id: UUID, enrollments: tuple[Enrollment, ...]
    ) -> User | None: ...


class InMemoryUserRepo:
    """Dict-backed UserRepo.

    Methods never await, so each call runs to completion without
    interleaving with other requests on the event loop.
    """

    def __init__(self) -> None:
        self._by_email: dict[str, User] = {}
        self._by_id: dict[UUID, User] = {}

    async def get_by_id(self, user_id: UUID) -> User | None:
        return self._by_id.get(user_id)

    async def get_for_update(self, user_id: UUID) -> User | None:
        return self._by_id.get(user_id)

    async def get_by_email(self, email: str) -> User | None:
        return self._by_email.get(email)

    async def list_all(self) -> list[User]:
        return list(self._by_id.values())

    async def add(self, user: User) -> None:
        if user.email in self._by_email:
            raise ValueError("email already exists")
        self._by_email[user.email] = user
        self._by_id[user.id] = user

    async def set_roles(self, user_id: UUID, roles: tuple[str, ...]) -> None:
        u = self._by_id.get(user_id)
        if u is None:
            raise KeyError("user not found")
        self._store(replace(u, roles=roles))

    async def set_enrollments(
        self, user_id: UUID, enrollments: tuple[Enrollment, ...]
    ) -> User | None:
        u = self._by_id.get(user_id)
        if u is None:
            return None
        updated = replace(u, enrollments=enrollments)
        self._store(updated)
        return updated

    def _store(self, user: User) -> None:
        self._by_id[user.id] = user
        self._by_email[user.email] = user
