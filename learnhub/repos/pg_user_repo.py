"""PostgreSQL implementation of UserRepo."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from learnhub.db.tables import UserRow
from learnhub.models.enrollment import Enrollment
from learnhub.models.user import User


class PgUserRepo:
    """Satisfies the UserRepo Protocol using PostgreSQL via SQLAlchemy."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_by_id(self, user_id: UUID) -> User | None:
        stmt = select(UserRow).where(UserRow.id == user_id)
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        return _row_to_user(row) if row is not None else None

    async def get_for_update(self, user_id: UUID) -> User | None:
        # Row lock held until the request transaction commits, so the
        # read-modify-write of the enrollment document is atomic.
        stmt = select(UserRow).where(UserRow.id == user_id).with_for_update()
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        return _row_to_user(row) if row is not None else None

    async def get_by_email(self, email: str) -> User | None:
        stmt = select(UserRow).where(UserRow.email == email)
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        return _row_to_user(row) if row is not None else None

    async def list_all(self) -> list[User]:
        stmt = select(UserRow).order_by(UserRow.created_at)
        rows = (await self._session.execute(stmt)).scalars().all()
        return [_row_to_user(r) for r in rows]

    async def add(self, user: User) -> None:
        row = UserRow(
            id=user.id,
            email=user.email,
            name=user.name,
            password_hash=user.password_hash,
            roles=list(user.roles),
            picture=user.picture,
            mobile=user.mobile,
            google_id=user.google_id,
            enrollments=[e.to_doc() for e in user.enrollments],
        )
        try:
            async with self._session.begin_nested():
                self._session.add(row)
                await self._session.flush()
        except IntegrityError:
            raise ValueError("email already exists") from None

    async def set_roles(self, user_id: UUID, roles: tuple[str, ...]) -> None:
        stmt = update(UserRow).where(UserRow.id == user_id).values(roles=list(roles))
        await self._session.execute(stmt)

    async def set_enrollments(
        self, user_id: UUID, enrollments: tuple[Enrollment, ...]
    ) -> User | None:
        stmt = (
            update(UserRow)
            .where(UserRow.id == user_id)
            .values(enrollments=[e.to_doc() for e in enrollments])
            .returning(UserRow)
        )
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        return _row_to_user(row) if row is not None else None


def _row_to_user(row: UserRow) -> User:
    return User(
        id=row.id,
        email=row.email,
        name=row.name,
        password_hash=row.password_hash,
        roles=tuple(row.roles) if row.roles else (),
        picture=row.picture,
        mobile=row.mobile,
        google_id=row.google_id,
        enrollments=tuple(Enrollment.from_doc(d) for d in row.enrollments or ()),
    )
