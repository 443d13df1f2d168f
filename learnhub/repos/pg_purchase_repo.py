"""PostgreSQL implementation of PurchaseRepo."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from learnhub.db.tables import PurchaseRow
from learnhub.models.purchase import PurchaseRecord, PurchaseStatus
from learnhub.services.errors import DuplicatePurchaseError


class PgPurchaseRepo:
    """Satisfies the PurchaseRepo Protocol using PostgreSQL via SQLAlchemy."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, user_id: UUID, course_id: str) -> PurchaseRecord | None:
        stmt = select(PurchaseRow).where(
            PurchaseRow.user_id == user_id, PurchaseRow.course_id == course_id
        )
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        return _row_to_record(row) if row is not None else None

    async def add(self, record: PurchaseRecord) -> None:
        row = PurchaseRow(
            id=record.id,
            user_id=record.user_id,
            course_id=record.course_id,
            payment_intent_id=record.payment_intent_id,
            amount=record.amount,
            status=str(record.status),
            purchase_date=record.purchase_date,
        )
        # SAVEPOINT so a uniqueness clash from a concurrent delivery does not
        # poison the surrounding request transaction.
        try:
            async with self._session.begin_nested():
                self._session.add(row)
                await self._session.flush()
        except IntegrityError as exc:
            raise DuplicatePurchaseError(
                f"{record.user_id}:{record.course_id}"
            ) from exc
        # Commit now: the webhook may only acknowledge a durable row.
        await self._session.commit()

    async def list_for_user(self, user_id: UUID) -> list[PurchaseRecord]:
        stmt = (
            select(PurchaseRow)
            .where(PurchaseRow.user_id == user_id)
            .order_by(PurchaseRow.purchase_date)
        )
        rows = (await self._session.execute(stmt)).scalars().all()
        return [_row_to_record(r) for r in rows]


def _row_to_record(row: PurchaseRow) -> PurchaseRecord:
    return PurchaseRecord(
        id=row.id,
        user_id=row.user_id,
        course_id=row.course_id,
        payment_intent_id=row.payment_intent_id,
        amount=float(row.amount),
        status=PurchaseStatus(row.status),
        purchase_date=row.purchase_date,
    )
