from __future__ import annotations

import datetime
from dataclasses import dataclass
from enum import StrEnum
from uuid import UUID, uuid4


class PurchaseStatus(StrEnum):
    COMPLETED = "completed"
    REFUNDED = "refunded"


@dataclass(frozen=True, slots=True)
class PurchaseRecord:
    """Ledger row: commercial proof that a user bought a catalog course.

    Unique on (user_id, course_id).  ``course_id`` is the external catalog
    id the client sent when creating the PaymentIntent, not an enrollment
    ``course_id``.
    """

    id: UUID
    user_id: UUID
    course_id: str
    payment_intent_id: str
    amount: float  # major currency units
    status: PurchaseStatus = PurchaseStatus.COMPLETED
    purchase_date: datetime.datetime | None = None

    @staticmethod
    def new(
        *,
        user_id: UUID,
        course_id: str,
        payment_intent_id: str,
        amount: float,
    ) -> PurchaseRecord:
        return PurchaseRecord(
            id=uuid4(),
            user_id=user_id,
            course_id=course_id,
            payment_intent_id=payment_intent_id,
            amount=amount,
            status=PurchaseStatus.COMPLETED,
            purchase_date=datetime.datetime.now(datetime.UTC),
        )
