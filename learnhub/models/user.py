from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID, uuid4

from learnhub.models.enrollment import Enrollment


@dataclass(frozen=True, slots=True)
class User:
    id: UUID
    email: str
    name: str
    password_hash: str | None = None  # None for externally authenticated users
    roles: tuple[str, ...] = ()
    picture: str | None = None
    mobile: str | None = None
    google_id: str | None = None
    enrollments: tuple[Enrollment, ...] = ()

    @staticmethod
    def new(
        *,
        email: str,
        name: str,
        password_hash: str | None = None,
        roles: tuple[str, ...] = (),
        mobile: str | None = None,
    ) -> User:
        return User(
            id=uuid4(),
            email=email,
            name=name,
            password_hash=password_hash,
            roles=roles,
            mobile=mobile,
        )

    @property
    def is_admin(self) -> bool:
        return "admin" in self.roles

    def find_enrollment(self, title: str) -> Enrollment | None:
        # First match wins; duplicate titles are indistinguishable.
        for enrollment in self.enrollments:
            if enrollment.title == title:
                return enrollment
        return None
