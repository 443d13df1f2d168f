from __future__ import annotations

import datetime
from dataclasses import dataclass
from uuid import UUID, uuid4


@dataclass(frozen=True, slots=True)
class CourseModule:
    title: str
    content: str
    pdf_path: str
    order: int


@dataclass(frozen=True, slots=True)
class Course:
    id: UUID
    title: str
    description: str
    modules: tuple[CourseModule, ...] = ()
    is_free: bool = True
    created_at: datetime.datetime | None = None
    updated_at: datetime.datetime | None = None

    @staticmethod
    def new(
        *,
        title: str,
        description: str,
        modules: tuple[CourseModule, ...] = (),
    ) -> Course:
        now = datetime.datetime.now(datetime.UTC)
        return Course(
            id=uuid4(),
            title=title.strip(),
            description=description,
            modules=modules,
            is_free=True,
            created_at=now,
            updated_at=now,
        )

    @property
    def topic_count(self) -> int:
        return len(self.modules)
