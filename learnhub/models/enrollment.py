from __future__ import annotations

from dataclasses import dataclass, replace
from uuid import UUID, uuid4


@dataclass(frozen=True, slots=True)
class Enrollment:
    """One entry of a user's embedded course list.

    ``course_id`` is generated at enrollment time and is NOT the catalog
    course id nor the catalog id used by the purchase ledger.  Entries are
    matched by ``title``.
    """

    course_id: UUID
    title: str
    progress: int = 0  # 0..100, overwritten as reported by the client
    completed_topics: tuple[str, ...] = ()  # insertion order, unique

    @staticmethod
    def new(*, title: str) -> Enrollment:
        return Enrollment(course_id=uuid4(), title=title)

    def with_progress(
        self,
        *,
        progress: int | None = None,
        completed_topic: str | None = None,
    ) -> Enrollment:
        updated = self
        if progress is not None:
            updated = replace(updated, progress=progress)
        if completed_topic and completed_topic not in updated.completed_topics:
            updated = replace(
                updated, completed_topics=(*updated.completed_topics, completed_topic)
            )
        return updated

    def to_doc(self) -> dict:
        return {
            "courseId": str(self.course_id),
            "title": self.title,
            "progress": self.progress,
            "completedTopics": list(self.completed_topics),
        }

    @staticmethod
    def from_doc(doc: dict) -> Enrollment:
        return Enrollment(
            course_id=UUID(doc["courseId"]),
            title=doc["title"],
            progress=int(doc.get("progress", 0)),
            completed_topics=tuple(doc.get("completedTopics", ())),
        )
