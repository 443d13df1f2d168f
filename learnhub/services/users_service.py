from __future__ import annotations

import logging
from dataclasses import dataclass

from learnhub.models.course import Course
from learnhub.models.user import User
from learnhub.repos.course_repo import CourseRepo
from learnhub.repos.user_repo import UserRepo

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UserSummary:
    name: str
    email: str
    mobile: str | None
    is_admin: bool
    progress: int  # 0..100


def overall_progress(user: User, catalog_by_title: dict[str, Course]) -> int:
    """Percentage of catalog topics the user has completed across enrollments.

    Only completed topics count; the client-reported ``progress`` field is
    ignored.  Enrollments whose title is not in the catalog, or whose
    course has no modules, contribute nothing.
    """
    completed = 0
    total = 0
    for enrollment in user.enrollments:
        course = catalog_by_title.get(enrollment.title)
        if course is None or course.topic_count == 0:
            continue
        total += course.topic_count
        completed += min(len(enrollment.completed_topics), course.topic_count)
    if total == 0:
        return 0
    return round(100 * completed / total)


async def summarize_users(users: UserRepo, courses: CourseRepo) -> list[UserSummary]:
    catalog: dict[str, Course] = {}
    # list_all is newest first; keep the first course seen for each title.
    for course in await courses.list_all():
        catalog.setdefault(course.title, course)

    summaries = [
        UserSummary(
            name=u.name,
            email=u.email,
            mobile=u.mobile,
            is_admin=u.is_admin,
            progress=overall_progress(u, catalog),
        )
        for u in await users.list_all()
    ]
    logger.debug("Summarized %d users against %d courses", len(summaries), len(catalog))
    return summaries
