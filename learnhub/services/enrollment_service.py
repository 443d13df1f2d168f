"""Enrollment and learning progress.

A user's enrollments live embedded in the user document and are matched
by exact course title.  Two catalog courses sharing a title map to the
same enrollment.  Enrollment is independent of the purchase ledger: free
courses are enrolled without any purchase, and a purchase does not
enroll anyone.

Every mutation is one read-modify-write of a single user document.
"""

from __future__ import annotations

import logging
from uuid import UUID

from learnhub.models.enrollment import Enrollment
from learnhub.repos.user_repo import UserRepo
from learnhub.services.errors import (
    AlreadyEnrolledError,
    InvalidRequestError,
    NotEnrolledError,
    UserNotFoundError,
)

logger = logging.getLogger(__name__)

MIN_PROGRESS = 0
MAX_PROGRESS = 100


async def enroll(repo: UserRepo, user_id: UUID, course_title: str) -> Enrollment:
    if not course_title or not course_title.strip():
        raise InvalidRequestError("courseTitle is required")

    user = await repo.get_for_update(user_id)
    if user is None:
        raise UserNotFoundError("User not found")

    if user.find_enrollment(course_title) is not None:
        raise AlreadyEnrolledError("Already enrolled in this course")

    enrollment = Enrollment.new(title=course_title)
    if await repo.set_enrollments(user_id, (*user.enrollments, enrollment)) is None:
        raise UserNotFoundError("User not found")

    logger.info(
        "Enrolled  user_id=%s course_id=%s title=%r",
        user_id,
        enrollment.course_id,
        course_title,
    )
    return enrollment


async def record_progress(
    repo: UserRepo,
    user_id: UUID,
    course_title: str,
    *,
    progress: int | None = None,
    completed_topic: str | None = None,
) -> Enrollment:
    """Overwrite progress and/or add a completed topic in one write.

    ``progress`` must lie in 0..100 but may go down: the client is the
    authority on where the learner is.
    """
    if progress is not None and not MIN_PROGRESS <= progress <= MAX_PROGRESS:
        raise InvalidRequestError(
            f"progress must be between {MIN_PROGRESS} and {MAX_PROGRESS}"
        )

    user = await repo.get_for_update(user_id)
    if user is None:
        raise UserNotFoundError("User not found")

    current = user.find_enrollment(course_title)
    if current is None:
        raise NotEnrolledError("Course not found in user's enrolled courses")

    updated = current.with_progress(progress=progress, completed_topic=completed_topic)
    if updated == current:
        return current

    enrollments = tuple(updated if e is current else e for e in user.enrollments)
    if await repo.set_enrollments(user_id, enrollments) is None:
        raise UserNotFoundError("User not found")

    logger.info(
        "Progress updated  user_id=%s title=%r progress=%d topics=%d",
        user_id,
        course_title,
        updated.progress,
        len(updated.completed_topics),
    )
    return updated


async def get_progress(
    repo: UserRepo, user_id: UUID, course_title: str | None = None
) -> Enrollment | list[Enrollment]:
    """One enrollment by title, or every enrollment when no title is given."""
    user = await repo.get_by_id(user_id)
    if user is None:
        raise UserNotFoundError("User not found")

    if course_title:
        enrollment = user.find_enrollment(course_title)
        if enrollment is None:
            raise NotEnrolledError("Course not found in user's enrolled courses")
        return enrollment

    return list(user.enrollments)
