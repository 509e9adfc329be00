"""Graph store adapter contract.

An adapter answers each call with a single logical read against a consistent
snapshot. It never drops a course because the learner is not enrolled in it,
and only reports chain neighbours that belong to a module of the same course.
Failures (unavailable store, timeouts, cancellation) propagate as raised.
"""

from typing import Protocol

from .models import CourseRow, UserCourseRows


class GraphStore(Protocol):
    async def fetch_user_courses(self, user_id: str) -> UserCourseRows | None:
        """One row per catalog course for ``user_id``; None for unknown users."""
        ...

    async def fetch_course(self, course_slug: str, user_id: str | None) -> CourseRow | None:
        """Row for one course, with ``user_id``'s progress when given."""
        ...

    async def fetch_catalog(self) -> list[CourseRow]:
        """One row per catalog course without learner data."""
        ...
