"""Course-progress aggregation service layer.

Business logic for:
- Grouping every catalog course of a learner by enrolment status
- Single-course progress view with the next lesson to take
- Public catalog listing

Each call performs one store read and builds the result fresh; nothing is
cached between requests.
"""

from typing import TYPE_CHECKING

import structlog

from .builder import build_course
from .exceptions import CourseNotFoundError, CourseOrderError
from .grouping import group_by_status
from .models import Course, CourseFailure, CourseRow, EnrolmentStatus, UserEnrolments


if TYPE_CHECKING:
    from .store import GraphStore

logger = structlog.get_logger(__name__)


class EnrolmentService:
    """Service assembling learner progress from a graph store."""

    def __init__(self, store: "GraphStore"):
        self.store = store

    async def get_user_enrolments(self, user_id: str) -> UserEnrolments:
        """Courses of ``user_id`` grouped by status.

        A course whose lesson chain is inconsistent is left out and reported in
        ``failures``; the other courses are unaffected. Store errors propagate.
        """
        rows = await self.store.fetch_user_courses(user_id)
        if rows is None:
            logger.info("user_enrolments_unknown_user", user_id=user_id)
            return UserEnrolments.empty()

        labelled: list[tuple[EnrolmentStatus, Course]] = []
        failures: list[CourseFailure] = []
        for row in rows.courses:
            try:
                course = build_course(row)
            except CourseOrderError as e:
                failures.append(self._record_failure(e, user_id=user_id))
                continue
            labelled.append((course.status, course))

        result = UserEnrolments(
            user=rows.user,
            enrolments=group_by_status(labelled),
            failures=failures,
        )

        logger.info(
            "user_enrolments_built",
            user_id=user_id,
            courses=len(labelled),
            failed=len(failures),
            **{status.value: len(courses) for status, courses in result.enrolments.items()},
        )
        return result

    async def get_course_with_progress(self, course_slug: str, user_id: str | None) -> Course:
        """One course projected for ``user_id`` (anonymous when None).

        Raises:
            CourseNotFoundError: If the course does not exist.
            CourseOrderError: If the course's lesson chain is inconsistent.
        """
        row = await self.store.fetch_course(course_slug, user_id)
        if row is None:
            raise CourseNotFoundError(course_slug)
        try:
            return build_course(row)
        except CourseOrderError as e:
            self._record_failure(e, user_id=user_id)
            raise

    async def get_catalog(self, user_id: str | None = None) -> list[Course]:
        """Every course with its ordered content.

        With ``user_id`` each course carries that learner's status and
        completion flags; an unknown learner gets the anonymous catalog.
        """
        rows = None
        if user_id is not None:
            user_rows = await self.store.fetch_user_courses(user_id)
            if user_rows is None:
                logger.info("catalog_unknown_user", user_id=user_id)
            else:
                rows = user_rows.courses
        if rows is None:
            rows = await self.store.fetch_catalog()

        courses = [self._build_or_skip(row, user_id=user_id) for row in rows]
        return [course for course in courses if course is not None]

    def _build_or_skip(self, row: CourseRow, **fields) -> Course | None:
        try:
            return build_course(row)
        except CourseOrderError as e:
            self._record_failure(e, **fields)
            return None

    @staticmethod
    def _record_failure(error: CourseOrderError, **fields) -> CourseFailure:
        logger.warning(
            "course_order_inconsistent",
            course_slug=error.course_slug,
            reason=error.reason,
            **fields,
        )
        return CourseFailure(course=error.course_slug, reason=error.reason)
