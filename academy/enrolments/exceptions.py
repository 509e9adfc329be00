"""Errors raised by the aggregation engine.

Store failures are not wrapped: whatever the adapter raises reaches the
caller unchanged.
"""


class EnrolmentError(Exception):
    """Base enrolment error."""

    def __init__(self, message: str, code: str = "enrolment_error"):
        self.message = message
        self.code = code
        super().__init__(message)


class CourseNotFoundError(EnrolmentError):
    """Course not found."""

    def __init__(self, course_slug: str):
        self.course_slug = course_slug
        super().__init__(f"Course not found: {course_slug}", "course_not_found")


class CourseOrderError(EnrolmentError):
    """Lesson chain of a course cannot be turned into a single sequence."""

    def __init__(self, course_slug: str, reason: str):
        self.course_slug = course_slug
        self.reason = reason
        super().__init__(
            f"Inconsistent lesson order in course {course_slug}: {reason}",
            "inconsistent_course_order",
        )
