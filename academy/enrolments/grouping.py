"""Enrolment status classification and grouping."""

from collections.abc import Iterable

from .models import Course, EnrolmentRecord, EnrolmentStatus


def classify_enrolment(enrolment: EnrolmentRecord | None) -> EnrolmentStatus:
    """Status of a course for a learner, from its enrolment alone.

    Module and lesson completion flags play no part: a learner may have
    every lesson flagged without the course being completed, and the reverse.
    """
    if enrolment is None:
        return EnrolmentStatus.AVAILABLE
    if enrolment.is_completed:
        return EnrolmentStatus.COMPLETED
    return EnrolmentStatus.ENROLLED


def group_by_status(
    labelled: Iterable[tuple[EnrolmentStatus, Course]],
) -> dict[EnrolmentStatus, list[Course]]:
    """Fold (status, course) pairs into a mapping, keeping input order.

    Statuses with no course are absent from the mapping, not empty lists.
    """
    grouped: dict[EnrolmentStatus, list[Course]] = {}
    for status, course in labelled:
        grouped.setdefault(status, []).append(course)
    return grouped
