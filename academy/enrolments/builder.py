"""Content tree construction from graph store rows.

Turns one ``CourseRow`` into a ``Course`` with links, completion flags,
navigation stubs and question references attached, then hands it to the
order resolver. Neighbour references are resolved against the course's own
slug, so a stub always points inside the course it belongs to.
"""

from .exceptions import CourseOrderError
from .grouping import classify_enrolment
from .models import (
    Course,
    CourseRow,
    Lesson,
    LessonLink,
    LessonRef,
    LessonRow,
    Module,
    ModuleRow,
    content_link,
)
from .ordering import sort_course


def _neighbour_link(course_slug: str, ref: LessonRef | None) -> LessonLink | None:
    if ref is None:
        return None
    return LessonLink(
        slug=ref.slug,
        title=ref.title,
        link=content_link(course_slug, ref.module_slug, ref.slug),
    )


def build_lesson(course_slug: str, module_slug: str, row: LessonRow) -> Lesson:
    return Lesson(
        properties=dict(row.properties),
        link=content_link(course_slug, module_slug, row.properties["slug"]),
        completed=row.completed,
        previous=_neighbour_link(course_slug, row.previous),
        next=_neighbour_link(course_slug, row.next),
        questions=list(row.questions),
    )


def build_module(course_slug: str, row: ModuleRow) -> Module:
    module_slug = row.properties["slug"]
    return Module(
        properties=dict(row.properties),
        link=content_link(course_slug, module_slug),
        completed=row.completed,
        lessons=[build_lesson(course_slug, module_slug, lesson) for lesson in row.lessons],
    )


def build_course(row: CourseRow) -> Course:
    """Assemble and canonically order one course.

    Raises:
        CourseOrderError: If the course's lesson chain is inconsistent or a
            lesson belongs to no module of the course.
    """
    course_slug = row.properties["slug"]
    if row.orphan_lessons:
        raise CourseOrderError(
            course_slug,
            f"lesson {', '.join(row.orphan_lessons)} belongs to no module of the course",
        )
    enrolment = row.enrolment

    course = Course(
        properties=dict(row.properties),
        status=classify_enrolment(enrolment),
        created_at=enrolment.created_at if enrolment else None,
        completed=enrolment.is_completed if enrolment else False,
        completed_at=enrolment.completed_at if enrolment else None,
        modules=[build_module(course_slug, module) for module in row.modules],
    )
    return sort_course(course)
