"""Canonical ordering of a course's modules and lessons.

Stores return modules and lessons in no particular order. The only source of
truth is the ordering relation, materialized on every lesson as its
``previous``/``next`` stubs: a single chain that runs through the whole course
and crosses module boundaries. ``sort_course`` walks that chain once and
derives both lesson order and module order from it.
"""

from typing import Any

from .exceptions import CourseOrderError
from .models import Course, Lesson, Module


def sort_course(course: Course) -> Course:
    """Reorder ``course.modules`` and every ``module.lessons`` in place.

    Module position is the position of its earliest lesson in the chain;
    modules without lessons keep their relative order after the others.
    Applying it to an already sorted course changes nothing.

    Raises:
        CourseOrderError: If the chain has no unique head, loops, leaves
            lessons out or points at a lesson outside the course's modules.
    """
    flattened = [(module, lesson) for module in course.modules for lesson in module.lessons]
    if not flattened:
        return course

    by_link: dict[str, tuple[Module, Lesson]] = {}
    for module, lesson in flattened:
        if lesson.link in by_link:
            raise CourseOrderError(course.slug, f"lesson {lesson.link} appears twice")
        by_link[lesson.link] = (module, lesson)

    if not any(lesson.previous or lesson.next for _, lesson in flattened):
        _sort_by_position(course)
        return course

    heads = [lesson for _, lesson in flattened if lesson.previous is None]
    if len(heads) != 1:
        raise CourseOrderError(
            course.slug, f"expected exactly one first lesson, found {len(heads)}"
        )

    ordered: list[tuple[Module, Lesson]] = []
    visited: set[str] = set()
    link: str | None = heads[0].link
    while link is not None:
        if link in visited:
            raise CourseOrderError(course.slug, f"lesson chain loops back to {link}")
        entry = by_link.get(link)
        if entry is None:
            raise CourseOrderError(
                course.slug, f"lesson {link} does not belong to any module of the course"
            )
        visited.add(link)
        ordered.append(entry)
        following = entry[1].next
        link = following.link if following else None

    if len(ordered) != len(flattened):
        missing = sorted(set(by_link) - visited)
        raise CourseOrderError(
            course.slug, f"lessons not reachable from the first lesson: {', '.join(missing)}"
        )

    lessons_by_module: dict[str, list[Lesson]] = {m.slug: [] for m in course.modules}
    module_order: list[Module] = []
    for module, lesson in ordered:
        if not lessons_by_module[module.slug]:
            module_order.append(module)
        lessons_by_module[module.slug].append(lesson)

    for module in course.modules:
        module.lessons = lessons_by_module[module.slug]

    course.modules = module_order + [m for m in course.modules if not m.lessons]
    return course


def _position_key(properties: dict[str, Any]) -> tuple[bool, float, str]:
    # Missing or non-numeric positions sort last, then by slug.
    position = properties.get("position")
    try:
        value = float(position)
    except (TypeError, ValueError):
        return (True, 0.0, str(properties.get("slug", "")))
    return (False, value, str(properties.get("slug", "")))


def _sort_by_position(course: Course) -> None:
    """Deterministic order for courses with no chain edges yet."""
    for module in course.modules:
        module.lessons.sort(key=lambda lesson: _position_key(lesson.properties))
    course.modules.sort(key=lambda module: _position_key(module.properties))
