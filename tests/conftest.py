"""Shared fixtures: an in-memory graph store, row builders and an HTTP client."""

import os


os.environ.setdefault("ENVIRONMENT", "testing")
os.environ.setdefault("LOG_TO_FILE", "false")
os.environ.setdefault("LOG_REQUESTS", "false")

from collections.abc import Callable, Iterable  # noqa: E402
from datetime import UTC, datetime  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from academy.enrolments.models import (  # noqa: E402
    CourseRow,
    EnrolmentKind,
    EnrolmentRecord,
    LessonRef,
    LessonRow,
    ModuleRow,
    User,
    UserCourseRows,
)
from academy.enrolments.service import EnrolmentService  # noqa: E402


ENROLLED_AT = datetime(2024, 3, 1, 9, 30, tzinfo=UTC)
FINISHED_AT = datetime(2024, 4, 2, 17, 0, tzinfo=UTC)


def build_course_row(
    slug: str,
    modules: dict[str, list[str]],
    *,
    chain: list[tuple[str, str]] | None = None,
    enrolment: EnrolmentRecord | None = None,
    completed_lessons: Iterable[str] = (),
    completed_modules: Iterable[str] = (),
    properties: dict | None = None,
) -> CourseRow:
    """Course row with lessons linked along ``chain``.

    ``chain`` defaults to the lessons in the order given; pass ``[]`` for a
    course without edges. Modules and lessons are emitted in reverse order,
    like a store that ignores the chain.
    """
    if chain is None:
        chain = [(module, lesson) for module, lessons in modules.items() for lesson in lessons]
    previous: dict[tuple[str, str], tuple[str, str]] = {}
    following: dict[tuple[str, str], tuple[str, str]] = {}
    for source, target in zip(chain, chain[1:]):
        following[source] = target
        previous[target] = source

    def ref(key: tuple[str, str] | None) -> LessonRef | None:
        if key is None:
            return None
        return LessonRef(module_slug=key[0], slug=key[1], title=key[1].upper())

    completed_lessons = set(completed_lessons)
    completed_modules = set(completed_modules)
    module_rows = []
    for module, lessons in modules.items():
        lesson_rows = [
            LessonRow(
                properties={"slug": lesson, "title": lesson.upper()},
                completed=lesson in completed_lessons,
                previous=ref(previous.get((module, lesson))),
                next=ref(following.get((module, lesson))),
            )
            for lesson in lessons
        ]
        module_rows.append(
            ModuleRow(
                properties={"slug": module, "title": module.upper()},
                completed=module in completed_modules,
                lessons=lesson_rows[::-1],
            )
        )

    return CourseRow(
        properties={"slug": slug, "title": slug.title(), **(properties or {})},
        enrolment=enrolment,
        modules=module_rows[::-1],
    )


class InMemoryGraphStore:
    """Graph store double keeping rows in dictionaries."""

    def __init__(self) -> None:
        self.users: dict[str, User] = {}
        self.catalog: dict[str, CourseRow] = {}
        self.progress: dict[tuple[str, str], CourseRow] = {}
        self.error: Exception | None = None

    def add_user(self, user_id: str, name: str | None = None, given_name: str | None = None):
        self.users[user_id] = User(id=user_id, name=name, given_name=given_name)

    def add_course(self, row: CourseRow) -> None:
        """Register a catalog course (no learner data)."""
        self.catalog[row.properties["slug"]] = row

    def set_progress(self, user_id: str, row: CourseRow) -> None:
        """Register what ``user_id`` sees of an already added course."""
        self.progress[(user_id, row.properties["slug"])] = row

    def _row_for(self, slug: str, user_id: str | None) -> CourseRow:
        if user_id is not None and (user_id, slug) in self.progress:
            return self.progress[(user_id, slug)]
        return self.catalog[slug]

    async def fetch_user_courses(self, user_id: str) -> UserCourseRows | None:
        if self.error:
            raise self.error
        user = self.users.get(user_id)
        if user is None:
            return None
        return UserCourseRows(
            user=user, courses=[self._row_for(slug, user_id) for slug in self.catalog]
        )

    async def fetch_course(self, course_slug: str, user_id: str | None) -> CourseRow | None:
        if self.error:
            raise self.error
        if course_slug not in self.catalog:
            return None
        return self._row_for(course_slug, user_id)

    async def fetch_catalog(self) -> list[CourseRow]:
        if self.error:
            raise self.error
        return list(self.catalog.values())


@pytest.fixture
def course_row() -> Callable[..., CourseRow]:
    return build_course_row


@pytest.fixture
def in_progress() -> EnrolmentRecord:
    return EnrolmentRecord(kind=EnrolmentKind.IN_PROGRESS, created_at=ENROLLED_AT)


@pytest.fixture
def finished() -> EnrolmentRecord:
    return EnrolmentRecord(
        kind=EnrolmentKind.COMPLETED, created_at=ENROLLED_AT, completed_at=FINISHED_AT
    )


@pytest.fixture
def graph_store() -> InMemoryGraphStore:
    return InMemoryGraphStore()


@pytest.fixture
def enrolment_service(graph_store: InMemoryGraphStore) -> EnrolmentService:
    return EnrolmentService(store=graph_store)


@pytest.fixture
def client(enrolment_service: EnrolmentService) -> TestClient:
    from academy.main import create_app

    app = create_app()
    app.state.enrolment_service = enrolment_service
    return TestClient(app)
