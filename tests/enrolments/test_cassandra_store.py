"""Tests for the Cassandra graph store with a mocked session."""

from datetime import datetime
from types import SimpleNamespace
from unittest.mock import AsyncMock, Mock

import pytest

from academy.enrolments.cassandra_store import CassandraGraphStore
from academy.enrolments.models import EnrolmentKind, EnrolmentStatus
from academy.enrolments.service import EnrolmentService


KEYSPACE = "academy_test"

# Columns bound by the prepared statements, in parameter order
PARTITION_COLUMNS = {
    "users": ["id"],
    "courses": ["slug"],
    "course_modules": ["course_slug"],
    "course_lessons": ["course_slug"],
    "next_lessons": ["course_slug"],
    "lesson_questions": ["course_slug"],
    "enrolments_by_user": ["user_id", "course_slug"],
    "completed_modules": ["user_id", "course_slug"],
    "completed_lessons": ["user_id", "course_slug"],
}


class Rows(list):
    """Stand-in for a driver ResultSet."""

    def one(self):
        return self[0] if self else None


def row(**columns) -> SimpleNamespace:
    return SimpleNamespace(**columns)


def course(slug, title=None, caption=None):
    return row(slug=slug, title=title, caption=caption, thumbnail=None, usecase=None, language=None)


def module(course_slug, slug, position=None):
    return row(course_slug=course_slug, module_slug=slug, title=slug.upper(), position=position)


def lesson(course_slug, module_slug, slug, duration=None):
    return row(
        course_slug=course_slug,
        module_slug=module_slug,
        lesson_slug=slug,
        title=slug.upper(),
        duration=duration,
        optional=None,
        position=None,
    )


def edge(course_slug, source, target):
    return row(
        course_slug=course_slug,
        module_slug=source[0],
        lesson_slug=source[1],
        next_module_slug=target[0],
        next_lesson_slug=target[1],
    )


def make_session(tables: dict[str, list]) -> Mock:
    def execute(statement, params=None):
        table = statement.split(" FROM ")[1].split()[0].split(".")[1]
        rows = tables.get(table, [])
        for column, value in zip(PARTITION_COLUMNS[table], params or []):
            rows = [r for r in rows if getattr(r, column) == value]
        return Rows(rows)

    session = Mock()
    session.prepare.side_effect = lambda cql: " ".join(cql.split())
    session.aexecute = AsyncMock(side_effect=execute)
    return session


@pytest.fixture
def tables():
    """Two courses; u-1 is enrolled in cypher-fundamentals only."""
    return {
        "users": [row(id="u-1", name="Ada Lovelace", given_name="Ada")],
        "courses": [
            course("cypher-fundamentals", title="Cypher Fundamentals", caption="Learn Cypher"),
            course("importing-data", title="Importing Data"),
        ],
        "course_modules": [
            module("cypher-fundamentals", "m2"),
            module("cypher-fundamentals", "m1"),
            module("importing-data", "intro"),
        ],
        "course_lessons": [
            lesson("cypher-fundamentals", "m1", "a", duration="5m"),
            lesson("cypher-fundamentals", "m1", "b"),
            lesson("cypher-fundamentals", "m2", "c"),
            lesson("importing-data", "intro", "x"),
        ],
        "next_lessons": [
            edge("cypher-fundamentals", ("m1", "a"), ("m1", "b")),
            edge("cypher-fundamentals", ("m1", "b"), ("m2", "c")),
            # Points at a lesson that is not part of the course
            edge("cypher-fundamentals", ("m2", "c"), ("m9", "z")),
        ],
        "lesson_questions": [
            row(
                course_slug="cypher-fundamentals",
                module_slug="m1",
                lesson_slug="b",
                question_id="q-1",
                question_slug="what-is-a-node",
            ),
        ],
        "enrolments_by_user": [
            row(
                user_id="u-1",
                course_slug="cypher-fundamentals",
                kind="in_progress",
                created_at=datetime(2024, 3, 1, 9, 30),
                completed_at=None,
            ),
        ],
        "completed_modules": [
            row(user_id="u-1", course_slug="cypher-fundamentals", module_slug="m1"),
        ],
        "completed_lessons": [
            row(user_id="u-1", course_slug="cypher-fundamentals", module_slug="m1", lesson_slug="a"),
            row(user_id="u-1", course_slug="cypher-fundamentals", module_slug="m1", lesson_slug="b"),
        ],
    }


@pytest.fixture
def store(tables) -> CassandraGraphStore:
    return CassandraGraphStore(session=make_session(tables), keyspace=KEYSPACE)


class TestCassandraGraphStore:
    """Tests for reading course trees from the adjacency tables."""

    def test_statements_use_keyspace(self, store):
        prepared = [call.args[0] for call in store.session.prepare.call_args_list]
        assert prepared
        assert all(f"{KEYSPACE}." in cql for cql in prepared)

    @pytest.mark.asyncio
    async def test_unknown_user(self, store):
        assert await store.fetch_user_courses("nobody") is None

    @pytest.mark.asyncio
    async def test_every_course_returned_for_user(self, store):
        rows = await store.fetch_user_courses("u-1")

        assert rows.user.given_name == "Ada"
        by_slug = {c.properties["slug"]: c for c in rows.courses}
        assert set(by_slug) == {"cypher-fundamentals", "importing-data"}
        assert by_slug["importing-data"].enrolment is None

        enrolment = by_slug["cypher-fundamentals"].enrolment
        assert enrolment.kind == EnrolmentKind.IN_PROGRESS
        assert enrolment.created_at.tzinfo is not None

    @pytest.mark.asyncio
    async def test_properties_skip_unset_columns(self, store):
        rows = await store.fetch_user_courses("u-1")

        cypher = rows.courses[0]
        assert cypher.properties == {
            "slug": "cypher-fundamentals",
            "title": "Cypher Fundamentals",
            "caption": "Learn Cypher",
        }

    @pytest.mark.asyncio
    async def test_edges_become_neighbour_refs(self, store):
        row = await store.fetch_course("cypher-fundamentals", "u-1")

        lessons = {
            lesson.properties["slug"]: lesson for m in row.modules for lesson in m.lessons
        }
        assert lessons["a"].previous is None
        assert lessons["a"].next.slug == "b"
        assert lessons["b"].previous.slug == "a"
        assert lessons["b"].next.module_slug == "m2"
        assert lessons["c"].previous.slug == "b"
        # The edge to m9/z leaves the course and is ignored
        assert lessons["c"].next is None

    @pytest.mark.asyncio
    async def test_lesson_without_module_is_reported(self, store, tables):
        tables["course_lessons"].append(lesson("cypher-fundamentals", "ghost", "g"))

        row = await store.fetch_course("cypher-fundamentals", None)

        assert row.orphan_lessons == ["ghost/g"]
        slugs = {lesson.properties["slug"] for m in row.modules for lesson in m.lessons}
        assert slugs == {"a", "b", "c"}

    @pytest.mark.asyncio
    async def test_lesson_without_module_fails_course(self, store, tables):
        tables["course_lessons"].append(lesson("cypher-fundamentals", "ghost", "g"))

        result = await EnrolmentService(store=store).get_user_enrolments("u-1")

        assert EnrolmentStatus.ENROLLED not in result.enrolments
        assert [c.slug for c in result.enrolments[EnrolmentStatus.AVAILABLE]] == [
            "importing-data"
        ]
        assert result.to_dict()["failures"] == [
            {
                "course": "cypher-fundamentals",
                "reason": "lesson ghost/g belongs to no module of the course",
            }
        ]

    @pytest.mark.asyncio
    async def test_completion_and_questions(self, store):
        row = await store.fetch_course("cypher-fundamentals", "u-1")

        modules = {m.properties["slug"]: m for m in row.modules}
        assert modules["m1"].completed is True
        assert modules["m2"].completed is False
        flags = {lesson.properties["slug"]: lesson.completed for lesson in modules["m1"].lessons}
        assert flags == {"a": True, "b": True}
        (question,) = modules["m1"].lessons[1].questions
        assert (question.id, question.slug) == ("q-1", "what-is-a-node")

    @pytest.mark.asyncio
    async def test_anonymous_read_skips_progress_tables(self, store):
        row = await store.fetch_course("cypher-fundamentals", None)

        assert row.enrolment is None
        queried = {call.args[0] for call in store.session.aexecute.call_args_list}
        assert not any("completed_lessons" in cql for cql in queried)
        assert not any("enrolments_by_user" in cql for cql in queried)

    @pytest.mark.asyncio
    async def test_unknown_course(self, store):
        assert await store.fetch_course("missing", "u-1") is None

    @pytest.mark.asyncio
    async def test_catalog(self, store):
        rows = await store.fetch_catalog()

        assert [r.properties["slug"] for r in rows] == ["cypher-fundamentals", "importing-data"]
        assert all(r.enrolment is None for r in rows)

    @pytest.mark.asyncio
    async def test_store_errors_propagate(self, store):
        store.session.aexecute.side_effect = TimeoutError("read timed out")

        with pytest.raises(TimeoutError):
            await store.fetch_user_courses("u-1")

    @pytest.mark.asyncio
    async def test_end_to_end_with_service(self, store):
        result = await EnrolmentService(store=store).get_user_enrolments("u-1")

        (course,) = result.enrolments[EnrolmentStatus.ENROLLED]
        assert [m.slug for m in course.modules] == ["m1", "m2"]
        assert [lesson.slug for lesson in course.lessons()] == ["a", "b", "c"]
        assert course.next_lesson().slug == "c"
        assert [c.slug for c in result.enrolments[EnrolmentStatus.AVAILABLE]] == [
            "importing-data"
        ]
