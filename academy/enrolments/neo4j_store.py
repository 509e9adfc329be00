"""Neo4j-backed graph store.

Reads the property graph directly:

    (:User)-[:HAS_ENROLMENT]->(e)-[:FOR_COURSE]->(:Course)
    (:Course)-[:HAS_MODULE]->(:Module)-[:HAS_LESSON]->(:Lesson)
    (:Lesson)-[:NEXT_LESSON]->(:Lesson)
    (:Lesson)-[:HAS_QUESTION]->(:Question)
    (e)-[:COMPLETED_MODULE]->(:Module), (e)-[:COMPLETED_LESSON]->(:Lesson)

An enrolment labelled ``:CompletedEnrolment`` is a completed one. The user
and course queries run inside one read transaction.
"""

from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any, TypeVar

import structlog
from neo4j import READ_ACCESS, unit_of_work

from .models import (
    CourseRow,
    EnrolmentKind,
    EnrolmentRecord,
    LessonRef,
    LessonRow,
    ModuleRow,
    QuestionRef,
    User,
    UserCourseRows,
)


if TYPE_CHECKING:
    from neo4j import AsyncDriver, AsyncManagedTransaction

logger = structlog.get_logger(__name__)

T = TypeVar("T")


USER_QUERY = """
MATCH (u:User {id: $user_id})
RETURN u { .id, .name, .givenName } AS user
"""

# Neighbours are only followed to lessons hanging off a module of the same
# course, and the enrolment is optional so unenrolled courses still come back.
COURSE_TREE_QUERY = """
MATCH (c:Course)
WHERE $course_slug IS NULL OR c.slug = $course_slug
OPTIONAL MATCH (:User {id: $user_id})-[:HAS_ENROLMENT]->(e)-[:FOR_COURSE]->(c)
RETURN c { .* } AS course,
    CASE WHEN e IS NULL THEN null ELSE {
        kind: CASE WHEN e:CompletedEnrolment THEN 'completed' ELSE 'in_progress' END,
        createdAt: e.createdAt,
        completedAt: e.completedAt
    } END AS enrolment,
    [(c)-[:HAS_MODULE]->(m) | {
        properties: m { .* },
        completed: e IS NOT NULL AND EXISTS { (e)-[:COMPLETED_MODULE]->(m) },
        lessons: [(m)-[:HAS_LESSON]->(l) | {
            properties: l { .* },
            completed: e IS NOT NULL AND EXISTS { (e)-[:COMPLETED_LESSON]->(l) },
            previous: [(l)<-[:NEXT_LESSON]-(p)<-[:HAS_LESSON]-(pm)<-[:HAS_MODULE]-(c)
                | {module: pm.slug, slug: p.slug, title: p.title}][0],
            next: [(l)-[:NEXT_LESSON]->(n)<-[:HAS_LESSON]-(nm)<-[:HAS_MODULE]-(c)
                | {module: nm.slug, slug: n.slug, title: n.title}][0],
            questions: [(l)-[:HAS_QUESTION]->(q) | q { .id, .slug }]
        }]
    }] AS modules
"""


def _native(value: Any) -> Any:
    """Convert neo4j temporal values to their Python counterparts."""
    to_native = getattr(value, "to_native", None)
    return to_native() if callable(to_native) else value


def _properties(node: dict[str, Any]) -> dict[str, Any]:
    return {key: _native(value) for key, value in node.items() if value is not None}


def _lesson_ref(value: dict[str, Any] | None) -> LessonRef | None:
    if not value:
        return None
    return LessonRef(module_slug=value["module"], slug=value["slug"], title=value.get("title"))


def course_row_from_record(record: dict[str, Any]) -> CourseRow:
    """Convert one course record of ``COURSE_TREE_QUERY`` into a store row."""
    enrolment = None
    if record.get("enrolment"):
        data = record["enrolment"]
        enrolment = EnrolmentRecord(
            kind=EnrolmentKind(data["kind"]),
            created_at=_native(data.get("createdAt")),
            completed_at=_native(data.get("completedAt")),
        )

    modules = [
        ModuleRow(
            properties=_properties(module["properties"]),
            completed=bool(module["completed"]),
            lessons=[
                LessonRow(
                    properties=_properties(lesson["properties"]),
                    completed=bool(lesson["completed"]),
                    previous=_lesson_ref(lesson.get("previous")),
                    next=_lesson_ref(lesson.get("next")),
                    questions=[
                        QuestionRef(id=q["id"], slug=q.get("slug"))
                        for q in lesson.get("questions") or []
                    ],
                )
                for lesson in module.get("lessons") or []
            ],
        )
        for module in record.get("modules") or []
    ]

    return CourseRow(
        properties=_properties(record["course"]),
        enrolment=enrolment,
        modules=modules,
    )


class Neo4jGraphStore:
    """Graph store reading a Neo4j property graph through the async driver."""

    def __init__(self, driver: "AsyncDriver", database: str, query_timeout: float):
        self.driver = driver
        self.database = database
        self.query_timeout = query_timeout

    async def _read(self, work: Callable[..., Awaitable[T]], *args: Any) -> T:
        timed = unit_of_work(timeout=self.query_timeout)(work)
        async with self.driver.session(
            database=self.database, default_access_mode=READ_ACCESS
        ) as session:
            return await session.execute_read(timed, *args)

    # ==========================================================================
    # GraphStore
    # ==========================================================================

    async def fetch_user_courses(self, user_id: str) -> UserCourseRows | None:
        found = await self._read(_read_user_courses, user_id)
        if found is None:
            return None

        user, records = found
        courses = [course_row_from_record(record) for record in records]
        logger.debug("neo4j_user_courses_read", user_id=user_id, courses=len(courses))
        return UserCourseRows(
            user=User(id=user["id"], name=user.get("name"), given_name=user.get("givenName")),
            courses=courses,
        )

    async def fetch_course(self, course_slug: str, user_id: str | None) -> CourseRow | None:
        records = await self._read(_read_courses, course_slug, user_id)
        if not records:
            return None
        return course_row_from_record(records[0])

    async def fetch_catalog(self) -> list[CourseRow]:
        records = await self._read(_read_courses, None, None)
        return [course_row_from_record(record) for record in records]


async def _read_user_courses(
    tx: "AsyncManagedTransaction", user_id: str
) -> tuple[dict[str, Any], list[dict[str, Any]]] | None:
    result = await tx.run(USER_QUERY, user_id=user_id)
    record = await result.single()
    if record is None:
        return None
    user = record["user"]

    result = await tx.run(COURSE_TREE_QUERY, user_id=user_id, course_slug=None)
    return user, await result.data()


async def _read_courses(
    tx: "AsyncManagedTransaction", course_slug: str | None, user_id: str | None
) -> list[dict[str, Any]]:
    result = await tx.run(COURSE_TREE_QUERY, user_id=user_id, course_slug=course_slug)
    return await result.data()
