"""Cassandra-backed graph store.

The course graph is kept as adjacency tables partitioned by course, so a
course tree is rebuilt from a handful of single-partition reads: modules,
lessons, ``next_lessons`` edges and question references, plus the learner's
enrolment and completion facts. Edges are turned into per-lesson
previous/next references here; nothing is inferred from clustering order.

The reads for one course run concurrently but are separate queries, so a
write landing between them can be observed half-applied. Lessons whose
module has no ``course_modules`` row are reported in
``CourseRow.orphan_lessons`` rather than dropped.
"""

import asyncio
from typing import TYPE_CHECKING, Any

import structlog

from .models import (
    CourseRow,
    EnrolmentRecord,
    LessonRef,
    LessonRow,
    ModuleRow,
    QuestionRef,
    User,
    UserCourseRows,
)


if TYPE_CHECKING:
    from cassandra.cluster import Session

logger = structlog.get_logger(__name__)

LessonKey = tuple[str, str]  # (module_slug, lesson_slug)


def _present(values: dict[str, Any]) -> dict[str, Any]:
    """Drop unset columns so properties look like node properties."""
    return {key: value for key, value in values.items() if value is not None}


def course_properties(row: Any) -> dict[str, Any]:
    return _present(
        {
            "slug": row.slug,
            "title": row.title,
            "caption": row.caption,
            "thumbnail": row.thumbnail,
            "usecase": row.usecase,
            "language": row.language,
        }
    )


def module_properties(row: Any) -> dict[str, Any]:
    return _present({"slug": row.module_slug, "title": row.title, "position": row.position})


def lesson_properties(row: Any) -> dict[str, Any]:
    return _present(
        {
            "slug": row.lesson_slug,
            "title": row.title,
            "duration": row.duration,
            "optional": row.optional,
            "position": row.position,
        }
    )


class CassandraGraphStore:
    """Graph store reading the adjacency tables with prepared statements."""

    def __init__(self, session: "Session", keyspace: str):
        """Initialize with Cassandra session."""
        self.session = session
        self.keyspace = keyspace
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements for efficient execution."""
        self._get_user = self.session.prepare(f"""
            SELECT id, name, given_name FROM {self.keyspace}.users WHERE id = ?
        """)

        self._get_courses = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.courses
        """)

        self._get_course = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.courses WHERE slug = ?
        """)

        self._get_modules = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.course_modules WHERE course_slug = ?
        """)

        self._get_lessons = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.course_lessons WHERE course_slug = ?
        """)

        self._get_next_lessons = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.next_lessons WHERE course_slug = ?
        """)

        self._get_questions = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.lesson_questions WHERE course_slug = ?
        """)

        self._get_user_enrolments = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.enrolments_by_user WHERE user_id = ?
        """)

        self._get_enrolment = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.enrolments_by_user
            WHERE user_id = ? AND course_slug = ?
        """)

        self._get_completed_modules = self.session.prepare(f"""
            SELECT module_slug FROM {self.keyspace}.completed_modules
            WHERE user_id = ? AND course_slug = ?
        """)

        self._get_completed_lessons = self.session.prepare(f"""
            SELECT module_slug, lesson_slug FROM {self.keyspace}.completed_lessons
            WHERE user_id = ? AND course_slug = ?
        """)

    # ==========================================================================
    # GraphStore
    # ==========================================================================

    async def fetch_user_courses(self, user_id: str) -> UserCourseRows | None:
        result = await self.session.aexecute(self._get_user, [user_id])
        user_row = result.one()
        if user_row is None:
            return None

        enrolment_rows = await self.session.aexecute(self._get_user_enrolments, [user_id])
        enrolments = {
            row.course_slug: EnrolmentRecord.from_row(row) for row in enrolment_rows
        }

        course_rows = await self.session.aexecute(self._get_courses)
        courses = [
            await self._load_course(row, user_id, enrolments.get(row.slug))
            for row in course_rows
        ]

        logger.debug(
            "cassandra_user_courses_read",
            user_id=user_id,
            courses=len(courses),
            enrolments=len(enrolments),
        )
        return UserCourseRows(user=User.from_row(user_row), courses=courses)

    async def fetch_course(self, course_slug: str, user_id: str | None) -> CourseRow | None:
        result = await self.session.aexecute(self._get_course, [course_slug])
        course_row = result.one()
        if course_row is None:
            return None

        enrolment = None
        if user_id is not None:
            result = await self.session.aexecute(self._get_enrolment, [user_id, course_slug])
            enrolment_row = result.one()
            enrolment = EnrolmentRecord.from_row(enrolment_row) if enrolment_row else None

        return await self._load_course(course_row, user_id, enrolment)

    async def fetch_catalog(self) -> list[CourseRow]:
        course_rows = await self.session.aexecute(self._get_courses)
        return [await self._load_course(row, None, None) for row in course_rows]

    # ==========================================================================
    # Course tree assembly
    # ==========================================================================

    async def _load_course(
        self,
        course_row: Any,
        user_id: str | None,
        enrolment: EnrolmentRecord | None,
    ) -> CourseRow:
        """Read one course partition from every graph table."""
        slug = course_row.slug

        reads = [
            self.session.aexecute(self._get_modules, [slug]),
            self.session.aexecute(self._get_lessons, [slug]),
            self.session.aexecute(self._get_next_lessons, [slug]),
            self.session.aexecute(self._get_questions, [slug]),
        ]
        # Completion facts hang off the enrolment; without one nothing is complete.
        with_progress = enrolment is not None and user_id is not None
        if with_progress:
            reads.append(self.session.aexecute(self._get_completed_modules, [user_id, slug]))
            reads.append(self.session.aexecute(self._get_completed_lessons, [user_id, slug]))

        module_rows, lesson_rows, edge_rows, question_rows, *progress = await asyncio.gather(
            *reads
        )
        module_rows = list(module_rows)

        completed_modules: set[str] = set()
        completed_lessons: set[LessonKey] = set()
        if with_progress:
            completed_modules = {row.module_slug for row in progress[0]}
            completed_lessons = {(row.module_slug, row.lesson_slug) for row in progress[1]}

        module_slugs = {row.module_slug for row in module_rows}
        lessons: dict[LessonKey, Any] = {}
        orphans: list[str] = []
        for row in lesson_rows:
            if row.module_slug in module_slugs:
                lessons[(row.module_slug, row.lesson_slug)] = row
            else:
                orphans.append(f"{row.module_slug}/{row.lesson_slug}")

        next_by_key: dict[LessonKey, LessonKey] = {}
        previous_by_key: dict[LessonKey, LessonKey] = {}
        for edge in edge_rows:
            source = (edge.module_slug, edge.lesson_slug)
            target = (edge.next_module_slug, edge.next_lesson_slug)
            if source not in lessons or target not in lessons:
                continue
            next_by_key.setdefault(source, target)
            previous_by_key.setdefault(target, source)

        questions: dict[LessonKey, list[QuestionRef]] = {}
        for row in question_rows:
            questions.setdefault((row.module_slug, row.lesson_slug), []).append(
                QuestionRef(id=row.question_id, slug=row.question_slug)
            )

        def ref(key: LessonKey | None) -> LessonRef | None:
            if key is None:
                return None
            return LessonRef(module_slug=key[0], slug=key[1], title=lessons[key].title)

        modules = []
        for module_row in module_rows:
            module_lessons = [
                LessonRow(
                    properties=lesson_properties(row),
                    completed=key in completed_lessons,
                    previous=ref(previous_by_key.get(key)),
                    next=ref(next_by_key.get(key)),
                    questions=questions.get(key, []),
                )
                for key, row in lessons.items()
                if key[0] == module_row.module_slug
            ]
            modules.append(
                ModuleRow(
                    properties=module_properties(module_row),
                    completed=module_row.module_slug in completed_modules,
                    lessons=module_lessons,
                )
            )

        return CourseRow(
            properties=course_properties(course_row),
            enrolment=enrolment,
            modules=modules,
            orphan_lessons=orphans,
        )
