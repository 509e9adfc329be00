"""Models for the course-progress aggregation engine.

Two groups of types live here:

- Store rows (``UserCourseRows``, ``CourseRow``, ``ModuleRow``, ``LessonRow``,
  ``LessonRef``, ``EnrolmentRecord``): what a graph store adapter returns for
  one read. Element order inside them is never meaningful.
- Content tree (``User``, ``Course``, ``Module``, ``Lesson``, ``LessonLink``,
  ``QuestionRef``): the per-request projection handed back to callers, built
  fresh on every request and never persisted.

The Cassandra adapter keeps the graph in the adjacency tables defined by
``GRAPH_TABLES_CQL``; the ``next_lessons`` table is the ordering relation.
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any


class EnrolmentStatus(str, Enum):
    """Status label a course is grouped under for one learner."""

    AVAILABLE = "available"  # No enrolment
    ENROLLED = "enrolled"  # Enrolment in progress
    COMPLETED = "completed"  # Enrolment tagged completed


class EnrolmentKind(str, Enum):
    """Sub-type tag carried by an enrolment record."""

    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


# ==============================================================================
# Helper Functions
# ==============================================================================


def ensure_utc_aware(dt: datetime | None) -> datetime | None:
    """Ensure datetime is UTC-aware (Cassandra returns naive datetimes)."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt


def content_link(course_slug: str, *slugs: str) -> str:
    """Build the public link of a course, module or lesson."""
    return "/".join(["/courses", course_slug, *slugs])


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

USERS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.users (
    id TEXT PRIMARY KEY,
    name TEXT,
    given_name TEXT
)
"""

COURSES_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.courses (
    slug TEXT PRIMARY KEY,
    title TEXT,
    caption TEXT,
    thumbnail TEXT,
    usecase TEXT,
    language TEXT
)
"""

# Modules and lessons are partitioned by course so a whole course tree is
# read with one query per table.
COURSE_MODULES_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.course_modules (
    course_slug TEXT,
    module_slug TEXT,
    title TEXT,
    position INT,
    PRIMARY KEY (course_slug, module_slug)
)
"""

COURSE_LESSONS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.course_lessons (
    course_slug TEXT,
    module_slug TEXT,
    lesson_slug TEXT,
    title TEXT,
    duration TEXT,
    optional BOOLEAN,
    position INT,
    PRIMARY KEY (course_slug, module_slug, lesson_slug)
)
"""

# Ordering relation: one row per (lesson -> following lesson) edge.
NEXT_LESSONS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.next_lessons (
    course_slug TEXT,
    module_slug TEXT,
    lesson_slug TEXT,
    next_module_slug TEXT,
    next_lesson_slug TEXT,
    PRIMARY KEY (course_slug, module_slug, lesson_slug)
)
"""

LESSON_QUESTIONS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.lesson_questions (
    course_slug TEXT,
    module_slug TEXT,
    lesson_slug TEXT,
    question_id TEXT,
    question_slug TEXT,
    PRIMARY KEY (course_slug, module_slug, lesson_slug, question_id)
)
"""

# At most one enrolment per (user, course)
ENROLMENTS_BY_USER_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.enrolments_by_user (
    user_id TEXT,
    course_slug TEXT,
    kind TEXT,
    created_at TIMESTAMP,
    completed_at TIMESTAMP,
    PRIMARY KEY (user_id, course_slug)
)
"""

COMPLETED_MODULES_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.completed_modules (
    user_id TEXT,
    course_slug TEXT,
    module_slug TEXT,
    completed_at TIMESTAMP,
    PRIMARY KEY ((user_id, course_slug), module_slug)
)
"""

COMPLETED_LESSONS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.completed_lessons (
    user_id TEXT,
    course_slug TEXT,
    module_slug TEXT,
    lesson_slug TEXT,
    completed_at TIMESTAMP,
    PRIMARY KEY ((user_id, course_slug), module_slug, lesson_slug)
)
"""

GRAPH_TABLES_CQL = [
    USERS_TABLE_CQL,
    COURSES_TABLE_CQL,
    COURSE_MODULES_TABLE_CQL,
    COURSE_LESSONS_TABLE_CQL,
    NEXT_LESSONS_TABLE_CQL,
    LESSON_QUESTIONS_TABLE_CQL,
    ENROLMENTS_BY_USER_TABLE_CQL,
    COMPLETED_MODULES_TABLE_CQL,
    COMPLETED_LESSONS_TABLE_CQL,
]


# ==============================================================================
# Store Rows
# ==============================================================================


@dataclass
class User:
    """Learner identity."""

    id: str
    name: str | None = None
    given_name: str | None = None

    @classmethod
    def from_row(cls, row: Any) -> "User":
        """Create User from Cassandra row."""
        return cls(id=row.id, name=row.name, given_name=row.given_name)

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "name": self.name, "givenName": self.given_name}


@dataclass
class EnrolmentRecord:
    """Enrolment of one user in one course."""

    kind: EnrolmentKind
    created_at: datetime | None = None
    completed_at: datetime | None = None

    def __post_init__(self) -> None:
        self.created_at = ensure_utc_aware(self.created_at)
        self.completed_at = ensure_utc_aware(self.completed_at)

    @property
    def is_completed(self) -> bool:
        return self.kind == EnrolmentKind.COMPLETED

    @classmethod
    def from_row(cls, row: Any) -> "EnrolmentRecord":
        """Create EnrolmentRecord from Cassandra row."""
        return cls(
            kind=EnrolmentKind(row.kind or EnrolmentKind.IN_PROGRESS.value),
            created_at=row.created_at,
            completed_at=row.completed_at,
        )


@dataclass(frozen=True)
class LessonRef:
    """Neighbour of a lesson along the ordering relation."""

    module_slug: str
    slug: str
    title: str | None = None


@dataclass(frozen=True)
class QuestionRef:
    id: str
    slug: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "slug": self.slug}


@dataclass
class LessonRow:
    properties: dict[str, Any]
    completed: bool = False
    previous: LessonRef | None = None
    next: LessonRef | None = None
    questions: list[QuestionRef] = field(default_factory=list)


@dataclass
class ModuleRow:
    properties: dict[str, Any]
    completed: bool = False
    lessons: list[LessonRow] = field(default_factory=list)


@dataclass
class CourseRow:
    """One (user, course) row; ``enrolment`` is None when not enrolled.

    ``orphan_lessons`` lists ``module/lesson`` keys of lessons stored for the
    course under a module the course does not have.
    """

    properties: dict[str, Any]
    enrolment: EnrolmentRecord | None = None
    modules: list[ModuleRow] = field(default_factory=list)
    orphan_lessons: list[str] = field(default_factory=list)


@dataclass
class UserCourseRows:
    """Result of a store read for a known user: one row per catalog course."""

    user: User
    courses: list[CourseRow] = field(default_factory=list)


# ==============================================================================
# Content Tree
# ==============================================================================


@dataclass(frozen=True)
class LessonLink:
    """Navigation stub pointing at the previous or next lesson."""

    slug: str
    title: str | None
    link: str

    def to_dict(self) -> dict[str, Any]:
        return {"slug": self.slug, "title": self.title, "link": self.link}


@dataclass
class Lesson:
    properties: dict[str, Any]
    link: str
    completed: bool = False
    previous: LessonLink | None = None
    next: LessonLink | None = None
    questions: list[QuestionRef] = field(default_factory=list)

    @property
    def slug(self) -> str:
        return self.properties["slug"]

    @property
    def title(self) -> str | None:
        return self.properties.get("title")

    def as_link(self) -> LessonLink:
        return LessonLink(slug=self.slug, title=self.title, link=self.link)

    def to_dict(self) -> dict[str, Any]:
        return {
            **self.properties,
            "completed": self.completed,
            "link": self.link,
            "previous": self.previous.to_dict() if self.previous else None,
            "next": self.next.to_dict() if self.next else None,
            "questions": [q.to_dict() for q in self.questions],
        }


@dataclass
class Module:
    properties: dict[str, Any]
    link: str
    completed: bool = False
    lessons: list[Lesson] = field(default_factory=list)

    @property
    def slug(self) -> str:
        return self.properties["slug"]

    def to_dict(self) -> dict[str, Any]:
        return {
            **self.properties,
            "link": self.link,
            "completed": self.completed,
            "lessons": [lesson.to_dict() for lesson in self.lessons],
        }


@dataclass
class Course:
    """Course projected for one learner.

    ``completed``/``completed_at`` come only from the enrolment sub-type, never
    from module or lesson completion flags.
    """

    properties: dict[str, Any]
    status: EnrolmentStatus = EnrolmentStatus.AVAILABLE
    created_at: datetime | None = None
    completed: bool = False
    completed_at: datetime | None = None
    modules: list[Module] = field(default_factory=list)

    @property
    def slug(self) -> str:
        return self.properties["slug"]

    @property
    def enrolled(self) -> bool:
        return self.status != EnrolmentStatus.AVAILABLE

    def lessons(self) -> list[Lesson]:
        """All lessons, in module order then lesson order."""
        return [lesson for module in self.modules for lesson in module.lessons]

    def next_lesson(self) -> LessonLink | None:
        """First lesson not yet completed, in the current order."""
        for lesson in self.lessons():
            if not lesson.completed:
                return lesson.as_link()
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            **self.properties,
            "createdAt": self.created_at,
            "completed": self.completed,
            "completedAt": self.completed_at,
            "modules": [module.to_dict() for module in self.modules],
        }

    def __repr__(self) -> str:
        return f"<Course {self.slug} {self.status.value} modules={len(self.modules)}>"


@dataclass(frozen=True)
class CourseFailure:
    """A course left out of a result because its data is inconsistent."""

    course: str
    reason: str

    def to_dict(self) -> dict[str, Any]:
        return {"course": self.course, "reason": self.reason}


@dataclass
class UserEnrolments:
    """Grouped courses for one learner.

    An unknown learner yields an instance without ``user`` whose ``to_dict()``
    is empty.
    """

    user: User | None = None
    enrolments: dict[EnrolmentStatus, list[Course]] = field(default_factory=dict)
    failures: list[CourseFailure] = field(default_factory=list)

    @classmethod
    def empty(cls) -> "UserEnrolments":
        return cls()

    @property
    def is_empty(self) -> bool:
        return self.user is None

    def to_dict(self) -> dict[str, Any]:
        if self.user is None:
            return {}
        out: dict[str, Any] = {
            "user": self.user.to_dict(),
            "enrolments": {
                status.value: [course.to_dict() for course in courses]
                for status, courses in self.enrolments.items()
            },
        }
        if self.failures:
            out["failures"] = [failure.to_dict() for failure in self.failures]
        return out
