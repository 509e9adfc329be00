"""Pydantic schemas for course-progress responses.

Response models for:
- Enrolments grouped by status
- Single course with progress
- Catalog listing

Keys are camelCase on the wire. Course, module and lesson models accept
extra fields because nodes carry arbitrary scalar properties that are passed
through untouched.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .grouping import group_by_status
from .models import Course, EnrolmentStatus, UserEnrolments


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ==============================================================================
# Content Tree Schemas
# ==============================================================================


class UserResponse(CamelModel):
    """Learner identity."""

    id: str
    name: str | None = None
    given_name: str | None = None


class LessonLinkResponse(CamelModel):
    """Navigation stub to a neighbouring lesson."""

    slug: str
    title: str | None = None
    link: str


class QuestionRefResponse(CamelModel):
    id: str
    slug: str | None = None


class LessonResponse(CamelModel):
    model_config = ConfigDict(extra="allow")

    slug: str
    title: str | None = None
    link: str
    completed: bool = False
    previous: LessonLinkResponse | None = None
    next: LessonLinkResponse | None = None
    questions: list[QuestionRefResponse] = Field(default_factory=list)


class ModuleResponse(CamelModel):
    model_config = ConfigDict(extra="allow")

    slug: str
    title: str | None = None
    link: str
    completed: bool = False
    lessons: list[LessonResponse] = Field(default_factory=list)


class CourseResponse(CamelModel):
    """Course with its ordered modules and lessons."""

    model_config = ConfigDict(extra="allow")

    slug: str
    title: str | None = None
    created_at: datetime | None = Field(None, description="Enrolment creation time")
    completed: bool = False
    completed_at: datetime | None = None
    modules: list[ModuleResponse] = Field(default_factory=list)

    @classmethod
    def from_entity(cls, entity: Course) -> "CourseResponse":
        """Create response from entity."""
        return cls.model_validate(entity.to_dict())


class CourseDetailResponse(CourseResponse):
    """Single course as seen by one learner."""

    status: EnrolmentStatus
    enrolled: bool
    next_lesson: LessonLinkResponse | None = Field(
        None, description="First lesson not yet completed"
    )

    @classmethod
    def from_entity(cls, entity: Course) -> "CourseDetailResponse":
        """Create response from entity."""
        next_lesson = entity.next_lesson()
        return cls.model_validate(
            {
                **entity.to_dict(),
                "status": entity.status,
                "enrolled": entity.enrolled,
                "nextLesson": next_lesson.to_dict() if next_lesson else None,
            }
        )


class CatalogResponse(CamelModel):
    """Course listing, also grouped by the learner's status when one is given."""

    courses: list[CourseResponse]
    grouped: dict[str, list[CourseResponse]] = Field(default_factory=dict)
    total: int

    @classmethod
    def from_entities(cls, courses: list[Course]) -> "CatalogResponse":
        """Create response from entities."""
        grouped = group_by_status((course.status, course) for course in courses)
        return cls(
            courses=[CourseResponse.from_entity(course) for course in courses],
            grouped={
                status.value: [CourseResponse.from_entity(course) for course in members]
                for status, members in grouped.items()
            },
            total=len(courses),
        )


# ==============================================================================
# Enrolment Schemas
# ==============================================================================


class CourseFailureResponse(CamelModel):
    """Course left out because its lesson order is inconsistent."""

    course: str
    reason: str


class UserEnrolmentsResponse(CamelModel):
    """Courses of a learner grouped by status.

    Every field is optional so an unknown learner serializes to ``{}`` when
    the route excludes unset fields.
    """

    user: UserResponse | None = None
    enrolments: dict[str, list[CourseResponse]] | None = None
    failures: list[CourseFailureResponse] | None = None

    @classmethod
    def from_entity(cls, entity: UserEnrolments) -> "UserEnrolmentsResponse":
        """Create response from entity."""
        return cls.model_validate(entity.to_dict())
