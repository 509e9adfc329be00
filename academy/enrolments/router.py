"""Course progress API endpoints.

Provides routes for:
- Enrolments of a learner grouped by status
- One course with a learner's progress
- Public catalog
"""

from fastapi import APIRouter

from academy.core.middleware import set_user_context

from .dependencies import EnrolmentServiceDep, handle_enrolment_error
from .exceptions import EnrolmentError
from .schemas import (
    CatalogResponse,
    CourseDetailResponse,
    UserEnrolmentsResponse,
)


router = APIRouter(prefix="/v1/users", tags=["enrolments"])
courses_router = APIRouter(prefix="/v1/courses", tags=["courses"])


@router.get(
    "/{user_id}/enrolments",
    response_model=UserEnrolmentsResponse,
    response_model_exclude_unset=True,
    summary="Get enrolments grouped by status",
)
async def get_user_enrolments(
    user_id: str,
    enrolment_service: EnrolmentServiceDep,
) -> UserEnrolmentsResponse:
    """Every catalog course of the learner, grouped under available,
    enrolled and completed. Unknown learners get an empty object.
    """
    set_user_context(user_id)
    result = await enrolment_service.get_user_enrolments(user_id)
    return UserEnrolmentsResponse.from_entity(result)


@router.get(
    "/{user_id}/courses/{course_slug}",
    response_model=CourseDetailResponse,
    response_model_exclude_unset=True,
    summary="Get course with learner progress",
)
async def get_course_with_progress(
    user_id: str,
    course_slug: str,
    enrolment_service: EnrolmentServiceDep,
) -> CourseDetailResponse:
    set_user_context(user_id)
    try:
        course = await enrolment_service.get_course_with_progress(course_slug, user_id)
    except EnrolmentError as e:
        raise handle_enrolment_error(e) from e
    return CourseDetailResponse.from_entity(course)


@courses_router.get(
    "",
    response_model=CatalogResponse,
    response_model_exclude_unset=True,
    summary="List courses",
)
async def list_courses(
    enrolment_service: EnrolmentServiceDep,
    user_id: str | None = None,
) -> CatalogResponse:
    """Every course; with ``user_id`` the learner's progress is applied and
    ``grouped`` splits the courses by status.
    """
    if user_id is not None:
        set_user_context(user_id)
    courses = await enrolment_service.get_catalog(user_id)
    return CatalogResponse.from_entities(courses)
