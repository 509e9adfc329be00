"""FastAPI dependencies for course progress.

Provides dependency injection for:
- Enrolment service
- Error handlers
"""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from .exceptions import EnrolmentError
from .service import EnrolmentService


async def get_enrolment_service(request: Request) -> EnrolmentService:
    """Get enrolment service from app state.

    Args:
        request: FastAPI request

    Returns:
        EnrolmentService instance
    """
    app_state = request.app.state
    if not getattr(app_state, "enrolment_service", None):
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Enrolment service not available",
        )
    return app_state.enrolment_service


# Type alias for dependency injection
EnrolmentServiceDep = Annotated[EnrolmentService, Depends(get_enrolment_service)]


def handle_enrolment_error(error: EnrolmentError) -> HTTPException:
    """Convert enrolment errors to HTTP exceptions."""
    status_map = {
        "course_not_found": status.HTTP_404_NOT_FOUND,
        "inconsistent_course_order": status.HTTP_409_CONFLICT,
    }

    status_code = status_map.get(error.code, status.HTTP_500_INTERNAL_SERVER_ERROR)

    return HTTPException(
        status_code=status_code,
        detail=error.message,
    )
