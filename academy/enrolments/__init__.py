"""Course progress aggregation module.

Provides:
- Content tree construction from graph store rows
- Canonical lesson and module ordering from the next-lesson chain
- Enrolment status classification and grouping
- Cassandra and Neo4j graph store adapters
"""

from .models import (
    GRAPH_TABLES_CQL,
    Course,
    EnrolmentStatus,
    Lesson,
    Module,
    User,
    UserEnrolments,
)
from .service import EnrolmentService


__all__ = [
    "GRAPH_TABLES_CQL",
    "Course",
    "EnrolmentService",
    "EnrolmentStatus",
    "Lesson",
    "Module",
    "User",
    "UserEnrolments",
]
