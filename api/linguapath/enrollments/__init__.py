"""Enrollment registry module.

Provides:
- Enrollment lookups by user and course
- Atomic enrollment with course enrollment count
- Status changes (suspend, complete, reactivate)
"""

from .models import ENROLLMENTS_TABLES_CQL, Enrollment, EnrollmentStatus


__all__ = [
    "ENROLLMENTS_TABLES_CQL",
    "Enrollment",
    "EnrollmentStatus",
]
