"""Access control module.

Decides whether a user may open a course, a lesson or the enrollment page,
and turns denials into user-facing views.
"""

from .models import (
    AccessCheckResult,
    AccessControlConfig,
    AccessDenied,
    AccessDeniedReason,
    AccessGranted,
)


__all__ = [
    "AccessCheckResult",
    "AccessControlConfig",
    "AccessDenied",
    "AccessDeniedReason",
    "AccessGranted",
]
