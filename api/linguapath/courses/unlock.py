"""Sequential lesson-unlock rule.

Shared by the course directory (navigation listings) and the access control
engine (enforcement) so the two can never disagree about which lessons are
open.

Rule: walking lessons in ascending order, a non-preview lesson is unlocked
when every earlier non-preview lesson is completed. The walk stops at the
first locked lesson. Preview lessons are always unlocked, including those
after the first locked lesson.
"""

from collections.abc import Collection, Iterable
from uuid import UUID

from .models import Lesson


def unlocked_lesson_ids(
    lessons: Iterable[Lesson],
    completed_lesson_ids: Collection[UUID],
) -> set[UUID]:
    """Ids of the lessons the user may open right now."""
    return {lesson.id for lesson in accessible_lessons(lessons, completed_lesson_ids)}


def accessible_lessons(
    lessons: Iterable[Lesson],
    completed_lesson_ids: Collection[UUID],
) -> list[Lesson]:
    """Unlocked lessons, in order.

    The result is the longest in-order prefix of unlocked lessons followed by
    any preview lessons beyond it.
    """
    ordered = sorted(lessons, key=lambda lesson: lesson.order)
    result: list[Lesson] = []
    prefix_open = True

    for lesson in ordered:
        if lesson.is_preview:
            result.append(lesson)
            continue
        if not prefix_open:
            continue
        result.append(lesson)
        if lesson.id not in completed_lesson_ids:
            # Everything after an incomplete lesson stays locked
            prefix_open = False

    return result


def preview_lessons(lessons: Iterable[Lesson]) -> list[Lesson]:
    """Preview lessons only, in order."""
    return sorted(
        (lesson for lesson in lessons if lesson.is_preview),
        key=lambda lesson: lesson.order,
    )
