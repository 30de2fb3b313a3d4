"""Tests for the sequential unlock rule."""

from collections.abc import Callable

from linguapath.courses.models import Course, check_lesson_order
from linguapath.courses.unlock import accessible_lessons, preview_lessons, unlocked_lesson_ids


class TestAccessibleLessons:
    def test_no_progress_unlocks_first_lesson_only(
        self, make_course: Callable[..., Course]
    ) -> None:
        """Three lessons, nothing completed."""
        course = make_course(lessons=3)
        result = accessible_lessons(course.lessons, set())
        assert [lesson.order for lesson in result] == [0]

    def test_completed_first_lesson_unlocks_second(
        self, make_course: Callable[..., Course]
    ) -> None:
        course = make_course(lessons=3)
        result = accessible_lessons(course.lessons, {course.lessons[0].id})
        assert [lesson.order for lesson in result] == [0, 1]

    def test_all_completed_unlocks_everything(
        self, make_course: Callable[..., Course]
    ) -> None:
        course = make_course(lessons=4)
        completed = {lesson.id for lesson in course.lessons}
        assert len(accessible_lessons(course.lessons, completed)) == 4

    def test_result_is_contiguous_prefix(self, make_course: Callable[..., Course]) -> None:
        """Completing a later lesson does not open anything past a gap."""
        course = make_course(lessons=5)
        completed = {course.lessons[0].id, course.lessons[2].id, course.lessons[3].id}

        result = accessible_lessons(course.lessons, completed)

        orders = [lesson.order for lesson in result]
        assert orders == [0, 1]
        assert orders == list(range(len(orders)))

    def test_preview_after_lock_is_included(self, make_course: Callable[..., Course]) -> None:
        course = make_course(lessons=4, previews=(3,))
        result = accessible_lessons(course.lessons, set())
        assert [lesson.order for lesson in result] == [0, 3]

    def test_preview_does_not_need_completion(self, make_course: Callable[..., Course]) -> None:
        """An uncompleted preview lesson does not lock the lesson after it."""
        course = make_course(lessons=3, previews=(0,))
        result = accessible_lessons(course.lessons, set())
        assert [lesson.order for lesson in result] == [0, 1]

    def test_input_order_does_not_matter(self, make_course: Callable[..., Course]) -> None:
        course = make_course(lessons=3)
        shuffled = list(reversed(course.lessons))
        result = accessible_lessons(shuffled, {course.lessons[0].id})
        assert [lesson.order for lesson in result] == [0, 1]

    def test_unlocked_lesson_ids(self, make_course: Callable[..., Course]) -> None:
        course = make_course(lessons=2)
        assert unlocked_lesson_ids(course.lessons, set()) == {course.lessons[0].id}


def test_preview_lessons(make_course: Callable[..., Course]) -> None:
    course = make_course(lessons=5, previews=(4, 1))
    assert [lesson.order for lesson in preview_lessons(course.lessons)] == [1, 4]


class TestLessonOrder:
    def test_well_formed(self, make_course: Callable[..., Course]) -> None:
        assert check_lesson_order(make_course(lessons=3).lessons) == []

    def test_gap_and_offset_reported(self, make_course: Callable[..., Course]) -> None:
        course = make_course(lessons=3)
        for lesson in course.lessons:
            lesson.order = lesson.order * 2 + 1

        problems = check_lesson_order(course.lessons)

        assert any("first order is 1" in p for p in problems)
        assert any("gaps" in p for p in problems)

    def test_duplicates_reported(self, make_course: Callable[..., Course]) -> None:
        course = make_course(lessons=2)
        course.lessons[1].order = 0
        assert any("duplicate" in p for p in check_lesson_order(course.lessons))
