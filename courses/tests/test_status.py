from django.test import SimpleTestCase, override_settings

from courses.models import Assignment, Group
from courses.service_utils.status import (
    assignment_window_flags,
    resolve_assignment_status,
    resolve_group_status,
)
from courses.tests.factories import aware


class GroupStatusTests(SimpleTestCase):
    def setUp(self):
        self.start = aware(2024, 1, 1)
        self.end = aware(2024, 1, 10)

    def test_in_progress_inside_window(self):
        status = resolve_group_status(aware(2024, 1, 5), self.start, self.end)
        self.assertEqual(status, Group.Access.IN_PROGRESS)

    def test_completed_after_end(self):
        status = resolve_group_status(aware(2024, 1, 11), self.start, self.end)
        self.assertEqual(status, Group.Access.COMPLETED)

    def test_planned_before_start(self):
        status = resolve_group_status(aware(2023, 12, 31), self.start, self.end)
        self.assertEqual(status, Group.Access.PLANNED)

    def test_boundaries(self):
        self.assertEqual(
            resolve_group_status(self.start, self.start, self.end), Group.Access.IN_PROGRESS
        )
        self.assertEqual(
            resolve_group_status(self.end, self.start, self.end), Group.Access.IN_PROGRESS
        )

    def test_completed_whenever_end_elapsed(self):
        # start after end: the end-date rule still decides
        status = resolve_group_status(aware(2024, 2, 1), aware(2024, 3, 1), self.end)
        self.assertEqual(status, Group.Access.COMPLETED)

    def test_missing_dates_rejected(self):
        with self.assertRaises(ValueError):
            resolve_group_status(aware(2024, 1, 5), None, self.end)


class AssignmentStatusTests(SimpleTestCase):
    def setUp(self):
        self.start = aware(2024, 1, 1)
        self.end = aware(2024, 1, 10)

    def test_flags_are_independent(self):
        flags = assignment_window_flags(aware(2024, 1, 5), self.start, self.end)
        self.assertTrue(flags.started)
        self.assertTrue(flags.open)

        flags = assignment_window_flags(aware(2023, 12, 1), self.start, self.end)
        self.assertFalse(flags.started)
        self.assertTrue(flags.open)

        flags = assignment_window_flags(aware(2024, 2, 1), self.start, self.end)
        self.assertTrue(flags.started)
        self.assertFalse(flags.open)

    def test_default_precedence_prefers_awaiting_approval(self):
        status = resolve_assignment_status(aware(2024, 1, 5), self.start, self.end)
        self.assertEqual(status, Assignment.Access.AWAITING_APPROVAL)

    def test_explicit_precedence(self):
        status = resolve_assignment_status(
            aware(2024, 1, 5),
            self.start,
            self.end,
            precedence=("in_progress", "awaiting_approval"),
        )
        self.assertEqual(status, Assignment.Access.IN_PROGRESS)

    @override_settings(COURSES_ASSIGNMENT_STATUS_PRECEDENCE="in_progress,awaiting_approval")
    def test_precedence_from_settings(self):
        status = resolve_assignment_status(aware(2024, 1, 5), self.start, self.end)
        self.assertEqual(status, Assignment.Access.IN_PROGRESS)

    def test_ended_assignment_is_in_progress(self):
        status = resolve_assignment_status(aware(2024, 2, 1), self.start, self.end)
        self.assertEqual(status, Assignment.Access.IN_PROGRESS)

    def test_planned_when_no_flag_selected(self):
        status = resolve_assignment_status(
            aware(2023, 12, 1), self.start, self.end, precedence=("in_progress",)
        )
        self.assertEqual(status, Assignment.Access.PLANNED)

    def test_unknown_status_in_precedence(self):
        with self.assertRaises(ValueError):
            resolve_assignment_status(
                aware(2024, 1, 5), self.start, self.end, precedence=("completed",)
            )
