from django.db import DatabaseError
from django.test import TestCase, override_settings
from unittest.mock import patch

from courses import services
from courses.models import Course, CourseEnrollment
from courses.results import ErrorKind
from courses.tests import factories


class CreateCourseTests(TestCase):
    def setUp(self):
        self.user = factories.create_user()

    def test_creator_enrolled(self):
        result = services.create_course(Course(name="Algorithms"), self.user)

        self.assertTrue(result.ok)
        course = result.data
        self.assertTrue(CourseEnrollment.objects.filter(course=course, user=self.user).exists())
        self.assertEqual(self.user.notifications.get().name, "You created a new course")

    def test_empty_name_rejected_without_queries(self):
        with self.assertNumQueries(0):
            result = services.create_course(Course(name=""), self.user)

        self.assertFalse(result.ok)
        self.assertEqual(result.error, ErrorKind.INVALID_INPUT)
        self.assertIn("name", result.message)
        self.assertFalse(Course.objects.exists())

    def test_missing_course(self):
        result = services.create_course(None, self.user)

        self.assertFalse(result.ok)
        self.assertEqual(result.error, ErrorKind.INVALID_INPUT)

    def test_enrollment_failure_removes_course(self):
        with patch(
            "courses.service_utils.membership.CourseEnrollment.objects.create",
            side_effect=DatabaseError("connection lost"),
        ):
            result = services.create_course(Course(name="Algorithms"), self.user)

        self.assertFalse(result.ok)
        self.assertEqual(result.error, ErrorKind.DEPENDENCY_FAILURE)
        self.assertIn("connection lost", result.message)
        self.assertFalse(Course.objects.filter(name="Algorithms").exists())

    @override_settings(COURSES_ATOMIC_COMMANDS=False)
    def test_enrollment_failure_compensated_without_transaction(self):
        with patch(
            "courses.service_utils.membership.CourseEnrollment.objects.create",
            side_effect=DatabaseError("connection lost"),
        ):
            result = services.create_course(Course(name="Algorithms"), self.user)

        self.assertFalse(result.ok)
        self.assertFalse(Course.objects.filter(name="Algorithms").exists())


class UpdateCourseTests(TestCase):
    def setUp(self):
        self.course = factories.create_course(name="Old name")

    def test_rename_bumps_version(self):
        result = services.update_course(self.course.pk, name="New name")

        self.assertTrue(result.ok)
        self.course.refresh_from_db()
        self.assertEqual(self.course.name, "New name")
        self.assertEqual(self.course.version, 2)

    def test_stale_version_conflicts(self):
        services.update_course(self.course.pk, name="First", expected_version=1)

        result = services.update_course(self.course.pk, name="Second", expected_version=1)

        self.assertFalse(result.ok)
        self.assertEqual(result.error, ErrorKind.CONFLICT)
        self.course.refresh_from_db()
        self.assertEqual(self.course.name, "First")

    def test_unknown_course(self):
        result = services.update_course(999999, name="Name")

        self.assertEqual(result.error, ErrorKind.NOT_FOUND)

    def test_blank_name(self):
        result = services.update_course(self.course.pk, name="   ")

        self.assertEqual(result.error, ErrorKind.INVALID_INPUT)
