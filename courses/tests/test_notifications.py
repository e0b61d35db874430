from django.test import TestCase

from courses import notifications, services
from courses.notifications import Activity
from courses.results import ErrorKind
from courses.tests import factories
from courses.tests.factories import aware


class ActivityFormattingTests(TestCase):
    def test_created_group_description(self):
        name, description = notifications.format_activity(
            Activity.CREATED_GROUP,
            group_name="Evening",
            course_name="Algorithms",
            start=aware(2024, 1, 1),
            end=aware(2024, 1, 10),
        )

        self.assertEqual(name, "You created a new group")
        self.assertIn('"Evening"', description)
        self.assertIn("Monday, 01 January 2024", description)
        self.assertIn("Wednesday, 10 January 2024", description)

    def test_every_activity_has_a_template(self):
        for activity in Activity:
            self.assertIn(activity, notifications._NAMES)
            self.assertIn(activity, notifications._DESCRIPTIONS)


class NotificationCommandTests(TestCase):
    def setUp(self):
        self.user = factories.create_user()
        self.course = factories.create_course(name="Algorithms")
        self.first = notifications.record_activity(
            self.user, Activity.JOINED_COURSE, course=self.course, course_name="Algorithms"
        )
        self.second = notifications.record_activity(
            self.user, Activity.CREATED_COURSE, course=self.course, course_name="Algorithms"
        )

    def test_mark_read(self):
        result = services.mark_notification_read(self.first.pk)

        self.assertTrue(result.ok)
        self.first.refresh_from_db()
        self.assertTrue(self.first.is_read)

    def test_unread_listing(self):
        services.mark_notification_read(self.first.pk)

        result = services.list_notifications(self.user, unread_only=True)

        self.assertEqual([n.pk for n in result.data], [self.second.pk])

    def test_full_listing_newest_first(self):
        result = services.list_notifications(self.user)

        self.assertEqual([n.pk for n in result.data], [self.second.pk, self.first.pk])

    def test_unknown_notification(self):
        result = services.mark_notification_read(999999)

        self.assertEqual(result.error, ErrorKind.NOT_FOUND)

    def test_clear_references_keeps_rows(self):
        cleared = notifications.clear_references(courses=[self.course])

        self.assertEqual(cleared, 2)
        self.assertEqual(self.user.notifications.filter(course__isnull=True).count(), 2)

    def test_clear_references_without_targets(self):
        self.assertEqual(notifications.clear_references(), 0)
