from django.db import DatabaseError
from django.test import TestCase
from unittest.mock import patch

from courses import services
from courses.models import Answer, Submission
from courses.results import ErrorKind
from courses.tests import factories


class SubmitAnswerTests(TestCase):
    def setUp(self):
        self.user = factories.create_user()
        self.assignment = factories.create_assignment()

    def test_first_answer_creates_submission(self):
        result = services.submit_answer(
            Answer(name="Solution", url="https://example.com/repo"), self.assignment, self.user
        )

        self.assertTrue(result.ok)
        submission = Submission.objects.get(assignment=self.assignment, user=self.user)
        self.assertEqual(result.data.submission, submission)
        self.assertEqual(submission.answers.count(), 1)

    def test_second_answer_reuses_submission(self):
        services.submit_answer(Answer(name="One"), self.assignment, self.user)
        services.submit_answer(Answer(name="Two"), self.assignment, self.user)

        self.assertEqual(Submission.objects.filter(user=self.user).count(), 1)
        self.assertEqual(Answer.objects.filter(submission__user=self.user).count(), 2)

    def test_answer_text_sanitized(self):
        result = services.submit_answer(
            Answer(name="Solution", text="<p>ok</p><script>alert(1)</script>"),
            self.assignment,
            self.user,
        )

        self.assertTrue(result.ok)
        self.assertNotIn("<script>", result.data.text)
        self.assertIn("<p>ok</p>", result.data.text)

    def test_missing_answer(self):
        result = services.submit_answer(None, self.assignment, self.user)

        self.assertFalse(result.ok)
        self.assertEqual(result.error, ErrorKind.INVALID_INPUT)
        self.assertEqual(result.message, "Invalid assignment answer")

    def test_submission_creation_failure(self):
        with patch(
            "courses.services.Submission.objects.create",
            side_effect=DatabaseError("insert failed"),
        ):
            result = services.submit_answer(Answer(name="One"), self.assignment, self.user)

        self.assertFalse(result.ok)
        self.assertEqual(result.error, ErrorKind.DEPENDENCY_FAILURE)
        self.assertFalse(Answer.objects.exists())

    def test_answer_failure_rolls_back_new_submission(self):
        with patch.object(Answer, "save", side_effect=DatabaseError("write failed")):
            result = services.submit_answer(Answer(name="One"), self.assignment, self.user)

        self.assertFalse(result.ok)
        self.assertFalse(Submission.objects.exists())

    def test_submission_notification(self):
        services.submit_answer(Answer(name="One"), self.assignment, self.user)

        self.assertEqual(
            self.user.notifications.get().name, "You submitted an assignment"
        )


class DeleteAnswerTests(TestCase):
    def setUp(self):
        self.user = factories.create_user()
        self.assignment = factories.create_assignment()

    def test_deleting_last_answer_deletes_submission(self):
        submission = factories.create_submission(
            assignment=self.assignment, user=self.user, answers=1
        )

        result = services.delete_answer(submission.answers.get())

        self.assertTrue(result.ok)
        self.assertTrue(result.data["submission_deleted"])
        self.assertFalse(Submission.objects.filter(pk=submission.pk).exists())

    def test_deleting_other_answer_keeps_submission(self):
        submission = factories.create_submission(
            assignment=self.assignment, user=self.user, answers=3
        )

        result = services.delete_answer(submission.answers.first())

        self.assertTrue(result.ok)
        self.assertFalse(result.data["submission_deleted"])
        self.assertEqual(submission.answers.count(), 2)

    def test_missing_answer(self):
        result = services.delete_answer(None)

        self.assertEqual(result.error, ErrorKind.INVALID_INPUT)

    def test_already_deleted_answer(self):
        submission = factories.create_submission(
            assignment=self.assignment, user=self.user, answers=2
        )
        answer = submission.answers.first()
        Answer.objects.filter(pk=answer.pk).delete()

        result = services.delete_answer(answer)

        self.assertEqual(result.error, ErrorKind.NOT_FOUND)


class GradeSubmissionTests(TestCase):
    def setUp(self):
        self.teacher = factories.create_user()
        self.student = factories.create_user()
        self.submission = factories.create_submission(
            assignment=factories.create_assignment(), user=self.student, answers=1
        )

    def test_grade_marks_checked(self):
        result = services.grade_submission(self.submission.pk, 80, self.teacher)

        self.assertTrue(result.ok)
        self.submission.refresh_from_db()
        self.assertEqual(self.submission.grade, 80)
        self.assertTrue(self.submission.is_checked)
        self.assertIn("80/100", self.teacher.notifications.get().description)

    def test_grade_out_of_range(self):
        result = services.grade_submission(self.submission.pk, 101, self.teacher)

        self.assertEqual(result.error, ErrorKind.INVALID_INPUT)
        self.submission.refresh_from_db()
        self.assertFalse(self.submission.is_checked)

    def test_unknown_submission(self):
        result = services.grade_submission(999999, 50, self.teacher)

        self.assertEqual(result.error, ErrorKind.NOT_FOUND)

    def test_non_numeric_grade(self):
        result = services.grade_submission(self.submission.pk, "abc", self.teacher)

        self.assertFalse(result.ok)
        self.assertEqual(result.error, ErrorKind.INVALID_INPUT)
        self.submission.refresh_from_db()
        self.assertFalse(self.submission.is_checked)

    def test_missing_grade(self):
        result = services.grade_submission(self.submission.pk, None, self.teacher)

        self.assertEqual(result.error, ErrorKind.INVALID_INPUT)
