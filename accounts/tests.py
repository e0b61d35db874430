from django.contrib.auth import get_user_model
from django.test import TestCase

from accounts.models import Role, UserProfile
from accounts.services import get_role, set_role, update_profile, users_with_role

User = get_user_model()


class UserProfileSignalTests(TestCase):
    def test_profile_created_for_new_user(self):
        user = User.objects.create_user(username="user1", password="pass")

        profile = UserProfile.objects.get(user=user)
        self.assertEqual(profile.role, Role.STUDENT)

    def test_profile_not_duplicated_on_save(self):
        user = User.objects.create_user(username="user1")
        user.first_name = "Ivan"
        user.save()

        self.assertEqual(UserProfile.objects.filter(user=user).count(), 1)


class RoleServiceTests(TestCase):
    def setUp(self):
        self.user = User.objects.create_user(username="teacher")

    def test_get_role_defaults_to_student(self):
        self.assertEqual(get_role(self.user), Role.STUDENT)

    def test_user_without_profile_is_student(self):
        UserProfile.objects.filter(user=self.user).delete()
        user = User.objects.get(pk=self.user.pk)

        self.assertEqual(get_role(user), Role.STUDENT)

    def test_get_role_requires_user(self):
        with self.assertRaises(ValueError):
            get_role(None)

    def test_set_role_updates_profile(self):
        set_role(self.user, Role.TEACHER)

        self.assertEqual(get_role(self.user), Role.TEACHER)
        self.assertEqual(
            UserProfile.objects.get(user=self.user).role, Role.TEACHER
        )

    def test_set_role_accepts_plain_value(self):
        set_role(self.user, "admin")

        fresh = User.objects.get(pk=self.user.pk)
        self.assertEqual(get_role(fresh), Role.ADMIN)

    def test_set_role_rejects_unknown_value(self):
        with self.assertRaises(ValueError):
            set_role(self.user, "owner")

    def test_users_with_role(self):
        admin = User.objects.create_user(username="admin")
        set_role(admin, Role.ADMIN)
        set_role(self.user, Role.TEACHER)

        self.assertQuerySetEqual(
            users_with_role(Role.ADMIN), [admin], ordered=False
        )
        self.assertQuerySetEqual(
            users_with_role("teacher"), [self.user], ordered=False
        )


class UpdateProfileTests(TestCase):
    def setUp(self):
        self.user = User.objects.create_user(username="student")

    def test_contact_fields_saved(self):
        update_profile(self.user, university="MIT", telegram=" @student ", github="student")

        profile = UserProfile.objects.get(user=self.user)
        self.assertEqual(profile.university, "MIT")
        self.assertEqual(profile.telegram, "@student")
        self.assertEqual(profile.github, "student")

    def test_none_keeps_existing_value(self):
        update_profile(self.user, university="MIT")
        update_profile(self.user, university=None, github="student")

        profile = UserProfile.objects.get(user=self.user)
        self.assertEqual(profile.university, "MIT")
        self.assertEqual(profile.github, "student")

    def test_unknown_field_rejected(self):
        with self.assertRaises(ValueError):
            update_profile(self.user, role="admin")
