from django.conf import settings
from django.db import models


class Role(models.TextChoices):
    """System-level role of a user account."""

    ADMIN = "admin", "Admin"
    TEACHER = "teacher", "Teacher"
    STUDENT = "student", "Student"


class UserProfile(models.Model):
    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="profile",
    )
    role = models.CharField(
        max_length=16,
        choices=Role.choices,
        default=Role.STUDENT,
        db_index=True,
    )
    university = models.CharField(max_length=255, blank=True)
    telegram = models.CharField(max_length=64, blank=True)
    github = models.CharField(max_length=64, blank=True)

    def __str__(self):
        return f"{self.user.username} ({self.role})"
