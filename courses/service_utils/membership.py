"""Course and group membership with the records that depend on it."""

from __future__ import annotations

import logging

from django.db import DatabaseError, transaction

from accounts.models import Role
from accounts.services import get_role
from courses import conf
from courses.models import Course, CourseEnrollment, Group, GroupEnrollment
from courses.results import DependencyFailureError, DuplicateMembershipError

logger = logging.getLogger(__name__)


def _resolve_policy(on_duplicate: str | None) -> str:
    policy = on_duplicate or conf.duplicate_membership_policy()
    if policy not in (conf.DUPLICATE_ERROR, conf.DUPLICATE_IGNORE):
        raise ValueError(f"Unknown duplicate membership policy: {policy!r}")
    return policy


def enroll_in_course(
    course: Course, user, *, on_duplicate: str | None = None
) -> tuple[CourseEnrollment, bool]:
    """Create the user↔course record; return it with a ``created`` flag."""
    policy = _resolve_policy(on_duplicate)
    existing = CourseEnrollment.objects.filter(course=course, user=user).first()
    if existing is not None:
        if policy == conf.DUPLICATE_ERROR:
            raise DuplicateMembershipError(
                f"User {user.pk} is already enrolled in course {course.pk}"
            )
        return existing, False
    try:
        with transaction.atomic():
            enrollment = CourseEnrollment.objects.create(course=course, user=user)
    except DatabaseError as exc:
        raise DependencyFailureError(
            f"Failed to enroll user {user.pk} into course {course.pk}: {exc}"
        ) from exc
    logger.info("User %s enrolled in course %s", user.pk, course.pk)
    return enrollment, True


def enroll_in_group(
    group: Group, user, *, on_duplicate: str | None = None
) -> tuple[GroupEnrollment, bool]:
    policy = _resolve_policy(on_duplicate)
    existing = GroupEnrollment.objects.filter(group=group, user=user).first()
    if existing is not None:
        if policy == conf.DUPLICATE_ERROR:
            raise DuplicateMembershipError(
                f"User {user.pk} is already a member of group {group.pk}"
            )
        return existing, False
    try:
        with transaction.atomic():
            enrollment = GroupEnrollment.objects.create(group=group, user=user)
    except DatabaseError as exc:
        raise DependencyFailureError(
            f"Failed to enroll user {user.pk} into group {group.pk}: {exc}"
        ) from exc
    logger.info("User %s enrolled in group %s", user.pk, group.pk)
    return enrollment, True


def remove_from_group(group: Group, user) -> bool:
    """Drop the user's group record. Missing records are not an error."""
    deleted, _ = GroupEnrollment.objects.filter(group=group, user=user).delete()
    if deleted:
        logger.info("User %s removed from group %s", user.pk, group.pk)
    return bool(deleted)


def remove_from_course(course: Course, user) -> bool:
    """Drop the course record together with the user's groups in that course."""
    GroupEnrollment.objects.filter(group__course=course, user=user).delete()
    deleted, _ = CourseEnrollment.objects.filter(course=course, user=user).delete()
    if deleted:
        logger.info("User %s removed from course %s", user.pk, course.pk)
    return bool(deleted)


def joins_new_groups_automatically(role: Role) -> bool:
    if role == Role.ADMIN:
        return True
    if role in (Role.TEACHER, Role.STUDENT):
        return False
    raise ValueError(f"Unknown role: {role!r}")


def propagate_admins(group: Group) -> list[GroupEnrollment]:
    """Enroll every admin of the parent course into ``group``.

    The first failing enrollment raises, leaving it to the caller's
    command scope to undo the group.
    """
    enrollments = []
    course_members = CourseEnrollment.objects.filter(course_id=group.course_id).select_related(
        "user__profile"
    )
    for course_enrollment in course_members:
        admin = course_enrollment.user
        if not joins_new_groups_automatically(get_role(admin)):
            continue
        enrollment, _ = enroll_in_group(group, admin, on_duplicate=conf.DUPLICATE_IGNORE)
        enrollments.append(enrollment)
    logger.debug("Propagated %s admin(s) into group %s", len(enrollments), group.pk)
    return enrollments
