"""In-app activity notifications.

Rows are only ever de-referenced when the course, group or assignment
they mention goes away, so a user's notification history survives
deletions.
"""

from __future__ import annotations

import enum
import logging
from typing import Iterable

from django.db.models import Q, QuerySet

from .models import Assignment, Course, Group, Notification

logger = logging.getLogger(__name__)


class Activity(enum.Enum):
    CREATED_COURSE = "created_course"
    JOINED_COURSE = "joined_course"
    CREATED_GROUP = "created_group"
    JOINED_GROUP = "joined_group"
    CREATED_ASSIGNMENT = "created_assignment"
    MARKED_ASSIGNMENT = "marked_assignment"
    SUBMITTED_ASSIGNMENT = "submitted_assignment"
    ATTACHED_MATERIAL_FOR_GROUP = "attached_material_for_group"
    ATTACHED_MATERIAL_FOR_COURSE = "attached_material_for_course"


_DATE = "%A, %d %B %Y"
_DATE_TIME = "%A, %d %B %Y, at %H:%M"

_NAMES = {
    Activity.CREATED_COURSE: "You created a new course",
    Activity.JOINED_COURSE: "You joined a new course",
    Activity.CREATED_GROUP: "You created a new group",
    Activity.JOINED_GROUP: "You joined a new group",
    Activity.CREATED_ASSIGNMENT: "You created a new assignment",
    Activity.MARKED_ASSIGNMENT: "You marked an assignment",
    Activity.SUBMITTED_ASSIGNMENT: "You submitted an assignment",
    Activity.ATTACHED_MATERIAL_FOR_GROUP: "You attached a new educational material",
    Activity.ATTACHED_MATERIAL_FOR_COURSE: "You attached a new educational material",
}

_DESCRIPTIONS = {
    Activity.CREATED_COURSE: 'You created a new course - "{course_name}".',
    Activity.JOINED_COURSE: 'You joined a new course - "{course_name}".',
    Activity.CREATED_GROUP: (
        'You created a new group, "{group_name}", in course "{course_name}". '
        "Education in it starts on {start:" + _DATE + "}. "
        "It ends on {end:" + _DATE + "}."
    ),
    Activity.JOINED_GROUP: (
        'You joined a new group, "{group_name}", in course "{course_name}". '
        "Education in it starts on {start:" + _DATE_TIME + "}. "
        "It ends on {end:" + _DATE_TIME + "}."
    ),
    Activity.CREATED_ASSIGNMENT: (
        'You created a new assignment "{assignment_name}" for group "{group_name}". '
        "Assignment activity starts on {start:" + _DATE_TIME + "}. "
        "It ends on {end:" + _DATE_TIME + "}."
    ),
    Activity.MARKED_ASSIGNMENT: (
        'You marked the solution {student} submitted for assignment "{assignment_name}". '
        "Their grade: {grade}/100."
    ),
    Activity.SUBMITTED_ASSIGNMENT: 'You submitted a solution for assignment "{assignment_name}".',
    Activity.ATTACHED_MATERIAL_FOR_GROUP: (
        'You attached a new educational material for group "{group_name}".'
    ),
    Activity.ATTACHED_MATERIAL_FOR_COURSE: (
        'You attached a new educational material for course "{course_name}".'
    ),
}


def format_activity(activity: Activity, **context) -> tuple[str, str]:
    return _NAMES[activity], _DESCRIPTIONS[activity].format(**context)


def record_activity(
    user,
    activity: Activity,
    *,
    course: Course | None = None,
    group: Group | None = None,
    assignment: Assignment | None = None,
    **context,
) -> Notification:
    name, description = format_activity(activity, **context)
    notification = Notification.objects.create(
        user=user,
        name=name,
        description=description,
        course=course,
        group=group,
        assignment=assignment,
    )
    logger.debug("Recorded %s notification for user %s", activity.value, user.pk)
    return notification


def clear_references(
    *,
    courses: Iterable[Course] = (),
    groups: Iterable[Group] = (),
    assignments: Iterable[Assignment] = (),
) -> int:
    """Null out every reference on notifications pointing at the given rows."""
    query = Q()
    for field, objects in (
        ("course", courses),
        ("group", groups),
        ("assignment", assignments),
    ):
        ids = [obj.pk for obj in objects]
        if ids:
            query |= Q(**{f"{field}__in": ids})
    if not query:
        return 0
    cleared = Notification.objects.filter(query).update(
        course=None, group=None, assignment=None
    )
    logger.debug("Cleared references on %s notification(s)", cleared)
    return cleared


def unread_for(user) -> QuerySet[Notification]:
    return Notification.objects.filter(user=user, is_read=False)


def all_for(user) -> QuerySet[Notification]:
    return Notification.objects.filter(user=user)
