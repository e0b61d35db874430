from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable

from accounts.models import Role
from accounts.services import get_role
from courses.models import Assignment, Group

ZERO_PROGRESS = "0.0"

_TWO_PLACES = Decimal("0.01")


def _quantize(value: Decimal) -> Decimal:
    return value.quantize(_TWO_PLACES, rounding=ROUND_HALF_UP)


def format_percent(value: Decimal) -> str:
    """Render a percentage with at most two decimals, dropping trailing zeros."""
    text = format(_quantize(value), "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


def _counts_as_student(role: Role) -> bool:
    if role == Role.STUDENT:
        return True
    if role in (Role.ADMIN, Role.TEACHER):
        return False
    raise ValueError(f"Unknown role: {role!r}")


def user_progress_value(assignments: Iterable[Assignment], user) -> Decimal:
    """Percentage of ``assignments`` with a checked submission by ``user``."""
    user_id = getattr(user, "pk", user)
    assignments = list(assignments)
    total = len(assignments)
    checked = sum(
        1
        for assignment in assignments
        for submission in assignment.submissions.all()
        if submission.user_id == user_id and submission.is_checked
    )
    if not checked or not total:
        return Decimal(0)
    return _quantize(Decimal(checked) * 100 / Decimal(total))


def compute_user_progress(assignments: Iterable[Assignment], user) -> str:
    value = user_progress_value(assignments, user)
    if not value:
        return ZERO_PROGRESS
    return format_percent(value)


def compute_group_progress(group: Group) -> str:
    """Share of graded submissions among every (assignment, student) pair.

    Only members whose role is ``STUDENT`` count towards the denominator;
    a group without assignments or without students reports ``"0.0"``.
    """
    assignments = list(group.assignments.all())
    if not assignments:
        return ZERO_PROGRESS

    students = sum(
        1
        for enrollment in group.enrollments.all()
        if _counts_as_student(get_role(enrollment.user))
    )
    graded = sum(
        1
        for assignment in assignments
        for submission in assignment.submissions.all()
        if submission.grade > 0
    )
    if not graded or not students:
        return ZERO_PROGRESS
    return format_percent(Decimal(graded) * 100 / Decimal(len(assignments) * students))


def with_progress_data(queryset):
    """Prefetch everything the progress functions touch for a group queryset."""
    return queryset.prefetch_related(
        "assignments__submissions",
        "enrollments__user__profile",
    )
