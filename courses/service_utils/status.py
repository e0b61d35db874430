"""Status derivation for groups and assignments from their time windows.

Nothing here reads the clock: callers pass ``now`` explicitly, usually
``django.utils.timezone.now()``.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Iterable

from courses import conf
from courses.models import Assignment, Group


@dataclass(frozen=True)
class AssignmentWindowFlags:
    started: bool
    open: bool


_FLAG_BY_STATUS = {
    Assignment.Access.IN_PROGRESS: "started",
    Assignment.Access.AWAITING_APPROVAL: "open",
}


def _require_window(start: datetime | None, end: datetime | None) -> None:
    if start is None or end is None:
        raise ValueError("Both start and end dates are required")


def resolve_group_status(now: datetime, start: datetime, end: datetime) -> str:
    """Return the group status for ``now``.

    The rules are applied in order and a later rule overrides an earlier
    one, so an elapsed end date always yields ``COMPLETED``.
    """
    _require_window(start, end)
    status = Group.Access.PLANNED
    if start <= now:
        status = Group.Access.IN_PROGRESS
    if end < now:
        status = Group.Access.COMPLETED
    return status


def assignment_window_flags(
    now: datetime, start: datetime, end: datetime
) -> AssignmentWindowFlags:
    """Both assignment conditions, evaluated independently.

    They are not mutually exclusive: an assignment that has started and
    has not ended yet is both ``started`` and ``open``.
    """
    _require_window(start, end)
    return AssignmentWindowFlags(started=start <= now, open=end >= now)


def resolve_assignment_status(
    now: datetime,
    start: datetime,
    end: datetime,
    precedence: Iterable[str] | None = None,
) -> str:
    """Pick one status from the window flags using ``precedence``.

    ``precedence`` lists assignment statuses, highest first; it defaults to
    ``COURSES_ASSIGNMENT_STATUS_PRECEDENCE``. The first status whose flag
    holds wins, and ``PLANNED`` is returned when none does.
    """
    flags = assignment_window_flags(now, start, end)
    if precedence is None:
        precedence = conf.assignment_status_precedence()
    for name in precedence:
        try:
            flag = _FLAG_BY_STATUS[Assignment.Access(name)]
        except (KeyError, ValueError):
            raise ValueError(f"Unknown assignment status in precedence: {name!r}") from None
        if getattr(flags, flag):
            return Assignment.Access(name)
    return Assignment.Access.PLANNED
