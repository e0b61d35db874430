"""Commands of the course domain.

Every public function here is a command: it validates its input, runs its
steps inside one command scope and returns a ``Result``. Failures from the
database or from material storage come back as failed results, never as
exceptions.
"""

from __future__ import annotations

import logging
from datetime import datetime

from django.db import DatabaseError
from django.db.models import F
from django.utils import timezone

from accounts.models import Role
from accounts.services import get_role

from . import conf, notifications
from .models import (
    Answer,
    Assignment,
    Course,
    EducationMaterial,
    Group,
    GroupEnrollment,
    Notification,
    Submission,
)
from .notifications import Activity
from .results import (
    ConflictError,
    DependencyFailureError,
    InvalidInputError,
    NotFoundError,
    Result,
    command,
)
from .service_utils import cascade, membership
from .service_utils.progress import (
    compute_group_progress,
    compute_user_progress,
    user_progress_value,
    with_progress_data,
)
from .service_utils.saga import command_scope
from .service_utils.status import resolve_assignment_status, resolve_group_status
from .storage import MaterialStorage
from .utils.sanitize import sanitize_answer_text

logger = logging.getLogger(__name__)

GROUP_SORT_FIELDS = (
    "name",
    "-name",
    "start_date",
    "-start_date",
    "end_date",
    "-end_date",
)


def _get_or_raise(model, pk, *, queryset=None):
    if pk is None:
        raise InvalidInputError(f"{model.__name__} id is required")
    queryset = queryset if queryset is not None else model.objects.all()
    instance = queryset.filter(pk=pk).first()
    if instance is None:
        raise NotFoundError(f"{model.__name__} by id {pk} not found")
    return instance


def _require(value, name: str) -> None:
    if value is None:
        raise InvalidInputError(f"{name} not found")


def _validate_window(start: datetime | None, end: datetime | None) -> None:
    if start is None or end is None:
        raise InvalidInputError("Start and end dates are required")
    if start > end:
        raise InvalidInputError("Start date must be less than end date")


def _versioned_update(instance, expected_version: int | None, **fields) -> None:
    """Write ``fields`` and bump ``version`` unless another editor got there first."""
    model = type(instance)
    queryset = model.objects.filter(pk=instance.pk)
    if expected_version is not None:
        queryset = queryset.filter(version=expected_version)
    updated = queryset.update(
        version=F("version") + 1, updated_at=timezone.now(), **fields
    )
    if not updated:
        raise ConflictError(
            f"{model.__name__} {instance.pk} was changed by someone else "
            f"(expected version {expected_version})"
        )
    instance.refresh_from_db()


def _storage(storage: MaterialStorage | None) -> MaterialStorage:
    return storage if storage is not None else MaterialStorage()


# ---------------------------------------------------------------------------
# Courses
# ---------------------------------------------------------------------------


@command("create course")
def create_course(course: Course, creator) -> Course:
    """Persist ``course`` and enroll its creator.

    When the creator's enrollment fails the course is removed again.
    """
    _require(course, "course")
    _require(creator, "creator")
    if not (course.name or "").strip():
        raise InvalidInputError("Course name cannot be empty.")

    with command_scope("create course") as saga:
        course.save()
        saga.on_failure("delete course", course.delete)
        membership.enroll_in_course(course, creator)
        notifications.record_activity(
            creator, Activity.CREATED_COURSE, course=course, course_name=course.name
        )

    logger.info("Created course %s by user %s", course.pk, creator.pk)
    return course


@command("delete course")
def delete_course(course_id: int, *, storage: MaterialStorage | None = None) -> Result:
    course = _get_or_raise(Course, course_id)
    with command_scope("delete course"):
        report = cascade.cascade_delete(course, _storage(storage))
    return Result.success(report, f"Course {course_id} deleted")


@command("update course")
def update_course(
    course_id: int, *, name: str, expected_version: int | None = None
) -> Course:
    course = _get_or_raise(Course, course_id)
    if not (name or "").strip():
        raise InvalidInputError("Course name cannot be empty.")
    with command_scope("update course"):
        _versioned_update(course, expected_version, name=name)
    return course


@command("join course")
def join_course(course: Course, user):
    _require(course, "course")
    _require(user, "user")
    with command_scope("join course"):
        enrollment, _ = membership.enroll_in_course(course, user)
        notifications.record_activity(
            user, Activity.JOINED_COURSE, course=course, course_name=course.name
        )
    return enrollment


@command("leave course")
def leave_course(course: Course, user) -> bool:
    _require(course, "course")
    _require(user, "user")
    with command_scope("leave course"):
        return membership.remove_from_course(course, user)


# ---------------------------------------------------------------------------
# Groups
# ---------------------------------------------------------------------------


def _enrolls_creator(role: Role) -> bool:
    if role == Role.TEACHER:
        return True
    if role in (Role.ADMIN, Role.STUDENT):
        return False
    raise ValueError(f"Unknown role: {role!r}")


@command("create group")
def create_group(group: Group, creator, *, now: datetime | None = None) -> Group:
    """Persist ``group``, enroll the course admins and a teaching creator.

    Any failing step undoes the whole command: the group row does not
    survive a failed admin or creator enrollment.
    """
    _require(group, "group")
    _require(creator, "creator")
    _validate_window(group.start_date, group.end_date)
    if group.course_id is None:
        raise InvalidInputError("Group must belong to a course")

    group.status = resolve_group_status(now or timezone.now(), group.start_date, group.end_date)

    with command_scope("create group") as saga:
        group.save()
        saga.on_failure("delete group", group.delete)
        membership.propagate_admins(group)
        if _enrolls_creator(get_role(creator)):
            membership.enroll_in_group(group, creator, on_duplicate=conf.DUPLICATE_IGNORE)
        notifications.record_activity(
            creator,
            Activity.CREATED_GROUP,
            course=group.course,
            group=group,
            group_name=group.name,
            course_name=group.course.name,
            start=group.start_date,
            end=group.end_date,
        )

    logger.info("Created group %s in course %s", group.pk, group.course_id)
    return group


@command("delete group")
def delete_group(group_id: int, *, storage: MaterialStorage | None = None) -> Result:
    group = _get_or_raise(Group, group_id)
    with command_scope("delete group"):
        report = cascade.cascade_delete(group, _storage(storage))
    return Result.success(report, f"Group {group_id} deleted")


@command("update group")
def update_group(
    group_id: int,
    *,
    name: str | None = None,
    start_date: datetime | None = None,
    end_date: datetime | None = None,
    expected_version: int | None = None,
    now: datetime | None = None,
) -> Group:
    group = _get_or_raise(Group, group_id)
    start = start_date if start_date is not None else group.start_date
    end = end_date if end_date is not None else group.end_date
    _validate_window(start, end)
    if name is not None and not name.strip():
        raise InvalidInputError("Group name cannot be empty.")

    with command_scope("update group"):
        _versioned_update(
            group,
            expected_version,
            name=name if name is not None else group.name,
            start_date=start,
            end_date=end,
            status=resolve_group_status(now or timezone.now(), start, end),
        )
    return group


@command("join group")
def join_group(group: Group, user) -> GroupEnrollment:
    _require(group, "group")
    _require(user, "user")
    with command_scope("join group"):
        enrollment, _ = membership.enroll_in_group(group, user)
        notifications.record_activity(
            user,
            Activity.JOINED_GROUP,
            course=group.course,
            group=group,
            group_name=group.name,
            course_name=group.course.name,
            start=group.start_date,
            end=group.end_date,
        )
    return enrollment


@command("remove user from group")
def leave_group(group: Group, user) -> bool:
    _require(group, "group")
    _require(user, "user")
    with command_scope("remove user from group"):
        return membership.remove_from_group(group, user)


def _refresh_group_statuses(groups, now: datetime) -> None:
    changed = []
    for group in groups:
        status = resolve_group_status(now, group.start_date, group.end_date)
        if group.status != status:
            group.status = status
            changed.append(group)
    if changed:
        Group.objects.bulk_update(changed, ["status"])
        logger.debug("Refreshed status of %s group(s)", len(changed))


@command("list user groups")
def list_user_groups(
    user,
    *,
    sort: str = "name",
    status: str | None = None,
    search: str | None = None,
    now: datetime | None = None,
) -> list[Group]:
    """Groups ``user`` belongs to, with statuses re-derived on the way."""
    _require(user, "user")
    if sort not in GROUP_SORT_FIELDS:
        raise InvalidInputError(f"Unknown sort order: {sort}")
    if status is not None and status not in Group.Access.values:
        raise InvalidInputError(f"Unknown group status: {status}")

    groups = Group.objects.filter(enrollments__user=user).distinct()
    with command_scope("list user groups"):
        _refresh_group_statuses(list(groups), now or timezone.now())

    if search:
        groups = groups.filter(name__icontains=search)
    if status is not None:
        groups = groups.filter(status=status)
    return list(groups.order_by(sort, "pk"))


@command("calculate group progress")
def group_progress(group_id: int) -> str:
    group = _get_or_raise(Group, group_id, queryset=with_progress_data(Group.objects.all()))
    return compute_group_progress(group)


@command("calculate user progress")
def user_progress(group: Group, user) -> str:
    _require(group, "group")
    _require(user, "user")
    assignments = group.assignments.prefetch_related("submissions")
    return compute_user_progress(assignments, user)


@command("record group progress")
def record_group_progress(group: Group, user) -> GroupEnrollment:
    """Store the user's current progress on their group enrollment."""
    _require(group, "group")
    _require(user, "user")
    enrollment = GroupEnrollment.objects.filter(group=group, user=user).first()
    if enrollment is None:
        raise NotFoundError(f"User {user.pk} is not a member of group {group.pk}")
    value = user_progress_value(group.assignments.prefetch_related("submissions"), user)
    with command_scope("record group progress"):
        enrollment.progress = value
        enrollment.save(update_fields=["progress"])
    return enrollment


# ---------------------------------------------------------------------------
# Assignments
# ---------------------------------------------------------------------------


@command("create assignment")
def create_assignment(
    assignment: Assignment, creator=None, *, now: datetime | None = None
) -> Assignment:
    _require(assignment, "assignment")
    _validate_window(assignment.start_date, assignment.end_date)
    if assignment.group_id is None:
        raise InvalidInputError("Assignment must belong to a group")

    assignment.status = resolve_assignment_status(
        now or timezone.now(), assignment.start_date, assignment.end_date
    )
    with command_scope("create assignment"):
        assignment.save()
        if creator is not None:
            notifications.record_activity(
                creator,
                Activity.CREATED_ASSIGNMENT,
                group=assignment.group,
                assignment=assignment,
                assignment_name=assignment.name,
                group_name=assignment.group.name,
                start=assignment.start_date,
                end=assignment.end_date,
            )
    return assignment


@command("delete assignment")
def delete_assignment(
    assignment_id: int, *, storage: MaterialStorage | None = None
) -> Result:
    assignment = _get_or_raise(Assignment, assignment_id)
    with command_scope("delete assignment"):
        report = cascade.cascade_delete(assignment, _storage(storage))
    return Result.success(report, f"Assignment {assignment_id} deleted")


@command("update assignment")
def update_assignment(
    assignment_id: int,
    *,
    name: str | None = None,
    description: str | None = None,
    start_date: datetime | None = None,
    end_date: datetime | None = None,
    expected_version: int | None = None,
    now: datetime | None = None,
) -> Assignment:
    assignment = _get_or_raise(Assignment, assignment_id)
    start = start_date if start_date is not None else assignment.start_date
    end = end_date if end_date is not None else assignment.end_date
    _validate_window(start, end)

    fields = {
        "start_date": start,
        "end_date": end,
        "status": resolve_assignment_status(now or timezone.now(), start, end),
    }
    if name is not None:
        if not name.strip():
            raise InvalidInputError("Assignment name cannot be empty.")
        fields["name"] = name
    if description is not None:
        fields["description"] = description

    with command_scope("update assignment"):
        _versioned_update(assignment, expected_version, **fields)
    return assignment


@command("list group assignments")
def list_group_assignments(group_id: int, *, now: datetime | None = None) -> Result:
    group = _get_or_raise(Group, group_id)
    assignments = list(group.assignments.all())
    if not assignments:
        return Result.success([], "No assignment in group")

    now = now or timezone.now()
    changed = []
    for assignment in assignments:
        status = resolve_assignment_status(now, assignment.start_date, assignment.end_date)
        if assignment.status != status:
            assignment.status = status
            changed.append(assignment)
    if changed:
        with command_scope("list group assignments"):
            Assignment.objects.bulk_update(changed, ["status"])
    return Result.success(assignments)


@command("grade submission")
def grade_submission(submission_id: int, grade: int, grader) -> Submission:
    _require(grader, "grader")
    try:
        grade = int(grade)
    except (TypeError, ValueError):
        raise InvalidInputError("Grade must be between 0 and 100") from None
    if not 0 <= grade <= 100:
        raise InvalidInputError("Grade must be between 0 and 100")
    submission = _get_or_raise(
        Submission,
        submission_id,
        queryset=Submission.objects.select_related("assignment", "user"),
    )
    with command_scope("grade submission"):
        submission.grade = grade
        submission.is_checked = True
        submission.save(update_fields=["grade", "is_checked"])
        notifications.record_activity(
            grader,
            Activity.MARKED_ASSIGNMENT,
            assignment=submission.assignment,
            student=submission.user.get_full_name() or submission.user.get_username(),
            assignment_name=submission.assignment.name,
            grade=submission.grade,
        )
    return submission


# ---------------------------------------------------------------------------
# Submissions and answers
# ---------------------------------------------------------------------------


def _find_or_create_submission(assignment: Assignment, user, saga) -> Submission:
    submission = Submission.objects.filter(assignment=assignment, user=user).first()
    if submission is not None:
        return submission
    try:
        submission = Submission.objects.create(assignment=assignment, user=user)
    except DatabaseError as exc:
        raise DependencyFailureError(f"Failed to create user assignment: {exc}") from exc
    saga.on_failure("delete submission", submission.delete)
    logger.info("Created submission %s for assignment %s", submission.pk, assignment.pk)
    return submission


@command("get or create submission")
def get_or_create_submission(assignment: Assignment, user) -> Submission:
    _require(assignment, "assignment")
    _require(user, "user")
    with command_scope("get or create submission") as saga:
        return _find_or_create_submission(assignment, user, saga)


@command("submit answer")
def submit_answer(answer: Answer, assignment: Assignment, user) -> Answer:
    """Attach ``answer`` to the user's submission, creating it on first use."""
    if answer is None:
        raise InvalidInputError("Invalid assignment answer")
    _require(assignment, "assignment")
    _require(user, "user")

    answer.text = sanitize_answer_text(answer.text)
    with command_scope("submit answer") as saga:
        submission = _find_or_create_submission(assignment, user, saga)
        answer.submission = submission
        answer.save()
        notifications.record_activity(
            user,
            Activity.SUBMITTED_ASSIGNMENT,
            assignment=assignment,
            assignment_name=assignment.name,
        )
    return answer


@command("delete answer")
def delete_answer(answer: Answer) -> Result:
    """Delete ``answer``; its submission goes too once nothing is left in it.

    Emptiness is checked against the stored answers after the delete.
    """
    if answer is None:
        raise InvalidInputError("Fail to delete answer")
    answer = _get_or_raise(
        Answer, answer.pk, queryset=Answer.objects.select_related("submission")
    )
    submission = answer.submission
    with command_scope("delete answer"):
        answer.delete()
        submission_deleted = not submission.answers.exists()
        if submission_deleted:
            submission.delete()
            logger.info("Deleted empty submission for assignment %s", submission.assignment_id)
    return Result.success({"submission_deleted": submission_deleted})


# ---------------------------------------------------------------------------
# Education materials
# ---------------------------------------------------------------------------


@command("attach material")
def attach_material(
    uploaded_file,
    *,
    uploader,
    course: Course | None = None,
    group: Group | None = None,
    name: str | None = None,
    storage: MaterialStorage | None = None,
) -> EducationMaterial:
    """Upload a file and register it as a course or group material.

    The file is stored first; if the row can't be written the stored file
    is deleted again.
    """
    _require(uploaded_file, "file")
    _require(uploader, "uploader")
    if (course is None) == (group is None):
        raise InvalidInputError("Material must belong to exactly one course or group")

    storage = _storage(storage)
    with command_scope("attach material") as saga:
        path = storage.upload_file(uploaded_file)
        saga.on_failure(
            "delete uploaded file", lambda: storage.delete_file(path), relational=False
        )
        material = EducationMaterial.objects.create(
            name=name or getattr(uploaded_file, "name", "") or path,
            file_path=path,
            access=(
                EducationMaterial.Access.COURSE
                if course is not None
                else EducationMaterial.Access.GROUP
            ),
            course=course,
            group=group,
            uploaded_by=uploader,
        )
        if group is not None:
            notifications.record_activity(
                uploader,
                Activity.ATTACHED_MATERIAL_FOR_GROUP,
                group=group,
                group_name=group.name,
            )
        else:
            notifications.record_activity(
                uploader,
                Activity.ATTACHED_MATERIAL_FOR_COURSE,
                course=course,
                course_name=course.name,
            )
    return material


@command("delete material")
def delete_material(material_id: int, *, storage: MaterialStorage | None = None) -> Result:
    material = _get_or_raise(EducationMaterial, material_id)
    if material.file_path:
        _storage(storage).delete_file(material.file_path)
    with command_scope("delete material"):
        material.delete()
    return Result.success(None, f"Material {material_id} deleted")


# ---------------------------------------------------------------------------
# Notifications
# ---------------------------------------------------------------------------


@command("mark notification as read")
def mark_notification_read(notification_id: int) -> Notification:
    notification = _get_or_raise(Notification, notification_id)
    if not notification.is_read:
        notification.is_read = True
        notification.save(update_fields=["is_read"])
    return notification


@command("list notifications")
def list_notifications(user, *, unread_only: bool = False) -> list[Notification]:
    _require(user, "user")
    queryset = notifications.unread_for(user) if unread_only else notifications.all_for(user)
    return list(queryset)


__all__ = [
    "attach_material",
    "create_assignment",
    "create_course",
    "create_group",
    "delete_answer",
    "delete_assignment",
    "delete_course",
    "delete_group",
    "delete_material",
    "get_or_create_submission",
    "grade_submission",
    "group_progress",
    "join_course",
    "join_group",
    "leave_course",
    "leave_group",
    "list_group_assignments",
    "list_notifications",
    "list_user_groups",
    "mark_notification_read",
    "record_group_progress",
    "submit_answer",
    "update_assignment",
    "update_course",
    "update_group",
    "user_progress",
]
