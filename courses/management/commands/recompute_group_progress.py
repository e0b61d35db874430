from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand, CommandError

from courses.models import GroupEnrollment
from courses.services import record_group_progress


class Command(BaseCommand):
    help = "Recompute stored group progress from checked submissions"

    def add_arguments(self, parser):
        parser.add_argument(
            "--group",
            dest="group",
            type=int,
            help="Recompute progress for a single group (id)",
        )
        parser.add_argument(
            "--user",
            dest="user",
            help="Recompute progress for a single user (id or username)",
        )

    def handle(self, *args, **options):
        enrollments = GroupEnrollment.objects.select_related("group", "user")

        group_id = options.get("group")
        if group_id is not None:
            enrollments = enrollments.filter(group_id=group_id)
            if not enrollments.exists():
                raise CommandError("Group not found or has no members")

        user_filter = options.get("user")
        if user_filter:
            User = get_user_model()
            if user_filter.isdigit():
                users = User.objects.filter(pk=int(user_filter))
            else:
                users = User.objects.filter(username=user_filter)
            if not users.exists():
                raise CommandError("User not found")
            enrollments = enrollments.filter(user__in=users)

        updated = 0
        failed = 0
        for enrollment in enrollments.order_by("group_id", "user_id"):
            result = record_group_progress(enrollment.group, enrollment.user)
            if result:
                updated += 1
            else:
                failed += 1
                self.stderr.write(
                    f"Group {enrollment.group_id}, user {enrollment.user_id}: {result.message}"
                )

        if failed:
            raise CommandError(f"Progress recomputed for {updated}, failed for {failed}")
        self.stdout.write(self.style.SUCCESS(f"Progress recomputed for {updated} enrollment(s)"))
