from __future__ import annotations

from django.core.management.base import BaseCommand

from courses import conf
from courses.models import EducationMaterial
from courses.storage import MaterialStorage


class Command(BaseCommand):
    help = "Delete material files no education material refers to."

    def add_arguments(self, parser):
        parser.add_argument(
            "--prefix",
            default=None,
            help="Storage prefix to scan (default: COURSES_MATERIALS_PREFIX).",
        )
        parser.add_argument(
            "--delete",
            action="store_true",
            help="Delete files instead of dry-run.",
        )

    def handle(self, *args, **options):
        prefix = options["prefix"]
        if prefix is None:
            prefix = conf.materials_prefix()
        delete_mode = bool(options["delete"])

        prefix = prefix.lstrip("/")
        if prefix and not prefix.endswith("/"):
            prefix = f"{prefix}/"

        storage = MaterialStorage()
        referenced = set(
            EducationMaterial.objects.exclude(file_path="").values_list("file_path", flat=True)
        )

        total = 0
        deleted = 0
        for storage_path in list(storage.iter_files(prefix)):
            total += 1
            if storage_path in referenced:
                continue

            if delete_mode:
                storage.delete_file(storage_path)
                deleted += 1
            else:
                self.stdout.write(f"ORPHAN: {storage_path}")

        if delete_mode:
            self.stdout.write(
                self.style.SUCCESS(f"Removed {deleted} orphaned file(s) (scanned {total}).")
            )
        else:
            self.stdout.write(
                self.style.WARNING(
                    f"Dry-run complete. {total} file(s) scanned. "
                    "Re-run with --delete to remove orphans."
                )
            )
