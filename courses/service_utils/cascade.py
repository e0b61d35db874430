"""Ownership graph of the domain and the cascade delete that walks it.

Course → Group → Assignment → Submission → Answer is the owning chain;
courses and groups additionally own education materials, whose files
live in external storage. Notifications are referenced, never owned.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from django.db import models

from courses import notifications
from courses.models import (
    Answer,
    Assignment,
    Course,
    EducationMaterial,
    Group,
    Submission,
)
from courses.storage import MaterialStorage

logger = logging.getLogger(__name__)

OWNED_CHILDREN: dict[type[models.Model], tuple[str, ...]] = {
    Course: ("groups", "materials"),
    Group: ("assignments", "materials"),
    Assignment: ("submissions",),
    Submission: ("answers",),
    Answer: (),
    EducationMaterial: (),
}

# Children before parents; rows of a model are removed in one query.
DELETE_ORDER: tuple[type[models.Model], ...] = (
    Answer,
    Submission,
    Assignment,
    EducationMaterial,
    Group,
    Course,
)


@dataclass(frozen=True)
class CascadeReport:
    files_deleted: int
    notifications_cleared: int
    rows_deleted: int


def walk(root: models.Model) -> list[models.Model]:
    """Return ``root`` and everything it owns, children before parents."""
    if type(root) not in OWNED_CHILDREN:
        raise TypeError(f"{type(root).__name__} is not part of the ownership graph")
    ordered: list[models.Model] = []

    def visit(node: models.Model) -> None:
        for accessor in OWNED_CHILDREN[type(node)]:
            for child in getattr(node, accessor).all():
                visit(child)
        ordered.append(node)

    visit(root)
    return ordered


def _of_type(nodes, model) -> list:
    return [node for node in nodes if isinstance(node, model)]


def cascade_delete(root: models.Model, storage: MaterialStorage) -> CascadeReport:
    """Delete ``root`` with everything it owns.

    Material files are removed from storage first; a storage failure
    raises before any row is touched. Notifications that point into the
    deleted subtree are de-referenced, then rows go children-first.
    """
    nodes = walk(root)

    # rows without a stored file have nothing to remove from storage
    files = [m.file_path for m in _of_type(nodes, EducationMaterial) if m.file_path]
    for path in files:
        storage.delete_file(path)

    cleared = notifications.clear_references(
        courses=_of_type(nodes, Course),
        groups=_of_type(nodes, Group),
        assignments=_of_type(nodes, Assignment),
    )

    rows_deleted = 0
    for model in DELETE_ORDER:
        ids = [node.pk for node in _of_type(nodes, model)]
        if ids:
            deleted, _ = model.objects.filter(pk__in=ids).delete()
            rows_deleted += deleted

    logger.info(
        "Cascade-deleted %s %s: %s file(s), %s row(s), %s notification(s) cleared",
        type(root).__name__,
        root.pk,
        len(files),
        rows_deleted,
        cleared,
    )
    return CascadeReport(
        files_deleted=len(files),
        notifications_cleared=cleared,
        rows_deleted=rows_deleted,
    )
