"""Command scope shared by every multi-step command.

With ``COURSES_ATOMIC_COMMANDS`` on (the default) a command runs inside a
single ``transaction.atomic`` block and the database rolls relational work
back on failure. Side effects outside the database, such as uploaded
files, can't be rolled back that way, so every step records a
compensating action. Relational compensations only run when the command
is not atomic.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Callable, Iterator

from django.db import DatabaseError, transaction

from courses import conf
from courses.results import CourseSystemError, DependencyFailureError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Compensation:
    description: str
    action: Callable[[], object]
    relational: bool = True


class Saga:
    def __init__(self, name: str, *, atomic: bool):
        self.name = name
        self.atomic = atomic
        self._steps: list[Compensation] = []

    def on_failure(
        self, description: str, action: Callable[[], object], *, relational: bool = True
    ) -> None:
        self._steps.append(Compensation(description, action, relational))

    def compensate(self) -> list[str]:
        """Run recorded compensations, newest first; return their errors."""
        errors: list[str] = []
        while self._steps:
            step = self._steps.pop()
            if step.relational and self.atomic:
                continue
            try:
                step.action()
            except (CourseSystemError, DatabaseError, OSError) as exc:
                logger.exception(
                    "Compensation '%s' for %s failed", step.description, self.name
                )
                errors.append(f"{step.description}: {exc}")
            else:
                logger.info("Compensated '%s' for %s", step.description, self.name)
        return errors


@contextmanager
def command_scope(name: str, *, atomic: bool | None = None) -> Iterator[Saga]:
    if atomic is None:
        atomic = conf.atomic_commands()
    saga = Saga(name, atomic=atomic)
    try:
        if atomic:
            with transaction.atomic():
                yield saga
        else:
            yield saga
    except CourseSystemError as exc:
        errors = saga.compensate()
        if errors:
            raise exc.__class__(
                f"{exc.message}; compensation failed: {'; '.join(errors)}"
            ) from exc
        raise
    except DatabaseError as exc:
        errors = saga.compensate()
        if errors:
            raise DependencyFailureError(
                f"Failed to {name}. Exception: {exc}; "
                f"compensation failed: {'; '.join(errors)}"
            ) from exc
        raise
