"""Uniform command results and the error kinds they carry."""

from __future__ import annotations

import enum
import functools
import logging
from dataclasses import dataclass
from typing import Any, Callable

from django.core.exceptions import ObjectDoesNotExist
from django.db import DatabaseError

logger = logging.getLogger(__name__)


class ErrorKind(enum.Enum):
    INVALID_INPUT = "invalid_input"
    NOT_FOUND = "not_found"
    DEPENDENCY_FAILURE = "dependency_failure"
    DUPLICATE_MEMBERSHIP = "duplicate_membership"
    CONFLICT = "conflict"


@dataclass(frozen=True)
class Result:
    ok: bool
    data: Any = None
    message: str = ""
    error: ErrorKind | None = None

    @classmethod
    def success(cls, data: Any = None, message: str = "") -> "Result":
        return cls(ok=True, data=data, message=message)

    @classmethod
    def failure(cls, error: ErrorKind, message: str) -> "Result":
        return cls(ok=False, message=message, error=error)

    def __bool__(self) -> bool:
        return self.ok


class CourseSystemError(Exception):
    """Base class for failures raised inside the domain core."""

    kind = ErrorKind.DEPENDENCY_FAILURE

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class InvalidInputError(CourseSystemError):
    kind = ErrorKind.INVALID_INPUT


class NotFoundError(CourseSystemError):
    kind = ErrorKind.NOT_FOUND


class DependencyFailureError(CourseSystemError):
    kind = ErrorKind.DEPENDENCY_FAILURE


class DuplicateMembershipError(CourseSystemError):
    kind = ErrorKind.DUPLICATE_MEMBERSHIP


class ConflictError(CourseSystemError):
    kind = ErrorKind.CONFLICT


class StorageError(DependencyFailureError):
    """Raised when the material storage cannot store or delete a file."""


def command(description: str) -> Callable:
    """Turn a service function into a command that always returns a Result.

    Domain errors keep their kind, database failures become
    ``DEPENDENCY_FAILURE`` with the underlying message. A plain return
    value is wrapped into a successful result.
    """

    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def wrapper(*args, **kwargs) -> Result:
            try:
                value = func(*args, **kwargs)
            except CourseSystemError as exc:
                logger.warning("Failed to %s: %s", description, exc.message)
                return Result.failure(exc.kind, exc.message)
            except ObjectDoesNotExist as exc:
                logger.warning("Failed to %s: %s", description, exc)
                return Result.failure(ErrorKind.NOT_FOUND, str(exc))
            except DatabaseError as exc:
                logger.exception("Failed to %s", description)
                return Result.failure(
                    ErrorKind.DEPENDENCY_FAILURE,
                    f"Failed to {description}. Exception: {exc}",
                )
            if isinstance(value, Result):
                return value
            return Result.success(value)

        return wrapper

    return decorator
