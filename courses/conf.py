from __future__ import annotations

from django.conf import settings

DUPLICATE_ERROR = "error"
DUPLICATE_IGNORE = "ignore"


def atomic_commands() -> bool:
    return bool(getattr(settings, "COURSES_ATOMIC_COMMANDS", True))


def duplicate_membership_policy() -> str:
    policy = getattr(settings, "COURSES_DUPLICATE_MEMBERSHIP", DUPLICATE_ERROR)
    if policy not in (DUPLICATE_ERROR, DUPLICATE_IGNORE):
        raise ValueError(f"Unknown COURSES_DUPLICATE_MEMBERSHIP value: {policy!r}")
    return policy


def assignment_status_precedence() -> tuple[str, ...]:
    value = getattr(
        settings,
        "COURSES_ASSIGNMENT_STATUS_PRECEDENCE",
        ("awaiting_approval", "in_progress"),
    )
    if isinstance(value, str):
        value = value.split(",")
    return tuple(item.strip() for item in value if item.strip())


def materials_prefix() -> str:
    prefix = (getattr(settings, "COURSES_MATERIALS_PREFIX", "materials/") or "").lstrip("/")
    if prefix and not prefix.endswith("/"):
        prefix = f"{prefix}/"
    return prefix
