"""Role lookup used by membership propagation and progress denominators."""

from __future__ import annotations

import logging

from django.contrib.auth import get_user_model
from django.db.models import QuerySet

from .models import Role, UserProfile

logger = logging.getLogger(__name__)


def get_role(user) -> Role:
    """Return the user's role, treating users without a profile as students."""
    if user is None:
        raise ValueError("user is required")
    try:
        profile = user.profile
    except UserProfile.DoesNotExist:
        return Role.STUDENT
    return Role(profile.role)


def set_role(user, role: Role | str) -> UserProfile:
    role = Role(role)
    try:
        profile = user.profile
    except UserProfile.DoesNotExist:
        profile = UserProfile.objects.create(user=user, role=role)
        logger.info("User %s role set to %s", user.pk, role)
        return profile
    if profile.role != role:
        profile.role = role
        profile.save(update_fields=["role"])
        logger.info("User %s role set to %s", user.pk, role)
    return profile


def users_with_role(role: Role | str) -> QuerySet:
    return get_user_model().objects.filter(profile__role=Role(role))


def update_profile(user, **fields) -> UserProfile:
    """Update the contact fields of the user's profile; ``None`` leaves a field as is."""
    allowed = {"university", "telegram", "github"}
    unknown = set(fields) - allowed
    if unknown:
        raise ValueError(f"Unknown profile fields: {', '.join(sorted(unknown))}")
    try:
        profile = user.profile
    except UserProfile.DoesNotExist:
        profile = UserProfile.objects.create(user=user)
    changed = []
    for name, value in fields.items():
        if value is None:
            continue
        setattr(profile, name, value.strip())
        changed.append(name)
    if changed:
        profile.save(update_fields=changed)
    return profile
