"""Authorization gates consumed by the scheduling services.

These are plain boolean checks; who the actor is gets decided by the API
dependencies before any service is called.
"""

from typing import Any

from ..db import models
from .exceptions import UnauthorizedError


def is_admin(user: models.User | None) -> bool:
    return user is not None and user.role == models.UserRole.admin


def is_owner(user: models.User | None, record: Any) -> bool:
    return user is not None and getattr(record, "user_id", None) == user.id


def ensure_can_manage(user: models.User | None, record: Any) -> None:
    if not (is_admin(user) or is_owner(user, record)):
        raise UnauthorizedError()


def ensure_admin(user: models.User | None) -> None:
    if not is_admin(user):
        raise UnauthorizedError("Administrator rights required")
