from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

import httpx

from ..config import get_settings

logger = logging.getLogger(__name__)

TEMPLATES: dict[str, tuple[str, str]] = {
    "booking_created": (
        "Booking received",
        "Your {resource} booking for {starts_at} was received.",
    ),
    "booking_confirmed": (
        "Booking confirmed",
        "Your {resource} booking for {starts_at} is confirmed.",
    ),
    "booking_canceled": (
        "Booking canceled",
        "Your {resource} booking for {starts_at} was canceled.",
    ),
    "enrollment_created": (
        "Enrollment confirmed",
        "You are enrolled in {class_name} on {starts_at}.",
    ),
    "enrollment_canceled": (
        "Enrollment canceled",
        "Your enrollment in {class_name} on {starts_at} was canceled.",
    ),
    "occurrence_canceled": (
        "Class canceled",
        "{class_name} on {starts_at} was canceled.",
    ),
}


def format_local(dt: datetime) -> str:
    return dt.strftime("%d/%m/%Y %H:%M")


@dataclass(slots=True)
class Notification:
    user_id: int
    type: str
    params: dict[str, Any] = field(default_factory=dict)

    @property
    def title(self) -> str:
        return TEMPLATES[self.type][0]

    @property
    def message(self) -> str:
        return TEMPLATES[self.type][1].format(**self.params)


def notify(notifications: list[Notification]) -> None:
    """Deliver notifications; delivery problems are logged, never raised."""
    if not notifications:
        return

    settings = get_settings()
    url = settings.notification_webhook_url
    if not url:
        logger.warning(
            "Notification webhook is not configured; skipping %d notifications",
            len(notifications),
        )
        return

    with httpx.Client(timeout=settings.notification_timeout) as client:
        for notification in notifications:
            try:
                response = client.post(
                    url,
                    json={
                        "user_id": notification.user_id,
                        "type": notification.type,
                        "title": notification.title,
                        "message": notification.message,
                    },
                )
                response.raise_for_status()
            except (httpx.HTTPError, KeyError):
                logger.exception(
                    "Failed to send notification",
                    extra={"user_id": notification.user_id, "type": notification.type},
                )
