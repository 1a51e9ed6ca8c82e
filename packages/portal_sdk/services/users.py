"""Profile, application status, and event operations for the signed-in user."""

from __future__ import annotations

import logging
from typing import Any, Literal, Mapping
from urllib.parse import quote

from packages.portal_shared.envelope import Envelope, validation_failure
from packages.portal_shared.errors import codes
from packages.portal_sdk.client import ApiClient
from packages.portal_sdk.services.base import guarded

logger = logging.getLogger(__name__)

PROFILE_PATH = "/user/profile"
APPLICATION_STATUS_PATH = "/user/application-status"
EVENTS_PATH = "/user/events"
NOTIFICATION_PREFERENCES_PATH = "/user/notification-preferences"
PROFILE_COMPLETION_PATH = "/user/profile-completion"

MAX_BIO_LENGTH = 1000

EventResponse = Literal["confirm", "decline"]


def validate_profile_update(data: Mapping[str, Any] | None) -> Envelope | None:
    """Return a validation failure for an unacceptable profile update."""
    if not data:
        return validation_failure("No profile data provided for update")

    name = data.get("name")
    if "name" in data and (not isinstance(name, str) or name.strip() == ""):
        return validation_failure("Name cannot be empty")

    experience = data.get("experience")
    if isinstance(experience, (int, float)) and experience < 0:
        return validation_failure("Experience cannot be negative")

    bio = data.get("bio")
    if isinstance(bio, str) and len(bio) > MAX_BIO_LENGTH:
        return validation_failure("Bio is too long, maximum 1000 characters")

    if "skills" in data:
        skills = data["skills"]
        if not isinstance(skills, (list, tuple)):
            return validation_failure("Skills must be an array", code=codes.INVALID_FORMAT)
        if any(not isinstance(skill, str) or skill.strip() == "" for skill in skills):
            return validation_failure("Skills cannot contain empty values")
    return None


class UserService:
    """Operations on the signed-in user's portal record."""

    def __init__(self, client: ApiClient) -> None:
        self._client = client

    async def get_profile(self) -> Envelope:
        return await guarded(
            self._client.get(PROFILE_PATH),
            logger=logger,
            fallback="Failed to fetch profile",
        )

    async def update_profile(self, data: Mapping[str, Any]) -> Envelope:
        """Validate and apply a partial profile update."""
        rejected = validate_profile_update(data)
        if rejected is not None:
            return rejected
        return await guarded(
            self._client.put(PROFILE_PATH, data),
            logger=logger,
            fallback="Failed to update profile",
        )

    async def get_application_status(self) -> Envelope:
        return await guarded(
            self._client.get(APPLICATION_STATUS_PATH),
            logger=logger,
            fallback="Failed to fetch application status",
        )

    async def get_upcoming_events(self) -> Envelope:
        return await guarded(
            self._client.get(EVENTS_PATH),
            logger=logger,
            fallback="Failed to fetch upcoming events",
        )

    async def update_notification_preferences(
        self, preferences: Mapping[str, Any] | None
    ) -> Envelope:
        if not preferences:
            return validation_failure(
                "Notification preferences are required",
                code=codes.MISSING_REQUIRED_FIELD,
            )
        return await guarded(
            self._client.put(NOTIFICATION_PREFERENCES_PATH, preferences),
            logger=logger,
            fallback="Failed to update notification preferences",
        )

    async def respond_to_event(
        self,
        event_id: str,
        status: EventResponse,
        comment: str | None = None,
    ) -> Envelope:
        """Confirm or decline a scheduled call, interview, or meeting."""
        if not event_id:
            return validation_failure("Event ID is required", code=codes.MISSING_REQUIRED_FIELD)
        payload: dict[str, Any] = {"status": status}
        if comment is not None:
            payload["comment"] = comment
        return await guarded(
            self._client.post(f"{EVENTS_PATH}/{quote(event_id, safe='')}/respond", payload),
            logger=logger,
            fallback="Failed to respond to event",
        )

    async def get_profile_completion_status(self) -> Envelope:
        return await guarded(
            self._client.get(PROFILE_COMPLETION_PATH),
            logger=logger,
            fallback="Failed to fetch profile completion status",
        )
