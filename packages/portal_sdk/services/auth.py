"""Authentication operations against the origin's ``/auth`` endpoints."""

from __future__ import annotations

import logging
from typing import Any, Mapping

from packages.portal_shared.envelope import Envelope, validation_failure
from packages.portal_shared.errors import codes
from packages.portal_sdk.client import ApiClient
from packages.portal_sdk.services.base import guarded, is_valid_email

logger = logging.getLogger(__name__)

LOGIN_PATH = "/auth/login"
REGISTER_PATH = "/auth/register"
VALIDATE_PATH = "/auth/validate"
RESET_PASSWORD_PATH = "/auth/reset-password"
COMPLETE_RESET_PATH = "/auth/complete-reset"

REGISTRATION_REQUIRED_FIELDS = ("email", "password", "name", "termsAccepted")
MIN_PASSWORD_LENGTH = 8


class AuthService:
    """Login, registration, and password reset flows.

    Inputs are validated before any request is built, so a rejected input
    never reaches the transport.
    """

    def __init__(self, client: ApiClient) -> None:
        self._client = client

    async def login(self, email: str, password: str) -> Envelope:
        """Authenticate and store the returned bearer token on success."""
        if not email:
            return validation_failure("Email is required", code=codes.MISSING_REQUIRED_FIELD)
        if not password:
            return validation_failure("Password is required", code=codes.MISSING_REQUIRED_FIELD)
        if not is_valid_email(email):
            return validation_failure("Invalid email format", code=codes.INVALID_FORMAT)

        result = await guarded(
            self._client.post(LOGIN_PATH, {"email": email, "password": password}),
            logger=logger,
            fallback="Authentication failed",
        )
        if result.success and isinstance(result.data, Mapping):
            token = result.data.get("token")
            if isinstance(token, str) and token != "":
                self._client.credentials.set(token)
        return result

    async def register(self, data: Mapping[str, Any]) -> Envelope:
        """Create an account from registration fields keyed as the origin expects."""
        for name in REGISTRATION_REQUIRED_FIELDS:
            if not data.get(name):
                if name == "termsAccepted" and name in data:
                    return validation_failure("Terms and conditions must be accepted")
                return validation_failure(
                    f"{name} is required", code=codes.MISSING_REQUIRED_FIELD
                )
        if not is_valid_email(str(data["email"])):
            return validation_failure("Invalid email format", code=codes.INVALID_FORMAT)
        if len(str(data["password"])) < MIN_PASSWORD_LENGTH:
            return validation_failure("Password must be at least 8 characters long")

        payload = {key: value for key, value in data.items() if key != "confirmPassword"}
        return await guarded(
            self._client.post(REGISTER_PATH, payload),
            logger=logger,
            fallback="Registration failed",
        )

    async def validate(self, token: str) -> Envelope:
        """Ask the origin whether ``token`` is still valid."""
        if not token:
            return validation_failure("Token is required", code=codes.MISSING_REQUIRED_FIELD)
        return await guarded(
            self._client.post(VALIDATE_PATH, {"token": token}),
            logger=logger,
            fallback="Token validation failed",
        )

    async def request_password_reset(self, email: str) -> Envelope:
        if not email:
            return validation_failure("Email is required", code=codes.MISSING_REQUIRED_FIELD)
        if not is_valid_email(email):
            return validation_failure("Invalid email format", code=codes.INVALID_FORMAT)
        return await guarded(
            self._client.post(RESET_PASSWORD_PATH, {"email": email}),
            logger=logger,
            fallback="Password reset request failed",
        )

    async def complete_password_reset(
        self,
        token: str,
        password: str,
        confirm_password: str | None = None,
    ) -> Envelope:
        """Set a new password using a reset token.

        ``confirm_password`` is checked locally and never sent.
        """
        if not token:
            return validation_failure(
                "Reset token is required", code=codes.MISSING_REQUIRED_FIELD
            )
        if not password:
            return validation_failure(
                "New password is required", code=codes.MISSING_REQUIRED_FIELD
            )
        if len(password) < MIN_PASSWORD_LENGTH:
            return validation_failure("Password must be at least 8 characters long")
        if confirm_password and password != confirm_password:
            return validation_failure("Passwords do not match")

        return await guarded(
            self._client.post(COMPLETE_RESET_PATH, {"token": token, "password": password}),
            logger=logger,
            fallback="Password reset completion failed",
        )

    def logout(self) -> None:
        """Forget the stored bearer token."""
        self._client.credentials.clear()
