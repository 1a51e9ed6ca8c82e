"""Domain services for the portal origin API."""

from packages.portal_sdk.services.auth import AuthService
from packages.portal_sdk.services.uploads import UploadService
from packages.portal_sdk.services.users import UserService

__all__ = ["AuthService", "UploadService", "UserService"]
