"""Public Portal SDK interface for host applications."""

from packages.portal_sdk.client import ApiClient
from packages.portal_sdk.credentials import (
    CredentialStore,
    CredentialStoreError,
    FileCredentialStore,
    InMemoryCredentialStore,
)
from packages.portal_sdk.files import UploadFile
from packages.portal_sdk.interceptors import InterceptorChain, Navigator
from packages.portal_sdk.progress import AbortSignal, ProgressEvent, compute_percentage
from packages.portal_sdk.retry import RetryPolicy, compute_backoff_delay_ms, execute_with_retry
from packages.portal_sdk.services import AuthService, UploadService, UserService
from packages.portal_sdk.uploads import (
    InvalidUploadTransition,
    PresignedUploadDescriptor,
    PresignedUploadOrchestrator,
    UploadResult,
    UploadState,
)

__all__ = [
    "AbortSignal",
    "ApiClient",
    "AuthService",
    "CredentialStore",
    "CredentialStoreError",
    "FileCredentialStore",
    "InMemoryCredentialStore",
    "InterceptorChain",
    "InvalidUploadTransition",
    "Navigator",
    "PresignedUploadDescriptor",
    "PresignedUploadOrchestrator",
    "ProgressEvent",
    "RetryPolicy",
    "UploadFile",
    "UploadResult",
    "UploadService",
    "UploadState",
    "UserService",
    "compute_backoff_delay_ms",
    "compute_percentage",
    "execute_with_retry",
]
