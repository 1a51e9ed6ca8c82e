"""Direct-to-storage upload protocol and upload file validation.

A presigned upload runs three phases against two remotes:

1. ask the origin for a presigned storage descriptor;
2. stream the file straight to the storage provider with progress events;
3. tell the origin the object landed so it can record it.

``PresignedUploadOrchestrator`` drives one upload through those phases as an
explicit state machine and always resolves with an ``Envelope``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping
from uuid import uuid4

import httpx

from packages.portal_shared.envelope import (
    Envelope,
    Failure,
    failure,
    validation_failure,
)
from packages.portal_shared.errors import codes, unknown_error, upload_aborted_error
from packages.portal_shared.logging import log_context
from packages.portal_shared.logging import fields as log_fields
from packages.portal_sdk.client import ApiClient
from packages.portal_sdk.files import UploadFile
from packages.portal_sdk.progress import AbortSignal, ProgressCallback

logger = logging.getLogger(__name__)

PRESIGNED_URL_PATH = "/uploads/presigned-url"
CONFIRM_PATH = "/uploads/confirm"

CV_CONTENT_TYPES = frozenset(
    {
        "application/pdf",
        "application/msword",
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
        "application/vnd.oasis.opendocument.text",
    }
)
CV_MAX_BYTES = 5 * 1024 * 1024
CV_MAX_NAME_LENGTH = 100

PHOTO_CONTENT_TYPES = frozenset({"image/jpeg", "image/png", "image/gif", "image/webp"})
PHOTO_MAX_BYTES = 2 * 1024 * 1024


class UploadState(str, Enum):
    """Lifecycle of one presigned upload."""

    REQUESTING = "requesting"
    PRESIGNED = "presigned"
    TRANSFERRING = "transferring"
    CONFIRMING = "confirming"
    CONFIRMED = "confirmed"
    FAILED = "failed"


_ALLOWED_TRANSITIONS: dict[UploadState, set[UploadState]] = {
    UploadState.REQUESTING: {UploadState.PRESIGNED, UploadState.FAILED},
    UploadState.PRESIGNED: {UploadState.TRANSFERRING, UploadState.FAILED},
    UploadState.TRANSFERRING: {UploadState.CONFIRMING, UploadState.FAILED},
    UploadState.CONFIRMING: {UploadState.CONFIRMED, UploadState.FAILED},
    UploadState.CONFIRMED: set(),
    UploadState.FAILED: set(),
}


class InvalidUploadTransition(RuntimeError):
    """Raised when an upload is moved to a state its current state forbids."""

    def __init__(self, current: UploadState, target: UploadState) -> None:
        super().__init__(
            f"Invalid upload state transition from '{current.value}' to '{target.value}'."
        )
        self.current = current
        self.target = target


def _is_absolute_http_url(value: str) -> bool:
    try:
        url = httpx.URL(value)
    except httpx.InvalidURL:
        return False
    return url.scheme in {"http", "https"} and bool(url.host)


@dataclass(frozen=True)
class PresignedUploadDescriptor:
    """Storage destination handed out by the origin in phase 1."""

    upload_url: str
    file_key: str
    fields: dict[str, str] | None = None

    @classmethod
    def from_body(cls, body: Any) -> "PresignedUploadDescriptor":
        """Parse a phase-1 response body; raise ``ValueError`` when malformed."""
        if not isinstance(body, Mapping):
            raise ValueError("Presigned upload descriptor must be an object.")
        upload_url = body.get("uploadUrl")
        file_key = body.get("fileKey")
        if not isinstance(upload_url, str) or upload_url.strip() == "":
            raise ValueError("Presigned upload descriptor is missing uploadUrl.")
        if not _is_absolute_http_url(upload_url):
            raise ValueError(
                "Presigned upload descriptor uploadUrl must be an absolute http(s) URL."
            )
        if not isinstance(file_key, str) or file_key.strip() == "":
            raise ValueError("Presigned upload descriptor is missing fileKey.")
        raw_fields = body.get("fields")
        if raw_fields is None:
            return cls(upload_url=upload_url, file_key=file_key)
        if not isinstance(raw_fields, Mapping):
            raise ValueError("Presigned upload descriptor fields must be an object.")
        return cls(
            upload_url=upload_url,
            file_key=file_key,
            fields={str(key): str(value) for key, value in raw_fields.items()},
        )


@dataclass(frozen=True)
class UploadResult:
    """Stored file record returned by the origin after an upload."""

    file_url: str
    file_key: str
    filename: str
    mime_type: str
    size: int

    @classmethod
    def from_body(cls, body: Any) -> "UploadResult | None":
        """Return a parsed record, or ``None`` when ``body`` has another shape."""
        if not isinstance(body, Mapping):
            return None
        try:
            return cls(
                file_url=str(body["fileUrl"]),
                file_key=str(body["fileKey"]),
                filename=str(body["filename"]),
                mime_type=str(body["mimeType"]),
                size=int(body["size"]),
            )
        except (KeyError, TypeError, ValueError):
            return None


def validate_cv(file: UploadFile) -> Failure | None:
    """Return a validation failure when ``file`` is not an acceptable CV."""
    if file.content_type not in CV_CONTENT_TYPES:
        return validation_failure(
            "Invalid file type. Please upload a PDF or Word document.",
            code=codes.INVALID_FILE,
        )
    if file.size > CV_MAX_BYTES:
        return validation_failure(
            "File too large. Maximum size is 5MB.", code=codes.INVALID_FILE
        )
    if len(file.name) > CV_MAX_NAME_LENGTH:
        return validation_failure(
            "File name is too long. Maximum length is 100 characters.",
            code=codes.INVALID_FILE,
        )
    return None


def validate_photo(file: UploadFile) -> Failure | None:
    """Return a validation failure when ``file`` is not an acceptable photo."""
    if file.content_type not in PHOTO_CONTENT_TYPES:
        return validation_failure(
            "Invalid file type. Please upload a JPEG, PNG, GIF, or WebP image.",
            code=codes.INVALID_FILE,
        )
    if file.size > PHOTO_MAX_BYTES:
        return validation_failure(
            "File too large. Maximum size is 2MB.", code=codes.INVALID_FILE
        )
    return None


@dataclass
class PresignedUploadOrchestrator:
    """Drives one file through presign, storage transfer, and confirm.

    Each instance handles a single upload. Its abort signal is registered
    under ``request_id`` for the whole run, so ``ApiClient.cancel_requests``
    stops it in any phase before the storage transfer finishes.
    """

    client: ApiClient
    request_id: str = field(default_factory=lambda: uuid4().hex)
    state: UploadState = field(default=UploadState.REQUESTING, init=False)
    history: list[UploadState] = field(
        default_factory=lambda: [UploadState.REQUESTING], init=False
    )
    descriptor: PresignedUploadDescriptor | None = field(default=None, init=False)

    async def run(
        self,
        upload_type: str,
        file: UploadFile,
        *,
        on_progress: ProgressCallback | None = None,
        abort: AbortSignal | None = None,
    ) -> Envelope:
        """Run all three phases and return the final envelope.

        The confirm response is returned unchanged on success. The first
        failing phase moves the upload to ``FAILED`` and its failure is
        returned instead.
        """
        if self.state is not UploadState.REQUESTING:
            raise InvalidUploadTransition(self.state, UploadState.REQUESTING)
        signal = abort or AbortSignal()
        try:
            with self.client.track_abort(self.request_id, signal):
                return await self._run(upload_type, file, on_progress, signal)
        except Exception:
            if self.state not in {UploadState.CONFIRMED, UploadState.FAILED}:
                self._transition(UploadState.FAILED, upload_type)
            raise

    async def _run(
        self,
        upload_type: str,
        file: UploadFile,
        on_progress: ProgressCallback | None,
        signal: AbortSignal,
    ) -> Envelope:
        presigned = await self.client.post(
            PRESIGNED_URL_PATH,
            {
                "fileType": file.content_type,
                "fileName": file.name,
                "fileSize": file.size,
                "uploadType": upload_type,
            },
        )
        if not presigned.success:
            return self._fail(upload_type, presigned)
        try:
            self.descriptor = PresignedUploadDescriptor.from_body(presigned.data)
        except ValueError as exc:
            return self._fail(
                upload_type,
                failure(
                    unknown_error(
                        str(exc),
                        code=codes.INVALID_PRESIGNED_DESCRIPTOR,
                        payload=presigned.data,
                    )
                ),
            )
        self._transition(UploadState.PRESIGNED, upload_type)

        if signal.aborted:
            return self._fail(upload_type, failure(upload_aborted_error(signal.reason)))
        self._transition(UploadState.TRANSFERRING, upload_type)
        transferred = await self.client.transfer_to_storage(
            self.descriptor.upload_url,
            self.descriptor.fields,
            file,
            on_progress=on_progress,
            abort=signal,
            request_id=self.request_id,
        )
        if not transferred.success:
            return self._fail(upload_type, transferred)
        self._transition(UploadState.CONFIRMING, upload_type)

        confirmed = await self.client.post(
            CONFIRM_PATH,
            {
                "fileKey": self.descriptor.file_key,
                "fileName": file.name,
                "fileSize": file.size,
                "mimeType": file.content_type,
                "uploadType": upload_type,
            },
        )
        if not confirmed.success:
            return self._fail(upload_type, confirmed)
        self._transition(UploadState.CONFIRMED, upload_type)
        return confirmed

    def _fail(self, upload_type: str, result: Failure) -> Failure:
        self._transition(UploadState.FAILED, upload_type, error=result.error.message)
        return result

    def _transition(
        self,
        target: UploadState,
        upload_type: str,
        *,
        error: str | None = None,
    ) -> None:
        if target not in _ALLOWED_TRANSITIONS[self.state]:
            raise InvalidUploadTransition(self.state, target)
        previous = self.state
        self.state = target
        self.history.append(target)
        values: dict[str, object] = {
            log_fields.EVENT: log_fields.UPLOAD_TRANSITION_EVENT,
            log_fields.REQUEST_ID: self.request_id,
            log_fields.UPLOAD_TYPE: upload_type,
            log_fields.UPLOAD_STATE: target.value,
        }
        if self.descriptor is not None:
            values[log_fields.FILE_KEY] = self.descriptor.file_key
        with log_context(values):
            if error is None:
                logger.info("Upload %s -> %s", previous.value, target.value)
            else:
                logger.info("Upload %s -> %s: %s", previous.value, target.value, error)
