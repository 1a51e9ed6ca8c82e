"""CV and profile photo uploads, direct or server-mediated."""

from __future__ import annotations

import logging
from typing import Callable

from packages.portal_shared.envelope import Envelope, Failure, Success, validation_failure
from packages.portal_shared.errors import codes
from packages.portal_sdk.client import ApiClient
from packages.portal_sdk.files import UploadFile
from packages.portal_sdk.progress import AbortSignal, ProgressCallback
from packages.portal_sdk.uploads import (
    PresignedUploadOrchestrator,
    UploadResult,
    validate_cv,
    validate_photo,
)
from packages.portal_sdk.services.base import guarded

logger = logging.getLogger(__name__)

CV_UPLOAD_PATH = "/user/upload-cv"
PHOTO_UPLOAD_PATH = "/user/upload-photo"


class UploadService:
    """Validates user files and routes them to the configured upload flow.

    With ``uploads.direct_upload_enabled`` the file goes straight to storage
    through ``PresignedUploadOrchestrator``; otherwise it is posted to the
    origin as multipart form data.
    """

    def __init__(self, client: ApiClient, *, direct_upload: bool | None = None) -> None:
        self._client = client
        self._direct_upload = (
            client.settings.uploads.direct_upload_enabled
            if direct_upload is None
            else direct_upload
        )

    async def upload_cv(
        self,
        file: UploadFile | None,
        *,
        on_progress: ProgressCallback | None = None,
        abort: AbortSignal | None = None,
    ) -> Envelope:
        if file is None:
            return validation_failure("CV file is required", code=codes.MISSING_REQUIRED_FIELD)
        return await self._upload(
            "cv",
            file,
            validate=validate_cv,
            path=CV_UPLOAD_PATH,
            on_progress=on_progress,
            abort=abort,
            fallback="Failed to upload CV",
        )

    async def upload_photo(
        self,
        file: UploadFile | None,
        *,
        on_progress: ProgressCallback | None = None,
        abort: AbortSignal | None = None,
    ) -> Envelope:
        if file is None:
            return validation_failure(
                "Photo file is required", code=codes.MISSING_REQUIRED_FIELD
            )
        return await self._upload(
            "photo",
            file,
            validate=validate_photo,
            path=PHOTO_UPLOAD_PATH,
            on_progress=on_progress,
            abort=abort,
            fallback="Failed to upload photo",
        )

    async def _upload(
        self,
        upload_type: str,
        file: UploadFile,
        *,
        validate: Callable[[UploadFile], Failure | None],
        path: str,
        on_progress: ProgressCallback | None,
        abort: AbortSignal | None,
        fallback: str,
    ) -> Envelope:
        rejected = validate(file)
        if rejected is not None:
            return rejected

        if self._direct_upload:
            orchestrator = PresignedUploadOrchestrator(self._client)
            operation = orchestrator.run(
                upload_type, file, on_progress=on_progress, abort=abort
            )
        else:
            operation = self._client.upload(
                path,
                {upload_type: file},
                on_progress=on_progress,
                abort=abort,
            )
        result = await guarded(operation, logger=logger, fallback=fallback)
        return _with_upload_result(result)


def _with_upload_result(result: Envelope) -> Envelope:
    """Replace a recognizable upload body with an ``UploadResult``."""
    if not isinstance(result, Success):
        return result
    parsed = UploadResult.from_body(result.data)
    if parsed is None:
        return result
    return result.model_copy(update={"data": parsed})
