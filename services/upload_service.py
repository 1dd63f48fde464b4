"""
Document and consent-recording upload.

Files are stored under `vendas/<user_id>/<epoch_ms>_<field>.<ext>` in the
configured storage bucket. The returned public URL is meant to be written
into the matching CustomerData `*_url` field through a draft edit.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable

from domain.time import to_epoch_ms, utc_now
from repositories.remote_repository import RemoteStore
from services.remote_calls import call_remote

logger = logging.getLogger(__name__)

UPLOAD_FIELDS = frozenset(
    {
        "audio_url",
        "foto_frente_url",
        "foto_verso_url",
        "foto_ctps_url",
        "foto_comprovante_residencia_url",
    }
)


def build_upload_path(user_id: str, field: str, filename: str, now: datetime) -> str:
    extension = filename.rsplit(".", 1)[-1].lower() if "." in filename else "bin"
    return f"vendas/{user_id}/{to_epoch_ms(now)}_{field}.{extension}"


class DocumentUploader:
    def __init__(
        self,
        remote: RemoteStore,
        bucket: str,
        *,
        timeout: float = 5.0,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._remote = remote
        self._bucket = bucket
        self._timeout = timeout
        self._clock = clock

    async def upload(
        self,
        user_id: str,
        field: str,
        filename: str,
        data: bytes,
        content_type: str = "application/octet-stream",
    ) -> str:
        """
        Upload one file and return its public URL.

        Raises:
            ValueError: `field` is not a document/recording field or data is empty
            RemoteUnavailable: the upload timed out or failed
        """

        if field not in UPLOAD_FIELDS:
            raise ValueError(f"Unsupported upload field: {field}")
        if not data:
            raise ValueError("Refusing to upload an empty file")

        path = build_upload_path(user_id, field, filename, self._clock())
        url = await call_remote(
            self._remote.upload(self._bucket, path, data, content_type),
            timeout=self._timeout,
            operation=f"upload {field}",
        )
        logger.info("Document uploaded", extra={"user_id": user_id, "field": field, "path": path})
        return url


__all__ = ["UPLOAD_FIELDS", "DocumentUploader", "build_upload_path"]
