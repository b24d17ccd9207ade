# assignment_scraper/mirror.py
"""
Google Drive mirror for downloaded attachments.

Each file is created (optionally under ``GDRIVE_FOLDER_ID``), shared with
"anyone with the link" as reader, then re-read so the caller gets the name and
mimeType Drive actually stored. Any failure surfaces as MirrorUnavailable and
the caller keeps the original link instead.
"""
from __future__ import annotations

import asyncio
import io
import json
import logging
from dataclasses import dataclass
from typing import Any, Optional

from google.auth.exceptions import GoogleAuthError
from google.oauth2.service_account import Credentials
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError
from googleapiclient.http import MediaIoBaseUpload
from tenacity import (before_sleep_log, retry, retry_if_exception,
                      stop_after_attempt, wait_exponential)

from .config import Settings
from .errors import MirrorUnavailable

logger = logging.getLogger(__name__)

SCOPES = ["https://www.googleapis.com/auth/drive"]
META_FIELDS = "id,name,mimeType,webViewLink,webContentLink"
RETRY_STATUSES = {429, 500, 502, 503, 504}


@dataclass(frozen=True)
class MirroredFile:
    id: str
    name: str
    mime_type: str
    href: str


def _is_retryable(exc: BaseException) -> bool:
    return isinstance(exc, HttpError) and exc.resp.status in RETRY_STATUSES


@retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=1, max=8),
    retry=retry_if_exception(_is_retryable),
    before_sleep=before_sleep_log(logger, logging.WARNING),
    reraise=True,
)
def _execute(request) -> Any:
    """Run one Drive request, backing off on rate limits and 5xx."""
    return request.execute()


class DriveMirror:
    def __init__(self, service, folder_id: Optional[str] = None) -> None:
        self.service = service
        self.folder_id = folder_id

    @classmethod
    def from_service_account_json(cls, raw: str, folder_id: Optional[str] = None) -> "DriveMirror":
        info = json.loads(raw)
        creds = Credentials.from_service_account_info(info, scopes=SCOPES)
        service = build("drive", "v3", credentials=creds, cache_discovery=False)
        return cls(service, folder_id)

    def _upload_sync(self, name: str, data: bytes, mime_type: str) -> MirroredFile:
        body = {"name": name, "mimeType": mime_type}
        if self.folder_id:
            body["parents"] = [self.folder_id]
        media = MediaIoBaseUpload(io.BytesIO(data), mimetype=mime_type, resumable=False)

        files = self.service.files()
        created = _execute(files.create(body=body, media_body=media, fields="id",
                                        supportsAllDrives=True))
        file_id = created["id"]
        _execute(self.service.permissions().create(
            fileId=file_id, body={"role": "reader", "type": "anyone"}, supportsAllDrives=True,
        ))
        meta = _execute(files.get(fileId=file_id, fields=META_FIELDS, supportsAllDrives=True))
        return MirroredFile(
            id=file_id,
            name=meta.get("name") or name,
            mime_type=meta.get("mimeType") or mime_type,
            href=meta.get("webViewLink") or meta.get("webContentLink") or "",
        )

    async def upload(self, name: str, data: bytes, mime_type: str = "application/octet-stream") -> MirroredFile:
        try:
            uploaded = await asyncio.to_thread(self._upload_sync, name, data, mime_type)
        except Exception as e:  # transport, auth and API errors alike
            raise MirrorUnavailable(f"drive upload of {name!r} failed: {e}") from e
        if not uploaded.href:
            raise MirrorUnavailable(f"drive returned no link for {name!r}")
        logger.info("mirrored %s → %s", uploaded.name, uploaded.href)
        return uploaded


def mirror_from_settings(settings: Settings) -> Optional[DriveMirror]:
    """Build the process-wide mirror, or None when Drive is not configured."""
    if not settings.drive_credentials_json:
        logger.info("GOOGLE_SERVICE_ACCOUNT_JSON not set; attachments are kept as links")
        return None
    try:
        return DriveMirror.from_service_account_json(settings.drive_credentials_json,
                                                     settings.drive_folder_id)
    except (ValueError, KeyError, GoogleAuthError) as e:
        logger.error("drive mirror disabled, bad service account credentials: %s", e)
        return None
