from __future__ import annotations

import logging
from typing import Optional
from uuid import UUID

import asyncpg
from azure.core.exceptions import AzureError

from svc_customizer.config import settings
from svc_customizer.domain.enums import FileAssetKind
from svc_customizer.domain.models import UploadOut
from svc_customizer.errors import PreviewRenderError, ValidationError
from svc_customizer.repos.file_assets_repo import FileAssetsRepo
from svc_customizer.services.azure_storage_service import AzureStorageService
from svc_customizer.services.entitlements import EntitlementGate

log = logging.getLogger(__name__)

UPLOAD_PREFIX = "customizer/uploads"
ALLOWED_IMAGE_MIME = ("image/png", "image/jpeg", "image/webp")


class UploadService:
    """Shopper image uploads referenced later by UPLOAD layers."""

    def __init__(
        self,
        storage: Optional[AzureStorageService] = None,
        file_assets: Optional[FileAssetsRepo] = None,
        gate: Optional[EntitlementGate] = None,
    ) -> None:
        self.storage = storage or AzureStorageService()
        self.file_assets = file_assets or FileAssetsRepo()
        self.gate = gate or EntitlementGate()

    async def create_upload(
        self,
        *,
        store_id: UUID,
        data: bytes,
        file_name: Optional[str],
        content_type: Optional[str],
    ) -> UploadOut:
        await self.gate.require(store_id)

        mime = (content_type or "").split(";")[0].strip().lower()
        if mime not in ALLOWED_IMAGE_MIME:
            raise ValidationError("Only PNG/JPEG/WEBP uploads are allowed", code="unsupported_media_type")
        if not data:
            raise ValidationError("Uploaded file is empty", code="empty_file")
        if len(data) > settings.UPLOAD_MAX_BYTES:
            raise ValidationError("Uploaded file is too large", code="file_too_large")

        try:
            stored = await self.storage.store(data, file_name or "upload", UPLOAD_PREFIX, content_type=mime)
        except (AzureError, RuntimeError) as e:
            log.warning("upload_store_failed", extra={"store_id": str(store_id), "error": str(e)[:500]})
            raise PreviewRenderError("Upload could not be stored", code="upload_failed") from e

        try:
            file_id = await self.file_assets.create(
                store_id=store_id,
                kind=FileAssetKind.CUSTOMIZER_UPLOAD.value,
                file_name=stored.file_name,
                mime_type=mime,
                url=stored.url,
                size_bytes=stored.size_bytes,
            )
        except (asyncpg.PostgresError, asyncpg.InterfaceError, OSError) as e:
            log.warning(
                "upload_asset_record_failed",
                extra={"store_id": str(store_id), "orphaned_blob": stored.file_name, "error": type(e).__name__},
            )
            raise PreviewRenderError("Upload could not be stored", code="upload_failed") from e
        return UploadOut(store_id=store_id, file_id=file_id, url=stored.url, mime_type=mime, size_bytes=stored.size_bytes)
