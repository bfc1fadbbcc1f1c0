from __future__ import annotations

import asyncio
import re
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from azure.storage.blob import (
    BlobSasPermissions,
    BlobServiceClient,
    ContentSettings,
    generate_blob_sas,
)

from svc_customizer.config import settings

_UNSAFE_NAME = re.compile(r"[^A-Za-z0-9._-]+")


def _ext_for_content_type(content_type: str) -> str:
    ct = (content_type or "").lower().split(";")[0].strip()
    if ct == "image/png":
        return "png"
    if ct == "image/webp":
        return "webp"
    if ct in ("image/jpg", "image/jpeg"):
        return "jpg"
    # default safe
    return "bin"


def safe_file_name(suggested_name: str, content_type: str) -> str:
    name = _UNSAFE_NAME.sub("_", (suggested_name or "").strip()).strip("._")[:80]
    if not name:
        name = "file"
    if "." not in name:
        name = f"{name}.{_ext_for_content_type(content_type)}"
    return name


@dataclass
class StoredObject:
    url: str
    file_name: str
    size_bytes: int


class AzureStorageService:
    """Azure Blob Storage for customizer previews and shopper uploads"""

    def __init__(self, connection_string: Optional[str] = None, container: Optional[str] = None):
        self.connection_string = connection_string or settings.AZURE_STORAGE_CONNECTION_STRING
        self.container = container or settings.CUSTOMIZER_CONTAINER
        self._blob_service: Optional[BlobServiceClient] = None

    @property
    def blob_service(self) -> BlobServiceClient:
        if self._blob_service is None:
            if not self.connection_string:
                raise RuntimeError("AZURE_STORAGE_CONNECTION_STRING is not set")
            self._blob_service = BlobServiceClient.from_connection_string(self.connection_string)
        return self._blob_service

    async def store(
        self,
        data: bytes,
        suggested_name: str,
        path_prefix: str,
        *,
        content_type: str = "application/octet-stream",
    ) -> StoredObject:
        """
        Upload bytes under ``<path_prefix>/<random>_<name>``.

        Returns:
            StoredObject(url with read SAS, stored file name, size)
        """
        file_name = f"{uuid.uuid4().hex[:12]}_{safe_file_name(suggested_name, content_type)}"
        blob_name = f"{path_prefix.strip('/')}/{file_name}"

        def _sync_upload() -> None:
            blob_client = self.blob_service.get_blob_client(container=self.container, blob=blob_name)
            blob_client.upload_blob(
                data,
                overwrite=False,
                content_settings=ContentSettings(content_type=content_type),
            )

        # the blob SDK is synchronous; keep the event loop free
        await asyncio.to_thread(_sync_upload)

        return StoredObject(
            url=self._generate_sas_url(blob_name, hours=settings.CUSTOMIZER_SAS_HOURS),
            file_name=file_name,
            size_bytes=len(data),
        )

    def _generate_sas_url(self, blob_name: str, hours: int = 24) -> str:
        """Generate SAS URL for blob access"""
        conn_parts = dict(
            item.split("=", 1) for item in self.connection_string.split(";") if "=" in item
        )
        account_name = conn_parts.get("AccountName")
        account_key = conn_parts.get("AccountKey")

        if not account_name or not account_key:
            raise RuntimeError("Could not parse storage account credentials")

        sas_token = generate_blob_sas(
            account_name=account_name,
            container_name=self.container,
            blob_name=blob_name,
            account_key=account_key,
            permission=BlobSasPermissions(read=True),
            expiry=datetime.now(timezone.utc) + timedelta(hours=hours),
        )

        return f"https://{account_name}.blob.core.windows.net/{self.container}/{blob_name}?{sas_token}"
