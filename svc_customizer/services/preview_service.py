from __future__ import annotations

import logging
from typing import Any, Dict, Optional
from uuid import UUID

import asyncpg
from azure.core.exceptions import AzureError

from svc_customizer.domain.enums import FileAssetKind
from svc_customizer.domain.models import NormalizedCustomization, PreviewArtifact, ProductRef
from svc_customizer.errors import PreviewRenderError
from svc_customizer.repos.file_assets_repo import FileAssetsRepo
from svc_customizer.services.azure_storage_service import AzureStorageService
from svc_customizer.services.hashing import content_hash
from svc_customizer.services.render_client import RenderClient

log = logging.getLogger(__name__)

PREVIEW_PREFIX = "customizer/previews"


def _parse_uuid(value: Optional[str]) -> Optional[UUID]:
    if not value:
        return None
    try:
        return UUID(str(value).strip())
    except ValueError:
        return None


def _artifact(row: Dict[str, Any]) -> PreviewArtifact:
    return PreviewArtifact(
        id=row["id"],
        url=row["url"],
        mime_type=row.get("mime_type") or "image/png",
        size_bytes=int(row.get("size_bytes") or 0),
        content_sha256=row.get("content_sha256"),
    )


def preview_digest(customization: NormalizedCustomization, product_id: UUID, variant_id: UUID) -> str:
    """Hash of everything drawn into a preview: the design plus the product and variant it sits on."""
    return content_hash(
        {
            "customization": customization.canonical(),
            "productId": str(product_id),
            "variantId": str(variant_id),
        }
    )


class PreviewService:
    def __init__(
        self,
        renderer: Optional[RenderClient] = None,
        storage: Optional[AzureStorageService] = None,
        file_assets: Optional[FileAssetsRepo] = None,
    ) -> None:
        self.renderer = renderer or RenderClient()
        self.storage = storage or AzureStorageService()
        self.file_assets = file_assets or FileAssetsRepo()

    async def render_preview(
        self,
        *,
        store_id: UUID,
        product: ProductRef,
        variant_id: UUID,
        customization: NormalizedCustomization,
    ) -> PreviewArtifact:
        """Always renders; the stored asset is bound to the content hash of design, product and variant."""
        digest = preview_digest(customization, product.id, variant_id)

        image = await self.renderer.render(
            customization.canonical(),
            {"productId": str(product.id), "productName": product.name, "variantId": str(variant_id)},
        )

        try:
            stored = await self.storage.store(
                image.data,
                f"preview_{digest[:16]}",
                PREVIEW_PREFIX,
                content_type=image.content_type,
            )
        except (AzureError, RuntimeError) as e:
            log.warning("preview_store_failed", extra={"store_id": str(store_id), "error": str(e)[:500]})
            raise PreviewRenderError("Preview could not be stored") from e

        try:
            file_id = await self.file_assets.create(
                store_id=store_id,
                kind=FileAssetKind.CUSTOMIZER_PREVIEW.value,
                file_name=stored.file_name,
                mime_type=image.content_type,
                url=stored.url,
                size_bytes=stored.size_bytes,
                content_sha256=digest,
            )
        except (asyncpg.PostgresError, asyncpg.InterfaceError, OSError) as e:
            # the blob is already written; nothing references it now
            log.warning(
                "preview_asset_record_failed",
                extra={"store_id": str(store_id), "orphaned_blob": stored.file_name, "error": type(e).__name__},
            )
            raise PreviewRenderError("Preview could not be stored") from e

        return PreviewArtifact(
            id=file_id,
            url=stored.url,
            mime_type=image.content_type,
            size_bytes=stored.size_bytes,
            content_sha256=digest,
        )

    async def find_reusable(
        self,
        *,
        store_id: UUID,
        preview_file_id: Optional[str],
        product: ProductRef,
        variant_id: UUID,
        customization: NormalizedCustomization,
    ) -> Optional[PreviewArtifact]:
        file_id = _parse_uuid(preview_file_id)
        if file_id is None:
            return None

        row = await self.file_assets.get_for_store(file_id=file_id, store_id=store_id)
        if not row or row.get("kind") != FileAssetKind.CUSTOMIZER_PREVIEW.value:
            return None

        # rendered for a different design, product or variant
        if row.get("content_sha256") != preview_digest(customization, product.id, variant_id):
            log.info("preview_stale", extra={"store_id": str(store_id), "preview_file_id": str(file_id)})
            return None
        return _artifact(row)

    async def resolve_or_render_preview(
        self,
        *,
        store_id: UUID,
        preview_file_id: Optional[str],
        product: ProductRef,
        variant_id: UUID,
        customization: NormalizedCustomization,
    ) -> PreviewArtifact:
        reused = await self.find_reusable(
            store_id=store_id,
            preview_file_id=preview_file_id,
            product=product,
            variant_id=variant_id,
            customization=customization,
        )
        if reused is not None:
            return reused
        return await self.render_preview(
            store_id=store_id, product=product, variant_id=variant_id, customization=customization
        )
