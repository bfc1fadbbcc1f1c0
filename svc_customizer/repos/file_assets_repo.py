from __future__ import annotations

from typing import Any, Dict, Optional
from uuid import UUID

from svc_customizer.repos.base_repo import BaseRepo

_TABLE = "file_assets"


class FileAssetsRepo(BaseRepo):
    async def create(
        self,
        *,
        store_id: UUID,
        kind: str,
        file_name: str,
        mime_type: str,
        url: str,
        size_bytes: int,
        content_sha256: Optional[str] = None,
    ) -> UUID:
        pool = await self.pool()
        return await pool.fetchval(
            f"""
            INSERT INTO {_TABLE}(
              store_id, kind, file_name, mime_type, url, size_bytes, content_sha256, created_at
            )
            VALUES ($1, $2, $3, $4, $5, $6, $7, now())
            RETURNING id
            """,
            store_id,
            kind,
            file_name,
            mime_type,
            url,
            int(size_bytes),
            content_sha256,
        )

    async def get_for_store(self, *, file_id: UUID, store_id: UUID) -> Optional[Dict[str, Any]]:
        pool = await self.pool()
        row = await pool.fetchrow(
            f"""
            SELECT id, store_id, kind, file_name, mime_type, url, size_bytes, content_sha256
            FROM {_TABLE}
            WHERE id = $1 AND store_id = $2
            """,
            file_id,
            store_id,
        )
        return dict(row) if row else None
