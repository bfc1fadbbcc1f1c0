from __future__ import annotations

from typing import Optional
from uuid import UUID

from svc_customizer.domain.models import ProductRef
from svc_customizer.repos.base_repo import BaseRepo


class CatalogRepo(BaseRepo):
    async def get_product(self, *, store_id: UUID, product_id: UUID) -> Optional[ProductRef]:
        pool = await self.pool()
        row = await pool.fetchrow(
            "SELECT id, store_id, name FROM products WHERE id = $1 AND store_id = $2",
            product_id,
            store_id,
        )
        return ProductRef(id=row["id"], store_id=row["store_id"], name=row["name"] or "") if row else None

    async def variant_exists(self, *, store_id: UUID, product_id: UUID, variant_id: UUID) -> bool:
        pool = await self.pool()
        found = await pool.fetchval(
            """
            SELECT 1 FROM product_variants
            WHERE id = $1 AND product_id = $2 AND store_id = $3
            """,
            variant_id,
            product_id,
            store_id,
        )
        return bool(found)
