from __future__ import annotations

from typing import Any, Dict, List, Optional
from uuid import UUID

from svc_customizer.domain.models import (
    ArtworkAssetOut,
    ArtworkCategoryOut,
    CustomizationProfile,
    PersonalizationFieldSchema,
)
from svc_customizer.repos.base_repo import BaseRepo


class ProfilesRepo(BaseRepo):
    async def get_profile(self, *, store_id: UUID, product_id: UUID) -> Optional[CustomizationProfile]:
        """Profile for the product regardless of its enabled flag (one per product per store)."""
        pool = await self.pool()
        row = await pool.fetchrow(
            """
            SELECT id, store_id, product_id, enabled, locations, rules
            FROM customization_profiles
            WHERE store_id = $1 AND product_id = $2
            """,
            store_id,
            product_id,
        )
        if not row:
            return None
        return CustomizationProfile(
            id=row["id"],
            store_id=row["store_id"],
            product_id=row["product_id"],
            enabled=bool(row["enabled"]),
            locations=list(row["locations"] or []),
            rules=row["rules"],
        )

    async def list_active_field_schemas(
        self, *, store_id: UUID, profile_id: UUID
    ) -> List[PersonalizationFieldSchema]:
        pool = await self.pool()
        rows = await pool.fetch(
            """
            SELECT id, key, label, type, required, min_length, max_length,
                   pricing, sort_order, active
            FROM personalization_schemas
            WHERE store_id = $1 AND profile_id = $2 AND active = true
            ORDER BY sort_order ASC, created_at ASC
            """,
            store_id,
            profile_id,
        )
        return [
            PersonalizationFieldSchema(**{**dict(r), "label": r["label"] or "", "type": r["type"] or "TEXT"})
            for r in rows
        ]

    async def list_public_artwork(self, *, store_id: UUID, profile_id: UUID) -> List[ArtworkCategoryOut]:
        pool = await self.pool()
        rows = await pool.fetch(
            """
            SELECT c.id AS category_id, c.name AS category_name, c.slug, c.sort_order,
                   a.id AS asset_id, a.name AS asset_name, a.tags,
                   f.id AS file_id, f.url, f.mime_type
            FROM artwork_categories c
            LEFT JOIN artwork_assets a
              ON a.category_id = c.id AND a.store_id = c.store_id
             AND a.status = 'ACTIVE' AND a.is_public = true
            LEFT JOIN file_assets f ON f.id = a.file_id
            WHERE c.store_id = $1 AND c.profile_id = $2 AND c.active = true
            ORDER BY c.sort_order ASC, c.created_at ASC, a.created_at DESC
            """,
            store_id,
            profile_id,
        )

        categories: Dict[Any, ArtworkCategoryOut] = {}
        for r in rows:
            cat = categories.get(r["category_id"])
            if cat is None:
                cat = ArtworkCategoryOut(
                    id=r["category_id"],
                    name=r["category_name"],
                    slug=r["slug"],
                    sort_order=r["sort_order"] or 0,
                )
                categories[r["category_id"]] = cat
            if r["asset_id"] is not None and r["file_id"] is not None:
                cat.assets.append(
                    ArtworkAssetOut(
                        id=r["asset_id"],
                        name=r["asset_name"],
                        tags=list(r["tags"] or []),
                        file_id=r["file_id"],
                        url=r["url"],
                        mime_type=r["mime_type"],
                    )
                )
        return list(categories.values())
