from __future__ import annotations

from typing import Optional
from uuid import UUID

from svc_customizer.domain.models import CustomizationProfile
from svc_customizer.errors import NotFoundError
from svc_customizer.repos.profiles_repo import ProfilesRepo


class SchemaResolver:
    def __init__(self, profiles: Optional[ProfilesRepo] = None) -> None:
        self.profiles = profiles or ProfilesRepo()

    async def resolve(self, *, store_id: UUID, product_id: UUID) -> CustomizationProfile:
        """Enabled profile with its active field schemas in sort order."""
        profile = await self.profiles.get_profile(store_id=store_id, product_id=product_id)
        if profile is None:
            raise NotFoundError("Product is not customizable", code="customization_not_configured")
        if not profile.enabled:
            # profile exists but the merchant has not switched it on yet
            raise NotFoundError("Product is not customizable", code="customization_disabled")

        schemas = await self.profiles.list_active_field_schemas(store_id=store_id, profile_id=profile.id)
        ordered = sorted((s for s in schemas if s.active), key=lambda s: s.sort_order)
        return profile.model_copy(update={"personalization_schemas": ordered})
