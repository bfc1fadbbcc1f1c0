from __future__ import annotations

import logging
from typing import Optional
from uuid import UUID

from svc_customizer.config import settings
from svc_customizer.errors import ForbiddenError
from svc_customizer.repos.feature_flags_repo import FeatureFlagsRepo

log = logging.getLogger(__name__)


class EntitlementGate:
    def __init__(self, flags: Optional[FeatureFlagsRepo] = None) -> None:
        self.flags = flags or FeatureFlagsRepo()

    async def is_enabled(self, store_id: UUID, feature_key: str) -> bool:
        plan = await self.flags.get_store_plan(store_id=store_id)
        enabled, _cfg = await self.flags.get_flag(
            flag_key=feature_key,
            store_id=store_id,
            plan=plan,
            default_enabled=settings.CUSTOMIZER_FEATURE_DEFAULT,
        )
        return enabled

    async def require(self, store_id: UUID, feature_key: Optional[str] = None) -> None:
        key = feature_key or settings.CUSTOMIZER_FEATURE_KEY
        if not await self.is_enabled(store_id, key):
            log.info("feature_disabled", extra={"store_id": str(store_id), "flag_key": key})
            raise ForbiddenError("Customizer feature is not enabled for this plan")
