from __future__ import annotations

from typing import Any, Dict, Optional, Tuple
from uuid import UUID

from svc_customizer.repos.base_repo import BaseRepo


class FeatureFlagsRepo(BaseRepo):
    async def get_store_plan(self, *, store_id: UUID) -> Optional[str]:
        pool = await self.pool()
        return await pool.fetchval("SELECT plan_code FROM stores WHERE id = $1", store_id)

    async def get_flag(
        self,
        *,
        flag_key: str,
        store_id: Optional[UUID] = None,
        plan: Optional[str] = None,
        default_enabled: bool = False,
    ) -> Tuple[bool, Dict[str, Any]]:
        """
        Resolve feature flags with precedence:
          1) store scope (scope='store', scope_key=<store_id>)
          2) plan scope  (scope='plan',  scope_key=<plan_code>)
          3) global      (scope='global', scope_key is NULL)
          4) default

        Returns: (enabled, config_json)
        """
        params: list[Any] = [flag_key]
        clauses = []

        if store_id:
            clauses.append(f"(scope='store' AND scope_key=${len(params) + 1})")
            params.append(str(store_id))

        if plan:
            clauses.append(f"(scope='plan' AND scope_key=${len(params) + 1})")
            params.append(str(plan))

        clauses.append("(scope='global' AND scope_key IS NULL)")
        where = " OR ".join(clauses)

        pool = await self.pool()
        row = await pool.fetchrow(
            f"""
            SELECT enabled, config_json
            FROM feature_flags
            WHERE flag_key=$1 AND ({where})
            ORDER BY
              CASE
                WHEN scope='store'  THEN 3
                WHEN scope='plan'   THEN 2
                WHEN scope='global' THEN 1
                ELSE 0
              END DESC
            LIMIT 1
            """,
            *params,
        )

        if not row:
            return default_enabled, {}

        cfg = row["config_json"] or {}
        return bool(row["enabled"]), dict(cfg)
