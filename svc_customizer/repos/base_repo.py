from __future__ import annotations

import asyncpg

from svc_customizer.db import get_pool


class BaseRepo:
    async def pool(self) -> asyncpg.Pool:
        return await get_pool()
