from __future__ import annotations

from uuid import UUID

from svc_customizer.repos.base_repo import BaseRepo


class UsersRepo(BaseRepo):
    async def get_or_create(self, *, email: str, name: str, password_hash: str, role: str) -> UUID:
        pool = await self.pool()
        # no-op update so RETURNING also yields the existing row
        return await pool.fetchval(
            """
            INSERT INTO users(email, name, password_hash, role, created_at, updated_at)
            VALUES ($1, $2, $3, $4, now(), now())
            ON CONFLICT (email) DO UPDATE SET email = EXCLUDED.email
            RETURNING id
            """,
            email,
            name,
            password_hash,
            role,
        )
