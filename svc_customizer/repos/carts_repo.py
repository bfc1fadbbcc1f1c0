from __future__ import annotations

from decimal import Decimal
from typing import Optional
from uuid import UUID

import asyncpg

from svc_customizer.domain.models import CartItemOut, CartOut, CartRef
from svc_customizer.domain.money import cart_total
from svc_customizer.repos.base_repo import BaseRepo


class CartsRepo(BaseRepo):
    async def get_by_token(self, token: str) -> Optional[CartRef]:
        pool = await self.pool()
        row = await pool.fetchrow(
            """
            SELECT id, store_id, token
            FROM carts
            WHERE token = $1 AND status = 'ACTIVE'
            """,
            token,
        )
        if not row or row["store_id"] is None:
            return None
        return CartRef(id=row["id"], store_id=row["store_id"], token=row["token"])

    async def get_cart(self, cart_id: UUID) -> Optional[CartOut]:
        pool = await self.pool()
        cart = await pool.fetchrow(
            "SELECT id, store_id, token, status, total FROM carts WHERE id = $1",
            cart_id,
        )
        if not cart:
            return None

        rows = await pool.fetch(
            """
            SELECT id, product_id, variant_id, quantity, decoration_method, decoration_locations,
                   design_id, customization_id, preview_file_id, mockup_url, pricing_snapshot, created_at
            FROM cart_items
            WHERE cart_id = $1
            ORDER BY created_at ASC, id ASC
            """,
            cart_id,
        )
        items = [
            CartItemOut(
                **{
                    **dict(r),
                    "decoration_locations": list(r["decoration_locations"] or []),
                    "pricing_snapshot": dict(r["pricing_snapshot"] or {}),
                }
            )
            for r in rows
        ]
        return CartOut(
            id=cart["id"],
            store_id=cart["store_id"],
            token=cart["token"],
            status=cart["status"],
            total=float(cart["total"] or 0),
            items=items,
        )

    async def recompute_total(self, conn: asyncpg.Connection, cart_id: UUID) -> Decimal:
        """Rebuild the cart total from persisted line items on ``conn``.

        Call inside the transaction that changed the items so the read sees them.
        """
        rows = await conn.fetch("SELECT pricing_snapshot FROM cart_items WHERE cart_id = $1", cart_id)
        total = cart_total(r["pricing_snapshot"] for r in rows)
        await conn.execute(
            "UPDATE carts SET total = $2, updated_at = now() WHERE id = $1",
            cart_id,
            total,
        )
        return total
