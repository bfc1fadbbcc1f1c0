from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, Optional
from uuid import UUID

import asyncpg
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from svc_customizer.config import settings
from svc_customizer.domain.enums import DECORATION_METHOD, CustomizationStatus
from svc_customizer.domain.models import NormalizedCustomization, PreviewArtifact, ProductRef
from svc_customizer.errors import NotFoundError
from svc_customizer.repos.base_repo import BaseRepo
from svc_customizer.repos.carts_repo import CartsRepo

log = logging.getLogger(__name__)


@dataclass
class CommitResult:
    cart_item_id: UUID
    design_id: Optional[UUID]
    customization_id: Optional[UUID]
    total: Optional[Decimal]
    replayed: bool = False


class CustomizationsRepo(BaseRepo):
    def __init__(self, carts: Optional[CartsRepo] = None) -> None:
        self.carts = carts or CartsRepo()

    @retry(
        retry=retry_if_exception_type(asyncpg.exceptions.SerializationError),
        stop=stop_after_attempt(settings.COMMIT_MAX_ATTEMPTS),
        wait=wait_exponential(multiplier=0.05, max=1),
        reraise=True,
    )
    async def attach_to_cart(
        self,
        *,
        cart_id: UUID,
        store_id: UUID,
        owner_user_id: UUID,
        product: ProductRef,
        variant_id: UUID,
        profile_id: UUID,
        customization: NormalizedCustomization,
        preview: PreviewArtifact,
        pricing_snapshot: Dict[str, Any],
        quantity: int,
        idempotency_key: Optional[str] = None,
    ) -> CommitResult:
        """
        Design + Customization + CartItem + cart total, all or nothing.

        The cart row is locked for the whole transaction so concurrent adds to
        the same cart queue up, and the total is rebuilt from the item rows read
        inside it.
        """
        payload = customization.canonical()
        locations = customization.location_keys()

        pool = await self.pool()
        async with pool.acquire() as conn:
            async with conn.transaction(isolation="serializable"):
                locked = await conn.fetchval(
                    "SELECT id FROM carts WHERE id = $1 AND status = 'ACTIVE' FOR UPDATE",
                    cart_id,
                )
                if not locked:
                    raise NotFoundError("Cart not found", code="cart_not_found")

                if idempotency_key:
                    existing = await conn.fetchrow(
                        """
                        SELECT id, design_id, customization_id
                        FROM cart_items
                        WHERE cart_id = $1 AND idempotency_key = $2
                        """,
                        cart_id,
                        idempotency_key,
                    )
                    if existing:
                        log.info("customizer.commit.replayed", extra={"cart_id": str(cart_id)})
                        return CommitResult(
                            cart_item_id=existing["id"],
                            design_id=existing["design_id"],
                            customization_id=existing["customization_id"],
                            total=None,
                            replayed=True,
                        )

                design_id = await conn.fetchval(
                    """
                    INSERT INTO designs(user_id, product_id, name, content, status, metadata, created_at, updated_at)
                    VALUES ($1, $2, $3, $4::jsonb, 'EXPORTED', $5::jsonb, now(), now())
                    RETURNING id
                    """,
                    owner_user_id,
                    product.id,
                    f"Customization {product.name}".strip(),
                    payload,
                    {"source": "public-customizer", "profile_id": str(profile_id)},
                )

                customization_id = await conn.fetchval(
                    """
                    INSERT INTO customizations(
                      store_id, product_id, variant_id, profile_id, design_id, preview_file_id,
                      payload, pricing_snapshot, status, created_at, updated_at
                    )
                    VALUES ($1, $2, $3, $4, $5, $6, $7::jsonb, $8::jsonb, $9, now(), now())
                    RETURNING id
                    """,
                    store_id,
                    product.id,
                    variant_id,
                    profile_id,
                    design_id,
                    preview.id,
                    payload,
                    pricing_snapshot,
                    CustomizationStatus.IN_CART.value,
                )

                cart_item_id = await conn.fetchval(
                    """
                    INSERT INTO cart_items(
                      store_id, cart_id, product_id, variant_id, quantity,
                      decoration_method, decoration_locations, design_id, customization_id,
                      preview_file_id, mockup_url, pricing_snapshot, customization_json,
                      idempotency_key, created_at, updated_at
                    )
                    VALUES ($1, $2, $3, $4, $5, $6, $7::jsonb, $8, $9, $10, $11, $12::jsonb, $13::jsonb, $14, now(), now())
                    RETURNING id
                    """,
                    store_id,
                    cart_id,
                    product.id,
                    variant_id,
                    quantity,
                    DECORATION_METHOD,
                    locations,
                    design_id,
                    customization_id,
                    preview.id,
                    preview.url,
                    pricing_snapshot,
                    payload,
                    idempotency_key,
                )

                total = await self.carts.recompute_total(conn, cart_id)

        return CommitResult(
            cart_item_id=cart_item_id,
            design_id=design_id,
            customization_id=customization_id,
            total=total,
        )
