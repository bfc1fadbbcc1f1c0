from __future__ import annotations

import logging
from typing import Any, Callable, Optional
from uuid import UUID

from svc_customizer.domain.enums import AttachState
from svc_customizer.domain.models import (
    CartOut,
    CustomizationProfile,
    CustomizerConfigOut,
    NormalizedCustomization,
    PreviewOut,
    ProductRef,
)
from svc_customizer.errors import NotFoundError
from svc_customizer.repos.carts_repo import CartsRepo
from svc_customizer.repos.catalog_repo import CatalogRepo
from svc_customizer.repos.customizations_repo import CustomizationsRepo
from svc_customizer.repos.profiles_repo import ProfilesRepo
from svc_customizer.services.entitlements import EntitlementGate
from svc_customizer.services.fee_calculator import FeeCalculator
from svc_customizer.services.normalizer import normalize_customization
from svc_customizer.services.preview_service import PreviewService
from svc_customizer.services.pricing_client import PricingClient
from svc_customizer.services.schema_resolver import SchemaResolver
from svc_customizer.services.system_actor import system_actor_id

log = logging.getLogger(__name__)


class _AttachRun:
    """Tracks and logs the state of one add-to-cart attempt."""

    def __init__(self, cart_token: str) -> None:
        self.state = AttachState.RESOLVING_CART
        self.cart_ref = cart_token[:6]

    def to(self, state: AttachState) -> None:
        log.info(
            "customizer.attach.state",
            extra={"cart": self.cart_ref, "from_state": self.state.value, "state": state.value},
        )
        self.state = state

    def fail(self, exc: BaseException) -> None:
        log.warning(
            "customizer.attach.state",
            extra={
                "cart": self.cart_ref,
                "from_state": self.state.value,
                "state": AttachState.FAILED.value,
                "reason": getattr(exc, "code", None) or type(exc).__name__,
            },
        )
        self.state = AttachState.FAILED


class CustomizerService:
    def __init__(
        self,
        *,
        gate: Optional[EntitlementGate] = None,
        profiles: Optional[ProfilesRepo] = None,
        catalog: Optional[CatalogRepo] = None,
        carts: Optional[CartsRepo] = None,
        customizations: Optional[CustomizationsRepo] = None,
        fees: Optional[FeeCalculator] = None,
        pricing: Optional[PricingClient] = None,
        previews: Optional[PreviewService] = None,
        actor_id: Callable[[], UUID] = system_actor_id,
    ) -> None:
        self.gate = gate or EntitlementGate()
        self.profiles = profiles or ProfilesRepo()
        self.resolver = SchemaResolver(self.profiles)
        self.catalog = catalog or CatalogRepo()
        self.carts = carts or CartsRepo()
        self.customizations = customizations or CustomizationsRepo(self.carts)
        self.fees = fees or FeeCalculator(self.profiles)
        self.pricing = pricing or PricingClient()
        self.previews = previews or PreviewService()
        self.actor_id = actor_id

    # ----------------------------
    # Shared steps
    # ----------------------------
    async def _validate(
        self, *, store_id: UUID, product_id: UUID, variant_id: UUID, submission: Any
    ) -> tuple[CustomizationProfile, NormalizedCustomization, ProductRef]:
        profile = await self.resolver.resolve(store_id=store_id, product_id=product_id)
        normalized = normalize_customization(profile, submission)

        product = await self.catalog.get_product(store_id=store_id, product_id=product_id)
        if product is None:
            raise NotFoundError("Product not found", code="product_not_found")
        if not await self.catalog.variant_exists(store_id=store_id, product_id=product_id, variant_id=variant_id):
            raise NotFoundError("Variant not found", code="variant_not_found")

        return profile, normalized, product

    # ----------------------------
    # Public operations
    # ----------------------------
    async def get_customizer_config(self, *, store_id: UUID, product_id: UUID) -> CustomizerConfigOut:
        await self.gate.require(store_id)
        profile = await self.resolver.resolve(store_id=store_id, product_id=product_id)
        categories = await self.profiles.list_public_artwork(store_id=store_id, profile_id=profile.id)
        return CustomizerConfigOut(store_id=store_id, profile=profile, categories=categories)

    async def preview(
        self, *, store_id: UUID, product_id: UUID, variant_id: UUID, submission: Any
    ) -> PreviewOut:
        await self.gate.require(store_id)
        profile, normalized, product = await self._validate(
            store_id=store_id, product_id=product_id, variant_id=variant_id, submission=submission
        )
        artifact = await self.previews.render_preview(
            store_id=store_id, product=product, variant_id=variant_id, customization=normalized
        )
        return PreviewOut(
            preview_file_id=artifact.id,
            preview_url=artifact.url,
            customization=normalized.canonical(),
            store_id=store_id,
            profile_id=profile.id,
        )

    async def customize_and_add_to_cart(
        self,
        *,
        cart_token: str,
        product_id: UUID,
        variant_id: UUID,
        quantity: Optional[int],
        submission: Any,
        preview_file_id: Optional[str] = None,
        idempotency_key: Optional[str] = None,
        shopper_user_id: Optional[UUID] = None,
    ) -> CartOut:
        run = _AttachRun(cart_token)
        try:
            cart = await self.carts.get_by_token(cart_token)
            if cart is None:
                raise NotFoundError("Cart not found", code="cart_not_found")
            store_id = cart.store_id

            run.to(AttachState.CHECKING_ENTITLEMENT)
            await self.gate.require(store_id)

            run.to(AttachState.VALIDATING_CUSTOMIZATION)
            profile, normalized, product = await self._validate(
                store_id=store_id, product_id=product_id, variant_id=variant_id, submission=submission
            )

            run.to(AttachState.PRICING)
            qty = max(1, int(quantity or 1))
            fee_lines = await self.fees.personalization_fees(
                store_id=store_id,
                profile_id=profile.id,
                personalization=normalized.personalization,
                quantity=qty,
            )
            snapshot = await self.pricing.evaluate(
                store_id=store_id,
                product_id=product.id,
                variant_id=variant_id,
                quantity=qty,
                locations=normalized.location_keys(),
                personalization_fees=fee_lines,
            )

            run.to(AttachState.PREPARING_PREVIEW)
            preview = await self.previews.resolve_or_render_preview(
                store_id=store_id,
                preview_file_id=preview_file_id,
                product=product,
                variant_id=variant_id,
                customization=normalized,
            )

            run.to(AttachState.COMMITTING)
            result = await self.customizations.attach_to_cart(
                cart_id=cart.id,
                store_id=store_id,
                owner_user_id=shopper_user_id or self.actor_id(),
                product=product,
                variant_id=variant_id,
                profile_id=profile.id,
                customization=normalized,
                preview=preview,
                pricing_snapshot=snapshot,
                quantity=qty,
                idempotency_key=idempotency_key,
            )

            refreshed = await self.carts.get_cart(cart.id)
            if refreshed is None:
                raise NotFoundError("Cart not found", code="cart_not_found")

            run.to(AttachState.DONE)
            log.info(
                "customizer.attach.done",
                extra={"cart_item_id": str(result.cart_item_id), "replayed": result.replayed},
            )
            return refreshed
        except Exception as e:
            run.fail(e)
            raise
