from __future__ import annotations

import asyncio
from collections import defaultdict
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, List, Optional
from uuid import UUID, uuid4

import pytest

from svc_customizer.domain.enums import DECORATION_METHOD
from svc_customizer.domain.models import (
    CartItemOut,
    CartOut,
    CartRef,
    CustomizationProfile,
    PersonalizationFieldSchema,
    ProductRef,
)
from svc_customizer.domain.money import cart_total
from svc_customizer.errors import ForbiddenError, PricingError
from svc_customizer.repos.customizations_repo import CommitResult
from svc_customizer.services.azure_storage_service import StoredObject
from svc_customizer.services.customizer_service import CustomizerService
from svc_customizer.services.preview_service import PreviewService
from svc_customizer.services.render_client import RenderedImage

SYSTEM_ACTOR = UUID("00000000-0000-0000-0000-00000000a11c")
PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32


def make_profile(
    *,
    store_id: Optional[UUID] = None,
    product_id: Optional[UUID] = None,
    enabled: bool = True,
    locations: Optional[List[Dict[str, Any]]] = None,
) -> CustomizationProfile:
    return CustomizationProfile(
        id=uuid4(),
        store_id=store_id or uuid4(),
        product_id=product_id or uuid4(),
        enabled=enabled,
        locations=locations
        if locations is not None
        else [
            {
                "key": "front",
                "bounds": {"maxWidth": 900, "maxHeight": 900},
                "allowedLayerTypes": ["TEXT", "ARTWORK", "UPLOAD"],
            },
            {"key": "back"},
        ],
    )


def make_schema(key: str, **kw: Any) -> PersonalizationFieldSchema:
    return PersonalizationFieldSchema(key=key, label=kw.pop("label", key.title()), **kw)


# ----------------------------
# In-memory collaborators
# ----------------------------
class FakeGate:
    def __init__(self, enabled: bool = True) -> None:
        self.enabled = enabled

    async def is_enabled(self, store_id: UUID, feature_key: str) -> bool:
        return self.enabled

    async def require(self, store_id: UUID, feature_key: Optional[str] = None) -> None:
        if not self.enabled:
            raise ForbiddenError("Customizer feature is not enabled for this plan")


class FakeProfilesRepo:
    def __init__(self, profile: Optional[CustomizationProfile], schemas: Optional[List[PersonalizationFieldSchema]] = None):
        self.profile = profile
        self.schemas = schemas or []
        self.artwork: list = []

    async def get_profile(self, *, store_id: UUID, product_id: UUID) -> Optional[CustomizationProfile]:
        p = self.profile
        if p is None or p.store_id != store_id or p.product_id != product_id:
            return None
        return p

    async def list_active_field_schemas(self, *, store_id: UUID, profile_id: UUID) -> List[PersonalizationFieldSchema]:
        return sorted((s for s in self.schemas if s.active), key=lambda s: s.sort_order)

    async def list_public_artwork(self, *, store_id: UUID, profile_id: UUID) -> list:
        return list(self.artwork)


class FakeCatalogRepo:
    def __init__(self) -> None:
        self.products: Dict[UUID, ProductRef] = {}
        self.variants: set = set()

    def add(self, store_id: UUID, product_id: UUID, variant_id: UUID, name: str = "Classic Tee") -> None:
        self.products[product_id] = ProductRef(id=product_id, store_id=store_id, name=name)
        self.variants.add((store_id, product_id, variant_id))

    async def get_product(self, *, store_id: UUID, product_id: UUID) -> Optional[ProductRef]:
        p = self.products.get(product_id)
        return p if p and p.store_id == store_id else None

    async def variant_exists(self, *, store_id: UUID, product_id: UUID, variant_id: UUID) -> bool:
        return (store_id, product_id, variant_id) in self.variants


class FakeCartsRepo:
    def __init__(self) -> None:
        self.carts: Dict[UUID, Dict[str, Any]] = {}
        self.items: List[Dict[str, Any]] = []

    def add_cart(self, store_id: UUID, token: str = "cart-token-1") -> UUID:
        cart_id = uuid4()
        self.carts[cart_id] = {"store_id": store_id, "token": token, "total": Decimal("0.00")}
        return cart_id

    async def get_by_token(self, token: str) -> Optional[CartRef]:
        for cart_id, c in self.carts.items():
            if c["token"] == token:
                return CartRef(id=cart_id, store_id=c["store_id"], token=token)
        return None

    async def get_cart(self, cart_id: UUID) -> Optional[CartOut]:
        c = self.carts.get(cart_id)
        if c is None:
            return None
        items = [
            CartItemOut(
                id=i["id"],
                product_id=i["product_id"],
                variant_id=i["variant_id"],
                quantity=i["quantity"],
                decoration_method=DECORATION_METHOD,
                decoration_locations=i["decoration_locations"],
                design_id=i["design_id"],
                customization_id=i["customization_id"],
                preview_file_id=i["preview_file_id"],
                mockup_url=i["mockup_url"],
                pricing_snapshot=i["pricing_snapshot"],
            )
            for i in self.items
            if i["cart_id"] == cart_id
        ]
        return CartOut(id=cart_id, store_id=c["store_id"], token=c["token"], total=float(c["total"]), items=items)

    async def recompute_total(self, conn: Any, cart_id: UUID) -> Decimal:
        total = cart_total(i["pricing_snapshot"] for i in self.items if i["cart_id"] == cart_id)
        self.carts[cart_id]["total"] = total
        return total


class FakeCustomizationsRepo:
    """Mimics the locked, all-or-nothing commit: rows are staged and only published at the end."""

    def __init__(self, carts: FakeCartsRepo) -> None:
        self.carts = carts
        self.designs: List[Dict[str, Any]] = []
        self.customizations: List[Dict[str, Any]] = []
        self.locks: Dict[UUID, asyncio.Lock] = defaultdict(asyncio.Lock)
        self.fail_with: Optional[Exception] = None
        self.calls = 0

    async def attach_to_cart(self, *, cart_id, store_id, owner_user_id, product, variant_id, profile_id,
                             customization, preview, pricing_snapshot, quantity, idempotency_key=None) -> CommitResult:
        self.calls += 1
        async with self.locks[cart_id]:
            if idempotency_key:
                for item in self.carts.items:
                    if item["cart_id"] == cart_id and item.get("idempotency_key") == idempotency_key:
                        return CommitResult(item["id"], item["design_id"], item["customization_id"], None, replayed=True)

            design = {"id": uuid4(), "user_id": owner_user_id, "product_id": product.id,
                      "content": customization.canonical()}
            await asyncio.sleep(0)
            if self.fail_with is not None:
                raise self.fail_with
            cust = {"id": uuid4(), "store_id": store_id, "design_id": design["id"], "preview_file_id": preview.id,
                    "payload": customization.canonical(), "pricing_snapshot": pricing_snapshot,
                    "status": "IN_CART", "profile_id": profile_id}
            item = {"id": uuid4(), "cart_id": cart_id, "product_id": product.id, "variant_id": variant_id,
                    "quantity": quantity, "decoration_locations": customization.location_keys(),
                    "design_id": design["id"], "customization_id": cust["id"], "preview_file_id": preview.id,
                    "mockup_url": preview.url, "pricing_snapshot": pricing_snapshot,
                    "idempotency_key": idempotency_key}
            await asyncio.sleep(0)

            self.designs.append(design)
            self.customizations.append(cust)
            self.carts.items.append(item)
            total = await self.carts.recompute_total(None, cart_id)
        return CommitResult(item["id"], design["id"], cust["id"], total)


class FakePricing:
    """Unit price 12.00 plus personalization fees; echoes what it was asked."""

    def __init__(self, unit_price: str = "12.00", delay: float = 0.0) -> None:
        self.unit_price = Decimal(unit_price)
        self.delay = delay
        self.calls: List[Dict[str, Any]] = []
        self.fail = False

    async def evaluate(self, *, store_id, product_id, variant_id, quantity, locations, personalization_fees,
                       decoration_method: str = DECORATION_METHOD) -> Dict[str, Any]:
        self.calls.append({"quantity": quantity, "locations": list(locations),
                           "fees": [f.model_dump() for f in personalization_fees],
                           "decoration_method": decoration_method})
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail:
            raise PricingError("Pricing evaluation failed")
        fees = sum(Decimal(str(f.amount)) for f in personalization_fees)
        total = self.unit_price * quantity + fees
        return {"unitPrice": float(self.unit_price), "subtotal": float(total), "total": float(total),
                "personalizationFees": [f.model_dump() for f in personalization_fees]}


class FakeRenderer:
    def __init__(self) -> None:
        self.calls = 0
        self.fail: Optional[Exception] = None

    async def render(self, customization: Dict[str, Any], product_context: Dict[str, Any]) -> RenderedImage:
        self.calls += 1
        if self.fail is not None:
            raise self.fail
        return RenderedImage(data=PNG_BYTES, content_type="image/png")


class FakeStorage:
    def __init__(self) -> None:
        self.objects: Dict[str, bytes] = {}
        self.fail: Optional[Exception] = None

    async def store(self, data: bytes, suggested_name: str, path_prefix: str, *,
                    content_type: str = "application/octet-stream") -> StoredObject:
        if self.fail is not None:
            raise self.fail
        name = f"{len(self.objects)}_{suggested_name}"
        self.objects[f"{path_prefix}/{name}"] = data
        return StoredObject(url=f"https://blob.test/{path_prefix}/{name}", file_name=name, size_bytes=len(data))


class FakeFileAssetsRepo:
    def __init__(self) -> None:
        self.rows: Dict[UUID, Dict[str, Any]] = {}
        self.fail: Optional[Exception] = None

    async def create(self, *, store_id, kind, file_name, mime_type, url, size_bytes, content_sha256=None) -> UUID:
        if self.fail is not None:
            raise self.fail
        file_id = uuid4()
        self.rows[file_id] = {"id": file_id, "store_id": store_id, "kind": kind, "file_name": file_name,
                              "mime_type": mime_type, "url": url, "size_bytes": size_bytes,
                              "content_sha256": content_sha256}
        return file_id

    async def get_for_store(self, *, file_id: UUID, store_id: UUID) -> Optional[Dict[str, Any]]:
        row = self.rows.get(file_id)
        return dict(row) if row and row["store_id"] == store_id else None


# ----------------------------
# Assembled storefront
# ----------------------------
@dataclass
class World:
    store_id: UUID
    product_id: UUID
    variant_id: UUID
    cart_id: UUID
    cart_token: str
    profile: CustomizationProfile
    gate: FakeGate
    profiles: FakeProfilesRepo
    catalog: FakeCatalogRepo
    carts: FakeCartsRepo
    commits: FakeCustomizationsRepo
    pricing: FakePricing
    renderer: FakeRenderer
    storage: FakeStorage
    files: FakeFileAssetsRepo
    service: CustomizerService
    schemas: List[PersonalizationFieldSchema] = field(default_factory=list)


def build_world(schemas: Optional[List[PersonalizationFieldSchema]] = None, pricing_delay: float = 0.0) -> World:
    store_id, product_id, variant_id = uuid4(), uuid4(), uuid4()
    profile = make_profile(store_id=store_id, product_id=product_id)
    gate = FakeGate()
    profiles = FakeProfilesRepo(profile, schemas)
    catalog = FakeCatalogRepo()
    catalog.add(store_id, product_id, variant_id)
    carts = FakeCartsRepo()
    cart_id = carts.add_cart(store_id, token="cart-token-1")
    commits = FakeCustomizationsRepo(carts)
    pricing = FakePricing(delay=pricing_delay)
    renderer, storage, files = FakeRenderer(), FakeStorage(), FakeFileAssetsRepo()
    service = CustomizerService(
        gate=gate,
        profiles=profiles,
        catalog=catalog,
        carts=carts,
        customizations=commits,
        pricing=pricing,
        previews=PreviewService(renderer=renderer, storage=storage, file_assets=files),
        actor_id=lambda: SYSTEM_ACTOR,
    )
    return World(store_id, product_id, variant_id, cart_id, "cart-token-1", profile, gate, profiles, catalog,
                 carts, commits, pricing, renderer, storage, files, service, schemas or [])


@pytest.fixture
def world() -> World:
    return build_world()


@pytest.fixture
def profile() -> CustomizationProfile:
    return make_profile()


@pytest.fixture
def submission() -> Dict[str, Any]:
    return {
        "locations": [
            {"key": "front", "layers": [{"type": "TEXT", "text": "Team Rocket", "x": 20, "y": 30,
                                         "width": 300, "height": 80}]},
        ],
        "personalization": {},
    }
