from __future__ import annotations

import math
from datetime import datetime
from typing import Annotated, Any, Dict, List, Literal, Optional, Union
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

DEFAULT_AREA_SIZE = 1200.0
MAX_CART_QUANTITY = 10_000


# ----------------------------
# Merchant-defined schema
# ----------------------------
class DecorationBounds(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    max_width: float = Field(DEFAULT_AREA_SIZE, alias="maxWidth")
    max_height: float = Field(DEFAULT_AREA_SIZE, alias="maxHeight")

    @field_validator("max_width", "max_height", mode="before")
    @classmethod
    def _positive_or_default(cls, v: Any) -> float:
        try:
            f = float(v)
        except (TypeError, ValueError):
            return DEFAULT_AREA_SIZE
        if not math.isfinite(f) or f <= 0:
            return DEFAULT_AREA_SIZE
        return f


class DecorationAreaSpec(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    key: str
    label: Optional[str] = None
    bounds: DecorationBounds = Field(default_factory=DecorationBounds)
    allowed_layer_types: List[str] = Field(default_factory=list, alias="allowedLayerTypes")

    @model_validator(mode="before")
    @classmethod
    def _key_from_id(cls, data: Any) -> Any:
        # older profiles keyed locations by "id"
        if isinstance(data, dict) and not data.get("key") and data.get("id"):
            data = {**data, "key": str(data["id"])}
        if isinstance(data, dict) and data.get("bounds") is None:
            data = {**data, "bounds": {}}
        return data


class PersonalizationPricing(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    flat_fee: float = Field(0.0, alias="flatFee")
    per_character: float = Field(0.0, alias="perCharacter")
    per_item: float = Field(0.0, alias="perItem")

    @field_validator("flat_fee", "per_character", "per_item", mode="before")
    @classmethod
    def _none_is_zero(cls, v: Any) -> Any:
        return 0.0 if v is None else v


class PersonalizationFieldSchema(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: Optional[UUID] = None
    key: str
    label: str = ""
    type: str = "TEXT"
    required: bool = False
    min_length: Optional[int] = Field(None, alias="minLength")
    max_length: Optional[int] = Field(None, alias="maxLength")
    pricing: PersonalizationPricing = Field(default_factory=PersonalizationPricing)
    sort_order: int = Field(0, alias="sortOrder")
    active: bool = True

    @field_validator("pricing", mode="before")
    @classmethod
    def _pricing_default(cls, v: Any) -> Any:
        return v or {}


class CustomizationProfile(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: UUID
    store_id: UUID = Field(alias="storeId")
    product_id: UUID = Field(alias="productId")
    enabled: bool = True
    locations: List[DecorationAreaSpec] = Field(default_factory=list)
    rules: Optional[Any] = None
    personalization_schemas: List[PersonalizationFieldSchema] = Field(
        default_factory=list, alias="personalizationSchemas"
    )


# ----------------------------
# Normalized customization
# ----------------------------
class LayerGeometry(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    x: float
    y: float
    width: float
    height: float
    rotation: float


class TextLayer(LayerGeometry):
    type: Literal["TEXT"] = "TEXT"
    text: str
    font: str
    color: str


class ArtworkLayer(LayerGeometry):
    type: Literal["ARTWORK"] = "ARTWORK"
    artwork_asset_id: str = Field(alias="artworkAssetId")


class UploadLayer(LayerGeometry):
    type: Literal["UPLOAD"] = "UPLOAD"
    file_id: str = Field(alias="fileId")


NormalizedLayer = Annotated[Union[TextLayer, ArtworkLayer, UploadLayer], Field(discriminator="type")]


class NormalizedLocation(BaseModel):
    model_config = ConfigDict(frozen=True)

    key: str
    layers: List[NormalizedLayer] = Field(default_factory=list)


class NormalizedCustomization(BaseModel):
    model_config = ConfigDict(frozen=True)

    locations: List[NormalizedLocation]
    personalization: Dict[str, str] = Field(default_factory=dict)

    def location_keys(self) -> List[str]:
        return [loc.key for loc in self.locations]

    def canonical(self) -> Dict[str, Any]:
        """JSON-ready form stored on designs/customizations and sent to collaborators."""
        return self.model_dump(mode="json", by_alias=True)


# ----------------------------
# Pricing / preview / cart
# ----------------------------
class PersonalizationFeeLine(BaseModel):
    name: str
    amount: float


class PreviewArtifact(BaseModel):
    id: UUID
    url: str
    mime_type: str = "image/png"
    size_bytes: int = 0
    content_sha256: Optional[str] = None


class ProductRef(BaseModel):
    id: UUID
    store_id: UUID
    name: str = ""


class CartRef(BaseModel):
    id: UUID
    store_id: UUID
    token: str


class CartItemOut(BaseModel):
    id: UUID
    product_id: UUID
    variant_id: Optional[UUID] = None
    quantity: int
    decoration_method: Optional[str] = None
    decoration_locations: List[str] = Field(default_factory=list)
    design_id: Optional[UUID] = None
    customization_id: Optional[UUID] = None
    preview_file_id: Optional[UUID] = None
    mockup_url: Optional[str] = None
    pricing_snapshot: Dict[str, Any] = Field(default_factory=dict)
    created_at: Optional[datetime] = None


class CartOut(BaseModel):
    id: UUID
    store_id: UUID
    token: str
    status: str = "ACTIVE"
    total: float = 0.0
    items: List[CartItemOut] = Field(default_factory=list)


class ArtworkAssetOut(BaseModel):
    id: UUID
    name: str
    tags: List[str] = Field(default_factory=list)
    file_id: UUID
    url: str
    mime_type: Optional[str] = None


class ArtworkCategoryOut(BaseModel):
    id: UUID
    name: str
    slug: str
    sort_order: int = 0
    assets: List[ArtworkAssetOut] = Field(default_factory=list)


# ----------------------------
# API
# ----------------------------
class CustomizerConfigOut(BaseModel):
    store_id: UUID
    profile: CustomizationProfile
    categories: List[ArtworkCategoryOut] = Field(default_factory=list)


class PreviewIn(BaseModel):
    store_id: UUID
    product_id: UUID
    variant_id: UUID
    customization: Any = None


class PreviewOut(BaseModel):
    preview_file_id: UUID
    preview_url: str
    customization: Dict[str, Any]
    store_id: UUID
    profile_id: UUID


class CustomizeAddIn(BaseModel):
    product_id: UUID
    variant_id: UUID
    quantity: int = Field(1, le=MAX_CART_QUANTITY)
    customization: Any = None
    preview_file_id: Optional[str] = None
    idempotency_key: Optional[str] = Field(default=None, max_length=128)  # client-generated key for safe retries


class UploadOut(BaseModel):
    store_id: UUID
    file_id: UUID
    url: str
    mime_type: str
    size_bytes: int
