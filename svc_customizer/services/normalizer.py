from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Tuple, Type

from svc_customizer.domain.enums import LayerType
from svc_customizer.domain.models import (
    ArtworkLayer,
    CustomizationProfile,
    DecorationAreaSpec,
    LayerGeometry,
    NormalizedCustomization,
    NormalizedLocation,
    TextLayer,
    UploadLayer,
)
from svc_customizer.errors import ValidationError
from svc_customizer.services.sanitize import clamp, clean_text, to_number

MAX_LAYERS_PER_LOCATION = 25
MIN_LAYER_SIZE = 10.0
MAX_ROTATION = 45.0

KEY_MAX = 64
TYPE_MAX = 24
PERSONALIZATION_VALUE_MAX = 120

DEFAULT_LAYER_WIDTH = 100.0
DEFAULT_LAYER_HEIGHT = 40.0


@dataclass(frozen=True)
class LayerField:
    """One type-specific layer attribute: where to read it and how to clean it."""

    name: str
    max_length: int
    aliases: Tuple[str, ...] = ()
    default: str = ""
    required_message: Optional[str] = None

    def read(self, layer: Mapping[str, Any]) -> str:
        raw = None
        for k in (self.name, *self.aliases):
            if layer.get(k) not in (None, ""):
                raw = layer.get(k)
                break
        value = clean_text(raw if raw is not None else self.default, self.max_length)
        if self.required_message and not value:
            raise ValidationError(self.required_message)
        return value


# Adding a layer type means one entry here plus its model.
LAYER_TYPES: Dict[str, Tuple[Type[LayerGeometry], Tuple[LayerField, ...]]] = {
    LayerType.TEXT.value: (
        TextLayer,
        (
            LayerField("text", 80, required_message="Text layers require text content"),
            LayerField("font", 40, default="sans-serif"),
            LayerField("color", 16, default="#111111"),
        ),
    ),
    LayerType.ARTWORK.value: (
        ArtworkLayer,
        (
            LayerField(
                "artworkAssetId",
                64,
                aliases=("artwork_asset_id",),
                required_message="Artwork layers require artworkAssetId",
            ),
        ),
    ),
    LayerType.UPLOAD.value: (
        UploadLayer,
        (LayerField("fileId", 64, aliases=("file_id",), required_message="Upload layers require fileId"),),
    ),
}


def _as_mapping(value: Any) -> Mapping[str, Any]:
    return value if isinstance(value, Mapping) else {}


def _as_list(value: Any) -> List[Any]:
    return list(value) if isinstance(value, (list, tuple)) else []


def location_lookup(profile: CustomizationProfile) -> Dict[str, DecorationAreaSpec]:
    lookup: Dict[str, DecorationAreaSpec] = {}
    for spec in profile.locations:
        key = clean_text(spec.key, KEY_MAX)
        if key:
            lookup[key] = spec
    return lookup


def normalize_layer(raw: Any, spec: DecorationAreaSpec, location_key: str) -> LayerGeometry:
    layer = _as_mapping(raw)

    layer_type = clean_text(str(layer.get("type") or LayerType.TEXT.value).upper(), TYPE_MAX)
    entry = LAYER_TYPES.get(layer_type)
    if entry is None:
        raise ValidationError(f"Unsupported layer type: {layer_type}")

    allowed = {clean_text(t, TYPE_MAX).upper() for t in spec.allowed_layer_types}
    if allowed and layer_type not in allowed:
        raise ValidationError(f"Layer type {layer_type} is not allowed in location {location_key}")

    max_w = spec.bounds.max_width
    max_h = spec.bounds.max_height

    # size first, then position, so the layer always fits inside the area
    width = clamp(to_number(layer.get("width"), DEFAULT_LAYER_WIDTH), MIN_LAYER_SIZE, max_w)
    height = clamp(to_number(layer.get("height"), DEFAULT_LAYER_HEIGHT), MIN_LAYER_SIZE, max_h)
    x = clamp(to_number(layer.get("x"), 0.0), 0.0, max(0.0, max_w - width))
    y = clamp(to_number(layer.get("y"), 0.0), 0.0, max(0.0, max_h - height))
    rotation = clamp(to_number(layer.get("rotation"), 0.0), -MAX_ROTATION, MAX_ROTATION)

    model, fields = entry
    attrs = {f.name: f.read(layer) for f in fields}
    return model(type=layer_type, x=x, y=y, width=width, height=height, rotation=rotation, **attrs)


def normalize_personalization(raw: Any) -> Dict[str, str]:
    out: Dict[str, str] = {}
    for key, value in _as_mapping(raw).items():
        clean_key = clean_text(key, KEY_MAX)
        if not clean_key:
            continue
        out[clean_key] = clean_text("" if value is None else value, PERSONALIZATION_VALUE_MAX)
    return out


def normalize_customization(profile: CustomizationProfile, submission: Any) -> NormalizedCustomization:
    """
    Reconcile an untrusted submission with the merchant profile.

    Pure and deterministic: the same (profile, submission) always yields the
    same canonical result, and feeding a result back in returns it unchanged.
    Raises ValidationError with a shopper-facing reason on the first problem.
    """
    payload = _as_mapping(submission)
    submitted_locations = _as_list(payload.get("locations"))
    if not submitted_locations:
        raise ValidationError("At least one customization location is required")

    lookup = location_lookup(profile)

    locations: List[NormalizedLocation] = []
    for raw_loc in submitted_locations:
        loc = _as_mapping(raw_loc)
        key = clean_text(loc.get("key") or "", KEY_MAX)
        spec = lookup.get(key)
        if spec is None:
            raise ValidationError(f"Invalid customization location: {key}")

        layers = [
            normalize_layer(raw_layer, spec, key)
            for raw_layer in _as_list(loc.get("layers"))[:MAX_LAYERS_PER_LOCATION]
        ]
        locations.append(NormalizedLocation(key=key, layers=layers))

    return NormalizedCustomization(
        locations=locations,
        personalization=normalize_personalization(payload.get("personalization")),
    )
