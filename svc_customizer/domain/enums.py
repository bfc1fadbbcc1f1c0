from __future__ import annotations

from enum import Enum


class LayerType(str, Enum):
    TEXT = "TEXT"
    ARTWORK = "ARTWORK"
    UPLOAD = "UPLOAD"


class CustomizationStatus(str, Enum):
    IN_CART = "IN_CART"
    ORDERED = "ORDERED"
    CANCELLED = "CANCELLED"


class FileAssetKind(str, Enum):
    CUSTOMIZER_PREVIEW = "CUSTOMIZER_PREVIEW"
    CUSTOMIZER_UPLOAD = "CUSTOMIZER_UPLOAD"


class AttachState(str, Enum):
    RESOLVING_CART = "RESOLVING_CART"
    CHECKING_ENTITLEMENT = "CHECKING_ENTITLEMENT"
    VALIDATING_CUSTOMIZATION = "VALIDATING_CUSTOMIZATION"
    PRICING = "PRICING"
    PREPARING_PREVIEW = "PREPARING_PREVIEW"
    COMMITTING = "COMMITTING"
    DONE = "DONE"
    FAILED = "FAILED"


DECORATION_METHOD = "CUSTOMIZER"
