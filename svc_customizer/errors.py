from __future__ import annotations

from typing import Optional


class CustomizerError(RuntimeError):
    """Base for every error the customizer surfaces to its callers.

    ``message`` is human readable and safe to show a shopper as-is;
    ``code`` is a stable machine-readable tag.
    """

    status_code = 500
    default_code = "customizer_error"

    def __init__(self, message: str, *, code: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code


class ValidationError(CustomizerError):
    status_code = 400
    default_code = "invalid_customization"


class NotFoundError(CustomizerError):
    status_code = 404
    default_code = "not_found"


class ForbiddenError(CustomizerError):
    status_code = 403
    default_code = "feature_disabled"


class PricingError(CustomizerError):
    status_code = 502
    default_code = "pricing_failed"


class PreviewRenderError(CustomizerError):
    status_code = 502
    default_code = "preview_failed"
