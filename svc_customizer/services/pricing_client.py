from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Sequence
from uuid import UUID

import httpx
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from svc_customizer.config import settings
from svc_customizer.domain.enums import DECORATION_METHOD
from svc_customizer.domain.models import PersonalizationFeeLine
from svc_customizer.errors import PricingError

log = logging.getLogger(__name__)

EVALUATE_PATH = "/api/pricing/evaluate"


def _val(x: Any) -> Any:
    """Return enum.value if present, else the object itself."""
    return getattr(x, "value", x)


class PricingClient:
    """
    Thin adapter over the external pricing evaluator.

    The evaluator's answer is returned verbatim as the pricing snapshot.
    There is no local fallback: when the evaluator is unset or fails the
    caller gets a PricingError, never a made-up price.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        *,
        timeout_s: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = base_url if base_url is not None else settings.PRICING_SERVICE_URL
        self.timeout_s = timeout_s or settings.PRICING_TIMEOUT_SECONDS
        self.transport = transport

    def _client(self) -> httpx.AsyncClient:
        timeout = httpx.Timeout(self.timeout_s, connect=10.0)
        return httpx.AsyncClient(timeout=timeout, transport=self.transport)

    @retry(
        retry=retry_if_exception_type(httpx.TransportError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.2, max=2),
        reraise=True,
    )
    async def _post(self, url: str, payload: Dict[str, Any]) -> httpx.Response:
        async with self._client() as client:
            return await client.post(url, json=payload)

    async def evaluate(
        self,
        *,
        store_id: UUID,
        product_id: UUID,
        variant_id: UUID,
        quantity: int,
        locations: Sequence[str],
        personalization_fees: Sequence[PersonalizationFeeLine],
        decoration_method: str = DECORATION_METHOD,
    ) -> Dict[str, Any]:
        if not self.base_url:
            raise PricingError("Pricing is currently unavailable", code="pricing_not_configured")

        payload: Dict[str, Any] = {
            "storeId": str(store_id),
            "productId": str(product_id),
            "variantId": str(variant_id),
            "quantity": int(quantity),
            "decorationMethod": _val(decoration_method),
            "locations": list(locations),
            "personalizationFees": [f.model_dump(mode="json") for f in personalization_fees],
        }
        url = f"{self.base_url.rstrip('/')}{EVALUATE_PATH}"

        try:
            r = await self._post(url, payload)
            r.raise_for_status()
            snapshot = r.json()
        except httpx.HTTPStatusError as e:
            log.warning(
                "pricing_evaluate_failed",
                extra={"status_code": e.response.status_code, "body": e.response.text[:500]},
            )
            raise PricingError("Pricing evaluation failed") from e
        except (httpx.HTTPError, ValueError) as e:
            log.warning("pricing_evaluate_failed", extra={"error": f"{type(e).__name__}: {e}"})
            raise PricingError("Pricing evaluation failed") from e

        if not isinstance(snapshot, dict):
            raise PricingError("Pricing evaluation returned an unexpected result")
        return snapshot
