from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

import httpx
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from svc_customizer.config import settings
from svc_customizer.errors import PreviewRenderError

log = logging.getLogger(__name__)

RENDER_PATH = "/api/render"


@dataclass
class RenderedImage:
    data: bytes
    content_type: str


def _raise_for_status_with_body(r: httpx.Response) -> None:
    try:
        r.raise_for_status()
    except httpx.HTTPStatusError as e:
        body = ""
        try:
            body = r.text
        except Exception:
            body = "<unreadable body>"
        raise httpx.HTTPStatusError(
            f"{e}. Response body: {body[:2000]}",
            request=e.request,
            response=e.response,
        ) from None


class RenderClient:
    """Calls the rendering service; returns raw image bytes for a canonical customization."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        *,
        timeout_s: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = base_url if base_url is not None else settings.RENDER_SERVICE_URL
        self.timeout_s = timeout_s or settings.RENDER_TIMEOUT_SECONDS
        self.transport = transport

    @retry(
        retry=retry_if_exception_type(httpx.TransportError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.5, max=4),
        reraise=True,
    )
    async def _post(self, url: str, payload: Dict[str, Any]) -> httpx.Response:
        timeout = httpx.Timeout(self.timeout_s, connect=10.0)
        async with httpx.AsyncClient(timeout=timeout, transport=self.transport) as client:
            r = await client.post(url, json=payload, headers={"Accept": "image/png"})
            _raise_for_status_with_body(r)
            return r

    async def render(self, customization: Dict[str, Any], product_context: Dict[str, Any]) -> RenderedImage:
        if not self.base_url:
            raise PreviewRenderError("Preview rendering is currently unavailable", code="render_not_configured")

        url = f"{self.base_url.rstrip('/')}{RENDER_PATH}"
        try:
            r = await self._post(url, {"customization": customization, "product": product_context})
        except httpx.HTTPError as e:
            log.warning("render_failed", extra={"error": str(e)[:500]})
            raise PreviewRenderError("Preview rendering failed") from e

        if not r.content:
            raise PreviewRenderError("Preview rendering returned an empty image")

        content_type = (r.headers.get("content-type") or "image/png").split(";")[0].strip().lower()
        if not content_type.startswith("image/"):
            raise PreviewRenderError("Preview rendering returned a non-image response")
        return RenderedImage(data=r.content, content_type=content_type)
