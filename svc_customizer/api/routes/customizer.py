from __future__ import annotations

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query

from svc_customizer.api.deps import get_customizer_service, get_optional_user_id
from svc_customizer.domain.models import (
    CartOut,
    CustomizeAddIn,
    CustomizerConfigOut,
    PreviewIn,
    PreviewOut,
)
from svc_customizer.services.customizer_service import CustomizerService

router = APIRouter(prefix="/api/customizer", tags=["customizer"])


@router.get("/products/{product_id}/config", response_model=CustomizerConfigOut)
async def customizer_config(
    product_id: UUID,
    store_id: UUID = Query(...),
    svc: CustomizerService = Depends(get_customizer_service),
) -> CustomizerConfigOut:
    return await svc.get_customizer_config(store_id=store_id, product_id=product_id)


@router.post("/preview", response_model=PreviewOut)
async def preview(
    req: PreviewIn,
    svc: CustomizerService = Depends(get_customizer_service),
) -> PreviewOut:
    return await svc.preview(
        store_id=req.store_id,
        product_id=req.product_id,
        variant_id=req.variant_id,
        submission=req.customization,
    )


@router.post("/cart/{cart_token}/customize-add", response_model=CartOut, status_code=201)
async def customize_add(
    cart_token: str,
    req: CustomizeAddIn,
    user_id: Optional[UUID] = Depends(get_optional_user_id),
    svc: CustomizerService = Depends(get_customizer_service),
) -> CartOut:
    return await svc.customize_and_add_to_cart(
        cart_token=cart_token,
        product_id=req.product_id,
        variant_id=req.variant_id,
        quantity=req.quantity,
        submission=req.customization,
        preview_file_id=req.preview_file_id,
        idempotency_key=req.idempotency_key,
        shopper_user_id=user_id,
    )
