from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, File, Form, UploadFile

from svc_customizer.api.deps import get_upload_service
from svc_customizer.config import settings
from svc_customizer.domain.models import UploadOut
from svc_customizer.services.upload_service import UploadService

router = APIRouter(prefix="/api/customizer", tags=["customizer"])


@router.post("/uploads", response_model=UploadOut, status_code=201)
async def upload(
    store_id: UUID = Form(...),
    file: UploadFile = File(...),
    svc: UploadService = Depends(get_upload_service),
) -> UploadOut:
    # one byte past the cap is enough to reject; never buffer the rest
    data = await file.read(settings.UPLOAD_MAX_BYTES + 1)
    return await svc.create_upload(
        store_id=store_id,
        data=data,
        file_name=file.filename,
        content_type=file.content_type,
    )
