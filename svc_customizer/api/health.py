from __future__ import annotations

from fastapi import APIRouter

from svc_customizer.config import settings

router = APIRouter(prefix="/api", tags=["health"])


@router.get("/health")
async def health():
    return {
        "status": "ok",
        "service": "svc-customizer",
        "version": settings.SERVICE_VERSION,
    }
