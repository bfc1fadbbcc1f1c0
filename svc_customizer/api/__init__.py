from __future__ import annotations

from fastapi import APIRouter

from svc_customizer.api.health import router as health_router
from svc_customizer.api.routes.customizer import router as customizer_router
from svc_customizer.api.routes.uploads import router as uploads_router


def build_router() -> APIRouter:
    router = APIRouter()
    router.include_router(health_router)
    router.include_router(customizer_router)
    router.include_router(uploads_router)
    return router
