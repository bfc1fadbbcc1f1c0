from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from svc_customizer.api import build_router
from svc_customizer.config import settings
from svc_customizer.db import close_pool, get_pool
from svc_customizer.errors import CustomizerError
from svc_customizer.logging import configure_logging
from svc_customizer.middleware import RequestIdMiddleware
from svc_customizer.services.system_actor import ensure_system_actor



@asynccontextmanager
async def lifespan(app: FastAPI):
    await get_pool()
    await ensure_system_actor()
    yield
    await close_pool()


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(CustomizerError)
    async def customizer_error(request: Request, exc: CustomizerError):
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message, "code": exc.code})


def create_app(*, with_lifespan: bool = True) -> FastAPI:
    configure_logging()

    app = FastAPI(
        title="Product Customizer",
        version=settings.SERVICE_VERSION,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan if with_lifespan else None,
    )
    app.add_middleware(RequestIdMiddleware)
    register_error_handlers(app)
    app.include_router(build_router())

    @app.get("/")
    async def root():
        return {"service": "svc-customizer", "status": "ok", "version": settings.SERVICE_VERSION}

    return app


# IMPORTANT: uvicorn expects "app" here (svc_customizer.main:app)
app = create_app()
