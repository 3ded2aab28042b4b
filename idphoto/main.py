"""
Main FastAPI application for the ID Photo API.
Serves health, generation, cooldown/history and metrics.
"""
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from idphoto.core.config import settings
from idphoto.core.logging import configure_logging
from idphoto.api.routes import generate, health
from idphoto.services.id_photo import IdPhotoService
from idphoto.utils.metrics import router as metrics_router


def create_app(service: IdPhotoService | None = None) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        configure_logging()
        app.state.id_photo_service = service or IdPhotoService.from_settings(settings)
        yield
        # Session end: stop the cooldown ticker
        app.state.id_photo_service.close()
        await app.state.id_photo_service.provider.aclose()

    app = FastAPI(
        title="ID Photo API",
        description="Passport-style photo generation from casual photos",
        version="1.0.0",
        lifespan=lifespan,
    )

    origins = settings.cors_origins_list
    if not origins:
        origins = ["http://localhost:3000", "http://127.0.0.1:3000", "http://localhost:5173"]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(health.router, tags=["health"])
    app.include_router(generate.router)
    app.include_router(metrics_router)
    return app


app = create_app()
