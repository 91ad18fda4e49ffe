from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from smart_lunch.api.v1.ai import router as ai_router
from smart_lunch.api.v1.cooking import router as cooking_router
from smart_lunch.api.v1.meal_plans import router as meal_plans_router
from smart_lunch.api.v1.metrics import router as metrics_router
from smart_lunch.api.v1.preferences import router as preferences_router
from smart_lunch.api.v1.saved import router as saved_router
from smart_lunch.config import Settings

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Ensure data dir exists so the JSON store and metrics can write
    settings = Settings()
    os.makedirs(settings.data_dir, exist_ok=True)
    logger.info(
        "Smart Lunch API starting (store=%s, auth=%s, openai=%s)",
        settings.store_backend,
        settings.auth_mode,
        "configured" if settings.openai_api_key else "missing",
    )
    yield


def create_app() -> FastAPI:
    settings = Settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    app = FastAPI(title="Smart Lunch API", version="1.0", lifespan=lifespan)

    # CORS (narrow it down in .env via CORS_ALLOW_ORIGINS)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.include_router(ai_router)
    app.include_router(saved_router)
    app.include_router(preferences_router)
    app.include_router(meal_plans_router)
    app.include_router(cooking_router)
    app.include_router(metrics_router)

    if settings.telemetry_enabled:
        from smart_lunch.telemetry import setup_telemetry

        setup_telemetry(app, settings)

    @app.get("/healthz")
    def healthz():
        return {"status": "ok"}

    @app.get("/readyz")
    def readyz():
        return {"status": "ready"}

    return app


app = create_app()
