"""FastAPI application serving the portal's REST surface under /api."""
from __future__ import annotations

from fastapi import APIRouter, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from portal.core.config import get_settings
from portal.routers import appliances as appliances_router
from portal.routers import issues as issues_router
from portal.routers import service_providers as service_providers_router
from portal.services.entity_service import EntityService
from portal.services.notification_service import NotificationService

API_PREFIX = "/api"


def create_app() -> FastAPI:
    """Factory compatible with uvicorn/gunicorn (``--factory``)."""
    settings = get_settings()
    app = FastAPI(title="Facilities Portal API")

    allowed_cors = set(settings.cors_origins)
    if settings.app_env != "prod":
        allowed_cors.update(
            {
                "http://localhost:5173",
                "http://127.0.0.1:5173",
                "http://localhost:3000",
            }
        )
    if allowed_cors:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=sorted(allowed_cors),
            allow_credentials=True,
            allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
            allow_headers=["*"],
        )

    entity_service = EntityService()
    app.state.entity_service = entity_service
    app.state.notification_service = NotificationService(entity_service)

    health = APIRouter(tags=["health"])

    @health.get("/health")
    def healthcheck():
        return {"ok": True, "env": settings.app_env}

    app.include_router(health, prefix=API_PREFIX)
    app.include_router(service_providers_router.router, prefix=API_PREFIX)
    app.include_router(appliances_router.router, prefix=API_PREFIX)
    app.include_router(issues_router.router, prefix=API_PREFIX)
    return app


app = create_app()
