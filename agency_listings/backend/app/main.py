# backend/app/main.py
from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import settings
from .db import init_db
from .errors import register_error_handlers
from .logging_config import configure_logging

from .middleware.request_id import RequestIDMiddleware
from .middleware.structured_logging import StructuredLoggingMiddleware

from .routers.health import router as health_router
from .routers.auth import router as auth_router
from .routers.profile import router as profile_router

from .routers.agencies import router as agencies_router
from .routers.users import router as users_router

from .routers.properties import router as properties_router
from .routers.projects import router as projects_router
from .routers.floors import router as floors_router
from .routers.public import router as public_router

from .routers.metrics import router as metrics_router
from .routers.audit import router as audit_router

API_PREFIX = "/api"


def _cors_origins() -> list[str]:
    val = getattr(settings, "cors_allow_origins", ["*"])
    if isinstance(val, str):
        v = val.strip()
        return ["*"] if v == "*" else [x.strip() for x in v.split(",") if x.strip()]
    if isinstance(val, list) and val:
        return val
    return ["*"]


@asynccontextmanager
async def _lifespan(app: FastAPI):
    if settings.create_tables_on_startup:
        init_db()
    yield


def create_app() -> FastAPI:
    configure_logging()

    app = FastAPI(
        title="Agency Listings",
        version=settings.app_version,
        lifespan=_lifespan,
    )

    # Request-ID must wrap logging (outermost = added last)
    app.add_middleware(StructuredLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    origins = _cors_origins()
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=origins != ["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_error_handlers(app)

    # Core
    app.include_router(health_router, prefix=API_PREFIX)
    app.include_router(auth_router, prefix=API_PREFIX)
    app.include_router(profile_router, prefix=API_PREFIX)

    # Tenancy administration
    app.include_router(agencies_router, prefix=API_PREFIX)
    app.include_router(users_router, prefix=API_PREFIX)

    # Listings
    app.include_router(properties_router, prefix=API_PREFIX)
    app.include_router(projects_router, prefix=API_PREFIX)
    app.include_router(floors_router, prefix=API_PREFIX)
    app.include_router(public_router, prefix=API_PREFIX)

    # Reporting
    app.include_router(metrics_router, prefix=API_PREFIX)
    app.include_router(audit_router, prefix=API_PREFIX)

    return app


app = create_app()
