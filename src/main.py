# SPDX-FileCopyrightText: 2025 Roland Knall <rknall@gmail.com>
# SPDX-License-Identifier: GPL-2.0-only
"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import SQLAlchemyError

from src.config import settings
from src.database import SessionLocal
from src.integrations.postgrest import PostgrestDirectory
from src.schemas.common import HealthResponse
from src.services import auth_service
from src.services.rbac_seed_service import seed_rbac_data

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup and shutdown events."""
    # Startup: seed the permission catalog and default roles
    logger.info("Seeding RBAC data...")
    db = SessionLocal()
    try:
        seed_rbac_data(db)
        removed = auth_service.cleanup_expired_sessions(db)
        if removed:
            logger.info(f"Removed {removed} expired sessions")
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Error seeding RBAC data: {e}")
    finally:
        db.close()

    app.state.directory = None
    if settings.POSTGREST_URL:
        app.state.directory = PostgrestDirectory(
            settings.POSTGREST_URL,
            settings.POSTGREST_API_KEY or "",
            timeout=settings.RESOLUTION_TIMEOUT_SECONDS,
        )
        ok, message = await app.state.directory.health_check()
        if ok:
            logger.info(f"Using profile directory at {settings.POSTGREST_URL}")
        else:
            logger.warning(f"Profile directory unreachable: {message}")

    yield

    logger.info("Shutting down...")
    if app.state.directory is not None:
        await app.state.directory.close()


app = FastAPI(
    title="ArchFlow Access",
    description="Role-based access control and session authorization service",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS middleware for frontend development
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health", response_model=HealthResponse)
def health_check() -> HealthResponse:
    """Health check endpoint."""
    return HealthResponse(status="healthy")


# Import and include API router after it's created
from src.api.v1.router import api_router  # noqa: E402

app.include_router(api_router, prefix="/api/v1")
