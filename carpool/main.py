"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.sessions import SessionMiddleware

from carpool.access.router import router as access_router
from carpool.auth.router import router as auth_router
from carpool.config import get_settings
from carpool.db.database import init_db
from carpool.invitations.router import admin_router as invitations_admin_router
from carpool.invitations.router import router as invitations_router
from carpool.trips.router import router as trips_router
from carpool.users.router import router as users_router

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup and shutdown events.

    Args:
        app: FastAPI application instance.
    """
    init_db()
    yield


app = FastAPI(
    title=settings.app_name,
    description="Coordinate carpools to the airport by sharing flight details",
    version="0.1.0",
    lifespan=lifespan,
    debug=settings.debug,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Holds the principal, the admission state and the OAuth state
app.add_middleware(
    SessionMiddleware,
    secret_key=settings.secret_key,
    session_cookie=settings.session_cookie,
    max_age=settings.session_max_age_days * 24 * 60 * 60,
    same_site="lax",
    https_only=settings.session_https_only,
)

# API routes
app.include_router(auth_router, prefix="/api", tags=["auth"])
app.include_router(invitations_router, prefix="/api/invitations", tags=["invitations"])
app.include_router(trips_router, prefix="/api/trips", tags=["trips"])
app.include_router(invitations_admin_router, prefix="/api/admin", tags=["admin"])
app.include_router(access_router, prefix="/api/admin", tags=["admin"])
app.include_router(users_router, prefix="/api/admin", tags=["admin"])


@app.get("/health")
async def health_check():
    """Health check endpoint.

    Returns:
        dict: Health status.
    """
    return {"status": "healthy", "app": settings.app_name}
