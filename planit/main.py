"""
PlanIt recommendations — FastAPI application entry point.
Lifespan: create DB tables → verify connectivity → wire services.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from planit import __version__
from planit.config import settings
from planit.database import AsyncSessionLocal, check_db_connectivity, create_all, engine
from planit.dependencies import build_services
from planit.routers import health, recommendations, users

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """
    Application lifespan handler.
    1. Create all tables (idempotent — IF NOT EXISTS).
    2. Verify DB connectivity.
    3. Build the service graph and attach it to app.state.
    """
    logger.info("Starting PlanIt recommendations (env=%s)", settings.app_env)

    # Step 1: create tables
    await create_all(engine)
    logger.info("Database tables created/verified.")

    # Step 2: connectivity check
    ok = await check_db_connectivity()
    if not ok:
        logger.error("Database connectivity check FAILED at startup.")
    else:
        logger.info("Database connectivity verified.")

    # Step 3: services
    if not getattr(app.state, "services", None):
        app.state.services = build_services(AsyncSessionLocal)
    logger.info("Recommendation services ready.")

    yield

    logger.info("Shutting down PlanIt recommendations.")
    await app.state.services.aclose()
    await engine.dispose()


app = FastAPI(
    title="PlanIt Recommendations",
    description="AI-generated, personalised place categories for the PlanIt app.",
    version=__version__,
    lifespan=lifespan,
)

# ── CORS ─────────────────────────────────────────────────────────────────────

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ── Routers ──────────────────────────────────────────────────────────────────

app.include_router(health.router)
app.include_router(users.router)
app.include_router(recommendations.router)


# ── Global exception handler ─────────────────────────────────────────────────

@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Return a machine-readable error for any unhandled exception."""
    logger.exception("Unhandled exception on %s %s", request.method, request.url)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error", "code": "PLANIT_UNAVAILABLE"},
    )
