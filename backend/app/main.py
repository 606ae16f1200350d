"""AgentDeck HTTP and WebSocket application."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text

from backend.app.api.agents import router as agents_router
from backend.app.api.github import router as github_router
from backend.app.api.logs import router as logs_router
from backend.app.api.tasks import router as tasks_router
from backend.app.api.users import router as users_router
from backend.app.api.ws import router as ws_router
from backend.app.config import settings
from backend.app.db import engine, init_db
from backend.app.errors import AgentDeckError
from backend.app.services.ws_manager import ws_manager

logger = logging.getLogger(__name__)

# Root logger level for the backend.app.* loggers.
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(levelname)s:%(name)s: %(message)s",
)
# Request URLs carry repository names; keep them out of INFO output.
logging.getLogger("httpx").setLevel(logging.WARNING)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    await init_db()
    logger.info("AgentDeck ready on port %d", settings.port)
    yield
    # Dashboards reconnect and get a fresh snapshot.
    await ws_manager.close_all()


app = FastAPI(
    title="AgentDeck",
    description="Coding tasks in, LLM output and GitHub commits out",
    version="0.1.0",
    lifespan=lifespan,
)

# Dashboard dev servers plus the API origin itself.
app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000", "http://localhost:5173", settings.api_url],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# --- Exception handlers ---


@app.exception_handler(AgentDeckError)
async def _domain_error_handler(request: Request, exc: AgentDeckError) -> JSONResponse:
    """Domain failures cross the boundary as a status code and a free-text message."""
    logger.warning(
        "%s on %s %s: %s", type(exc).__name__, request.method, request.url.path, exc.message
    )
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


@app.exception_handler(Exception)
async def _unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Anything unexpected is logged with its traceback and answered with a bare 500."""
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error"},
    )


# Routers
app.include_router(users_router, prefix="/api")
app.include_router(tasks_router, prefix="/api")
app.include_router(agents_router, prefix="/api")
app.include_router(logs_router, prefix="/api")
app.include_router(github_router, prefix="/api")
app.include_router(ws_router)  # /ws endpoint (no /api prefix)


# --- Health check ---


@app.get("/api/health")
async def health() -> dict[str, str]:
    """Report database reachability, live sockets and whether a model key is set."""
    db_ok = "ok"
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception:
        db_ok = "error"
        logger.exception("Health check: database connectivity failed")

    return {
        "status": "ok" if db_ok == "ok" else "degraded",
        "database": db_ok,
        "ws_clients": str(ws_manager.active_count),
        "model_configured": "yes" if settings.gemini_api_key else "no",
    }
