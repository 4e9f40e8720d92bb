# zyro/main.py
"""
Zyro Backend
"""
import os
import uvicorn
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from starlette.middleware.cors import CORSMiddleware
from starlette.responses import JSONResponse

# Rate limiting
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from zyro import __version__
from zyro.core.config import settings
from zyro.core.exceptions import (
    FragmentNotFoundError,
    InvalidInputError,
    MissingCredentialError,
    MissingMasterKeyError,
    ProjectNotFoundError,
    UnknownProviderError,
    ZyroError,
)
from zyro.core.logging import log, log_error
from zyro.llm import validate_registry


# Print environment status
print("🔑 Environment check:")
print(f"  API_KEY_ENCRYPTION_KEY loaded: {bool(settings.security.encryption_key)}")
print(f"  E2B_API_KEY loaded: {bool(os.getenv('E2B_API_KEY'))}")
print(f"  Default provider: {settings.llm.default_provider}")
print(f"  Sandbox template: {settings.sandbox.template}")


# ---------------------------------------------------------------------------
# LIFESPAN
# ---------------------------------------------------------------------------

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup and shutdown."""
    print("🚀 Zyro starting...")

    validate_registry()

    from zyro.db import connect_db, disconnect_db, is_connected
    await connect_db()

    if is_connected():
        from zyro.workflow import get_engine
        resumed = await get_engine().resume_incomplete_runs()
        if resumed:
            log("WORKFLOW", f"🔄 Resuming {resumed} interrupted run(s)")

    yield

    print("🔌 Shutting down...")
    await disconnect_db()


# ---------------------------------------------------------------------------
# APP INITIALIZATION
# ---------------------------------------------------------------------------

app = FastAPI(
    title="Zyro",
    version=__version__,
    lifespan=lifespan,
)

# Monitoring
from zyro.lib.monitoring import register_monitoring
register_monitoring(app)

# CORS - set CORS_ORIGINS to a comma-separated list in production
cors_origins_str = os.getenv("CORS_ORIGINS", "*")
cors_origins = cors_origins_str.split(",") if cors_origins_str != "*" else ["*"]

if cors_origins == ["*"] and not settings.debug:
    print("⚠️ [CORS] Warning: Using allow_origins=['*'] - consider setting CORS_ORIGINS in production")

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Rate Limiting - default 100 requests per minute per IP
# Configure via RATE_LIMIT env var (e.g., "50/minute")
rate_limit = os.getenv("RATE_LIMIT", "100/minute")
limiter = Limiter(key_func=get_remote_address, default_limits=[rate_limit])
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
app.add_middleware(SlowAPIMiddleware)
print(f"🛡️ [SECURITY] Rate limiting enabled: {rate_limit}")


# ---------------------------------------------------------------------------
# ERROR MAPPING
# ---------------------------------------------------------------------------

ERROR_STATUS = (
    (ProjectNotFoundError, 404),
    (FragmentNotFoundError, 404),
    (InvalidInputError, 400),
    (UnknownProviderError, 400),
    (MissingCredentialError, 412),
)


@app.exception_handler(ZyroError)
async def zyro_error_handler(request: Request, exc: ZyroError):
    for error_type, status in ERROR_STATUS:
        if isinstance(exc, error_type):
            return JSONResponse(status_code=status, content={"detail": exc.message, **exc.details})

    log_error("API", f"{request.method} {request.url.path} failed", exc)
    if isinstance(exc, MissingMasterKeyError):
        return JSONResponse(status_code=500, content={"detail": "Server encryption is not configured"})
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


# ---------------------------------------------------------------------------
# API ROUTES
# ---------------------------------------------------------------------------

print("[Routes] Loading API routes...")

from zyro.api import (
    health,
    projects,
    messages,
    api_keys,
    fragments,
    events,
)

app.include_router(health.router)
app.include_router(projects.router)
app.include_router(messages.router)
app.include_router(api_keys.router)
app.include_router(fragments.router)
app.include_router(events.router)


# ---------------------------------------------------------------------------
# RUN
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    uvicorn.run(
        "zyro.main:app",
        host="0.0.0.0",
        port=settings.port,
        reload=settings.debug,
    )
