# main.py
import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from api import users
from api.config import SupabaseSettings
from api.middleware import ObservabilityMiddleware
from api.rate_limiter import limiter, rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded


logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO").upper())
logger = logging.getLogger("create-user-api")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Startup/shutdown logging. Settings are only checked here for visibility;
    each request reads them again.
    """
    logger.info("=== Application Startup ===")

    settings = SupabaseSettings.from_env()
    logger.warning(
        "SUPABASE_URL=%s SERVICE_PREFIX=%s",
        settings.url or "(not set)",
        settings.service_role_key[:16] if settings.service_role_key else "(not set)",
    )
    if not settings.is_complete:
        logger.error("Configuração Supabase incompleta: create-user vai responder 400")

    logger.info("=== Application Ready ===")
    yield
    logger.info("=== Application Shutdown ===")


app = FastAPI(
    title="Create User API",
    description="Alta de usuarios (owner/supervisor) sobre Supabase Auth.",
    version="1.0.0",
    lifespan=lifespan,
)

app.state.limiter = limiter


@app.exception_handler(RateLimitExceeded)
async def _rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded):
    return rate_limit_exceeded_handler(request, exc)


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.exception(
        "Unhandled exception: %s %s",
        request.method,
        request.url,
        exc_info=True
    )
    return JSONResponse(status_code=500, content={"detail": "Internal Server Error"})


# CORS is answered by the create-user handler itself (wildcard origin)
app.add_middleware(ObservabilityMiddleware)

app.include_router(users.router)


@app.get("/", tags=["Health Check"])
def read_root():
    return {"message": "Create User API v1.0 is running", "status": "healthy"}


@app.get("/health", tags=["Health Check"])
def health_check():
    return {"status": "healthy", "uptime": "ok", "version": "1.0.0"}
