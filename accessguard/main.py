"""AccessGuard - FastAPI Web Application Entry Point."""
import logging
from contextlib import asynccontextmanager
from datetime import datetime

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from accessguard.api.admin import router as admin_router
from accessguard.api.auth import router as auth_router
from accessguard.api.billing import router as billing_router
from accessguard.api.cron import router as cron_router
from accessguard.api.dashboard import router as dashboard_router
from accessguard.api.scans import router as scans_router
from accessguard.api.sites import router as sites_router
from accessguard.config import get_settings

settings = get_settings()

logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    logger.info("%s v%s starting", settings.APP_NAME, settings.APP_VERSION)
    logger.info("Database: %s", settings.database_type.upper())
    logger.info("Debug: %s", settings.DEBUG)

    yield

    logger.info("%s shutting down", settings.APP_NAME)


# Create FastAPI app
app = FastAPI(
    title=settings.APP_NAME,
    description="WCAG 2.1 AA accessibility scanning with weekly site monitoring",
    version=settings.APP_VERSION,
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Exception handlers
@app.exception_handler(status.HTTP_401_UNAUTHORIZED)
async def unauthorized_handler(request: Request, exc):
    """Handle unauthorized errors."""
    return JSONResponse(
        status_code=status.HTTP_401_UNAUTHORIZED,
        content={"detail": str(exc.detail) if hasattr(exc, "detail") else "Unauthorized"},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(status.HTTP_403_FORBIDDEN)
async def forbidden_handler(request: Request, exc):
    """Handle forbidden errors."""
    return JSONResponse(
        status_code=status.HTTP_403_FORBIDDEN,
        content={"detail": str(exc.detail) if hasattr(exc, "detail") else "Access denied"},
    )


@app.exception_handler(status.HTTP_429_TOO_MANY_REQUESTS)
async def rate_limit_handler(request: Request, exc):
    """Handle rate limit errors; free users are pointed at an upgrade."""
    retry_after = None
    if hasattr(exc, "headers") and exc.headers is not None:
        retry_after = exc.headers.get("Retry-After")

    return JSONResponse(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        content={
            "detail": str(exc.detail) if hasattr(exc, "detail") else "Rate limit exceeded",
            "retry_after": int(retry_after) if retry_after else None,
            "upgrade": True,
        },
        headers={"Retry-After": retry_after} if retry_after else None,
    )


# Include API routers
app.include_router(auth_router)
app.include_router(scans_router)
app.include_router(sites_router)
app.include_router(dashboard_router)
app.include_router(billing_router)
app.include_router(cron_router)
app.include_router(admin_router)


# Health check
@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "timestamp": datetime.utcnow().isoformat(),
        "version": settings.APP_VERSION,
    }


@app.get("/")
async def root():
    """Service information."""
    return {
        "name": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "docs": "/docs",
    }


# CLI mode entry point
if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "accessguard.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
        log_level="debug" if settings.DEBUG else "info",
    )
