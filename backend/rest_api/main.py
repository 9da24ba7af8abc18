"""
REST API main application.
Entry point for the FastAPI REST server.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text

from rest_api.models import Base
from rest_api.routers.ingredient_lots import router as ingredient_lots_router
from rest_api.routers.production import lot_router as production_lot_router
from rest_api.routers.production import router as production_router
from rest_api.routers.recipes import router as recipes_router
from shared.config.logging import rest_api_logger as logger, setup_logging
from shared.config.settings import settings
from shared.infrastructure.correlation import CorrelationIdMiddleware
from shared.infrastructure.db import SessionLocal, engine
from shared.utils.exceptions import AppException


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.
    Runs on startup and shutdown.
    """
    # Initialize logging
    setup_logging()

    # Validate production secrets before startup
    secret_errors = settings.validate_production_secrets()
    if secret_errors:
        for error in secret_errors:
            logger.error("Configuration error", error=error)
        if settings.environment == "production":
            raise RuntimeError(
                f"Production configuration errors: {'; '.join(secret_errors)}. "
                "Server will not start with insecure configuration."
            )
        else:
            logger.warning(
                "Running with insecure defaults (acceptable for development only)"
            )

    # Startup
    logger.info("Starting REST API", port=settings.rest_api_port, env=settings.environment)

    Base.metadata.create_all(bind=engine)
    logger.info("Database tables created/verified")

    yield

    # Shutdown
    logger.info("Shutting down REST API")
    engine.dispose()


# Create FastAPI application
app = FastAPI(
    title="Recipe Revisions API",
    description="Recipe edits with change history, production versions and lot tracking",
    version="0.1.0",
    lifespan=lifespan,
)

# Correlation IDs for log records (X-Request-ID)
app.add_middleware(CorrelationIdMiddleware)

# CORS middleware for the recipe editor
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Request-ID"],
)


@app.exception_handler(AppException)
async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """Render domain errors as {detail, code} so callers can branch on the code."""
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "code": exc.code},
        headers=exc.headers,
    )


# =============================================================================
# Health Check
# =============================================================================


@app.get("/api/health")
def health_check():
    """Basic health check endpoint."""
    return {
        "status": "healthy",
        "service": "rest-api",
        "environment": settings.environment,
    }


@app.get("/api/health/detailed")
def detailed_health_check():
    """
    Detailed health check that verifies database connectivity.
    """
    checks = {
        "service": "rest-api",
        "environment": settings.environment,
        "dependencies": {},
    }

    try:
        with SessionLocal() as db:
            db.execute(text("SELECT 1"))
        checks["dependencies"]["database"] = {"status": "healthy"}
        checks["status"] = "healthy"
    except Exception as e:
        logger.error("Database health check failed", exc_info=True)
        checks["dependencies"]["database"] = {"status": "unhealthy", "error": str(e)}
        checks["status"] = "degraded"
        return JSONResponse(content=checks, status_code=503)

    return checks


# =============================================================================
# Include Routers
# =============================================================================

app.include_router(recipes_router)
app.include_router(production_router)
app.include_router(production_lot_router)
app.include_router(ingredient_lots_router)


# =============================================================================
# Development entry point
# =============================================================================

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "rest_api.main:app",
        host="0.0.0.0",
        port=settings.rest_api_port,
        reload=True,
    )
