"""
comfin/main.py

Purpose: Application entry point

- Builds the FastAPI app (create_app) around an owned database handle,
  mailer and settings
- Loads configuration and logging
- Registers API routes (auth, forms, admin)
- No business logic should be written here
- Manages application lifecycle (startup/shutdown)
"""

from contextlib import asynccontextmanager
from typing import Optional
import time

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from comfin.api import admin, auth, forms
from comfin.core.config import Settings, settings, validate_settings
from comfin.core.errors import add_exception_handlers
from comfin.core.logging import setup_logging, get_logger
from comfin.db.indexes import create_indexes
from comfin.db.mongo import MongoDatabase
from comfin.services.email_service import EmailService
from comfin.services.otp_service import OtpMailer

logger = get_logger(__name__)

VERSION = "1.0.0"


def create_app(
    database: Optional[MongoDatabase] = None,
    mailer: Optional[OtpMailer] = None,
    config: Optional[Settings] = None,
) -> FastAPI:
    """
    Builds the application.

    Args:
        database: An already-connected database; when omitted one is
            created from MONGODB_URL and connected at startup
        mailer: Anything with send_otp_email(); defaults to SMTP delivery
        config: Settings; defaults to the environment-loaded singleton

    Returns:
        Configured FastAPI app
    """
    config = config or settings
    owns_database = database is None
    db = database or MongoDatabase(url=config.MONGODB_URL, db_name=config.MONGODB_DB_NAME)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        Application lifespan manager.
        Handles startup and shutdown events.
        """
        # Startup
        logger.info("🚀 Starting Com Financial API...")

        try:
            validate_settings(config)
            logger.info("✅ Configuration validated")

            if owns_database:
                logger.info("Connecting to MongoDB...")
                await db.connect()

            await create_indexes(db)

            logger.info("🎉 Com Financial API started successfully!")
            logger.info(f"Environment: {config.ENVIRONMENT}")
            logger.info(f"Debug Mode: {config.DEBUG}")

        except Exception as e:
            logger.critical(f"Failed to start application: {str(e)}", exc_info=True)
            raise

        yield  # Application runs here

        # Shutdown
        logger.info("🛑 Shutting down Com Financial API...")
        if owns_database:
            await db.close()
        logger.info("👋 Com Financial API shut down successfully")

    app = FastAPI(
        title="Com Financial Services API",
        description="Tax filing intake, review workflow and account management",
        version=VERSION,
        lifespan=lifespan,
        debug=config.DEBUG,
        docs_url="/docs" if config.is_development else None,  # Disable docs in production
        redoc_url="/redoc" if config.is_development else None,
    )

    app.state.settings = config
    app.state.db = db
    app.state.mailer = mailer or EmailService(config)

    # CORS Middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Request timing middleware
    @app.middleware("http")
    async def add_process_time_header(request: Request, call_next):
        """Add processing time header to all responses."""
        start_time = time.time()
        response = await call_next(request)
        process_time = time.time() - start_time
        response.headers["X-Process-Time"] = str(process_time)

        # Log slow requests
        if process_time > 5.0:  # More than 5 seconds
            logger.warning(
                f"Slow request detected: {request.method} {request.url.path}",
                extra={"process_time": process_time}
            )

        return response

    add_exception_handlers(app, config)

    app.include_router(auth.router, prefix=config.API_PREFIX)
    app.include_router(forms.router, prefix=config.API_PREFIX)
    app.include_router(admin.router, prefix=config.API_PREFIX)

    # Root endpoint
    @app.get("/", tags=["Health"])
    async def root():
        """Root endpoint - basic info."""
        return {
            "name": "Com Financial Services API",
            "version": VERSION,
            "status": "running",
            "environment": config.ENVIRONMENT
        }

    # Health check endpoint
    @app.get(f"{config.API_PREFIX}/health", tags=["Health"])
    async def health_check():
        """
        Reports service status and database connectivity.
        """
        db_healthy = await db.ping()
        health_status = {
            "status": "healthy" if db_healthy else "degraded",
            "timestamp": time.time(),
            "environment": config.ENVIRONMENT,
            "version": VERSION,
            "checks": {"database": "healthy" if db_healthy else "unhealthy"},
        }
        status_code = 200 if db_healthy else 503
        return JSONResponse(content=health_status, status_code=status_code)

    return app


setup_logging()
app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "comfin.main:app",
        host="0.0.0.0",
        port=5000,
        reload=settings.is_development,
        log_level=settings.LOG_LEVEL.lower()
    )
