"""
Mente Merecedora API

FastAPI application entry point.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from dotenv import load_dotenv

# Load environment variables
load_dotenv()

from fastapi import FastAPI, Request
from loguru import logger

from mentemerecedora import __version__
from .schemas import HealthResponse
from .routes import (
    admin_router,
    analytics_router,
    auth_router,
    content_router,
    diary_router,
    luzia_router,
    manifestation_router,
    media_router,
    practices_router,
    profile_router,
)
from .middleware import (
    setup_cors,
    setup_rate_limiting,
    setup_logging,
    setup_exception_handlers,
    RateLimitConfig,
    LoggingConfig,
    get_cors_config,
)
from .dependencies import (
    get_settings,
    init_services,
    Settings,
)


API_PREFIX = "/api"


# =============================================================================
# Application Lifespan
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan manager.

    Startup creates the tables and indexes the LUZ IA knowledge base;
    shutdown releases the database engine.
    """
    settings = app.state.settings
    services = app.state.services
    logger.info(f"Starting Mente Merecedora in {settings.environment} mode")

    try:
        services.startup()
        logger.info("Mente Merecedora started successfully")
        yield
    finally:
        logger.info("Shutting down Mente Merecedora...")
        services.shutdown()
        logger.info("Shutdown complete")


# =============================================================================
# Application Factory
# =============================================================================

def create_app(settings: Settings = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        settings: Application settings. If None, loads from environment.

    Returns:
        Configured FastAPI application.
    """
    if settings is None:
        settings = get_settings()

    app = FastAPI(
        title="Portal Mente Merecedora",
        description="Diário Quântico, manifestação, práticas guiadas e LUZ IA.",
        version=__version__,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        openapi_url="/openapi.json" if settings.debug else None,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.services = init_services(settings)

    # ==========================================================================
    # Middleware (order matters - last added = outermost)
    # ==========================================================================

    setup_logging(
        app,
        config=LoggingConfig(
            enabled=True,
            log_request_body=settings.debug,
        ),
        structured=settings.environment not in ("development", "test"),
    )

    setup_exception_handlers(app)

    if settings.rate_limit_enabled:
        setup_rate_limiting(
            app,
            config=RateLimitConfig(
                requests_per_minute=settings.rate_limit_requests_per_minute,
                enabled=settings.rate_limit_enabled,
                token_secret=settings.jwt_secret,
                token_algorithm=settings.jwt_algorithm,
            ),
        )

    setup_cors(app, config=get_cors_config(settings.environment))

    # ==========================================================================
    # Routers
    # ==========================================================================

    for router in (
        auth_router,
        profile_router,
        diary_router,
        manifestation_router,
        practices_router,
        luzia_router,
        analytics_router,
        content_router,
        admin_router,
        media_router,
    ):
        app.include_router(router, prefix=API_PREFIX)

    # ==========================================================================
    # Root Routes
    # ==========================================================================

    @app.get("/", include_in_schema=False)
    async def root():
        return {
            "name": "Portal Mente Merecedora",
            "version": __version__,
            "status": "running",
            "docs": "/docs" if settings.debug else None,
        }

    @app.get("/health", response_model=HealthResponse, tags=["System"])
    @app.get(f"{API_PREFIX}/health", response_model=HealthResponse, tags=["System"])
    def health_check(request: Request) -> HealthResponse:
        """Status of the database, the knowledge base and the LLM client."""
        services = request.app.state.services
        components = {}
        overall_healthy = True

        try:
            services.database.ping()
            components["database"] = "healthy"
        except Exception as e:
            logger.error(f"Database health check failed: {e}")
            components["database"] = f"unhealthy: {e}"
            overall_healthy = False

        knowledge_base = services.knowledge_base
        components["knowledge_base"] = (
            f"{knowledge_base.chunk_count} chunks"
            + (" (built-in)" if knowledge_base.using_fallback else "")
        )

        components["llm"] = "offline" if services.assistant.generator.is_offline else "configured"

        return HealthResponse(
            status="healthy" if overall_healthy else "degraded",
            version=__version__,
            components=components,
        )

    return app


# =============================================================================
# Application Instance
# =============================================================================

app = create_app()


# =============================================================================
# CLI Entry Point
# =============================================================================

def main():
    """Run the application using uvicorn."""
    import uvicorn

    settings = get_settings()

    uvicorn.run(
        "mentemerecedora.api.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
        workers=1,
        log_level="debug" if settings.debug else "info",
    )


if __name__ == "__main__":
    main()
