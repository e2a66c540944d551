import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from stagify.config import settings
from stagify.database import Base, engine
from stagify.exception_handlers import register_exception_handlers
from stagify.middleware.logging import StructuredLoggingMiddleware
from stagify.routes import projects, tenants, usage
from stagify.services.generation_service import GenerationClient, build_generation_client
from stagify.services.storage_service import LocalObjectStorage, ObjectStorage

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Tasks to run at application startup and shutdown."""
    logger.info("Starting up %s (%s)", settings.app_name, settings.environment)
    if settings.debug:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database tables created (if not existing).")
    yield
    logger.info("Shutting down the application...")
    await engine.dispose()


def create_app(
    generation_client: GenerationClient | None = None,
    storage: ObjectStorage | None = None,
) -> FastAPI:
    """
    Create the FastAPI application.

    The generation client and object storage are chosen here, once. Tests
    pass their own; otherwise GENERATION_BACKEND and STORAGE_ROOT decide.
    """
    app = FastAPI(
        title=settings.app_name,
        description="Multi-tenant virtual staging backend powered by FastAPI",
        debug=settings.debug,
        version=settings.app_version,
        lifespan=lifespan,
    )

    app.state.generation_client = generation_client or build_generation_client(settings)
    app.state.storage = storage or LocalObjectStorage(settings.storage_root, settings.storage_public_url)
    logger.info("Image generation backend: %s", app.state.generation_client.name)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(StructuredLoggingMiddleware)

    register_exception_handlers(app)

    # Include routers
    app.include_router(tenants.router, prefix="/api/v1")
    app.include_router(projects.router, prefix="/api/v1")
    app.include_router(usage.router, prefix="/api/v1")

    @app.get("/health", tags=["Health"])
    async def health():
        return {"status": "healthy", "version": settings.app_version}

    if settings.debug:
        logger.info("Running in %s mode", settings.environment)
        logging.getLogger("sqlalchemy.engine").setLevel(logging.INFO)

    return app
