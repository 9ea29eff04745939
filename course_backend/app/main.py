"""
Course Backend
FastAPI application entry point

- Error sanitization middleware and CourseError → status mapping
- Lifespan: logging, tables, Redis, super-admin bootstrap
- Health endpoint with DB and Redis ping
"""
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text

from app.api import api_router
from app.core.config import Settings, settings
from app.core.database import AsyncSessionLocal, create_tables, get_db_session
from app.core.error_handler import ErrorSanitizationMiddleware, register_exception_handlers
from app.core.logging_config import configure_logging
from app.core.redis_client import close_redis, get_redis
from app.core.security import PasswordHasher
from app.services.admin_auth_service import AdminAuthService
from app.services.admin_store import AdminStore
from app.services.credential_store import CredentialStore
from app.services.session_store import SessionStore
from app.services.token_service import TokenService

logger = logging.getLogger(__name__)


async def bootstrap_super_admin(config: Settings) -> None:
    """Provision SUPER_ADMIN_LOGIN on first start."""
    hasher = PasswordHasher(config.SECRET, config.BCRYPT_ROUNDS)
    async with get_db_session() as db:
        sessions = SessionStore(db)
        service = AdminAuthService(
            db,
            AdminStore(db, hasher),
            sessions,
            TokenService.from_settings(sessions, config),
            CredentialStore(db, hasher),
        )
        await service.bootstrap_super_admin(
            config.SUPER_ADMIN_LOGIN,
            config.SUPER_ADMIN_PASSWORD,
            config.SUPER_ADMIN_QR_PATH,
        )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize logging, schema, Redis and the super-admin on startup."""
    configure_logging(settings)

    await create_tables()
    logger.info("Database schema ready")

    app.state.redis = await get_redis(settings.REDIS_DSN)

    await bootstrap_super_admin(settings)
    logger.info(f"{settings.APP_NAME} API started on port {settings.PORT}")

    yield

    await close_redis()
    logger.info(f"{settings.APP_NAME} API shutting down")


def create_app() -> FastAPI:
    app = FastAPI(
        lifespan=lifespan,
        title=f"{settings.APP_NAME} API",
        description="Authentication and session core of the Course platform",
        version="1.0.0",
        docs_url="/docs" if settings.DEBUG else None,
        redoc_url=None,
    )

    register_exception_handlers(app)

    app.add_middleware(ErrorSanitizationMiddleware, debug=settings.DEBUG)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(api_router, prefix=f"/api/{settings.API_VERSION}")

    @app.get("/health", tags=["Health"])
    async def health_check():
        """
        Health check with actual DB and Redis ping.
        Returns 503 if either store is unreachable.
        """
        health_status = {
            "status": "healthy",
            "database": "unknown",
            "redis": "unknown",
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

        try:
            async with AsyncSessionLocal() as db:
                await db.execute(text("SELECT 1"))
            health_status["database"] = "connected"
        except Exception as e:
            health_status["database"] = f"error: {type(e).__name__}"
            health_status["status"] = "unhealthy"

        try:
            await app.state.redis.ping()
            health_status["redis"] = "connected"
        except Exception as e:
            health_status["redis"] = f"error: {type(e).__name__}"
            health_status["status"] = "unhealthy"

        if health_status["status"] != "healthy":
            return JSONResponse(status_code=503, content=health_status)
        return health_status

    return app


app = create_app()
