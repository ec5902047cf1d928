import logging

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from app.core.config import settings
from app.core.outcomes import AuthProviderError
import app.models  # noqa: F401  # force model registration

from app.api.v1.admin import router as admin_router
from app.api.v1.access import router as access_router
from app.api.v1.auth import router as auth_router
from app.api.v1.barangays import router as barangays_router
from app.api.v1.invitations import router as invitations_router
from app.api.v1.onboarding import router as onboarding_router
from app.api.v1.users import router as users_router

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def create_application() -> FastAPI:
    app = FastAPI(title="Barangay Management API")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(AuthProviderError)
    async def auth_provider_error_handler(request: Request, exc: AuthProviderError):
        if exc.code == "USER_EXISTS":
            return JSONResponse(
                status_code=status.HTTP_409_CONFLICT,
                content={"detail": {"error": exc.code, "message": exc.message}},
            )
        logger.error("Identity provider error on %s %s: %s", request.method, request.url.path, exc.message)
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={
                "detail": {
                    "error": exc.code,
                    "message": "Authentication service is unavailable. Please try again.",
                }
            },
        )

    @app.exception_handler(SQLAlchemyError)
    async def database_error_handler(request: Request, exc: SQLAlchemyError):
        logger.exception("Database error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "detail": {
                    "error": "DATABASE_ERROR",
                    "message": "Something went wrong. Please try again.",
                }
            },
        )

    @app.get("/")
    def root():
        return {"status": "ok", "service": "barangay", "environment": settings.ENVIRONMENT}

    # Routers
    app.include_router(auth_router, prefix="/api/v1")
    app.include_router(access_router, prefix="/api/v1")
    app.include_router(invitations_router, prefix="/api/v1")
    app.include_router(onboarding_router, prefix="/api/v1")
    app.include_router(barangays_router, prefix="/api/v1")
    app.include_router(users_router, prefix="/api/v1")
    app.include_router(admin_router, prefix="/api/v1")

    return app


app = create_application()
