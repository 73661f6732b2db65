"""
FastAPI application factory and main app configuration.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import logging

from . import __version__
from .api.routers import doctor as doctor_router
from .api.routers import health, medicines
from .api.utils.responses import fail
from .core.config import get_settings
from .core.exceptions import MedConnectException
from .core.structured_logger import configure_logging
from .domain.errors import DomainError
from .middleware.auth_middleware import AuthenticationMiddleware
from .middleware.request_context_middleware import RequestContextMiddleware

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    settings = get_settings()
    logger.info(f"🚀 Starting {settings.app_name} v{settings.app_version}")
    logger.info(f"📊 Environment: {settings.app_env}")
    logger.info(f"🔧 Debug mode: {settings.debug}")

    client = None
    try:
        from beanie import init_beanie
        from motor.motor_asyncio import AsyncIOMotorClient
        import certifi

        from .adapters.db.mongo.models.doctor_m import DoctorMongo

        mongo_uri = settings.database.uri
        timeout_ms = settings.database.server_selection_timeout_ms

        # Enable TLS only for Atlas SRV URIs
        if mongo_uri.startswith("mongodb+srv://"):
            client = AsyncIOMotorClient(
                mongo_uri,
                serverSelectionTimeoutMS=timeout_ms,
                tls=True,
                tlsCAFile=certifi.where(),
                tlsAllowInvalidCertificates=False,
            )
        else:
            client = AsyncIOMotorClient(mongo_uri, serverSelectionTimeoutMS=timeout_ms)

        await init_beanie(
            database=client[settings.database.db_name],
            document_models=[DoctorMongo],
        )
        logger.info("✅ Database connection established")
    except Exception as e:
        # Keep serving so /health/ready can report the outage.
        logger.error(f"❌ Database connection failed: {type(e).__name__}: {e}", exc_info=True)

    yield

    logger.info(f"🛑 Shutting down {settings.app_name}")
    if client is not None:
        client.close()


def create_app() -> FastAPI:
    """Create and configure FastAPI application."""
    settings = get_settings()
    configure_logging(settings.logging)

    app = FastAPI(
        title=settings.app_name,
        description="Doctor-facing telehealth backend: accounts, availability, sessions and records",
        version=settings.app_version,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # Middleware: the last one added runs first.
    app.add_middleware(AuthenticationMiddleware, api_prefix=settings.api_prefix)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors.allowed_origins,
        allow_credentials=settings.cors.allow_credentials,
        allow_methods=settings.cors.allowed_methods,
        allow_headers=settings.cors.allowed_headers,
        expose_headers=["X-Request-ID", "X-Process-Time"],
        max_age=600,
    )
    app.add_middleware(RequestContextMiddleware)

    app.include_router(health.router)
    app.include_router(doctor_router.router, prefix=settings.api_prefix)
    app.include_router(doctor_router.directory_router, prefix=settings.api_prefix)
    app.include_router(medicines.router, prefix=settings.api_prefix)

    @app.get("/", tags=["health"])
    async def root():
        """Root endpoint with API information."""
        prefix = settings.api_prefix
        return {
            "service": settings.app_name,
            "version": __version__,
            "environment": settings.app_env,
            "status": "running",
            "docs": "/docs",
            "endpoints": {
                "health": "/health",
                "register": f"POST {prefix}/doctor/register",
                "login": f"POST {prefix}/doctor/login",
                "profile": f"GET {prefix}/doctor/profile",
                "sessions": f"GET|POST {prefix}/doctor/sessions",
                "search": f"POST {prefix}/doctor/search",
                "directory": f"GET {prefix}/doctors",
                "medicines": f"GET {prefix}/medicines",
                "nearest_stores": f"GET {prefix}/medicines/nearest-stores",
            },
        }

    @app.exception_handler(DomainError)
    async def domain_error_handler(request: Request, exc: DomainError):
        return JSONResponse(
            status_code=400,
            content=fail(request, exc.error_code or "DOMAIN_ERROR", exc.message, exc.details).model_dump(mode="json"),
        )

    @app.exception_handler(MedConnectException)
    async def medconnect_error_handler(request: Request, exc: MedConnectException):
        req_id = getattr(request.state, "request_id", None)
        logger.error(
            f"{type(exc).__name__}: {exc.error_code} {exc.message} | request_id={req_id}",
            exc_info=exc.cause,
        )
        return JSONResponse(
            status_code=exc.status_code,
            content=fail(request, exc.error_code or "INTERNAL_ERROR", exc.message, exc.details).model_dump(mode="json"),
        )

    @app.exception_handler(RequestValidationError)
    async def pydantic_error_handler(request: Request, exc: RequestValidationError):
        req_id = getattr(request.state, "request_id", None)
        error_details = exc.errors()
        logger.warning(f"ValidationError on {request.method} {request.url.path}: {error_details} | request_id={req_id}")

        error_messages = []
        for error in error_details:
            loc = " -> ".join(str(x) for x in error.get("loc", []))
            msg = error.get("msg", "Validation error")
            error_messages.append(f"{loc}: {msg}")

        return JSONResponse(
            status_code=422,
            content=fail(
                request,
                "INVALID_INPUT",
                f"Input validation failed: {'; '.join(error_messages)}",
                {"errors": jsonable_errors(error_details), "path": request.url.path},
            ).model_dump(mode="json"),
        )

    @app.exception_handler(Exception)
    async def internal_error_handler(request: Request, exc: Exception):
        req_id = getattr(request.state, "request_id", None)
        logger.error(f"Unhandled error: {type(exc).__name__} | request_id={req_id}", exc_info=exc)
        return JSONResponse(
            status_code=500,
            content=fail(
                request, "INTERNAL_ERROR", "An unexpected error has occurred. Please try again later."
            ).model_dump(mode="json"),
        )

    return app


def jsonable_errors(errors):
    """Validation error entries may carry exception objects in ``ctx``."""
    return jsonable_encoder(errors, custom_encoder={Exception: str})


# Create the app instance
app = create_app()
