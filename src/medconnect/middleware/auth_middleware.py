"""
Authentication middleware - validates bearer tokens before request processing.

Account bootstrap endpoints (register, login, verify, password reset), the
public doctor directory, the medicine locator, health checks and docs are
open. Every other endpoint requires ``Authorization: Bearer <token>``.
"""
from fastapi import Request, HTTPException
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp
from ..core.auth import get_auth_service
import logging

logger = logging.getLogger(__name__)


class AuthenticationMiddleware(BaseHTTPMiddleware):
    """
    Middleware to enforce authentication on doctor endpoints.

    The resolved ``DoctorIdentity`` is stored on ``request.state.identity``.
    """

    STATIC_PUBLIC_PATHS = {
        "/",
        "/favicon.ico",
        "/docs",
        "/redoc",
        "/openapi.json",
        "/health",
        "/health/live",
        "/health/ready",
    }

    STATIC_PUBLIC_PREFIXES = {
        "/docs",
        "/redoc",
    }

    def __init__(self, app: ASGIApp, api_prefix: str = "") -> None:
        super().__init__(app)
        prefix = api_prefix.rstrip("/")
        self.public_paths = self.STATIC_PUBLIC_PATHS | {
            f"{prefix}/doctor/register",
            f"{prefix}/doctor/login",
            f"{prefix}/doctor/forgot-password",
            f"{prefix}/doctor/search",
            f"{prefix}/doctors",
            f"{prefix}/medicines",
            f"{prefix}/medicines/nearest-stores",
        }
        self.public_prefixes = self.STATIC_PUBLIC_PREFIXES | {
            f"{prefix}/doctor/verify",
            f"{prefix}/doctor/reset-password",
        }

    def is_public_endpoint(self, path: str) -> bool:
        """Check if endpoint is public and doesn't require authentication."""
        normalized_path = path.rstrip("/") or "/"

        if normalized_path in self.public_paths:
            return True

        for prefix in self.public_prefixes:
            if path.startswith(prefix + "/"):
                return True

        return False

    async def dispatch(self, request: Request, call_next):
        # CORS preflight carries no credentials
        if request.method == "OPTIONS" or self.is_public_endpoint(request.url.path):
            logger.debug(f"Public endpoint accessed: {request.url.path}")
            return await call_next(request)

        auth_service = get_auth_service()
        auth_header = request.headers.get("Authorization") or request.headers.get("authorization")

        try:
            identity = auth_service.get_identity_from_header(auth_header)
            request.state.identity = identity
            logger.debug(f"✅ Authenticated doctor: {identity.doctor_id} accessing {request.url.path}")

        except HTTPException as e:
            logger.warning(
                f"❌ Authentication failed for {request.method} {request.url.path}: {e.detail} "
                f"(IP: {request.client.host if request.client else 'unknown'})"
            )

            return JSONResponse(
                status_code=401,
                content={
                    "error": "UNAUTHORIZED",
                    "message": e.detail,
                    "details": {
                        "path": request.url.path,
                        "method": request.method,
                        "hint": "Provide Authorization Bearer token",
                    },
                },
                headers={"WWW-Authenticate": "Bearer"},
            )

        return await call_next(request)
