"""Authentication middleware for route protection."""

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from core.container import container
from core.exceptions import error_body
from core.logging import bind_request_context, clear_request_context, get_logger

logger = get_logger(__name__)

# Public routes that don't require authentication
PUBLIC_PATHS = frozenset([
    "/health",
    "/docs",
    "/openapi.json",
    "/redoc",
    "/api/auth/login",
    "/api/auth/register",
])


def _unauthorized(message: str) -> JSONResponse:
    logger.info("Request not authenticated", reason=message)
    return JSONResponse(
        status_code=401,
        content={"success": False, "error": error_body("UNAUTHORIZED", message)}
    )


class AuthMiddleware(BaseHTTPMiddleware):
    """Middleware to protect routes requiring authentication."""

    async def dispatch(self, request: Request, call_next):
        path = request.url.path
        clear_request_context()
        bind_request_context(path=path, method=request.method)

        if request.method == "OPTIONS" or self._is_public_path(path):
            return await call_next(request)

        header = request.headers.get("authorization", "")
        scheme, _, token = header.partition(" ")
        if scheme.lower() != "bearer" or not token:
            return _unauthorized("Not authenticated")

        user_auth = container.user_auth_service()
        payload = user_auth.verify_token(token.strip())

        if not payload or not payload.get("sub"):
            return _unauthorized("Invalid or expired token")

        # Attach user info to request state for downstream handlers
        request.state.user_id = payload["sub"]
        request.state.user_email = payload.get("email")
        bind_request_context(user_id=payload["sub"])

        return await call_next(request)

    def _is_public_path(self, path: str) -> bool:
        return path in PUBLIC_PATHS or path.rstrip("/") in PUBLIC_PATHS


def current_user_id(request: Request) -> str:
    """Route dependency returning the id set by AuthMiddleware."""
    return request.state.user_id
