"""
FastAPI backend for small-business finance dashboards and marketing ideas.

Dashboard figures and marketing suggestions are served through a
read-through cache (Redis, SQLite or process memory).
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, ORJSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from core.container import container
from core.exceptions import AppError, error_body
from core.health import get_health_status, set_startup_time
from core.logging import configure_logging, get_logger
from middleware.auth import AuthMiddleware
from routers import auth, customers, dashboard, finance, marketing, products, profile, transactions

# Initialize settings and logging
settings = container.settings()
configure_logging(settings)
logger = get_logger(__name__)

# Suppress noisy loggers
import logging
logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
logging.getLogger("aiosqlite").setLevel(logging.WARNING)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan management."""
    logger.info("Starting business dashboard service")
    set_startup_time()

    await container.database().startup()
    await container.cache().startup()
    await container.cache().cleanup_expired()

    logger.info("Services started successfully", cache_backend=container.cache().backend_name)
    yield

    await container.cache().shutdown()
    await container.database().shutdown()
    logger.info("Services shutdown complete")


app = FastAPI(
    title="Business Dashboard Service",
    version="1.0.0",
    description="Financial dashboards, product and customer records, and marketing suggestions",
    lifespan=lifespan,
    default_response_class=ORJSONResponse
)


def _failure(status_code: int, error: dict) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": error})


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    if exc.status_code >= 500:
        logger.error("Request failed", path=request.url.path, code=exc.code, error=exc.message)
    else:
        logger.info("Request rejected", path=request.url.path, code=exc.code, status=exc.status_code)
    return _failure(exc.status_code, exc.to_error())


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    details = [
        {"field": ".".join(str(part) for part in err["loc"][1:]) or str(err["loc"][0]), "message": err["msg"]}
        for err in exc.errors()
    ]
    return _failure(
        status.HTTP_400_BAD_REQUEST,
        error_body("VALIDATION_ERROR", "Request validation failed", details=details)
    )


class CatchAllExceptionsMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        try:
            return await call_next(request)
        except Exception as e:
            logger.error("Unhandled exception", path=request.url.path,
                         error_type=type(e).__name__, error=str(e), exc_info=True)
            message = f"{type(e).__name__}: {e}" if settings.is_development else "Internal server error"
            return _failure(
                status.HTTP_500_INTERNAL_SERVER_ERROR,
                error_body("INTERNAL_SERVER_ERROR", message)
            )


# Each add_middleware wraps the previous one: CORS outermost, auth innermost
app.add_middleware(AuthMiddleware)
app.add_middleware(CatchAllExceptionsMiddleware)

logger.info("Configuring CORS middleware", origins_count=len(settings.cors_origins))
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth.router)
app.include_router(profile.router)
app.include_router(products.router)
app.include_router(customers.router)
app.include_router(transactions.router)
app.include_router(dashboard.router)
app.include_router(finance.router)
app.include_router(marketing.router)


@app.get("/health")
async def health_check():
    """Database and cache status. Returns 503 when the database is down."""
    health = await get_health_status(container.database(), container.cache(), settings)
    code = status.HTTP_503_SERVICE_UNAVAILABLE if health["status"] == "unhealthy" else status.HTTP_200_OK
    return ORJSONResponse(status_code=code, content=health)


if __name__ == "__main__":
    import uvicorn
    logger.info("Starting business dashboard service",
                host=settings.host, port=settings.port, debug=settings.debug)
    uvicorn.run(
        "main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        workers=1 if settings.debug else settings.workers
    )
