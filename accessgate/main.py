"""Main FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from accessgate.api.v1.router import api_router
from accessgate.config import settings
from accessgate.core.exceptions import AccessGatewayError
from accessgate.core.rate_limiter import RateLimitMiddleware
from accessgate.db.mongodb import close_mongodb, init_mongodb
from accessgate.db.postgres import close_postgres, init_postgres
from accessgate.db.redis import close_redis, init_redis

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager for startup and shutdown events."""
    logger.info("Starting up access gateway...")
    await init_postgres()
    await init_mongodb()
    await init_redis()
    logger.info("All database connections established")

    yield

    logger.info("Shutting down access gateway...")
    await close_postgres()
    await close_mongodb()
    await close_redis()
    logger.info("All database connections closed")


async def access_error_handler(request: Request, exc: AccessGatewayError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    else:
        logger.info(f"{request.method} {request.url.path} refused: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="Access Gateway API",
        description="Role-based container access, invitations and access requests",
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # CORS Middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Rate Limiting Middleware
    app.add_middleware(RateLimitMiddleware)

    app.add_exception_handler(AccessGatewayError, access_error_handler)

    app.include_router(api_router, prefix=settings.API_V1_PREFIX)

    @app.get("/health", tags=["Health"])
    async def health_check() -> dict:
        """Health check endpoint."""
        return {"status": "healthy", "version": "1.0.0"}

    return app


app = create_app()
