"""FastAPI application factory and entry point.

Run with ``uvicorn inspiration_gallery.main:create_app --factory`` or the
``inspiration-gallery`` console script.
"""

from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from .config import Settings
from .context import AppContext
from .errors import register_exception_handlers
from .logger import logger, setup_logger
from .middleware import (
    add_request_id_middleware,
    request_logging_middleware,
    security_headers_middleware,
)
from .monitoring import setup_monitoring
from .routes import limiter, router

# ==================== Application Lifecycle ====================


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Connect the shared context on startup and release it on shutdown."""
    context: AppContext = app.state.context
    settings = context.settings
    logger.info(f"Starting {settings.APP_NAME} in {settings.APP_ENV} mode")

    await context.connect()
    logger.info(f"{settings.APP_NAME} started successfully - ready to accept requests")

    yield

    logger.info(f"Shutting down {settings.APP_NAME}...")
    await context.close()
    logger.info(f"{settings.APP_NAME} shutdown complete")

# ==================== Application Setup ====================


def create_app(settings: Settings | None = None, context: AppContext | None = None) -> FastAPI:
    """Build the application around an AppContext (created from settings when not given)."""
    if settings is None:
        settings = context.settings if context is not None else Settings()
    setup_logger(settings)

    app = FastAPI(title=settings.APP_NAME, lifespan=lifespan)
    app.state.context = context or AppContext(settings)

    # Middleware registration (last registered = outermost layer)
    app.middleware("http")(security_headers_middleware)
    app.middleware("http")(request_logging_middleware)
    app.middleware("http")(add_request_id_middleware)

    # CORS middleware; credentials are needed for the session cookie
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.get_cors_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Rate limiting
    limiter.enabled = settings.RATE_LIMIT_ENABLED
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    register_exception_handlers(app)
    app.include_router(router)

    # Prometheus metrics (only when ENABLE_METRICS=true)
    setup_monitoring(app)

    return app


def run() -> None:
    """Serve the app with uvicorn on the configured host and port."""
    settings = Settings()
    uvicorn.run(
        "inspiration_gallery.main:create_app",
        factory=True,
        host=settings.HOST,
        port=settings.PORT,
    )


if __name__ == "__main__":
    run()
