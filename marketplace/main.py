import asyncio
import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from starlette.exceptions import HTTPException as StarletteHTTPException

from marketplace.api.routes import bookings, providers, reviews, service_types, services
from marketplace.core.config import _ENV_FILE, settings
from marketplace.core.db import create_engine_from_settings, create_session_maker
from marketplace.services.booking_service import complete_elapsed_bookings

if os.getenv("ENV") != "production":
    logging.basicConfig(level=logging.DEBUG)
else:
    logging.basicConfig(
        level=logging.INFO,
        format='{"time": "%(asctime)s", "level": "%(levelname)s", "message": "%(message)s"}',
    )
logger = logging.getLogger(__name__)


async def run_booking_completion(session_maker: async_sessionmaker[AsyncSession]) -> None:
    """Mark APPROVED bookings that already ended as COMPLETED."""
    try:
        async with session_maker() as session:
            try:
                n = await complete_elapsed_bookings(session)
                await session.commit()
                if n:
                    logger.info("Booking completion: %d booking(s) marked COMPLETED", n)
            except Exception:
                await session.rollback()
                raise
    except Exception as e:
        logger.exception("Booking completion failed: %s", e)


async def _completion_loop(session_maker: async_sessionmaker[AsyncSession]) -> None:
    while True:
        await asyncio.sleep(settings.booking_completion_interval_seconds)
        await run_booking_completion(session_maker)


def _cors_headers(origin: str | None) -> dict[str, str]:
    """Add CORS headers to error responses so the browser doesn't block them."""
    headers = {
        "Access-Control-Allow-Credentials": "true",
        "Access-Control-Allow-Methods": "GET, POST, PUT, PATCH, DELETE, OPTIONS",
        "Access-Control-Allow-Headers": "Authorization, Content-Type",
    }
    if origin and origin in settings.cors_origins_list:
        headers["Access-Control-Allow-Origin"] = origin
    elif settings.cors_origins_list:
        headers["Access-Control-Allow-Origin"] = settings.cors_origins_list[0]
    return headers


def create_app(
    session_maker: async_sessionmaker[AsyncSession] | None = None,
    run_background_jobs: bool = True,
) -> FastAPI:
    """Build the API. The database handle is created once here (or injected by tests)
    and handed to request handlers through app.state."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        engine = None
        if app.state.session_maker is None:
            engine = create_engine_from_settings()
            app.state.session_maker = create_session_maker(engine)
        task = None
        if run_background_jobs:
            # Startup: run once, then periodically
            await run_booking_completion(app.state.session_maker)
            task = asyncio.create_task(_completion_loop(app.state.session_maker))
        logger.info("Loading .env from: %s (exists: %s)", _ENV_FILE, _ENV_FILE.exists())
        if not settings.email_enabled:
            logger.warning("Email: NOT configured. Booking e-mails are skipped (notifications are still stored)")
        yield
        if task is not None:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        if engine is not None:
            await engine.dispose()

    app = FastAPI(
        title="Marketplace API",
        description="Services marketplace: availability, slots, bookings, reviews",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    app.state.session_maker = session_maker

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type"],
    )

    app.include_router(providers.router, prefix="/api/v1")
    app.include_router(bookings.router, prefix="/api/v1")
    app.include_router(services.router, prefix="/api/v1")
    app.include_router(service_types.router, prefix="/api/v1")
    app.include_router(reviews.router, prefix="/api/v1")

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        """Malformed or missing fields are client errors (400), reported with pydantic's details."""
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"detail": {"error": "Invalid request", "errors": jsonable_encoder(exc.errors())}},
            headers=_cors_headers(request.headers.get("origin")),
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        """Raised errors keep their status, detail and headers, plus CORS."""
        headers = _cors_headers(request.headers.get("origin"))
        if exc.headers:
            headers.update(exc.headers)
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.detail},
            headers=headers,
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """JSON for every unhandled error; include CORS so error responses are not blocked by browser."""
        logger.exception("Unhandled exception: %s", exc)
        return JSONResponse(
            status_code=500,
            content={"detail": "Internal server error"},
            headers=_cors_headers(request.headers.get("origin")),
        )

    @app.get("/health")
    async def health() -> dict:
        return {"status": "ok"}

    return app


app = create_app()
