"""Polibook API application."""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from polibook.core.config import settings
from polibook.core.errors import ReservationError
from polibook.core.log_config import configure_logging
from polibook.routes import courts, reservations, venues


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    configure_logging()
    yield


app = FastAPI(
    title=settings.app_name,
    version="0.1.0",
    docs_url=f"{settings.api_prefix}/docs",
    openapi_url=f"{settings.api_prefix}/openapi.json",
    lifespan=lifespan,
)

# CORS - permissive in dev, lock down in production
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if settings.debug else [],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(ReservationError)
async def reservation_error_handler(request: Request, exc: ReservationError):
    """Business-rule outcomes are expected results, rendered like validation errors."""
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": [{"rule": exc.rule, "message": exc.message}]},
    )


# Mount routes
app.include_router(venues.router, prefix=settings.api_prefix)
app.include_router(courts.router, prefix=settings.api_prefix)
app.include_router(reservations.router, prefix=settings.api_prefix)


@app.get("/health")
async def health():
    return {"status": "ok"}
