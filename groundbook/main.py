import logging
import os
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import DBAPIError, OperationalError

from . import models  # noqa: F401 - registers tables with Base
from .cache import get_cache_stats
from .database import Base, engine
from .domain.bookings.router import admin_router as admin_bookings_router
from .domain.bookings.router import router as bookings_router
from .domain.errors import BookingError
from .domain.grounds.router import router as grounds_router
from .routes.status_automation import router as status_router
from .security_headers import SecurityHeadersMiddleware

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Keep HTTP client chatter (Google key fetches) out of the app log
for noisy in ("httpx", "httpcore"):
    logging.getLogger(noisy).setLevel(logging.WARNING)

SECURITY_HEADERS_ENABLED = os.getenv("SECURITY_HEADERS_ENABLED", "true").lower() == "true"
ALLOWED_ORIGINS = [
    origin.strip()
    for origin in os.getenv("ALLOWED_ORIGINS", "http://localhost:5173,http://localhost:3000").split(",")
    if origin.strip()
]


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("🏏 Ground booking API starting")
    try:
        Base.metadata.create_all(bind=engine, checkfirst=True)
        logger.info("✅ Booking tables ready")
    except Exception as e:
        # Several uvicorn workers may race to create the same tables
        if "already exists" in str(e) or "duplicate key" in str(e):
            logger.info("ℹ️ Booking tables were created by another worker")
        else:
            logger.error(f"❌ Could not create booking tables: {e}")

    yield
    logger.info("Ground booking API stopped")


app = FastAPI(title="Ground Booking API", version="1.0.0", lifespan=lifespan)


@app.exception_handler(BookingError)
async def booking_error_handler(request: Request, exc: BookingError):
    """Typed domain errors become {"error", "detail"} with their own status code"""
    logger.warning(f"{request.method} {request.url.path} - {exc.code}: {exc.detail}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(OperationalError)
@app.exception_handler(DBAPIError)
async def storage_error_handler(request: Request, exc: DBAPIError):
    """Storage faults abort the request; no partial state is assumed"""
    logger.error(f"❌ Storage failure on {request.method} {request.url.path}: {exc}")
    return JSONResponse(
        status_code=503,
        content={"error": "storage_unavailable", "detail": "Service temporarily unavailable"},
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """
    A missing bearer token surfaces as a header validation error;
    report it as 401 instead of 422
    """
    errors = exc.errors()
    if any("authorization" in str(error.get("loc", "")).lower() for error in errors):
        logger.warning(f"🔒 {request.url.path} called without a bearer token")
        return JSONResponse(
            status_code=401,
            content={"error": "not_authenticated", "detail": "Sign in to continue"},
        )

    logger.warning(f"Invalid request to {request.url.path}: {errors}")
    return JSONResponse(
        status_code=422,
        content={
            "error": "validation_error",
            "detail": [
                {"loc": list(e.get("loc", ())), "msg": e.get("msg"), "type": e.get("type")}
                for e in errors
            ],
        },
    )


if SECURITY_HEADERS_ENABLED:
    app.add_middleware(
        SecurityHeadersMiddleware, exclude_paths=["/health", "/docs", "/openapi.json"]
    )
else:
    logger.warning("⚠️ Security headers are off; development use only")

logger.info(f"CORS origins: {ALLOWED_ORIGINS}")
app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type"],
)

app.include_router(grounds_router)
app.include_router(bookings_router)
app.include_router(admin_bookings_router)
app.include_router(status_router)


@app.get("/")
def root():
    return {"message": "Ground Booking API is running"}


@app.get("/health")
def health():
    return {"status": "healthy"}


@app.get("/health/redis")
def redis_health_check():
    """Redis round-trip time plus cache status, for uptime monitors"""
    from .rate_limiter import get_redis_client

    try:
        client = get_redis_client()
        started = time.perf_counter()
        client.ping()
        elapsed_ms = (time.perf_counter() - started) * 1000
    except Exception as e:
        return {"status": "unhealthy", "redis": {"connected": False, "error": str(e)}}

    return {
        "status": "healthy",
        "redis": {"connected": True, "response_time_ms": round(elapsed_ms, 2)},
        "cache": get_cache_stats(),
    }
