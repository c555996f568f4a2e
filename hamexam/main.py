"""
Main FastAPI application
Ham radio exam practice: answer integrity, progress and gamification bookkeeping
"""
from fastapi import FastAPI, Request, HTTPException
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import logging
import os
import time
import uuid

from hamexam.config import settings
from hamexam.database import SessionLocal, check_database, init_db
from hamexam.exceptions import HamExamError
from hamexam.api import admin, ai, exams, points, practice, questions, users
from hamexam.services.points_service import points_service
from hamexam.utils.cache import cache_service
from hamexam.utils.rate_limiter import RateLimiter

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

UNLIMITED_PATHS = {"/health", "/health/ready", "/docs", "/redoc", "/openapi.json"}

app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Practice, mock exams, streaks and AI explanations for amateur radio licence question banks",
    docs_url="/docs",
    redoc_url="/redoc"
)

# Process-wide limiter; tests swap or reset it through app.state
app.state.rate_limiter = RateLimiter(
    limit=settings.RATE_LIMIT_REQUESTS,
    window_ms=settings.RATE_LIMIT_WINDOW_MS,
    trust_forwarded=settings.TRUST_PROXY_HEADERS
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def rate_limit_middleware(request: Request, call_next):
    """Global fixed-window limit per client, reported in X-RateLimit-* headers"""

    if request.url.path in UNLIMITED_PATHS:
        return await call_next(request)

    limiter = request.app.state.rate_limiter
    try:
        result = limiter.check_rate_limit(request)
    except HTTPException as e:
        return JSONResponse(status_code=e.status_code, content=e.detail, headers=e.headers)

    response = await call_next(request)
    response.headers["X-RateLimit-Limit"] = str(limiter.limit)
    response.headers["X-RateLimit-Remaining"] = str(result.remaining)
    response.headers["X-RateLimit-Reset"] = str(result.reset_at // 1000)
    return response


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log every request with timing under a request id"""

    request_id = request.headers.get("x-request-id") or uuid.uuid4().hex[:12]
    start_time = time.time()

    response = await call_next(request)

    duration = time.time() - start_time
    response.headers["X-Request-ID"] = request_id
    logger.info(
        f"[{request_id}] {request.method} {request.url.path} - "
        f"Status: {response.status_code} - "
        f"Duration: {duration:.3f}s"
    )

    return response


# Exception handlers

@app.exception_handler(HamExamError)
async def hamexam_exception_handler(request: Request, exc: HamExamError):
    """Render service errors with their own status and error code"""

    if exc.status_code >= 500:
        logger.error(f"{exc.error_code} on {request.url.path}: {exc.message}")
    else:
        logger.info(f"{exc.error_code} on {request.url.path}: {exc.message}")

    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": exc.error_code,
            "message": exc.message,
            "status_code": exc.status_code
        }
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    """Same envelope for framework errors; dict details are merged in"""

    content = {
        "error": "http_error",
        "message": exc.detail,
        "status_code": exc.status_code
    }
    if isinstance(exc.detail, dict):
        content.update(exc.detail)

    return JSONResponse(status_code=exc.status_code, content=content, headers=exc.headers)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=422,
        content={
            "error": "validation_error",
            "message": "Request validation failed",
            "status_code": 422,
            "details": jsonable_encoder(exc.errors())
        }
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Last resort; details only in DEBUG"""

    logger.error(f"Unhandled exception on {request.url.path}: {str(exc)}", exc_info=True)

    return JSONResponse(
        status_code=500,
        content={
            "error": "internal_server_error",
            "message": "An unexpected error occurred. Please try again later.",
            "detail": str(exc) if settings.DEBUG else None
        }
    )


# Health

@app.get("/health")
async def health_check():
    """Liveness probe"""
    return {
        "status": "healthy",
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "timestamp": time.time()
    }


@app.get("/health/ready")
async def readiness_check():
    """
    Readiness probe

    The database is required; Redis is reported but optional since the
    cache degrades to misses.
    """
    checks = {
        "database": check_database(),
        "redis": cache_service.ping(),
    }
    ready = checks["database"]

    return JSONResponse(
        status_code=200 if ready else 503,
        content={"status": "ready" if ready else "not_ready", "checks": checks}
    )


@app.get("/")
async def root():
    return {
        "name": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "documentation": {"swagger": "/docs", "redoc": "/redoc"},
        "health": "/health"
    }


app.include_router(questions.router)
app.include_router(practice.router)
app.include_router(exams.router)
app.include_router(points.router)
app.include_router(ai.router)
app.include_router(users.router)
app.include_router(admin.router)


@app.on_event("startup")
async def startup_event():
    """Create tables, seed the points config and prepare the library archive"""
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")

    try:
        init_db()
        db = SessionLocal()
        try:
            config = points_service.get_config(db)
            logger.info(f"Points config ready ({config.points_name})")
        finally:
            db.close()
    except Exception as e:
        logger.error(f"Failed to initialize database: {str(e)}")
        raise

    os.makedirs(settings.LIBRARY_FILE_DIR, exist_ok=True)
    logger.info("Application startup complete")


@app.on_event("shutdown")
async def shutdown_event():
    logger.info("Shutting down application")


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "hamexam.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG
    )
