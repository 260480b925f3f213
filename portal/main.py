"""FastAPI main application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from portal.core.config import settings
from portal.core.exceptions import PortalError
from portal.core.middleware import setup_middleware
from portal.db.base import Base
from portal.db.session import SessionLocal, engine
from portal import models  # noqa: F401  (registers tables on Base.metadata)

from portal.api.auth import router as auth_router
from portal.api.files import router as files_router
from portal.api.projects import router as projects_router

API_VERSION = "1.0.0"

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger("portal")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    logger.info("Starting %s API (%s)", settings.APP_NAME, settings.ENVIRONMENT)
    Base.metadata.create_all(bind=engine)

    # Buckets are optional at boot; uploads fail loudly later if MinIO stays down
    try:
        from portal.services.file_service import FileService
        db = SessionLocal()
        try:
            FileService(db).ensure_buckets()
        finally:
            db.close()
        logger.info("MinIO buckets ready")
    except Exception as e:
        logger.warning("MinIO not available: %s", e)

    yield

    logger.info("Shutting down %s API", settings.APP_NAME)


app = FastAPI(
    title=f"{settings.APP_NAME} API",
    description="Customer portal: accounts, 2FA, projects and file storage",
    version=API_VERSION,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

setup_middleware(app)


@app.exception_handler(PortalError)
async def portal_exception_handler(request: Request, exc: PortalError):
    if exc.status_code >= 500:
        logger.error(
            "%s on %s %s: %s", type(exc).__name__, request.method, request.url.path, exc.message,
            exc_info=exc,
        )
        detail = "Internal server error"
    else:
        detail = exc.message
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": detail, "code": exc.code},
        headers=headers,
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = [{"loc": list(err["loc"]), "msg": err["msg"]} for err in exc.errors()]
    return JSONResponse(
        status_code=400,
        content={"detail": "Validation error", "code": "validation_error", "errors": errors},
    )


@app.exception_handler(SQLAlchemyError)
async def database_exception_handler(request: Request, exc: SQLAlchemyError):
    logger.exception("Database error on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error", "code": "internal_error"},
    )


app.include_router(auth_router, prefix="/api")
app.include_router(projects_router, prefix="/api")
app.include_router(files_router, prefix="/api")


@app.get("/")
async def root():
    return {
        "name": settings.APP_NAME,
        "version": API_VERSION,
        "docs": "/docs",
    }


@app.get("/health")
async def health():
    """Quick health check endpoint."""
    return {
        "status": "ok",
        "version": API_VERSION,
        "environment": settings.ENVIRONMENT,
    }
