"""
FastAPI main application for the Bookworm API.
"""

from contextlib import asynccontextmanager
from datetime import datetime

import structlog
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from api import activities, admin, books, reviews, users
from api import dependencies
from api.models import ErrorResponse, HealthResponse
from catalog.database import CatalogStore
from catalog.exceptions import DuplicateError, NotFoundError
from utilities.config import config
from utilities.logger import setup_logging

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    setup_logging(
        log_level=config.log_level,
        log_format=config.log_format,
        log_file=config.get_log_file_path(),
        debug=config.debug
    )
    logger.info("Starting Bookworm API")

    store = CatalogStore(config.mongodb_url, config.mongodb_database)
    try:
        await store.connect()
        logger.info("Database connection established")
    except Exception as e:
        logger.error("Failed to connect to database", error=str(e))
        raise

    dependencies.set_catalog_store(store)

    yield

    logger.info("Shutting down Bookworm API")
    dependencies.set_catalog_store(None)
    await store.disconnect()


app = FastAPI(
    title=config.api_title,
    description="""
    Book tracking API: browse the catalog, keep reading shelves, review books
    and get personalized recommendations. Admins moderate reviews, manage the
    catalog and view statistics.

    ## Authentication

    Register or log in to receive a session cookie. The same token can be sent
    as a Bearer token in the Authorization header.
    """,
    version=config.api_version,
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(users.router)
app.include_router(books.router)
app.include_router(reviews.router)
app.include_router(admin.router)
app.include_router(activities.router)


# Exception handlers
@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Handle HTTP exceptions."""
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(
            error=str(exc.detail),
            status_code=exc.status_code
        ).dict(),
        headers=getattr(exc, "headers", None)
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle request validation errors."""
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=ErrorResponse(
            error="Validation error",
            detail=str(exc.errors()),
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY
        ).dict()
    )


@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError):
    """Handle missing documents."""
    return JSONResponse(
        status_code=status.HTTP_404_NOT_FOUND,
        content=ErrorResponse(
            error=str(exc),
            status_code=status.HTTP_404_NOT_FOUND
        ).dict()
    )


@app.exception_handler(DuplicateError)
async def duplicate_handler(request: Request, exc: DuplicateError):
    """Handle uniqueness violations."""
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=ErrorResponse(
            error=str(exc),
            status_code=status.HTTP_400_BAD_REQUEST
        ).dict()
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle general exceptions."""
    logger.error("Unhandled exception", error=str(exc), path=request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=ErrorResponse(
            error="Internal server error",
            detail=str(exc) if config.debug else None,
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR
        ).dict()
    )


@app.get("/", tags=["Health"])
async def root():
    """Service banner."""
    return {"message": "Bookworm API is running..."}


# Health check endpoint (no authentication required)
@app.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check():
    """Health check endpoint."""
    db_status = "unavailable"
    if dependencies.catalog_store:
        health_info = await dependencies.catalog_store.health_check()
        db_status = health_info.get("status", "unknown")

    return HealthResponse(
        status="healthy" if db_status == "healthy" else "degraded",
        timestamp=datetime.utcnow(),
        version=config.api_version,
        database_status=db_status
    )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "api.main:app",
        host=config.host,
        port=config.port,
        reload=config.debug,
        log_level=config.log_level.lower()
    )
