# campus journal backend api
# fastapi app with async mongodb, consent-gated journaling, privacy-preserving analytics

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from campus_journal.config import settings
from campus_journal.errors import AppError, ValidationError
from campus_journal.services.db import db
from campus_journal.validation import field_errors
from campus_journal.routers import auth, users, journals, analytics, realtime

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """startup: connect to mongodb and ensure indexes. shutdown: close connection."""
    logger.info("Starting campus journal backend...")
    await db.connect()
    await db.ensure_indexes()
    logger.info("Campus journal backend ready")
    yield
    logger.info("Shutting down campus journal backend...")
    await db.close()


app = FastAPI(
    title="Campus Journal API",
    description="Private mental-health journaling for students with consent, retention and anonymized analytics",
    version="0.1.0",
    lifespan=lifespan,
)

# cors, allow frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.FRONTEND_URL, "http://localhost:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# error handlers

@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    error = ValidationError(field_errors(exc.errors()))
    return JSONResponse(status_code=error.status_code, content=error.to_dict())


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    content = {"kind": "internal_error", "message": "Something went wrong"}
    if settings.is_development:
        content["error"] = str(exc)
    return JSONResponse(status_code=500, content=content)


# register routers
app.include_router(auth.router)
app.include_router(users.router)
app.include_router(journals.router)
app.include_router(analytics.router)
app.include_router(realtime.router)


@app.get("/health")
async def health_check():
    """basic health check endpoint"""
    return {
        "status": "ok",
        "service": "campus-journal-api",
        "environment": settings.ENVIRONMENT,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
