from contextlib import asynccontextmanager
import logging
import os

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from apps.api.routes import health, search
from apps.core.config import settings
from apps.core.db import check_db_connectivity, engine
from apps.core.errors import AppError

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("startup (env=%s, port=%s)", settings.environment, os.getenv("PORT", "8000"))
    if check_db_connectivity():
        logger.info("Database connectivity verified")
    else:
        # поиск ответит 503, пока база не поднимется
        logger.error("Database connectivity check FAILED at startup")
    yield
    engine.dispose()


# Create FastAPI app
app = FastAPI(
    title="Establishment Discovery API",
    description="Geospatial search and ranking of restaurants and cafes in Belarus",
    version="1.0.0",
    lifespan=lifespan,
)

# CORS: фронту нужен X-Search-Took-Ms
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Search-Took-Ms", "Retry-After"],
)

# Include routers
app.include_router(health.router, prefix="/api")
app.include_router(search.router, prefix="/api", tags=["search"])


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.warning("%s on %s %s: %s", exc.code, request.method, request.url.path, exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "code": exc.code, "errors": exc.errors()},
        headers=exc.headers,
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = [
        {
            "field": str(err.get("loc", ["", ""])[-1]),
            "message": err.get("msg", "Invalid value"),
            "value": err.get("input"),
        }
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=422,
        content={"detail": "Request validation failed", "code": "VALIDATION_ERROR", "errors": errors},
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Return a machine-readable error for any unhandled exception."""
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error", "code": "INTERNAL_ERROR", "errors": []},
    )


@app.get("/")
async def root():
    return {"message": "Establishment Discovery API", "version": "1.0.0"}
