"""
Main application entry point for the Roofing CRM API.

This module initializes the FastAPI application, sets up logging and
middleware, configures CORS, initializes the rate limiter with a Redis
backend, registers the validation error handler, and includes routers
for authentication, users, customers, projects and tasks.

Modules:
- FastAPI: Web framework
- CORSMiddleware: Middleware for handling CORS
- FastAPILimiter: Rate limiting
- redis.asyncio: Async Redis client
- fakeredis: In-process Redis when no server is reachable
- app.log: Structured logging and request ids
- app.database: Database engine
- app.models: SQLAlchemy models
- app.core: Application settings
"""

from contextlib import asynccontextmanager

import redis.asyncio as redis
import structlog
from fakeredis import FakeAsyncRedis
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi_limiter import FastAPILimiter
from redis.exceptions import RedisError

from app import customers, models, projects, tasks
from app.auth import router as auth_router
from app.core import get_settings
from app.database import engine
from app.log import RequestIdMiddleware, setup_logging
from app.users import router as users_router

settings = get_settings()
setup_logging(settings.LOG_LEVEL)
logger = structlog.get_logger("app.main")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Creates missing tables and initializes the rate limiter with a Redis
    backend, falling back to an in-process fake Redis when the server is
    unreachable (e.g. during local development).
    """
    models.Base.metadata.create_all(bind=engine)
    redis_client = redis.from_url(
        settings.REDIS_URL, encoding="utf-8", decode_responses=True
    )
    try:
        await FastAPILimiter.init(redis_client)
    except (RedisError, OSError):
        logger.warning("redis_unavailable", redis_url=settings.REDIS_URL)
        await FastAPILimiter.init(FakeAsyncRedis(decode_responses=True))
    yield
    await FastAPILimiter.close()


# Initialize FastAPI application
app = FastAPI(title="Roofing CRM API", lifespan=lifespan)

app.add_middleware(RequestIdMiddleware)

# Configure CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """
    Report malformed payloads as 400 with a field to messages map.

    Clients flatten ``errors`` into ``field: message`` strings.
    """
    errors: dict[str, list[str]] = {}
    for error in exc.errors():
        loc = [str(part) for part in error.get("loc", ()) if part != "body"]
        field = ".".join(loc) or "body"
        errors.setdefault(field, []).append(error.get("msg", "Invalid value"))
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"title": "One or more validation errors occurred.", "errors": errors},
    )


# Include routers for application areas
app.include_router(auth_router)
app.include_router(users_router)
app.include_router(customers.router)
app.include_router(projects.router)
app.include_router(tasks.router)


@app.get("/")
def root():
    """
    Root endpoint for the API.

    Returns:
        dict: JSON message directing users to the Swagger UI.
    """
    return {"msg": "Roofing CRM API. Visit /docs for Swagger UI"}
