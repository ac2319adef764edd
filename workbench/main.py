from contextlib import asynccontextmanager

import redis.asyncio as redis
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from workbench import events
from workbench.config import settings
from workbench.errors import WorkbenchError
from workbench.logging_config import setup_logging, get_logger

logger = get_logger(__name__)
from workbench.database import init_db_engine, close_db_engine, get_db_session
from workbench.migration_check import ensure_migrations
from workbench.routers import projects, resources, dependencies
from workbench.services.catalog import ResourceCatalog


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifespan - connect/disconnect Redis and database."""
    setup_logging()

    if settings.redis_url:
        events.redis_client = redis.from_url(
            settings.redis_url,
            decode_responses=True,
            socket_connect_timeout=5,
            socket_keepalive=True,
            retry_on_timeout=True,
            health_check_interval=30,
        )
        try:
            await events.redis_client.ping()
            logger.info(f"Connected to Redis at {settings.redis_url}")
        except Exception as e:
            logger.warning(f"Could not connect to Redis: {e}")
            logger.warning("API will continue without event streaming")
    else:
        logger.info("REDIS_URL not set, event publishing disabled")

    try:
        await init_db_engine()
        logger.info("Database engine initialized")
    except Exception as e:
        logger.critical(f"Could not initialize database engine: {e}")
        raise

    try:
        ensure_migrations()
    except Exception as e:
        logger.critical(f"Migration check failed: {e}")
        raise

    # Seed the resource catalog from disk (non-blocking)
    if settings.resources_dir:
        try:
            async with get_db_session() as session:
                summary = await ResourceCatalog(session).load_directory(settings.resources_dir)
            if summary["invalid"]:
                logger.warning(f"Skipped {len(summary['invalid'])} invalid resource definitions")
        except Exception as e:
            logger.warning(f"Could not load resources from {settings.resources_dir}: {e}")

    yield

    try:
        await close_db_engine()
        logger.info("Database engine closed")
    except Exception as e:
        logger.error(f"Error closing database engine: {e}")

    if events.redis_client:
        try:
            await events.redis_client.close()
            logger.info("Disconnected from Redis")
        except Exception as e:
            logger.error(f"Error closing Redis connection: {e}")
        events.redis_client = None


app = FastAPI(
    title="Prompt Workbench API",
    version="0.1.0",
    description="Shared agents, rules and hooks assigned to projects",
    lifespan=lifespan,
)

# CORS
#   "*"              → wildcard (allow any origin, credentials disabled)
#   "http://a,https://b" → explicit origin list (credentials enabled)
if settings.cors_origins in ("", "*"):
    _cors_origins = ["*"]
    _cors_credentials = False
else:
    _cors_origins = [o.strip() for o in settings.cors_origins.split(",") if o.strip()]
    _cors_credentials = True

app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins,
    allow_credentials=_cors_credentials,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(WorkbenchError)
async def workbench_error_handler(request: Request, exc: WorkbenchError):
    """Map domain errors to their HTTP status."""
    logger.info(f"{request.method} {request.url.path} -> {exc.status_code} {exc.kind}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


# Global exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Catch unhandled exceptions and return proper JSON response."""
    error_detail = str(exc)
    error_type = type(exc).__name__

    logger.error(
        f"Unhandled exception in {request.method} {request.url.path}: {error_type}: {error_detail}",
        exc_info=True,
    )

    return JSONResponse(
        status_code=500,
        content={
            "detail": f"{error_type}: {error_detail}",
            "type": error_type,
            "path": str(request.url.path),
        },
    )


app.include_router(projects.router, prefix="/v1/projects", tags=["projects"])
app.include_router(resources.router, prefix="/v1/resources", tags=["resources"])
app.include_router(dependencies.router, prefix="/v1/dependencies", tags=["dependencies"])


@app.get("/health")
async def health():
    return {"status": "ok"}
