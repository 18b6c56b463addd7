from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from sqlalchemy import text

from app.catalog.routes import quizzes as catalog_quizzes
from app.catalog.routes import videos
from app.core.config import settings
from app.core.exceptions import register_exception_handlers
from app.core.log_config import RequestLoggingMiddleware, setup_logging
from app.core.rate_limit import limiter
from app.db.session import SessionLocal
from app.progress.routes import admin_progress, progress
from app.progress.routes import quizzes as progress_quizzes

setup_logging()
logger = structlog.get_logger(__name__)

VERSION = "1.0.0"


def _database_status() -> str:
    try:
        db = SessionLocal()
        try:
            db.execute(text("SELECT 1"))
            return "healthy"
        finally:
            db.close()
    except Exception:
        return "unhealthy"


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    db_status = _database_status()
    if db_status == "healthy":
        logger.info("database_connected")
    else:
        logger.error("database_connection_failed")

    yield

    logger.info("shutting_down")


app = FastAPI(
    title=settings.PROJECT_NAME,
    debug=settings.DEBUG,
    lifespan=lifespan,
    description="Progression and quiz-gating engine for sequential video learning paths",
    version=VERSION,
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)  # type: ignore[arg-type]
register_exception_handlers(app, debug=settings.DEBUG)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RequestLoggingMiddleware)

app.include_router(videos.router, prefix=settings.API_V1_PREFIX, tags=["videos"])
app.include_router(catalog_quizzes.router, prefix=settings.API_V1_PREFIX, tags=["quizzes"])
app.include_router(progress_quizzes.router, prefix=settings.API_V1_PREFIX, tags=["quizzes"])
app.include_router(progress.router, prefix=settings.API_V1_PREFIX, tags=["progress"])
app.include_router(admin_progress.router, prefix=settings.API_V1_PREFIX)


@app.get("/")
async def root() -> dict[str, str]:
    return {"message": settings.PROJECT_NAME, "version": VERSION, "status": "running"}


@app.get("/health")
async def health_check() -> dict[str, str]:
    db_status = _database_status()
    overall = "healthy" if db_status == "healthy" else "degraded"
    return {"status": overall, "database": db_status}
