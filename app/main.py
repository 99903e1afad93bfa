import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api.http import (
    health_router, auth_router, documents_router,
    composites_router, patch_requests_router
)
from app.core.config import settings
from app.core.db import Base, engine
from app.core.exceptions import AuthorizationError
from app.db import models  # noqa: F401  регистрация таблиц в Base.metadata

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.auto_create_schema:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database schema created")
    yield
    await engine.dispose()


app = FastAPI(
    title="Composite Lineage",
    description="Версионирование JSON-документов, вариации композитов и ревью изменений",
    version="1.0.0",
    lifespan=lifespan
)

# Настройка CORS для работы с frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(AuthorizationError)
async def authorization_error_handler(request: Request, exc: AuthorizationError):
    logger.warning(f"Forbidden {request.url.path}: {exc}")
    return JSONResponse(
        status_code=status.HTTP_403_FORBIDDEN,
        content={"success": False, "error": "Forbidden", "details": str(exc)}
    )


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.url.path}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"success": False, "error": "Unexpected error", "details": str(exc)}
    )


# Подключаем роутеры
app.include_router(health_router)
app.include_router(auth_router)
app.include_router(documents_router)
app.include_router(composites_router)
app.include_router(patch_requests_router)


@app.get("/")
async def root():
    """Корневой эндпоинт"""
    return {
        "message": "Composite Lineage API",
        "version": "1.0.0",
        "docs": "/docs",
        "health": "/health"
    }
