# levelgate/main.py
from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from levelgate.core.config import settings
from levelgate.core.healthcheck import db_unreachable
from levelgate.core.logging import setup_logging
from levelgate.routes import admin, health, levels, student
from levelgate.routes.errors import register_error_handlers

setup_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan manager.
    """
    logger.info("Starting %s (%s mode)", settings.app_name, settings.env)

    failed = await db_unreachable()

    if failed:
        raise RuntimeError("System failed health check at startup")

    yield

    logger.info("Shutting down %s", settings.app_name)


def create_app(use_lifespan: bool = True) -> FastAPI:
    app = FastAPI(
        title=settings.app_name,
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan if use_lifespan else None,
    )

    register_error_handlers(app)

    app.include_router(levels.router, tags=["levels"])
    app.include_router(student.router, prefix="/student", tags=["student"])
    app.include_router(admin.router, prefix="/admin", tags=["admin"])
    app.include_router(health.router, tags=["health"])

    return app


app = create_app()
