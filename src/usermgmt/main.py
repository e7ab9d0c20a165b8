"""
FastAPI application factory.

    uvicorn usermgmt.main:app
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from usermgmt.api.v1 import api_router
from usermgmt.api.v1.error_handlers import register_exception_handlers
from usermgmt.config import Settings, get_settings
from usermgmt.core.logging import setup_logging, RequestIDMiddleware
from usermgmt.database.base import Base
from usermgmt.database.session import get_engine, dispose_engine
from usermgmt.utils.logging import get_project_version
import usermgmt.models  # noqa: F401 – import to register models with Base.metadata

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings: Settings = app.state.settings
    if settings.DB_CREATE_SCHEMA:
        async with get_engine().begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("db.schema.created")

    logger.info("app.startup", extra={"env": settings.ENV})
    yield

    await dispose_engine()
    logger.info("app.shutdown")


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()
    setup_logging(settings)

    app = FastAPI(title=settings.APP_NAME, version=get_project_version(), lifespan=lifespan)
    app.state.settings = settings

    app.add_middleware(RequestIDMiddleware)
    register_exception_handlers(app)
    app.include_router(api_router)

    return app


app = create_app()
