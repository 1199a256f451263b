from contextlib import asynccontextmanager

from fastapi import FastAPI
from loguru import logger

from app.calendar.api import router as calendar_router
from app.config.settings import settings
from app.core.logger import setup_logger
from app.db.models import Base
from app.db.session import check_database_connection, get_engine


@asynccontextmanager
async def lifespan(_app: FastAPI):
    """Verify the database and make sure the calendar tables exist.

    Note: FastAPI requires async for lifespan context manager,
    even if no await operations are used.
    """
    check_database_connection()
    logger.info("Ensuring database tables exist")
    Base.metadata.create_all(bind=get_engine())
    logger.info("Database tables verified")
    yield


def create_app() -> FastAPI:
    setup_logger(level=settings.log_level, log_file=settings.log_file)

    app = FastAPI(title="Workout Calendar", lifespan=lifespan)
    app.include_router(calendar_router)

    @app.get("/health")
    def health() -> dict[str, str]:
        return {"status": "ok"}

    return app


app = create_app()
